"""
Shared fixtures: throw-away git remotes and scripted git runners.
"""

import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

import pytest
from pydantic import SecretStr

from gitlab_local_mirror.core.config import MirrorConfig, TimeoutConfig
from gitlab_local_mirror.core.mirror import AccessResult
from gitlab_local_mirror.core.exceptions import ApiError
from gitlab_local_mirror.utils.git import GitResult, GitRunner

GIT_IDENTITY = {
    "GIT_AUTHOR_NAME": "Mirror Test",
    "GIT_AUTHOR_EMAIL": "mirror-test@example.com",
    "GIT_COMMITTER_NAME": "Mirror Test",
    "GIT_COMMITTER_EMAIL": "mirror-test@example.com",
}

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git_env() -> Dict[str, str]:
    env = os.environ.copy()
    env.update(GIT_IDENTITY)
    return env


def git(*args: str, cwd: Optional[Path] = None) -> str:
    """Run git for test setup, failing the test on error."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        env=git_env(),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        universal_newlines=True,
        check=True,
    )
    return result.stdout.strip()


def commit_file(work: Path, name: str, content: str, message: str) -> None:
    (work / name).write_text(content)
    git("add", name, cwd=work)
    git("commit", "-q", "-m", message, cwd=work)


def make_remote(base: Path, name: str) -> Path:
    """
    Create a bare repository whose default branch is ``main``.

    ``main`` holds README.md; ``feature-x`` adds feature.txt on top.
    """
    bare = base / "remotes" / f"{name}.git"
    bare.mkdir(parents=True)
    git("init", "-q", "--bare", str(bare))
    git("--git-dir", str(bare), "symbolic-ref", "HEAD", "refs/heads/main")

    work = base / "seeds" / name
    work.mkdir(parents=True)
    git("init", "-q", str(work))
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=work)
    git("remote", "add", "origin", str(bare), cwd=work)
    commit_file(work, "README.md", "hello\n", "initial")
    git("push", "-q", "origin", "main", cwd=work)
    git("checkout", "-q", "-b", "feature-x", cwd=work)
    commit_file(work, "feature.txt", "feature\n", "feature work")
    git("push", "-q", "origin", "feature-x", cwd=work)
    return bare


@pytest.fixture
def remote_factory(tmp_path):
    """Return a function creating named bare remotes under ``tmp_path``."""

    def factory(name: str) -> Path:
        return make_remote(tmp_path, name)

    return factory


@pytest.fixture
def local_root(tmp_path) -> Path:
    root = tmp_path / "mirror"
    root.mkdir()
    return root


@pytest.fixture
def git_runner() -> GitRunner:
    return GitRunner(TimeoutConfig(), env=git_env())


@pytest.fixture
def make_config(local_root):
    def factory(groups: Sequence[str] = ("team/alpha",), **kwargs) -> MirrorConfig:
        kwargs.setdefault("skip_connectivity_check", True)
        kwargs.setdefault("local_root", local_root)
        return MirrorConfig(groups=list(groups), token=SecretStr("glpat-test"), **kwargs)

    return factory


class ScriptedGit:
    """Stand-in for GitRunner answering from a table of canned results."""

    def __init__(self, responses: Dict[Tuple[str, ...], GitResult], repository: bool = True):
        self.responses = responses
        self.repository = repository
        self.calls = []
        self.timeouts = TimeoutConfig()

    def run(self, args, cwd=None, timeout=None) -> GitResult:
        self.calls.append(tuple(args))
        return self.responses.get(tuple(args), GitResult(1, "", "fatal: scripted failure"))

    def clone(self, url, destination) -> GitResult:
        self.calls.append(("clone", url, str(destination)))
        return self.responses.get(("clone",), GitResult(1, "", "fatal: scripted failure"))

    def is_repository(self, path) -> bool:
        return self.repository

    def called(self, *prefix: str) -> bool:
        return any(call[: len(prefix)] == prefix for call in self.calls)


class FakeConnector:
    """In-memory GitLab connector."""

    def __init__(self, projects=None, connectivity=True, denied=(), failing_groups=()):
        self.projects = projects or {}
        self.connectivity = connectivity
        self.denied = set(denied)
        self.failing_groups = set(failing_groups)
        self.probed = []
        self.listed = []

    def check_connectivity(self) -> bool:
        return self.connectivity

    def list_group_projects(self, group_path):
        self.listed.append(group_path)
        if group_path in self.failing_groups:
            raise ApiError(f"API request failed with HTTP 500 for group: {group_path}")
        return list(self.projects.get(group_path, []))

    def probe_project_access(self, project_path):
        self.probed.append(project_path)
        if project_path in self.denied:
            return AccessResult.DENIED
        return AccessResult.GRANTED
