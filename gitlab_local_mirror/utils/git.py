"""
Thin wrapper around the ``git`` command line tool.

Every call is bounded by a timeout and never raises for git failures; callers
inspect the returned ``GitResult`` instead.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

from gitlab_local_mirror.core.config import TimeoutConfig

TIMEOUT_RETURN_CODE = 124
NOT_FOUND_RETURN_CODE = 127


@dataclass
class GitResult:
    """Return code and captured output of a git command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return self.stdout.strip()


class GitRunner:
    """Runs git commands with explicit timeouts and no terminal prompts."""

    def __init__(
        self,
        timeouts: Optional[TimeoutConfig] = None,
        logger: Optional[logging.Logger] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize the git runner.

        Args:
            timeouts: Timeout settings, defaults are used when omitted
            logger: Logger receiving command diagnostics
            env: Base environment for git processes (default: current environment)
        """
        self.timeouts = timeouts or TimeoutConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.git_env = dict(env) if env is not None else os.environ.copy()
        self.git_env["GIT_TERMINAL_PROMPT"] = "0"  # Disable Git prompts

    def run(
        self,
        args: List[str],
        cwd: Optional[Union[str, Path]] = None,
        timeout: Optional[float] = None,
    ) -> GitResult:
        """
        Run a git command and return its result.

        Args:
            args: Arguments passed to git (without the leading ``git``)
            cwd: Repository directory, passed as ``git -C``
            timeout: Seconds before the command is killed

        Returns:
            GitResult with return code and captured output
        """
        command = ["git"]
        if cwd is not None:
            command += ["-C", str(cwd)]
        command += args
        timeout = timeout if timeout is not None else self.timeouts.git_default
        self.logger.debug("Running git command: %s", " ".join(command))

        try:
            process = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self.git_env,
                universal_newlines=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            self.logger.debug("Git command timed out after %ss: %s", timeout, " ".join(command))
            return GitResult(TIMEOUT_RETURN_CODE, "", f"timed out after {timeout}s")
        except OSError as e:
            self.logger.error("Git command failed: %s", e)
            return GitResult(NOT_FOUND_RETURN_CODE, "", str(e))

        if process.returncode != 0:
            self.logger.debug(
                "Git command exited %d: %s", process.returncode, process.stderr.strip()
            )
        return GitResult(process.returncode, process.stdout, process.stderr)

    def clone(self, url: str, destination: Union[str, Path]) -> GitResult:
        """Clone ``url`` into ``destination``, creating parent directories."""
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        return self.run(["clone", url, str(destination)], timeout=self.timeouts.clone)

    @staticmethod
    def is_repository(path: Union[str, Path]) -> bool:
        """True when ``path`` carries a ``.git`` marker."""
        return (Path(path) / ".git").exists()
