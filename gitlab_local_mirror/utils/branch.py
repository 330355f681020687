"""
Reconcile an existing local clone with its remote.

``reset_to_default_branch`` brings a clone back onto the remote's default
branch; ``update_repository`` then fetches and pulls the current branch.
Both are best-effort: individual git failures are logged and processing
continues with whatever state is available.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from gitlab_local_mirror.core.log import SUCCESS
from gitlab_local_mirror.utils.git import GitRunner

logger = logging.getLogger(__name__)

STASH_MESSAGE = "Auto-stash by gitlab-local-mirror"
COMMON_BRANCHES = ("main", "master", "develop")

BranchStrategy = Callable[[GitRunner, Path], Optional[str]]


@dataclass
class ResetResult:
    """Outcome of the reset-to-default sequence."""

    success: bool
    branch: Optional[str] = None
    stashed: bool = False
    fetched: bool = False
    checked_out: bool = False
    reset: bool = False


@dataclass
class UpdateResult:
    """Outcome of fetching and pulling the current branch."""

    success: bool
    branch: Optional[str] = None
    fetched: bool = False
    pulled: bool = False


def _clean(value: str) -> Optional[str]:
    value = "".join(value.split())
    return value or None


def branch_from_remote_show(git: GitRunner, repo_dir: Path) -> Optional[str]:
    """Ask origin for its HEAD branch (requires network access)."""
    result = git.run(["remote", "show", "origin"], cwd=repo_dir)
    if not result.ok:
        return None
    for line in result.stdout.splitlines():
        line = line.strip()
        if line.startswith("HEAD branch:"):
            branch = _clean(line.split(":", 1)[1])
            if branch and branch != "(unknown)":
                return branch
    return None


def branch_from_symbolic_ref(git: GitRunner, repo_dir: Path) -> Optional[str]:
    """Read the locally cached ``refs/remotes/origin/HEAD``."""
    result = git.run(["symbolic-ref", "refs/remotes/origin/HEAD"], cwd=repo_dir)
    if not result.ok:
        return None
    ref = result.output
    prefix = "refs/remotes/origin/"
    if ref.startswith(prefix):
        ref = ref[len(prefix) :]
    return _clean(ref)


def branch_from_common_names(git: GitRunner, repo_dir: Path) -> Optional[str]:
    """Pick the first of main, master or develop that exists on origin."""
    for branch in COMMON_BRANCHES:
        result = git.run(
            ["show-ref", "--verify", "--quiet", f"refs/remotes/origin/{branch}"],
            cwd=repo_dir,
            timeout=git.timeouts.git_show_ref,
        )
        if result.ok:
            return branch
    return None


def branch_from_current_checkout(git: GitRunner, repo_dir: Path) -> Optional[str]:
    """Fall back to the locally checked-out branch."""
    result = git.run(["rev-parse", "--abbrev-ref", "HEAD"], cwd=repo_dir)
    if not result.ok:
        return None
    branch = _clean(result.output)
    if branch == "HEAD":
        return None
    return branch


# Ordered by preference, first non-empty answer wins.
BRANCH_STRATEGIES: List[Tuple[str, BranchStrategy]] = [
    ("remote show origin", branch_from_remote_show),
    ("symbolic-ref origin/HEAD", branch_from_symbolic_ref),
    ("common branch names", branch_from_common_names),
    ("current branch", branch_from_current_checkout),
]


def detect_default_branch(
    git: GitRunner,
    repo_dir: Path,
    strategies: Sequence[Tuple[str, BranchStrategy]] = BRANCH_STRATEGIES,
    log: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Determine the remote's default branch for ``repo_dir``.

    Args:
        git: Git runner
        repo_dir: Local clone
        strategies: Ordered ``(name, strategy)`` pairs
        log: Logger for diagnostics

    Returns:
        The branch name, or None when no strategy produced one
    """
    log = log or logger
    for name, strategy in strategies:
        log.debug("Trying default branch detection via %s for %s", name, repo_dir)
        branch = strategy(git, repo_dir)
        if branch:
            log.debug("Using branch: %s for %s (%s)", branch, repo_dir, name)
            return branch
    return None


def has_local_changes(git: GitRunner, repo_dir: Path) -> bool:
    """True when the working tree differs from HEAD."""
    result = git.run(["diff-index", "--quiet", "HEAD", "--"], cwd=repo_dir)
    return not result.ok


def reset_to_default_branch(
    git: GitRunner,
    repo_dir: Path,
    log: Optional[logging.Logger] = None,
    strategies: Sequence[Tuple[str, BranchStrategy]] = BRANCH_STRATEGIES,
) -> ResetResult:
    """
    Move a local clone onto ``origin/<default branch>``.

    Local changes are stashed, origin is fetched, the default branch is
    checked out and hard-reset to its remote counterpart. Only a missing
    branch name fails the sequence; fetch, checkout and reset failures are
    warnings.
    """
    log = log or logger
    repo_dir = Path(repo_dir)
    log.info("Resetting %s to default branch", repo_dir)

    if not git.is_repository(repo_dir):
        log.error("Repository directory %s is not a valid git repository", repo_dir)
        return ResetResult(success=False)

    result = ResetResult(success=False)

    if has_local_changes(git, repo_dir):
        log.info("Stashing local changes in %s", repo_dir)
        stash = git.run(["stash", "push", "-m", STASH_MESSAGE], cwd=repo_dir)
        result.stashed = stash.ok
        if not stash.ok:
            log.warning("Failed to stash local changes in %s, continuing", repo_dir)

    log.info("Fetching latest changes for %s", repo_dir)
    fetch = git.run(["fetch", "origin"], cwd=repo_dir, timeout=git.timeouts.git_fetch)
    result.fetched = fetch.ok
    if not fetch.ok:
        log.warning(
            "Failed to fetch from origin for %s - may be due to authentication or network issues",
            repo_dir,
        )

    branch = detect_default_branch(git, repo_dir, strategies, log)
    if not branch:
        log.error("Could not determine default branch for %s", repo_dir)
        return result
    result.branch = branch

    checkout = git.run(["checkout", branch], cwd=repo_dir)
    result.checked_out = checkout.ok
    if not checkout.ok:
        log.warning("Failed to checkout %s for %s, but continuing", branch, repo_dir)

    reset = git.run(["reset", "--hard", f"origin/{branch}"], cwd=repo_dir)
    result.reset = reset.ok
    if reset.ok:
        log.log(SUCCESS, "Successfully reset %s to origin/%s", repo_dir, branch)
    else:
        log.warning(
            "Could not reset to origin/%s for %s (may be due to network/auth issues)",
            branch,
            repo_dir,
        )

    result.success = True
    return result


def update_repository(
    git: GitRunner, repo_dir: Path, log: Optional[logging.Logger] = None
) -> UpdateResult:
    """
    Fetch all remotes and pull the current branch.

    A failed pull leaves the repository usable and is reported as a warning;
    only an undeterminable current branch fails the update.
    """
    log = log or logger
    repo_dir = Path(repo_dir)
    log.info("Updating %s", repo_dir)

    result = UpdateResult(success=False)

    fetch = git.run(["fetch", "--all"], cwd=repo_dir, timeout=git.timeouts.git_fetch)
    result.fetched = fetch.ok
    if not fetch.ok:
        log.warning(
            "Failed to fetch all remotes for %s - may be due to authentication or network issues",
            repo_dir,
        )

    branch = branch_from_current_checkout(git, repo_dir)
    if not branch:
        log.warning("Could not determine current branch for %s", repo_dir)
        return result
    result.branch = branch
    log.debug("Current branch: %s for %s", branch, repo_dir)

    pull = git.run(["pull", "origin", branch], cwd=repo_dir, timeout=git.timeouts.git_pull)
    result.pulled = pull.ok
    result.success = True
    if pull.ok:
        log.log(SUCCESS, "Successfully updated %s on branch %s", repo_dir, branch)
    else:
        log.warning(
            "Failed to pull origin/%s for %s - may be due to authentication or network issues",
            branch,
            repo_dir,
        )
        log.info("Repository %s is on branch %s but could not be updated", repo_dir, branch)
    return result
