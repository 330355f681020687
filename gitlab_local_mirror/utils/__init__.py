"""Utility modules for the GitLab local mirror tool."""

from gitlab_local_mirror.utils.branch import (
    detect_default_branch,
    reset_to_default_branch,
    update_repository,
)
from gitlab_local_mirror.utils.export import export_report
from gitlab_local_mirror.utils.git import GitResult, GitRunner
from gitlab_local_mirror.utils.network import probe_host
from gitlab_local_mirror.utils.preflight import check_git_credentials, check_required_tools

__all__ = [
    "GitResult",
    "GitRunner",
    "detect_default_branch",
    "reset_to_default_branch",
    "update_repository",
    "export_report",
    "probe_host",
    "check_git_credentials",
    "check_required_tools",
]
