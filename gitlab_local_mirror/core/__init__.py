"""Core functionality for the GitLab local mirror tool."""

from gitlab_local_mirror.core.config import (
    EndpointRoute,
    GitLabConfig,
    MirrorConfig,
    TimeoutConfig,
    get_env_variable,
    load_config_from_env,
)
from gitlab_local_mirror.core.exceptions import (
    ApiError,
    ConfigError,
    MirrorError,
    PreflightError,
)
from gitlab_local_mirror.core.report import GroupReport, ProjectOutcome, ProjectStatus, RunReport

__all__ = [
    "MirrorError",
    "ConfigError",
    "PreflightError",
    "ApiError",
    "EndpointRoute",
    "GitLabConfig",
    "MirrorConfig",
    "TimeoutConfig",
    "get_env_variable",
    "load_config_from_env",
    "GroupReport",
    "ProjectOutcome",
    "ProjectStatus",
    "RunReport",
]
