"""
Command-line implementation for the mirror command.

This module provides the CLI command for cloning or updating every repository
of one or more GitLab groups (subgroups included) into a local directory tree
laid out as ``<local_dir>/<path_with_namespace>``.
"""

import logging
from pathlib import Path
from typing import List, Optional

from pydantic import SecretStr

from gitlab_local_mirror.core.config import EndpointRoute, MirrorConfig
from gitlab_local_mirror.core.exceptions import ConfigError
from gitlab_local_mirror.core.mirror import MirrorService
from gitlab_local_mirror.core.report import RunReport
from gitlab_local_mirror.utils.export import export_report
from gitlab_local_mirror.utils.preflight import check_git_credentials, check_required_tools

logger = logging.getLogger(__name__)


def mirror_command(
    token: str,
    groups: List[str],
    local_dir: str,
    gitlab_url: str,
    routes: Optional[List[EndpointRoute]] = None,
    skip_connectivity_check: bool = False,
    skip_credentials_check: bool = False,
    max_workers: Optional[int] = None,
    report_file: Optional[str] = None,
) -> RunReport:
    """
    Clone or update all repositories of the given GitLab groups.

    Groups are processed in parallel, projects of a group one after another.
    Projects missing locally are cloned after an access check; existing clones
    are reset to the remote default branch (local changes are stashed) and
    pulled. A project or group failure never stops the others.

    Routing:
        Each group path is matched against ``routes`` in order; the first
        matching pattern selects the GitLab instance, otherwise ``gitlab_url``
        is used.

    Args:
        token: GitLab personal access token with read_api access
        groups: Group paths, e.g. ["my-group", "other-group/subgroup"]
        local_dir: Root directory for the local clones
        gitlab_url: Default GitLab instance URL (e.g., "https://gitlab.com")
        routes: Pattern to instance routing rules
        skip_connectivity_check: Skip the ``GET /user`` check per group
        skip_credentials_check: Skip the git credential store check
        max_workers: Maximum number of groups processed at once
        report_file: Optional CSV file receiving per-project results

    Returns:
        The run report

    Raises:
        ConfigError: If configuration is invalid
        PreflightError: If git or its credentials are not set up

    Exit codes:
        0 - Run completed (even if some projects failed)
        1 - Configuration or pre-flight error
        2 - Mirror operation error
        3 - Unexpected error
    """
    routes = routes or []

    # Print initialization message
    print("Initializing GitLab local mirror with:")
    print(f"  GitLab URL: {gitlab_url}")
    for route in routes:
        print(f"  Route: {route.pattern} -> {route.url}")
    print(f"  Groups: {' '.join(groups)}")
    print(f"  Local directory: {local_dir}")

    try:
        config = MirrorConfig(
            groups=groups,
            token=SecretStr(token or ""),
            local_root=Path(local_dir),
            default_url=gitlab_url,
            routes=routes,
            skip_connectivity_check=skip_connectivity_check,
            skip_credentials_check=skip_credentials_check,
            max_workers=max_workers,
            report_file=Path(report_file) if report_file else None,
        )
    except ValueError as e:
        raise ConfigError(f"Configuration validation error: {e}") from e

    check_required_tools()
    if not config.skip_credentials_check:
        check_git_credentials(config.hosts)

    service = MirrorService(config)
    report = service.run()

    print("\n===== MIRROR SUMMARY =====")
    for line in report.summary_lines():
        print(line)

    if report.failed or report.failed_groups:
        print("\nCheck logs for details on failures.")

    if config.report_file:
        export_report(report, config.report_file)

    return report
