"""
Command-line interface for the GitLab local mirror tool.
"""

import argparse
from pathlib import Path
from typing import List, Optional

from gitlab_local_mirror.cli.base_command import BaseCommand
from gitlab_local_mirror.cli.commands.mirror_command import mirror_command
from gitlab_local_mirror.core.config import (
    DEFAULT_LOCAL_ROOT,
    get_env_bool,
    get_env_variable,
    load_groups_file,
    parse_routes,
)

EPILOG = """
Examples:
  gitlab-local-mirror -g "my-group my-other-group"
  gitlab-local-mirror -t TOKEN my-group other/subgroup
  gitlab-local-mirror -s -d --route "custom=https://gitlab.example.com" custom-group
  gitlab-local-mirror --groups-file groups.csv --report-file mirror-report.csv

Environment:
  GITLAB_TOKEN, GITLAB_GROUPS, GITLAB_URL, GITLAB_ENDPOINT_ROUTES,
  GITLAB_MIRROR_DIR, GITLAB_SKIP_CONNECTIVITY_TEST, GITLAB_SKIP_CREDENTIALS_CHECK
"""


def build_command() -> BaseCommand:
    """Create the command with all of its arguments."""
    command = BaseCommand(
        description="Clone or update all repositories of GitLab groups and their subgroups",
        epilog=EPILOG,
        prog="gitlab-local-mirror",
    )

    command.parser.add_argument(
        "groups", nargs="*", metavar="GROUP", help="GitLab group path to mirror"
    )
    command.connection_group.add_argument(
        "-g",
        "--group-paths",
        help="Space-separated list of group paths (default: from GITLAB_GROUPS env var)",
    )
    command.connection_group.add_argument(
        "--route",
        action="append",
        default=[],
        metavar="PATTERN=URL",
        help="Route groups matching PATTERN to the GitLab instance at URL "
        "(repeatable, default: from GITLAB_ENDPOINT_ROUTES env var)",
    )
    command.behavior_group.add_argument(
        "--groups-file", help="CSV file with one group path per line"
    )
    command.behavior_group.add_argument(
        "--local-dir",
        help=f"Local root directory (default: GITLAB_MIRROR_DIR or {DEFAULT_LOCAL_ROOT})",
        default=get_env_variable("GITLAB_MIRROR_DIR") or str(DEFAULT_LOCAL_ROOT),
    )
    command.behavior_group.add_argument(
        "-s",
        "--skip-connectivity-test",
        help="Skip the API connectivity test (useful for slow networks)",
        action="store_true",
        default=get_env_bool("GITLAB_SKIP_CONNECTIVITY_TEST"),
    )
    command.behavior_group.add_argument(
        "--skip-credentials-check",
        help="Do not require a git credential store entry for the GitLab hosts",
        action="store_true",
        default=get_env_bool("GITLAB_SKIP_CREDENTIALS_CHECK"),
    )
    command.behavior_group.add_argument(
        "--max-workers",
        type=int,
        help="Maximum number of groups processed in parallel (default: one per group)",
    )
    command.behavior_group.add_argument(
        "--report-file", help="Write per-project results to this CSV file"
    )
    return command


def collect_groups(command: BaseCommand, args: argparse.Namespace) -> List[str]:
    """Merge positional groups, ``-g`` and ``--groups-file``; fall back to GITLAB_GROUPS."""
    groups = list(args.groups)
    if args.group_paths:
        groups += args.group_paths.split()
    if args.groups_file:
        groups += command.run_command(load_groups_file, Path(args.groups_file))
    if not groups:
        groups = (get_env_variable("GITLAB_GROUPS") or "").split()
    return groups


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI tool."""
    command = build_command()
    args = command.parse_args(argv)

    groups = collect_groups(command, args)

    # Check for required arguments
    missing = []
    if not args.token:
        missing.append("token (-t or GITLAB_TOKEN)")
    if not groups:
        missing.append("group paths (-g, GROUP or GITLAB_GROUPS)")
    if missing:
        command.parser.error("Missing required arguments: %s" % ", ".join(missing))

    route_spec = ",".join(args.route) if args.route else get_env_variable("GITLAB_ENDPOINT_ROUTES")
    routes = command.run_command(parse_routes, route_spec)

    command.run_command(
        mirror_command,
        token=args.token,
        groups=groups,
        local_dir=args.local_dir,
        gitlab_url=args.gitlab_url,
        routes=routes,
        skip_connectivity_check=args.skip_connectivity_test,
        skip_credentials_check=args.skip_credentials_check,
        max_workers=args.max_workers,
        report_file=args.report_file,
    )
    return 0


if __name__ == "__main__":
    main()
