"""
Checks run before any work starts: required tools and git credentials.
"""

import logging
import shutil
from pathlib import Path
from typing import Iterable, Optional, Sequence

from gitlab_local_mirror.core.exceptions import PreflightError
from gitlab_local_mirror.utils.git import GitRunner

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("git",)
DEFAULT_CREDENTIALS_FILE = Path.home() / ".git-credentials"


def check_required_tools(tools: Sequence[str] = REQUIRED_TOOLS) -> None:
    """
    Verify that every external tool is on ``PATH``.

    Raises:
        PreflightError: Naming all missing tools
    """
    missing = [tool for tool in tools if shutil.which(tool) is None]
    if missing:
        for tool in missing:
            logger.critical("Required dependency '%s' is not installed.", tool)
        raise PreflightError(f"Missing required tools: {', '.join(missing)}")


def check_git_credentials(
    hosts: Iterable[str],
    credentials_file: Optional[Path] = None,
    git: Optional[GitRunner] = None,
) -> None:
    """
    Verify the git credential store can authenticate against one of ``hosts``.

    The credentials file is only read, never modified.

    Raises:
        PreflightError: If the store is not set up
    """
    hosts = list(hosts)
    credentials_file = credentials_file or DEFAULT_CREDENTIALS_FILE
    git = git or GitRunner()

    if credentials_file.is_file():
        content = credentials_file.read_text(encoding="utf-8", errors="replace")
        if any(host in content for host in hosts):
            helper = git.run(["config", "--global", "credential.helper"])
            if helper.ok and helper.output == "store":
                logger.debug("Git credential store found in %s", credentials_file)
                return

    host = hosts[0] if hosts else "gitlab.example.com"
    logger.error("Git credentials for GitLab are not set up.")
    logger.info("To set up Git credentials, please run the following commands:")
    logger.info("  git config --global credential.helper store")
    logger.info('  echo "https://oauth2:YOUR_GITLAB_TOKEN@%s" > %s', host, credentials_file)
    logger.info("  chmod 600 %s", credentials_file)
    logger.info("Replace YOUR_GITLAB_TOKEN with your actual GitLab personal access token.")
    raise PreflightError("Git credentials check failed")
