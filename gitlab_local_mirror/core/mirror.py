"""
Core module for GitLab local mirroring functionality.
Provides abstraction for GitLab connections and the group mirroring orchestrator.
"""

import logging
import re
import shutil
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, Set

import requests
from gitlab.exceptions import GitlabError
from gitlab.utils import EncodedId

from gitlab_local_mirror.core.config import GitLabConfig, MirrorConfig, TimeoutConfig
from gitlab_local_mirror.core.exceptions import ApiError
from gitlab_local_mirror.core.log import SUCCESS
from gitlab_local_mirror.core.report import GroupReport, ProjectOutcome, ProjectStatus, RunReport
from gitlab_local_mirror.utils.branch import reset_to_default_branch, update_repository
from gitlab_local_mirror.utils.git import GitRunner
from gitlab_local_mirror.utils.network import hostname_from_url, probe_host

# Configure logging
logger = logging.getLogger(__name__)

PER_PAGE = 100

TROUBLESHOOTING_TIPS = """
=== TROUBLESHOOTING TIPS ===
1. If you're getting connection errors (HTTP 000), try:
   - Use --skip-connectivity-test (-s) to skip the connectivity test
   - Check if you're behind a corporate firewall/proxy
   - Verify your network connection to the GitLab server

2. If you're getting authentication errors:
   - Make sure your GitLab token has the correct permissions
   - Check if the token is expired
   - Verify the group paths exist and you have access to them

3. For more detailed debugging:
   - Use --debug (-d) for verbose output
   - Check the GitLab server status
=========================="""


# Core data models
@dataclass
class ProjectEntry:
    """A project as returned by the group projects listing."""

    path_with_namespace: str
    http_url_to_repo: Optional[str] = None

    @property
    def https_url(self) -> Optional[str]:
        """Repository URL with ``http://`` upgraded to ``https://``."""
        if not self.http_url_to_repo:
            return None
        return re.sub(r"^http://", "https://", self.http_url_to_repo)


class AccessResult(str, Enum):
    """Outcome of the access probe for a project."""

    GRANTED = "granted"
    DENIED = "denied"
    INCONCLUSIVE = "inconclusive"


def _response_code(error: Exception) -> Optional[int]:
    return getattr(error, "response_code", None)


class GitLabConnector:
    """Handles connection and operations with GitLab API."""

    def __init__(
        self,
        config: GitLabConfig,
        timeouts: Optional[TimeoutConfig] = None,
        client: Any = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize with GitLab configuration."""
        self.config = config
        self.timeouts = timeouts or TimeoutConfig()
        self.client = client if client is not None else config.get_client()
        self.logger = logger or logging.getLogger(__name__)

    def check_connectivity(self) -> bool:
        """
        Validate API reachability and the token with ``GET /user``.

        On failure a DNS and reachability probe of the host is logged.

        Returns:
            True if the API answered with the current user
        """
        self.logger.info(
            "Testing GitLab connectivity for: %s (with %ss timeout)",
            self.config.api_url,
            self.timeouts.connectivity_max,
        )
        try:
            user = self.client.http_get(
                "/user",
                timeout=(self.timeouts.connectivity_connect, self.timeouts.connectivity_max),
                max_retries=self.timeouts.connectivity_retries,
            )
        except (GitlabError, requests.exceptions.RequestException) as e:
            code = _response_code(e)
            if code is None:
                self.logger.warning(
                    "Connection timeout or network issue for %s: %s", self.config.api_url, e
                )
            else:
                self.logger.error(
                    "GitLab API connectivity test failed for %s (HTTP %s): %s",
                    self.config.api_url,
                    code,
                    e,
                )
            probe_host(
                hostname_from_url(self.config.url),
                timeout=self.timeouts.network_probe,
                log=self.logger,
            )
            return False

        username = user.get("username") if isinstance(user, dict) else None
        self.logger.log(
            SUCCESS,
            "GitLab API connectivity test passed for %s (user: %s)",
            self.config.api_url,
            username or "unknown",
        )
        return True

    def list_group_projects(self, group_path: str) -> List[ProjectEntry]:
        """
        List every project of a group, subgroups included.

        Follows ``X-Next-Page`` until the last page.

        Raises:
            ApiError: On a non-200 answer, an empty body or a non-list payload
        """
        path = f"/groups/{EncodedId(group_path)}/projects"
        self.logger.info(
            "API URL: %s%s?include_subgroups=true&per_page=%d", self.config.api_url, path, PER_PAGE
        )

        entries: List[ProjectEntry] = []
        page: Optional[int] = 1
        while page:
            try:
                response = self.client.http_get(
                    path,
                    query_data={"include_subgroups": "true", "per_page": PER_PAGE, "page": page},
                    raw=True,
                    timeout=(self.timeouts.listing_connect, self.timeouts.listing_max),
                    max_retries=self.timeouts.listing_retries,
                )
            except (GitlabError, requests.exceptions.RequestException) as e:
                code = _response_code(e) or "000"
                raise ApiError(
                    f"API request failed with HTTP {code} for group: {group_path}"
                ) from e

            self.logger.debug("HTTP Status Code: %s (page %s)", response.status_code, page)
            if response.status_code != 200:
                raise ApiError(
                    f"API request failed with HTTP {response.status_code} for group: {group_path}"
                )
            if not response.content or not response.content.strip():
                raise ApiError(f"Empty response for group: {group_path}")
            try:
                payload = response.json()
            except ValueError as e:
                raise ApiError(f"Unexpected API response format for group: {group_path}") from e
            if not isinstance(payload, list):
                raise ApiError(f"Unexpected API response format for group: {group_path}")

            for item in payload:
                if not isinstance(item, dict):
                    self.logger.warning(
                        "Ignoring malformed project entry in %s: %r", group_path, item
                    )
                    continue
                entries.append(
                    ProjectEntry(
                        path_with_namespace=item.get("path_with_namespace") or "",
                        http_url_to_repo=item.get("http_url_to_repo"),
                    )
                )

            next_page = str(response.headers.get("X-Next-Page", "")).strip()
            page = int(next_page) if next_page.isdigit() else None

        return entries

    def probe_project_access(self, project_path: str) -> AccessResult:
        """
        Check whether the token can see ``project_path`` before cloning it.

        Returns:
            DENIED on 404/403, GRANTED on success, INCONCLUSIVE otherwise
        """
        self.logger.debug("Testing repository access for: %s", project_path)
        try:
            self.client.http_get(
                f"/projects/{EncodedId(project_path)}",
                timeout=(self.timeouts.probe_connect, self.timeouts.probe_max),
                retry_transient_errors=False,
            )
        except (GitlabError, requests.exceptions.RequestException) as e:
            code = _response_code(e)
            if code == 404:
                self.logger.warning("Repository not found or no access: %s", project_path)
                return AccessResult.DENIED
            if code == 403:
                self.logger.warning("Access denied to repository: %s", project_path)
                return AccessResult.DENIED
            self.logger.debug(
                "Repository access test inconclusive for: %s (HTTP %s)", project_path, code or "000"
            )
            return AccessResult.INCONCLUSIVE

        self.logger.debug("Repository access test passed for: %s", project_path)
        return AccessResult.GRANTED


class MirrorService:
    """Clones or updates every project of the configured groups."""

    def __init__(
        self,
        config: MirrorConfig,
        logger: Optional[logging.Logger] = None,
        connector_factory: Optional[Callable[[GitLabConfig], GitLabConnector]] = None,
        git: Optional[GitRunner] = None,
    ):
        """
        Initialize with mirror configuration.

        Args:
            config: Validated mirror configuration
            logger: Logger receiving every decision (default: module logger)
            connector_factory: Builds a connector for a GitLab instance
            git: Git runner (default: one built from the configured timeouts)
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.connector_factory = connector_factory or self._create_connector
        self.git = git or GitRunner(config.timeouts, logger=self.logger)
        self._tips_lock = threading.Lock()
        self._tips_shown = False
        self._claims_lock = threading.Lock()
        self._claimed: Set[str] = set()

    def _create_connector(self, gitlab_config: GitLabConfig) -> GitLabConnector:
        return GitLabConnector(gitlab_config, self.config.timeouts, logger=self.logger)

    def project_dir(self, project_path: str) -> Path:
        """Local directory of a project."""
        return self.config.local_root / project_path

    def run(self) -> RunReport:
        """
        Process all groups concurrently, one task per group.

        Returns:
            Report joined from the per-group reports, in requested group order
        """
        local_root = self.config.local_root
        local_root.mkdir(parents=True, exist_ok=True)
        with self._claims_lock:
            self._claimed.clear()

        groups = self.config.groups
        workers = self.config.max_workers or len(groups)
        reports: List[GroupReport] = []

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="group") as executor:
            futures = [executor.submit(self.process_group, group) for group in groups]
            for group, future in zip(groups, futures):
                try:
                    reports.append(future.result())
                except Exception as e:  # pylint: disable=broad-exception-caught
                    self.logger.error("Unexpected error processing group %s: %s", group, e)
                    reports.append(GroupReport(group=group, error=f"Unexpected error: {e}"))

        report = RunReport(groups=reports)
        self.logger.log(SUCCESS, "All repositories have been cloned or updated in %s", local_root)
        return report

    def process_group(self, group_path: str) -> GroupReport:
        """Check connectivity, list the group and handle its projects in order."""
        self.logger.info("Processing group: %s", group_path)
        gitlab_config = self.config.gitlab_config_for(group_path)
        report = GroupReport(group=group_path, url=gitlab_config.url)
        self.logger.info("Using GitLab URL: %s", gitlab_config.api_url)

        connector = self.connector_factory(gitlab_config)

        if self.config.skip_connectivity_check:
            self.logger.warning("Skipping connectivity test as requested")
        elif not connector.check_connectivity():
            self.logger.error("Skipping group %s due to connectivity issues", group_path)
            report.error = "connectivity check failed"
            return report

        self.logger.info("Fetching projects for group: %s", group_path)
        try:
            projects = connector.list_group_projects(group_path)
        except ApiError as e:
            self.logger.error("%s", e)
            self._show_troubleshooting_tips()
            report.error = str(e)
            return report

        self.logger.info("Found %d projects in group: %s", len(projects), group_path)

        for entry in projects:
            report.add(self.mirror_project(connector, entry))

        self.logger.info(
            "Group %s done. Cloned: %d, Updated: %d, Skipped: %d, Failed: %d",
            group_path,
            report.cloned,
            report.updated,
            report.skipped,
            report.failed,
        )
        return report

    def mirror_project(self, connector: GitLabConnector, entry: ProjectEntry) -> ProjectOutcome:
        """Clone a project, or reconcile and update its existing local clone."""
        project_path = entry.path_with_namespace
        if not project_path or not entry.http_url_to_repo:
            self.logger.warning("Skipping project with incomplete information: %s", project_path)
            return ProjectOutcome(project_path, ProjectStatus.SKIPPED, "missing repository URL")

        repo_dir = self.project_dir(project_path)
        if not self._is_inside_root(repo_dir):
            self.logger.warning(
                "Skipping %s: path escapes %s", project_path, self.config.local_root
            )
            return ProjectOutcome(project_path, ProjectStatus.SKIPPED, "invalid project path")

        if not self._claim(project_path):
            self.logger.info("Skipping %s: already handled by another group", project_path)
            return ProjectOutcome(
                project_path, ProjectStatus.SKIPPED, "handled by another group"
            )

        self.logger.info("***** Cloning or updating: %s *****", project_path)

        try:
            # Access is probed only for projects not cloned yet
            if not repo_dir.exists():
                if connector.probe_project_access(project_path) == AccessResult.DENIED:
                    self.logger.warning("Skipping %s due to access restrictions", project_path)
                    return ProjectOutcome(
                        project_path, ProjectStatus.SKIPPED, "access denied or not found"
                    )

            if repo_dir.exists():
                if not self.git.is_repository(repo_dir):
                    self.logger.warning(
                        "%s exists but is not a git repository, cleaning up", repo_dir
                    )
                    self.cleanup_repository(repo_dir)
                else:
                    reset = reset_to_default_branch(self.git, repo_dir, log=self.logger)
                    if not reset.success:
                        self.logger.warning(
                            "Failed to reset %s, trying cleanup and fresh clone", project_path
                        )
                        self.cleanup_repository(repo_dir)
                    else:
                        return self._update(project_path, repo_dir)

            return self.clone_project(entry, repo_dir)
        except OSError as e:
            self.logger.error("Filesystem error while handling %s: %s", project_path, e)
            return ProjectOutcome(project_path, ProjectStatus.FAILED, str(e))

    def _update(self, project_path: str, repo_dir: Path) -> ProjectOutcome:
        update = update_repository(self.git, repo_dir, log=self.logger)
        if not update.success:
            return ProjectOutcome(
                project_path, ProjectStatus.FAILED, "could not determine current branch"
            )
        message = f"on {update.branch}"
        if not update.pulled:
            message += ", pull failed"
        return ProjectOutcome(project_path, ProjectStatus.UPDATED, message)

    def clone_project(self, entry: ProjectEntry, repo_dir: Path) -> ProjectOutcome:
        """Clone ``entry`` into ``repo_dir``; a directory it created is removed on failure."""
        project_path = entry.path_with_namespace
        url = entry.https_url
        self.logger.info("Cloning %s from %s", project_path, url)

        created = not repo_dir.exists()
        result = self.git.clone(url, repo_dir)
        if result.ok:
            self.logger.log(SUCCESS, "Successfully cloned %s", project_path)
            return ProjectOutcome(project_path, ProjectStatus.CLONED)

        self.logger.warning(
            "Failed to clone %s - may be due to authentication or network issues", project_path
        )
        if created and repo_dir.exists():
            shutil.rmtree(repo_dir, ignore_errors=True)
        return ProjectOutcome(
            project_path, ProjectStatus.FAILED, result.stderr.strip() or "clone failed"
        )

    def cleanup_repository(self, repo_dir: Path) -> bool:
        """Remove a problematic repository directory so it can be cloned afresh."""
        self.logger.warning("Cleaning up problematic repository: %s", repo_dir)
        if repo_dir.is_dir():
            shutil.rmtree(repo_dir)
            self.logger.info("Removed problematic repository directory: %s", repo_dir)
            return True
        if repo_dir.exists():
            repo_dir.unlink()
            return True
        return False

    def _is_inside_root(self, repo_dir: Path) -> bool:
        root = self.config.local_root.resolve()
        try:
            repo_dir.resolve().relative_to(root)
        except ValueError:
            return False
        return repo_dir.resolve() != root

    def _claim(self, project_path: str) -> bool:
        """Reserve a project for the calling group task; False if already reserved."""
        with self._claims_lock:
            if project_path in self._claimed:
                return False
            self._claimed.add(project_path)
            return True

    def _show_troubleshooting_tips(self) -> None:
        """Log troubleshooting tips once per run, on the first listing failure."""
        with self._tips_lock:
            if self._tips_shown:
                return
            self._tips_shown = True
        for line in TROUBLESHOOTING_TIPS.splitlines():
            self.logger.info("%s", line)
