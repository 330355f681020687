"""
Configuration module for the GitLab local mirror project.

This module provides configuration classes and validation for the project.
It uses Pydantic for configuration validation and dotenv for loading
environment variables.
"""

import csv
import logging
import os
import re
from pathlib import Path
from typing import List, Optional

import gitlab
import pandas as pd
from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr, field_validator

from gitlab_local_mirror.core.exceptions import ConfigError

# Configure logging
logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()

DEFAULT_GITLAB_URL = "https://gitlab.com"
DEFAULT_LOCAL_ROOT = Path.home() / "gitlab-repos"
TRUE_VALUES = ("true", "yes", "1", "y")


def normalize_gitlab_url(url: str) -> str:
    """Strip trailing slashes and an ``/api/v4`` suffix from a GitLab URL."""
    url = url.strip().rstrip("/")
    if url.endswith("/api/v4"):
        url = url[: -len("/api/v4")]
    return url


def _validate_http_url(v: str) -> str:
    if not v.startswith(("http://", "https://")):
        raise ValueError("URL must start with http:// or https://")
    return normalize_gitlab_url(v)


class TimeoutConfig(BaseModel):
    """Timeouts (in seconds) for API calls and git operations."""

    connectivity_connect: float = 10
    connectivity_max: float = 30
    connectivity_retries: int = 1
    listing_connect: float = 10
    listing_max: float = 60
    listing_retries: int = 2
    probe_connect: float = 5
    probe_max: float = 15
    clone: float = 120
    git_fetch: float = 60
    git_pull: float = 60
    git_default: float = 30
    git_show_ref: float = 10
    network_probe: float = 5


class EndpointRoute(BaseModel):
    """Routes group paths matching ``pattern`` to the GitLab instance at ``url``."""

    pattern: str
    url: str

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v):
        """Validates that the pattern is a usable regular expression."""
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid route pattern {v!r}: {e}") from e
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        """Validates URL."""
        return _validate_http_url(v)

    def matches(self, path: str) -> bool:
        return re.search(self.pattern, path) is not None


class GitLabConfig(BaseModel):
    """Configuration for GitLab connection with validation."""

    url: str
    token: SecretStr

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        """Validates URL."""
        return _validate_http_url(v)

    @property
    def api_url(self) -> str:
        return f"{self.url}/api/v4"

    def get_client(self) -> gitlab.Gitlab:
        """Creates and returns a GitLab client."""
        return gitlab.Gitlab(
            url=self.url,
            private_token=self.token.get_secret_value(),
            retry_transient_errors=True,
        )


class MirrorConfig(BaseModel):
    """Overall configuration for the local mirroring process."""

    groups: List[str]
    token: SecretStr
    local_root: Path = DEFAULT_LOCAL_ROOT
    default_url: str = DEFAULT_GITLAB_URL
    routes: List[EndpointRoute] = Field(default_factory=list)
    skip_connectivity_check: bool = False
    skip_credentials_check: bool = False
    max_workers: Optional[int] = None
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    report_file: Optional[Path] = None

    @field_validator("groups")
    @classmethod
    def validate_groups(cls, v):
        """Strips slashes, drops blanks and duplicates, keeps order."""
        groups = []
        for group in v:
            group = group.strip().strip("/")
            if group and group not in groups:
                groups.append(group)
        if not groups:
            raise ValueError("At least one group path is required")
        return groups

    @field_validator("token")
    @classmethod
    def validate_token(cls, v):
        """Rejects an empty token."""
        if not v.get_secret_value().strip():
            raise ValueError("GitLab token must not be empty")
        return v

    @field_validator("default_url")
    @classmethod
    def validate_default_url(cls, v):
        """Validates URL."""
        return _validate_http_url(v)

    @field_validator("local_root")
    @classmethod
    def validate_local_root(cls, v):
        """Expands ``~`` in the local root."""
        return Path(v).expanduser()

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v):
        if v is not None and v < 1:
            raise ValueError("max_workers must be at least 1")
        return v

    def resolve_url(self, path: str) -> str:
        """Return the GitLab base URL serving ``path``; first matching route wins."""
        for route in self.routes:
            if route.matches(path):
                return route.url
        return self.default_url

    def gitlab_config_for(self, path: str) -> GitLabConfig:
        """Build the connection settings for the instance serving ``path``."""
        return GitLabConfig(url=self.resolve_url(path), token=self.token)

    @property
    def hosts(self) -> List[str]:
        """Hostnames of every configured GitLab instance."""
        urls = [self.default_url] + [route.url for route in self.routes]
        hosts = []
        for url in urls:
            host = url.split("//", 1)[-1].split("/", 1)[0]
            if host not in hosts:
                hosts.append(host)
        return hosts


def get_env_variable(name: str, required: bool = False) -> Optional[str]:
    """
    Retrieve environment variable. Exit if required and missing.

    Args:
        name: Name of the environment variable
        required: Whether the variable is required

    Returns:
        Value of the environment variable or None if not required and not found

    Raises:
        ConfigError: If the variable is required but not found
    """
    value = os.getenv(name)

    if required and not value:
        logger.error("Missing required environment variable: %s", name)
        raise ConfigError(f"Missing required environment variable: {name}")

    return value


def get_env_bool(name: str, default: bool = False) -> bool:
    """Interpret an environment variable as a boolean flag."""
    value = get_env_variable(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in TRUE_VALUES


def parse_routes(value: Optional[str]) -> List[EndpointRoute]:
    """
    Parse routing rules of the form ``pattern=url[,pattern=url...]``.

    Raises:
        ConfigError: If a rule is malformed
    """
    routes = []
    if not value:
        return routes

    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        pattern, sep, url = item.partition("=")
        if not sep or not pattern.strip() or not url.strip():
            raise ConfigError(f"Invalid endpoint route {item!r}, expected PATTERN=URL")
        try:
            routes.append(EndpointRoute(pattern=pattern.strip(), url=url.strip()))
        except ValueError as e:
            raise ConfigError(f"Invalid endpoint route {item!r}: {e}") from e
    return routes


def load_groups_file(groups_file: Path) -> List[str]:
    """
    Load group paths from a CSV file.

    Only the first column is used; empty rows and lines starting with ``#``
    are ignored.

    Raises:
        ConfigError: If the file cannot be read
    """
    groups = []

    try:
        # First try reading with pandas
        try:
            df = pd.read_csv(
                groups_file,
                header=None,
                comment="#",
                skip_blank_lines=True,
                dtype=str,
                keep_default_na=False,
            )

            for _, row in df.iterrows():
                if pd.notna(row[0]) and str(row[0]).strip():
                    groups.append(str(row[0]).strip())

        except pd.errors.EmptyDataError:
            logger.warning("Groups file %s is empty", groups_file)

        # Fallback to manual CSV parsing if pandas fails
        except OSError as pandas_error:
            logger.warning("Pandas parsing failed, fallback to manual CSV: %s", pandas_error)
            with open(groups_file, "r", encoding="utf-8") as file:
                reader = csv.reader(file)
                for row in reader:
                    if row and row[0].strip() and not row[0].lstrip().startswith("#"):
                        groups.append(row[0].strip())

        return groups

    except Exception as e:
        logger.error("Failed to load groups from %s: %s", groups_file, e)
        raise ConfigError(f"Failed to load groups from {groups_file}") from e


def load_config_from_env() -> MirrorConfig:
    """
    Load configuration from environment variables.

    Returns:
        MirrorConfig object with validated configuration

    Raises:
        ConfigError: If any required configuration is missing or invalid
    """
    try:
        token = get_env_variable("GITLAB_TOKEN", required=True)
        groups_str = get_env_variable("GITLAB_GROUPS", required=True)
        default_url = get_env_variable("GITLAB_URL") or DEFAULT_GITLAB_URL
        local_root = get_env_variable("GITLAB_MIRROR_DIR") or str(DEFAULT_LOCAL_ROOT)

        config = MirrorConfig(
            groups=groups_str.split(),
            token=SecretStr(token),
            local_root=Path(local_root),
            default_url=default_url,
            routes=parse_routes(get_env_variable("GITLAB_ENDPOINT_ROUTES")),
            skip_connectivity_check=get_env_bool("GITLAB_SKIP_CONNECTIVITY_TEST"),
            skip_credentials_check=get_env_bool("GITLAB_SKIP_CREDENTIALS_CHECK"),
        )

        return config
    except ConfigError:
        raise
    except ValueError as e:
        logger.error("Configuration validation error: %s", e)
        raise ConfigError(f"Configuration validation error: {e}") from e
    except Exception as e:
        logger.error("Unexpected error loading configuration: %s", e)
        raise ConfigError(f"Unexpected error loading configuration: {e}") from e
