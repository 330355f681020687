"""
Network diagnostics used when the GitLab API cannot be reached.
"""

import logging
import socket
from typing import Optional
from urllib.parse import urlparse

from gitlab_local_mirror.core.log import SUCCESS

logger = logging.getLogger(__name__)


def hostname_from_url(url: str) -> str:
    """Extract the hostname from a URL (``https://host:port/path`` -> ``host``)."""
    parsed = urlparse(url if "//" in url else f"//{url}")
    return parsed.hostname or ""


def probe_host(
    hostname: str, port: int = 443, timeout: float = 5, log: Optional[logging.Logger] = None
) -> bool:
    """
    Check DNS resolution and basic TCP reachability of ``hostname``.

    Only used for diagnostics: the result is logged and returned, never raised.

    Args:
        hostname: Host to test
        port: TCP port to connect to
        timeout: Connect timeout in seconds
        log: Logger receiving the diagnostics

    Returns:
        True if the host resolves and accepts a connection
    """
    log = log or logger
    log.info("Testing basic network connectivity to %s", hostname)

    try:
        socket.getaddrinfo(hostname, port)
    except (socket.gaierror, UnicodeError) as e:
        log.warning("DNS resolution failed for %s: %s", hostname, e)
        return False

    try:
        with socket.create_connection((hostname, port), timeout=timeout):
            pass
    except OSError as e:
        log.warning("Basic network connectivity to %s failed: %s", hostname, e)
        return False

    log.log(SUCCESS, "Basic network connectivity to %s is working", hostname)
    return True
