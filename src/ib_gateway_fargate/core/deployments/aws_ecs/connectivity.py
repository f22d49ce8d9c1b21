"""Direct TCP reachability checks for the public gateway endpoints."""

import logging
import socket

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 5.0


def probe_port(host: str, port: int, timeout: float = PROBE_TIMEOUT_SECONDS) -> bool:
    """Return true when a TCP connection to host:port succeeds within the timeout."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError as exc:
        logger.info("TCP probe of %s:%s failed: %s", host, port, exc)
        return False


def probe_endpoints(
    host: str,
    ports: list[int],
    timeout: float = PROBE_TIMEOUT_SECONDS,
) -> dict[int, bool]:
    """Probe every port on a host."""
    return {port: probe_port(host, port, timeout) for port in ports}
