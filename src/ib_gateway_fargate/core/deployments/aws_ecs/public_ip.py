"""Operator public IP discovery."""

import ipaddress
import logging

import httpx

from ib_gateway_fargate.core.deployments.aws_ecs.errors import PublicIpError

logger = logging.getLogger(__name__)


def discover_public_ip(url: str, timeout: float = 10.0) -> str:
    """Return the caller's public IPv4 address as seen by an external service.

    Args:
        url: Endpoint that answers with the caller's address as plain text.
        timeout: Request timeout in seconds.

    Returns:
        The public IP address.

    Raises:
        PublicIpError: If the service cannot be reached or answers with
            something that is not an IPv4 address.
    """
    try:
        response = httpx.get(url, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise PublicIpError(f"Failed to get current IP address: {exc}") from exc

    text = response.text.strip()
    try:
        address = ipaddress.IPv4Address(text)
    except ValueError as exc:
        raise PublicIpError(f"Failed to get current IP address: got {text!r}") from exc

    logger.info("Discovered operator public IP %s", address)
    return str(address)
