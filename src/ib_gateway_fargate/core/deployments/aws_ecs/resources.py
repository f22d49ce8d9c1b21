"""Generic find-or-create helper shared by every named resource."""

import logging
from collections.abc import Callable

from ib_gateway_fargate.core.deployments.aws_ecs.models import EnsureResult

logger = logging.getLogger(__name__)


def ensure_resource(
    kind: str,
    lookup: Callable[[], str | None],
    create: Callable[[], str],
    reporter: Callable[[str], None],
) -> EnsureResult:
    """Reuse a resource found by `lookup`, or create it.

    The lookup is always performed first. An empty result means the resource
    does not exist yet.

    Args:
        kind: Human-readable resource kind used in progress messages.
        lookup: Returns the identifier of the existing resource, or None.
        create: Creates the resource and returns its identifier.
        reporter: Progress callback.

    Returns:
        The identifier and whether it was created by this call.
    """
    existing = lookup()
    if existing:
        logger.info("Reusing %s %s", kind, existing)
        reporter(f"Using existing {kind}: {existing}")
        return EnsureResult(identifier=existing, created=False)

    reporter(f"Creating {kind}")
    identifier = create()
    logger.info("Created %s %s", kind, identifier)
    reporter(f"Created {kind}: {identifier}")
    return EnsureResult(identifier=identifier, created=True)
