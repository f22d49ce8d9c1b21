"""Error types and AWS error classification for ECS deployment."""

from botocore.exceptions import ClientError

ALREADY_EXISTS_CODES = frozenset(
    {
        "ResourceAlreadyExistsException",
        "InvalidGroup.Duplicate",
        "InvalidPermission.Duplicate",
        "DuplicateLoadBalancerName",
        "DuplicateTargetGroupName",
        "DuplicateListener",
        "EntityAlreadyExists",
    }
)

ALREADY_ABSENT_CODES = frozenset(
    {
        "ResourceNotFoundException",
        "ClusterNotFoundException",
        "ServiceNotFoundException",
        "ServiceNotActiveException",
        "LoadBalancerNotFound",
        "TargetGroupNotFound",
        "ListenerNotFound",
        "InvalidGroup.NotFound",
        "InvalidPermission.NotFound",
        "InvalidAllocationID.NotFound",
        "NoSuchEntity",
    }
)


class DeploymentError(RuntimeError):
    """Unexpected failure while managing deployment resources."""


class PrerequisiteError(DeploymentError):
    """A required account prerequisite is missing."""


class ResourceNotFoundError(DeploymentError):
    """A resource that should have been deployed does not exist."""


class GatewayCredentialsError(PrerequisiteError):
    """The IBKR login is not configured."""


class PublicIpError(DeploymentError):
    """The operator's public IP could not be determined."""


class ServiceNotStableError(DeploymentError):
    """The service did not reach a steady state in time."""


def error_code(exc: ClientError) -> str:
    """Return the AWS error code of a client error."""
    return str(exc.response.get("Error", {}).get("Code", ""))


def is_already_exists(exc: ClientError) -> bool:
    """Return true when a create call failed because the resource exists."""
    return error_code(exc) in ALREADY_EXISTS_CODES


def is_already_absent(exc: ClientError) -> bool:
    """Return true when a call failed because the resource is gone."""
    return error_code(exc) in ALREADY_ABSENT_CODES
