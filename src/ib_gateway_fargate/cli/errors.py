"""Error rendering for remote deployment commands."""

from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
    ProfileNotFound,
)

from ib_gateway_fargate.cli.ui import console
from ib_gateway_fargate.core.deployments.aws_ecs import (
    GatewayCredentialsError,
    PrerequisiteError,
    PublicIpError,
    ResourceNotFoundError,
    ServiceNotStableError,
)

AUTH_ERROR_CODES = frozenset(
    {
        "ExpiredToken",
        "ExpiredTokenException",
        "UnrecognizedClientException",
        "InvalidClientTokenId",
        "InvalidSignatureException",
    }
)

PERMISSION_ERROR_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "UnauthorizedOperation",
    }
)


def report_remote_error(exc: Exception) -> None:
    """Render remote deployment errors with actionable guidance.

    Args:
        exc: Raised exception from a remote deployment action.
    """
    if is_aws_auth_error(exc):
        console.print(
            "[red]AWS authentication failed. Your credentials are missing, invalid, "
            "or expired.[/red]"
        )
        console.print(
            "[dim]If using AWS profile/SSO, run: aws sso login --profile <profile>. "
            "If using temporary keys, refresh AWS_SESSION_TOKEN and retry.[/dim]"
        )
        return

    denied = denied_operation(exc)
    if denied is not None:
        console.print(f"[red]AWS denied {denied}: {exc}[/red]")
        console.print(
            "[dim]The deploying identity needs ec2, elasticloadbalancing, ecs, logs "
            "and iam permissions, plus iam:PassRole on the task execution role.[/dim]"
        )
        return

    if is_aws_endpoint_error(exc):
        console.print("[red]Could not reach AWS endpoint from this environment.[/red]")
        console.print("[dim]Check network connectivity and AWS region configuration.[/dim]")
        return

    if isinstance(exc, GatewayCredentialsError):
        console.print(f"[red]Missing prerequisite: {exc}[/red]")
        console.print(
            "[dim]Add them to ./.env or to the file passed with --env-file, "
            "then run the command again.[/dim]"
        )
        return

    if isinstance(exc, PrerequisiteError):
        console.print(f"[red]Missing prerequisite: {exc}[/red]")
        console.print(
            "[dim]The gateway runs in the default VPC of the configured region. "
            "Create one with: aws ec2 create-default-vpc[/dim]"
        )
        return

    if isinstance(exc, PublicIpError):
        console.print(f"[red]{exc}[/red]")
        console.print(
            "[dim]Load balancer access is limited to your public IP, so it must be known. "
            "Check your connection or point IBGW_CHECK_IP_URL at another service.[/dim]"
        )
        return

    if isinstance(exc, ServiceNotStableError):
        console.print(f"[red]{exc}[/red]")
        console.print(
            "[dim]Run 'logs' to see why the gateway task is not starting. "
            "Wrong TWS credentials are the usual cause.[/dim]"
        )
        return

    if isinstance(exc, ResourceNotFoundError):
        console.print(f"[red]{exc}[/red]")
        console.print("[dim]Run 'status' to see which resources exist.[/dim]")
        return

    console.print(f"[red]Remote deployment failed: {exc}[/red]")
    console.print(
        "[dim]Deploy reuses what already exists, so it is safe to run 'deploy' again "
        "once the problem is fixed.[/dim]"
    )


def is_aws_auth_error(exc: Exception) -> bool:
    """Return true when an exception chain indicates AWS auth issues.

    Args:
        exc: Raised exception from a remote deployment action.

    Returns:
        True when the chain contains an auth-related error.
    """
    for item in exception_chain(exc):
        if isinstance(item, (NoCredentialsError, ProfileNotFound)):
            return True
        if isinstance(item, ClientError):
            code = str(item.response.get("Error", {}).get("Code", ""))
            if code in AUTH_ERROR_CODES:
                return True
        text = str(item)
        if "security token included in the request is expired" in text.lower():
            return True
    return False


def denied_operation(exc: Exception) -> str | None:
    """Return the AWS operation that was refused for lack of permission.

    Args:
        exc: Raised exception from a remote deployment action.

    Returns:
        The operation name, or None when no permission error is in the chain.
    """
    for item in exception_chain(exc):
        if isinstance(item, ClientError):
            code = str(item.response.get("Error", {}).get("Code", ""))
            if code in PERMISSION_ERROR_CODES:
                return item.operation_name
    return None


def is_aws_endpoint_error(exc: Exception) -> bool:
    """Return true when an exception chain indicates endpoint/network errors."""
    return any(isinstance(item, EndpointConnectionError) for item in exception_chain(exc))


def exception_chain(exc: BaseException) -> list[BaseException]:
    """Return exceptions in cause/context chain, starting at `exc`."""
    chain: list[BaseException] = []
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        chain.append(current)
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return chain
