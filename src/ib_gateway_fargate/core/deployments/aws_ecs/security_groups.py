"""Security group management for the load balancer and Fargate tasks."""

import logging
from collections.abc import Callable
from typing import Any, cast

from boto3.session import Session
from botocore.exceptions import ClientError

from ib_gateway_fargate.core.deployments.aws_ecs.errors import (
    DeploymentError,
    is_already_absent,
    is_already_exists,
)
from ib_gateway_fargate.core.deployments.aws_ecs.resources import ensure_resource

logger = logging.getLogger(__name__)

WILDCARD_CIDR = "0.0.0.0/0"
NLB_GROUP_DESCRIPTION = "IB Gateway NLB Security Group - Restricted Access"
FARGATE_GROUP_DESCRIPTION = "IB Gateway Fargate Security Group - NLB traffic only"


def find_security_group(session: Session, name: str, vpc_id: str | None = None) -> str | None:
    """Find a security group ID by name, optionally scoped to a VPC."""
    ec2 = session.client("ec2")
    filters = [{"Name": "group-name", "Values": [name]}]
    if vpc_id:
        filters.append({"Name": "vpc-id", "Values": [vpc_id]})
    response = ec2.describe_security_groups(Filters=filters)
    groups = response.get("SecurityGroups", [])
    if not groups:
        return None
    return cast(str, groups[0]["GroupId"])


def ensure_load_balancer_security_group(
    session: Session,
    vpc_id: str,
    name: str,
    ports: list[int],
    operator_ip: str,
    reporter: Callable[[str], None],
) -> str:
    """Ensure the load balancer group that only admits the operator's IP.

    Ingress is only written when the group is created. An existing group is
    left untouched; `rotate_operator_ingress` refreshes it.
    """
    ec2 = session.client("ec2")

    def create() -> str:
        group_id = _create_group(ec2, vpc_id, name, NLB_GROUP_DESCRIPTION)
        for port in ports:
            _authorize_cidr(ec2, group_id, port, f"{operator_ip}/32")
        reporter(f"Restricted {name} to {operator_ip}")
        return group_id

    result = ensure_resource(
        "NLB security group",
        lambda: find_security_group(session, name, vpc_id),
        create,
        reporter,
    )
    if not result.created:
        reporter("Use 'update-ip' to update IP restrictions")
    return result.identifier


def ensure_service_security_group(
    session: Session,
    vpc_id: str,
    name: str,
    ports: list[int],
    source_group_id: str,
    reporter: Callable[[str], None],
) -> str:
    """Ensure the Fargate group that only admits traffic from the load balancer group."""
    ec2 = session.client("ec2")

    def create() -> str:
        group_id = _create_group(ec2, vpc_id, name, FARGATE_GROUP_DESCRIPTION)
        for port in ports:
            _authorize_source_group(ec2, group_id, port, source_group_id)
        return group_id

    result = ensure_resource(
        "Fargate security group",
        lambda: find_security_group(session, name, vpc_id),
        create,
        reporter,
    )
    return result.identifier


def rotate_operator_ingress(
    session: Session,
    group_id: str,
    ports: list[int],
    operator_ip: str,
    reporter: Callable[[str], None],
) -> list[str]:
    """Replace every allowed operator CIDR on the trading ports with a new IP.

    Wildcard rules are never touched. Revocation and authorisation are
    separate calls, so there is a short window in which no operator CIDR is
    allowed.

    Returns:
        The CIDRs that were revoked.
    """
    ec2 = session.client("ec2")
    new_cidr = f"{operator_ip}/32"

    revoked: list[str] = []
    for cidr in ingress_cidrs(session, group_id, ports):
        if cidr in {WILDCARD_CIDR, new_cidr}:
            continue
        reporter(f"Removing rule for {cidr}")
        for port in ports:
            _revoke_cidr(ec2, group_id, port, cidr)
        revoked.append(cidr)

    reporter(f"Adding rules for your current IP: {new_cidr}")
    for port in ports:
        _authorize_cidr(ec2, group_id, port, new_cidr)
    return revoked


def ingress_cidrs(session: Session, group_id: str, ports: list[int]) -> list[str]:
    """Return the CIDRs allowed on any of the given TCP ports."""
    ec2 = session.client("ec2")
    try:
        response = ec2.describe_security_groups(GroupIds=[group_id])
    except ClientError as exc:
        raise DeploymentError(f"Failed to read security group {group_id}: {exc}") from exc

    cidrs: list[str] = []
    for group in response.get("SecurityGroups", []):
        for permission in group.get("IpPermissions", []):
            if permission.get("IpProtocol") != "tcp" or permission.get("FromPort") not in ports:
                continue
            for ip_range in permission.get("IpRanges", []):
                cidr = ip_range.get("CidrIp")
                if cidr and cidr not in cidrs:
                    cidrs.append(cidr)
    return cidrs


def delete_security_group(session: Session, name: str, reporter: Callable[[str], None]) -> None:
    """Delete a security group by name if it exists."""
    ec2 = session.client("ec2")
    group_id = find_security_group(session, name)
    if group_id is None:
        return

    reporter(f"Deleting security group {name}: {group_id}")
    try:
        ec2.delete_security_group(GroupId=group_id)
    except ClientError as exc:
        if not is_already_absent(exc):
            raise DeploymentError(f"Failed to delete security group {group_id}: {exc}") from exc


def _create_group(ec2: Any, vpc_id: str, name: str, description: str) -> str:
    """Create a security group and tag it with its name."""
    try:
        response = ec2.create_security_group(
            VpcId=vpc_id,
            GroupName=name,
            Description=description,
        )
    except ClientError as exc:
        raise DeploymentError(f"Failed to create security group {name}: {exc}") from exc

    group_id = cast(str, response["GroupId"])
    ec2.create_tags(Resources=[group_id], Tags=[{"Key": "Name", "Value": name}])
    return group_id


def _authorize_cidr(ec2: Any, group_id: str, port: int, cidr: str) -> None:
    """Allow TCP traffic on a port from a CIDR."""
    permission = {
        "IpProtocol": "tcp",
        "FromPort": port,
        "ToPort": port,
        "IpRanges": [{"CidrIp": cidr}],
    }
    _authorize(ec2, group_id, permission)


def _authorize_source_group(ec2: Any, group_id: str, port: int, source_group_id: str) -> None:
    """Allow TCP traffic on a port from members of another security group."""
    permission = {
        "IpProtocol": "tcp",
        "FromPort": port,
        "ToPort": port,
        "UserIdGroupPairs": [{"GroupId": source_group_id}],
    }
    _authorize(ec2, group_id, permission)


def _authorize(ec2: Any, group_id: str, permission: dict[str, Any]) -> None:
    try:
        ec2.authorize_security_group_ingress(GroupId=group_id, IpPermissions=[permission])
    except ClientError as exc:
        if is_already_exists(exc):
            logger.info("Ingress rule on port %s already exists", permission["FromPort"])
            return
        raise DeploymentError(f"Failed to authorize ingress on {group_id}: {exc}") from exc


def _revoke_cidr(ec2: Any, group_id: str, port: int, cidr: str) -> None:
    """Revoke a CIDR rule on a port, ignoring rules that are already gone."""
    try:
        ec2.revoke_security_group_ingress(
            GroupId=group_id,
            IpPermissions=[
                {
                    "IpProtocol": "tcp",
                    "FromPort": port,
                    "ToPort": port,
                    "IpRanges": [{"CidrIp": cidr}],
                }
            ],
        )
    except ClientError as exc:
        if not is_already_absent(exc):
            raise DeploymentError(f"Failed to revoke {cidr} on {group_id}: {exc}") from exc
