"""VPC, subnet, and Elastic IP management for the gateway."""

import logging
from collections.abc import Callable
from typing import Any, cast

from boto3.session import Session
from botocore.exceptions import ClientError

from ib_gateway_fargate.core.deployments.aws_ecs.errors import (
    DeploymentError,
    PrerequisiteError,
    is_already_absent,
)
from ib_gateway_fargate.core.deployments.aws_ecs.models import ElasticIp, NetworkSelection
from ib_gateway_fargate.core.deployments.aws_ecs.resources import ensure_resource

logger = logging.getLogger(__name__)

MIN_PUBLIC_SUBNETS = 2


def select_network(session: Session, reporter: Callable[[str], None]) -> NetworkSelection:
    """Select the default VPC and its public subnets.

    Raises:
        PrerequisiteError: If there is no default VPC or fewer than two
            public subnets for the load balancer.
    """
    ec2 = session.client("ec2")
    vpc_id = default_vpc_id(session)
    reporter(f"Using VPC: {vpc_id}")

    subnet_ids = _public_subnet_ids(ec2, vpc_id)
    if len(subnet_ids) < MIN_PUBLIC_SUBNETS:
        raise PrerequisiteError(
            f"Need at least {MIN_PUBLIC_SUBNETS} public subnets for the load balancer. "
            f"Found: {len(subnet_ids)}"
        )

    network = NetworkSelection(vpc_id=vpc_id, public_subnet_ids=subnet_ids)
    reporter(f"Using public subnet for Fargate: {network.service_subnet_id}")
    return network


def default_vpc_id(session: Session) -> str:
    """Return the ID of the account's default VPC."""
    ec2 = session.client("ec2")
    response = ec2.describe_vpcs(Filters=[{"Name": "is-default", "Values": ["true"]}])
    vpcs = response.get("Vpcs", [])
    if not vpcs:
        raise PrerequisiteError("No default VPC found in this region.")
    return cast(str, vpcs[0]["VpcId"])


def find_elastic_ip(session: Session, name: str) -> ElasticIp | None:
    """Find the Elastic IP tagged with the given name."""
    ec2 = session.client("ec2")
    response = ec2.describe_addresses(Filters=[{"Name": "tag:Name", "Values": [name]}])
    addresses = response.get("Addresses", [])
    if not addresses:
        return None
    address = addresses[0]
    return ElasticIp(
        allocation_id=str(address["AllocationId"]),
        public_ip=str(address.get("PublicIp", "")),
    )


def ensure_elastic_ip(
    session: Session,
    name: str,
    reporter: Callable[[str], None],
) -> ElasticIp:
    """Reuse the named Elastic IP, or allocate and tag a new one."""
    ec2 = session.client("ec2")

    def lookup() -> str | None:
        existing = find_elastic_ip(session, name)
        return existing.allocation_id if existing else None

    def create() -> str:
        allocation_id = cast(str, ec2.allocate_address(Domain="vpc")["AllocationId"])
        _tag_resource(ec2, allocation_id, name)
        return allocation_id

    result = ensure_resource("Elastic IP", lookup, create, reporter)
    elastic_ip = ElasticIp(
        allocation_id=result.identifier,
        public_ip=_public_ip(ec2, result.identifier),
    )
    reporter(f"Elastic IP address: {elastic_ip.public_ip}")
    return elastic_ip


def release_elastic_ip(session: Session, name: str, reporter: Callable[[str], None]) -> None:
    """Release the named Elastic IP if it exists."""
    ec2 = session.client("ec2")
    elastic_ip = find_elastic_ip(session, name)
    if elastic_ip is None:
        return

    reporter(f"Releasing Elastic IP: {elastic_ip.public_ip} ({elastic_ip.allocation_id})")
    try:
        ec2.release_address(AllocationId=elastic_ip.allocation_id)
    except ClientError as exc:
        if not is_already_absent(exc):
            raise DeploymentError(
                f"Failed to release Elastic IP {elastic_ip.allocation_id}: {exc}"
            ) from exc


def _public_subnet_ids(ec2: Any, vpc_id: str) -> list[str]:
    """List subnets of a VPC that map public IPs on launch."""
    response = ec2.describe_subnets(
        Filters=[
            {"Name": "vpc-id", "Values": [vpc_id]},
            {"Name": "map-public-ip-on-launch", "Values": ["true"]},
        ]
    )
    return [str(subnet["SubnetId"]) for subnet in response.get("Subnets", [])]


def _public_ip(ec2: Any, allocation_id: str) -> str:
    """Return the public address of an allocation."""
    try:
        response = ec2.describe_addresses(AllocationIds=[allocation_id])
    except ClientError as exc:
        raise DeploymentError(f"Failed to read Elastic IP {allocation_id}: {exc}") from exc
    addresses = response.get("Addresses", [])
    if not addresses:
        raise DeploymentError(f"Elastic IP {allocation_id} was not found.")
    return str(addresses[0]["PublicIp"])


def _tag_resource(ec2: Any, resource_id: str, name: str) -> None:
    """Apply a Name tag to a resource."""
    ec2.create_tags(Resources=[resource_id], Tags=[{"Key": "Name", "Value": name}])
