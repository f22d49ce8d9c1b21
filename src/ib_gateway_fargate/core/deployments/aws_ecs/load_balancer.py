"""Network load balancer, target group, and listener helpers."""

import logging
from collections.abc import Callable
from typing import Any, cast

from boto3.session import Session
from botocore.exceptions import ClientError, WaiterError

from ib_gateway_fargate.core.deployments.aws_ecs.errors import (
    DeploymentError,
    is_already_absent,
)
from ib_gateway_fargate.core.deployments.aws_ecs.models import (
    EcsDeploymentConfig,
    NetworkSelection,
    TargetGroupBinding,
)
from ib_gateway_fargate.core.deployments.aws_ecs.resources import ensure_resource

logger = logging.getLogger(__name__)

HEALTH_CHECK_INTERVAL_SECONDS = 30
HEALTH_CHECK_THRESHOLD = 2


def find_load_balancer(session: Session, name: str) -> str | None:
    """Return the ARN of the named load balancer, or None."""
    elbv2 = session.client("elbv2")
    try:
        response = elbv2.describe_load_balancers(Names=[name])
    except ClientError as exc:
        if is_already_absent(exc):
            return None
        raise DeploymentError(f"Failed to read load balancer {name}: {exc}") from exc
    load_balancers = response.get("LoadBalancers", [])
    if not load_balancers:
        return None
    return cast(str, load_balancers[0]["LoadBalancerArn"])


def ensure_load_balancer(
    session: Session,
    name: str,
    network: NetworkSelection,
    allocation_id: str,
    security_group_id: str,
    reporter: Callable[[str], None],
) -> str:
    """Ensure the internet-facing network load balancer exists.

    The Elastic IP is bound to the first public subnet; the other subnets are
    attached without a fixed address.
    """
    elbv2 = session.client("elbv2")

    def create() -> str:
        response = elbv2.create_load_balancer(
            Name=name,
            Scheme="internet-facing",
            Type="network",
            SubnetMappings=_subnet_mappings(network, allocation_id),
            SecurityGroups=[security_group_id],
            Tags=[{"Key": "Name", "Value": name}],
        )
        arn = cast(str, response["LoadBalancers"][0]["LoadBalancerArn"])
        reporter("Waiting for NLB to become active...")
        elbv2.get_waiter("load_balancer_available").wait(LoadBalancerArns=[arn])
        return arn

    result = ensure_resource(
        "Network Load Balancer",
        lambda: find_load_balancer(session, name),
        create,
        reporter,
    )
    return result.identifier


def find_target_group(session: Session, name: str) -> str | None:
    """Return the ARN of the named target group, or None."""
    elbv2 = session.client("elbv2")
    try:
        response = elbv2.describe_target_groups(Names=[name])
    except ClientError as exc:
        if is_already_absent(exc):
            return None
        raise DeploymentError(f"Failed to read target group {name}: {exc}") from exc
    groups = response.get("TargetGroups", [])
    if not groups:
        return None
    return cast(str, groups[0]["TargetGroupArn"])


def ensure_target_group(
    session: Session,
    config: EcsDeploymentConfig,
    vpc_id: str,
    port: int,
    reporter: Callable[[str], None],
) -> str:
    """Ensure a TCP target group with IP targets for one trading port."""
    elbv2 = session.client("elbv2")
    name = config.target_group_name(port)

    def create() -> str:
        response = elbv2.create_target_group(
            Name=name,
            Protocol="TCP",
            Port=port,
            VpcId=vpc_id,
            TargetType="ip",
            HealthCheckProtocol="TCP",
            HealthCheckPort=str(port),
            HealthCheckIntervalSeconds=HEALTH_CHECK_INTERVAL_SECONDS,
            HealthyThresholdCount=HEALTH_CHECK_THRESHOLD,
            UnhealthyThresholdCount=HEALTH_CHECK_THRESHOLD,
            Tags=[{"Key": "Name", "Value": name}],
        )
        return cast(str, response["TargetGroups"][0]["TargetGroupArn"])

    result = ensure_resource(
        f"target group for port {port}",
        lambda: find_target_group(session, name),
        create,
        reporter,
    )
    return result.identifier


def find_listener(session: Session, load_balancer_arn: str, port: int) -> str | None:
    """Return the ARN of the listener on a port, or None."""
    elbv2 = session.client("elbv2")
    response = elbv2.describe_listeners(LoadBalancerArn=load_balancer_arn)
    for listener in response.get("Listeners", []):
        if listener.get("Port") == port:
            return cast(str, listener["ListenerArn"])
    return None


def ensure_listener(
    session: Session,
    load_balancer_arn: str,
    port: int,
    target_group_arn: str,
    reporter: Callable[[str], None],
) -> str:
    """Ensure a TCP listener forwarding a port to its target group."""
    elbv2 = session.client("elbv2")

    def create() -> str:
        response = elbv2.create_listener(
            LoadBalancerArn=load_balancer_arn,
            Protocol="TCP",
            Port=port,
            DefaultActions=[{"Type": "forward", "TargetGroupArn": target_group_arn}],
        )
        return cast(str, response["Listeners"][0]["ListenerArn"])

    result = ensure_resource(
        f"listener for port {port}",
        lambda: find_listener(session, load_balancer_arn, port),
        create,
        reporter,
    )
    return result.identifier


def ensure_port_forwarding(
    session: Session,
    config: EcsDeploymentConfig,
    vpc_id: str,
    load_balancer_arn: str,
    reporter: Callable[[str], None],
) -> list[TargetGroupBinding]:
    """Ensure a target group and listener for every trading port."""
    bindings = []
    for port in config.trading_ports:
        target_group_arn = ensure_target_group(session, config, vpc_id, port, reporter)
        ensure_listener(session, load_balancer_arn, port, target_group_arn, reporter)
        bindings.append(TargetGroupBinding(port=port, target_group_arn=target_group_arn))
    return bindings


def delete_load_balancer(session: Session, name: str, reporter: Callable[[str], None]) -> None:
    """Delete the named load balancer and wait until it is gone."""
    elbv2 = session.client("elbv2")
    arn = find_load_balancer(session, name)
    if arn is None:
        return

    reporter(f"Deleting Network Load Balancer: {arn}")
    try:
        elbv2.delete_load_balancer(LoadBalancerArn=arn)
    except ClientError as exc:
        if not is_already_absent(exc):
            raise DeploymentError(f"Failed to delete load balancer: {exc}") from exc
        return

    reporter("Waiting for NLB to be deleted...")
    try:
        elbv2.get_waiter("load_balancer_not_exists").wait(LoadBalancerArns=[arn])
    except WaiterError as exc:
        raise DeploymentError(f"Gave up waiting for load balancer deletion: {exc}") from exc


def delete_target_group(session: Session, name: str, reporter: Callable[[str], None]) -> None:
    """Delete the named target group if it exists."""
    elbv2 = session.client("elbv2")
    arn = find_target_group(session, name)
    if arn is None:
        return

    reporter(f"Deleting target group {name}: {arn}")
    try:
        elbv2.delete_target_group(TargetGroupArn=arn)
    except ClientError as exc:
        if not is_already_absent(exc):
            raise DeploymentError(f"Failed to delete target group {name}: {exc}") from exc


def _subnet_mappings(network: NetworkSelection, allocation_id: str) -> list[dict[str, Any]]:
    """Bind the Elastic IP to the first subnet and attach the rest plainly."""
    mappings: list[dict[str, Any]] = []
    for index, subnet_id in enumerate(network.public_subnet_ids):
        if index == 0:
            mappings.append({"SubnetId": subnet_id, "AllocationId": allocation_id})
        else:
            mappings.append({"SubnetId": subnet_id})
    return mappings
