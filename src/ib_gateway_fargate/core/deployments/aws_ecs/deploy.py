"""Deployment entrypoints for the IB Gateway on ECS."""

import logging
from collections.abc import Callable

from boto3.session import Session

from ib_gateway_fargate.core.deployments.aws_ecs.ecs_service import (
    ensure_cluster,
    ensure_service,
    update_service_task_definition,
)
from ib_gateway_fargate.core.deployments.aws_ecs.errors import ResourceNotFoundError
from ib_gateway_fargate.core.deployments.aws_ecs.iam import ensure_execution_role
from ib_gateway_fargate.core.deployments.aws_ecs.load_balancer import (
    ensure_load_balancer,
    ensure_port_forwarding,
)
from ib_gateway_fargate.core.deployments.aws_ecs.logs import ensure_log_group
from ib_gateway_fargate.core.deployments.aws_ecs.models import (
    EcsDeploymentConfig,
    NetworkingResult,
)
from ib_gateway_fargate.core.deployments.aws_ecs.network import (
    default_vpc_id,
    ensure_elastic_ip,
    select_network,
)
from ib_gateway_fargate.core.deployments.aws_ecs.public_ip import discover_public_ip
from ib_gateway_fargate.core.deployments.aws_ecs.security_groups import (
    ensure_load_balancer_security_group,
    ensure_service_security_group,
    find_security_group,
    rotate_operator_ingress,
)
from ib_gateway_fargate.core.deployments.aws_ecs.session import get_identity
from ib_gateway_fargate.core.deployments.aws_ecs.task_definition import (
    build_task_definition,
    execution_role_arn,
    register_task_definition,
    write_task_definition,
)
from ib_gateway_fargate.core.settings import GatewaySettings

logger = logging.getLogger(__name__)

IpResolver = Callable[[str], str]


def setup_networking(
    session: Session,
    config: EcsDeploymentConfig,
    reporter: Callable[[str], None],
    resolve_ip: IpResolver = discover_public_ip,
) -> NetworkingResult:
    """Find or create the network path from the operator to the gateway.

    Subnet prerequisites are checked before anything is created.
    """
    reporter("Setting up networking with Network Load Balancer...")
    network = select_network(session, reporter)
    elastic_ip = ensure_elastic_ip(session, config.eip_name, reporter)

    reporter("Getting your current IP address...")
    operator_ip = resolve_ip(config.check_ip_url)
    reporter(f"Your current IP: {operator_ip}")

    nlb_group_id = ensure_load_balancer_security_group(
        session,
        network.vpc_id,
        config.nlb_security_group_name,
        config.trading_ports,
        operator_ip,
        reporter,
    )
    fargate_group_id = ensure_service_security_group(
        session,
        network.vpc_id,
        config.fargate_security_group_name,
        config.trading_ports,
        nlb_group_id,
        reporter,
    )
    load_balancer_arn = ensure_load_balancer(
        session,
        config.nlb_name,
        network,
        elastic_ip.allocation_id,
        nlb_group_id,
        reporter,
    )
    target_groups = ensure_port_forwarding(
        session,
        config,
        network.vpc_id,
        load_balancer_arn,
        reporter,
    )

    reporter("Networking setup complete")
    return NetworkingResult(
        network=network,
        elastic_ip=elastic_ip,
        nlb_security_group_id=nlb_group_id,
        fargate_security_group_id=fargate_group_id,
        load_balancer_arn=load_balancer_arn,
        target_groups=target_groups,
    )


def deploy_gateway(
    session: Session,
    config: EcsDeploymentConfig,
    gateway: GatewaySettings,
    reporter: Callable[[str], None],
    verbose: bool = False,
    resolve_ip: IpResolver = discover_public_ip,
) -> NetworkingResult:
    """Deploy the gateway service behind the load balancer.

    Every step reuses what already exists. A failure part-way leaves the
    resources created so far in place; re-running deploy picks them up.
    """
    networking = setup_networking(session, config, reporter, resolve_ip)

    ensure_cluster(session, config.cluster_name, reporter)
    reporter(f"Ensuring log group {config.log_group_name}")
    ensure_log_group(session, config.log_group_name)
    role_arn = ensure_execution_role(session, config.execution_role_name, reporter)

    task_definition_arn = _register(session, config, gateway, role_arn, verbose)
    reporter(f"Registered task definition: {task_definition_arn}")

    ensure_service(
        session,
        config,
        networking.network,
        networking.fargate_security_group_id,
        networking.target_groups,
        reporter,
    )
    return networking


def update_gateway(
    session: Session,
    config: EcsDeploymentConfig,
    gateway: GatewaySettings,
    reporter: Callable[[str], None],
    verbose: bool = False,
) -> str:
    """Register a new task definition revision and move the service onto it."""
    account_id = get_identity(session)["Account"]
    role_arn = execution_role_arn(account_id, config.execution_role_name)

    task_definition_arn = _register(session, config, gateway, role_arn, verbose)
    reporter(f"Registered task definition: {task_definition_arn}")
    update_service_task_definition(session, config)
    return task_definition_arn


def rotate_access(
    session: Session,
    config: EcsDeploymentConfig,
    reporter: Callable[[str], None],
    resolve_ip: IpResolver = discover_public_ip,
) -> str:
    """Restrict the load balancer group to the operator's current IP.

    Returns:
        The operator IP that now has access.

    Raises:
        ResourceNotFoundError: If the load balancer group was never deployed.
    """
    operator_ip = resolve_ip(config.check_ip_url)
    reporter(f"Your current IP: {operator_ip}")

    vpc_id = default_vpc_id(session)
    group_id = find_security_group(session, config.nlb_security_group_name, vpc_id)
    if group_id is None:
        raise ResourceNotFoundError("NLB security group not found. Deploy first with 'deploy'.")

    reporter(f"NLB Security Group ID: {group_id}")
    rotate_operator_ingress(session, group_id, config.trading_ports, operator_ip, reporter)
    return operator_ip


def _register(
    session: Session,
    config: EcsDeploymentConfig,
    gateway: GatewaySettings,
    role_arn: str,
    verbose: bool,
) -> str:
    """Render, write, and register the task definition."""
    document = build_task_definition(config, gateway, role_arn, verbose)
    path = write_task_definition(document, config.task_definition_path)
    return register_task_definition(session, path)
