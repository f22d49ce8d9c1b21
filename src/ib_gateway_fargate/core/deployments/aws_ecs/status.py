"""Deployment status checks for ECS."""

from boto3.session import Session
from botocore.exceptions import ClientError

from ib_gateway_fargate.core.deployments.aws_ecs.ecs_service import find_service
from ib_gateway_fargate.core.deployments.aws_ecs.errors import DeploymentError
from ib_gateway_fargate.core.deployments.aws_ecs.load_balancer import (
    find_load_balancer,
    find_target_group,
)
from ib_gateway_fargate.core.deployments.aws_ecs.models import EcsDeploymentConfig
from ib_gateway_fargate.core.deployments.aws_ecs.network import find_elastic_ip
from ib_gateway_fargate.core.deployments.aws_ecs.security_groups import find_security_group

STATUS_KEY_ELASTIC_IP = "Elastic IP"
STATUS_KEY_NLB_SECURITY_GROUP = "NLB security group"
STATUS_KEY_FARGATE_SECURITY_GROUP = "Fargate security group"
STATUS_KEY_LOAD_BALANCER = "Network Load Balancer"
STATUS_KEY_TARGET_GROUPS = "Target groups"
STATUS_KEY_LOG_GROUP = "Log group"
STATUS_KEY_ECS_CLUSTER = "ECS cluster"
STATUS_KEY_ECS_SERVICE = "ECS service"


def check_deployment(session: Session, config: EcsDeploymentConfig) -> dict[str, str]:
    """Check whether each named deployment resource exists."""
    results: dict[str, str] = {}

    results[STATUS_KEY_ELASTIC_IP] = _present(find_elastic_ip(session, config.eip_name))
    results[STATUS_KEY_NLB_SECURITY_GROUP] = _present(
        find_security_group(session, config.nlb_security_group_name)
    )
    results[STATUS_KEY_FARGATE_SECURITY_GROUP] = _present(
        find_security_group(session, config.fargate_security_group_name)
    )
    results[STATUS_KEY_LOAD_BALANCER] = _check_load_balancer(session, config.nlb_name)
    results[STATUS_KEY_TARGET_GROUPS] = _check_target_groups(session, config)
    results[STATUS_KEY_LOG_GROUP] = _check_log_group(session, config.log_group_name)
    results[STATUS_KEY_ECS_CLUSTER] = _check_cluster(session, config.cluster_name)
    results[STATUS_KEY_ECS_SERVICE] = _check_service(session, config)

    return results


def _present(found: object | None) -> str:
    return "present" if found else "missing"


def _check_load_balancer(session: Session, name: str) -> str:
    try:
        return _present(find_load_balancer(session, name))
    except DeploymentError as exc:
        return f"error: {exc}"


def _check_target_groups(session: Session, config: EcsDeploymentConfig) -> str:
    missing = 0
    for port in config.trading_ports:
        try:
            if find_target_group(session, config.target_group_name(port)) is None:
                missing += 1
        except DeploymentError as exc:
            return f"error: {exc}"
    if missing == 0:
        return "present"
    return f"missing {missing}/{len(config.trading_ports)}"


def _check_log_group(session: Session, log_group_name: str) -> str:
    logs = session.client("logs")
    try:
        response = logs.describe_log_groups(logGroupNamePrefix=log_group_name)
    except ClientError as exc:
        return f"error: {exc.response.get('Error', {}).get('Code')}"
    groups = [group["logGroupName"] for group in response.get("logGroups", [])]
    return "present" if log_group_name in groups else "missing"


def _check_cluster(session: Session, cluster_name: str) -> str:
    ecs = session.client("ecs")
    try:
        response = ecs.describe_clusters(clusters=[cluster_name])
    except ClientError as exc:
        return f"error: {exc.response.get('Error', {}).get('Code')}"
    clusters = response.get("clusters", [])
    if not clusters:
        return "missing"
    if clusters[0].get("status") != "ACTIVE":
        return f"status {clusters[0].get('status')}"
    return "present"


def _check_service(session: Session, config: EcsDeploymentConfig) -> str:
    try:
        service = find_service(session, config.cluster_name, config.service_name)
    except DeploymentError as exc:
        return f"error: {exc}"
    if service is None:
        return "missing"
    status = str(service.get("status", ""))
    if status != "ACTIVE":
        return f"status {status}"
    return "present"
