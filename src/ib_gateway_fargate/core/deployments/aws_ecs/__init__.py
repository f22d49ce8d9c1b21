"""AWS ECS deployment helpers."""

from ib_gateway_fargate.core.deployments.aws_ecs.cleanup import cleanup_resources
from ib_gateway_fargate.core.deployments.aws_ecs.connectivity import probe_endpoints, probe_port
from ib_gateway_fargate.core.deployments.aws_ecs.deploy import (
    deploy_gateway,
    rotate_access,
    setup_networking,
    update_gateway,
)
from ib_gateway_fargate.core.deployments.aws_ecs.ecs_service import (
    describe_service_status,
    ensure_cluster,
    ensure_service,
    force_new_deployment,
    latest_task_diagnostics,
    set_desired_count,
)
from ib_gateway_fargate.core.deployments.aws_ecs.errors import (
    DeploymentError,
    GatewayCredentialsError,
    PrerequisiteError,
    PublicIpError,
    ResourceNotFoundError,
    ServiceNotStableError,
)
from ib_gateway_fargate.core.deployments.aws_ecs.logs import list_log_streams, tail_log_events
from ib_gateway_fargate.core.deployments.aws_ecs.models import (
    TRADING_PORT_LABELS,
    EcsDeploymentConfig,
    ElasticIp,
    NetworkingResult,
    NetworkSelection,
    ServiceStatus,
    TaskDiagnostics,
)
from ib_gateway_fargate.core.deployments.aws_ecs.network import find_elastic_ip
from ib_gateway_fargate.core.deployments.aws_ecs.public_ip import discover_public_ip
from ib_gateway_fargate.core.deployments.aws_ecs.resources import ensure_resource
from ib_gateway_fargate.core.deployments.aws_ecs.session import create_session, get_identity
from ib_gateway_fargate.core.deployments.aws_ecs.status import check_deployment

__all__ = [
    "TRADING_PORT_LABELS",
    "DeploymentError",
    "EcsDeploymentConfig",
    "ElasticIp",
    "GatewayCredentialsError",
    "NetworkSelection",
    "NetworkingResult",
    "PrerequisiteError",
    "PublicIpError",
    "ResourceNotFoundError",
    "ServiceNotStableError",
    "ServiceStatus",
    "TaskDiagnostics",
    "check_deployment",
    "cleanup_resources",
    "create_session",
    "deploy_gateway",
    "describe_service_status",
    "discover_public_ip",
    "ensure_cluster",
    "ensure_resource",
    "ensure_service",
    "find_elastic_ip",
    "force_new_deployment",
    "get_identity",
    "latest_task_diagnostics",
    "list_log_streams",
    "probe_endpoints",
    "probe_port",
    "rotate_access",
    "set_desired_count",
    "setup_networking",
    "tail_log_events",
    "update_gateway",
]
