"""ECS cluster and service helpers."""

import logging
from collections.abc import Callable
from typing import Any, cast

from boto3.session import Session
from botocore.exceptions import ClientError, WaiterError

from ib_gateway_fargate.core.deployments.aws_ecs.errors import (
    DeploymentError,
    ResourceNotFoundError,
    ServiceNotStableError,
    is_already_absent,
)
from ib_gateway_fargate.core.deployments.aws_ecs.models import (
    EcsDeploymentConfig,
    EnsureResult,
    NetworkSelection,
    ServiceStatus,
    TargetGroupBinding,
    TaskDiagnostics,
)
from ib_gateway_fargate.core.deployments.aws_ecs.resources import ensure_resource

logger = logging.getLogger(__name__)


def ensure_cluster(session: Session, cluster_name: str, reporter: Callable[[str], None]) -> str:
    """Ensure an ECS cluster exists.

    A deleted cluster lingers as INACTIVE and is created again.
    """
    ecs = session.client("ecs")

    def lookup() -> str | None:
        response = ecs.describe_clusters(clusters=[cluster_name])
        clusters = response.get("clusters", [])
        if not clusters:
            return None
        cluster = clusters[0]
        status = str(cluster.get("status", ""))
        if status == "INACTIVE":
            return None
        if status != "ACTIVE":
            raise DeploymentError(
                f"ECS cluster {cluster_name} is in unexpected status {status} and cannot be used."
            )
        return cast(str, cluster["clusterArn"])

    def create() -> str:
        response = ecs.create_cluster(clusterName=cluster_name)
        return cast(str, response["cluster"]["clusterArn"])

    return ensure_resource("ECS cluster", lookup, create, reporter).identifier


def find_service(session: Session, cluster_name: str, service_name: str) -> dict[str, Any] | None:
    """Return the service description, or None when absent or inactive."""
    ecs = session.client("ecs")
    try:
        response = ecs.describe_services(cluster=cluster_name, services=[service_name])
    except ClientError as exc:
        if is_already_absent(exc):
            return None
        raise DeploymentError(f"Failed to describe service {service_name}: {exc}") from exc

    for service in response.get("services", []):
        if service.get("status") != "INACTIVE":
            return cast(dict[str, Any], service)
    return None


def ensure_service(
    session: Session,
    config: EcsDeploymentConfig,
    network: NetworkSelection,
    security_group_id: str,
    target_groups: list[TargetGroupBinding],
    reporter: Callable[[str], None],
) -> EnsureResult:
    """Ensure the gateway service exists behind the load balancer.

    A newly created service is waited on until it is stable. An active
    service is reused as is. A service still draining from an earlier delete
    is waited on until inactive and then created again.
    """
    ecs = session.client("ecs")

    def lookup() -> str | None:
        service = find_service(session, config.cluster_name, config.service_name)
        if service is None:
            return None
        if service.get("status") == "ACTIVE":
            return str(service["serviceArn"])
        reporter(f"Waiting for {service.get('status')} service {config.service_name} to go away")
        wait_for_service_inactive(session, config.cluster_name, config.service_name)
        return None

    def create() -> str:
        try:
            response = ecs.create_service(
                cluster=config.cluster_name,
                serviceName=config.service_name,
                taskDefinition=config.task_family,
                desiredCount=1,
                launchType="FARGATE",
                networkConfiguration={
                    "awsvpcConfiguration": {
                        "subnets": [network.service_subnet_id],
                        "securityGroups": [security_group_id],
                        "assignPublicIp": "ENABLED",
                    }
                },
                loadBalancers=[
                    {
                        "targetGroupArn": binding.target_group_arn,
                        "containerName": config.container_name,
                        "containerPort": binding.port,
                    }
                    for binding in target_groups
                ],
            )
        except ClientError as exc:
            raise DeploymentError(f"Failed to create ECS service: {exc}") from exc
        return cast(str, response["service"]["serviceArn"])

    result = ensure_resource("ECS service", lookup, create, reporter)
    if result.created:
        reporter("Waiting for service to stabilize...")
        wait_for_service_stable(session, config.cluster_name, config.service_name)
        reporter("ECS service created and stable")
    return result


def wait_for_service_stable(session: Session, cluster_name: str, service_name: str) -> None:
    """Block until ECS reports the service as stable."""
    ecs = session.client("ecs")
    try:
        ecs.get_waiter("services_stable").wait(cluster=cluster_name, services=[service_name])
    except WaiterError as exc:
        raise ServiceNotStableError(f"Service {service_name} did not stabilize: {exc}") from exc


def describe_service_status(session: Session, config: EcsDeploymentConfig) -> ServiceStatus:
    """Return the running and desired counts of the service."""
    service = find_service(session, config.cluster_name, config.service_name)
    if service is None:
        raise ResourceNotFoundError(
            f"ECS service {config.service_name} not found. Deploy first with 'deploy'."
        )
    return ServiceStatus(
        status=str(service.get("status", "")),
        running_count=int(service.get("runningCount", 0)),
        desired_count=int(service.get("desiredCount", 0)),
    )


def set_desired_count(session: Session, config: EcsDeploymentConfig, count: int) -> None:
    """Scale the service to a fixed number of tasks."""
    _update_service(session, config, desiredCount=count)


def force_new_deployment(session: Session, config: EcsDeploymentConfig) -> None:
    """Restart the service tasks without changing the task definition."""
    _update_service(session, config, forceNewDeployment=True)


def update_service_task_definition(session: Session, config: EcsDeploymentConfig) -> None:
    """Point the service at the latest revision of the task family."""
    _update_service(session, config, taskDefinition=config.task_family)


def latest_task_diagnostics(
    session: Session,
    config: EcsDeploymentConfig,
) -> TaskDiagnostics | None:
    """Describe the first task of the service and its gateway container."""
    ecs = session.client("ecs")
    try:
        response = ecs.list_tasks(cluster=config.cluster_name, serviceName=config.service_name)
    except ClientError as exc:
        if is_already_absent(exc):
            return None
        raise DeploymentError(f"Failed to list tasks: {exc}") from exc

    task_arns = response.get("taskArns", [])
    if not task_arns:
        return None

    response = ecs.describe_tasks(cluster=config.cluster_name, tasks=[task_arns[0]])
    tasks = response.get("tasks", [])
    if not tasks:
        return None
    return _task_diagnostics(tasks[0], config.container_name)


def delete_service(
    session: Session,
    config: EcsDeploymentConfig,
    reporter: Callable[[str], None],
) -> None:
    """Scale the service to zero, delete it, and wait until it is inactive."""
    ecs = session.client("ecs")
    reporter(f"Stopping service {config.service_name}")
    try:
        set_desired_count(session, config, 0)
    except ResourceNotFoundError:
        return
    except DeploymentError as exc:
        reporter(f"Failed to scale down service: {exc}")

    reporter(f"Deleting service {config.service_name}")
    try:
        ecs.delete_service(cluster=config.cluster_name, service=config.service_name, force=True)
    except ClientError as exc:
        if is_already_absent(exc):
            return
        raise DeploymentError(f"Failed to delete service: {exc}") from exc

    wait_for_service_inactive(session, config.cluster_name, config.service_name)


def wait_for_service_inactive(session: Session, cluster_name: str, service_name: str) -> None:
    """Block until a deleted service has finished draining."""
    ecs = session.client("ecs")
    try:
        ecs.get_waiter("services_inactive").wait(cluster=cluster_name, services=[service_name])
    except WaiterError as exc:
        raise DeploymentError(
            f"Gave up waiting for service {service_name} to drain: {exc}"
        ) from exc


def deregister_task_definitions(
    session: Session,
    task_family: str,
    reporter: Callable[[str], None],
) -> None:
    """Deregister every active revision of a task family.

    Every revision is attempted before a failure is raised.
    """
    ecs = session.client("ecs")
    try:
        response = ecs.list_task_definitions(familyPrefix=task_family, status="ACTIVE")
    except ClientError as exc:
        raise DeploymentError(f"Failed to list task definitions: {exc}") from exc

    failed: list[str] = []
    for arn in response.get("taskDefinitionArns", []):
        try:
            ecs.deregister_task_definition(taskDefinition=arn)
        except ClientError as exc:
            logger.debug("Failed to deregister %s", arn, exc_info=True)
            failed.append(f"{arn} ({exc.response.get('Error', {}).get('Code')})")
        else:
            reporter(f"Deregistered task definition {arn}")
    if failed:
        raise DeploymentError(f"Failed to deregister task definitions: {', '.join(failed)}")


def delete_cluster(session: Session, cluster_name: str, reporter: Callable[[str], None]) -> None:
    """Delete an ECS cluster if it exists."""
    ecs = session.client("ecs")
    reporter(f"Deleting cluster {cluster_name}")
    try:
        ecs.delete_cluster(cluster=cluster_name)
    except ClientError as exc:
        if is_already_absent(exc):
            return
        raise DeploymentError(f"Failed to delete cluster: {exc}") from exc


def _update_service(session: Session, config: EcsDeploymentConfig, **changes: Any) -> None:
    """Apply an update to the service."""
    ecs = session.client("ecs")
    try:
        ecs.update_service(cluster=config.cluster_name, service=config.service_name, **changes)
    except ClientError as exc:
        if is_already_absent(exc):
            raise ResourceNotFoundError(
                f"ECS service {config.service_name} not found. Deploy first with 'deploy'."
            ) from exc
        raise DeploymentError(f"Failed to update service {config.service_name}: {exc}") from exc
    logger.info("Updated service %s with %s", config.service_name, sorted(changes))


def _task_diagnostics(task: dict[str, Any], container_name: str) -> TaskDiagnostics:
    """Convert ECS task details into diagnostics."""
    container = _find_container(task.get("containers", []), container_name)
    return TaskDiagnostics(
        task_arn=str(task.get("taskArn", "")),
        last_status=str(task.get("lastStatus", "")),
        desired_status=str(task.get("desiredStatus", "")),
        health_status=task.get("healthStatus"),
        stopped_reason=task.get("stoppedReason"),
        created_at=task.get("createdAt"),
        container_name=container.get("name") if container else None,
        container_status=container.get("lastStatus") if container else None,
        container_reason=container.get("reason") if container else None,
        exit_code=container.get("exitCode") if container else None,
    )


def _find_container(containers: list[dict[str, Any]], name: str) -> dict[str, Any] | None:
    """Return a container by name, falling back to the first one."""
    for container in containers:
        if container.get("name") == name:
            return container
    return containers[0] if containers else None
