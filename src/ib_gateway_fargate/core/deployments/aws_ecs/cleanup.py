"""Clean-up helpers for ECS deployment resources."""

from collections.abc import Callable

from boto3.session import Session
from botocore.exceptions import BotoCoreError, ClientError

from ib_gateway_fargate.core.deployments.aws_ecs.ecs_service import (
    delete_cluster,
    delete_service,
    deregister_task_definitions,
)
from ib_gateway_fargate.core.deployments.aws_ecs.errors import DeploymentError
from ib_gateway_fargate.core.deployments.aws_ecs.load_balancer import (
    delete_load_balancer,
    delete_target_group,
)
from ib_gateway_fargate.core.deployments.aws_ecs.logs import delete_log_group
from ib_gateway_fargate.core.deployments.aws_ecs.models import EcsDeploymentConfig
from ib_gateway_fargate.core.deployments.aws_ecs.network import release_elastic_ip
from ib_gateway_fargate.core.deployments.aws_ecs.security_groups import delete_security_group
from ib_gateway_fargate.core.deployments.aws_ecs.task_definition import (
    remove_task_definition_file,
)


def cleanup_resources(
    session: Session,
    config: EcsDeploymentConfig,
    reporter: Callable[[str], None],
) -> int:
    """Tear down every deployment resource, continuing past failures.

    The Elastic IP is released last so the address survives as long as
    anything else is left behind.

    Returns:
        The number of steps that failed.
    """
    steps: list[tuple[str, Callable[[], None]]] = [
        ("delete service", lambda: delete_service(session, config, reporter)),
        (
            "deregister task definitions",
            lambda: deregister_task_definitions(session, config.task_family, reporter),
        ),
        ("delete cluster", lambda: delete_cluster(session, config.cluster_name, reporter)),
        ("delete log group", lambda: delete_log_group(session, config.log_group_name, reporter)),
    ]
    network_steps: list[tuple[str, Callable[[], None]]] = [
        ("delete load balancer", lambda: delete_load_balancer(session, config.nlb_name, reporter)),
    ]
    for port in config.trading_ports:
        name = config.target_group_name(port)
        network_steps.append(
            (
                f"delete target group {name}",
                lambda name=name: delete_target_group(session, name, reporter),
            )
        )
    for group_name in (config.fargate_security_group_name, config.nlb_security_group_name):
        network_steps.append(
            (
                f"delete security group {group_name}",
                lambda group_name=group_name: delete_security_group(session, group_name, reporter),
            )
        )
    network_steps.append(
        ("release Elastic IP", lambda: release_elastic_ip(session, config.eip_name, reporter))
    )

    reporter("Stopping and deleting ECS resources...")
    failures = _run_steps(reporter, steps)
    reporter("Deleting networking resources...")
    failures += _run_steps(reporter, network_steps)

    remove_task_definition_file(config.task_definition_path)
    return failures


def _run_steps(reporter: Callable[[str], None], steps: list[tuple[str, Callable[[], None]]]) -> int:
    failures = 0
    for label, action in steps:
        if not _best_effort(reporter, label, action):
            failures += 1
    return failures


def _best_effort(
    reporter: Callable[[str], None],
    label: str,
    action: Callable[[], None],
) -> bool:
    """Run a clean-up step and report, rather than raise, its failure."""
    try:
        action()
    except DeploymentError as exc:
        reporter(str(exc))
        return False
    except (ClientError, BotoCoreError) as exc:
        reporter(f"Failed to {label}: {exc}")
        return False
    return True
