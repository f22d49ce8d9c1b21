"""Step and summary output helpers for the CLI."""

import questionary
from rich.markup import escape
from rich.table import Table

from ib_gateway_fargate.cli.ui import QUESTIONARY_STYLE, console
from ib_gateway_fargate.core.deployments.aws_ecs import (
    TRADING_PORT_LABELS,
    EcsDeploymentConfig,
    ElasticIp,
    NetworkingResult,
    ServiceStatus,
    TaskDiagnostics,
)
from ib_gateway_fargate.core.deployments.aws_ecs.models import LogEvent
from ib_gateway_fargate.core.deployments.aws_ecs.status import (
    STATUS_KEY_ECS_CLUSTER,
    STATUS_KEY_ECS_SERVICE,
    STATUS_KEY_ELASTIC_IP,
    STATUS_KEY_FARGATE_SECURITY_GROUP,
    STATUS_KEY_LOAD_BALANCER,
    STATUS_KEY_LOG_GROUP,
    STATUS_KEY_NLB_SECURITY_GROUP,
    STATUS_KEY_TARGET_GROUPS,
)
from ib_gateway_fargate.core.settings import AppSettings

DELETE_CONFIRMATION_PROMPT = (
    "This will delete ALL resources including the Elastic IP. Are you sure? (yes/no)"
)


def report_step(message: str) -> None:
    """Report a deployment step.

    Args:
        message: Step message to display.
    """
    console.print(f"[bold cyan]•[/bold cyan] {message}")


def ecs_config_from_settings(settings: AppSettings) -> EcsDeploymentConfig:
    """Build an ECS deployment config from loaded settings.

    Args:
        settings: Loaded application settings.

    Returns:
        The ECS deployment configuration.
    """
    deployment = settings.deployment
    return EcsDeploymentConfig(
        aws_region=settings.aws.region,
        aws_profile=settings.aws.profile,
        cluster_name=deployment.cluster_name,
        service_name=deployment.service_name,
        task_family=deployment.task_family,
        container_name=deployment.container_name,
        container_image=deployment.container_image,
        task_cpu=deployment.task_cpu,
        task_memory=deployment.task_memory,
        execution_role_name=deployment.execution_role_name,
        eip_name=deployment.eip_name,
        nlb_name=deployment.nlb_name,
        nlb_security_group_name=deployment.nlb_security_group_name,
        fargate_security_group_name=deployment.fargate_security_group_name,
        target_group_prefix=deployment.target_group_prefix,
        log_group_name=deployment.log_group_name,
        log_stream_prefix=deployment.log_stream_prefix,
        trading_ports=list(deployment.trading_ports),
        task_definition_path=deployment.task_definition_path,
        check_ip_url=deployment.check_ip_url,
    )


def prompt_delete_confirmation() -> str:
    """Ask the operator to confirm a full teardown.

    Returns:
        The raw answer, or an empty string when the prompt is aborted.
    """
    answer = questionary.text(DELETE_CONFIRMATION_PROMPT, style=QUESTIONARY_STYLE).ask()
    return (answer or "").strip()


def endpoint_lines(public_ip: str, ports: list[int]) -> list[str]:
    """Return the labelled endpoint lines for each trading port."""
    return [
        f"{TRADING_PORT_LABELS.get(port, f'Port {port}')}: {public_ip}:{port}" for port in ports
    ]


def print_endpoints(elastic_ip: ElasticIp, ports: list[int]) -> None:
    """Print the Elastic IP and the endpoint of each trading port."""
    console.print(f"Elastic IP: [bold]{elastic_ip.public_ip}[/bold]")
    for line in endpoint_lines(elastic_ip.public_ip, ports):
        console.print(line)


def print_deploy_summary(
    networking: NetworkingResult,
    config: EcsDeploymentConfig,
    verbose: bool = False,
) -> None:
    """Print the post-deploy summary.

    Args:
        networking: Networking resources used by the deployment.
        config: ECS deployment configuration.
        verbose: Whether the verbose task definition was deployed.
    """
    console.print("[green]Deployment complete![/green]")
    print_endpoints(networking.elastic_ip, config.trading_ports)
    console.print(
        "[dim]Access is restricted to your current IP. "
        "Run 'update-ip' when your IP changes.[/dim]"
    )
    if verbose:
        console.print(
            "[dim]Verbose logging is enabled. Use 'logs' to follow the gateway output.[/dim]"
        )


def print_service_status(service: ServiceStatus) -> None:
    """Print the service task counts."""
    table = Table(title="ECS service", show_header=True, header_style="bold cyan")
    table.add_column("Status", style="white", no_wrap=True)
    table.add_column("Running", style="bright_white", justify="right")
    table.add_column("Desired", style="bright_white", justify="right")
    table.add_row(
        style_status_text(service.status),
        str(service.running_count),
        str(service.desired_count),
    )
    console.print(table)


def print_resource_table(config: EcsDeploymentConfig, results: dict[str, str]) -> None:
    """Print the presence of every named deployment resource.

    Args:
        config: ECS deployment configuration.
        results: Presence values keyed by resource name.
    """
    targets = resource_targets(config)
    table = Table(title="Deployment resources", show_header=True, header_style="bold cyan")
    table.add_column("Resource", style="white", no_wrap=True)
    table.add_column("Name", style="bright_white")
    table.add_column("Status", style="white", no_wrap=True)

    for name, status in results.items():
        table.add_row(name, targets.get(name, "-"), style_status(status))

    console.print(table)


def resource_targets(config: EcsDeploymentConfig) -> dict[str, str]:
    """Return the display name of each deployment resource."""
    target_groups = ", ".join(config.target_group_name(port) for port in config.trading_ports)
    return {
        STATUS_KEY_ELASTIC_IP: config.eip_name,
        STATUS_KEY_NLB_SECURITY_GROUP: config.nlb_security_group_name,
        STATUS_KEY_FARGATE_SECURITY_GROUP: config.fargate_security_group_name,
        STATUS_KEY_LOAD_BALANCER: config.nlb_name,
        STATUS_KEY_TARGET_GROUPS: target_groups,
        STATUS_KEY_LOG_GROUP: config.log_group_name,
        STATUS_KEY_ECS_CLUSTER: config.cluster_name,
        STATUS_KEY_ECS_SERVICE: config.service_name,
    }


def style_status(status: str) -> str:
    """Return colourised status text for terminal output.

    Args:
        status: Resource status string.

    Returns:
        Rich-marked status text.
    """
    if status.startswith("present"):
        return f"[green]{status}[/green]"
    if status.startswith("missing"):
        return f"[red]{status}[/red]"
    if status.startswith("error"):
        return f"[red]{status}[/red]"
    if status.startswith("status "):
        return f"[yellow]{status}[/yellow]"
    return status


def style_status_text(status: str) -> str:
    """Colour an ECS service status."""
    if status == "ACTIVE":
        return f"[green]{status}[/green]"
    return f"[yellow]{status}[/yellow]"


def print_task_diagnostics(diagnostics: TaskDiagnostics | None) -> None:
    """Print the latest task and container state."""
    if diagnostics is None:
        console.print("[yellow]No tasks found for the service.[/yellow]")
        return

    console.print(f"Task: {diagnostics.task_arn}")
    console.print(
        f"  Status: {diagnostics.last_status} (desired {diagnostics.desired_status})"
    )
    if diagnostics.health_status:
        console.print(f"  Health: {diagnostics.health_status}")
    if diagnostics.created_at:
        console.print(f"  Created: {diagnostics.created_at:%Y-%m-%d %H:%M:%S %Z}")
    if diagnostics.stopped_reason:
        console.print(f"  Stopped reason: [red]{diagnostics.stopped_reason}[/red]")

    if diagnostics.container_name is None:
        console.print("  [yellow]No container information available.[/yellow]")
        return
    console.print(f"Container {diagnostics.container_name}: {diagnostics.container_status}")
    if diagnostics.exit_code is not None:
        console.print(f"  Exit code: {diagnostics.exit_code}")
    if diagnostics.container_reason:
        console.print(f"  Reason: [red]{diagnostics.container_reason}[/red]")


def print_probe_results(public_ip: str, results: dict[int, bool]) -> None:
    """Print the outcome of the TCP reachability probe."""
    for port, reachable in results.items():
        label = TRADING_PORT_LABELS.get(port, f"Port {port}")
        state = "[green]reachable[/green]" if reachable else "[red]unreachable[/red]"
        console.print(f"{label} ({public_ip}:{port}): {state}")


def print_log_event(event: LogEvent) -> None:
    """Print one log event."""
    timestamp = event.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    console.print(
        f"[dim]{timestamp}[/dim] [cyan]{event.log_stream}[/cyan] {escape(event.message)}",
        highlight=False,
    )


def print_cleanup_summary(config: EcsDeploymentConfig) -> None:
    """Print the resources that delete will remove."""
    console.print("[bold yellow]The following resources will be deleted:[/bold yellow]")
    for name, target in resource_targets(config).items():
        console.print(f"- {name}: {target}")
    console.print(f"- Task definitions: {config.task_family} (all active revisions)")
