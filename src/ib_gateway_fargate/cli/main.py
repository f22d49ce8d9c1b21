"""CLI entrypoint for the IB Gateway Fargate deployment."""

import functools
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar, cast

import click
from boto3.session import Session
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from ib_gateway_fargate.cli.errors import report_remote_error
from ib_gateway_fargate.cli.steps import (
    ecs_config_from_settings,
    print_cleanup_summary,
    print_deploy_summary,
    print_endpoints,
    print_log_event,
    print_probe_results,
    print_resource_table,
    print_service_status,
    print_task_diagnostics,
    prompt_delete_confirmation,
    report_step,
)
from ib_gateway_fargate.cli.ui import console
from ib_gateway_fargate.core.deployments.aws_ecs import (
    DeploymentError,
    EcsDeploymentConfig,
    ResourceNotFoundError,
    check_deployment,
    cleanup_resources,
    create_session,
    deploy_gateway,
    describe_service_status,
    discover_public_ip,
    find_elastic_ip,
    force_new_deployment,
    get_identity,
    latest_task_diagnostics,
    list_log_streams,
    probe_endpoints,
    rotate_access,
    set_desired_count,
    tail_log_events,
    update_gateway,
)
from ib_gateway_fargate.core.settings import AppSettings, get_settings

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

ARCHITECTURE_NOTES = """\
Manage an IB Gateway container on AWS Fargate.

\b
Architecture:
  Internet -> Elastic IP -> Network Load Balancer -> Fargate task
  - The Elastic IP stays the same across redeploys.
  - The load balancer only accepts your current IP (see update-ip).
  - The task only accepts traffic from the load balancer.
  - Ports 4003 (live) and 4004 (paper) are forwarded.
"""


class GatewayGroup(click.Group):
    """Command group that answers an unknown command with the full help."""

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError:
            if not ctx.resilient_parsing:
                click.echo(ctx.get_help())
            raise


def remote_command(func: F) -> F:
    """Render remote failures with guidance and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (DeploymentError, ClientError, BotoCoreError) as exc:
            logger.debug("Command failed", exc_info=True)
            report_remote_error(exc)
            sys.exit(1)

    return cast(F, wrapper)


def _settings(ctx: click.Context) -> AppSettings:
    return cast(AppSettings, ctx.obj["settings"])


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group(cls=GatewayGroup, invoke_without_command=True, help=ARCHITECTURE_NOTES)
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings file to load instead of ./.env or the user config file.",
)
@click.pass_context
def cli(ctx: click.Context, env_file: Path | None) -> None:
    """Load settings and dispatch to a sub-command.

    Args:
        ctx: Click context for the command invocation.
        env_file: Optional explicit settings file.
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    try:
        settings = get_settings(env_file)
    except ValidationError as exc:
        console.print(f"[red]Invalid configuration: {exc}[/red]")
        sys.exit(1)

    _configure_logging(settings.log_level)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


def _deploy(ctx: click.Context, verbose: bool) -> None:
    settings = _settings(ctx)
    config = ecs_config_from_settings(settings)
    mode = " with verbose logging" if verbose else ""
    console.print(f"[cyan]Deploying IB Gateway to AWS Fargate{mode}...[/cyan]")

    session = create_session(config)
    identity = get_identity(session)
    report_step(f"Using AWS account {identity['Account']} in {config.aws_region}")

    networking = deploy_gateway(
        session,
        config,
        settings.gateway,
        report_step,
        verbose=verbose,
        resolve_ip=discover_public_ip,
    )
    print_deploy_summary(networking, config, verbose)


@cli.command()
@click.pass_context
@remote_command
def deploy(ctx: click.Context) -> None:
    """Deploy the gateway behind a load balancer with a stable IP."""
    _deploy(ctx, verbose=False)


@cli.command("deploy-verbose")
@click.pass_context
@remote_command
def deploy_verbose(ctx: click.Context) -> None:
    """Deploy with verbose and debug logging enabled in the container."""
    _deploy(ctx, verbose=True)


@cli.command()
@click.pass_context
@remote_command
def status(ctx: click.Context) -> None:
    """Show service task counts and the state of every resource."""
    config = ecs_config_from_settings(_settings(ctx))
    session = create_session(config)

    try:
        print_service_status(describe_service_status(session, config))
    except ResourceNotFoundError as exc:
        console.print(f"[yellow]{exc}[/yellow]")

    print_resource_table(config, check_deployment(session, config))


@cli.command()
@click.pass_context
@remote_command
def ip(ctx: click.Context) -> None:
    """Show the Elastic IP and the trading endpoints."""
    config = ecs_config_from_settings(_settings(ctx))
    session = create_session(config)

    elastic_ip = find_elastic_ip(session, config.eip_name)
    if elastic_ip is None:
        console.print("[yellow]No Elastic IP found. Deploy first with 'deploy'.[/yellow]")
        return
    print_endpoints(elastic_ip, config.trading_ports)


@cli.command()
@click.pass_context
@remote_command
def logs(ctx: click.Context) -> None:
    """Tail the gateway logs, or diagnose the task when there are none."""
    config = ecs_config_from_settings(_settings(ctx))
    session = create_session(config)

    streams = list_log_streams(session, config.log_group_name)
    if not streams:
        console.print("[yellow]No log streams found. Checking the task...[/yellow]")
        _diagnose(session, config)
        return

    console.print(f"[cyan]Log streams in {config.log_group_name}:[/cyan]")
    for stream in streams:
        console.print(f"  {stream}")
    console.print("[dim]Tailing logs. Press Ctrl+C to stop.[/dim]")

    try:
        for event in tail_log_events(session, config.log_group_name):
            print_log_event(event)
    except KeyboardInterrupt:
        console.print("[dim]Stopped tailing logs.[/dim]")


def _diagnose(session: Session, config: EcsDeploymentConfig) -> None:
    """Print task state and probe the public endpoints."""
    print_task_diagnostics(latest_task_diagnostics(session, config))

    elastic_ip = find_elastic_ip(session, config.eip_name)
    if elastic_ip is None:
        console.print("[yellow]No Elastic IP found. Deploy first with 'deploy'.[/yellow]")
        return
    console.print(f"[cyan]Testing connectivity to {elastic_ip.public_ip}...[/cyan]")
    results = probe_endpoints(elastic_ip.public_ip, config.trading_ports)
    print_probe_results(elastic_ip.public_ip, results)


@cli.command()
@click.pass_context
@remote_command
def restart(ctx: click.Context) -> None:
    """Restart the gateway by forcing a new deployment."""
    config = ecs_config_from_settings(_settings(ctx))
    force_new_deployment(create_session(config), config)
    console.print("[green]Service restart initiated.[/green]")


@cli.command()
@click.pass_context
@remote_command
def stop(ctx: click.Context) -> None:
    """Stop the gateway by scaling the service to zero."""
    config = ecs_config_from_settings(_settings(ctx))
    set_desired_count(create_session(config), config, 0)
    console.print("[green]Service stopped. The Elastic IP is kept.[/green]")


@cli.command()
@click.pass_context
@remote_command
def start(ctx: click.Context) -> None:
    """Start the gateway by scaling the service to one task."""
    config = ecs_config_from_settings(_settings(ctx))
    set_desired_count(create_session(config), config, 1)
    console.print("[green]Service started.[/green]")


@cli.command("update-ip")
@click.pass_context
@remote_command
def update_ip(ctx: click.Context) -> None:
    """Restrict load balancer access to your current IP."""
    config = ecs_config_from_settings(_settings(ctx))
    operator_ip = rotate_access(
        create_session(config),
        config,
        report_step,
        resolve_ip=discover_public_ip,
    )
    console.print(f"[green]Access is now restricted to {operator_ip}.[/green]")


def _update(ctx: click.Context, verbose: bool) -> None:
    settings = _settings(ctx)
    config = ecs_config_from_settings(settings)
    mode = " with verbose logging" if verbose else ""
    console.print(f"[cyan]Updating task definition{mode}...[/cyan]")

    update_gateway(create_session(config), config, settings.gateway, report_step, verbose)
    console.print("[green]Service update initiated with the new task definition.[/green]")


@cli.command()
@click.pass_context
@remote_command
def update(ctx: click.Context) -> None:
    """Re-render the task definition from settings and roll the service."""
    _update(ctx, verbose=False)


@cli.command("update-verbose")
@click.pass_context
@remote_command
def update_verbose(ctx: click.Context) -> None:
    """Update with verbose and debug logging enabled in the container."""
    _update(ctx, verbose=True)


@cli.command()
@click.pass_context
@remote_command
def delete(ctx: click.Context) -> None:
    """Delete every resource, including the Elastic IP."""
    config = ecs_config_from_settings(_settings(ctx))
    print_cleanup_summary(config)

    if prompt_delete_confirmation() != "yes":
        console.print("Deletion cancelled")
        return

    failures = cleanup_resources(create_session(config), config, report_step)
    if failures:
        console.print(
            f"[yellow]Deletion finished with {failures} failed step(s). "
            "Re-run 'delete' once the reported problems are resolved.[/yellow]"
        )
        return
    console.print("[green]All resources deleted.[/green]")


def main() -> None:
    """Run the CLI."""
    try:
        cli(standalone_mode=False)
    except (click.exceptions.Abort, KeyboardInterrupt):
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")
    except click.ClickException as exc:
        exc.show()
        sys.exit(exc.exit_code)
