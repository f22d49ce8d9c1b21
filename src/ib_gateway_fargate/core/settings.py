"""Runtime settings for the IB Gateway deployment."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ib_gateway_fargate.config.paths import env_path


class AWSSettings(BaseSettings):
    """AWS account and region selection."""

    model_config = SettingsConfigDict(env_prefix="AWS_", extra="ignore")

    region: str = Field(default="us-east-2", description="AWS region")
    profile: str | None = Field(default=None, description="Named AWS CLI profile")


class GatewaySettings(BaseSettings):
    """IB Gateway container settings passed through as environment variables."""

    model_config = SettingsConfigDict(extra="ignore")

    # Required once a task definition is rendered
    tws_userid: str | None = Field(default=None, description="IBKR username")
    tws_password: str | None = Field(default=None, description="IBKR password")
    trading_mode: Literal["paper", "live", "both"] = Field(default="paper")

    read_only_api: str | None = None
    tws_accept_incoming: str | None = None
    twofa_timeout_action: str | None = None
    relogin_after_twofa_timeout: str | None = None
    existing_session_detected_action: str | None = None
    bypass_warning: str | None = None
    allow_blind_trading: str | None = None
    auto_restart_time: str | None = None
    tws_cold_restart: str | None = None
    save_tws_settings: str | None = None
    time_zone: str | None = None


class DeploymentSettings(BaseSettings):
    """Names and sizing of the AWS resources managed by the CLI."""

    model_config = SettingsConfigDict(env_prefix="IBGW_", extra="ignore")

    cluster_name: str = "ib-gateway-cluster"
    service_name: str = "ib-gateway-service"
    task_family: str = "ib-gateway-paper"
    container_name: str = "ib-gateway"
    container_image: str = "ghcr.io/gnzsnz/ib-gateway:stable"
    task_cpu: int = 1024
    task_memory: int = 2048
    execution_role_name: str = "ecsTaskExecutionRole"
    eip_name: str = "ib-gateway-eip"
    nlb_name: str = "ib-gateway-nlb"
    nlb_security_group_name: str = "ib-gateway-nlb-sg"
    fargate_security_group_name: str = "ib-gateway-fargate-sg"
    target_group_prefix: str = "ib-gateway-tg"
    log_group_name: str = "/ecs/ib-gateway"
    log_stream_prefix: str = "ecs"
    trading_ports: list[int] = Field(default_factory=lambda: [4003, 4004])
    task_definition_path: Path = Path("task-definition.json")
    check_ip_url: str = "https://checkip.amazonaws.com"


class AppSettings(BaseSettings):
    """Top-level CLI settings."""

    model_config = SettingsConfigDict(env_file_encoding="utf-8", extra="ignore")

    log_level: str = Field(default="WARNING", alias="LOG_LEVEL")

    aws: AWSSettings
    gateway: GatewaySettings
    deployment: DeploymentSettings


def get_settings(env_file: Path | None = None) -> AppSettings:
    """Load settings from the env file and the process environment.

    Args:
        env_file: Explicit env file path. Defaults to the resolved `.env`.

    Returns:
        The loaded settings.
    """
    path = env_path(env_file)
    # We use type: ignore[call-arg] because mypy doesn't know BaseSettings
    # accepts the private _env_file init argument.
    return AppSettings(
        _env_file=path,  # type: ignore[call-arg]
        aws=AWSSettings(_env_file=path),  # type: ignore[call-arg]
        gateway=GatewaySettings(_env_file=path),  # type: ignore[call-arg]
        deployment=DeploymentSettings(_env_file=path),  # type: ignore[call-arg]
    )
