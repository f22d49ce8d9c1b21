"""Data models for ECS deployment."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

TRADING_PORT_LABELS = {
    4003: "Live Trading API",
    4004: "Paper Trading API",
}


@dataclass
class EcsDeploymentConfig:
    """Configuration for ECS deployment."""

    aws_region: str
    aws_profile: str | None
    cluster_name: str
    service_name: str
    task_family: str
    container_name: str
    container_image: str
    task_cpu: int
    task_memory: int
    execution_role_name: str
    eip_name: str
    nlb_name: str
    nlb_security_group_name: str
    fargate_security_group_name: str
    target_group_prefix: str
    log_group_name: str
    log_stream_prefix: str
    trading_ports: list[int]
    task_definition_path: Path
    check_ip_url: str

    def target_group_name(self, port: int) -> str:
        """Return the target group name for a trading port."""
        return f"{self.target_group_prefix}-{port}"


@dataclass
class NetworkSelection:
    """Selected network configuration."""

    vpc_id: str
    public_subnet_ids: list[str] = field(default_factory=list)

    @property
    def service_subnet_id(self) -> str:
        """Subnet the Fargate task runs in and the Elastic IP is bound to."""
        return self.public_subnet_ids[0]


@dataclass
class ElasticIp:
    """An allocated Elastic IP address."""

    allocation_id: str
    public_ip: str


@dataclass
class TargetGroupBinding:
    """A target group serving one trading port."""

    port: int
    target_group_arn: str


@dataclass
class NetworkingResult:
    """Resources wired together by the networking phase of a deploy."""

    network: NetworkSelection
    elastic_ip: ElasticIp
    nlb_security_group_id: str
    fargate_security_group_id: str
    load_balancer_arn: str
    target_groups: list[TargetGroupBinding] = field(default_factory=list)


@dataclass(frozen=True)
class EnsureResult:
    """Outcome of a find-or-create step."""

    identifier: str
    created: bool


@dataclass(frozen=True)
class ServiceStatus:
    """Running and desired task counts of the ECS service."""

    status: str
    running_count: int
    desired_count: int


@dataclass(frozen=True)
class TaskDiagnostics:
    """Status of the most recent service task and its container."""

    task_arn: str
    last_status: str
    desired_status: str
    health_status: str | None
    stopped_reason: str | None
    created_at: datetime | None
    container_name: str | None
    container_status: str | None
    container_reason: str | None
    exit_code: int | None


@dataclass(frozen=True)
class LogEvent:
    """A single CloudWatch log event."""

    event_id: str
    timestamp: datetime
    log_stream: str
    message: str
