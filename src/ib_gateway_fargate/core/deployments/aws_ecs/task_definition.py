"""Task definition rendering and registration for the gateway container."""

import json
import logging
from pathlib import Path
from typing import Any, cast

from boto3.session import Session
from botocore.exceptions import ClientError

from ib_gateway_fargate.core.deployments.aws_ecs.errors import (
    DeploymentError,
    GatewayCredentialsError,
)
from ib_gateway_fargate.core.deployments.aws_ecs.models import EcsDeploymentConfig
from ib_gateway_fargate.core.settings import GatewaySettings

logger = logging.getLogger(__name__)

# Passed through only when set in the settings file.
OPTIONAL_GATEWAY_VARIABLES = (
    "READ_ONLY_API",
    "TWS_ACCEPT_INCOMING",
    "TWOFA_TIMEOUT_ACTION",
    "RELOGIN_AFTER_TWOFA_TIMEOUT",
    "EXISTING_SESSION_DETECTED_ACTION",
    "BYPASS_WARNING",
    "ALLOW_BLIND_TRADING",
    "AUTO_RESTART_TIME",
    "TWS_COLD_RESTART",
    "SAVE_TWS_SETTINGS",
    "TIME_ZONE",
)

VERBOSE_VARIABLES = (
    ("VNC_SERVER_PASSWORD", ""),
    ("DISPLAY", ":1"),
    ("VERBOSE", "true"),
    ("DEBUG", "true"),
)


def gateway_environment(gateway: GatewaySettings, verbose: bool) -> list[dict[str, str]]:
    """Build the container environment from gateway settings.

    Raises:
        GatewayCredentialsError: If the IBKR credentials are not configured.
    """
    if not gateway.tws_userid or not gateway.tws_password:
        raise GatewayCredentialsError(
            "TWS_USERID and TWS_PASSWORD must be set in the settings file "
            "before a task definition can be rendered."
        )

    environment = [
        {"name": "TWS_USERID", "value": gateway.tws_userid},
        {"name": "TWS_PASSWORD", "value": gateway.tws_password},
        {"name": "TRADING_MODE", "value": gateway.trading_mode},
    ]
    for name in OPTIONAL_GATEWAY_VARIABLES:
        value = getattr(gateway, name.lower())
        if value is not None:
            environment.append({"name": name, "value": value})

    if verbose:
        environment.extend({"name": name, "value": value} for name, value in VERBOSE_VARIABLES)
    return environment


def build_task_definition(
    config: EcsDeploymentConfig,
    gateway: GatewaySettings,
    execution_role_arn: str,
    verbose: bool = False,
) -> dict[str, Any]:
    """Render the Fargate task definition document."""
    return {
        "family": config.task_family,
        "networkMode": "awsvpc",
        "requiresCompatibilities": ["FARGATE"],
        "cpu": str(config.task_cpu),
        "memory": str(config.task_memory),
        "executionRoleArn": execution_role_arn,
        "containerDefinitions": [
            {
                "name": config.container_name,
                "image": config.container_image,
                "essential": True,
                "portMappings": [
                    {"containerPort": port, "protocol": "tcp"} for port in config.trading_ports
                ],
                "environment": gateway_environment(gateway, verbose),
                "logConfiguration": {
                    "logDriver": "awslogs",
                    "options": {
                        "awslogs-group": config.log_group_name,
                        "awslogs-region": config.aws_region,
                        "awslogs-stream-prefix": config.log_stream_prefix,
                    },
                },
            }
        ],
    }


def execution_role_arn(account_id: str, role_name: str) -> str:
    """Return the ARN of an execution role in the account."""
    return f"arn:aws:iam::{account_id}:role/{role_name}"


def write_task_definition(document: dict[str, Any], path: Path) -> Path:
    """Write the task definition document to disk."""
    path.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
    logger.info("Wrote task definition to %s", path)
    return path


def register_task_definition(session: Session, path: Path) -> str:
    """Register the task definition stored at `path` and return its ARN."""
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise DeploymentError(f"Invalid task definition file {path}: {exc}") from exc

    ecs = session.client("ecs")
    try:
        response = ecs.register_task_definition(**document)
    except ClientError as exc:
        raise DeploymentError(f"Failed to register task definition: {exc}") from exc
    return cast(str, response["taskDefinition"]["taskDefinitionArn"])


def remove_task_definition_file(path: Path) -> None:
    """Delete the generated task definition file if present."""
    path.unlink(missing_ok=True)
