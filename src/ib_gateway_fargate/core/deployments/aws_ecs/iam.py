"""IAM role helpers for ECS deployment."""

import json
from collections.abc import Callable
from typing import Any, cast

from boto3.session import Session
from botocore.exceptions import ClientError

from ib_gateway_fargate.core.deployments.aws_ecs.errors import DeploymentError

EXECUTION_POLICY_ARN = "arn:aws:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy"


def ensure_execution_role(
    session: Session,
    role_name: str,
    reporter: Callable[[str], None],
) -> str:
    """Ensure the task execution role exists and can pull images and write logs."""
    iam = session.client("iam")
    reporter("Ensuring execution role has proper permissions...")
    role_arn = _ensure_role(iam, role_name, _ecs_trust_policy())
    _attach_managed_policy(iam, role_name, EXECUTION_POLICY_ARN)
    return role_arn


def _ensure_role(iam: Any, role_name: str, trust_policy: dict[str, Any]) -> str:
    """Create a role if needed and return its ARN."""
    try:
        response = iam.get_role(RoleName=role_name)
        return cast(str, response["Role"]["Arn"])
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code != "NoSuchEntity":
            raise DeploymentError(f"Failed to read role {role_name}: {exc}") from exc

    response = iam.create_role(
        RoleName=role_name,
        AssumeRolePolicyDocument=json.dumps(trust_policy),
    )
    return cast(str, response["Role"]["Arn"])


def _attach_managed_policy(iam: Any, role_name: str, policy_arn: str) -> None:
    """Attach a managed policy if it is missing."""
    response = iam.list_attached_role_policies(RoleName=role_name)
    attached = {policy["PolicyArn"] for policy in response.get("AttachedPolicies", [])}
    if policy_arn in attached:
        return
    iam.attach_role_policy(RoleName=role_name, PolicyArn=policy_arn)


def _ecs_trust_policy() -> dict[str, Any]:
    """Return the ECS task trust policy."""
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": "ecs-tasks.amazonaws.com"},
                "Action": "sts:AssumeRole",
            }
        ],
    }
