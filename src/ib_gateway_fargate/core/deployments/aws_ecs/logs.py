"""CloudWatch Logs helpers for the gateway container."""

import logging
import time
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import Any

from boto3.session import Session
from botocore.exceptions import ClientError

from ib_gateway_fargate.core.deployments.aws_ecs.errors import (
    DeploymentError,
    is_already_absent,
    is_already_exists,
)
from ib_gateway_fargate.core.deployments.aws_ecs.models import LogEvent

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_LOOKBACK_SECONDS = 600


def ensure_log_group(session: Session, log_group_name: str) -> bool:
    """Ensure a CloudWatch log group exists.

    Returns:
        True when the group was created by this call.
    """
    logs = session.client("logs")
    try:
        logs.create_log_group(logGroupName=log_group_name)
    except ClientError as exc:
        if is_already_exists(exc):
            return False
        raise DeploymentError(f"Failed to create log group: {exc}") from exc
    return True


def list_log_streams(session: Session, log_group_name: str) -> list[str]:
    """List stream names in a log group, most recent first."""
    logs = session.client("logs")
    try:
        response = logs.describe_log_streams(
            logGroupName=log_group_name,
            orderBy="LastEventTime",
            descending=True,
        )
    except ClientError as exc:
        if is_already_absent(exc):
            return []
        raise DeploymentError(f"Failed to list log streams: {exc}") from exc
    return [str(stream["logStreamName"]) for stream in response.get("logStreams", [])]


def tail_log_events(
    session: Session,
    log_group_name: str,
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    lookback_seconds: int = DEFAULT_LOOKBACK_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[LogEvent]:
    """Yield log events as they arrive, forever.

    Starts `lookback_seconds` in the past and then polls for newer events.
    Events sharing the newest timestamp are de-duplicated across polls.
    """
    logs = session.client("logs")
    start_time = int((time.time() - lookback_seconds) * 1000)
    boundary_ids: set[str] = set()

    while True:
        newest = start_time
        newest_ids: set[str] = set(boundary_ids)
        for raw in _filter_events(logs, log_group_name, start_time):
            event_id = str(raw.get("eventId", ""))
            timestamp = int(raw.get("timestamp", 0))
            if event_id in boundary_ids:
                continue
            if timestamp > newest:
                newest = timestamp
                newest_ids = set()
            if timestamp == newest:
                newest_ids.add(event_id)
            yield _to_event(raw)

        start_time = newest
        boundary_ids = newest_ids
        sleep(poll_interval)


def delete_log_group(
    session: Session,
    log_group_name: str,
    reporter: Callable[[str], None],
) -> None:
    """Delete a CloudWatch log group."""
    logs = session.client("logs")
    try:
        logs.delete_log_group(logGroupName=log_group_name)
    except ClientError as exc:
        if not is_already_absent(exc):
            raise DeploymentError(f"Failed to delete log group: {exc}") from exc


def _filter_events(logs: Any, log_group_name: str, start_time: int) -> Iterator[dict[str, Any]]:
    """Page through events newer than `start_time` in timestamp order."""
    request: dict[str, Any] = {"logGroupName": log_group_name, "startTime": start_time}
    while True:
        try:
            response = logs.filter_log_events(**request)
        except ClientError as exc:
            if is_already_absent(exc):
                logger.warning("Log group %s does not exist", log_group_name)
                return
            raise DeploymentError(f"Failed to read log events: {exc}") from exc

        yield from response.get("events", [])
        next_token = response.get("nextToken")
        if not next_token:
            return
        request["nextToken"] = next_token


def _to_event(raw: dict[str, Any]) -> LogEvent:
    """Convert a filter_log_events entry into a LogEvent."""
    return LogEvent(
        event_id=str(raw.get("eventId", "")),
        timestamp=datetime.fromtimestamp(int(raw.get("timestamp", 0)) / 1000, tz=UTC),
        log_stream=str(raw.get("logStreamName", "")),
        message=str(raw.get("message", "")).rstrip("\n"),
    )
