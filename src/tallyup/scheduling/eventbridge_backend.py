"""EventBridge Scheduler backend implementing ITriggerService."""

from __future__ import annotations

import json
import logging
import re

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from tallyup.core.exceptions import DuplicateTriggerError, StorageError, TriggerNotFoundError, ValidationError
from tallyup.models.schedule import Trigger
from tallyup.scheduling.cron import parse_cron

logger = logging.getLogger(__name__)

_SCHEDULE_RE = re.compile(r"^cron\((\d{1,2}) (\d{1,2}) \* \* \? \*\)$")


def to_schedule_expression(cron_expression: str) -> str:
    """``"M H * * *"`` -> ``"cron(M H * * ? *)"`` (EventBridge needs ``?`` and a year field)."""
    minute, hour = parse_cron(cron_expression)
    return f"cron({minute} {hour} * * ? *)"


def from_schedule_expression(expression: str) -> str:
    match = _SCHEDULE_RE.match(expression.strip())
    if match is None:
        raise ValidationError(f"Unsupported schedule expression: {expression!r}")
    return f"{int(match[1])} {int(match[2])} * * *"


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


class EventBridgeTriggerService:
    """Production ITriggerService backed by EventBridge Scheduler.

    Each trigger is a UTC cron schedule whose target receives
    ``{"merchantId": ..., "handlerId": ...}`` as its input.
    """

    def __init__(self, role_arn: str, target_arns: dict[str, str], group_name: str = "default",
                 region: str = "us-east-1", endpoint_url: str | None = None) -> None:
        self._role_arn = role_arn
        self._target_arns = target_arns
        self._group_name = group_name
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("scheduler", **kwargs)

    def register(self, trigger: Trigger) -> None:
        target_arn = self._target_arns.get(trigger.handler_id)
        if not target_arn:
            raise ValidationError(f"No target ARN configured for handler {trigger.handler_id!r}")
        try:
            self._client.create_schedule(
                Name=trigger.job_name,
                GroupName=self._group_name,
                ScheduleExpression=to_schedule_expression(trigger.cron_expression),
                ScheduleExpressionTimezone="UTC",
                FlexibleTimeWindow={"Mode": "OFF"},
                State="ENABLED",
                Description=f"{trigger.handler_id} for merchant {trigger.merchant_id}",
                Target={
                    "Arn": target_arn,
                    "RoleArn": self._role_arn,
                    "Input": json.dumps({"merchantId": trigger.merchant_id, "handlerId": trigger.handler_id}),
                },
            )
        except ClientError as exc:
            if _error_code(exc) == "ConflictException":
                raise DuplicateTriggerError(trigger.job_name) from exc
            raise StorageError(f"Scheduler create failed for {trigger.job_name!r}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Scheduler create failed for {trigger.job_name!r}: {exc}") from exc

    def unregister(self, job_name: str) -> None:
        try:
            self._client.delete_schedule(Name=job_name, GroupName=self._group_name)
        except ClientError as exc:
            if _error_code(exc) == "ResourceNotFoundException":
                raise TriggerNotFoundError(job_name) from exc
            raise StorageError(f"Scheduler delete failed for {job_name!r}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Scheduler delete failed for {job_name!r}: {exc}") from exc

    def describe(self, job_name: str) -> Trigger | None:
        try:
            resp = self._client.get_schedule(Name=job_name, GroupName=self._group_name)
        except ClientError as exc:
            if _error_code(exc) == "ResourceNotFoundException":
                return None
            raise StorageError(f"Scheduler lookup failed for {job_name!r}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Scheduler lookup failed for {job_name!r}: {exc}") from exc

        target = resp.get("Target", {})
        try:
            payload = json.loads(target.get("Input") or "{}")
        except json.JSONDecodeError:
            logger.warning("Schedule %s has a non-JSON target input", job_name)
            payload = {}
        return Trigger(
            job_name=job_name,
            cron_expression=from_schedule_expression(resp["ScheduleExpression"]),
            merchant_id=payload.get("merchantId", ""),
            handler_id=payload.get("handlerId", ""),
        )
