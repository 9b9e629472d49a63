"""DynamoDB backends for merchant schedule settings and pipeline stage records."""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError as PydanticValidationError

from tallyup.core.exceptions import ConfigNotFoundError, StorageError, ValidationError
from tallyup.models.schedule import MerchantScheduleConfig, PipelineStageRecord, StepName, StepStatus

logger = logging.getLogger(__name__)

SETTINGS_SK = "SETTINGS"
_STEP_ORDER = {step: i for i, step in enumerate(StepName)}


def _decode_decimals(item: dict[str, Any]) -> dict[str, Any]:
    """Convert Decimal values in a DynamoDB item to int/float."""
    out: dict[str, Any] = {}
    for k, v in item.items():
        if isinstance(v, Decimal):
            out[k] = int(v) if v == int(v) else float(v)
        elif isinstance(v, dict):
            out[k] = _decode_decimals(v)
        else:
            out[k] = v
    return out


def _is_condition_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def _merchant_pk(merchant_id: str) -> str:
    return f"MERCHANT#{merchant_id}"


def _record_sk(pipeline_date: date, step: StepName) -> str:
    return f"DATE#{pipeline_date.isoformat()}#STEP#{StepName(step).value}"


class _DynamoTable:
    def __init__(self, table_name: str, region: str = "us-east-1", endpoint_url: str | None = None) -> None:
        self._table_name = table_name
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)
        self._table = self._ddb.Table(table_name)


class DynamoDBMerchantConfigStore(_DynamoTable):
    """Production IMerchantConfigStore backed by DynamoDB + optional Redis cache."""

    def __init__(self, table_name: str, region: str = "us-east-1", endpoint_url: str | None = None,
                 cache: Any = None, cache_ttl: int = 300) -> None:
        super().__init__(table_name, region, endpoint_url)
        self._cache = cache
        self._cache_ttl = cache_ttl

    @staticmethod
    def _cache_key(merchant_id: str) -> str:
        return f"merchant_config:{merchant_id}"

    def _invalidate(self, merchant_id: str) -> None:
        if self._cache is not None:
            self._cache.delete(self._cache_key(merchant_id))

    def get(self, merchant_id: str) -> MerchantScheduleConfig:
        cache_key = self._cache_key(merchant_id)

        # Check cache first
        if self._cache is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return MerchantScheduleConfig.model_validate_json(cached)

        try:
            resp = self._table.get_item(Key={"PK": _merchant_pk(merchant_id), "SK": SETTINGS_SK})
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Settings lookup failed for merchant {merchant_id}: {exc}") from exc
        item = resp.get("Item")
        if item is None:
            raise ConfigNotFoundError(merchant_id)

        item = _decode_decimals(item)
        item.pop("PK", None)
        item.pop("SK", None)
        try:
            config = MerchantScheduleConfig.model_validate(item)
        except PydanticValidationError as exc:
            raise ValidationError(f"Stored settings for merchant {merchant_id} are invalid: {exc}") from exc

        if self._cache is not None:
            self._cache.setex(cache_key, self._cache_ttl, config.model_dump_json())
        return config

    def put(self, config: MerchantScheduleConfig) -> None:
        item = {
            "PK": _merchant_pk(config.merchant_id),
            "SK": SETTINGS_SK,
            **config.model_dump(mode="json", exclude_none=True),
        }
        try:
            self._table.put_item(Item=item)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Settings write failed for merchant {config.merchant_id}: {exc}") from exc
        self._invalidate(config.merchant_id)

    def list_merchant_ids(self) -> list[str]:
        ids: list[str] = []
        kwargs: dict[str, Any] = {
            "FilterExpression": "SK = :sk",
            "ExpressionAttributeValues": {":sk": SETTINGS_SK},
            "ProjectionExpression": "merchant_id",
        }
        try:
            while True:
                resp = self._table.scan(**kwargs)
                ids.extend(item["merchant_id"] for item in resp.get("Items", []) if "merchant_id" in item)
                if "LastEvaluatedKey" not in resp:
                    break
                kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Settings scan failed: {exc}") from exc
        return sorted(ids)

    def set_last_completed_cycle_time(self, merchant_id: str, completed_at: datetime) -> None:
        try:
            self._table.update_item(
                Key={"PK": _merchant_pk(merchant_id), "SK": SETTINGS_SK},
                UpdateExpression="SET last_completed_cycle_time = :t",
                ConditionExpression="attribute_exists(PK)",
                ExpressionAttributeValues={":t": completed_at.isoformat()},
            )
        except ClientError as exc:
            if _is_condition_failure(exc):
                raise ConfigNotFoundError(merchant_id) from exc
            raise StorageError(f"Settings update failed for merchant {merchant_id}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Settings update failed for merchant {merchant_id}: {exc}") from exc
        self._invalidate(merchant_id)


class DynamoDBPipelineStatusStore(_DynamoTable):
    """Production IPipelineStatusStore backed by DynamoDB.

    State transitions are conditional writes, so two invocations racing for
    the same record cannot both win.
    """

    def _key(self, merchant_id: str, pipeline_date: date, step: StepName) -> dict[str, str]:
        return {"PK": _merchant_pk(merchant_id), "SK": _record_sk(pipeline_date, step)}

    @staticmethod
    def _to_record(item: dict[str, Any]) -> PipelineStageRecord:
        item = _decode_decimals(item)
        item.pop("PK", None)
        item.pop("SK", None)
        return PipelineStageRecord.model_validate(item)

    def get(self, merchant_id: str, pipeline_date: date, step: StepName) -> PipelineStageRecord | None:
        try:
            resp = self._table.get_item(Key=self._key(merchant_id, pipeline_date, step))
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Stage record lookup failed: {exc}") from exc
        item = resp.get("Item")
        return self._to_record(item) if item else None

    def get_pending(self, merchant_id: str, pipeline_date: date, step: StepName) -> PipelineStageRecord | None:
        record = self.get(merchant_id, pipeline_date, step)
        if record is None or record.status != StepStatus.PENDING:
            return None
        return record

    def list_for_date(self, merchant_id: str, pipeline_date: date) -> list[PipelineStageRecord]:
        try:
            resp = self._table.query(
                KeyConditionExpression="PK = :pk AND begins_with(SK, :prefix)",
                ExpressionAttributeValues={
                    ":pk": _merchant_pk(merchant_id),
                    ":prefix": f"DATE#{pipeline_date.isoformat()}#",
                },
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Stage record query failed: {exc}") from exc
        records = [self._to_record(item) for item in resp.get("Items", [])]
        return sorted(records, key=lambda r: _STEP_ORDER[r.step_name])

    def create_pending(self, merchant_id: str, pipeline_date: date, step: StepName,
                       period_start: datetime, period_end: datetime) -> PipelineStageRecord:
        record = PipelineStageRecord(
            merchant_id=merchant_id,
            pipeline_date=pipeline_date,
            step_name=step,
            data_period_start=period_start,
            data_period_end=period_end,
        )
        item = {**self._key(merchant_id, pipeline_date, step), **record.model_dump(mode="json", exclude_none=True)}
        try:
            # Only a missing or still-pending record may be (re)written
            self._table.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(PK) OR #s = :pending",
                ExpressionAttributeNames={"#s": "status"},
                ExpressionAttributeValues={":pending": StepStatus.PENDING.value},
            )
        except ClientError as exc:
            if _is_condition_failure(exc):
                existing = self.get(merchant_id, pipeline_date, step)
                if existing is not None:
                    logger.info("Stage record %s already %s, leaving it", existing.key, existing.status)
                    return existing
            raise StorageError(f"Stage record write failed: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Stage record write failed: {exc}") from exc
        return record

    def claim(self, record: PipelineStageRecord, started_at: datetime) -> PipelineStageRecord | None:
        try:
            resp = self._table.update_item(
                Key=self._key(*record.key),
                UpdateExpression="SET #s = :in_progress, started_at = :started",
                ConditionExpression="#s = :pending",
                ExpressionAttributeNames={"#s": "status"},
                ExpressionAttributeValues={
                    ":in_progress": StepStatus.IN_PROGRESS.value,
                    ":pending": StepStatus.PENDING.value,
                    ":started": started_at.isoformat(),
                },
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if _is_condition_failure(exc):
                return None
            raise StorageError(f"Stage record claim failed: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Stage record claim failed: {exc}") from exc
        return self._to_record(resp["Attributes"])

    def _finish(self, record: PipelineStageRecord, update_expression: str,
                values: dict[str, Any]) -> PipelineStageRecord:
        try:
            resp = self._table.update_item(
                Key=self._key(*record.key),
                UpdateExpression=update_expression,
                ConditionExpression="#s = :in_progress",
                ExpressionAttributeNames={"#s": "status"},
                ExpressionAttributeValues={":in_progress": StepStatus.IN_PROGRESS.value, **values},
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if _is_condition_failure(exc):
                raise StorageError(f"Stage record {record.key} is not in progress") from exc
            raise StorageError(f"Stage record update failed: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Stage record update failed: {exc}") from exc
        return self._to_record(resp["Attributes"])

    def complete(self, record: PipelineStageRecord, result_ref: str | None,
                 completed_at: datetime) -> PipelineStageRecord:
        expression = "SET #s = :completed, completed_at = :t"
        values: dict[str, Any] = {":completed": StepStatus.COMPLETED.value, ":t": completed_at.isoformat()}
        if result_ref is not None:
            expression += ", result_ref = :ref"
            values[":ref"] = result_ref
        return self._finish(record, expression, values)

    def fail(self, record: PipelineStageRecord, error: str, failed_at: datetime) -> PipelineStageRecord:
        return self._finish(
            record,
            "SET #s = :failed, error_message = :e, completed_at = :t, "
            "retry_count = if_not_exists(retry_count, :zero) + :one",
            {
                ":failed": StepStatus.FAILED.value,
                ":e": error,
                ":t": failed_at.isoformat(),
                ":zero": 0,
                ":one": 1,
            },
        )
