"""In-memory backends for unit tests: dict-backed fakes."""

from __future__ import annotations

import threading
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from tallyup.core.exceptions import (
    ConfigNotFoundError,
    DuplicateTriggerError,
    StorageError,
    TriggerNotFoundError,
    ValidationError,
)
from tallyup.models.schedule import MerchantScheduleConfig, PipelineStageRecord, StepName, StepStatus, Trigger

_STEP_ORDER = {step: i for i, step in enumerate(StepName)}


class MemoryMerchantConfigStore:
    """Dict-backed IMerchantConfigStore. Rows are kept raw, as a database would."""

    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}

    def seed(self, row: dict[str, Any]) -> None:
        """Store a raw row without validation (for malformed-data tests)."""
        self._rows[str(row["merchant_id"])] = dict(row)

    def get(self, merchant_id: str) -> MerchantScheduleConfig:
        row = self._rows.get(merchant_id)
        if row is None:
            raise ConfigNotFoundError(merchant_id)
        try:
            return MerchantScheduleConfig.model_validate(row)
        except PydanticValidationError as exc:
            raise ValidationError(f"Stored settings for merchant {merchant_id} are invalid: {exc}") from exc

    def put(self, config: MerchantScheduleConfig) -> None:
        self._rows[config.merchant_id] = config.model_dump(mode="json")

    def list_merchant_ids(self) -> list[str]:
        return sorted(self._rows)

    def set_last_completed_cycle_time(self, merchant_id: str, completed_at: datetime) -> None:
        if merchant_id not in self._rows:
            raise ConfigNotFoundError(merchant_id)
        self._rows[merchant_id]["last_completed_cycle_time"] = completed_at.isoformat()


class MemoryPipelineStatusStore:
    """Dict-backed IPipelineStatusStore; transitions are atomic under a lock."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, date, StepName], PipelineStageRecord] = {}
        self._lock = threading.Lock()

    def get(self, merchant_id: str, pipeline_date: date, step: StepName) -> PipelineStageRecord | None:
        record = self._records.get((merchant_id, pipeline_date, StepName(step)))
        return record.model_copy() if record else None

    def get_pending(self, merchant_id: str, pipeline_date: date, step: StepName) -> PipelineStageRecord | None:
        record = self.get(merchant_id, pipeline_date, step)
        if record is None or record.status != StepStatus.PENDING:
            return None
        return record

    def list_for_date(self, merchant_id: str, pipeline_date: date) -> list[PipelineStageRecord]:
        records = [
            r.model_copy() for (m, d, _), r in self._records.items()
            if m == merchant_id and d == pipeline_date
        ]
        return sorted(records, key=lambda r: _STEP_ORDER[r.step_name])

    def create_pending(self, merchant_id: str, pipeline_date: date, step: StepName,
                       period_start: datetime, period_end: datetime) -> PipelineStageRecord:
        key = (merchant_id, pipeline_date, StepName(step))
        with self._lock:
            existing = self._records.get(key)
            if existing is not None and existing.status != StepStatus.PENDING:
                return existing.model_copy()
            record = PipelineStageRecord(
                merchant_id=merchant_id,
                pipeline_date=pipeline_date,
                step_name=step,
                data_period_start=period_start,
                data_period_end=period_end,
            )
            self._records[key] = record
            return record.model_copy()

    def claim(self, record: PipelineStageRecord, started_at: datetime) -> PipelineStageRecord | None:
        with self._lock:
            current = self._records.get(record.key)
            if current is None or current.status != StepStatus.PENDING:
                return None
            claimed = current.model_copy(update={"status": StepStatus.IN_PROGRESS, "started_at": started_at})
            self._records[record.key] = claimed
            return claimed.model_copy()

    def _finish(self, record: PipelineStageRecord, bump_retry: bool = False,
                **changes: Any) -> PipelineStageRecord:
        with self._lock:
            current = self._records.get(record.key)
            if current is None or current.status != StepStatus.IN_PROGRESS:
                raise StorageError(f"Stage record {record.key} is not in progress")
            if bump_retry:
                changes["retry_count"] = current.retry_count + 1
            updated = current.model_copy(update=changes)
            self._records[record.key] = updated
            return updated.model_copy()

    def complete(self, record: PipelineStageRecord, result_ref: str | None,
                 completed_at: datetime) -> PipelineStageRecord:
        changes: dict[str, Any] = {"status": StepStatus.COMPLETED, "completed_at": completed_at}
        if result_ref is not None:
            changes["result_ref"] = result_ref
        return self._finish(record, **changes)

    def fail(self, record: PipelineStageRecord, error: str, failed_at: datetime) -> PipelineStageRecord:
        return self._finish(
            record,
            bump_retry=True,
            status=StepStatus.FAILED,
            error_message=error,
            completed_at=failed_at,
        )


class MemoryTriggerService:
    """Dict-backed ITriggerService. Job names in ``fail_on`` raise on register."""

    def __init__(self) -> None:
        self._triggers: dict[str, Trigger] = {}
        self.fail_on: set[str] = set()

    def register(self, trigger: Trigger) -> None:
        if trigger.job_name in self.fail_on:
            raise StorageError(f"Scheduler rejected {trigger.job_name}")
        if trigger.job_name in self._triggers:
            raise DuplicateTriggerError(trigger.job_name)
        self._triggers[trigger.job_name] = trigger

    def unregister(self, job_name: str) -> None:
        if self._triggers.pop(job_name, None) is None:
            raise TriggerNotFoundError(job_name)

    def describe(self, job_name: str) -> Trigger | None:
        return self._triggers.get(job_name)

    @property
    def job_names(self) -> set[str]:
        return set(self._triggers)


class MemoryCacheBackend:
    """Dict-backed ICacheBackend for unit tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def ping(self) -> bool:
        return True


class MemoryFileStore:
    """Dict-backed IFileStore for unit tests."""

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}

    def read(self, path: str) -> bytes:
        try:
            return self._files[path]
        except KeyError as exc:
            raise StorageError(f"No such file {path!r}") from exc

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        self._files[path] = data
        return path

    def uri(self, path: str) -> str:
        return f"memory://{path}"
