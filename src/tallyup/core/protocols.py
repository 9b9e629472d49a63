"""Protocol interfaces for all TallyUp abstractions.

All inter-layer communication uses these Protocols: structural typing,
no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from tallyup.models.sales import EmployeeSales, ReportAggregates
    from tallyup.models.schedule import MerchantScheduleConfig, PipelineStageRecord, StepName, Trigger


# ---------------------------------------------------------------------------
# Persistence: Merchant schedule settings
# ---------------------------------------------------------------------------

@runtime_checkable
class IMerchantConfigStore(Protocol):
    """Key lookups of MerchantScheduleConfig by merchant id."""

    def get(self, merchant_id: str) -> MerchantScheduleConfig: ...

    def put(self, config: MerchantScheduleConfig) -> None: ...

    def list_merchant_ids(self) -> list[str]: ...

    def set_last_completed_cycle_time(self, merchant_id: str, completed_at: datetime) -> None: ...


# ---------------------------------------------------------------------------
# Persistence: Pipeline stage records
# ---------------------------------------------------------------------------

@runtime_checkable
class IPipelineStatusStore(Protocol):
    """Per-merchant, per-date, per-step hand-off records.

    ``claim`` must be a single conditional write: it succeeds only if the stored
    record is still ``pending``, and returns the record as stored after the
    transition (``None`` when the claim is lost).
    """

    def get(self, merchant_id: str, pipeline_date: date, step: StepName) -> PipelineStageRecord | None: ...

    def get_pending(self, merchant_id: str, pipeline_date: date, step: StepName) -> PipelineStageRecord | None: ...

    def list_for_date(self, merchant_id: str, pipeline_date: date) -> list[PipelineStageRecord]: ...

    def create_pending(
        self,
        merchant_id: str,
        pipeline_date: date,
        step: StepName,
        period_start: datetime,
        period_end: datetime,
    ) -> PipelineStageRecord: ...

    def claim(self, record: PipelineStageRecord, started_at: datetime) -> PipelineStageRecord | None: ...

    def complete(self, record: PipelineStageRecord, result_ref: str | None, completed_at: datetime) -> PipelineStageRecord: ...

    def fail(self, record: PipelineStageRecord, error: str, failed_at: datetime) -> PipelineStageRecord: ...


# ---------------------------------------------------------------------------
# Persistence: Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def ping(self) -> bool: ...


# ---------------------------------------------------------------------------
# Persistence: File Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IFileStore(Protocol):
    """S3-compatible storage for sales snapshots and rendered reports."""

    def read(self, path: str) -> bytes: ...

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str: ...

    def uri(self, path: str) -> str: ...


# ---------------------------------------------------------------------------
# Trigger Execution Service
# ---------------------------------------------------------------------------

@runtime_checkable
class ITriggerService(Protocol):
    """External scheduler that fires stage handlers; the core only configures it."""

    def register(self, trigger: Trigger) -> None: ...

    def unregister(self, job_name: str) -> None: ...

    def describe(self, job_name: str) -> Trigger | None: ...


# ---------------------------------------------------------------------------
# External providers
# ---------------------------------------------------------------------------

@runtime_checkable
class ISalesDataProvider(Protocol):
    """Point-of-sale integration returning per-employee sales for a period."""

    def fetch(self, merchant_id: str, period_start: datetime, period_end: datetime) -> list[EmployeeSales]: ...


@runtime_checkable
class IReportRenderer(Protocol):
    """Renders a commission report; returns a URL or the document bytes."""

    def render(self, merchant_id: str, period_description: str, aggregates: ReportAggregates) -> str | bytes: ...
