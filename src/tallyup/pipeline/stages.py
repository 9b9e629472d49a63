"""Stage handlers fired by the trigger execution service.

Each invocation is short-lived and may be delivered more than once. Stages share
no memory: the only hand-off is the PipelineStageRecord the previous stage left
in the status store, and every stage claims its record before doing any work.

    schedule  ->  writes pending "fetch" with the data period
    fetch     ->  claims "fetch", pulls sales, writes pending "generate"
    generate  ->  claims "generate", renders the report, advances the cycle
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, date, datetime, timedelta

from tallyup.core.exceptions import ClaimConflictError, ConfigNotFoundError, NoPendingRecordError
from tallyup.core.protocols import (
    IFileStore,
    IMerchantConfigStore,
    IPipelineStatusStore,
    IReportRenderer,
    ISalesDataProvider,
)
from tallyup.core.types import Clock
from tallyup.models.api import StageResult, validate_merchant_id
from tallyup.models.sales import EmployeeSales, ReportAggregates
from tallyup.models.schedule import MerchantScheduleConfig, PipelineStageRecord, StepName, StepStatus, Timezone
from tallyup.scheduling.job_names import step_for_handler
from tallyup.scheduling.timezones import local_date, local_now

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


def claim_record(store: IPipelineStatusStore, record: PipelineStageRecord,
                 started_at: datetime) -> PipelineStageRecord:
    """Move ``record`` from pending to in_progress, or raise ClaimConflictError.

    Returns the record as stored at the moment of the claim; its period bounds
    may be newer than the ones ``record`` was read with.
    """
    claimed = store.claim(record, started_at)
    if claimed is None:
        raise ClaimConflictError(record.merchant_id, record.pipeline_date, record.step_name.value)
    return claimed


def sales_snapshot_path(merchant_id: str, pipeline_date: date) -> str:
    return f"sales/{merchant_id}/{pipeline_date.isoformat()}.json"


def report_path(merchant_id: str, pipeline_date: date) -> str:
    return f"reports/{merchant_id}/{pipeline_date.isoformat()}.pdf"


def describe_period(start: datetime, end: datetime, timezone: Timezone) -> str:
    """Human-readable period in the merchant's local time."""
    fmt = "%b %d, %Y %I:%M %p"
    local_start = local_now(timezone, start)
    local_end = local_now(timezone, end)
    return f"{local_start.strftime(fmt)} to {local_end.strftime(fmt)} ({timezone.value})"


def _result(record: PipelineStageRecord, message: str) -> StageResult:
    return StageResult(
        merchant_id=record.merchant_id,
        step=record.step_name.value,
        pipeline_date=record.pipeline_date,
        status=record.status.value,
        data_period_start=record.data_period_start,
        data_period_end=record.data_period_end,
        result_ref=record.result_ref,
        message=message,
    )


class StageHandlers:
    """The three pipeline stages for one deployment's stores and providers."""

    def __init__(
        self,
        *,
        config_store: IMerchantConfigStore,
        status_store: IPipelineStatusStore,
        sales_provider: ISalesDataProvider,
        renderer: IReportRenderer,
        file_store: IFileStore,
        default_lookback_hours: int = 24,
        clock: Clock = utcnow,
    ) -> None:
        self._configs = config_store
        self._status = status_store
        self._sales = sales_provider
        self._renderer = renderer
        self._files = file_store
        self._lookback = timedelta(hours=default_lookback_hours)
        self._clock = clock

    def run(self, handler: str, merchant_id: str) -> StageResult:
        """Dispatch by trigger handler id (``schedule-data-fetch`` etc.)."""
        step = step_for_handler(handler)
        merchant_id = validate_merchant_id(merchant_id)
        if step is StepName.SCHEDULE:
            return self.run_schedule(merchant_id)
        if step is StepName.FETCH:
            return self.run_fetch(merchant_id)
        return self.run_generate(merchant_id)

    # ---- helpers ----

    def _load_config(self, merchant_id: str, step: StepName) -> MerchantScheduleConfig | None:
        # Triggers can fire after the merchant's settings were removed
        try:
            return self._configs.get(merchant_id)
        except ConfigNotFoundError:
            logger.warning("No settings for merchant %s, skipping %s stage", merchant_id, step.value)
            return None

    def _cycle_date(self, config: MerchantScheduleConfig, step: StepName, now: datetime) -> date:
        """Local date on which this cycle's schedule stage fired."""
        delay = 0
        if step in (StepName.FETCH, StepName.GENERATE):
            delay += config.fetch_delay_minutes
        if step is StepName.GENERATE:
            delay += config.report_delay_minutes
        return local_date(config.timezone, now - timedelta(minutes=delay))

    @staticmethod
    def _skipped(merchant_id: str, step: StepName) -> StageResult:
        return StageResult(
            merchant_id=merchant_id,
            step=step.value,
            skipped=True,
            message=f"No schedule settings for merchant {merchant_id}",
        )

    # ---- stages ----

    def run_schedule(self, merchant_id: str) -> StageResult:
        config = self._load_config(merchant_id, StepName.SCHEDULE)
        if config is None:
            return self._skipped(merchant_id, StepName.SCHEDULE)

        now = self._clock()
        pipeline_date = local_date(config.timezone, now)
        period_start = config.last_completed_cycle_time or now - self._lookback

        record = self._status.create_pending(merchant_id, pipeline_date, StepName.SCHEDULE, period_start, now)
        record = claim_record(self._status, record, now)
        logger.info("Scheduling cycle %s for merchant %s: %s -> %s", pipeline_date, merchant_id,
                    record.data_period_start.isoformat(), record.data_period_end.isoformat())

        try:
            fetch = self._status.create_pending(
                merchant_id, pipeline_date, record.step_name.next_step,
                record.data_period_start, record.data_period_end,
            )
        except Exception as exc:
            self._status.fail(record, str(exc), self._clock())
            raise

        self._status.complete(record, None, self._clock())
        return _result(fetch, f"Data fetch scheduled for merchant {merchant_id}")

    def run_fetch(self, merchant_id: str) -> StageResult:
        config = self._load_config(merchant_id, StepName.FETCH)
        if config is None:
            return self._skipped(merchant_id, StepName.FETCH)

        now = self._clock()
        pipeline_date = self._cycle_date(config, StepName.FETCH, now)
        record = self._status.get_pending(merchant_id, pipeline_date, StepName.FETCH)
        if record is None:
            raise NoPendingRecordError(merchant_id, pipeline_date, StepName.FETCH.value)
        record = claim_record(self._status, record, now)

        try:
            sales = self._sales.fetch(merchant_id, record.data_period_start, record.data_period_end)
            snapshot = json.dumps([row.model_dump(mode="json", by_alias=True) for row in sales])
            path = self._files.write(
                sales_snapshot_path(merchant_id, pipeline_date), snapshot.encode(), "application/json",
            )
        except Exception as exc:
            failed = self._status.fail(record, str(exc), self._clock())
            logger.error("Fetch failed for merchant %s on %s (retry_count=%d): %s",
                         merchant_id, pipeline_date, failed.retry_count, exc)
            raise

        completed = self._status.complete(record, path, self._clock())
        self._status.create_pending(
            merchant_id, pipeline_date, record.step_name.next_step,
            record.data_period_start, record.data_period_end,
        )
        logger.info("Fetched %d sales rows for merchant %s on %s", len(sales), merchant_id, pipeline_date)
        return _result(completed, f"Sales data fetched for merchant {merchant_id}")

    def run_generate(self, merchant_id: str) -> StageResult:
        config = self._load_config(merchant_id, StepName.GENERATE)
        if config is None:
            return self._skipped(merchant_id, StepName.GENERATE)

        now = self._clock()
        pipeline_date = self._cycle_date(config, StepName.GENERATE, now)
        record = self._status.get_pending(merchant_id, pipeline_date, StepName.GENERATE)
        if record is None:
            raise NoPendingRecordError(merchant_id, pipeline_date, StepName.GENERATE.value)
        fetch = self._status.get(merchant_id, pipeline_date, StepName.FETCH)
        if fetch is None or fetch.status != StepStatus.COMPLETED or not fetch.result_ref:
            raise NoPendingRecordError(merchant_id, pipeline_date, StepName.FETCH.value, expected="completed")
        record = claim_record(self._status, record, now)

        try:
            rows = [EmployeeSales.model_validate(row) for row in json.loads(self._files.read(fetch.result_ref))]
            aggregates = ReportAggregates.from_sales(rows)
            description = describe_period(record.data_period_start, record.data_period_end, config.timezone)
            document = self._renderer.render(merchant_id, description, aggregates)
            if isinstance(document, bytes):
                reference = self._files.uri(
                    self._files.write(report_path(merchant_id, pipeline_date), document, "application/pdf")
                )
            else:
                reference = document
        except Exception as exc:
            failed = self._status.fail(record, str(exc), self._clock())
            logger.error("Report generation failed for merchant %s on %s (retry_count=%d): %s",
                         merchant_id, pipeline_date, failed.retry_count, exc)
            raise

        completed = self._status.complete(record, reference, self._clock())
        try:
            self._configs.set_last_completed_cycle_time(merchant_id, record.data_period_end)
        except ConfigNotFoundError:
            logger.warning("Settings for merchant %s removed mid-cycle; cycle time not advanced", merchant_id)
        logger.info("Report %s generated for merchant %s on %s", reference, merchant_id, pipeline_date)
        return _result(completed, f"Report generated for merchant {merchant_id}")
