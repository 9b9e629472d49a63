"""PipelineOrchestrator: per-merchant trigger configuration.

Public methods return typed payloads and never raise TallyUpError to the caller;
failures come back as ``ErrorResponse`` (or, for status, ``isConfigured: false``).
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import Any

from tallyup.core.config import PipelineConfig
from tallyup.core.exceptions import ConfigNotFoundError, PartialPipelineFailure, TallyUpError
from tallyup.core.protocols import IMerchantConfigStore, IPipelineStatusStore
from tallyup.core.types import Clock
from tallyup.models.api import (
    BulkSetupItem,
    BulkSetupRequest,
    BulkSetupResult,
    CreatePipelineRequest,
    DeletePipelineRequest,
    ErrorResponse,
    PipelineCreated,
    PipelineDeleted,
    PipelineRequest,
    PipelineResponse,
    PipelineStatus,
    StatusRequest,
    TriggerInfo,
    UpdatePipelineRequest,
    parse_request,
    validate_merchant_id,
)
from tallyup.models.schedule import MerchantScheduleConfig, PipelineStageRecord, StepName, StepStatus, Timezone
from tallyup.pipeline.stages import utcnow
from tallyup.scheduling.cron import compile_cron, parse_local_time
from tallyup.scheduling.job_names import all_job_names, current_job_names, handler_id
from tallyup.scheduling.timezones import local_date, local_now, to_utc
from tallyup.scheduling.trigger_registry import TriggerRegistry

logger = logging.getLogger(__name__)


def stage_delays(fetch_delay_minutes: int, report_delay_minutes: int) -> dict[StepName, int]:
    """Minutes after the base report time at which each stage fires."""
    return {
        StepName.SCHEDULE: 0,
        StepName.FETCH: fetch_delay_minutes,
        StepName.GENERATE: fetch_delay_minutes + report_delay_minutes,
    }


class PipelineOrchestrator:
    """Create, update, delete and inspect the three stage triggers of a merchant."""

    def __init__(
        self,
        *,
        registry: TriggerRegistry,
        config_store: IMerchantConfigStore,
        status_store: IPipelineStatusStore,
        defaults: PipelineConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._registry = registry
        self._configs = config_store
        self._status = status_store
        self._defaults = defaults or PipelineConfig()
        self._clock = clock

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def create_pipeline(self, merchant_id: str, report_time: str | time, timezone: str) -> PipelineResponse:
        try:
            return self._create(merchant_id, report_time, timezone)
        except TallyUpError as exc:
            logger.error("Create pipeline failed for merchant %s: %s", merchant_id, exc)
            return ErrorResponse.from_exception(exc)
        except Exception as exc:
            logger.exception("Create pipeline errored for merchant %s", merchant_id)
            return ErrorResponse.from_exception(exc)

    def update_pipeline(self, merchant_id: str, report_time: str | time, timezone: str) -> PipelineResponse:
        """Delete then create; not atomic."""
        try:
            merchant_id = validate_merchant_id(merchant_id)
            # Reject bad input before touching the existing triggers
            Timezone.parse(timezone)
            parse_local_time(report_time)
            self._delete(merchant_id)
            created = self._create(merchant_id, report_time, timezone)
        except TallyUpError as exc:
            logger.error("Update pipeline failed for merchant %s: %s", merchant_id, exc)
            return ErrorResponse.from_exception(exc)
        except Exception as exc:
            logger.exception("Update pipeline errored for merchant %s", merchant_id)
            return ErrorResponse.from_exception(exc)
        return created.model_copy(update={"action": "update", "message": f"Pipeline updated for merchant {merchant_id}"})

    def delete_pipeline(self, merchant_id: str) -> PipelineResponse:
        try:
            return self._delete(validate_merchant_id(merchant_id))
        except TallyUpError as exc:
            return ErrorResponse.from_exception(exc)
        except Exception as exc:
            logger.exception("Delete pipeline errored for merchant %s", merchant_id)
            return ErrorResponse.from_exception(exc)

    def get_status(self, merchant_id: Any) -> PipelineStatus:
        try:
            return self._status_of(validate_merchant_id(merchant_id))
        except Exception as exc:
            logger.warning("Status lookup failed for merchant %s: %s", merchant_id, exc)
            return PipelineStatus(success=False, merchant_id=str(merchant_id), is_configured=False, error=str(exc))

    def bulk_setup(self) -> PipelineResponse:
        """Recreate triggers for every merchant with stored settings."""
        try:
            merchant_ids = self._configs.list_merchant_ids()
        except TallyUpError as exc:
            logger.error("Bulk setup could not list merchants: %s", exc)
            return ErrorResponse.from_exception(exc)
        except Exception as exc:
            logger.exception("Bulk setup could not list merchants")
            return ErrorResponse.from_exception(exc)

        results = [self._setup_one(merchant_id) for merchant_id in merchant_ids]
        succeeded = sum(1 for item in results if item.success)
        message = f"Processed {len(results)} merchants: {succeeded} succeeded, {len(results) - succeeded} failed"
        logger.info(message)
        return BulkSetupResult(message=message, results=results)

    def sync_settings(self, config: MerchantScheduleConfig) -> PipelineResponse:
        """Persist settings; recompile triggers only when the schedule changed."""
        try:
            try:
                previous: MerchantScheduleConfig | None = self._configs.get(config.merchant_id)
            except ConfigNotFoundError:
                previous = None
            if previous is not None and config.last_completed_cycle_time is None:
                config = config.model_copy(
                    update={"last_completed_cycle_time": previous.last_completed_cycle_time}
                )
            self._configs.put(config)
        except TallyUpError as exc:
            return ErrorResponse.from_exception(exc)
        except Exception as exc:
            logger.exception("Settings sync errored for merchant %s", config.merchant_id)
            return ErrorResponse.from_exception(exc)

        if previous is not None and not previous.schedule_changed(config):
            logger.info("Schedule unchanged for merchant %s, triggers kept", config.merchant_id)
            return self.get_status(config.merchant_id)
        return self.update_pipeline(config.merchant_id, config.local_report_time, config.timezone.value)

    def handle(self, payload: Any) -> PipelineResponse:
        """Validate a raw tagged request body and dispatch it."""
        try:
            request = parse_request(payload)
        except TallyUpError as exc:
            return ErrorResponse.from_exception(exc)
        return self.dispatch(request)

    def dispatch(self, request: PipelineRequest) -> PipelineResponse:
        if isinstance(request, CreatePipelineRequest):
            return self.create_pipeline(request.merchant_id, request.report_time, request.timezone)
        if isinstance(request, UpdatePipelineRequest):
            return self.update_pipeline(request.merchant_id, request.report_time, request.timezone)
        if isinstance(request, DeletePipelineRequest):
            return self.delete_pipeline(request.merchant_id)
        if isinstance(request, StatusRequest):
            return self.get_status(request.merchant_id)
        if isinstance(request, BulkSetupRequest):
            return self.bulk_setup()
        raise TypeError(f"Unsupported request type {type(request).__name__}")

    # ------------------------------------------------------------------
    # Trigger compilation
    # ------------------------------------------------------------------

    def _delays_for(self, merchant_id: str) -> tuple[int, int]:
        try:
            config = self._configs.get(merchant_id)
        except ConfigNotFoundError:
            return self._defaults.default_fetch_delay_minutes, self._defaults.default_report_delay_minutes
        return config.fetch_delay_minutes, config.report_delay_minutes

    def compile_triggers(self, report_time: str | time, timezone: Timezone | str,
                         fetch_delay_minutes: int, report_delay_minutes: int) -> dict[StepName, str]:
        """Cron expression per stage, using the UTC offset in force today."""
        tz = Timezone.parse(timezone)
        reference = local_date(tz, self._clock())
        return {
            step: compile_cron(report_time, tz, delay, reference)
            for step, delay in stage_delays(fetch_delay_minutes, report_delay_minutes).items()
        }

    # ------------------------------------------------------------------
    # Internals (raise TallyUpError)
    # ------------------------------------------------------------------

    def _create(self, merchant_id: str, report_time: str | time, timezone: str) -> PipelineCreated:
        merchant_id = validate_merchant_id(merchant_id)
        tz = Timezone.parse(timezone)
        local_time = parse_local_time(report_time)
        crons = self.compile_triggers(local_time, tz, *self._delays_for(merchant_id))

        created: list[TriggerInfo] = []
        failed: dict[str, str] = {}
        first_error: Exception | None = None
        for step, name in current_job_names(merchant_id).items():
            try:
                trigger = self._registry.create(name, crons[step], merchant_id, handler_id(step))
            except Exception as exc:
                logger.error("Failed to register %s trigger %s: %s", step.value, name, exc)
                failed[step.value] = str(exc)
                first_error = first_error or exc
                continue
            created.append(TriggerInfo(
                stage=step.value,
                job_name=trigger.job_name,
                cron_expression=trigger.cron_expression,
                handler_id=trigger.handler_id,
            ))

        if first_error is not None:
            if not created:
                raise first_error
            raise PartialPipelineFailure(merchant_id, [t.stage for t in created], failed)

        logger.info("Pipeline created for merchant %s at %s %s", merchant_id, local_time.isoformat(), tz.value)
        return PipelineCreated(
            merchant_id=merchant_id,
            message=f"Pipeline created for merchant {merchant_id}",
            triggers=created,
        )

    def _delete(self, merchant_id: str) -> PipelineDeleted:
        deleted: list[str] = []
        failures: dict[str, str] = {}
        for name in all_job_names(merchant_id):
            try:
                if self._registry.delete(name):
                    deleted.append(name)
            except Exception as exc:
                logger.warning("Failed to delete trigger %s: %s", name, exc)
                failures[name] = str(exc)
        return PipelineDeleted(
            merchant_id=merchant_id,
            message=f"Removed {len(deleted)} triggers for merchant {merchant_id}",
            deleted=deleted,
            failures=failures,
        )

    def _setup_one(self, merchant_id: str) -> BulkSetupItem:
        shop_name: str | None = None
        try:
            config = self._configs.get(merchant_id)
            shop_name = config.shop_name or None
            self._delete(validate_merchant_id(merchant_id))
            created = self._create(merchant_id, config.local_report_time, config.timezone.value)
        except Exception as exc:
            # Isolated per merchant: record it and move on
            logger.error("Bulk setup failed for merchant %s: %s", merchant_id, exc)
            return BulkSetupItem(merchant_id=merchant_id, shop_name=shop_name, success=False, error=str(exc))
        logger.info("Bulk setup succeeded for merchant %s", merchant_id)
        return BulkSetupItem(merchant_id=merchant_id, shop_name=shop_name, success=True, triggers=created.triggers)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def next_run_time(self, config: MerchantScheduleConfig, now: datetime) -> datetime:
        """Today's local report time if still ahead, otherwise tomorrow's, in UTC."""
        local = local_now(config.timezone, now)
        candidate = datetime.combine(local.date(), config.local_report_time)
        if candidate <= local:
            candidate += timedelta(days=1)
        return to_utc(candidate, config.timezone)

    def _latest_run(self, config: MerchantScheduleConfig, now: datetime) -> list[PipelineStageRecord]:
        today = local_date(config.timezone, now)
        for pipeline_date in (today, today - timedelta(days=1)):
            records = self._status.list_for_date(config.merchant_id, pipeline_date)
            if records:
                return records
        return []

    def _status_of(self, merchant_id: str) -> PipelineStatus:
        try:
            config: MerchantScheduleConfig | None = self._configs.get(merchant_id)
        except ConfigNotFoundError:
            config = None

        triggers = {t.job_name: t for t in self._registry.list_for_merchant(merchant_id)}
        cron_expressions = {
            step.value: triggers[name].cron_expression
            for step, name in current_job_names(merchant_id).items()
            if name in triggers
        }
        status = PipelineStatus(
            merchant_id=merchant_id,
            is_configured=config is not None and bool(triggers),
            job_names=sorted(triggers),
            cron_expressions=cron_expressions,
        )
        if config is None:
            return status

        now = self._clock()
        updates: dict[str, Any] = {
            "last_completed_run": config.last_completed_cycle_time,
            "report_time": config.local_report_time,
            "timezone": config.timezone.value,
            "shop_name": config.shop_name or None,
        }
        if status.is_configured:
            updates["next_run_time"] = self.next_run_time(config, now)

        records = self._latest_run(config, now)
        if records:
            order = list(StepName)
            records.sort(key=lambda r: order.index(r.step_name))
            failed = [r for r in records if r.status == StepStatus.FAILED]
            latest = failed[0] if failed else records[-1]
            updates["last_run_date"] = latest.pipeline_date
            updates["last_run_status"] = f"{latest.step_name.value}:{latest.status.value}"
            updates["last_run_error"] = latest.error_message
        return status.model_copy(update=updates)
