"""Merchant schedule settings, pipeline stage records and trigger models."""

from __future__ import annotations

from datetime import date, datetime, time
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from tallyup.core.exceptions import InvalidTimezoneError


class Timezone(StrEnum):
    """Supported merchant timezones, stored by their tz database alias."""

    EASTERN = "US/Eastern"
    CENTRAL = "US/Central"
    MOUNTAIN = "US/Mountain"
    PACIFIC = "US/Pacific"
    ALASKA = "US/Alaska"
    HAWAII = "US/Hawaii"

    @classmethod
    def parse(cls, value: Any) -> Timezone:
        """Accept ``US/Eastern``, ``Eastern`` or ``EASTERN``; anything else is rejected."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for tz in cls:
                if key in (tz.value.lower(), tz.value.split("/", 1)[1].lower(), tz.name.lower()):
                    return tz
        raise InvalidTimezoneError(value)

    @property
    def observes_dst(self) -> bool:
        return self is not Timezone.HAWAII


class StepName(StrEnum):
    SCHEDULE = "schedule"
    FETCH = "fetch"
    GENERATE = "generate"

    @property
    def next_step(self) -> Optional[StepName]:
        order = list(StepName)
        idx = order.index(self)
        return order[idx + 1] if idx + 1 < len(order) else None


class StepStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class MerchantScheduleConfig(BaseModel):
    """Report schedule settings owned by a merchant."""

    merchant_id: str = Field(min_length=1)
    shop_name: str = ""
    local_report_time: time = time(21, 0)
    timezone: Timezone = Timezone.EASTERN
    fetch_delay_minutes: int = Field(default=1, ge=0)
    report_delay_minutes: int = Field(default=2, ge=0)
    last_completed_cycle_time: Optional[datetime] = None

    @field_validator("timezone", mode="before")
    @classmethod
    def _coerce_timezone(cls, value: Any) -> Timezone:
        try:
            return Timezone.parse(value)
        except InvalidTimezoneError as exc:
            raise ValueError(str(exc)) from exc

    def schedule_changed(self, other: MerchantScheduleConfig) -> bool:
        """True when ``other`` would compile to different triggers."""
        return (
            self.local_report_time != other.local_report_time
            or self.timezone != other.timezone
            or self.fetch_delay_minutes != other.fetch_delay_minutes
            or self.report_delay_minutes != other.report_delay_minutes
        )


class PipelineStageRecord(BaseModel):
    """Persisted hand-off record for one stage of one merchant's pipeline date."""

    merchant_id: str
    pipeline_date: date
    step_name: StepName
    status: StepStatus = StepStatus.PENDING
    data_period_start: datetime
    data_period_end: datetime
    retry_count: int = Field(default=0, ge=0)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    result_ref: Optional[str] = None

    @property
    def key(self) -> tuple[str, date, StepName]:
        return (self.merchant_id, self.pipeline_date, self.step_name)


class Trigger(BaseModel):
    """A named recurring trigger bound to a stage handler."""

    job_name: str
    cron_expression: str
    merchant_id: str
    handler_id: str
