"""Tagged request/response payloads for the pipeline management surface.

Requests are discriminated on ``action`` and validated at the boundary;
every response carries ``success`` so callers never need exception handling.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from tallyup.core.exceptions import TallyUpError, ValidationError
from tallyup.models.schedule import MerchantScheduleConfig, Timezone

MerchantIdStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=128, pattern=r"^[A-Za-z0-9_-]+$"),
]

_MERCHANT_ID_ADAPTER: TypeAdapter[str] = TypeAdapter(MerchantIdStr)


def validate_merchant_id(value: Any) -> str:
    """Normalize a merchant id or raise ValidationError."""
    try:
        return _MERCHANT_ID_ADAPTER.validate_python(value)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid merchant id {value!r}") from exc


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _Request(_Payload):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class CreatePipelineRequest(_Request):
    action: Literal["create"] = "create"
    merchant_id: MerchantIdStr
    report_time: time
    timezone: str


class UpdatePipelineRequest(_Request):
    action: Literal["update"] = "update"
    merchant_id: MerchantIdStr
    report_time: time
    timezone: str


class DeletePipelineRequest(_Request):
    action: Literal["delete"] = "delete"
    merchant_id: MerchantIdStr


class StatusRequest(_Request):
    action: Literal["status"] = "status"
    merchant_id: MerchantIdStr


class BulkSetupRequest(_Request):
    action: Literal["setup_all"] = "setup_all"


class MerchantSettingsRequest(_Request):
    """Body of a settings write from the merchant dashboard."""

    shop_name: str = ""
    report_time: time = time(21, 0)
    timezone: str = "US/Eastern"
    fetch_delay_minutes: int = Field(default=1, ge=0)
    report_delay_minutes: int = Field(default=2, ge=0)

    def to_config(self, merchant_id: str) -> MerchantScheduleConfig:
        return MerchantScheduleConfig(
            merchant_id=validate_merchant_id(merchant_id),
            shop_name=self.shop_name,
            local_report_time=self.report_time,
            timezone=Timezone.parse(self.timezone),
            fetch_delay_minutes=self.fetch_delay_minutes,
            report_delay_minutes=self.report_delay_minutes,
        )


PipelineRequest = Annotated[
    Union[
        CreatePipelineRequest,
        UpdatePipelineRequest,
        DeletePipelineRequest,
        StatusRequest,
        BulkSetupRequest,
    ],
    Field(discriminator="action"),
]

_REQUEST_ADAPTER: TypeAdapter[PipelineRequest] = TypeAdapter(PipelineRequest)


def parse_request(payload: Any) -> PipelineRequest:
    """Validate a raw request body into its tagged request type."""
    try:
        return _REQUEST_ADAPTER.validate_python(payload)
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in exc.errors()
        )
        raise ValidationError(f"Invalid request: {problems}") from exc


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class TriggerInfo(_Payload):
    stage: str
    job_name: str
    cron_expression: str
    handler_id: str


class PipelineCreated(_Payload):
    success: Literal[True] = True
    action: str = "create"
    merchant_id: str
    message: str = ""
    triggers: list[TriggerInfo] = Field(default_factory=list)


class PipelineDeleted(_Payload):
    success: Literal[True] = True
    merchant_id: str
    message: str = ""
    deleted: list[str] = Field(default_factory=list)
    failures: dict[str, str] = Field(default_factory=dict)


class PipelineStatus(_Payload):
    success: bool = True
    merchant_id: str
    is_configured: bool
    job_names: list[str] = Field(default_factory=list)
    cron_expressions: dict[str, str] = Field(default_factory=dict)
    next_run_time: Optional[datetime] = None
    last_completed_run: Optional[datetime] = None
    report_time: Optional[time] = None
    timezone: Optional[str] = None
    shop_name: Optional[str] = None
    last_run_date: Optional[date] = None
    last_run_status: Optional[str] = None
    last_run_error: Optional[str] = None
    error: Optional[str] = None


class BulkSetupItem(_Payload):
    merchant_id: str
    shop_name: Optional[str] = None
    success: bool
    error: Optional[str] = None
    triggers: list[TriggerInfo] = Field(default_factory=list)


class BulkSetupResult(_Payload):
    success: Literal[True] = True
    message: str
    results: list[BulkSetupItem] = Field(default_factory=list)


class StageResult(_Payload):
    success: Literal[True] = True
    merchant_id: str
    step: str
    pipeline_date: Optional[date] = None
    status: Optional[str] = None
    data_period_start: Optional[datetime] = None
    data_period_end: Optional[datetime] = None
    result_ref: Optional[str] = None
    skipped: bool = False
    message: str = ""


class ErrorResponse(_Payload):
    success: Literal[False] = False
    error: str
    error_type: str
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: Exception) -> ErrorResponse:
        details = exc.details() if isinstance(exc, TallyUpError) else {}
        return cls(error=str(exc), error_type=type(exc).__name__, details=details)


PipelineResponse = Union[PipelineCreated, PipelineDeleted, PipelineStatus, BulkSetupResult, ErrorResponse]
