"""TallyUp exception hierarchy."""

from __future__ import annotations

from typing import Any


class TallyUpError(Exception):
    """Base exception for all TallyUp errors."""

    def details(self) -> dict[str, Any]:
        """Structured context carried into error payloads."""
        return {}


class ValidationError(TallyUpError):
    """Malformed time string, merchant id or request payload."""


class InvalidTimezoneError(TallyUpError):
    """Timezone outside the supported US set."""

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"Unsupported timezone: {value!r}")

    def details(self) -> dict[str, Any]:
        return {"timezone": str(self.value)}


class ConfigNotFoundError(TallyUpError):
    """No schedule settings stored for the merchant."""

    def __init__(self, merchant_id: str) -> None:
        self.merchant_id = merchant_id
        super().__init__(f"No schedule settings for merchant {merchant_id}")

    def details(self) -> dict[str, Any]:
        return {"merchantId": self.merchant_id}


class DuplicateTriggerError(TallyUpError):
    """A trigger with this job name is already registered."""

    def __init__(self, job_name: str) -> None:
        self.job_name = job_name
        super().__init__(f"Trigger {job_name} already exists")

    def details(self) -> dict[str, Any]:
        return {"jobName": self.job_name}


class TriggerNotFoundError(TallyUpError):
    """The trigger execution service has no job with this name."""

    def __init__(self, job_name: str) -> None:
        self.job_name = job_name
        super().__init__(f"Trigger {job_name} does not exist")


class PartialPipelineFailure(TallyUpError):
    """Some, but not all, of a merchant's stage triggers were registered."""

    def __init__(self, merchant_id: str, succeeded: list[str], failed: dict[str, str]) -> None:
        self.merchant_id = merchant_id
        self.succeeded = succeeded
        self.failed = failed
        super().__init__(
            f"Pipeline for merchant {merchant_id} partially created: "
            f"{len(succeeded)} of {len(succeeded) + len(failed)} triggers registered"
        )

    def details(self) -> dict[str, Any]:
        return {"merchantId": self.merchant_id, "succeeded": self.succeeded, "failed": self.failed}


class PipelineError(TallyUpError):
    """Error raised by a stage handler."""


class NoPendingRecordError(PipelineError):
    """Stage invoked without the hand-off record from the previous stage."""

    def __init__(self, merchant_id: str, pipeline_date: Any, step: str, expected: str = "pending") -> None:
        self.merchant_id = merchant_id
        self.pipeline_date = pipeline_date
        self.step = step
        super().__init__(f"No {expected} {step} found for merchant {merchant_id} on {pipeline_date}")

    def details(self) -> dict[str, Any]:
        return {"merchantId": self.merchant_id, "pipelineDate": str(self.pipeline_date), "step": self.step}


class ClaimConflictError(PipelineError):
    """Another invocation claimed the stage record first."""

    def __init__(self, merchant_id: str, pipeline_date: Any, step: str) -> None:
        self.merchant_id = merchant_id
        self.pipeline_date = pipeline_date
        self.step = step
        super().__init__(f"{step} for merchant {merchant_id} on {pipeline_date} already claimed")

    def details(self) -> dict[str, Any]:
        return {"merchantId": self.merchant_id, "pipelineDate": str(self.pipeline_date), "step": self.step}


class UpstreamProviderError(PipelineError):
    """Sales data provider or report renderer call failed."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider} failed: {message}")

    def details(self) -> dict[str, Any]:
        return {"provider": self.provider}


class StorageError(TallyUpError):
    """Persistence backend (DynamoDB, S3, Redis) operation failed."""
