"""Deterministic trigger job names and the history of naming schemes.

A merchant's triggers are found purely by name. When the naming changes, add the
old scheme to ``RETIRED_SCHEMES`` so delete and bulk setup keep cleaning it up.
"""

from __future__ import annotations

from pydantic import BaseModel

from tallyup.core.exceptions import ValidationError
from tallyup.models.schedule import StepName

HANDLER_IDS: dict[StepName, str] = {
    StepName.SCHEDULE: "schedule-data-fetch",
    StepName.FETCH: "fetch-sales-data",
    StepName.GENERATE: "generate-scheduled-report",
}


class JobNamingScheme(BaseModel):
    """One generation of job-name templates, keyed by what the job ran."""

    model_config = {"frozen": True}

    version: int
    templates: dict[str, str]

    def job_names(self, merchant_id: str) -> dict[str, str]:
        return {key: tmpl.format(merchant_id=merchant_id) for key, tmpl in self.templates.items()}


CURRENT_SCHEME = JobNamingScheme(
    version=2,
    templates={
        StepName.SCHEDULE.value: "schedule-data-fetch-{merchant_id}",
        StepName.FETCH.value: "fetch-sales-data-{merchant_id}",
        StepName.GENERATE.value: "generate-report-{merchant_id}",
    },
)

RETIRED_SCHEMES: tuple[JobNamingScheme, ...] = (
    # v1: a single job that fetched and rendered in one go
    JobNamingScheme(version=1, templates={"report": "auto-report-{merchant_id}"}),
)


def job_name(step: StepName, merchant_id: str) -> str:
    return CURRENT_SCHEME.job_names(merchant_id)[StepName(step).value]


def current_job_names(merchant_id: str) -> dict[StepName, str]:
    return {StepName(key): name for key, name in CURRENT_SCHEME.job_names(merchant_id).items()}


def retired_job_names(merchant_id: str) -> list[str]:
    names: list[str] = []
    for scheme in sorted(RETIRED_SCHEMES, key=lambda s: s.version):
        names.extend(scheme.job_names(merchant_id).values())
    return names


def all_job_names(merchant_id: str) -> list[str]:
    """Current names first, then every retired name."""
    return list(current_job_names(merchant_id).values()) + retired_job_names(merchant_id)


def handler_id(step: StepName) -> str:
    return HANDLER_IDS[StepName(step)]


def step_for_handler(handler: str) -> StepName:
    for step, hid in HANDLER_IDS.items():
        if hid == handler:
            return step
    raise ValidationError(f"Unknown stage handler {handler!r}")
