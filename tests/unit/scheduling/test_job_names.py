"""Tests for versioned trigger job naming."""

from __future__ import annotations

import pytest

from tallyup.core.exceptions import ValidationError
from tallyup.models.schedule import StepName
from tallyup.scheduling.job_names import (
    CURRENT_SCHEME,
    RETIRED_SCHEMES,
    all_job_names,
    current_job_names,
    handler_id,
    job_name,
    retired_job_names,
    step_for_handler,
)


class TestJobNames:
    def test_current_names(self):
        assert current_job_names("m1") == {
            StepName.SCHEDULE: "schedule-data-fetch-m1",
            StepName.FETCH: "fetch-sales-data-m1",
            StepName.GENERATE: "generate-report-m1",
        }

    def test_single_name(self):
        assert job_name(StepName.FETCH, "abc") == "fetch-sales-data-abc"

    def test_retired_names_include_legacy_single_job(self):
        assert retired_job_names("m1") == ["auto-report-m1"]

    def test_all_names_current_first(self):
        assert all_job_names("m1") == [
            "schedule-data-fetch-m1",
            "fetch-sales-data-m1",
            "generate-report-m1",
            "auto-report-m1",
        ]

    def test_current_scheme_is_newest(self):
        assert all(CURRENT_SCHEME.version > s.version for s in RETIRED_SCHEMES)


class TestHandlerIds:
    def test_handler_for_step(self):
        assert handler_id(StepName.GENERATE) == "generate-scheduled-report"

    @pytest.mark.parametrize("step", list(StepName))
    def test_step_for_handler_inverts(self, step):
        assert step_for_handler(handler_id(step)) is step

    def test_unknown_handler(self):
        with pytest.raises(ValidationError):
            step_for_handler("auto-report")
