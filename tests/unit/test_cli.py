"""Tests for the tallyup command-line interface."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from tallyup.cli import build_parser, main
from tallyup.pipeline.orchestrator import PipelineOrchestrator
from tallyup.pipeline.services import Services
from tallyup.pipeline.stages import StageHandlers
from tallyup.scheduling.trigger_registry import TriggerRegistry
from tests.fakes import (
    FakeClock,
    FakeRenderer,
    FakeSalesProvider,
    MemoryFileStore,
    MemoryMerchantConfigStore,
    MemoryPipelineStatusStore,
    MemoryTriggerService,
)


@pytest.fixture
def triggers():
    return MemoryTriggerService()


@pytest.fixture
def services(triggers):
    clock = FakeClock(datetime(2026, 7, 1, 12, 0, tzinfo=UTC))
    configs = MemoryMerchantConfigStore()
    status = MemoryPipelineStatusStore()
    orchestrator = PipelineOrchestrator(
        registry=TriggerRegistry(triggers), config_store=configs, status_store=status, clock=clock,
    )
    stages = StageHandlers(
        config_store=configs, status_store=status, sales_provider=FakeSalesProvider(),
        renderer=FakeRenderer(), file_store=MemoryFileStore(), clock=clock,
    )
    return Services(orchestrator, stages)


def _run(capsys, services, *argv):
    code = main(list(argv), services=services)
    return code, json.loads(capsys.readouterr().out)


class TestCli:
    def test_create(self, capsys, services, triggers):
        code, payload = _run(capsys, services, "create", "m1", "--report-time", "21:00", "--timezone", "Eastern")
        assert code == 0
        assert payload["merchantId"] == "m1"
        assert len(triggers.job_names) == 3

    def test_error_exits_nonzero(self, capsys, services):
        code, payload = _run(capsys, services, "create", "m1", "--report-time", "25:00", "--timezone", "Eastern")
        assert code == 1
        assert payload["errorType"] == "ValidationError"

    def test_status_and_delete(self, capsys, services, triggers):
        _run(capsys, services, "create", "m1", "--report-time", "21:00", "--timezone", "US/Eastern")
        code, payload = _run(capsys, services, "status", "m1")
        assert code == 0
        assert payload["isConfigured"] is False  # no settings row

        code, payload = _run(capsys, services, "delete", "m1")
        assert code == 0
        assert len(payload["deleted"]) == 3
        assert triggers.job_names == set()

    def test_setup_all_with_no_merchants(self, capsys, services):
        code, payload = _run(capsys, services, "setup-all")
        assert code == 0
        assert payload["results"] == []

    def test_run_stage_error(self, capsys, services):
        code, payload = _run(capsys, services, "run-stage", "nope", "m1")
        assert code == 1
        assert payload["errorType"] == "ValidationError"

    def test_create_requires_timezone(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["create", "m1", "--report-time", "21:00"])
