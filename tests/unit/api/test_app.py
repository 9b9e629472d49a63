"""Tests for the FastAPI surface using TestClient and in-memory services."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from tallyup.api.app import create_app
from tallyup.pipeline.orchestrator import PipelineOrchestrator
from tallyup.pipeline.services import Services
from tallyup.pipeline.stages import StageHandlers
from tallyup.scheduling.trigger_registry import TriggerRegistry
from tests.fakes import (
    FakeClock,
    FakeRenderer,
    FakeSalesProvider,
    MemoryCacheBackend,
    MemoryFileStore,
    MemoryMerchantConfigStore,
    MemoryPipelineStatusStore,
    MemoryTriggerService,
    make_config,
)

CREATE = {"action": "create", "merchantId": "m1", "reportTime": "21:00:00", "timezone": "US/Eastern"}


@pytest.fixture
def backends():
    return {
        "configs": MemoryMerchantConfigStore(),
        "status": MemoryPipelineStatusStore(),
        "triggers": MemoryTriggerService(),
        "clock": FakeClock(datetime(2026, 7, 2, 1, 0, tzinfo=UTC)),
    }


def _services(backends, cache=None) -> Services:
    orchestrator = PipelineOrchestrator(
        registry=TriggerRegistry(backends["triggers"]),
        config_store=backends["configs"],
        status_store=backends["status"],
        clock=backends["clock"],
    )
    stages = StageHandlers(
        config_store=backends["configs"],
        status_store=backends["status"],
        sales_provider=FakeSalesProvider(),
        renderer=FakeRenderer(),
        file_store=MemoryFileStore(),
        clock=backends["clock"],
    )
    return Services(orchestrator, stages, cache)


@pytest.fixture
def client(backends):
    with TestClient(create_app(_services(backends, MemoryCacheBackend()))) as c:
        yield c


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_ready_with_cache(self, client):
        resp = client.get("/ready")
        assert resp.status_code == 200
        assert resp.json()["checks"] == {"cache": "ok"}

    def test_ready_without_cache(self, backends):
        with TestClient(create_app(_services(backends))) as c:
            assert c.get("/ready").json()["checks"] == {"cache": "disabled"}


class TestPipelineActions:
    def test_create(self, client, backends):
        resp = client.post("/pipelines/actions", json=CREATE)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert [t["jobName"] for t in body["triggers"]] == [
            "schedule-data-fetch-m1", "fetch-sales-data-m1", "generate-report-m1",
        ]
        assert len(backends["triggers"].job_names) == 3

    def test_invalid_timezone_is_400(self, client):
        resp = client.post("/pipelines/actions", json={**CREATE, "timezone": "Mars"})
        assert resp.status_code == 400
        assert resp.json()["errorType"] == "InvalidTimezoneError"

    def test_duplicate_is_409(self, client):
        client.post("/pipelines/actions", json=CREATE)
        resp = client.post("/pipelines/actions", json=CREATE)
        assert resp.status_code == 409

    def test_malformed_body_is_400(self, client):
        resp = client.post("/pipelines/actions", json={"action": "explode"})
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_status_of_unknown_merchant(self, client):
        resp = client.get("/pipelines/nobody/status")
        assert resp.status_code == 200
        assert resp.json()["isConfigured"] is False


class TestMerchantSettings:
    def test_put_settings_creates_triggers(self, client, backends):
        resp = client.put("/merchants/m1/settings", json={"shopName": "Harbor", "reportTime": "20:00:00"})
        assert resp.status_code == 200
        assert backends["configs"].get("m1").shop_name == "Harbor"
        assert len(backends["triggers"].job_names) == 3

    def test_bad_timezone(self, client):
        resp = client.put("/merchants/m1/settings", json={"timezone": "Moon"})
        assert resp.status_code == 400


class TestStages:
    def test_schedule_stage(self, client, backends):
        backends["configs"].put(make_config())
        resp = client.post("/stages/schedule-data-fetch", json={"merchantId": "m1"})
        assert resp.status_code == 200
        assert resp.json()["step"] == "fetch"

    def test_fetch_without_schedule_is_409(self, client, backends):
        backends["configs"].put(make_config())
        resp = client.post("/stages/fetch-sales-data", json={"merchantId": "m1"})
        assert resp.status_code == 409
        assert resp.json()["errorType"] == "NoPendingRecordError"

    def test_unknown_handler_is_400(self, client):
        resp = client.post("/stages/auto-report", json={"merchantId": "m1"})
        assert resp.status_code == 400
