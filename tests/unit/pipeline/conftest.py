"""Fixtures wiring the orchestrator and stage handlers to in-memory backends."""

from __future__ import annotations

import pytest

from tallyup.pipeline.orchestrator import PipelineOrchestrator
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
def clock():
    # 08:00 in US/Eastern (DST)
    return FakeClock.at(2026, 7, 1, 12, 0)


@pytest.fixture
def configs():
    return MemoryMerchantConfigStore()


@pytest.fixture
def status():
    return MemoryPipelineStatusStore()


@pytest.fixture
def trigger_service():
    return MemoryTriggerService()


@pytest.fixture
def files():
    return MemoryFileStore()


@pytest.fixture
def sales():
    return FakeSalesProvider()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def orchestrator(trigger_service, configs, status, clock):
    return PipelineOrchestrator(
        registry=TriggerRegistry(trigger_service),
        config_store=configs,
        status_store=status,
        clock=clock,
    )


@pytest.fixture
def stages(configs, status, sales, renderer, files, clock):
    return StageHandlers(
        config_store=configs,
        status_store=status,
        sales_provider=sales,
        renderer=renderer,
        file_store=files,
        clock=clock,
    )
