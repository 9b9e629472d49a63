"""Tests for the in-memory stage record store, including the claim race."""

from __future__ import annotations

import threading
from datetime import UTC, date, datetime

import pytest

from tallyup.core.exceptions import ConfigNotFoundError, StorageError, ValidationError
from tallyup.models.schedule import StepName, StepStatus
from tests.fakes import MemoryFileStore, MemoryMerchantConfigStore, MemoryPipelineStatusStore

DAY = date(2026, 7, 1)
START = datetime(2026, 6, 30, 1, 0, tzinfo=UTC)
END = datetime(2026, 7, 1, 1, 0, tzinfo=UTC)


class TestMemoryPipelineStatusStore:
    def test_concurrent_claims_have_one_winner(self):
        store = MemoryPipelineStatusStore()
        record = store.create_pending("m1", DAY, StepName.FETCH, START, END)
        barrier = threading.Barrier(8)
        results: list[bool] = []

        def contend():
            barrier.wait()
            results.append(store.claim(record, END) is not None)

        threads = [threading.Thread(target=contend) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results.count(True) == 1
        assert store.get("m1", DAY, StepName.FETCH).status is StepStatus.IN_PROGRESS

    def test_fail_twice_requires_reclaim(self):
        store = MemoryPipelineStatusStore()
        record = store.create_pending("m1", DAY, StepName.FETCH, START, END)
        store.claim(record, END)
        store.fail(record, "boom", END)
        with pytest.raises(StorageError):
            store.fail(record, "boom", END)

    def test_get_returns_copies(self):
        store = MemoryPipelineStatusStore()
        store.create_pending("m1", DAY, StepName.FETCH, START, END)
        copy = store.get("m1", DAY, StepName.FETCH)
        copy.status = StepStatus.COMPLETED
        assert store.get("m1", DAY, StepName.FETCH).status is StepStatus.PENDING


class TestMemoryMerchantConfigStore:
    def test_seeded_invalid_row(self):
        store = MemoryMerchantConfigStore()
        store.seed({"merchant_id": "bad", "timezone": "Mars/Olympus"})
        with pytest.raises(ValidationError):
            store.get("bad")

    def test_missing(self):
        with pytest.raises(ConfigNotFoundError):
            MemoryMerchantConfigStore().set_last_completed_cycle_time("nobody", END)


class TestMemoryFileStore:
    def test_read_missing(self):
        with pytest.raises(StorageError):
            MemoryFileStore().read("sales/x.json")
