"""Shared test doubles: re-export memory backends, plus provider fakes."""

from __future__ import annotations

from datetime import UTC, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from tallyup.models.sales import EmployeeSales, ReportAggregates
from tallyup.models.schedule import MerchantScheduleConfig, Timezone
from tallyup.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryFileStore,
    MemoryMerchantConfigStore,
    MemoryPipelineStatusStore,
    MemoryTriggerService,
)

__all__ = [
    "FakeClock",
    "FakeRenderer",
    "FakeSalesProvider",
    "MemoryCacheBackend",
    "MemoryFileStore",
    "MemoryMerchantConfigStore",
    "MemoryPipelineStatusStore",
    "MemoryTriggerService",
    "make_config",
    "sample_sales",
]


def make_config(merchant_id: str = "m1", **overrides: Any) -> MerchantScheduleConfig:
    fields: dict[str, Any] = {
        "merchant_id": merchant_id,
        "shop_name": f"Shop {merchant_id}",
        "local_report_time": time(21, 0),
        "timezone": Timezone.EASTERN,
    }
    fields.update(overrides)
    return MerchantScheduleConfig(**fields)


def sample_sales() -> list[EmployeeSales]:
    return [
        EmployeeSales(employee_id="e1", employee_name="Ana", total_sales=Decimal("120.00"),
                      commission_amount=Decimal("12.00")),
        EmployeeSales(employee_id="e2", employee_name="Ben", total_sales=Decimal("300.00"),
                      commission_amount=Decimal("45.00")),
        EmployeeSales(employee_id="e1", employee_name="Ana", total_sales=Decimal("80.00"),
                      commission_amount=Decimal("8.00")),
    ]


class FakeClock:
    """Settable UTC clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)

    @classmethod
    def at(cls, *args: int) -> FakeClock:
        return cls(datetime(*args, tzinfo=UTC))


class FakeSalesProvider:
    """ISalesDataProvider returning canned rows, or raising ``error``."""

    def __init__(self, rows: list[EmployeeSales] | None = None, error: Exception | None = None) -> None:
        self.rows = sample_sales() if rows is None else rows
        self.error = error
        self.calls: list[tuple[str, datetime, datetime]] = []

    def fetch(self, merchant_id: str, period_start: datetime, period_end: datetime) -> list[EmployeeSales]:
        self.calls.append((merchant_id, period_start, period_end))
        if self.error is not None:
            raise self.error
        return list(self.rows)


class FakeRenderer:
    """IReportRenderer returning ``result`` (URL or bytes)."""

    def __init__(self, result: str | bytes = b"%PDF-1.7 fake", error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[str, str, ReportAggregates]] = []

    def render(self, merchant_id: str, period_description: str, aggregates: ReportAggregates) -> str | bytes:
        self.calls.append((merchant_id, period_description, aggregates))
        if self.error is not None:
            raise self.error
        return self.result
