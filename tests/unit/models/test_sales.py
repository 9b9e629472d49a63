"""Tests for sales rows and report aggregation."""

from __future__ import annotations

from decimal import Decimal

from tallyup.models.sales import EmployeeSales, ReportAggregates
from tests.fakes import sample_sales


class TestEmployeeSales:
    def test_parses_provider_payload(self):
        row = EmployeeSales.model_validate({
            "employeeId": "e9",
            "employeeName": "Cam",
            "totalSales": "99.95",
            "commissionAmount": 10,
        })
        assert row.employee_id == "e9"
        assert row.total_sales == Decimal("99.95")
        assert row.commission_amount == Decimal("10")


class TestReportAggregates:
    def test_groups_by_employee(self):
        aggregates = ReportAggregates.from_sales(sample_sales())
        by_id = {e.employee_id: e for e in aggregates.employees}
        assert by_id["e1"].total_sales == Decimal("200.00")
        assert by_id["e1"].commission_amount == Decimal("20.00")
        assert by_id["e1"].line_count == 2

    def test_sorted_by_commission_descending(self):
        aggregates = ReportAggregates.from_sales(sample_sales())
        assert [e.employee_id for e in aggregates.employees] == ["e2", "e1"]

    def test_grand_totals(self):
        aggregates = ReportAggregates.from_sales(sample_sales())
        assert aggregates.total_sales == Decimal("500.00")
        assert aggregates.total_commission == Decimal("65.00")

    def test_empty(self):
        aggregates = ReportAggregates.from_sales([])
        assert aggregates.employees == []
        assert aggregates.total_commission == Decimal("0")
