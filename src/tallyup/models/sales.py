"""Sales rows returned by the POS provider and the aggregates handed to the renderer."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EmployeeSales(BaseModel):
    """One employee's sales for part of a report period."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    employee_id: str
    employee_name: str = ""
    total_sales: Decimal = Decimal("0")
    commission_amount: Decimal = Decimal("0")


class EmployeeCommission(BaseModel):
    """Per-employee totals for a report."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    employee_id: str
    employee_name: str = ""
    total_sales: Decimal = Decimal("0")
    commission_amount: Decimal = Decimal("0")
    line_count: int = 0


class ReportAggregates(BaseModel):
    """Commission totals for one merchant and period."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    employees: list[EmployeeCommission] = Field(default_factory=list)
    total_sales: Decimal = Decimal("0")
    total_commission: Decimal = Decimal("0")

    @classmethod
    def from_sales(cls, rows: list[EmployeeSales]) -> ReportAggregates:
        by_employee: dict[str, EmployeeCommission] = {}
        for row in rows:
            entry = by_employee.setdefault(
                row.employee_id,
                EmployeeCommission(employee_id=row.employee_id, employee_name=row.employee_name),
            )
            entry.total_sales += row.total_sales
            entry.commission_amount += row.commission_amount
            entry.line_count += 1
            if row.employee_name and not entry.employee_name:
                entry.employee_name = row.employee_name

        # Highest earners first, ties by name for stable output
        employees = sorted(
            by_employee.values(),
            key=lambda e: (-e.commission_amount, e.employee_name, e.employee_id),
        )
        return cls(
            employees=employees,
            total_sales=sum((e.total_sales for e in employees), Decimal("0")),
            total_commission=sum((e.commission_amount for e in employees), Decimal("0")),
        )
