"""Read-model views returned by pay run services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from payrun_engine.models import Employee, PayPeriod, PayRun, PayRunItem


@dataclass(frozen=True)
class PeriodView:
    """Pay period bounds."""

    pay_period_id: UUID
    start: date
    end: date
    is_current: bool

    @classmethod
    def from_model(cls, period: PayPeriod) -> PeriodView:
        return cls(
            pay_period_id=period.pay_period_id,
            start=period.start_date,
            end=period.end_date,
            is_current=period.is_current,
        )


@dataclass(frozen=True)
class Totals:
    """Run-level totals over the run's current items."""

    employees: int = 0
    gross: Decimal = Decimal("0.00")
    net: Decimal = Decimal("0.00")
    warnings: int = 0

    @classmethod
    def from_run(cls, run: PayRun) -> Totals:
        return cls(
            employees=run.totals_employees,
            gross=run.totals_gross,
            net=run.totals_net,
            warnings=run.warnings,
        )


@dataclass(frozen=True)
class SummaryTotals:
    """Payroll totals for reporting; ``employees`` counts distinct employees."""

    employees: int = 0
    gross: Decimal = Decimal("0.00")
    tax: Decimal = Decimal("0.00")
    deductions: Decimal = Decimal("0.00")
    net: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class RunSummary:
    """Current run status and period with totals, without the lines."""

    status: str | None = None
    pay_run_id: UUID | None = None
    period: PeriodView | None = None
    totals: SummaryTotals = field(default_factory=SummaryTotals)


@dataclass(frozen=True)
class LineView:
    """One pay line with its inputs and derived amounts."""

    line_id: UUID
    pay_run_id: UUID
    employee_id: UUID
    employee_name: str | None
    hours: Decimal
    rate: Decimal
    ot_15_hours: Decimal
    ot_20_hours: Decimal
    allowance: Decimal
    tax: Decimal
    super_amount: Decimal
    deductions_total: Decimal
    gross: Decimal
    net: Decimal
    status: str
    note: str | None = None
    updated_by: UUID | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, item: PayRunItem, employee: Employee | None = None) -> LineView:
        return cls(
            line_id=item.pay_run_item_id,
            pay_run_id=item.pay_run_id,
            employee_id=item.employee_id,
            employee_name=employee.full_name if employee is not None else None,
            hours=item.hours,
            rate=item.rate,
            ot_15_hours=item.ot_15_hours,
            ot_20_hours=item.ot_20_hours,
            allowance=item.allowance,
            tax=item.tax,
            super_amount=item.super_amount,
            deductions_total=item.deductions_total,
            gross=item.gross,
            net=item.net,
            status=item.status,
            note=item.note,
            updated_by=item.updated_by,
            updated_at=item.updated_at,
        )


@dataclass(frozen=True)
class RunView:
    """Current run: status, period bounds, items and totals.

    ``status`` is None when there is no run for the current period (or no
    current period at all); the other fields then hold an empty shape.
    """

    status: str | None = None
    pay_run_id: UUID | None = None
    period: PeriodView | None = None
    totals: Totals = field(default_factory=Totals)
    items: list[LineView] = field(default_factory=list)
    approved_by: UUID | None = None
    approved_at: datetime | None = None

    @property
    def exists(self) -> bool:
        return self.pay_run_id is not None


@dataclass(frozen=True)
class RunRecord:
    """A pay run row after a lifecycle command."""

    pay_run_id: UUID
    pay_period_id: UUID
    status: str
    approved_by: UUID | None
    approved_at: datetime | None
    created_by: UUID | None
    created_at: datetime
    totals: Totals

    @classmethod
    def from_model(cls, run: PayRun) -> RunRecord:
        return cls(
            pay_run_id=run.pay_run_id,
            pay_period_id=run.pay_period_id,
            status=run.status,
            approved_by=run.approved_by,
            approved_at=run.approved_at,
            created_by=run.created_by,
            created_at=run.created_at,
            totals=Totals.from_run(run),
        )


@dataclass(frozen=True)
class ItemPage:
    """Paged, searchable slice of the current run's items."""

    items: list[LineView]
    total: int
    search: str
    limit: int
    offset: int


@dataclass(frozen=True)
class ItemUpdateResult:
    """Refreshed line and run totals after an item patch."""

    line: LineView
    summary: Totals
