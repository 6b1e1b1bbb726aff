"""Consistent read of one pay run for the export adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payrun_engine.database import snapshot
from payrun_engine.models import Employee, PayPeriod, PayRun, PayRunItem
from payrun_engine.services.period_service import PeriodService
from payrun_engine.services.views import Totals


@dataclass(frozen=True)
class SnapshotLine:
    """One item joined to the employee reference data exports need."""

    pay_run_item_id: UUID
    employee_id: UUID
    employee_number: str
    first_name: str
    last_name: str
    bsb: str | None
    account_number: str | None
    account_name: str | None
    hours: Decimal
    rate: Decimal
    ot_15_hours: Decimal
    ot_20_hours: Decimal
    allowance: Decimal
    gross: Decimal
    tax: Decimal
    super_amount: Decimal
    deductions_total: Decimal
    net: Decimal
    status: str
    note: str | None = None

    @property
    def employee_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def has_bank_details(self) -> bool:
        return bool(self.bsb and self.account_number)


@dataclass(frozen=True)
class RunSnapshot:
    """A run, its period, totals and lines as read in a single transaction."""

    pay_run_id: UUID
    status: str
    period_start: date
    period_end: date
    totals: Totals
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    lines: list[SnapshotLine] = field(default_factory=list)


async def load_run_snapshot(
    session_factory: async_sessionmaker[AsyncSession],
    pay_run_id: UUID | None = None,
) -> RunSnapshot | None:
    """Read a run (the current one by default) and its lines together.

    Totals and line detail come from the same read transaction, so they always
    describe the same version of the items. Returns None when there is no such
    run.
    """
    async with snapshot(session_factory) as session:
        if pay_run_id is None:
            pay_run = await PeriodService(session).resolve_current_run()
        else:
            pay_run = await session.get(PayRun, pay_run_id)
        if pay_run is None:
            return None

        period = await session.get(PayPeriod, pay_run.pay_period_id)

        result = await session.execute(
            select(PayRunItem, Employee)
            .join(Employee, Employee.employee_id == PayRunItem.employee_id)
            .where(PayRunItem.pay_run_id == pay_run.pay_run_id)
            .order_by(Employee.last_name, Employee.first_name, PayRunItem.pay_run_item_id)
        )
        lines = [
            SnapshotLine(
                pay_run_item_id=item.pay_run_item_id,
                employee_id=employee.employee_id,
                employee_number=employee.employee_number,
                first_name=employee.first_name,
                last_name=employee.last_name,
                bsb=employee.bsb,
                account_number=employee.account_number,
                account_name=employee.account_name,
                hours=item.hours,
                rate=item.rate,
                ot_15_hours=item.ot_15_hours,
                ot_20_hours=item.ot_20_hours,
                allowance=item.allowance,
                gross=item.gross,
                tax=item.tax,
                super_amount=item.super_amount,
                deductions_total=item.deductions_total,
                net=item.net,
                status=item.status,
                note=item.note,
            )
            for item, employee in result.all()
        ]

        return RunSnapshot(
            pay_run_id=pay_run.pay_run_id,
            status=pay_run.status,
            period_start=period.start_date,
            period_end=period.end_date,
            totals=Totals.from_run(pay_run),
            approved_by=pay_run.approved_by,
            approved_at=pay_run.approved_at,
            lines=lines,
        )
