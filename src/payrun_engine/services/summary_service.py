"""Summary aggregator: keeps run totals equal to the aggregate over its items."""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payrun_engine.calculators import LineCalculator, LineStatus
from payrun_engine.models import PayRun, PayRunItem
from payrun_engine.services.views import SummaryTotals, Totals


class SummaryAggregator:
    """Recomputes and persists a run's totals.

    Must run in the same transaction as every item insert, update or delete,
    after the item change, so readers never see totals from a different version
    of the items than the one committed.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def compute_totals(self, pay_run_id: UUID) -> Totals:
        """Aggregate the run's current items without writing anything."""
        # Pending item changes must be visible to the aggregate query
        await self.session.flush()

        result = await self.session.execute(
            select(
                func.count(PayRunItem.pay_run_item_id),
                func.coalesce(func.sum(PayRunItem.gross), 0),
                func.coalesce(func.sum(PayRunItem.net), 0),
                func.coalesce(
                    func.sum(case((PayRunItem.status == LineStatus.WARNING.value, 1), else_=0)),
                    0,
                ),
            ).where(PayRunItem.pay_run_id == pay_run_id)
        )
        employees, gross, net, warnings = result.one()
        return Totals(
            employees=int(employees or 0),
            gross=LineCalculator.round_to_cents(_as_decimal(gross)),
            net=LineCalculator.round_to_cents(_as_decimal(net)),
            warnings=int(warnings or 0),
        )

    async def summarize(self, pay_run_id: UUID) -> SummaryTotals:
        """Gross, tax, deductions and net over the run's items, per distinct employee count."""
        result = await self.session.execute(
            select(
                func.count(func.distinct(PayRunItem.employee_id)),
                func.coalesce(func.sum(PayRunItem.gross), 0),
                func.coalesce(func.sum(PayRunItem.tax), 0),
                func.coalesce(func.sum(PayRunItem.deductions_total), 0),
                func.coalesce(func.sum(PayRunItem.net), 0),
            ).where(PayRunItem.pay_run_id == pay_run_id)
        )
        employees, gross, tax, deductions, net = result.one()
        return SummaryTotals(
            employees=int(employees or 0),
            gross=LineCalculator.round_to_cents(_as_decimal(gross)),
            tax=LineCalculator.round_to_cents(_as_decimal(tax)),
            deductions=LineCalculator.round_to_cents(_as_decimal(deductions)),
            net=LineCalculator.round_to_cents(_as_decimal(net)),
        )

    async def recompute_run_summary(self, pay_run_id: UUID) -> Totals:
        """Recompute totals and write them onto the run row."""
        totals = await self.compute_totals(pay_run_id)

        pay_run = await self.session.get(PayRun, pay_run_id)
        if pay_run is None:
            raise ValueError(f"Pay run {pay_run_id} not found")

        pay_run.totals_employees = totals.employees
        pay_run.totals_gross = totals.gross
        pay_run.totals_net = totals.net
        pay_run.warnings = totals.warnings
        await self.session.flush()
        return totals


def _as_decimal(value: Any) -> Decimal:
    """Normalise aggregate results, which some drivers return as int or float."""
    return value if isinstance(value, Decimal) else Decimal(str(value or 0))
