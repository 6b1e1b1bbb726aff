"""Run validator: pass/fail decision gating the Approve transition."""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payrun_engine.models import Employee, PayRunItem
from payrun_engine.services.period_service import PeriodService


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of validating a run; errors are accumulated, never short-circuited."""

    ok: bool
    errors: list[str] = field(default_factory=list)
    pay_run_id: UUID | None = None

    @classmethod
    def from_errors(cls, errors: list[str], pay_run_id: UUID | None = None) -> ValidationReport:
        return cls(ok=not errors, errors=list(errors), pay_run_id=pay_run_id)


class RunValidator:
    """Inspects every item of a run and reports every defect found.

    Checks:
    - a current period exists
    - a run exists for the current period
    - the run has at least one item
    - no item has both zero hours and zero gross
    - every item's employee has a configured hourly rate, or the item a gross
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def validate_current_run(self) -> ValidationReport:
        """Validate the run of the current period."""
        periods = PeriodService(self.session)
        period = await periods.get_current_period()
        if period is None:
            return ValidationReport.from_errors(["No current period found"])

        pay_run = await periods.get_latest_run(period.pay_period_id)
        if pay_run is None:
            return ValidationReport.from_errors(["No pay run started for current period"])

        return await self.validate_run(pay_run.pay_run_id)

    async def validate_run(self, pay_run_id: UUID) -> ValidationReport:
        """Validate the items of one run."""
        # Pending item changes must be visible to the item query
        await self.session.flush()

        result = await self.session.execute(
            select(PayRunItem, Employee.hourly_rate)
            .outerjoin(Employee, Employee.employee_id == PayRunItem.employee_id)
            .where(PayRunItem.pay_run_id == pay_run_id)
            .order_by(PayRunItem.created_at, PayRunItem.pay_run_item_id)
        )
        rows = result.all()

        errors: list[str] = []
        if not rows:
            errors.append("No pay run items found")

        for item, hourly_rate in rows:
            no_gross = not item.gross
            if not item.hours and no_gross:
                errors.append(f"Item {item.pay_run_item_id}: zero hours and zero gross")
            if not hourly_rate and no_gross:
                errors.append(f"Employee {item.employee_id}: no hourly rate and no gross set")

        return ValidationReport.from_errors(errors, pay_run_id)
