"""Period registry: pay periods, the current-period pointer and run resolution."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payrun_engine.models import AuditEvent, PayPeriod, PayRun
from payrun_engine.services.locking_service import LockingService
from payrun_engine.services.state_machine import PayRunStatus

logger = logging.getLogger(__name__)


class PeriodService:
    """Service for pay periods and the runs that belong to them.

    The current run is always resolved from the database: the current period,
    then the latest run for that period. Nothing is cached between calls.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.locking_service = LockingService(session)

    async def list_periods(self) -> list[PayPeriod]:
        """List all periods, newest first."""
        result = await self.session.execute(
            select(PayPeriod).order_by(PayPeriod.start_date.desc())
        )
        return list(result.scalars().all())

    async def get_period(self, pay_period_id: UUID) -> PayPeriod | None:
        """Load a period by id."""
        return await self.session.get(PayPeriod, pay_period_id)

    async def get_current_period(self) -> PayPeriod | None:
        """Get the period flagged as current, if any."""
        result = await self.session.execute(
            select(PayPeriod)
            .where(PayPeriod.is_current.is_(True))
            .order_by(PayPeriod.start_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_latest_run(self, pay_period_id: UUID) -> PayRun | None:
        """Get the most recently created run for a period."""
        result = await self.session.execute(
            select(PayRun)
            .where(PayRun.pay_period_id == pay_period_id)
            .order_by(PayRun.created_at.desc(), PayRun.pay_run_id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def resolve_current_run(self) -> PayRun | None:
        """Resolve the run of the current period (None if no period or no run)."""
        period = await self.get_current_period()
        if period is None:
            return None
        return await self.get_latest_run(period.pay_period_id)

    async def resolve_current_run_id(self) -> UUID | None:
        """Resolve only the id of the current run."""
        pay_run = await self.resolve_current_run()
        return pay_run.pay_run_id if pay_run is not None else None

    async def create_period(
        self,
        start_date: date,
        end_date: date,
        make_current: bool = False,
        actor_id: UUID | None = None,
    ) -> PayPeriod:
        """Create a period, optionally making it the current one."""
        if end_date < start_date:
            raise ValueError("end_date must be on or after start_date")

        if make_current:
            await self._clear_current()

        period = PayPeriod(start_date=start_date, end_date=end_date, is_current=make_current)
        self.session.add(period)
        await self.session.flush()

        if make_current:
            await self.ensure_run(period.pay_period_id, actor_id)
        return period

    async def set_current(
        self, pay_period_id: UUID, actor_id: UUID | None = None
    ) -> PayPeriod | None:
        """Make a period current and make sure it has a run.

        Returns None if the period does not exist.
        """
        period = await self.locking_service.lock_period(pay_period_id)
        if period is None:
            return None

        if not period.is_current:
            await self._clear_current()
            period.is_current = True
            await self.session.flush()

        await self.ensure_run(pay_period_id, actor_id)
        return period

    async def ensure_run(
        self, pay_period_id: UUID, actor_id: UUID | None = None
    ) -> tuple[PayRun, bool] | None:
        """Return the period's run, creating a Draft run if it has none.

        The period row is locked first so concurrent callers cannot both create
        a run. Returns (run, created), or None if the period does not exist.
        """
        period = await self.locking_service.lock_period(pay_period_id)
        if period is None:
            return None

        existing = await self.get_latest_run(pay_period_id)
        if existing is not None:
            return existing, False

        pay_run = PayRun(
            pay_period_id=pay_period_id,
            status=PayRunStatus.DRAFT.value,
            created_by=actor_id,
        )
        self.session.add(pay_run)
        await self.session.flush()
        self.session.add(
            AuditEvent(
                entity_type="pay_run",
                entity_id=pay_run.pay_run_id,
                action="created",
                actor_id=actor_id,
                details_json={"pay_period_id": str(pay_period_id)},
            )
        )
        logger.info("Created pay run %s for period %s", pay_run.pay_run_id, pay_period_id)
        return pay_run, True

    async def _clear_current(self) -> None:
        await self.session.execute(
            update(PayPeriod)
            .where(PayPeriod.is_current.is_(True))
            .values(is_current=False)
        )
