"""Row-level locking primitives for pay run transactions.

Every lock is ``SELECT ... FOR UPDATE``: exclusive, held until the enclosing
transaction commits or rolls back. The run row is always locked before any of
its items, so concurrent writers queue on the run row first.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payrun_engine.models import PayPeriod, PayRun, PayRunItem


class LockingService:
    """Acquires exclusive row locks for the duration of the current transaction.

    Locked rows are always re-read from the database (``populate_existing``) so
    a caller that waited on a lock sees the winner's committed values, never a
    stale identity-map copy.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def lock_run(self, pay_run_id: UUID) -> PayRun | None:
        """Lock a pay run row. Returns None if the run does not exist."""
        result = await self.session.execute(
            select(PayRun)
            .where(PayRun.pay_run_id == pay_run_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def lock_item(self, item_id: UUID) -> tuple[PayRunItem, PayRun] | None:
        """Lock a pay run item together with its owning run, run row first.

        Returns None if the item does not exist (or was deleted while waiting
        on the run lock).
        """
        pay_run_id = await self.session.scalar(
            select(PayRunItem.pay_run_id).where(PayRunItem.pay_run_item_id == item_id)
        )
        if pay_run_id is None:
            return None

        pay_run = await self.lock_run(pay_run_id)
        if pay_run is None:
            return None

        result = await self.session.execute(
            select(PayRunItem)
            .where(
                PayRunItem.pay_run_item_id == item_id,
                PayRunItem.pay_run_id == pay_run_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        item = result.scalar_one_or_none()
        if item is None:
            return None
        return item, pay_run

    async def lock_run_items(self, pay_run_id: UUID) -> list[PayRunItem]:
        """Lock every item of a run, in primary key order."""
        result = await self.session.execute(
            select(PayRunItem)
            .where(PayRunItem.pay_run_id == pay_run_id)
            .order_by(PayRunItem.pay_run_item_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def lock_period(self, pay_period_id: UUID) -> PayPeriod | None:
        """Lock a pay period row. Returns None if the period does not exist."""
        result = await self.session.execute(
            select(PayPeriod)
            .where(PayPeriod.pay_period_id == pay_period_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
