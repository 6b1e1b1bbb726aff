"""Line calculation service: recomputes one item's derived amounts in place."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from payrun_engine.calculators import LineAmounts, LineCalculator, LineInputs
from payrun_engine.models import Employee, PayRunItem
from payrun_engine.services.locking_service import LockingService
from payrun_engine.services.views import LineView


class LineCalculationService:
    """Recalculates pay lines from their own raw inputs.

    A line's gross, net and status depend only on that line's fields; sibling
    items are never read. Run totals are not touched here, callers follow up
    with the summary aggregator in the same transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.locking_service = LockingService(session)

    @staticmethod
    def apply(item: PayRunItem) -> LineAmounts:
        """Recompute and assign gross, net and status on an item."""
        amounts = LineCalculator.calculate(LineInputs.from_item(item))
        item.gross = amounts.gross
        item.net = amounts.net
        item.status = amounts.status.value
        return amounts

    async def recalc_line(self, item_id: UUID) -> LineView | None:
        """Lock, recalculate and persist one item. Returns None if it does not exist."""
        locked = await self.locking_service.lock_item(item_id)
        if locked is None:
            return None
        item, _ = locked
        self.apply(item)
        await self.session.flush()
        employee = await self.session.get(Employee, item.employee_id)
        return LineView.from_model(item, employee)

    async def recalc_items(self, items: list[PayRunItem]) -> int:
        """Recalculate already locked items. Returns the count recalculated."""
        for item in items:
            self.apply(item)
        await self.session.flush()
        return len(items)
