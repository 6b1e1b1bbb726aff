"""Pay run service - lifecycle manager for the current pay run."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payrun_engine.database import snapshot, transaction
from payrun_engine.errors import (
    InvalidTransitionError,
    NotEditableError,
    NotFoundError,
    ValidationFailedError,
)
from payrun_engine.models import AuditEvent, Employee, PayRun, PayRunItem
from payrun_engine.services.calculation_service import LineCalculationService
from payrun_engine.services.inputs import ItemPatch, NewItem
from payrun_engine.services.locking_service import LockingService
from payrun_engine.services.period_service import PeriodService
from payrun_engine.services.state_machine import PayRunStateMachine, PayRunStatus
from payrun_engine.services.summary_service import SummaryAggregator
from payrun_engine.services.validation_service import RunValidator, ValidationReport
from payrun_engine.services.views import (
    ItemPage,
    ItemUpdateResult,
    LineView,
    PeriodView,
    RunRecord,
    RunSummary,
    RunView,
    Totals,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200


class PayRunService:
    """Service for managing the current pay run.

    Every public method is one unit of work: it opens its own transaction,
    resolves the current run from the database, takes the row locks it needs,
    delegates to the calculation service and validator, and finishes with the
    summary aggregator before committing. Any failure rolls the whole call back.

    Operations:
    - get_current_run / get_current_run_summary / list_current_items /
      validate_current_run: reads
    - start_run / start_current_run: idempotent run creation
    - update_status / approve / post: state machine transitions
    - add_item / update_item / delete_item: Draft-only item mutations
    - recalc_line / recalculate_current_run: line recalculation
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_current_run(self) -> RunView:
        """Current run with period, items and totals.

        Returns an empty view (status None) when there is no current period or
        no run for it.
        """
        async with snapshot(self.session_factory) as session:
            periods = PeriodService(session)
            period = await periods.get_current_period()
            if period is None:
                return RunView()

            pay_run = await periods.get_latest_run(period.pay_period_id)
            if pay_run is None:
                return RunView(period=PeriodView.from_model(period))

            result = await session.execute(
                select(PayRunItem, Employee)
                .join(Employee, Employee.employee_id == PayRunItem.employee_id)
                .where(PayRunItem.pay_run_id == pay_run.pay_run_id)
                .order_by(Employee.last_name, Employee.first_name, PayRunItem.pay_run_item_id)
            )
            items = [LineView.from_model(item, employee) for item, employee in result.all()]

            return RunView(
                status=pay_run.status,
                pay_run_id=pay_run.pay_run_id,
                period=PeriodView.from_model(period),
                totals=Totals.from_run(pay_run),
                items=items,
                approved_by=pay_run.approved_by,
                approved_at=pay_run.approved_at,
            )

    async def get_current_run_summary(self) -> RunSummary:
        """Status, period and totals (including tax and deductions) of the current run.

        Returns an empty summary (status None, zero totals) when there is no
        current period or no run for it.
        """
        async with snapshot(self.session_factory) as session:
            periods = PeriodService(session)
            period = await periods.get_current_period()
            if period is None:
                return RunSummary()

            pay_run = await periods.get_latest_run(period.pay_period_id)
            if pay_run is None:
                return RunSummary(period=PeriodView.from_model(period))

            totals = await SummaryAggregator(session).summarize(pay_run.pay_run_id)
            return RunSummary(
                status=pay_run.status,
                pay_run_id=pay_run.pay_run_id,
                period=PeriodView.from_model(period),
                totals=totals,
            )

    async def list_current_items(
        self, search: str = "", limit: int = 25, offset: int = 0
    ) -> ItemPage:
        """Paged item list of the current run, searchable by employee name."""
        search = (search or "").strip()
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(offset, 0)

        async with snapshot(self.session_factory) as session:
            pay_run = await PeriodService(session).resolve_current_run()
            if pay_run is None:
                return ItemPage(items=[], total=0, search=search, limit=limit, offset=offset)

            conditions = [PayRunItem.pay_run_id == pay_run.pay_run_id]
            if search:
                pattern = f"%{search}%"
                conditions.append(
                    or_(Employee.first_name.ilike(pattern), Employee.last_name.ilike(pattern))
                )

            total = await session.scalar(
                select(func.count(PayRunItem.pay_run_item_id))
                .join(Employee, Employee.employee_id == PayRunItem.employee_id)
                .where(*conditions)
            ) or 0

            result = await session.execute(
                select(PayRunItem, Employee)
                .join(Employee, Employee.employee_id == PayRunItem.employee_id)
                .where(*conditions)
                .order_by(
                    Employee.last_name, Employee.first_name, PayRunItem.pay_run_item_id
                )
                .offset(offset)
                .limit(limit)
            )
            items = [LineView.from_model(item, employee) for item, employee in result.all()]

        return ItemPage(items=items, total=total, search=search, limit=limit, offset=offset)

    async def validate_current_run(self) -> ValidationReport:
        """Validation report for the current run."""
        async with snapshot(self.session_factory) as session:
            return await RunValidator(session).validate_current_run()

    # ------------------------------------------------------------------
    # Run creation
    # ------------------------------------------------------------------

    async def start_run(self, pay_period_id: UUID, actor_id: UUID | None = None) -> RunRecord:
        """Return the period's run, creating a Draft run if none exists."""
        async with transaction(self.session_factory) as session:
            ensured = await PeriodService(session).ensure_run(pay_period_id, actor_id)
            if ensured is None:
                raise NotFoundError(
                    f"Pay period {pay_period_id} not found",
                    {"pay_period_id": str(pay_period_id)},
                )
            pay_run, _ = ensured
            return RunRecord.from_model(pay_run)

    async def start_current_run(self, actor_id: UUID | None = None) -> RunRecord:
        """Start (or return) the run of the current period."""
        async with transaction(self.session_factory) as session:
            periods = PeriodService(session)
            period = await periods.get_current_period()
            if period is None:
                raise NotFoundError("No current period")
            ensured = await periods.ensure_run(period.pay_period_id, actor_id)
            if ensured is None:
                raise NotFoundError("No current period")
            pay_run, _ = ensured
            return RunRecord.from_model(pay_run)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def update_status(
        self,
        target_status: str,
        actor_id: UUID | None = None,
        allow_approved_to_draft: bool = False,
    ) -> RunRecord:
        """Move the current run to ``target_status``.

        Same-state requests are no-ops. Draft→Approved runs the validator
        first; Approved→Draft needs ``allow_approved_to_draft``. Anything else
        raises InvalidTransitionError.
        """
        async with transaction(self.session_factory) as session:
            pay_run = await self._lock_current_run(session)
            target = PayRunStateMachine.parse_status(target_status, pay_run.status)
            await self._transition(session, pay_run, target, actor_id, allow_approved_to_draft)
            return RunRecord.from_model(pay_run)

    async def approve(self, actor_id: UUID | None = None) -> RunRecord:
        """Approve the current run. Only Draft runs can be approved."""
        async with transaction(self.session_factory) as session:
            pay_run = await self._lock_current_run(session)
            if pay_run.status != PayRunStatus.DRAFT:
                raise InvalidTransitionError(
                    pay_run.status,
                    PayRunStatus.APPROVED,
                    "Only Draft runs can be approved",
                )
            await self._transition(session, pay_run, PayRunStatus.APPROVED, actor_id)
            return RunRecord.from_model(pay_run)

    async def post(self, actor_id: UUID | None = None) -> RunRecord:
        """Post the current run. Only Approved runs can be posted."""
        async with transaction(self.session_factory) as session:
            pay_run = await self._lock_current_run(session)
            if pay_run.status != PayRunStatus.APPROVED:
                raise InvalidTransitionError(
                    pay_run.status,
                    PayRunStatus.POSTED,
                    "Run must be Approved before it can be posted",
                )
            await self._transition(session, pay_run, PayRunStatus.POSTED, actor_id)
            return RunRecord.from_model(pay_run)

    async def _transition(
        self,
        session: AsyncSession,
        pay_run: PayRun,
        target: PayRunStatus,
        actor_id: UUID | None,
        allow_approved_to_draft: bool = False,
    ) -> None:
        """Apply a transition to a locked run.

        The predicate is evaluated against the locked row, so a caller that
        lost a race sees the winner's status and either no-ops or fails.
        """
        from_status = pay_run.status
        if PayRunStateMachine.is_noop(from_status, target):
            await SummaryAggregator(session).recompute_run_summary(pay_run.pay_run_id)
            return

        PayRunStateMachine.validate_transition(from_status, target, allow_approved_to_draft)

        if PayRunStateMachine.requires_validation(from_status, target):
            report = await RunValidator(session).validate_run(pay_run.pay_run_id)
            if not report.ok:
                logger.warning(
                    "Approval of pay run %s blocked by %d validation error(s)",
                    pay_run.pay_run_id,
                    len(report.errors),
                )
                raise ValidationFailedError(report.errors)

        if target == PayRunStatus.APPROVED and actor_id is None:
            raise ValidationFailedError(["Approval requires an acting user"])

        # Approval metadata is present exactly while the run is Approved
        if target == PayRunStatus.APPROVED:
            pay_run.approved_by = actor_id
            pay_run.approved_at = datetime.now(timezone.utc)
        else:
            pay_run.approved_by = None
            pay_run.approved_at = None

        pay_run.status = target.value
        await session.flush()

        await self._record_audit(
            session,
            entity_type="pay_run",
            entity_id=pay_run.pay_run_id,
            action=f"status_change:{from_status}:{target.value}",
            actor_id=actor_id,
            details={"rollback": True} if PayRunStateMachine.is_rollback(from_status, target) else None,
        )
        await SummaryAggregator(session).recompute_run_summary(pay_run.pay_run_id)
        logger.info(
            "Pay run %s moved %s -> %s by %s",
            pay_run.pay_run_id,
            from_status,
            target.value,
            actor_id,
        )

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    async def recalc_line(self, item_id: UUID) -> LineView | None:
        """Recalculate one line and the run totals. Returns None if the item does not exist."""
        async with transaction(self.session_factory) as session:
            locked = await LockingService(session).lock_item(item_id)
            if locked is None:
                return None
            item, pay_run = locked
            if not PayRunStateMachine.can_modify_items(pay_run.status):
                raise NotEditableError(pay_run.status, "recalculate items")

            line = await LineCalculationService(session).recalc_line(item_id)
            await SummaryAggregator(session).recompute_run_summary(pay_run.pay_run_id)
            return line

    async def recalculate_current_run(self) -> Totals:
        """Recalculate every line of the current run, then aggregate once."""
        async with transaction(self.session_factory) as session:
            pay_run = await self._lock_current_run(session)
            if not PayRunStateMachine.can_modify_items(pay_run.status):
                raise NotEditableError(pay_run.status, "recalculate items")

            items = await LockingService(session).lock_run_items(pay_run.pay_run_id)
            await LineCalculationService(session).recalc_items(items)
            totals = await SummaryAggregator(session).recompute_run_summary(pay_run.pay_run_id)
            logger.info("Recalculated %d line(s) of pay run %s", len(items), pay_run.pay_run_id)
            return totals

    # ------------------------------------------------------------------
    # Item mutations
    # ------------------------------------------------------------------

    async def add_item(self, payload: NewItem, actor_id: UUID | None = None) -> LineView:
        """Add a line to the current run (Draft only)."""
        async with transaction(self.session_factory) as session:
            pay_run = await self._lock_current_run(session)
            if not PayRunStateMachine.can_modify_items(pay_run.status):
                raise NotEditableError(pay_run.status, "add items")

            employee = await session.get(Employee, payload.employee_id)
            if employee is None:
                raise NotFoundError(
                    f"Employee {payload.employee_id} not found",
                    {"employee_id": str(payload.employee_id)},
                )

            rate = payload.rate
            if rate is None:
                rate = employee.hourly_rate if employee.hourly_rate is not None else 0

            item = PayRunItem(
                pay_run_id=pay_run.pay_run_id,
                employee_id=employee.employee_id,
                hours=payload.hours,
                rate=rate,
                ot_15_hours=payload.ot_15_hours,
                ot_20_hours=payload.ot_20_hours,
                allowance=payload.allowance,
                tax=payload.tax,
                super_amount=payload.super_amount,
                deductions_total=payload.deductions_total,
                note=payload.note,
                updated_by=actor_id,
            )
            LineCalculationService.apply(item)
            session.add(item)
            await session.flush()

            await self._record_audit(
                session,
                entity_type="pay_run_item",
                entity_id=item.pay_run_item_id,
                action="added",
                actor_id=actor_id,
                details={"pay_run_id": str(pay_run.pay_run_id)},
            )
            await SummaryAggregator(session).recompute_run_summary(pay_run.pay_run_id)
            return LineView.from_model(item, employee)

    async def update_item(
        self, item_id: UUID, patch: ItemPatch, actor_id: UUID | None = None
    ) -> ItemUpdateResult | None:
        """Apply a sparse patch to a line of the current run and recalculate.

        Returns None when the item does not exist, does not belong to the
        current run, or the run is not in Draft.
        """
        async with transaction(self.session_factory) as session:
            current_run_id = await PeriodService(session).resolve_current_run_id()
            if current_run_id is None:
                return None

            locked = await LockingService(session).lock_item(item_id)
            if locked is None:
                return None
            item, pay_run = locked
            if pay_run.pay_run_id != current_run_id:
                return None
            if not PayRunStateMachine.can_modify_items(pay_run.status):
                return None

            changes = patch.changes()
            for name, value in changes.items():
                setattr(item, name, value)
            item.updated_by = actor_id
            LineCalculationService.apply(item)
            await session.flush()

            summary = await SummaryAggregator(session).recompute_run_summary(pay_run.pay_run_id)

            await self._record_audit(
                session,
                entity_type="pay_run_item",
                entity_id=item_id,
                action="updated",
                actor_id=actor_id,
                details={name: str(value) for name, value in changes.items()},
            )

            employee = await session.get(Employee, item.employee_id)
            return ItemUpdateResult(
                line=LineView.from_model(item, employee),
                summary=summary,
            )

    async def delete_item(self, item_id: UUID, actor_id: UUID | None = None) -> bool:
        """Delete a line (Draft only).

        Deleting an item that does not exist succeeds. Returns True if a row
        was deleted.
        """
        async with transaction(self.session_factory) as session:
            locked = await LockingService(session).lock_item(item_id)
            if locked is None:
                return False
            item, pay_run = locked
            if not PayRunStateMachine.can_modify_items(pay_run.status):
                raise NotEditableError(pay_run.status, "delete items")

            await session.delete(item)
            await session.flush()

            await self._record_audit(
                session,
                entity_type="pay_run_item",
                entity_id=item_id,
                action="deleted",
                actor_id=actor_id,
                details={"pay_run_id": str(pay_run.pay_run_id)},
            )
            await SummaryAggregator(session).recompute_run_summary(pay_run.pay_run_id)
            return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _lock_current_run(self, session: AsyncSession) -> PayRun:
        """Resolve the current run and lock its row."""
        periods = PeriodService(session)
        period = await periods.get_current_period()
        if period is None:
            raise NotFoundError("No current period")

        current = await periods.get_latest_run(period.pay_period_id)
        if current is None:
            raise NotFoundError(
                "No pay run started for current period",
                {"pay_period_id": str(period.pay_period_id)},
            )

        pay_run = await LockingService(session).lock_run(current.pay_run_id)
        if pay_run is None:
            raise NotFoundError(f"Pay run {current.pay_run_id} not found")
        return pay_run

    async def _record_audit(
        self,
        session: AsyncSession,
        entity_type: str,
        entity_id: UUID,
        action: str,
        actor_id: UUID | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Record an audit event in the current transaction."""
        session.add(
            AuditEvent(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                actor_id=actor_id,
                details_json=details,
            )
        )
