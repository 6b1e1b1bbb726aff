"""Tests for the pay run lifecycle manager against an in-memory database."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import OperationalError

from payrun_engine.database import transaction
from payrun_engine.errors import (
    InvalidTransitionError,
    NotEditableError,
    NotFoundError,
    PersistenceError,
    ValidationFailedError,
)
from payrun_engine.models import AuditEvent, PayRun, PayRunItem
from payrun_engine.services import ItemPatch, NewItem, PeriodService, SummaryAggregator

pytestmark = pytest.mark.asyncio


async def assert_totals_match_items(session_factory, pay_run_id):
    """Persisted totals must equal the aggregate over the run's items."""
    async with transaction(session_factory) as session:
        run = await session.get(PayRun, pay_run_id)
        items = (
            await session.execute(select(PayRunItem).where(PayRunItem.pay_run_id == pay_run_id))
        ).scalars().all()
        assert run.totals_employees == len(items)
        assert run.totals_gross == sum((i.gross for i in items), Decimal("0"))
        assert run.totals_net == sum((i.net for i in items), Decimal("0"))
        assert run.warnings == sum(1 for i in items if i.status == "warning")


class TestCurrentRun:
    async def test_no_current_period_gives_empty_view(self, service):
        view = await service.get_current_run()

        assert view.status is None
        assert view.exists is False
        assert view.items == []
        assert view.totals.employees == 0

    async def test_standard_scenario(self, service, populated_run, session_factory):
        alice = populated_run["alice"]
        assert alice.gross == Decimal("1280.00")
        assert alice.net == Decimal("1000.00")
        assert alice.status == "ok"
        assert alice.employee_name == "Alice Anders"

        view = await service.get_current_run()

        assert view.status == "Draft"
        assert view.period.start == date(2026, 3, 2)
        assert view.totals.employees == 2
        assert view.totals.gross == Decimal("2560.00")
        assert view.totals.net == Decimal("2000.00")
        assert view.totals.warnings == 0
        assert [line.employee_name for line in view.items] == ["Alice Anders", "Bob Brown"]
        await assert_totals_match_items(session_factory, view.pay_run_id)

    async def test_list_current_items_search_and_paging(self, service, populated_run):
        page = await service.list_current_items(search="ALI")
        assert page.total == 1
        assert page.items[0].employee_name == "Alice Anders"

        page = await service.list_current_items(limit=1, offset=1)
        assert page.total == 2
        assert [line.employee_name for line in page.items] == ["Bob Brown"]

        page = await service.list_current_items(limit=10_000)
        assert page.limit == 200

    async def test_list_items_without_run(self, service):
        page = await service.list_current_items()

        assert page.items == []
        assert page.total == 0


class TestRunSummary:
    async def test_summary_without_period(self, service):
        summary = await service.get_current_run_summary()

        assert summary.status is None
        assert summary.period is None
        assert summary.totals.gross == Decimal("0.00")

    async def test_summary_includes_tax_and_deductions(self, service, populated_run, employees):
        await service.add_item(
            NewItem(
                employee_id=employees["alice"].employee_id,
                hours=Decimal("1"),
                deductions_total=Decimal("10"),
            )
        )

        summary = await service.get_current_run_summary()

        assert summary.status == "Draft"
        assert summary.period.end == date(2026, 3, 15)
        # Alice has two lines but is one employee
        assert summary.totals.employees == 2
        assert summary.totals.gross == Decimal("2590.00")
        assert summary.totals.tax == Decimal("400.00")
        assert summary.totals.deductions == Decimal("10.00")
        assert summary.totals.net == Decimal("2020.00")

        view = await service.get_current_run()
        assert view.totals.employees == 3


class TestStartRun:
    async def test_start_run_is_idempotent(self, service, session_factory):
        async with transaction(session_factory) as session:
            period = await PeriodService(session).create_period(
                date(2026, 4, 1), date(2026, 4, 14)
            )

        first = await service.start_run(period.pay_period_id)
        second = await service.start_run(period.pay_period_id)

        assert first.pay_run_id == second.pay_run_id
        assert first.status == "Draft"

    async def test_start_run_unknown_period(self, service):
        with pytest.raises(NotFoundError):
            await service.start_run(uuid4())

    async def test_start_current_run_requires_current_period(self, service):
        with pytest.raises(NotFoundError):
            await service.start_current_run()

    async def test_start_current_run_returns_existing(self, service, current_period):
        record = await service.start_current_run()
        view = await service.get_current_run()

        assert record.pay_run_id == view.pay_run_id


class TestStatusTransitions:
    async def test_approve_then_post(self, service, populated_run):
        actor = uuid4()

        approved = await service.approve(actor)
        assert approved.status == "Approved"
        assert approved.approved_by == actor
        assert approved.approved_at is not None

        posted = await service.post(actor)
        assert posted.status == "Posted"
        assert posted.approved_by is None
        assert posted.approved_at is None

    async def test_post_before_approval_fails(self, service, populated_run):
        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.post()
        assert exc_info.value.from_status == "Draft"

        with pytest.raises(InvalidTransitionError):
            await service.update_status("Posted")

        assert (await service.get_current_run()).status == "Draft"

    async def test_approve_requires_draft(self, service, populated_run):
        await service.approve(uuid4())

        with pytest.raises(InvalidTransitionError):
            await service.approve(uuid4())

    async def test_same_status_is_noop(self, service, populated_run):
        record = await service.update_status("Draft")

        assert record.status == "Draft"
        assert record.totals.employees == 2

    async def test_unknown_status(self, service, populated_run):
        with pytest.raises(InvalidTransitionError):
            await service.update_status("Paid")

    async def test_approval_blocked_by_validation(self, service, populated_run, employees):
        carol = await service.add_item(NewItem(employee_id=employees["carol"].employee_id))
        assert carol.rate == 0
        assert carol.status == "warning"

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.update_status("Approved")

        errors = exc_info.value.errors
        assert f"Item {carol.line_id}: zero hours and zero gross" in errors
        assert f"Employee {carol.employee_id}: no hourly rate and no gross set" in errors

        view = await service.get_current_run()
        assert view.status == "Draft"
        assert view.approved_at is None
        assert view.totals.warnings == 1

    async def test_approval_of_empty_run_fails(self, service, current_period):
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.approve(uuid4())

        assert exc_info.value.errors == ["No pay run items found"]

    async def test_approval_requires_actor(self, service, populated_run):
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.approve()
        assert exc_info.value.errors == ["Approval requires an acting user"]

        with pytest.raises(ValidationFailedError):
            await service.update_status("Approved")

        view = await service.get_current_run()
        assert view.status == "Draft"
        assert view.approved_by is None
        assert view.approved_at is None

    async def test_rollback_requires_flag(self, service, populated_run):
        await service.approve(uuid4())

        with pytest.raises(InvalidTransitionError):
            await service.update_status("Draft")

        record = await service.update_status("Draft", allow_approved_to_draft=True)
        assert record.status == "Draft"
        assert record.approved_by is None
        assert record.approved_at is None

    async def test_posted_is_terminal(self, service, populated_run):
        await service.approve(uuid4())
        await service.post()

        for target in ("Draft", "Approved"):
            with pytest.raises(InvalidTransitionError):
                await service.update_status(target, allow_approved_to_draft=True)

        assert (await service.update_status("Posted")).status == "Posted"

    async def test_commands_without_current_run(self, service):
        with pytest.raises(NotFoundError):
            await service.update_status("Approved")
        with pytest.raises(NotFoundError):
            await service.recalculate_current_run()

    async def test_transitions_are_audited(self, service, populated_run, session_factory):
        actor = uuid4()
        await service.approve(actor)

        async with transaction(session_factory) as session:
            actions = (
                await session.execute(
                    select(AuditEvent.action).where(AuditEvent.actor_id == actor)
                )
            ).scalars().all()

        assert "status_change:Draft:Approved" in actions


class TestItemMutations:
    async def test_add_item_defaults_rate_to_employee_rate(self, service, employees, current_period):
        line = await service.add_item(
            NewItem(employee_id=employees["alice"].employee_id, hours=Decimal("10"))
        )

        assert line.rate == Decimal("30.00")
        assert line.gross == Decimal("300.00")

    async def test_add_item_unknown_employee(self, service, current_period):
        with pytest.raises(NotFoundError):
            await service.add_item(NewItem(employee_id=uuid4()))

    async def test_add_item_requires_draft(self, service, populated_run, employees, make_line):
        await service.approve(uuid4())

        with pytest.raises(NotEditableError):
            await service.add_item(make_line(employees["carol"]))

    async def test_update_item_recalculates_line_and_totals(
        self, service, populated_run, session_factory
    ):
        actor = uuid4()
        alice = populated_run["alice"]

        result = await service.update_item(
            alice.line_id, ItemPatch(hours=Decimal("40"), note="extra shift"), actor
        )

        assert result.line.hours == Decimal("40")
        assert result.line.gross == Decimal("1340.00")
        assert result.line.net == Decimal("1060.00")
        assert result.line.note == "extra shift"
        assert result.line.updated_by == actor
        # Untouched fields keep their values
        assert result.line.tax == Decimal("200.00")
        assert result.summary.gross == Decimal("2620.00")
        assert result.summary.net == Decimal("2060.00")
        await assert_totals_match_items(session_factory, alice.pay_run_id)

    async def test_update_item_can_produce_warning(self, service, populated_run):
        result = await service.update_item(
            populated_run["bob"].line_id, ItemPatch(tax=Decimal("2000"))
        )

        assert result.line.net == Decimal("-720.00")
        assert result.line.status == "warning"
        assert result.summary.warnings == 1

    async def test_update_missing_item_returns_none(self, service, populated_run):
        assert await service.update_item(uuid4(), ItemPatch(hours=Decimal("1"))) is None

    async def test_update_item_outside_current_run_returns_none(
        self, service, populated_run, session_factory
    ):
        async with transaction(session_factory) as session:
            await PeriodService(session).create_period(
                date(2026, 3, 16), date(2026, 3, 29), make_current=True
            )

        result = await service.update_item(
            populated_run["alice"].line_id, ItemPatch(hours=Decimal("1"))
        )

        assert result is None

    async def test_update_item_in_approved_run_returns_none(self, service, populated_run):
        await service.approve(uuid4())

        result = await service.update_item(
            populated_run["alice"].line_id, ItemPatch(hours=Decimal("1"))
        )

        assert result is None
        view = await service.get_current_run()
        assert view.items[0].hours == Decimal("38.00")

    async def test_delete_item_is_idempotent(self, service, populated_run, session_factory):
        alice = populated_run["alice"]

        assert await service.delete_item(alice.line_id) is True
        assert await service.delete_item(alice.line_id) is False

        view = await service.get_current_run()
        assert view.totals.employees == 1
        assert view.totals.gross == Decimal("1280.00")
        await assert_totals_match_items(session_factory, alice.pay_run_id)

    async def test_delete_item_in_posted_run(self, service, populated_run):
        await service.approve(uuid4())
        await service.post()

        with pytest.raises(NotEditableError):
            await service.delete_item(populated_run["alice"].line_id)

        assert (await service.get_current_run()).totals.employees == 2


class TestRecalculation:
    async def tamper(self, session_factory, item_id=None, pay_run_id=None):
        async with transaction(session_factory) as session:
            if item_id is not None:
                await session.execute(
                    update(PayRunItem)
                    .where(PayRunItem.pay_run_item_id == item_id)
                    .values(gross=Decimal("1.00"), net=Decimal("1.00"))
                )
            if pay_run_id is not None:
                await session.execute(
                    update(PayRun)
                    .where(PayRun.pay_run_id == pay_run_id)
                    .values(totals_employees=99, totals_gross=Decimal("0"))
                )

    async def test_recalc_line(self, service, populated_run, session_factory):
        alice = populated_run["alice"]
        await self.tamper(session_factory, item_id=alice.line_id)

        line = await service.recalc_line(alice.line_id)

        assert line.gross == Decimal("1280.00")
        assert line.net == Decimal("1000.00")
        assert line.employee_name == "Alice Anders"
        await assert_totals_match_items(session_factory, alice.pay_run_id)

    async def test_recalc_missing_line(self, service, populated_run):
        assert await service.recalc_line(uuid4()) is None

    async def test_recalculate_current_run(self, service, populated_run, session_factory):
        alice = populated_run["alice"]
        await self.tamper(session_factory, item_id=alice.line_id, pay_run_id=alice.pay_run_id)

        totals = await service.recalculate_current_run()

        assert totals.employees == 2
        assert totals.gross == Decimal("2560.00")
        assert totals.net == Decimal("2000.00")
        await assert_totals_match_items(session_factory, alice.pay_run_id)

    async def test_recalculate_requires_draft(self, service, populated_run):
        await service.approve(uuid4())

        with pytest.raises(NotEditableError):
            await service.recalculate_current_run()
        with pytest.raises(NotEditableError):
            await service.recalc_line(populated_run["alice"].line_id)


class TestAtomicity:
    async def test_failure_rolls_back_whole_call(
        self, service, populated_run, employees, session_factory, monkeypatch, make_line
    ):
        async def failing_recompute(self, pay_run_id):
            raise OperationalError("UPDATE pay_run", {}, Exception("database is locked"))

        monkeypatch.setattr(SummaryAggregator, "recompute_run_summary", failing_recompute)

        with pytest.raises(PersistenceError) as exc_info:
            await service.add_item(make_line(employees["carol"]))
        assert exc_info.value.code == "PERSISTENCE_FAILURE"

        monkeypatch.undo()
        async with transaction(session_factory) as session:
            count = await session.scalar(select(func.count()).select_from(PayRunItem))
        assert count == 2
        await assert_totals_match_items(session_factory, populated_run["alice"].pay_run_id)
