"""Property-based tests for pay line and run total invariants.

These tests use hypothesis to generate random line inputs and random
sequences of add/update/delete operations, and verify after every step that
each line's gross and net follow the pay formula and that the run's persisted
totals equal the aggregate over its current items.
"""

from __future__ import annotations

import asyncio
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from payrun_engine.calculators import LineCalculator, LineInputs, LineStatus
from payrun_engine.database import create_session_factory, snapshot, transaction
from payrun_engine.models import Base, Employee, PayRunItem
from payrun_engine.services import ItemPatch, NewItem, PayRunService, PeriodService

CENTS = Decimal("0.01")

hours = st.decimals(min_value=Decimal("0"), max_value=Decimal("200"), places=2)
rates = st.decimals(min_value=Decimal("0"), max_value=Decimal("200"), places=2)
amounts = st.decimals(min_value=Decimal("0"), max_value=Decimal("5000"), places=2)

line_inputs = st.fixed_dictionaries(
    {
        "hours": hours,
        "rate": rates,
        "ot_15_hours": hours,
        "ot_20_hours": hours,
        "allowance": amounts,
        "tax": amounts,
        "super_amount": amounts,
        "deductions_total": amounts,
    }
)

patches = st.dictionaries(
    st.sampled_from(
        [
            "hours",
            "rate",
            "ot_15_hours",
            "ot_20_hours",
            "allowance",
            "tax",
            "super_amount",
            "deductions_total",
        ]
    ),
    st.decimals(min_value=Decimal("0"), max_value=Decimal("200"), places=2),
    min_size=1,
)

operations = st.lists(
    st.one_of(
        st.tuples(st.just("add"), st.integers(min_value=0, max_value=1), line_inputs),
        st.tuples(st.just("update"), st.integers(min_value=0, max_value=9), patches),
        st.tuples(st.just("delete"), st.integers(min_value=0, max_value=9), st.none()),
    ),
    min_size=1,
    max_size=8,
)


def expected_gross(line) -> Decimal:
    raw = (
        line.hours * line.rate
        + line.ot_15_hours * line.rate * Decimal("1.5")
        + line.ot_20_hours * line.rate * 2
        + line.allowance
    )
    return raw.quantize(CENTS, rounding=ROUND_HALF_UP)


def expected_net(line, gross: Decimal) -> Decimal:
    raw = gross - line.tax - line.super_amount - line.deductions_total
    return raw.quantize(CENTS, rounding=ROUND_HALF_UP)


class TestLineFormula:
    @given(inputs=line_inputs)
    @settings(max_examples=200)
    def test_gross_and_net_follow_formula(self, inputs: dict):
        line = LineInputs(**inputs)

        result = LineCalculator.calculate(line)

        assert result.gross == expected_gross(line)
        assert result.net == expected_net(line, result.gross)
        assert result.gross.as_tuple().exponent == -2
        assert result.net.as_tuple().exponent == -2
        is_warning = result.gross == 0 or result.net < 0
        assert (result.status == LineStatus.WARNING) == is_warning


async def assert_run_invariants(session_factory) -> None:
    async with snapshot(session_factory) as session:
        pay_run = await PeriodService(session).resolve_current_run()
        items = (
            await session.execute(
                select(PayRunItem).where(PayRunItem.pay_run_id == pay_run.pay_run_id)
            )
        ).scalars().all()

    for item in items:
        gross = expected_gross(item)
        assert item.gross == gross
        assert item.net == expected_net(item, gross)

    assert pay_run.totals_employees == len(items)
    assert pay_run.totals_gross == sum((i.gross for i in items), Decimal("0"))
    assert pay_run.totals_net == sum((i.net for i in items), Decimal("0"))
    assert pay_run.warnings == sum(1 for i in items if i.status == LineStatus.WARNING.value)


async def apply_operations(steps: list[tuple]) -> None:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        session_factory = create_session_factory(engine)
        service = PayRunService(session_factory)

        employees = [
            Employee(
                employee_number=f"E{n:03d}",
                first_name="Test",
                last_name=f"Employee {n}",
                hourly_rate=Decimal("25.00"),
            )
            for n in range(2)
        ]
        async with transaction(session_factory) as session:
            session.add_all(employees)
            await PeriodService(session).create_period(
                date(2026, 3, 2), date(2026, 3, 15), make_current=True
            )

        line_ids = []
        for kind, index, payload in steps:
            if kind == "add":
                line = await service.add_item(
                    NewItem(employee_id=employees[index].employee_id, **payload)
                )
                line_ids.append(line.line_id)
            elif kind == "update" and line_ids:
                result = await service.update_item(
                    line_ids[index % len(line_ids)], ItemPatch(**payload)
                )
                assert result is not None
            elif kind == "delete" and line_ids:
                assert await service.delete_item(line_ids.pop(index % len(line_ids))) is True

            await assert_run_invariants(session_factory)
    finally:
        await engine.dispose()


class TestRunTotals:
    @given(steps=operations)
    @settings(
        max_examples=30,
        deadline=None,
        suppress_health_check=[HealthCheck.too_slow],
    )
    def test_totals_equal_item_aggregate_after_every_mutation(self, steps: list[tuple]):
        asyncio.run(apply_operations(steps))
