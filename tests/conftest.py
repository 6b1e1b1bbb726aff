"""Pytest fixtures for pay run engine tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payrun_engine.config import Settings
from payrun_engine.database import create_session_factory, transaction
from payrun_engine.models import Base, Employee
from payrun_engine.services import NewItem, PayRunService, PeriodService

# In-memory SQLite shared by every connection of one engine.
# Row locks compile to nothing here; lock semantics need PostgreSQL.
TEST_DATABASE_URL = "sqlite+aiosqlite://"

PERIOD_START = date(2026, 3, 2)
PERIOD_END = date(2026, 3, 15)


@pytest.fixture
def settings() -> Settings:
    """Settings with fixed export values."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        db_pool_size=1,
        db_max_overflow=0,
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="INFO",
        employer_name="Acme Pty Ltd",
        bank_file_format="aba",
        bank_abbreviation="CBA",
        bank_user_name="ACME PAYROLL",
        bank_user_id="301500",
        bank_trace_bsb="062-000",
        bank_trace_account="11112222",
        bank_description="PAYROLL",
    )


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return create_session_factory(engine)


@pytest.fixture
def service(session_factory: async_sessionmaker[AsyncSession]) -> PayRunService:
    return PayRunService(session_factory)


@pytest_asyncio.fixture
async def employees(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, Employee]:
    """Two employees with rates and bank details, one without either."""
    rows = {
        "alice": Employee(
            employee_number="E001",
            first_name="Alice",
            last_name="Anders",
            hourly_rate=Decimal("30.00"),
            bsb="062-000",
            account_number="12345678",
            account_name="ALICE ANDERS",
        ),
        "bob": Employee(
            employee_number="E002",
            first_name="Bob",
            last_name="Brown",
            hourly_rate=Decimal("30.00"),
            bsb="083170",
            account_number="87654321",
        ),
        "carol": Employee(
            employee_number="E003",
            first_name="Carol",
            last_name="Clark",
            hourly_rate=None,
        ),
    }
    async with transaction(session_factory) as session:
        session.add_all(rows.values())
    return rows


@pytest_asyncio.fixture
async def current_period(session_factory: async_sessionmaker[AsyncSession]):
    """A current period with its Draft run."""
    async with transaction(session_factory) as session:
        return await PeriodService(session).create_period(
            PERIOD_START, PERIOD_END, make_current=True
        )


def standard_line(employee: Employee) -> NewItem:
    """38 ordinary hours, 2 hours at time and a half, $50 allowance, $200 tax, $80 super."""
    return NewItem(
        employee_id=employee.employee_id,
        hours=Decimal("38"),
        ot_15_hours=Decimal("2"),
        allowance=Decimal("50"),
        tax=Decimal("200"),
        super_amount=Decimal("80"),
    )


@pytest_asyncio.fixture
async def populated_run(
    service: PayRunService,
    employees: dict[str, Employee],
    current_period,
) -> dict:
    """Current Draft run with the standard line for Alice and Bob."""
    alice = await service.add_item(standard_line(employees["alice"]))
    bob = await service.add_item(standard_line(employees["bob"]))
    return {"alice": alice, "bob": bob}


@pytest.fixture
def make_line():
    """Factory for the standard line of a given employee."""
    return standard_line
