"""Seed a demo pay period, employees and a Draft run.

Usage:
    python -m scripts.seed_demo [--database-url URL]

Creates three employees (one without bank details), a current fortnightly
period starting on the most recent Monday, and a Draft run with one line per
employee. Running it again against a seeded database changes nothing.
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select

from payrun_engine.config import get_settings
from payrun_engine.database import create_session_factory, get_engine, transaction
from payrun_engine.models import Employee
from payrun_engine.services import NewItem, PayRunService, PeriodService

DEMO_EMPLOYEES = [
    {
        "employee_number": "E1001",
        "first_name": "Avery",
        "last_name": "Nguyen",
        "email": "avery.nguyen@example.com",
        "hourly_rate": Decimal("32.50"),
        "bsb": "062-000",
        "account_number": "12345678",
        "account_name": "A NGUYEN",
    },
    {
        "employee_number": "E1002",
        "first_name": "Jordan",
        "last_name": "Smith",
        "email": "jordan.smith@example.com",
        "hourly_rate": Decimal("28.00"),
        "bsb": "083-170",
        "account_number": "87654321",
        "account_name": "J SMITH",
    },
    {
        "employee_number": "E1003",
        "first_name": "Riley",
        "last_name": "Patel",
        "email": "riley.patel@example.com",
        "hourly_rate": Decimal("41.25"),
        "bsb": None,
        "account_number": None,
        "account_name": None,
    },
]

DEMO_HOURS = {
    "E1001": {"hours": Decimal("76"), "ot_15_hours": Decimal("4"), "tax": Decimal("520.00")},
    "E1002": {"hours": Decimal("60"), "allowance": Decimal("45.00"), "tax": Decimal("310.00")},
    "E1003": {"hours": Decimal("76"), "tax": Decimal("780.00"), "super_amount": Decimal("360.00")},
}


async def seed(database_url: str) -> None:
    """Insert demo data, skipping anything already present."""
    engine = get_engine(database_url)
    factory = create_session_factory(engine)
    try:
        async with transaction(factory) as session:
            existing = set(
                (await session.execute(select(Employee.employee_number))).scalars().all()
            )
            for data in DEMO_EMPLOYEES:
                if data["employee_number"] not in existing:
                    session.add(Employee(**data))

            periods = PeriodService(session)
            if await periods.get_current_period() is None:
                start = date.today() - timedelta(days=date.today().weekday())
                await periods.create_period(start, start + timedelta(days=13), make_current=True)
                print(f"Created current period starting {start.isoformat()}")

        service = PayRunService(factory)
        run = await service.get_current_run()
        if run.items:
            print(f"Current run already has {len(run.items)} item(s), leaving it alone")
            return

        async with transaction(factory) as session:
            employees = (
                await session.execute(select(Employee).order_by(Employee.employee_number))
            ).scalars().all()

        for employee in employees:
            inputs = DEMO_HOURS.get(employee.employee_number, {"hours": Decimal("38")})
            line = await service.add_item(NewItem(employee_id=employee.employee_id, **inputs))
            print(f"  {line.employee_name}: gross {line.gross}, net {line.net} ({line.status})")

        totals = (await service.get_current_run()).totals
        print(f"Run totals: {totals.employees} line(s), gross {totals.gross}, net {totals.net}")
    finally:
        await engine.dispose()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed demo pay run data")
    parser.add_argument(
        "--database-url",
        type=str,
        default=get_settings().database_url,
        help="Database URL (default: from settings)",
    )

    args = parser.parse_args()

    asyncio.run(seed(args.database_url))


if __name__ == "__main__":
    main()
