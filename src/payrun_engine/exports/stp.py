"""Single Touch Payroll preview: per-employee gross, tax and super for a run."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from payrun_engine.exports.snapshot import RunSnapshot

# Tax file numbers are not held by this system
TFN_PLACEHOLDER = "000000000"


@dataclass(frozen=True)
class StpEmployee:
    employee_id: UUID
    name: str
    tfn: str
    gross: Decimal
    tax: Decimal
    super_amount: Decimal


@dataclass(frozen=True)
class StpTotals:
    gross: Decimal = Decimal("0.00")
    tax: Decimal = Decimal("0.00")
    super_amount: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class StpPreview:
    pay_run_id: UUID
    status: str
    employees: list[StpEmployee] = field(default_factory=list)
    totals: StpTotals = field(default_factory=StpTotals)


def build_stp_preview(run: RunSnapshot) -> StpPreview:
    """Summarise a run the way it would be reported, without lodging anything.

    An employee with more than one line in the run is reported once, with the
    amounts summed.
    """
    by_employee: dict[UUID, StpEmployee] = {}
    for line in run.lines:
        previous = by_employee.get(line.employee_id)
        if previous is None:
            by_employee[line.employee_id] = StpEmployee(
                employee_id=line.employee_id,
                name=line.employee_name,
                tfn=TFN_PLACEHOLDER,
                gross=line.gross,
                tax=line.tax,
                super_amount=line.super_amount,
            )
        else:
            by_employee[line.employee_id] = StpEmployee(
                employee_id=previous.employee_id,
                name=previous.name,
                tfn=previous.tfn,
                gross=previous.gross + line.gross,
                tax=previous.tax + line.tax,
                super_amount=previous.super_amount + line.super_amount,
            )

    employees = list(by_employee.values())
    totals = StpTotals(
        gross=sum((e.gross for e in employees), Decimal("0.00")),
        tax=sum((e.tax for e in employees), Decimal("0.00")),
        super_amount=sum((e.super_amount for e in employees), Decimal("0.00")),
    )
    return StpPreview(
        pay_run_id=run.pay_run_id,
        status=run.status,
        employees=employees,
        totals=totals,
    )
