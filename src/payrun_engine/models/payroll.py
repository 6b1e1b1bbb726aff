"""Pay period, pay run and pay run item models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payrun_engine.models.base import Base, TimestampMixin, UpdatedAtMixin

if TYPE_CHECKING:
    from payrun_engine.models.employee import Employee


MONEY = Numeric(12, 2)
HOURS = Numeric(8, 2)


# ===== Pay Periods =====


class PayPeriod(Base, TimestampMixin):
    """Pay period; at most one period is current at any time."""

    __tablename__ = "pay_period"

    pay_period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="pay_period_dates_check"),
        Index(
            "pay_period_single_current",
            "is_current",
            unique=True,
            postgresql_where=text("is_current"),
            sqlite_where=text("is_current = 1"),
        ),
    )

    # Relationships
    runs: Mapped[list[PayRun]] = relationship(back_populates="pay_period")


# ===== Pay Runs =====


class PayRun(Base, TimestampMixin, UpdatedAtMixin):
    """Payroll run for a period, with persisted totals over its items."""

    __tablename__ = "pay_run"

    pay_run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_period_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_period.pay_period_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(String, nullable=False, default="Draft")
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Totals, kept equal to the aggregate over items by the summary aggregator
    totals_employees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    totals_gross: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    totals_net: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    warnings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint(
            "status IN ('Draft', 'Approved', 'Posted')",
            name="pay_run_status_check",
        ),
    )

    # Relationships
    pay_period: Mapped[PayPeriod] = relationship(back_populates="runs")
    items: Mapped[list[PayRunItem]] = relationship(
        back_populates="pay_run",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class PayRunItem(Base, TimestampMixin, UpdatedAtMixin):
    """One employee's pay line within a run."""

    __tablename__ = "pay_run_item"

    pay_run_item_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_run.pay_run_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Raw inputs
    hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=Decimal("0"))
    rate: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    ot_15_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=Decimal("0"))
    ot_20_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=Decimal("0"))
    allowance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    super_amount: Mapped[Decimal] = mapped_column(
        "super", MONEY, nullable=False, default=Decimal("0")
    )
    deductions_total: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Derived outputs
    gross: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    net: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String, nullable=False, default="ok")

    updated_by: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('ok', 'warning')", name="pay_run_item_status_check"),
        CheckConstraint(
            "hours >= 0 AND ot_15_hours >= 0 AND ot_20_hours >= 0",
            name="pay_run_item_hours_check",
        ),
    )

    # Relationships
    pay_run: Mapped[PayRun] = relationship(back_populates="items")
    employee: Mapped[Employee] = relationship()


# ===== Audit =====


class AuditEvent(Base, TimestampMixin):
    """Audit trail entry written in the same transaction as the change."""

    __tablename__ = "audit_event"

    audit_event_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    action: Mapped[str] = mapped_column(String, nullable=False)
    actor_id: Mapped[UUID | None] = mapped_column(nullable=True)
    details_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=True
    )
