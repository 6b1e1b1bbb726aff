"""Employee reference data.

Employees are owned by the employee directory; the pay run engine only reads
them (configured hourly rate for validation and defaults, bank details and
names for exports).
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payrun_engine.models.base import Base, TimestampMixin


class Employee(Base, TimestampMixin):
    """Employee record."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_number: Mapped[str] = mapped_column(String, nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Bank details for payment files
    bsb: Mapped[str | None] = mapped_column(String(7), nullable=True)
    account_number: Mapped[str | None] = mapped_column(String(9), nullable=True)
    account_name: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_number", name="employee_number_unique"),
    )

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"

    @property
    def has_bank_details(self) -> bool:
        """Check if a payment can be routed to this employee."""
        return bool(self.bsb and self.account_number)
