"""ORM models."""

from payrun_engine.models.base import Base, TimestampMixin, UpdatedAtMixin, utcnow
from payrun_engine.models.employee import Employee
from payrun_engine.models.payroll import AuditEvent, PayPeriod, PayRun, PayRunItem

__all__ = [
    "Base",
    "TimestampMixin",
    "UpdatedAtMixin",
    "utcnow",
    "Employee",
    "AuditEvent",
    "PayPeriod",
    "PayRun",
    "PayRunItem",
]
