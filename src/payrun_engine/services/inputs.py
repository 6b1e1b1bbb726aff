"""Validated command inputs for pay run items.

``ItemPatch`` is sparse: only the fields present in the request are written.
Numeric fields may be omitted but never set to null.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Worst-case line gross (MAX_HOURS x MAX_RATE x 4.5 + MAX_ALLOWANCE) fits numeric(12,2)
MAX_HOURS = Decimal("1000")
MAX_RATE = Decimal("10000")
MAX_AMOUNT = Decimal("1000000")
MAX_ALLOWANCE = MAX_AMOUNT

NUMERIC_PATCH_FIELDS = (
    "hours",
    "rate",
    "ot_15_hours",
    "ot_20_hours",
    "allowance",
    "tax",
    "super_amount",
    "deductions_total",
)


class ItemPatch(BaseModel):
    """Sparse set of raw-input fields for an existing item."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    hours: Decimal | None = Field(None, ge=0, le=MAX_HOURS, decimal_places=2)
    rate: Decimal | None = Field(None, ge=0, le=MAX_RATE, decimal_places=4)
    ot_15_hours: Decimal | None = Field(None, ge=0, le=MAX_HOURS, decimal_places=2)
    ot_20_hours: Decimal | None = Field(None, ge=0, le=MAX_HOURS, decimal_places=2)
    allowance: Decimal | None = Field(None, ge=0, le=MAX_ALLOWANCE, decimal_places=2)
    tax: Decimal | None = Field(None, ge=0, le=MAX_AMOUNT, decimal_places=2)
    super_amount: Decimal | None = Field(None, alias="super", ge=0, le=MAX_AMOUNT, decimal_places=2)
    deductions_total: Decimal | None = Field(None, ge=0, le=MAX_AMOUNT, decimal_places=2)
    note: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_fields(self) -> ItemPatch:
        if not self.model_fields_set:
            raise ValueError("No fields to update")
        for name in NUMERIC_PATCH_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        """Fields explicitly present in the patch, keyed by model attribute name."""
        return self.model_dump(exclude_unset=True)


class NewItem(BaseModel):
    """Raw inputs for a line added to the current run.

    When ``rate`` is omitted the employee's configured hourly rate is used.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    employee_id: UUID
    hours: Decimal = Field(Decimal("0"), ge=0, le=MAX_HOURS, decimal_places=2)
    rate: Decimal | None = Field(None, ge=0, le=MAX_RATE, decimal_places=4)
    ot_15_hours: Decimal = Field(Decimal("0"), ge=0, le=MAX_HOURS, decimal_places=2)
    ot_20_hours: Decimal = Field(Decimal("0"), ge=0, le=MAX_HOURS, decimal_places=2)
    allowance: Decimal = Field(Decimal("0"), ge=0, le=MAX_ALLOWANCE, decimal_places=2)
    tax: Decimal = Field(Decimal("0"), ge=0, le=MAX_AMOUNT, decimal_places=2)
    super_amount: Decimal = Field(Decimal("0"), alias="super", ge=0, le=MAX_AMOUNT, decimal_places=2)
    deductions_total: Decimal = Field(Decimal("0"), ge=0, le=MAX_AMOUNT, decimal_places=2)
    note: str | None = Field(None, max_length=500)
