"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

# Items are serialized with the key "super"
SUPER_ALIASES = AliasChoices("super_amount", "super")


# ============================================================================
# Errors
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None


# ============================================================================
# Pay Period schemas
# ============================================================================


class PayPeriodCreate(BaseModel):
    """Schema for creating a pay period."""

    start_date: date
    end_date: date
    make_current: bool = False

    @model_validator(mode="after")
    def check_dates(self) -> "PayPeriodCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class PayPeriodResponse(BaseModel):
    """Schema for pay period response."""

    model_config = ConfigDict(from_attributes=True)

    pay_period_id: UUID
    start_date: date
    end_date: date
    is_current: bool


class PeriodBounds(BaseModel):
    """Period bounds embedded in the current run view."""

    model_config = ConfigDict(from_attributes=True)

    pay_period_id: UUID
    start: date
    end: date
    is_current: bool


# ============================================================================
# Pay Run schemas
# ============================================================================


class TotalsResponse(BaseModel):
    """Schema for run totals."""

    model_config = ConfigDict(from_attributes=True)

    employees: int
    gross: Decimal
    net: Decimal
    warnings: int


class SummaryTotalsResponse(BaseModel):
    """Schema for reporting totals; employees are counted once each."""

    model_config = ConfigDict(from_attributes=True)

    employees: int
    gross: Decimal
    tax: Decimal
    deductions: Decimal
    net: Decimal


class RunSummaryResponse(BaseModel):
    """Schema for the current run summary (no lines)."""

    model_config = ConfigDict(from_attributes=True)

    status: str | None = None
    pay_run_id: UUID | None = None
    period: PeriodBounds | None = None
    totals: SummaryTotalsResponse


class PayRunItemResponse(BaseModel):
    """Schema for a pay run item (pay line)."""

    model_config = ConfigDict(from_attributes=True)

    line_id: UUID
    pay_run_id: UUID
    employee_id: UUID
    employee_name: str | None = None
    hours: Decimal
    rate: Decimal
    ot_15_hours: Decimal
    ot_20_hours: Decimal
    allowance: Decimal
    tax: Decimal
    super_amount: Decimal = Field(validation_alias=SUPER_ALIASES, serialization_alias="super")
    deductions_total: Decimal
    gross: Decimal
    net: Decimal
    status: str
    note: str | None = None
    updated_by: UUID | None = None
    updated_at: datetime | None = None


class CurrentRunResponse(BaseModel):
    """Schema for the current run view. ``status`` is null when no run exists."""

    model_config = ConfigDict(from_attributes=True)

    status: str | None = None
    pay_run_id: UUID | None = None
    period: PeriodBounds | None = None
    totals: TotalsResponse
    items: list[PayRunItemResponse]
    approved_by: UUID | None = None
    approved_at: datetime | None = None


class PayRunResponse(BaseModel):
    """Schema for a pay run after a lifecycle command."""

    model_config = ConfigDict(from_attributes=True)

    pay_run_id: UUID
    pay_period_id: UUID
    status: str
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    created_by: UUID | None = None
    created_at: datetime
    totals: TotalsResponse


class ItemListResponse(BaseModel):
    """Schema for the paged item list."""

    model_config = ConfigDict(from_attributes=True)

    items: list[PayRunItemResponse]
    total: int
    search: str
    limit: int
    offset: int


class ItemUpdateResponse(BaseModel):
    """Schema for an item patch result."""

    model_config = ConfigDict(from_attributes=True)

    line: PayRunItemResponse
    summary: TotalsResponse


class DeleteItemResponse(BaseModel):
    """Schema for an item delete result."""

    ok: bool = True
    deleted: bool


class ValidationResponse(BaseModel):
    """Schema for a validation report."""

    model_config = ConfigDict(from_attributes=True)

    ok: bool
    errors: list[str]
    pay_run_id: UUID | None = None


class StatusChangeRequest(BaseModel):
    """Schema for a status change request."""

    status: str
    allow_approved_to_draft: bool = False


class StartRunRequest(BaseModel):
    """Schema for starting a run for a given period."""

    pay_period_id: UUID


# ============================================================================
# Export schemas
# ============================================================================


class BankFileResponse(BaseModel):
    """Schema for a generated bank payment file."""

    model_config = ConfigDict(from_attributes=True)

    filename: str
    content: str
    warnings: list[str]


class StpEmployeeResponse(BaseModel):
    """Schema for one employee in the STP preview."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    name: str
    tfn: str
    gross: Decimal
    tax: Decimal
    super_amount: Decimal = Field(validation_alias=SUPER_ALIASES, serialization_alias="super")


class StpTotalsResponse(BaseModel):
    """Schema for STP preview totals."""

    model_config = ConfigDict(from_attributes=True)

    gross: Decimal
    tax: Decimal
    super_amount: Decimal = Field(validation_alias=SUPER_ALIASES, serialization_alias="super")


class StpPreviewResponse(BaseModel):
    """Schema for the STP preview."""

    model_config = ConfigDict(from_attributes=True)

    pay_run_id: UUID
    status: str
    employees: list[StpEmployeeResponse]
    totals: StpTotalsResponse
