"""Type definitions for line calculation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any


class LineStatus(str, Enum):
    """Per-line status tags."""

    OK = "ok"
    WARNING = "warning"


@dataclass(frozen=True)
class LineInputs:
    """Raw inputs of one pay line.

    Overtime arrives pre-split into the 1.5x and 2.0x buckets; ``hours`` are
    ordinary hours only.
    """

    hours: Decimal = Decimal("0")
    rate: Decimal = Decimal("0")
    ot_15_hours: Decimal = Decimal("0")
    ot_20_hours: Decimal = Decimal("0")
    allowance: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    super_amount: Decimal = Decimal("0")
    deductions_total: Decimal = Decimal("0")

    @classmethod
    def from_item(cls, item: Any) -> LineInputs:
        """Build inputs from any object with the raw line attributes; missing values count as zero."""

        def value(name: str) -> Decimal:
            raw = getattr(item, name, None)
            return Decimal("0") if raw is None else Decimal(str(raw))

        return cls(
            hours=value("hours"),
            rate=value("rate"),
            ot_15_hours=value("ot_15_hours"),
            ot_20_hours=value("ot_20_hours"),
            allowance=value("allowance"),
            tax=value("tax"),
            super_amount=value("super_amount"),
            deductions_total=value("deductions_total"),
        )


@dataclass(frozen=True)
class LineAmounts:
    """Derived outputs of one pay line."""

    gross: Decimal
    net: Decimal
    status: LineStatus
