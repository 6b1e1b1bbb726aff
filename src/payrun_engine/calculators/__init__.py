"""Pay line calculation."""

from payrun_engine.calculators.line_calculator import LineCalculator
from payrun_engine.calculators.types import LineAmounts, LineInputs, LineStatus

__all__ = [
    "LineCalculator",
    "LineAmounts",
    "LineInputs",
    "LineStatus",
]
