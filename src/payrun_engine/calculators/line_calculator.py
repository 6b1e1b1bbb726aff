"""Pay line arithmetic: gross, net and the per-line status tag."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from payrun_engine.calculators.types import LineAmounts, LineInputs, LineStatus


class LineCalculator:
    """Computes a line's derived amounts from its own raw inputs.

    GROSS = hours*rate + ot_15_hours*rate*1.5 + ot_20_hours*rate*2 + allowance
    NET   = GROSS - tax - super - deductions_total

    Rounding:
    - Components are summed at full precision
    - Gross and net are each rounded once, half away from zero, to cents
    - Stored values are never re-rounded on read
    """

    OT_15_MULTIPLIER = Decimal("1.5")
    OT_20_MULTIPLIER = Decimal("2")
    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(LineCalculator.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def compute_gross(inputs: LineInputs) -> Decimal:
        """Compute gross pay for a line."""
        ordinary = inputs.hours * inputs.rate
        ot_15 = inputs.ot_15_hours * inputs.rate * LineCalculator.OT_15_MULTIPLIER
        ot_20 = inputs.ot_20_hours * inputs.rate * LineCalculator.OT_20_MULTIPLIER
        return LineCalculator.round_to_cents(ordinary + ot_15 + ot_20 + inputs.allowance)

    @staticmethod
    def compute_net(gross: Decimal, inputs: LineInputs) -> Decimal:
        """Compute net pay from an already rounded gross."""
        return LineCalculator.round_to_cents(
            gross - inputs.tax - inputs.super_amount - inputs.deductions_total
        )

    @staticmethod
    def line_status(gross: Decimal, net: Decimal) -> LineStatus:
        """Tag lines that pay nothing or pay a negative amount."""
        if gross == 0 or net < 0:
            return LineStatus.WARNING
        return LineStatus.OK

    @staticmethod
    def calculate(inputs: LineInputs) -> LineAmounts:
        """Compute gross, net and status for a line."""
        gross = LineCalculator.compute_gross(inputs)
        net = LineCalculator.compute_net(gross, inputs)
        return LineAmounts(gross=gross, net=net, status=LineCalculator.line_status(gross, net))
