"""PDF payslip renderer: one page per pay line, in a single document."""

from __future__ import annotations

import io
import logging
from decimal import Decimal
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from payrun_engine.config import Settings, get_settings
from payrun_engine.exports.snapshot import RunSnapshot, SnapshotLine

logger = logging.getLogger(__name__)


def _money(value: Decimal) -> str:
    return f"${value:,.2f}"


class PayslipRenderer:
    """Renders every line of a run snapshot as a payslip page."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        styles = getSampleStyleSheet()
        self.title_style = ParagraphStyle(
            "PayslipTitle",
            parent=styles["Heading1"],
            fontSize=16,
            spaceAfter=6,
        )
        self.normal_style = styles["Normal"]

    def filename(self, run: RunSnapshot) -> str:
        return f"payslips-{run.period_end:%Y%m%d}.pdf"

    def render(self, run: RunSnapshot) -> bytes:
        """Render the whole run into one PDF document."""
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            title=f"Payslips {run.period_start:%d/%m/%Y} - {run.period_end:%d/%m/%Y}",
            leftMargin=18 * mm,
            rightMargin=18 * mm,
            topMargin=18 * mm,
            bottomMargin=18 * mm,
        )

        elements: list = []
        if not run.lines:
            elements.append(Paragraph(escape(self.settings.employer_name), self.title_style))
            elements.append(Paragraph("No pay lines in this run.", self.normal_style))

        for index, line in enumerate(run.lines):
            if index:
                elements.append(PageBreak())
            elements.extend(self._payslip(run, line))

        doc.build(elements)
        logger.info("Rendered %d payslip(s) for pay run %s", len(run.lines), run.pay_run_id)
        return buffer.getvalue()

    def _payslip(self, run: RunSnapshot, line: SnapshotLine) -> list:
        heading = [
            Paragraph(f"{escape(self.settings.employer_name)} - Payslip", self.title_style),
            Paragraph(
                f"Pay period: {run.period_start:%d/%m/%Y} to {run.period_end:%d/%m/%Y}",
                self.normal_style,
            ),
            Paragraph(
                f"Employee: {escape(line.employee_name)} ({escape(line.employee_number)})",
                self.normal_style,
            ),
            Spacer(1, 8 * mm),
        ]

        earnings = [
            ["Earnings", "Hours", "Rate", "Amount"],
            [
                "Ordinary hours",
                f"{line.hours:.2f}",
                _money(line.rate),
                _money(line.hours * line.rate),
            ],
        ]
        if line.ot_15_hours:
            earnings.append([
                "Overtime x1.5",
                f"{line.ot_15_hours:.2f}",
                _money(line.rate * Decimal("1.5")),
                _money(line.ot_15_hours * line.rate * Decimal("1.5")),
            ])
        if line.ot_20_hours:
            earnings.append([
                "Overtime x2.0",
                f"{line.ot_20_hours:.2f}",
                _money(line.rate * 2),
                _money(line.ot_20_hours * line.rate * 2),
            ])
        if line.allowance:
            earnings.append(["Allowances", "", "", _money(line.allowance)])
        earnings.append(["Gross pay", "", "", _money(line.gross)])

        deductions = [
            ["Deductions", "Amount"],
            ["Tax withheld", _money(line.tax)],
            ["Superannuation", _money(line.super_amount)],
            ["Other deductions", _money(line.deductions_total)],
            ["Net pay", _money(line.net)],
        ]

        elements = heading + [
            self._table(earnings, [70 * mm, 30 * mm, 30 * mm, 40 * mm]),
            Spacer(1, 6 * mm),
            self._table(deductions, [130 * mm, 40 * mm]),
        ]
        if line.note:
            elements.extend([Spacer(1, 6 * mm), Paragraph(f"Note: {escape(line.note)}", self.normal_style)])
        return elements

    @staticmethod
    def _table(rows: list[list[str]], widths: list[float]) -> Table:
        table = Table(rows, colWidths=widths)
        table.setStyle(
            TableStyle([
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                ("LINEBELOW", (0, 0), (-1, 0), 0.5, colors.grey),
                ("LINEABOVE", (0, -1), (-1, -1), 0.5, colors.grey),
            ])
        )
        return table
