"""Bank payment file builder.

Produces either an ABA (Cemtex) direct entry file or a plain CSV from a run
snapshot. ABA records are fixed width, 120 characters, CRLF terminated:

- type 0 descriptive record (header)
- one type 1 detail record per paid line (credit, transaction code 53)
- type 7 file total record (trailer)
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from payrun_engine.config import Settings, get_settings
from payrun_engine.exports.snapshot import RunSnapshot, SnapshotLine
from payrun_engine.services.state_machine import PayRunStatus

logger = logging.getLogger(__name__)

RECORD_LENGTH = 120
CREDIT_TRANSACTION_CODE = "53"
ABA_LINE_ENDING = "\r\n"

CSV_COLUMNS = [
    "employee_number",
    "employee_name",
    "bsb",
    "account_number",
    "account_name",
    "amount",
    "reference",
]

_NON_DIGITS = re.compile(r"\D")
_NON_PRINTABLE = re.compile(r"[^\x20-\x7e]")


@dataclass(frozen=True)
class BankFile:
    """A rendered bank payment file."""

    filename: str
    content: str
    warnings: list[str] = field(default_factory=list)
    included: int = 0
    total: Decimal = Decimal("0.00")

    @property
    def media_type(self) -> str:
        return "text/csv" if self.filename.endswith(".csv") else "text/plain"


def format_bsb(value: str | None) -> str | None:
    """Normalise a BSB to ``XXX-XXX``. Returns None unless it has six digits."""
    if not value:
        return None
    digits = _NON_DIGITS.sub("", value)
    if len(digits) != 6:
        return None
    return f"{digits[:3]}-{digits[3:]}"


def format_account(value: str | None) -> str | None:
    """Normalise an account number. Returns None when empty or too long."""
    if not value:
        return None
    account = value.strip().replace(" ", "")
    if not account or len(account) > 9:
        return None
    return account


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value())


def _text(value: str | None, width: int) -> str:
    """Left-justified, blank-filled, truncated ASCII field."""
    cleaned = _NON_PRINTABLE.sub(" ", value or "")
    return cleaned[:width].ljust(width)


def _number(value: int, width: int) -> str:
    """Right-justified, zero-filled numeric field."""
    return str(value).rjust(width, "0")[-width:]


class BankFileBuilder:
    """Builds the payment file for a run from its snapshot.

    Lines without a usable BSB or account number, or with a net amount that is
    zero or negative, are left out and reported in ``warnings``.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def build(
        self,
        run: RunSnapshot,
        processing_date: date | None = None,
        file_format: str | None = None,
    ) -> BankFile:
        file_format = (file_format or self.settings.bank_file_format).lower()
        if file_format not in ("aba", "csv"):
            raise ValueError(f"Unsupported bank file format: {file_format}")
        processing_date = processing_date or date.today()

        warnings: list[str] = []
        if run.status == PayRunStatus.DRAFT:
            warnings.append("Pay run is still Draft; amounts may change before approval")

        payable: list[tuple[SnapshotLine, str, str]] = []
        for line in run.lines:
            bsb = format_bsb(line.bsb)
            account = format_account(line.account_number)
            if bsb is None or account is None:
                warnings.append(f"{line.employee_name}: missing or invalid bank details, excluded")
                continue
            if line.net <= 0:
                warnings.append(f"{line.employee_name}: net pay {line.net} is not positive, excluded")
                continue
            payable.append((line, bsb, account))

        total = sum((line.net for line, _, _ in payable), Decimal("0.00"))
        stem = f"payrun-{run.period_end:%Y%m%d}"
        if file_format == "csv":
            content = self._render_csv(run, payable)
            filename = f"{stem}.csv"
        else:
            content = self._render_aba(run, payable, processing_date)
            filename = f"{stem}.aba"

        logger.info(
            "Generated %s bank file for pay run %s: %d line(s) included, %d excluded",
            file_format,
            run.pay_run_id,
            len(payable),
            len(run.lines) - len(payable),
        )
        return BankFile(
            filename=filename,
            content=content,
            warnings=warnings,
            included=len(payable),
            total=total,
        )

    def lodgement_reference(self, run: RunSnapshot, line: SnapshotLine) -> str:
        return f"PAY {run.period_end:%d%m%y} {line.employee_number}"

    # ------------------------------------------------------------------
    # ABA
    # ------------------------------------------------------------------

    def _render_aba(
        self,
        run: RunSnapshot,
        payable: list[tuple[SnapshotLine, str, str]],
        processing_date: date,
    ) -> str:
        records = [self._header_record(processing_date)]
        credit_total = 0
        for line, bsb, account in payable:
            cents = to_cents(line.net)
            credit_total += cents
            records.append(self._detail_record(run, line, bsb, account, cents))
        records.append(self._trailer_record(credit_total, len(payable)))

        for record in records:
            if len(record) != RECORD_LENGTH:
                raise ValueError(f"ABA record has length {len(record)}, expected {RECORD_LENGTH}")
        return ABA_LINE_ENDING.join(records) + ABA_LINE_ENDING

    def _header_record(self, processing_date: date) -> str:
        settings = self.settings
        return "".join(
            [
                "0",
                " " * 17,
                "01",
                _text(settings.bank_abbreviation.upper(), 3),
                " " * 7,
                _text(settings.bank_user_name, 26),
                _number(int(_NON_DIGITS.sub("", settings.bank_user_id) or 0), 6),
                _text(settings.bank_description, 12),
                processing_date.strftime("%d%m%y"),
                " " * 40,
            ]
        )

    def _detail_record(
        self,
        run: RunSnapshot,
        line: SnapshotLine,
        bsb: str,
        account: str,
        cents: int,
    ) -> str:
        settings = self.settings
        trace_bsb = format_bsb(settings.bank_trace_bsb) or "000-000"
        return "".join(
            [
                "1",
                bsb,
                account.rjust(9),
                " ",
                CREDIT_TRANSACTION_CODE,
                _number(cents, 10),
                _text(line.account_name or line.employee_name, 32),
                _text(self.lodgement_reference(run, line), 18),
                trace_bsb,
                settings.bank_trace_account.strip()[:9].rjust(9),
                _text(settings.employer_name, 16),
                "0" * 8,
            ]
        )

    @staticmethod
    def _trailer_record(credit_total: int, count: int) -> str:
        return "".join(
            [
                "7",
                "999-999",
                " " * 12,
                _number(credit_total, 10),
                _number(credit_total, 10),
                _number(0, 10),
                " " * 24,
                _number(count, 6),
                " " * 40,
            ]
        )

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------

    def _render_csv(
        self,
        run: RunSnapshot,
        payable: list[tuple[SnapshotLine, str, str]],
    ) -> str:
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(CSV_COLUMNS)
        for line, bsb, account in payable:
            writer.writerow([
                line.employee_number,
                line.employee_name,
                bsb,
                account,
                line.account_name or line.employee_name,
                f"{line.net:.2f}",
                self.lodgement_reference(run, line),
            ])
        return output.getvalue()
