"""Export adapters: read a run's consistent snapshot and render artifacts."""

from payrun_engine.exports.snapshot import RunSnapshot, SnapshotLine, load_run_snapshot
from payrun_engine.exports.bank_file import BankFile, BankFileBuilder
from payrun_engine.exports.payslips import PayslipRenderer
from payrun_engine.exports.stp import StpPreview, build_stp_preview

__all__ = [
    "RunSnapshot",
    "SnapshotLine",
    "load_run_snapshot",
    "BankFile",
    "BankFileBuilder",
    "PayslipRenderer",
    "StpPreview",
    "build_stp_preview",
]
