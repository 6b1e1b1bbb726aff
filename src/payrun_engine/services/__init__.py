"""Pay run engine services."""

from payrun_engine.services.state_machine import PayRunStateMachine, PayRunStatus
from payrun_engine.services.pay_run_service import PayRunService
from payrun_engine.services.period_service import PeriodService
from payrun_engine.services.locking_service import LockingService
from payrun_engine.services.calculation_service import LineCalculationService
from payrun_engine.services.summary_service import SummaryAggregator
from payrun_engine.services.validation_service import RunValidator, ValidationReport
from payrun_engine.services.inputs import ItemPatch, NewItem

__all__ = [
    "PayRunStateMachine",
    "PayRunStatus",
    "PayRunService",
    "PeriodService",
    "LockingService",
    "LineCalculationService",
    "SummaryAggregator",
    "RunValidator",
    "ValidationReport",
    "ItemPatch",
    "NewItem",
]
