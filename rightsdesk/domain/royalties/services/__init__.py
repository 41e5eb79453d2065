from .allocation_service import AllocationService, SplitResult, SplitStatus, TerritoryNormalization
from .payout_service import (
    BULK_OPERATIONS,
    STAGE_TRANSITIONS,
    ExpenseInput,
    PayoutResult,
    PayoutService,
    PayoutStatement,
    PayoutStatus,
)
from .reconciliation_service import WORKFLOW_STEPS, ReconciliationService, WorkflowStep
from .statement_import_service import (
    ImportResult,
    ImportStatus,
    ProcessResult,
    ProcessStatus,
    StatementImportService,
    rows_from_csv,
)

__all__ = [
    "AllocationService",
    "BULK_OPERATIONS",
    "ExpenseInput",
    "ImportResult",
    "ImportStatus",
    "PayoutResult",
    "PayoutService",
    "PayoutStatement",
    "PayoutStatus",
    "ProcessResult",
    "ProcessStatus",
    "ReconciliationService",
    "STAGE_TRANSITIONS",
    "SplitResult",
    "SplitStatus",
    "StatementImportService",
    "TerritoryNormalization",
    "WORKFLOW_STEPS",
    "WorkflowStep",
    "rows_from_csv",
]
