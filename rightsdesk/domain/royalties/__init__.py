from .discrepancy import DiscrepancyReport, build_discrepancy_report
from .mapping import DEFAULT_MAPPING, SOURCES, MappedResult, StatementMapper
from .matching import SongQuery, batch_match, best_match, find_potential_matches, jaro_winkler
from .models import (
    PAYMENT_METHODS,
    BatchOperation,
    BatchStatus,
    ClientBalance,
    ImportStaging,
    Payout,
    PayoutExpense,
    PayoutStage,
    PayoutTotals,
    ProcessingStatus,
    ReconciliationBatch,
    ReconciliationSummary,
    RoyaltyAllocation,
    WorkflowHistoryEntry,
)
from .services import (
    AllocationService,
    ExpenseInput,
    ImportResult,
    ImportStatus,
    PayoutResult,
    PayoutService,
    PayoutStatement,
    PayoutStatus,
    ProcessResult,
    ProcessStatus,
    ReconciliationService,
    SplitResult,
    SplitStatus,
    StatementImportService,
    rows_from_csv,
)
from .territories import normalize_territory

__all__ = [
    "AllocationService",
    "BatchOperation",
    "BatchStatus",
    "ClientBalance",
    "DEFAULT_MAPPING",
    "DiscrepancyReport",
    "ExpenseInput",
    "ImportResult",
    "ImportStaging",
    "ImportStatus",
    "MappedResult",
    "PAYMENT_METHODS",
    "Payout",
    "PayoutExpense",
    "PayoutResult",
    "PayoutService",
    "PayoutStage",
    "PayoutStatement",
    "PayoutStatus",
    "PayoutTotals",
    "ProcessResult",
    "ProcessStatus",
    "ProcessingStatus",
    "ReconciliationBatch",
    "ReconciliationService",
    "ReconciliationSummary",
    "RoyaltyAllocation",
    "SOURCES",
    "SongQuery",
    "SplitResult",
    "SplitStatus",
    "StatementImportService",
    "StatementMapper",
    "WorkflowHistoryEntry",
    "batch_match",
    "best_match",
    "build_discrepancy_report",
    "find_potential_matches",
    "jaro_winkler",
    "normalize_territory",
    "rows_from_csv",
]
