from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

_CONFIDENCE_RE = re.compile(r"Match confidence:\s*(\d+)%")

SPLIT_MARKER = "[SPLIT INTO {n} WRITER ALLOCATIONS]"


class ProcessingStatus(Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"
    NEEDS_REVIEW = "needs_review"


class BatchStatus(Enum):
    PENDING = "Pending"
    IMPORTED = "Imported"
    PROCESSED = "Processed"


class PayoutStage(Enum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"


PAYMENT_METHODS = ("ACH", "Wire", "PayPal", "Check")


@dataclass(frozen=True)
class ImportStaging:
    id: int
    user_id: int
    filename: str
    detected_source: str
    raw_data: list[dict[str, Any]]
    mapped_data: list[dict[str, Any]]
    unmapped_fields: list[str]
    validation_errors: list[str]
    validation_status: str
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    batch_id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class RoyaltyAllocation:
    id: int
    user_id: int
    song_title: str
    gross_amount: float
    staging_id: Optional[int] = None
    batch_id: Optional[int] = None
    copyright_id: Optional[int] = None
    client_id: Optional[int] = None
    artist: Optional[str] = None
    iswc: Optional[str] = None
    work_id: Optional[str] = None
    source: Optional[str] = None
    royalty_type: Optional[str] = None
    country: Optional[str] = None
    share_percentage: Optional[float] = None
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    payment_date: Optional[str] = None
    comments: Optional[str] = None
    ownership_splits: dict[str, float] = field(default_factory=dict)
    is_split: bool = False
    parent_allocation_id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def match_confidence(self) -> Optional[int]:
        if not self.comments:
            return None
        found = _CONFIDENCE_RE.search(self.comments)
        return int(found.group(1)) if found else None

    @property
    def has_been_split(self) -> bool:
        return bool(self.comments) and "[SPLIT INTO" in self.comments


@dataclass(frozen=True)
class ReconciliationBatch:
    id: int
    user_id: int
    batch_id: str
    source: str
    statement_total: float
    status: BatchStatus = BatchStatus.PENDING
    period: Optional[str] = None
    date_received: Optional[date] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ReconciliationSummary:
    batch: ReconciliationBatch
    allocation_count: int
    linked_gross: float
    variance: float

    @property
    def is_reconciled(self) -> bool:
        return abs(self.variance) < 0.01


@dataclass(frozen=True)
class Payout:
    id: int
    user_id: int
    client_id: int
    period_start: str
    period_end: str
    gross_royalties: float = 0.0
    total_expenses: float = 0.0
    net_payable: float = 0.0
    amount_due: float = 0.0
    royalties_to_date: float = 0.0
    payments_to_date: float = 0.0
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    workflow_stage: PayoutStage = PayoutStage.DRAFT
    status: str = "pending"
    notes: Optional[str] = None
    failure_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def period(self) -> str:
        return f"{self.period_start} - {self.period_end}"


@dataclass(frozen=True)
class PayoutExpense:
    id: int
    payout_id: int
    description: str
    expense_type: str
    amount: float
    is_percentage: bool = False
    percentage_rate: float = 0.0


@dataclass(frozen=True)
class WorkflowHistoryEntry:
    id: int
    payout_id: int
    from_stage: Optional[str]
    to_stage: str
    reason: Optional[str]
    changed_by: Optional[int]
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ClientBalance:
    user_id: int
    client_id: int
    total_earned: float = 0.0
    total_paid: float = 0.0
    current_balance: float = 0.0


@dataclass(frozen=True)
class PayoutTotals:
    gross_royalties: float
    total_expenses: float
    net_payable: float
    royalties_to_date: float
    payments_to_date: float
    amount_due: float


@dataclass(frozen=True)
class BatchOperation:
    id: int
    user_id: int
    operation_type: str
    payout_ids: tuple[int, ...]
    total_count: int
    succeeded: int = 0
    failed: int = 0
    status: str = "pending"
    created_at: Optional[datetime] = None
