from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

MEDIA_TYPES = ("Film", "TV", "Ad", "Social", "Game", "Other")
SYNC_STATUSES = ("Inquiry", "Negotiating", "Approved", "Declined", "Licensed")
PAYMENT_STATUSES = ("Pending", "Partial", "Paid in Full")
INVOICE_STATUSES = ("Not Issued", "Issued", "Paid")
SYNC_TYPES = ("one_time", "mfn", "perpetual", "term_limited")
CURRENCIES = ("USD", "EUR", "GBP", "CAD", "AUD")


@dataclass(frozen=True)
class FeeAllocation:
    fee_type: str
    amount: float
    controlled_amount: float
    copyright_id: Optional[int] = None
    work_title: Optional[str] = None
    writer_name: Optional[str] = None
    ownership_percentage: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "fee_type": self.fee_type,
            "amount": self.amount,
            "controlled_amount": self.controlled_amount,
            "copyright_id": self.copyright_id,
            "work_title": self.work_title,
            "writer_name": self.writer_name,
            "ownership_percentage": self.ownership_percentage,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FeeAllocation":
        return cls(
            fee_type=data.get("fee_type", "publishing"),
            amount=float(data.get("amount") or 0),
            controlled_amount=float(data.get("controlled_amount") or 0),
            copyright_id=data.get("copyright_id"),
            work_title=data.get("work_title"),
            writer_name=data.get("writer_name"),
            ownership_percentage=data.get("ownership_percentage"),
        )


@dataclass(frozen=True)
class SyncLicense:
    id: int
    user_id: int
    synch_id: str
    project_title: str
    media_type: str = "Other"
    synch_status: str = "Inquiry"
    payment_status: str = "Pending"
    invoice_status: str = "Not Issued"
    sync_type: str = "one_time"
    synch_agent: Optional[str] = None
    licensee_name: Optional[str] = None
    pub_fee: float = 0.0
    master_fee: float = 0.0
    currency: str = "USD"
    term_start: Optional[date] = None
    term_end: Optional[date] = None
    territories: tuple[str, ...] = ()
    linked_copyright_ids: tuple[int, ...] = ()
    pub_share_percentage: float = 100.0
    master_share_percentage: float = 0.0
    fee_allocations: tuple[FeeAllocation, ...] = field(default_factory=tuple)
    invoiced_amount: float = 0.0
    payment_received: float = 0.0
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def total_fee(self) -> float:
        return round((self.pub_fee or 0.0) + (self.master_fee or 0.0), 2)

    @property
    def controlled_total(self) -> float:
        return round(sum(a.controlled_amount for a in self.fee_allocations), 2)

    @property
    def outstanding(self) -> float:
        return round(max(0.0, self.total_fee - self.payment_received), 2)
