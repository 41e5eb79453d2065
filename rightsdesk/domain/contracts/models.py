from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class ContractType(Enum):
    PUBLISHING = "publishing"
    ARTIST = "artist"
    PRODUCER = "producer"
    SYNC = "sync"
    DISTRIBUTION = "distribution"


class ContractStatus(Enum):
    DRAFT = "draft"
    PENDING = "pending"
    SIGNED = "signed"
    ACTIVE = "active"
    EXPIRED = "expired"
    TERMINATED = "terminated"


class RecoupmentStatus(Enum):
    NONE = "none"
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETE = "complete"


SPLIT_RIGHTS = ("performance", "mechanical", "synch", "print")


@dataclass(frozen=True)
class ContractParty:
    name: str
    role: str = "writer"
    performance_percentage: float = 0.0
    mechanical_percentage: float = 0.0
    synch_percentage: float = 0.0
    print_percentage: float = 0.0

    def share(self, right: str) -> float:
        if right not in SPLIT_RIGHTS:
            raise ValueError(f"Unknown right: {right}")
        return getattr(self, f"{right}_percentage")

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "role": self.role,
            "performance_percentage": self.performance_percentage,
            "mechanical_percentage": self.mechanical_percentage,
            "synch_percentage": self.synch_percentage,
            "print_percentage": self.print_percentage,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ContractParty":
        return cls(
            name=str(data.get("name") or ""),
            role=str(data.get("role") or "writer"),
            performance_percentage=float(data.get("performance_percentage") or 0),
            mechanical_percentage=float(data.get("mechanical_percentage") or 0),
            synch_percentage=float(data.get("synch_percentage") or 0),
            print_percentage=float(data.get("print_percentage") or 0),
        )


@dataclass(frozen=True)
class Contract:
    id: int
    user_id: int
    title: str
    counterparty_name: str
    contract_type: ContractType
    contract_status: ContractStatus = ContractStatus.DRAFT
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    advance_amount: float = 0.0
    commission_percentage: float = 0.0
    controlled_percentage: float = 0.0
    territories: tuple[str, ...] = ()
    royalty_splits: tuple[ContractParty, ...] = field(default_factory=tuple)
    recoupment_status: RecoupmentStatus = RecoupmentStatus.NONE
    advance_balance: float = 0.0
    w9_url: Optional[str] = None
    direct_deposit_auth_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_final(self) -> bool:
        return self.contract_status in (ContractStatus.EXPIRED, ContractStatus.TERMINATED)


@dataclass(frozen=True)
class RoyaltyCalculation:
    gross: float
    commission: float
    net: float
    expenses: float
    net_payable: float
    recoupment: float
    payable: float
    remaining_advance: float
