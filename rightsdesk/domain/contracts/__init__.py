from .calculation import calculate_agreement_royalty, calculate_manual_royalty, validate_royalty_splits
from .models import (
    Contract,
    ContractParty,
    ContractStatus,
    ContractType,
    RecoupmentStatus,
    RoyaltyCalculation,
)
from .services import (
    ALLOWED_TRANSITIONS,
    ContractChangeResult,
    ContractChangeStatus,
    ContractService,
    can_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Contract",
    "ContractChangeResult",
    "ContractChangeStatus",
    "ContractParty",
    "ContractService",
    "ContractStatus",
    "ContractType",
    "RecoupmentStatus",
    "RoyaltyCalculation",
    "calculate_agreement_royalty",
    "calculate_manual_royalty",
    "can_transition",
    "validate_royalty_splits",
]
