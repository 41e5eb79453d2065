from .contract_service import (
    ALLOWED_TRANSITIONS,
    ContractChangeResult,
    ContractChangeStatus,
    ContractService,
    can_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "ContractChangeResult",
    "ContractChangeStatus",
    "ContractService",
    "can_transition",
]
