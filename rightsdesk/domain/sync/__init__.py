from .allocation import calculate_fee_allocations, controlled_total
from .models import (
    CURRENCIES,
    INVOICE_STATUSES,
    MEDIA_TYPES,
    PAYMENT_STATUSES,
    SYNC_STATUSES,
    SYNC_TYPES,
    FeeAllocation,
    SyncLicense,
)
from .services import SyncChangeResult, SyncChangeStatus, SyncService

__all__ = [
    "CURRENCIES",
    "FeeAllocation",
    "INVOICE_STATUSES",
    "MEDIA_TYPES",
    "PAYMENT_STATUSES",
    "SYNC_STATUSES",
    "SYNC_TYPES",
    "SyncChangeResult",
    "SyncChangeStatus",
    "SyncLicense",
    "SyncService",
    "calculate_fee_allocations",
    "controlled_total",
]
