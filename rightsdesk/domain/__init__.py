from .shared.models import StoredBlob
from .shared.repositories import BlobStorage, Clock, RemoteFetcher, TokenGenerator
from .accounts.models import Session, User, UserRole
from .copyright.models import Copyright, CopyrightPublisher, CopyrightRecording, CopyrightWriter, WorkDetails
from .contracts.models import Contract, ContractParty, ContractStatus, ContractType
from .royalties.models import ImportStaging, Payout, ReconciliationBatch, RoyaltyAllocation
from .sync.models import SyncLicense
from .valuation.revenue import RevenueSource
from .portal.models import Invitation, PortalAccess, VisibilityScope
from .tenants.models import BrandConfig, Tenant
from .billing.models import CheckoutSession

__all__ = [
    "BlobStorage",
    "BrandConfig",
    "CheckoutSession",
    "Clock",
    "Contract",
    "ContractParty",
    "ContractStatus",
    "ContractType",
    "Copyright",
    "CopyrightPublisher",
    "CopyrightRecording",
    "CopyrightWriter",
    "ImportStaging",
    "Invitation",
    "Payout",
    "PortalAccess",
    "ReconciliationBatch",
    "RemoteFetcher",
    "RevenueSource",
    "RoyaltyAllocation",
    "Session",
    "StoredBlob",
    "SyncLicense",
    "Tenant",
    "TokenGenerator",
    "User",
    "UserRole",
    "VisibilityScope",
    "WorkDetails",
]
