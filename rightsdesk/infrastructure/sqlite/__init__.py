from .database import SQLiteDatabase
from .accounts import SQLiteAccountsRepository, SQLiteOneTimeTokensRepository, SQLiteSessionsRepository
from .security import SQLiteRateLimitRepository, SQLiteSecurityEventsRepository
from .copyrights import SQLiteCopyrightExportsRepository, SQLiteCopyrightsRepository
from .contracts import SQLiteContractsRepository
from .royalties import (
    SQLiteAllocationsRepository,
    SQLiteBalancesRepository,
    SQLiteBatchesRepository,
    SQLitePayoutsRepository,
    SQLiteStagingRepository,
)
from .sync_licenses import SQLiteSyncLicensesRepository
from .revenue_sources import SQLiteRevenueSourcesRepository
from .portal import SQLiteAssociationsRepository, SQLiteInvitationsRepository, SQLitePortalAccessRepository
from .tenants import SQLiteTenantsRepository
from .checkout import SQLiteCheckoutSessionsRepository

__all__ = [
    "SQLiteDatabase",
    "SQLiteAccountsRepository",
    "SQLiteSessionsRepository",
    "SQLiteOneTimeTokensRepository",
    "SQLiteRateLimitRepository",
    "SQLiteSecurityEventsRepository",
    "SQLiteCopyrightsRepository",
    "SQLiteCopyrightExportsRepository",
    "SQLiteContractsRepository",
    "SQLiteStagingRepository",
    "SQLiteAllocationsRepository",
    "SQLiteBatchesRepository",
    "SQLitePayoutsRepository",
    "SQLiteBalancesRepository",
    "SQLiteSyncLicensesRepository",
    "SQLiteRevenueSourcesRepository",
    "SQLiteInvitationsRepository",
    "SQLitePortalAccessRepository",
    "SQLiteAssociationsRepository",
    "SQLiteTenantsRepository",
    "SQLiteCheckoutSessionsRepository",
]
