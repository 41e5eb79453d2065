from __future__ import annotations

import logging
from dataclasses import dataclass

from ..domain.accounts import AccountsService
from ..domain.billing import CheckoutService
from ..domain.contracts import ContractService
from ..domain.copyright import CopyrightService
from ..domain.portal import InvitationService, MaintenanceService, PortalAccessService
from ..domain.royalties import (
    AllocationService,
    PayoutService,
    ReconciliationService,
    StatementImportService,
    StatementMapper,
)
from ..domain.security import SecurityService
from ..domain.sync import SyncService
from ..domain.tenants import TenantService
from ..domain.valuation import CatalogValuationService
from ..infrastructure import load_mapping_overrides, sync_tenants
from ..infrastructure.metrics import security_log
from ..infrastructure.notifications import LogInvitationNotifier
from ..infrastructure.sqlite import (
    SQLiteAccountsRepository,
    SQLiteAllocationsRepository,
    SQLiteAssociationsRepository,
    SQLiteBalancesRepository,
    SQLiteBatchesRepository,
    SQLiteCheckoutSessionsRepository,
    SQLiteContractsRepository,
    SQLiteCopyrightExportsRepository,
    SQLiteCopyrightsRepository,
    SQLiteDatabase,
    SQLiteInvitationsRepository,
    SQLiteOneTimeTokensRepository,
    SQLitePayoutsRepository,
    SQLitePortalAccessRepository,
    SQLiteRateLimitRepository,
    SQLiteRevenueSourcesRepository,
    SQLiteSecurityEventsRepository,
    SQLiteSessionsRepository,
    SQLiteStagingRepository,
    SQLiteSyncLicensesRepository,
    SQLiteTenantsRepository,
)
from ..infrastructure.storage import AssetDownloader, LocalBlobStorage
from ..infrastructure.system import SystemClock, SystemTokenGenerator
from .presenters import PortalPresenter, StatementRenderer
from .queries import PortalQueries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppConfig:
    bot_token: str
    db_path: str
    storage_root: str = "storage"
    storage_public_url: str = "/files"
    metrics_log_path: str | None = None
    security_log_path: str | None = None
    tenants_file: str = "tenants.yaml"
    sync_tenants_on_start: bool = True
    delete_missing_tenants: bool = True
    portal_tenant: str | None = None
    invitation_ttl_days: int = 7
    session_ttl_minutes: int = 60
    max_upload_bytes: int = 10 * 1024 * 1024
    checkout_base_url: str = "http://localhost:3000"
    cwr_sender_id: str = "RDESK"
    mapping_file: str | None = None
    asset_allowed_hosts: set[str] | None = None
    max_asset_size_bytes: int = 2_000_000
    bot_rate_limit: int = 20
    bot_rate_window_seconds: float = 60.0


class AppContainer:
    def __init__(
        self,
        *,
        config: AppConfig,
        security_service: SecurityService,
        accounts_service: AccountsService,
        copyright_service: CopyrightService,
        contract_service: ContractService,
        import_service: StatementImportService,
        allocation_service: AllocationService,
        reconciliation_service: ReconciliationService,
        payout_service: PayoutService,
        sync_service: SyncService,
        valuation_service: CatalogValuationService,
        invitation_service: InvitationService,
        maintenance_service: MaintenanceService,
        portal_access_service: PortalAccessService,
        tenant_service: TenantService,
        checkout_service: CheckoutService,
        portal_queries: PortalQueries,
        presenter: PortalPresenter,
        statement_renderer: StatementRenderer,
        database: SQLiteDatabase,
        tenants_repo: SQLiteTenantsRepository,
        downloader: AssetDownloader,
    ):
        self.config = config
        self.security_service = security_service
        self.accounts_service = accounts_service
        self.copyright_service = copyright_service
        self.contract_service = contract_service
        self.import_service = import_service
        self.allocation_service = allocation_service
        self.reconciliation_service = reconciliation_service
        self.payout_service = payout_service
        self.sync_service = sync_service
        self.valuation_service = valuation_service
        self.invitation_service = invitation_service
        self.maintenance_service = maintenance_service
        self.portal_access_service = portal_access_service
        self.tenant_service = tenant_service
        self.checkout_service = checkout_service
        self.portal_queries = portal_queries
        self.presenter = presenter
        self.statement_renderer = statement_renderer

        self._database = database
        self._tenants_repo = tenants_repo
        self._downloader = downloader

    async def init_resources(self) -> None:
        await self._database.init()

    async def sync_tenants(self, yaml_path: str, *, delete_missing: bool = True) -> None:
        await sync_tenants(self._tenants_repo, yaml_path, delete_missing=delete_missing)

    async def close(self) -> None:
        await self._downloader.close()


def _statement_mapper(config: AppConfig) -> StatementMapper:
    mapper = StatementMapper()
    if config.mapping_file:
        mapper.update_mapping(load_mapping_overrides(config.mapping_file))
        logger.info("Statement mapping overrides loaded from %s", config.mapping_file)
    return mapper


def create_container(config: AppConfig) -> AppContainer:
    database = SQLiteDatabase(config.db_path)
    clock = SystemClock()
    tokens = SystemTokenGenerator()

    tenants_repo = SQLiteTenantsRepository(database)
    allocations_repo = SQLiteAllocationsRepository(database)
    access_repo = SQLitePortalAccessRepository(database)
    invitations_repo = SQLiteInvitationsRepository(database)

    storage = LocalBlobStorage(
        config.storage_root,
        public_base_url=config.storage_public_url,
        max_bytes=config.max_upload_bytes,
    )
    downloader = AssetDownloader(
        allowed_hosts=config.asset_allowed_hosts,
        max_download_bytes=config.max_asset_size_bytes,
    )

    security_service = SecurityService(
        rate_limits=SQLiteRateLimitRepository(database),
        events=SQLiteSecurityEventsRepository(database),
        clock=clock,
        audit=security_log,
    )
    accounts_service = AccountsService(
        accounts=SQLiteAccountsRepository(database),
        sessions=SQLiteSessionsRepository(database),
        one_time_tokens=SQLiteOneTimeTokensRepository(database),
        security=security_service,
        tokens=tokens,
        clock=clock,
        storage=storage,
        session_ttl_minutes=config.session_ttl_minutes,
        max_upload_bytes=config.max_upload_bytes,
    )
    copyright_service = CopyrightService(
        copyrights=SQLiteCopyrightsRepository(database),
        exports=SQLiteCopyrightExportsRepository(database),
        clock=clock,
        sender_id=config.cwr_sender_id,
    )
    contract_service = ContractService(contracts=SQLiteContractsRepository(database), clock=clock)
    import_service = StatementImportService(
        staging=SQLiteStagingRepository(database),
        allocations=allocations_repo,
        copyrights=copyright_service,
        mapper=_statement_mapper(config),
    )
    allocation_service = AllocationService(allocations=allocations_repo, copyrights=copyright_service)
    reconciliation_service = ReconciliationService(
        batches=SQLiteBatchesRepository(database),
        allocations=allocations_repo,
        clock=clock,
    )
    payout_service = PayoutService(
        payouts=SQLitePayoutsRepository(database),
        allocations=allocations_repo,
        balances=SQLiteBalancesRepository(database),
        clock=clock,
    )
    sync_service = SyncService(
        licenses=SQLiteSyncLicensesRepository(database),
        copyrights=copyright_service,
        clock=clock,
    )
    valuation_service = CatalogValuationService(
        copyrights=copyright_service,
        revenue_sources=SQLiteRevenueSourcesRepository(database),
    )
    invitation_service = InvitationService(
        invitations=invitations_repo,
        access=access_repo,
        tokens=tokens,
        clock=clock,
        ttl_days=config.invitation_ttl_days,
    )
    maintenance_service = MaintenanceService(
        invitations=invitations_repo,
        access=access_repo,
        notifier=LogInvitationNotifier(),
        clock=clock,
    )
    portal_access_service = PortalAccessService(
        access=access_repo,
        associations=SQLiteAssociationsRepository(database),
        clock=clock,
    )
    tenant_service = TenantService(tenants=tenants_repo, storage=storage, fetcher=downloader)
    checkout_service = CheckoutService(
        sessions=SQLiteCheckoutSessionsRepository(database),
        tokens=tokens,
        clock=clock,
        base_url=config.checkout_base_url,
    )
    portal_queries = PortalQueries(
        access=portal_access_service,
        copyrights=copyright_service,
        contracts=contract_service,
        allocations=allocation_service,
        sync=sync_service,
        payouts=payout_service,
    )

    return AppContainer(
        config=config,
        security_service=security_service,
        accounts_service=accounts_service,
        copyright_service=copyright_service,
        contract_service=contract_service,
        import_service=import_service,
        allocation_service=allocation_service,
        reconciliation_service=reconciliation_service,
        payout_service=payout_service,
        sync_service=sync_service,
        valuation_service=valuation_service,
        invitation_service=invitation_service,
        maintenance_service=maintenance_service,
        portal_access_service=portal_access_service,
        tenant_service=tenant_service,
        checkout_service=checkout_service,
        portal_queries=portal_queries,
        presenter=PortalPresenter(),
        statement_renderer=StatementRenderer(),
        database=database,
        tenants_repo=tenants_repo,
        downloader=downloader,
    )
