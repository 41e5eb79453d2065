from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ...domain.accounts import User, UserRole
from ...domain.contracts import Contract, ContractService
from ...domain.copyright import CopyrightService, WorkDetails
from ...domain.portal import PortalAccess, PortalAccessService, filter_by_scope
from ...domain.royalties import AllocationService, ClientBalance, PayoutService, RoyaltyAllocation
from ...domain.sync import SyncLicense, SyncService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientContext:
    access: PortalAccess
    is_admin: bool

    @property
    def subscriber_id(self) -> int:
        return self.access.subscriber_user_id


@dataclass(frozen=True)
class ClientDashboard:
    balance: Optional[ClientBalance]
    total_royalties: float
    works: int
    contracts: int
    sync_deals: int

    @property
    def current_balance(self) -> float:
        return self.balance.current_balance if self.balance else 0.0


class PortalQueries:
    """Read side of the client portal.

    A client sees the rows its subscriber associated with it, narrowed by the
    access visibility scope. Portal admins see every row of the subscriber.
    """

    def __init__(
        self,
        *,
        access: PortalAccessService,
        copyrights: CopyrightService,
        contracts: ContractService,
        allocations: AllocationService,
        sync: SyncService,
        payouts: PayoutService,
    ):
        self._access = access
        self._copyrights = copyrights
        self._contracts = contracts
        self._allocations = allocations
        self._sync = sync
        self._payouts = payouts

    async def context_for(self, client: User) -> Optional[ClientContext]:
        access = await self._access.active_access(client.id)
        if not access:
            return None
        is_admin = access.role == "admin" or client.role is UserRole.ADMIN
        return ClientContext(access=access, is_admin=is_admin)

    async def _ids(self, ctx: ClientContext, data_type: str) -> Optional[list[int]]:
        if ctx.is_admin:
            return None
        return await self._access.associated_ids(ctx.access, data_type)

    async def client_copyrights(self, client: User) -> list[WorkDetails]:
        ctx = await self.context_for(client)
        if not ctx:
            return []
        return await self._copyrights_for(ctx)

    async def _copyrights_for(self, ctx: ClientContext) -> list[WorkDetails]:
        ids = await self._ids(ctx, "copyright")
        if ids == []:
            return []
        works = await self._copyrights.list_work_details(ctx.subscriber_id, ids)
        if ctx.is_admin:
            return works
        return filter_by_scope(ctx.access.visibility_scope, "copyright", works)

    async def client_contracts(self, client: User) -> list[Contract]:
        ctx = await self.context_for(client)
        if not ctx:
            return []
        ids = await self._ids(ctx, "contract")
        if ids == []:
            return []
        contracts = await self._contracts.list_contracts(ctx.subscriber_id, ids=ids)
        if ctx.is_admin:
            return contracts
        return filter_by_scope(ctx.access.visibility_scope, "contract", contracts)

    async def client_royalties(self, client: User, *, limit: int | None = None) -> list[RoyaltyAllocation]:
        ctx = await self.context_for(client)
        if not ctx:
            return []
        if ctx.is_admin:
            # split children repeat their parent's gross
            return await self._allocations.list_allocations(
                ctx.subscriber_id, include_children=False, limit=limit
            )
        ids = await self._ids(ctx, "royalty_allocation")
        if not ids:
            return []
        rows = await self._allocations.list_allocations(ctx.subscriber_id, ids=ids)
        visible = await self._visible_work_ids(ctx)
        rows = filter_by_scope(ctx.access.visibility_scope, "royalty_allocation", rows, visible_work_ids=visible)
        return rows[:limit] if limit else rows

    async def client_sync_licenses(self, client: User) -> list[SyncLicense]:
        ctx = await self.context_for(client)
        if not ctx:
            return []
        ids = await self._ids(ctx, "sync_license")
        if ids == []:
            return []
        licenses = await self._sync.list_licenses(ctx.subscriber_id, ids=ids)
        if ctx.is_admin:
            return licenses
        visible = await self._visible_work_ids(ctx)
        return filter_by_scope(ctx.access.visibility_scope, "sync_license", licenses, visible_work_ids=visible)

    async def _visible_work_ids(self, ctx: ClientContext) -> list[int]:
        if ctx.access.visibility_scope.scope_type not in ("artist", "label"):
            return []
        return [w.copyright.id for w in await self._copyrights_for(ctx)]

    async def client_dashboard(self, client: User) -> Optional[ClientDashboard]:
        ctx = await self.context_for(client)
        if not ctx:
            return None
        royalties = await self.client_royalties(client)
        dashboard = ClientDashboard(
            balance=await self._payouts.get_balance(ctx.subscriber_id, client.id),
            total_royalties=round(sum(r.gross_amount for r in royalties), 2),
            works=len(await self.client_copyrights(client)),
            contracts=len(await self.client_contracts(client)),
            sync_deals=len(await self.client_sync_licenses(client)),
        )
        logger.debug("Dashboard for client %s: %s", client.id, dashboard)
        return dashboard

