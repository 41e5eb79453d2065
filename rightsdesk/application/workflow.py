from __future__ import annotations

import logging
from dataclasses import dataclass

from ..domain.accounts import AccountsService, User
from ..domain.tenants import TenantService
from .pages import Page
from .presenters import PortalPresenter
from .queries import PortalQueries

logger = logging.getLogger(__name__)

ROYALTIES_PAGE_SIZE = 10


@dataclass
class BotWorkflow:
    accounts: AccountsService
    portal_queries: PortalQueries
    tenants: TenantService
    presenter: PortalPresenter
    tenant_slug: str | None = None

    async def _brand_name(self) -> str | None:
        if not self.tenant_slug:
            return None
        tenant = await self.tenants.get(self.tenant_slug)
        return tenant.display_name if tenant else None

    async def _portal_enabled(self) -> bool:
        if not self.tenant_slug:
            return True
        return await self.tenants.is_module_enabled(self.tenant_slug, "client_portal")

    async def start_page(self, tg_user_id: int) -> Page:
        user = await self.accounts.find_by_chat(tg_user_id)
        return self.presenter.start_page(user, brand_name=await self._brand_name())

    async def link_chat(self, tg_user_id: int, token: str) -> Page:
        token = token.strip()
        if not token:
            return self.presenter.link_result_page(None, missing_token=True)
        user = await self.accounts.link_chat(token, tg_user_id)
        if user:
            logger.info("Chat %s linked to user %s", tg_user_id, user.id)
        return self.presenter.link_result_page(user)

    async def _client(self, tg_user_id: int) -> tuple[User | None, Page | None]:
        if not await self._portal_enabled():
            return None, self.presenter.portal_disabled_page()
        user = await self.accounts.find_by_chat(tg_user_id)
        if not user:
            return None, self.presenter.not_linked_page()
        return user, None

    async def dashboard_page(self, tg_user_id: int) -> Page:
        user, fallback = await self._client(tg_user_id)
        if fallback:
            return fallback
        dashboard = await self.portal_queries.client_dashboard(user)
        if not dashboard:
            return self.presenter.no_access_page()
        return self.presenter.dashboard_page(dashboard)

    async def royalties_page(self, tg_user_id: int) -> Page:
        user, fallback = await self._client(tg_user_id)
        if fallback:
            return fallback
        if not await self.portal_queries.context_for(user):
            return self.presenter.no_access_page()
        rows = await self.portal_queries.client_royalties(user, limit=ROYALTIES_PAGE_SIZE)
        return self.presenter.royalties_page(rows)

    async def works_page(self, tg_user_id: int) -> Page:
        user, fallback = await self._client(tg_user_id)
        if fallback:
            return fallback
        if not await self.portal_queries.context_for(user):
            return self.presenter.no_access_page()
        return self.presenter.works_page(await self.portal_queries.client_copyrights(user))

    async def contracts_page(self, tg_user_id: int) -> Page:
        user, fallback = await self._client(tg_user_id)
        if fallback:
            return fallback
        if not await self.portal_queries.context_for(user):
            return self.presenter.no_access_page()
        return self.presenter.contracts_page(await self.portal_queries.client_contracts(user))

    async def sync_page(self, tg_user_id: int) -> Page:
        user, fallback = await self._client(tg_user_id)
        if fallback:
            return fallback
        if not await self.portal_queries.context_for(user):
            return self.presenter.no_access_page()
        return self.presenter.sync_page(await self.portal_queries.client_sync_licenses(user))

    async def menu_page(self, tg_user_id: int, action: str) -> Page:
        handlers = {
            "dashboard": self.dashboard_page,
            "royalties": self.royalties_page,
            "works": self.works_page,
            "contracts": self.contracts_page,
            "sync": self.sync_page,
        }
        handler = handlers.get(action, self.dashboard_page)
        return await handler(tg_user_id)
