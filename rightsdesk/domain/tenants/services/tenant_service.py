from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ...shared.repositories import BlobStorage, RemoteFetcher
from ..models import MODULES, Tenant
from ..repositories import TenantsRepository

logger = logging.getLogger(__name__)

BRANDING_BUCKET = "branding"


class TenantService:
    def __init__(
        self,
        *,
        tenants: TenantsRepository,
        storage: BlobStorage | None = None,
        fetcher: RemoteFetcher | None = None,
    ):
        self._tenants = tenants
        self._storage = storage
        self._fetcher = fetcher

    async def get(self, slug: str) -> Optional[Tenant]:
        return await self._tenants.get_by_slug(slug)

    async def list_tenants(self) -> list[Tenant]:
        return await self._tenants.list_all()

    async def update_branding(self, slug: str, changes: Mapping[str, Any]) -> Optional[Tenant]:
        tenant = await self._tenants.get_by_slug(slug)
        if not tenant:
            return None
        await self._tenants.set_brand_config(slug, tenant.brand_config.merged(changes))
        return await self._tenants.get_by_slug(slug)

    async def toggle_module(self, slug: str, module: str, enabled: bool) -> Optional[Tenant]:
        if module not in MODULES:
            raise ValueError(f"Unknown module: {module}")
        tenant = await self._tenants.get_by_slug(slug)
        if not tenant:
            return None
        modules = [m for m in tenant.enabled_modules if m != module]
        if enabled:
            modules.append(module)
        # stored in catalogue order
        ordered = [m for m in MODULES if m in modules]
        await self._tenants.set_modules(slug, ordered)
        logger.info("Tenant %s module %s -> %s", slug, module, "on" if enabled else "off")
        return await self._tenants.get_by_slug(slug)

    async def is_module_enabled(self, slug: str, module: str) -> bool:
        tenant = await self._tenants.get_by_slug(slug)
        return bool(tenant and tenant.has_module(module))

    async def enable_all_modules(self, slug: str) -> Optional[Tenant]:
        if not await self._tenants.get_by_slug(slug):
            return None
        await self._tenants.set_modules(slug, MODULES)
        return await self._tenants.get_by_slug(slug)

    async def cache_brand_logo(self, slug: str) -> Optional[str]:
        """Copy the tenant's remote logo into the branding bucket.

        Returns the new public URL, or ``None`` when the tenant is unknown,
        has no logo, or the logo cannot be downloaded or decoded. The tenant
        is left untouched on failure.
        """
        if self._storage is None or self._fetcher is None:
            raise RuntimeError("Brand asset caching is not configured")
        tenant = await self._tenants.get_by_slug(slug)
        if not tenant or not tenant.brand_config.logo_url:
            return None
        data = await self._fetcher.fetch(tenant.brand_config.logo_url)
        if not data:
            logger.info("Logo download failed for tenant %s", slug)
            return None
        try:
            blob = await self._storage.upload(BRANDING_BUCKET, tenant.id, "logo.png", data, "image/png")
        except ValueError as exc:
            logger.info("Logo for tenant %s rejected: %s", slug, exc)
            return None
        await self._tenants.set_brand_config(slug, tenant.brand_config.merged({"logo_url": blob.public_url}))
        return blob.public_url
