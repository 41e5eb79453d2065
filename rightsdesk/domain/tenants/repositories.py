from __future__ import annotations

from typing import Iterable, Optional, Protocol

from .models import BrandConfig, Tenant, TenantStatus


class TenantsRepository(Protocol):
    async def add_or_update(
        self,
        *,
        slug: str,
        display_name: str,
        subdomain: str,
        brand_config: BrandConfig,
        enabled_modules: Iterable[str],
        status: TenantStatus = TenantStatus.ACTIVE,
    ) -> int: ...

    async def get_by_slug(self, slug: str) -> Optional[Tenant]: ...

    async def list_all(self) -> list[Tenant]: ...

    async def set_brand_config(self, slug: str, brand_config: BrandConfig) -> None: ...

    async def set_modules(self, slug: str, modules: Iterable[str]) -> None: ...

    async def delete_not_in(self, slugs: set[str]) -> int: ...
