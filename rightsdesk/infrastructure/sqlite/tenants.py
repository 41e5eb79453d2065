from __future__ import annotations

from typing import Iterable, Optional

from ...domain.tenants.models import BrandConfig, Tenant, TenantStatus
from ...domain.tenants.repositories import TenantsRepository
from ..mappers import dump_json, tenant_from_row
from ..metrics import metrics
from .database import SQLiteDatabase


class SQLiteTenantsRepository(TenantsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:tenants.upsert", source="database")
    async def add_or_update(
        self,
        *,
        slug: str,
        display_name: str,
        subdomain: str,
        brand_config: BrandConfig,
        enabled_modules: Iterable[str],
        status: TenantStatus = TenantStatus.ACTIVE,
    ) -> int:
        async with self._db.connect() as conn:
            await conn.execute(
                """
                INSERT INTO tenants(slug, display_name, subdomain, brand_config, enabled_modules, status)
                VALUES(?, ?, ?, ?, ?, ?)
                ON CONFLICT(slug) DO UPDATE SET
                  display_name=excluded.display_name,
                  subdomain=excluded.subdomain,
                  brand_config=excluded.brand_config,
                  enabled_modules=excluded.enabled_modules,
                  status=excluded.status
                """,
                (
                    slug,
                    display_name,
                    subdomain,
                    dump_json(brand_config.to_dict()),
                    dump_json(list(enabled_modules)),
                    status.value,
                ),
            )
            cur = await conn.execute("SELECT id FROM tenants WHERE slug=?", (slug,))
            row = await cur.fetchone()
            await conn.commit()
        return int(row["id"])

    @metrics.wrap_async("db:tenants.get_by_slug", source="database")
    async def get_by_slug(self, slug: str) -> Optional[Tenant]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT * FROM tenants WHERE slug=?", (slug,))
            row = await cur.fetchone()
        return tenant_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:tenants.list", source="database")
    async def list_all(self) -> list[Tenant]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT * FROM tenants ORDER BY display_name COLLATE NOCASE")
            rows = await cur.fetchall()
        return [tenant_from_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:tenants.set_brand_config", source="database")
    async def set_brand_config(self, slug: str, brand_config: BrandConfig) -> None:
        async with self._db.connect() as conn:
            await conn.execute(
                "UPDATE tenants SET brand_config=? WHERE slug=?",
                (dump_json(brand_config.to_dict()), slug),
            )
            await conn.commit()

    @metrics.wrap_async("db:tenants.set_modules", source="database")
    async def set_modules(self, slug: str, modules: Iterable[str]) -> None:
        async with self._db.connect() as conn:
            await conn.execute(
                "UPDATE tenants SET enabled_modules=? WHERE slug=?",
                (dump_json(list(modules)), slug),
            )
            await conn.commit()

    @metrics.wrap_async("db:tenants.delete_not_in", source="database")
    async def delete_not_in(self, slugs: set[str]) -> int:
        async with self._db.connect() as conn:
            if slugs:
                placeholders = ", ".join("?" for _ in slugs)
                cur = await conn.execute(f"DELETE FROM tenants WHERE slug NOT IN ({placeholders})", tuple(slugs))
            else:
                cur = await conn.execute("DELETE FROM tenants")
            await conn.commit()
            return cur.rowcount
