import yaml
from pathlib import Path

from ..domain.tenants.models import MODULES, BrandConfig, TenantStatus
from ..domain.tenants.repositories import TenantsRepository


def load_tenants_from_yaml(path: str) -> list[dict]:
    p = Path(path)
    if not p.exists():
        raise RuntimeError(f"tenants file not found: {path}")

    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict) or "tenants" not in data:
        raise RuntimeError("Invalid tenants.yaml format")

    tenants = data["tenants"]
    if not isinstance(tenants, list):
        raise RuntimeError("tenants must be a list")

    normalized = []
    for entry in tenants:
        if not isinstance(entry, dict):
            raise RuntimeError(f"Invalid tenant entry: {entry}")
        slug = (entry.get("slug") or "").strip()
        display_name = (entry.get("display_name") or "").strip()
        if not slug or not display_name:
            raise RuntimeError(f"Invalid tenant entry: {entry}")

        modules = entry.get("enabled_modules")
        if modules is None:
            modules = list(MODULES)
        if not isinstance(modules, list):
            raise RuntimeError(f"enabled_modules must be a list for tenant {slug}")
        unknown = [m for m in modules if m not in MODULES]
        if unknown:
            raise RuntimeError(f"Unknown modules for tenant {slug}: {', '.join(map(str, unknown))}")

        brand = entry.get("brand_config") or {}
        if not isinstance(brand, dict):
            raise RuntimeError(f"brand_config must be a mapping for tenant {slug}")

        status = entry.get("status") or TenantStatus.ACTIVE.value
        try:
            TenantStatus(status)
        except ValueError as exc:
            raise RuntimeError(f"Invalid status for tenant {slug}: {status}") from exc

        normalized.append({
            "slug": slug,
            "display_name": display_name,
            "subdomain": (entry.get("subdomain") or slug).strip(),
            "brand_config": brand,
            "enabled_modules": modules,
            "status": status,
        })

    return normalized


async def sync_tenants(repo: TenantsRepository, yaml_path: str, *, delete_missing: bool = True) -> None:
    tenants = load_tenants_from_yaml(yaml_path)
    synced_slugs: set[str] = set()
    for t in tenants:
        synced_slugs.add(t["slug"])
        await repo.add_or_update(
            slug=t["slug"],
            display_name=t["display_name"],
            subdomain=t["subdomain"],
            brand_config=BrandConfig.from_dict(t["brand_config"]),
            enabled_modules=t["enabled_modules"],
            status=TenantStatus(t["status"]),
        )
    if delete_missing:
        await repo.delete_not_in(synced_slugs)
