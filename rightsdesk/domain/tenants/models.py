from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Optional

MODULES = (
    "catalog_valuation",
    "contract_management",
    "copyright_management",
    "royalties_processing",
    "sync_licensing",
    "client_portal",
)


class TenantStatus(Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


@dataclass(frozen=True)
class BrandConfig:
    logo_url: str = ""
    favicon_url: str = ""
    primary: str = "254 100% 76%"
    secondary: str = "0 0% 15%"
    accent: str = "39 35% 64%"
    background: str = "0 0% 0%"
    foreground: str = "0 0% 90%"
    heading_font: str = "Space Grotesk"
    body_font: str = "Inter"

    def merged(self, changes: Mapping[str, Any]) -> "BrandConfig":
        known = {k: str(v) for k, v in changes.items() if k in BRAND_FIELDS and v is not None}
        return replace(self, **known)

    def to_dict(self) -> dict[str, str]:
        return {
            "logo_url": self.logo_url,
            "favicon_url": self.favicon_url,
            "colors": {
                "primary": self.primary,
                "secondary": self.secondary,
                "accent": self.accent,
                "background": self.background,
                "foreground": self.foreground,
            },
            "fonts": {"heading": self.heading_font, "body": self.body_font},
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "BrandConfig":
        if not data:
            return cls()
        colors = data.get("colors") or {}
        fonts = data.get("fonts") or {}
        flat = {
            "logo_url": data.get("logo_url"),
            "favicon_url": data.get("favicon_url"),
            "primary": colors.get("primary"),
            "secondary": colors.get("secondary"),
            "accent": colors.get("accent"),
            "background": colors.get("background"),
            "foreground": colors.get("foreground"),
            "heading_font": fonts.get("heading"),
            "body_font": fonts.get("body"),
        }
        return cls().merged(flat)


BRAND_FIELDS = (
    "logo_url",
    "favicon_url",
    "primary",
    "secondary",
    "accent",
    "background",
    "foreground",
    "heading_font",
    "body_font",
)


@dataclass(frozen=True)
class Tenant:
    id: int
    slug: str
    display_name: str
    subdomain: str
    brand_config: BrandConfig = field(default_factory=BrandConfig)
    enabled_modules: tuple[str, ...] = ()
    status: TenantStatus = TenantStatus.ACTIVE

    def has_module(self, module: str) -> bool:
        return module in self.enabled_modules
