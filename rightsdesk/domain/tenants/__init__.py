from .models import BRAND_FIELDS, MODULES, BrandConfig, Tenant, TenantStatus
from .repositories import TenantsRepository
from .services import BRANDING_BUCKET, TenantService

__all__ = [
    "BRANDING_BUCKET",
    "BRAND_FIELDS",
    "BrandConfig",
    "MODULES",
    "Tenant",
    "TenantService",
    "TenantStatus",
    "TenantsRepository",
]
