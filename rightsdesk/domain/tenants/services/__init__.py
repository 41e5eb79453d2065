from .tenant_service import BRANDING_BUCKET, TenantService

__all__ = ["BRANDING_BUCKET", "TenantService"]
