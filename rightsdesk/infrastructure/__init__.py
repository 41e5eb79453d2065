from .mapping_loader import load_mapping_overrides
from .tenants_loader import load_tenants_from_yaml, sync_tenants

__all__ = ["load_mapping_overrides", "load_tenants_from_yaml", "sync_tenants"]
