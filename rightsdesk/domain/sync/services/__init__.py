from .sync_service import SyncChangeResult, SyncChangeStatus, SyncService, validate_license_fields

__all__ = ["SyncChangeResult", "SyncChangeStatus", "SyncService", "validate_license_fields"]
