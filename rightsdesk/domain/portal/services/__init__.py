from .access_service import PortalAccessService
from .invitation_service import (
    AcceptResult,
    AcceptStatus,
    InvitationService,
    InviteResult,
    InviteStatus,
    days_until,
    invitation_state,
)
from .maintenance_service import MAINTENANCE_ACTIONS, MaintenanceService

__all__ = [
    "AcceptResult",
    "AcceptStatus",
    "InvitationService",
    "InviteResult",
    "InviteStatus",
    "MAINTENANCE_ACTIONS",
    "MaintenanceService",
    "PortalAccessService",
    "days_until",
    "invitation_state",
]
