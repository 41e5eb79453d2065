from .models import (
    DATA_TYPES,
    SCOPE_TYPES,
    AccessStatus,
    DataAssociation,
    Invitation,
    InvitationState,
    InvitationStatus,
    PortalAccess,
    VisibilityScope,
)
from .repositories import InvitationNotifier
from .scope import filter_by_scope
from .services import (
    MAINTENANCE_ACTIONS,
    AcceptResult,
    AcceptStatus,
    InvitationService,
    InviteResult,
    InviteStatus,
    MaintenanceService,
    PortalAccessService,
    invitation_state,
)

__all__ = [
    "AcceptResult",
    "AcceptStatus",
    "AccessStatus",
    "DATA_TYPES",
    "DataAssociation",
    "InvitationNotifier",
    "Invitation",
    "InvitationService",
    "InvitationState",
    "InvitationStatus",
    "InviteResult",
    "InviteStatus",
    "MAINTENANCE_ACTIONS",
    "MaintenanceService",
    "PortalAccess",
    "PortalAccessService",
    "SCOPE_TYPES",
    "VisibilityScope",
    "filter_by_scope",
    "invitation_state",
]
