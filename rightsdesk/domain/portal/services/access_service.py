from __future__ import annotations

import logging
from typing import Optional

from ...accounts import User, UserRole
from ...shared.repositories import Clock
from ..models import DATA_TYPES, AccessStatus, PortalAccess, VisibilityScope
from ..repositories import AssociationsRepository, PortalAccessRepository

logger = logging.getLogger(__name__)


class PortalAccessService:
    def __init__(self, *, access: PortalAccessRepository, associations: AssociationsRepository, clock: Clock):
        self._access = access
        self._associations = associations
        self._clock = clock

    async def active_access(self, client_user_id: int) -> Optional[PortalAccess]:
        now = self._clock.now()
        for access in await self._access.list_for_client(client_user_id):
            if access.is_active(now):
                return access
        return None

    async def has_portal_access(self, client_user_id: int) -> bool:
        return await self.active_access(client_user_id) is not None

    async def is_admin(self, user: User) -> bool:
        if user.role is UserRole.ADMIN:
            return True
        access = await self.active_access(user.id)
        return bool(access and access.role == "admin")

    async def list_clients(self, subscriber_user_id: int) -> list[PortalAccess]:
        return await self._access.list_for_subscriber(subscriber_user_id)

    async def revoke_access(self, access_id: int) -> bool:
        access = await self._access.get(access_id)
        if not access or access.status is not AccessStatus.ACTIVE:
            return False
        await self._access.set_status(access_id, AccessStatus.REVOKED)
        logger.info("Portal access %s revoked", access_id)
        return True

    async def set_visibility_scope(self, access_id: int, scope: VisibilityScope) -> bool:
        if not await self._access.get(access_id):
            return False
        await self._access.set_scope(access_id, scope)
        return True

    async def assign(self, subscriber_user_id: int, client_user_id: int, data_type: str, data_id: int) -> bool:
        if data_type not in DATA_TYPES:
            raise ValueError(f"Unknown data type: {data_type}")
        return await self._associations.assign(
            subscriber_user_id=subscriber_user_id,
            client_user_id=client_user_id,
            data_type=data_type,
            data_id=data_id,
            created_at=self._clock.now(),
        )

    async def unassign(self, subscriber_user_id: int, client_user_id: int, data_type: str, data_id: int) -> bool:
        if data_type not in DATA_TYPES:
            raise ValueError(f"Unknown data type: {data_type}")
        return await self._associations.unassign(
            subscriber_user_id=subscriber_user_id,
            client_user_id=client_user_id,
            data_type=data_type,
            data_id=data_id,
        )

    async def associated_ids(self, access: PortalAccess, data_type: str) -> list[int]:
        return await self._associations.list_ids(access.subscriber_user_id, access.client_user_id, data_type)
