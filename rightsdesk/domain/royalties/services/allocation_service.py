from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from ...copyright import CopyrightService
from ..discrepancy import DiscrepancyReport, build_discrepancy_report
from ..models import SPLIT_MARKER, RoyaltyAllocation
from ..repositories import AllocationsRepository
from ..splitting import split_amount
from ..territories import normalize_territory

logger = logging.getLogger(__name__)


class SplitStatus(Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    NOT_LINKED = "not_linked"
    ALREADY_SPLIT = "already_split"
    NO_CONTROLLED_WRITERS = "no_controlled_writers"


@dataclass(frozen=True)
class SplitResult:
    status: SplitStatus
    child_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class TerritoryNormalization:
    updated: int
    skipped: int

    @property
    def total(self) -> int:
        return self.updated + self.skipped


class AllocationService:
    def __init__(self, *, allocations: AllocationsRepository, copyrights: CopyrightService):
        self._allocations = allocations
        self._copyrights = copyrights

    async def list_allocations(
        self,
        user_id: int,
        *,
        copyright_id: int | None = None,
        batch_id: int | None = None,
        ids: Sequence[int] | None = None,
        include_children: bool = True,
        limit: int | None = None,
    ) -> list[RoyaltyAllocation]:
        return await self._allocations.list_for_user(
            user_id,
            copyright_id=copyright_id,
            batch_id=batch_id,
            ids=ids,
            include_children=include_children,
            limit=limit,
        )

    async def get_allocation(self, allocation_id: int) -> Optional[RoyaltyAllocation]:
        return await self._allocations.get(allocation_id)

    async def assign_copyright(self, allocation_id: int, copyright_id: int) -> bool:
        allocation = await self._allocations.get(allocation_id)
        work = await self._copyrights.get_work(copyright_id)
        if not allocation or not work or work.copyright.user_id != allocation.user_id:
            return False
        await self._allocations.update(
            allocation_id,
            {"copyright_id": copyright_id, "comments": "Match confidence: 100% (manual)"},
        )
        return True

    async def split_allocation(self, allocation_id: int) -> SplitResult:
        allocation = await self._allocations.get(allocation_id)
        if not allocation:
            return SplitResult(SplitStatus.NOT_FOUND)
        if allocation.is_split or allocation.has_been_split or allocation.parent_allocation_id:
            return SplitResult(SplitStatus.ALREADY_SPLIT)
        if allocation.copyright_id is None:
            return SplitResult(SplitStatus.NOT_LINKED)
        work = await self._copyrights.get_work(allocation.copyright_id)
        parts = split_amount(allocation.gross_amount, work.writers if work else ())
        if not parts:
            return SplitResult(SplitStatus.NO_CONTROLLED_WRITERS)

        child_ids = []
        for part in parts:
            child_id = await self._allocations.create(
                allocation.user_id,
                {
                    "staging_id": allocation.staging_id,
                    "batch_id": allocation.batch_id,
                    "copyright_id": allocation.copyright_id,
                    "song_title": allocation.song_title,
                    "artist": part.writer_name,
                    "iswc": allocation.iswc,
                    "work_id": allocation.work_id,
                    "source": allocation.source,
                    "royalty_type": allocation.royalty_type,
                    "country": allocation.country,
                    "gross_amount": part.amount,
                    "share_percentage": part.percentage,
                    "period_start": allocation.period_start,
                    "period_end": allocation.period_end,
                    "payment_date": allocation.payment_date,
                    "comments": f"Split from allocation {allocation.id}",
                    "ownership_splits": {part.ownership_key: part.percentage},
                    "is_split": True,
                    "parent_allocation_id": allocation.id,
                },
            )
            child_ids.append(child_id)

        marker = SPLIT_MARKER.format(n=len(parts))
        comments = f"{allocation.comments} {marker}" if allocation.comments else marker
        await self._allocations.update(allocation.id, {"comments": comments})
        logger.info("Allocation %s split into %s writer allocations", allocation.id, len(parts))
        return SplitResult(SplitStatus.OK, child_ids=tuple(child_ids))

    async def normalize_territories(self, user_id: int) -> TerritoryNormalization:
        updated = skipped = 0
        for allocation in await self._allocations.list_for_user(user_id):
            if not allocation.country:
                continue
            normalized = normalize_territory(allocation.country)
            if normalized != allocation.country:
                await self._allocations.update(allocation.id, {"country": normalized})
                updated += 1
            else:
                skipped += 1
        logger.info("Territory normalization for user %s: %s updated, %s skipped", user_id, updated, skipped)
        return TerritoryNormalization(updated=updated, skipped=skipped)

    async def discrepancy_report(self, user_id: int) -> DiscrepancyReport:
        allocations = await self._allocations.list_for_user(user_id, include_children=False)
        return build_discrepancy_report(allocations)
