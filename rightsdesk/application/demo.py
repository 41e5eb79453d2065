from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..domain.contracts import ContractService
from ..domain.copyright import CopyrightService
from ..domain.sync import SyncService

logger = logging.getLogger(__name__)


def _seeded(step: str, user_id: int, result: Any) -> bool:
    if result.status.value == "ok":
        return True
    logger.warning(
        "Demo seed step %s failed for user %s: %s %s",
        step,
        user_id,
        result.status.value,
        "; ".join(result.errors),
    )
    return False


@dataclass
class DemoCatalogSeeder:
    """Fills a fresh demo account with one work, one contract and one sync deal.

    Returns the number of failed steps. A failed work registration stops the
    seeding since every later step refers to the work.
    """

    copyrights: CopyrightService
    contracts: ContractService
    sync: SyncService

    async def __call__(self, user_id: int) -> int:
        work = await self.copyrights.register_work(
            user_id,
            work_title="MIDNIGHT HARBOR",
            iswc="T-123456789-0",
            language_code="EN",
            duration_seconds=215,
            status="registered",
        )
        if not _seeded("register_work", user_id, work):
            return 1

        failed = 0
        writers = (
            {
                "writer_name": "Ava Demo",
                "writer_role": "composer",
                "controlled_status": "C",
                "ownership_percentage": 50,
                "performance_share": 50,
                "mechanical_share": 50,
                "synchronization_share": 50,
            },
            {
                "writer_name": "Co Writer",
                "writer_role": "lyricist",
                "ownership_percentage": 50,
            },
        )
        for fields in writers:
            result = await self.copyrights.add_writer(work.id, fields)
            if not _seeded("add_writer", user_id, result):
                failed += 1
        contract = await self.contracts.create_contract(
            user_id,
            {
                "title": "Demo Publishing Agreement",
                "counterparty_name": "Ava Demo",
                "contract_type": "publishing",
                "advance_amount": 5000,
                "commission_percentage": 20,
                "controlled_percentage": 50,
                "territories": ["WORLD"],
            },
        )
        if not _seeded("create_contract", user_id, contract):
            failed += 1
        deal = await self.sync.create_license(
            user_id,
            {
                "project_title": "Harbor Lights (Short Film)",
                "media_type": "Film",
                "licensee_name": "Demo Pictures",
                "pub_fee": 2500,
                "linked_copyright_ids": [work.id],
            },
        )
        if not _seeded("create_license", user_id, deal):
            failed += 1
        if failed:
            logger.warning("Demo catalogue for user %s seeded with %s failed steps", user_id, failed)
        else:
            logger.info("Demo catalogue seeded for user %s", user_id)
        return failed
