from __future__ import annotations

from typing import Sequence

from ..copyright.models import WorkDetails
from .models import FeeAllocation, SyncLicense


def calculate_fee_allocations(license: SyncLicense, works: Sequence[WorkDetails]) -> list[FeeAllocation]:
    """Spreads the publishing fee evenly over linked works, then over each work's
    controlled writers by ownership. The master fee is kept as one entry whose
    controlled part follows ``master_share_percentage``.
    """
    allocations: list[FeeAllocation] = []
    linked = [w for w in works if w.copyright.id in license.linked_copyright_ids]
    pub_share = (license.pub_share_percentage if license.pub_share_percentage is not None else 100.0) / 100

    if license.pub_fee and linked:
        per_work = license.pub_fee / len(linked)
        for work in linked:
            for writer in work.controlled_writers:
                amount = round(per_work * writer.ownership_percentage / 100, 2)
                allocations.append(
                    FeeAllocation(
                        fee_type="publishing",
                        amount=amount,
                        controlled_amount=round(amount * pub_share, 2),
                        copyright_id=work.copyright.id,
                        work_title=work.copyright.work_title,
                        writer_name=writer.writer_name,
                        ownership_percentage=writer.ownership_percentage,
                    )
                )

    if license.master_fee:
        allocations.append(
            FeeAllocation(
                fee_type="master",
                amount=round(license.master_fee, 2),
                controlled_amount=round(license.master_fee * (license.master_share_percentage or 0) / 100, 2),
            )
        )
    return allocations


def controlled_total(allocations: Sequence[FeeAllocation]) -> float:
    return round(sum(a.controlled_amount for a in allocations), 2)
