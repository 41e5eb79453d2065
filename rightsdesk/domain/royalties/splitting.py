from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..copyright.models import CopyrightWriter


@dataclass(frozen=True)
class SplitPart:
    writer_id: int
    writer_name: str
    percentage: float
    amount: float

    @property
    def ownership_key(self) -> str:
        return f"copyright_writer_{self.writer_id}"


def split_amount(amount: float, writers: Sequence[CopyrightWriter]) -> list[SplitPart]:
    """Splits an amount pro rata over controlled writers' ownership.

    The last part absorbs rounding so the parts always sum to the input.
    """
    controlled = [w for w in writers if w.is_controlled and w.ownership_percentage > 0]
    total_pct = sum(w.ownership_percentage for w in controlled)
    if not controlled or total_pct <= 0:
        return []
    parts: list[SplitPart] = []
    allocated = 0.0
    for index, writer in enumerate(controlled):
        if index == len(controlled) - 1:
            part_amount = round(amount - allocated, 2)
        else:
            part_amount = round(amount * writer.ownership_percentage / total_pct, 2)
            allocated += part_amount
        parts.append(
            SplitPart(
                writer_id=writer.id,
                writer_name=writer.writer_name,
                percentage=writer.ownership_percentage,
                amount=part_amount,
            )
        )
    return parts
