from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .models import RoyaltyAllocation

LOW_CONFIDENCE_THRESHOLD = 80


@dataclass(frozen=True)
class DiscrepancyReport:
    unmatched: list[RoyaltyAllocation] = field(default_factory=list)
    low_confidence: list[RoyaltyAllocation] = field(default_factory=list)
    duplicates: dict[str, list[RoyaltyAllocation]] = field(default_factory=dict)

    @property
    def total_issues(self) -> int:
        return len(self.unmatched) + len(self.low_confidence) + sum(len(v) for v in self.duplicates.values())


def build_discrepancy_report(allocations: Iterable[RoyaltyAllocation]) -> DiscrepancyReport:
    unmatched: list[RoyaltyAllocation] = []
    low_confidence: list[RoyaltyAllocation] = []
    by_title: dict[str, list[RoyaltyAllocation]] = {}
    for allocation in allocations:
        if allocation.parent_allocation_id is not None:
            continue
        if allocation.copyright_id is None:
            unmatched.append(allocation)
        confidence = allocation.match_confidence
        if confidence is not None and confidence < LOW_CONFIDENCE_THRESHOLD:
            low_confidence.append(allocation)
        title = (allocation.song_title or "").strip().lower()
        if title:
            by_title.setdefault(title, []).append(allocation)
    duplicates = {title: rows for title, rows in by_title.items() if len(rows) > 1}
    return DiscrepancyReport(unmatched=unmatched, low_confidence=low_confidence, duplicates=duplicates)
