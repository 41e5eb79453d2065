from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

WORK_TYPES = ("ORI", "ARR", "ADP", "TRA", "COM")
RIGHT_TYPES = ("PERFORMANCE", "MECHANICAL", "SYNCHRONIZATION", "PRINT")


@dataclass(frozen=True)
class Copyright:
    id: int
    user_id: int
    internal_id: str
    work_title: str
    work_type: str = "ORI"
    iswc: str | None = None
    language_code: str | None = None
    duration_seconds: int | None = None
    status: str = "draft"
    akas: tuple[str, ...] = ()
    validation_status: str = "pending"
    created_at: datetime | None = None


@dataclass(frozen=True)
class CopyrightWriter:
    id: int
    copyright_id: int
    writer_name: str
    writer_role: str = "composer"
    controlled_status: str = "NC"
    ownership_percentage: float = 0.0
    ipi_number: str | None = None
    performance_share: float = 0.0
    mechanical_share: float = 0.0
    synchronization_share: float = 0.0
    print_share: float = 0.0

    @property
    def is_controlled(self) -> bool:
        return self.controlled_status == "C"

    def share_for(self, right: str) -> float:
        return float(getattr(self, f"{right.lower()}_share", 0.0) or 0.0)


@dataclass(frozen=True)
class CopyrightPublisher:
    id: int
    copyright_id: int
    publisher_name: str
    publisher_role: str = "E "
    ownership_percentage: float = 0.0
    ipi_number: str | None = None
    performance_share: float = 0.0
    mechanical_share: float = 0.0
    synchronization_share: float = 0.0
    print_share: float = 0.0

    def share_for(self, right: str) -> float:
        return float(getattr(self, f"{right.lower()}_share", 0.0) or 0.0)


@dataclass(frozen=True)
class CopyrightRecording:
    id: int
    copyright_id: int
    isrc: str | None = None
    recording_title: str | None = None
    artist_name: str | None = None
    duration_seconds: int | None = None
    release_date: str | None = None


@dataclass(frozen=True)
class WorkDetails:
    copyright: Copyright
    writers: Sequence[CopyrightWriter] = field(default_factory=tuple)
    publishers: Sequence[CopyrightPublisher] = field(default_factory=tuple)
    recordings: Sequence[CopyrightRecording] = field(default_factory=tuple)

    @property
    def controlled_writers(self) -> list[CopyrightWriter]:
        return [w for w in self.writers if w.is_controlled]

    @property
    def controlled_share(self) -> float:
        return round(sum(w.ownership_percentage for w in self.controlled_writers), 4)

    @property
    def writer_names(self) -> list[str]:
        return [w.writer_name for w in self.writers]


@dataclass(frozen=True)
class CopyrightExport:
    id: int
    user_id: int
    filename: str
    work_ids: tuple[int, ...]
    record_count: int
    content: str = ""
    created_at: datetime | None = None
