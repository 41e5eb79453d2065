"""Fixed-width CWR 2.1 text export."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from ..models import WorkDetails

RECORD_SEPARATOR = "\n"


def _field(value: object, width: int) -> str:
    text = "" if value is None else str(value)
    return text[:width].ljust(width)


def _seq(value: int) -> str:
    return str(value).zfill(8)


def _basis_points(pct: float) -> str:
    return str(int(round((pct or 0.0) * 100))).zfill(5)


def header_record(sender_id: str, now: datetime) -> str:
    return "".join(
        [
            "HDR",
            "00001",
            "02.10",
            _field(sender_id.upper(), 28),
            now.strftime("%Y%m%d%H%M%S"),
            _field("", 96),
        ]
    )


def work_records(seq: int, details: WorkDetails) -> list[str]:
    work = details.copyright
    lines = [
        "".join(
            [
                "NWR",
                _seq(seq),
                _field(work.work_title, 60),
                _field(work.iswc, 11),
                _field(work.language_code, 14),
                _field(work.internal_id, 60),
                _field(work.work_type or "ORI", 3),
                "U",
                "Y" if details.recordings else "N",
                _field("", 3),
            ]
        )
    ]
    for writer in details.writers:
        lines.append(
            "".join(
                [
                    "SWR",
                    _seq(seq),
                    _field(writer.writer_name, 60),
                    _field(writer.ipi_number, 11),
                    "Y" if writer.is_controlled else "N",
                    _basis_points(writer.ownership_percentage),
                    "CA" if writer.writer_role == "composer" else "A ",
                ]
            )
        )
    for publisher in details.publishers:
        lines.append(
            "".join(
                [
                    "PWR",
                    _seq(seq),
                    _field(publisher.publisher_name, 60),
                    _field(publisher.ipi_number, 11),
                    "Y",
                    _basis_points(publisher.ownership_percentage),
                    _field(publisher.publisher_role or "E ", 2),
                ]
            )
        )
    for recording in details.recordings:
        release = (recording.release_date or "").replace("-", "")
        duration = str(recording.duration_seconds).zfill(6) if recording.duration_seconds else ""
        lines.append(
            "".join(
                [
                    "REC",
                    _seq(seq),
                    _field(recording.isrc, 12),
                    _field(recording.artist_name, 60),
                    _field(duration, 6),
                    _field(release, 8),
                ]
            )
        )
    return lines


def export_cwr(works: Sequence[WorkDetails], sender_id: str, now: datetime) -> str:
    lines = [header_record(sender_id, now)]
    for seq, details in enumerate(works, start=1):
        lines.extend(work_records(seq, details))
    lines.append(f"TRL000{len(lines) + 1:08d}01000000010")
    return RECORD_SEPARATOR.join(lines)
