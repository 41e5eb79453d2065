from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from ...copyright import CopyrightService
from ..mapping import UNKNOWN_SOURCE, StatementMapper
from ..matching import SongQuery, best_match
from ..models import ImportStaging, ProcessingStatus
from ..repositories import AllocationsRepository, StagingRepository
from ..territories import normalize_territory

logger = logging.getLogger(__name__)

TERRITORY_HEADERS = ("Country", "Territory", "Territory Name", "Country Name")


class ImportStatus(Enum):
    IMPORTED = "imported"
    EMPTY = "empty"
    UNKNOWN_SOURCE = "unknown_source"


@dataclass(frozen=True)
class ImportResult:
    status: ImportStatus
    staging_id: Optional[int] = None
    source: Optional[str] = None
    confidence: float = 0.0
    validation_status: Optional[str] = None
    errors: tuple[str, ...] = ()


class ProcessStatus(Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    ALREADY_PROCESSED = "already_processed"


@dataclass(frozen=True)
class ProcessResult:
    status: ProcessStatus
    created: int = 0
    matched: int = 0
    unmatched: int = 0
    processing_status: Optional[ProcessingStatus] = None


def rows_from_csv(text: str) -> list[dict[str, str]]:
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    return [dict(row) for row in reader]


def _territory(raw: Mapping[str, Any]) -> Optional[str]:
    for header in TERRITORY_HEADERS:
        value = raw.get(header)
        if value:
            return normalize_territory(str(value))
    return None


class StatementImportService:
    """Stages uploaded statements and turns staged rows into royalty allocations."""

    def __init__(
        self,
        *,
        staging: StagingRepository,
        allocations: AllocationsRepository,
        copyrights: CopyrightService,
        mapper: StatementMapper | None = None,
    ):
        self._staging = staging
        self._allocations = allocations
        self._copyrights = copyrights
        self._mapper = mapper or StatementMapper()

    @property
    def mapper(self) -> StatementMapper:
        return self._mapper

    async def import_statement(
        self,
        user_id: int,
        filename: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        source: str | None = None,
        batch_id: int | None = None,
    ) -> ImportResult:
        if not rows:
            return ImportResult(ImportStatus.EMPTY, errors=("No data rows found in the statement",))

        confidence = 1.0
        if not source:
            source, confidence = self._mapper.detect_source(rows[0].keys())
        if source == UNKNOWN_SOURCE:
            return ImportResult(
                ImportStatus.UNKNOWN_SOURCE,
                confidence=confidence,
                errors=("Could not detect statement source, please select it manually",),
            )

        mapped = self._mapper.map_rows(rows, source)
        staging_id = await self._staging.create(
            user_id=user_id,
            filename=filename,
            detected_source=source,
            raw_data=[dict(r) for r in rows],
            mapped_data=mapped.rows,
            unmapped_fields=mapped.unmapped_fields,
            validation_errors=mapped.validation_errors,
            validation_status=mapped.validation_status,
            batch_id=batch_id,
        )
        logger.info(
            "Staged %s rows from %s as %s (%s, %s issues)",
            len(rows),
            filename,
            source,
            mapped.validation_status,
            len(mapped.validation_errors),
        )
        return ImportResult(
            ImportStatus.IMPORTED,
            staging_id=staging_id,
            source=source,
            confidence=confidence,
            validation_status=mapped.validation_status,
            errors=tuple(mapped.validation_errors),
        )

    async def process_staging(self, staging_id: int, *, min_confidence: float = 0.6) -> ProcessResult:
        staging = await self._staging.get(staging_id)
        if not staging:
            return ProcessResult(ProcessStatus.NOT_FOUND)
        if staging.processing_status is ProcessingStatus.PROCESSED:
            return ProcessResult(ProcessStatus.ALREADY_PROCESSED, processing_status=staging.processing_status)

        works = await self._copyrights.list_work_details(staging.user_id)
        created = matched = 0
        for index, row in enumerate(staging.mapped_data):
            title = row.get("Song Title")
            if not title:
                continue
            raw = staging.raw_data[index] if index < len(staging.raw_data) else {}
            song = SongQuery(
                title=title,
                artist=row.get("Client Name") or "",
                iswc=row.get("ISWC"),
                gross_amount=row.get("Gross Amount"),
            )
            match = best_match(song, works, min_confidence)
            comments = None
            copyright_id = None
            if match:
                matched += 1
                copyright_id = match.work.copyright.id
                comments = f"Match confidence: {match.percent}%"
            await self._allocations.create(
                staging.user_id,
                {
                    "staging_id": staging.id,
                    "batch_id": staging.batch_id,
                    "copyright_id": copyright_id,
                    "song_title": title,
                    "artist": row.get("Client Name"),
                    "iswc": row.get("ISWC"),
                    "work_id": row.get("Work ID"),
                    "source": row.get("Source") or staging.detected_source,
                    "royalty_type": row.get("Royalty Type"),
                    "country": _territory(raw),
                    "gross_amount": float(row.get("Gross Amount") or 0),
                    "share_percentage": row.get("Share %"),
                    "period_start": row.get("Period Start"),
                    "period_end": row.get("Period End"),
                    "payment_date": row.get("Payment Date"),
                    "comments": comments,
                },
            )
            created += 1

        unmatched = created - matched
        status = ProcessingStatus.NEEDS_REVIEW if unmatched else ProcessingStatus.PROCESSED
        if created == 0:
            status = ProcessingStatus.FAILED
        await self._staging.set_status(staging.id, status)
        logger.info(
            "Processed staging %s: %s allocations, %s unmatched, status %s",
            staging.id,
            created,
            unmatched,
            status.value,
        )
        return ProcessResult(
            ProcessStatus.OK,
            created=created,
            matched=matched,
            unmatched=unmatched,
            processing_status=status,
        )

    async def get_staging(self, staging_id: int) -> Optional[ImportStaging]:
        return await self._staging.get(staging_id)

    async def list_staging(self, user_id: int, status: ProcessingStatus | None = None) -> list[ImportStaging]:
        return await self._staging.list_for_user(user_id, status=status)

    async def delete_staging(self, staging_id: int) -> bool:
        return await self._staging.delete(staging_id)
