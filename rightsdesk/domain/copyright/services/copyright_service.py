from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from ...security.sanitize import sanitize_input
from ...shared.repositories import Clock
from ..cwr import CWRValidationResult, export_cwr, validate_cwr_compliance, validate_cwr_field
from ..models import RIGHT_TYPES, WORK_TYPES, Copyright, WorkDetails
from ..repositories import CopyrightExportsRepository, CopyrightsRepository

logger = logging.getLogger(__name__)

WRITER_ROLES = ("composer", "lyricist", "composer_lyricist", "arranger", "translator", "adapter")
PUBLISHER_ROLES = ("E ", "ES", "PA", "SE")
WORK_STATUSES = ("draft", "registered", "pending", "rejected")
SHARE_FIELDS = tuple(f"{right.lower()}_share" for right in RIGHT_TYPES)


class CopyrightChangeStatus(Enum):
    OK = "ok"
    INVALID = "invalid"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class CopyrightChangeResult:
    status: CopyrightChangeStatus
    id: Optional[int] = None
    internal_id: Optional[str] = None
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class CWRExportResult:
    export_id: int
    filename: str
    content: str
    record_count: int
    work_ids: tuple[int, ...]


def _invalid(*errors: str) -> CopyrightChangeResult:
    return CopyrightChangeResult(CopyrightChangeStatus.INVALID, errors=tuple(errors))


def _percentage(value: Any) -> float | None:
    try:
        pct = float(value or 0)
    except (TypeError, ValueError):
        return None
    if pct < 0 or pct > 100:
        return None
    return pct


def _shares(fields: Mapping[str, Any], errors: list[str]) -> dict[str, float]:
    shares: dict[str, float] = {}
    for key in ("ownership_percentage",) + SHARE_FIELDS:
        pct = _percentage(fields.get(key))
        if pct is None:
            errors.append(f"{key} must be between 0 and 100")
        else:
            shares[key] = pct
    return shares


class CopyrightService:
    """Work registration, party management, CWR validation and export."""

    def __init__(
        self,
        *,
        copyrights: CopyrightsRepository,
        exports: CopyrightExportsRepository,
        clock: Clock,
        sender_id: str = "RDESK",
    ):
        self._copyrights = copyrights
        self._exports = exports
        self._clock = clock
        self._sender_id = sender_id

    async def register_work(
        self,
        user_id: int,
        *,
        work_title: str,
        work_type: str = "ORI",
        iswc: str | None = None,
        language_code: str | None = None,
        duration_seconds: int | None = None,
        akas: Sequence[str] = (),
        status: str = "draft",
    ) -> CopyrightChangeResult:
        title = sanitize_input(work_title or "", 60)
        errors: list[str] = []
        errors += validate_cwr_field("NWR.WORK_TITLE", title).errors
        if work_type not in WORK_TYPES:
            errors += validate_cwr_field("NWR.WORK_TYPE", work_type).errors
        if iswc:
            errors += validate_cwr_field("NWR.ISWC", iswc).errors
        if language_code:
            language_code = language_code.upper()
            errors += validate_cwr_field("NWR.LANGUAGE_CODE", language_code).errors
        errors += validate_cwr_field("NWR.DURATION", duration_seconds).errors
        if status not in WORK_STATUSES:
            errors.append(f"status must be one of: {', '.join(WORK_STATUSES)}")
        if errors:
            return _invalid(*errors)

        year = self._clock.now().year
        seq = await self._copyrights.next_sequence(user_id, year)
        internal_id = f"CW-{year}-{seq:06d}"
        copyright_id = await self._copyrights.create(
            user_id,
            internal_id,
            {
                "work_title": title,
                "work_type": work_type,
                "iswc": iswc or None,
                "language_code": language_code or None,
                "duration_seconds": duration_seconds,
                "akas": [sanitize_input(a, 60) for a in akas if a and a.strip()],
                "status": status,
            },
        )
        logger.info("Registered work %s (%s) for user %s", internal_id, copyright_id, user_id)
        return CopyrightChangeResult(CopyrightChangeStatus.OK, id=copyright_id, internal_id=internal_id)

    async def update_work(self, copyright_id: int, fields: Mapping[str, Any]) -> CopyrightChangeResult:
        work = await self._copyrights.get(copyright_id)
        if not work:
            return CopyrightChangeResult(CopyrightChangeStatus.NOT_FOUND)
        allowed = {"work_title", "work_type", "iswc", "language_code", "duration_seconds", "akas", "status"}
        changes = {k: v for k, v in fields.items() if k in allowed}
        errors: list[str] = []
        if "work_title" in changes:
            errors += validate_cwr_field("NWR.WORK_TITLE", changes["work_title"]).errors
        if "work_type" in changes:
            errors += validate_cwr_field("NWR.WORK_TYPE", changes["work_type"]).errors
        if changes.get("iswc"):
            errors += validate_cwr_field("NWR.ISWC", changes["iswc"]).errors
        if "duration_seconds" in changes:
            errors += validate_cwr_field("NWR.DURATION", changes["duration_seconds"]).errors
        if "status" in changes and changes["status"] not in WORK_STATUSES:
            errors.append(f"status must be one of: {', '.join(WORK_STATUSES)}")
        if errors:
            return _invalid(*errors)
        if changes:
            await self._copyrights.update(copyright_id, changes)
        return CopyrightChangeResult(CopyrightChangeStatus.OK, id=copyright_id, internal_id=work.internal_id)

    async def delete_work(self, copyright_id: int) -> bool:
        return await self._copyrights.delete(copyright_id)

    async def add_writer(self, copyright_id: int, fields: Mapping[str, Any]) -> CopyrightChangeResult:
        details = await self.get_work(copyright_id)
        if not details:
            return CopyrightChangeResult(CopyrightChangeStatus.NOT_FOUND)
        errors: list[str] = []
        name = sanitize_input(str(fields.get("writer_name") or ""), 90)
        if not name:
            errors.append("writer_name is required")
        role = fields.get("writer_role") or "composer"
        if role not in WRITER_ROLES:
            errors.append(f"writer_role must be one of: {', '.join(WRITER_ROLES)}")
        controlled = fields.get("controlled_status") or "NC"
        if controlled not in ("C", "NC"):
            errors.append("controlled_status must be C or NC")
        ipi = fields.get("ipi_number") or None
        if ipi:
            errors += validate_cwr_field("SWR.IPI_NUMBER", ipi).errors
        shares = _shares(fields, errors)
        if not errors:
            total = sum(w.ownership_percentage for w in details.writers) + shares["ownership_percentage"]
            if total > 100.0001:
                errors.append(f"Total writer ownership would exceed 100% (current: {total:g}%)")
        if errors:
            return _invalid(*errors)
        writer_id = await self._copyrights.add_writer(
            copyright_id,
            {
                "writer_name": name,
                "writer_role": role,
                "controlled_status": controlled,
                "ipi_number": ipi,
                **shares,
            },
        )
        return CopyrightChangeResult(CopyrightChangeStatus.OK, id=writer_id)

    async def add_publisher(self, copyright_id: int, fields: Mapping[str, Any]) -> CopyrightChangeResult:
        work = await self._copyrights.get(copyright_id)
        if not work:
            return CopyrightChangeResult(CopyrightChangeStatus.NOT_FOUND)
        errors: list[str] = []
        name = sanitize_input(str(fields.get("publisher_name") or ""), 45)
        errors += validate_cwr_field("PWR.PUBLISHER_NAME", name).errors
        role = fields.get("publisher_role") or "E "
        if len(role) == 1:
            role = f"{role} "
        if role not in PUBLISHER_ROLES:
            errors += validate_cwr_field("PWR.PUBLISHER_TYPE", role).errors
        ipi = fields.get("ipi_number") or None
        if ipi:
            errors += validate_cwr_field("SWR.IPI_NUMBER", ipi).errors
        shares = _shares(fields, errors)
        if errors:
            return _invalid(*errors)
        publisher_id = await self._copyrights.add_publisher(
            copyright_id,
            {"publisher_name": name, "publisher_role": role, "ipi_number": ipi, **shares},
        )
        return CopyrightChangeResult(CopyrightChangeStatus.OK, id=publisher_id)

    async def add_recording(self, copyright_id: int, fields: Mapping[str, Any]) -> CopyrightChangeResult:
        work = await self._copyrights.get(copyright_id)
        if not work:
            return CopyrightChangeResult(CopyrightChangeStatus.NOT_FOUND)
        errors: list[str] = []
        isrc = (fields.get("isrc") or "").replace("-", "").upper() or None
        if isrc:
            errors += validate_cwr_field("REC.ISRC", isrc).errors
        title = fields.get("recording_title") or work.work_title
        artist = fields.get("artist_name") or None
        errors += validate_cwr_field("REC.RECORDING_TITLE", title).errors
        errors += validate_cwr_field("REC.ARTIST_NAME", artist).errors
        if errors:
            return _invalid(*errors)
        recording_id = await self._copyrights.add_recording(
            copyright_id,
            {
                "isrc": isrc,
                "recording_title": title,
                "artist_name": artist,
                "duration_seconds": fields.get("duration_seconds"),
                "release_date": fields.get("release_date"),
            },
        )
        return CopyrightChangeResult(CopyrightChangeStatus.OK, id=recording_id)

    async def list_works(
        self,
        user_id: int,
        *,
        search: str | None = None,
        status: str | None = None,
        ids: Sequence[int] | None = None,
    ) -> list[Copyright]:
        return await self._copyrights.list_for_user(user_id, search=search, status=status, ids=ids)

    async def get_work(self, copyright_id: int) -> Optional[WorkDetails]:
        work = await self._copyrights.get(copyright_id)
        if not work:
            return None
        return WorkDetails(
            copyright=work,
            writers=tuple(await self._copyrights.list_writers([copyright_id])),
            publishers=tuple(await self._copyrights.list_publishers([copyright_id])),
            recordings=tuple(await self._copyrights.list_recordings([copyright_id])),
        )

    async def list_work_details(self, user_id: int, ids: Sequence[int] | None = None) -> list[WorkDetails]:
        works = await self._copyrights.list_for_user(user_id, ids=ids)
        if not works:
            return []
        work_ids = [w.id for w in works]
        writers = await self._copyrights.list_writers(work_ids)
        publishers = await self._copyrights.list_publishers(work_ids)
        recordings = await self._copyrights.list_recordings(work_ids)
        return [
            WorkDetails(
                copyright=w,
                writers=tuple(x for x in writers if x.copyright_id == w.id),
                publishers=tuple(x for x in publishers if x.copyright_id == w.id),
                recordings=tuple(x for x in recordings if x.copyright_id == w.id),
            )
            for w in works
        ]

    async def validate_work(self, copyright_id: int) -> Optional[CWRValidationResult]:
        details = await self.get_work(copyright_id)
        if not details:
            return None
        result = validate_cwr_compliance(
            details.copyright, details.writers, details.publishers, details.recordings
        )
        if not result.is_valid:
            validation_status = "errors"
        elif result.warnings:
            validation_status = "warnings"
        else:
            validation_status = "valid"
        await self._copyrights.update(copyright_id, {"validation_status": validation_status})
        return result

    async def export_works(self, user_id: int, work_ids: Sequence[int]) -> Optional[CWRExportResult]:
        details = await self.list_work_details(user_id, ids=work_ids)
        if not details:
            return None
        now = self._clock.now()
        content = export_cwr(details, self._sender_id, now)
        record_count = content.count("\n") + 1
        filename = f"CW{now:%y%m%d%H%M%S}_{self._sender_id[:9].upper()}.V21"
        exported_ids = tuple(d.copyright.id for d in details)
        export_id = await self._exports.add(
            user_id=user_id,
            filename=filename,
            work_ids=exported_ids,
            record_count=record_count,
            content=content,
        )
        logger.info("CWR export %s: %s works, %s records", filename, len(details), record_count)
        return CWRExportResult(
            export_id=export_id,
            filename=filename,
            content=content,
            record_count=record_count,
            work_ids=exported_ids,
        )
