from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from ...copyright import CopyrightService
from ...security.sanitize import sanitize_input
from ...shared.repositories import Clock
from ..allocation import calculate_fee_allocations
from ..models import CURRENCIES, MEDIA_TYPES, SYNC_STATUSES, SYNC_TYPES, SyncLicense
from ..repositories import SyncLicensesRepository

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "project_title",
        "synch_agent",
        "licensee_name",
        "media_type",
        "sync_type",
        "pub_fee",
        "master_fee",
        "currency",
        "term_start",
        "term_end",
        "territories",
        "linked_copyright_ids",
        "pub_share_percentage",
        "master_share_percentage",
        "notes",
    }
)


class SyncChangeStatus(Enum):
    OK = "ok"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"


@dataclass(frozen=True)
class SyncChangeResult:
    status: SyncChangeStatus
    license: Optional[SyncLicense] = None
    errors: tuple[str, ...] = ()


def _as_date(value: Any) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def validate_license_fields(fields: Mapping[str, Any]) -> tuple[dict[str, Any], list[str]]:
    clean: dict[str, Any] = {}
    errors: list[str] = []
    for key, value in fields.items():
        if key not in EDITABLE_FIELDS:
            continue
        if key in ("project_title", "synch_agent", "licensee_name", "notes"):
            clean[key] = sanitize_input(str(value or ""), 500 if key == "notes" else 200) or None
        elif key == "media_type":
            if value not in MEDIA_TYPES:
                errors.append(f"media_type must be one of: {', '.join(MEDIA_TYPES)}")
            clean[key] = value
        elif key == "sync_type":
            if value not in SYNC_TYPES:
                errors.append(f"sync_type must be one of: {', '.join(SYNC_TYPES)}")
            clean[key] = value
        elif key == "currency":
            value = str(value or "USD").upper()
            if value not in CURRENCIES:
                errors.append(f"currency must be one of: {', '.join(CURRENCIES)}")
            clean[key] = value
        elif key in ("pub_fee", "master_fee", "pub_share_percentage", "master_share_percentage"):
            try:
                number = float(value or 0)
            except (TypeError, ValueError):
                errors.append(f"{key} must be a number")
                continue
            if number < 0 or (key.endswith("percentage") and number > 100):
                errors.append(f"{key} is out of range")
            clean[key] = number
        elif key in ("term_start", "term_end"):
            try:
                clean[key] = _as_date(value)
            except ValueError:
                errors.append(f"{key} must be an ISO date")
        elif key == "territories":
            clean[key] = [str(t).strip().upper() for t in value or [] if str(t).strip()]
        elif key == "linked_copyright_ids":
            clean[key] = [int(v) for v in value or []]
    if "project_title" in fields and not clean.get("project_title"):
        errors.append("project_title is required")
    start, end = clean.get("term_start"), clean.get("term_end")
    if start and end and end < start:
        errors.append("term_end must not be before term_start")
    return clean, errors


class SyncService:
    def __init__(self, *, licenses: SyncLicensesRepository, copyrights: CopyrightService, clock: Clock):
        self._licenses = licenses
        self._copyrights = copyrights
        self._clock = clock

    async def create_license(self, user_id: int, fields: Mapping[str, Any]) -> SyncChangeResult:
        clean, errors = validate_license_fields({"project_title": "", **fields})
        if errors:
            return SyncChangeResult(SyncChangeStatus.INVALID, errors=tuple(errors))
        year = self._clock.now().year
        seq = await self._licenses.next_sequence(user_id, year)
        synch_id = f"SYNC-{year}-{seq:04d}"
        license_id = await self._licenses.create(user_id, synch_id, clean)
        await self._refresh_allocations(license_id)
        logger.info("Sync license %s (%s) created for user %s", synch_id, license_id, user_id)
        return SyncChangeResult(SyncChangeStatus.OK, license=await self._licenses.get(license_id))

    async def update_license(self, license_id: int, fields: Mapping[str, Any]) -> SyncChangeResult:
        current = await self._licenses.get(license_id)
        if not current:
            return SyncChangeResult(SyncChangeStatus.NOT_FOUND)
        merged = dict(fields)
        if "term_start" in fields and "term_end" not in fields:
            merged["term_end"] = current.term_end
        if "term_end" in fields and "term_start" not in fields:
            merged["term_start"] = current.term_start
        clean, errors = validate_license_fields(merged)
        if errors:
            return SyncChangeResult(SyncChangeStatus.INVALID, license=current, errors=tuple(errors))
        if clean:
            await self._licenses.update(license_id, clean)
            await self._refresh_allocations(license_id)
        return SyncChangeResult(SyncChangeStatus.OK, license=await self._licenses.get(license_id))

    async def delete_license(self, license_id: int) -> bool:
        return await self._licenses.delete(license_id)

    async def get_license(self, license_id: int) -> Optional[SyncLicense]:
        return await self._licenses.get(license_id)

    async def list_licenses(
        self,
        user_id: int,
        *,
        status: str | None = None,
        media_type: str | None = None,
        search: str | None = None,
        ids: Sequence[int] | None = None,
    ) -> list[SyncLicense]:
        return await self._licenses.list_for_user(
            user_id, status=status, media_type=media_type, search=search, ids=ids
        )

    async def change_status(self, license_id: int, target: str) -> SyncChangeResult:
        current = await self._licenses.get(license_id)
        if not current:
            return SyncChangeResult(SyncChangeStatus.NOT_FOUND)
        if target not in SYNC_STATUSES:
            return SyncChangeResult(
                SyncChangeStatus.INVALID,
                license=current,
                errors=(f"status must be one of: {', '.join(SYNC_STATUSES)}",),
            )
        if current.synch_status == "Declined" and target != "Declined":
            return SyncChangeResult(
                SyncChangeStatus.INVALID_TRANSITION, license=current, errors=("Declined licenses are final",)
            )
        if target == "Licensed" and current.synch_status not in ("Approved", "Licensed"):
            return SyncChangeResult(
                SyncChangeStatus.INVALID_TRANSITION,
                license=current,
                errors=("A license must be Approved before it can be Licensed",),
            )
        await self._licenses.update(license_id, {"synch_status": target})
        return SyncChangeResult(SyncChangeStatus.OK, license=await self._licenses.get(license_id))

    async def issue_invoice(self, license_id: int) -> SyncChangeResult:
        current = await self._licenses.get(license_id)
        if not current:
            return SyncChangeResult(SyncChangeStatus.NOT_FOUND)
        if current.invoice_status == "Paid":
            return SyncChangeResult(
                SyncChangeStatus.INVALID_TRANSITION, license=current, errors=("Invoice is already paid",)
            )
        await self._licenses.update(
            license_id, {"invoice_status": "Issued", "invoiced_amount": current.total_fee}
        )
        return SyncChangeResult(SyncChangeStatus.OK, license=await self._licenses.get(license_id))

    async def record_payment(self, license_id: int, amount: float) -> SyncChangeResult:
        current = await self._licenses.get(license_id)
        if not current:
            return SyncChangeResult(SyncChangeStatus.NOT_FOUND)
        if amount <= 0:
            return SyncChangeResult(
                SyncChangeStatus.INVALID, license=current, errors=("Payment amount must be positive",)
            )
        received = round(current.payment_received + amount, 2)
        fields: dict[str, Any] = {"payment_received": received}
        if received >= current.total_fee:
            fields["payment_status"] = "Paid in Full"
            fields["invoice_status"] = "Paid"
        else:
            fields["payment_status"] = "Partial"
        await self._licenses.update(license_id, fields)
        logger.info("Sync license %s payment %.2f recorded (%s)", license_id, amount, fields["payment_status"])
        return SyncChangeResult(SyncChangeStatus.OK, license=await self._licenses.get(license_id))

    async def _refresh_allocations(self, license_id: int) -> None:
        current = await self._licenses.get(license_id)
        if not current:
            return
        works = []
        if current.linked_copyright_ids:
            works = await self._copyrights.list_work_details(current.user_id, ids=current.linked_copyright_ids)
        allocations = calculate_fee_allocations(current, works)
        await self._licenses.update(license_id, {"fee_allocations": [a.to_dict() for a in allocations]})
