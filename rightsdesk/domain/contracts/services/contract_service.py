from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from ...security.sanitize import sanitize_input
from ...shared.repositories import Clock
from ..calculation import calculate_agreement_royalty, validate_royalty_splits
from ..models import Contract, ContractParty, ContractStatus, ContractType, RecoupmentStatus, RoyaltyCalculation
from ..repositories import ContractsRepository

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[ContractStatus, frozenset[ContractStatus]] = {
    ContractStatus.DRAFT: frozenset({ContractStatus.PENDING, ContractStatus.SIGNED, ContractStatus.TERMINATED}),
    ContractStatus.PENDING: frozenset({ContractStatus.SIGNED, ContractStatus.DRAFT, ContractStatus.TERMINATED}),
    ContractStatus.SIGNED: frozenset({ContractStatus.ACTIVE, ContractStatus.TERMINATED}),
    ContractStatus.ACTIVE: frozenset({ContractStatus.EXPIRED, ContractStatus.TERMINATED}),
    ContractStatus.EXPIRED: frozenset(),
    ContractStatus.TERMINATED: frozenset(),
}

DOCUMENT_FIELDS = {"w9": "w9_url", "direct_deposit": "direct_deposit_auth_url"}


class ContractChangeStatus(Enum):
    OK = "ok"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"


@dataclass(frozen=True)
class ContractChangeResult:
    status: ContractChangeStatus
    contract: Optional[Contract] = None
    errors: tuple[str, ...] = ()


def can_transition(current: ContractStatus, target: ContractStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def _to_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class ContractService:
    def __init__(self, *, contracts: ContractsRepository, clock: Clock):
        self._contracts = contracts
        self._clock = clock

    def _validate(self, fields: Mapping[str, Any]) -> tuple[dict[str, Any], list[str]]:
        errors: list[str] = []
        clean: dict[str, Any] = {}
        if "title" in fields:
            clean["title"] = sanitize_input(str(fields["title"] or ""), 200)
            if not clean["title"]:
                errors.append("title is required")
        if "counterparty_name" in fields:
            clean["counterparty_name"] = sanitize_input(str(fields["counterparty_name"] or ""), 200)
            if not clean["counterparty_name"]:
                errors.append("counterparty_name is required")
        if "contract_type" in fields:
            try:
                clean["contract_type"] = ContractType(fields["contract_type"])
            except ValueError:
                errors.append(f"Unknown contract type: {fields['contract_type']}")
        for key in ("advance_amount", "commission_percentage", "controlled_percentage"):
            if key in fields:
                try:
                    value = float(fields[key] or 0)
                except (TypeError, ValueError):
                    errors.append(f"{key} must be a number")
                    continue
                if value < 0 or (key != "advance_amount" and value > 100):
                    errors.append(f"{key} is out of range")
                clean[key] = value
        for key in ("start_date", "end_date"):
            if key in fields:
                try:
                    clean[key] = _to_date(fields[key])
                except ValueError:
                    errors.append(f"{key} must be an ISO date")
        start, end = clean.get("start_date"), clean.get("end_date")
        if start and end and end < start:
            errors.append("end_date must not be before start_date")
        if "territories" in fields:
            clean["territories"] = [str(t).upper() for t in fields["territories"] or []]
        if "royalty_splits" in fields:
            parties = [
                p if isinstance(p, ContractParty) else ContractParty.from_dict(dict(p))
                for p in fields["royalty_splits"] or []
            ]
            errors += validate_royalty_splits(parties)
            clean["royalty_splits"] = parties
        return clean, errors

    async def create_contract(self, user_id: int, fields: Mapping[str, Any]) -> ContractChangeResult:
        required = {"title": "", "counterparty_name": "", "contract_type": "publishing"}
        clean, errors = self._validate({**required, **fields})
        if errors:
            return ContractChangeResult(ContractChangeStatus.INVALID, errors=tuple(errors))
        advance = clean.get("advance_amount", 0.0)
        clean["contract_status"] = ContractStatus.DRAFT
        clean["advance_balance"] = advance
        clean["recoupment_status"] = RecoupmentStatus.PENDING if advance > 0 else RecoupmentStatus.NONE
        contract_id = await self._contracts.create(user_id, clean)
        logger.info("Contract %s created for user %s", contract_id, user_id)
        return ContractChangeResult(ContractChangeStatus.OK, contract=await self._contracts.get(contract_id))

    async def update_contract(self, contract_id: int, fields: Mapping[str, Any]) -> ContractChangeResult:
        contract = await self._contracts.get(contract_id)
        if not contract:
            return ContractChangeResult(ContractChangeStatus.NOT_FOUND)
        merged = dict(fields)
        if "start_date" in fields and "end_date" not in fields:
            merged["end_date"] = contract.end_date
        if "end_date" in fields and "start_date" not in fields:
            merged["start_date"] = contract.start_date
        clean, errors = self._validate(merged)
        if errors:
            return ContractChangeResult(ContractChangeStatus.INVALID, errors=tuple(errors))
        if clean:
            await self._contracts.update(contract_id, clean)
        return ContractChangeResult(ContractChangeStatus.OK, contract=await self._contracts.get(contract_id))

    async def change_status(self, contract_id: int, target: ContractStatus) -> ContractChangeResult:
        contract = await self._contracts.get(contract_id)
        if not contract:
            return ContractChangeResult(ContractChangeStatus.NOT_FOUND)
        if not can_transition(contract.contract_status, target):
            return ContractChangeResult(
                ContractChangeStatus.INVALID_TRANSITION,
                contract=contract,
                errors=(f"Cannot move contract from {contract.contract_status.value} to {target.value}",),
            )
        await self._contracts.update(contract_id, {"contract_status": target})
        logger.info(
            "Contract %s: %s -> %s", contract_id, contract.contract_status.value, target.value
        )
        return ContractChangeResult(ContractChangeStatus.OK, contract=await self._contracts.get(contract_id))

    async def expire_overdue(self, today: date | None = None) -> int:
        today = today or self._clock.now().date()
        count = await self._contracts.expire_before(today)
        if count:
            logger.info("Expired %s overdue contracts", count)
        return count

    async def attach_document(self, contract_id: int, kind: str, url: str) -> ContractChangeResult:
        column = DOCUMENT_FIELDS.get(kind)
        if column is None:
            raise ValueError(f"Unknown document kind: {kind}")
        contract = await self._contracts.get(contract_id)
        if not contract:
            return ContractChangeResult(ContractChangeStatus.NOT_FOUND)
        await self._contracts.update(contract_id, {column: url})
        return ContractChangeResult(ContractChangeStatus.OK, contract=await self._contracts.get(contract_id))

    async def get_contract(self, contract_id: int) -> Optional[Contract]:
        return await self._contracts.get(contract_id)

    async def list_contracts(
        self,
        user_id: int,
        *,
        status: ContractStatus | None = None,
        contract_type: str | None = None,
        search: str | None = None,
        ids: Sequence[int] | None = None,
    ) -> list[Contract]:
        return await self._contracts.list_for_user(
            user_id, status=status, contract_type=contract_type, search=search, ids=ids
        )

    async def delete_contract(self, contract_id: int) -> bool:
        return await self._contracts.delete(contract_id)

    async def calculate_for_contract(
        self,
        contract_id: int,
        gross: float,
        expenses: float = 0.0,
        *,
        apply: bool = False,
    ) -> Optional[RoyaltyCalculation]:
        """Runs the agreement royalty math against the contract's live advance balance.

        With ``apply`` the recouped amount is deducted from the stored balance
        and the recoupment status follows it.
        """
        contract = await self._contracts.get(contract_id)
        if not contract:
            return None
        result = calculate_agreement_royalty(
            gross, contract.commission_percentage, expenses, contract.advance_balance
        )
        if apply and contract.advance_amount > 0:
            if result.remaining_advance <= 0:
                recoupment = RecoupmentStatus.COMPLETE
            elif result.remaining_advance < contract.advance_amount:
                recoupment = RecoupmentStatus.PARTIAL
            else:
                recoupment = RecoupmentStatus.PENDING
            await self._contracts.update(
                contract_id,
                {"advance_balance": result.remaining_advance, "recoupment_status": recoupment},
            )
        return result
