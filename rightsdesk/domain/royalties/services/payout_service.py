from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from ...shared.repositories import Clock
from ..models import (
    PAYMENT_METHODS,
    BatchOperation,
    ClientBalance,
    Payout,
    PayoutExpense,
    PayoutStage,
    PayoutTotals,
    WorkflowHistoryEntry,
)
from ..repositories import AllocationsRepository, BalancesRepository, PayoutsRepository

logger = logging.getLogger(__name__)

STAGE_TRANSITIONS: dict[PayoutStage, frozenset[PayoutStage]] = {
    PayoutStage.DRAFT: frozenset({PayoutStage.PENDING_REVIEW}),
    PayoutStage.PENDING_REVIEW: frozenset({PayoutStage.APPROVED, PayoutStage.DRAFT}),
    PayoutStage.APPROVED: frozenset({PayoutStage.PROCESSING}),
    PayoutStage.PROCESSING: frozenset({PayoutStage.PAID, PayoutStage.FAILED}),
    PayoutStage.FAILED: frozenset({PayoutStage.PROCESSING}),
    PayoutStage.PAID: frozenset(),
}

BULK_OPERATIONS = {
    "approve": (PayoutStage.PENDING_REVIEW, PayoutStage.APPROVED),
    "mark_paid": (PayoutStage.PROCESSING, PayoutStage.PAID),
}


@dataclass(frozen=True)
class ExpenseInput:
    description: str
    amount: float = 0.0
    percentage: Optional[float] = None
    expense_type: str = "other"

    def resolve(self, gross: float) -> float:
        if self.percentage is not None:
            return round(gross * self.percentage / 100, 2)
        return round(self.amount, 2)


class PayoutStatus(Enum):
    OK = "ok"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"


@dataclass(frozen=True)
class PayoutResult:
    status: PayoutStatus
    payout: Optional[Payout] = None
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class PayoutStatement:
    payout: Payout
    expenses: list[PayoutExpense] = field(default_factory=list)
    history: list[WorkflowHistoryEntry] = field(default_factory=list)
    balance: Optional[ClientBalance] = None


def _stage_status(stage: PayoutStage) -> str:
    if stage in (PayoutStage.DRAFT, PayoutStage.PENDING_REVIEW):
        return "pending"
    return stage.value


class PayoutService:
    def __init__(
        self,
        *,
        payouts: PayoutsRepository,
        allocations: AllocationsRepository,
        balances: BalancesRepository,
        clock: Clock,
    ):
        self._payouts = payouts
        self._allocations = allocations
        self._balances = balances
        self._clock = clock

    async def calculate_payout_totals(
        self, user_id: int, client_id: int, period_start: str, period_end: str
    ) -> PayoutTotals:
        gross = round(await self._allocations.sum_for_client(user_id, client_id, period_start, period_end), 2)
        payments, royalties = await self._payouts.paid_totals(user_id, client_id)
        return PayoutTotals(
            gross_royalties=gross,
            total_expenses=0.0,
            net_payable=gross,
            royalties_to_date=round(royalties + gross, 2),
            payments_to_date=round(payments, 2),
            amount_due=gross,
        )

    async def create_payout(
        self,
        user_id: int,
        client_id: int,
        period_start: str,
        period_end: str,
        *,
        expenses: Sequence[ExpenseInput] = (),
        payment_method: str | None = None,
        notes: str | None = None,
    ) -> PayoutResult:
        errors = []
        if payment_method and payment_method not in PAYMENT_METHODS:
            errors.append(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")
        if period_end < period_start:
            errors.append("Period end must not be before period start")
        for expense in expenses:
            if expense.percentage is not None and not 0 <= expense.percentage <= 100:
                errors.append(f"Expense '{expense.description}' percentage must be between 0 and 100")
            if expense.percentage is None and expense.amount < 0:
                errors.append(f"Expense '{expense.description}' must not be negative")
        if errors:
            return PayoutResult(PayoutStatus.INVALID, errors=tuple(errors))

        totals = await self.calculate_payout_totals(user_id, client_id, period_start, period_end)
        resolved = [(e, e.resolve(totals.gross_royalties)) for e in expenses]
        total_expenses = round(sum(amount for _, amount in resolved), 2)
        net_payable = round(totals.gross_royalties - total_expenses, 2)
        payout_id = await self._payouts.create(
            {
                "user_id": user_id,
                "client_id": client_id,
                "period_start": period_start,
                "period_end": period_end,
                "gross_royalties": totals.gross_royalties,
                "total_expenses": total_expenses,
                "net_payable": net_payable,
                "amount_due": net_payable,
                "royalties_to_date": totals.royalties_to_date,
                "payments_to_date": totals.payments_to_date,
                "payment_method": payment_method,
                "workflow_stage": PayoutStage.DRAFT,
                "status": _stage_status(PayoutStage.DRAFT),
                "notes": notes,
            }
        )
        for expense, amount in resolved:
            await self._payouts.add_expense(
                payout_id=payout_id,
                description=expense.description,
                expense_type=expense.expense_type,
                amount=amount,
                is_percentage=expense.percentage is not None,
                percentage_rate=expense.percentage or 0.0,
            )
        await self._payouts.add_history(
            payout_id=payout_id,
            from_stage=None,
            to_stage=PayoutStage.DRAFT.value,
            reason="Payout created",
            changed_by=user_id,
            created_at=self._clock.now(),
        )
        logger.info("Payout %s created for client %s: due %.2f", payout_id, client_id, net_payable)
        return PayoutResult(PayoutStatus.OK, payout=await self._payouts.get(payout_id))

    async def change_stage(
        self,
        payout_id: int,
        target: PayoutStage,
        *,
        reason: str | None = None,
        changed_by: int | None = None,
        payment_reference: str | None = None,
    ) -> PayoutResult:
        payout = await self._payouts.get(payout_id)
        if not payout:
            return PayoutResult(PayoutStatus.NOT_FOUND)
        if target not in STAGE_TRANSITIONS[payout.workflow_stage]:
            return PayoutResult(
                PayoutStatus.INVALID_TRANSITION,
                payout=payout,
                errors=(f"Cannot move payout from {payout.workflow_stage.value} to {target.value}",),
            )

        now = self._clock.now()
        fields: dict = {"workflow_stage": target, "status": _stage_status(target)}
        if target is PayoutStage.PAID:
            fields["paid_at"] = now
            if payment_reference:
                fields["payment_reference"] = payment_reference
        if target is PayoutStage.FAILED:
            fields["failure_reason"] = reason
        await self._payouts.update(payout_id, fields)
        await self._payouts.add_history(
            payout_id=payout_id,
            from_stage=payout.workflow_stage.value,
            to_stage=target.value,
            reason=reason,
            changed_by=changed_by,
            created_at=now,
        )
        if target is PayoutStage.PAID:
            balance = await self._balances.apply_payment(
                payout.user_id,
                payout.client_id,
                earned=payout.gross_royalties,
                paid=payout.amount_due,
            )
            logger.info(
                "Payout %s paid; client %s balance %.2f", payout_id, payout.client_id, balance.current_balance
            )
        return PayoutResult(PayoutStatus.OK, payout=await self._payouts.get(payout_id))

    async def bulk_update(self, user_id: int, payout_ids: Sequence[int], operation: str) -> BatchOperation:
        if operation not in BULK_OPERATIONS:
            raise ValueError(f"Unknown bulk operation: {operation}")
        source_stage, target = BULK_OPERATIONS[operation]
        operation_id = await self._payouts.record_batch_operation(
            user_id=user_id, operation_type=operation, payout_ids=list(payout_ids)
        )
        succeeded = failed = 0
        for payout_id in payout_ids:
            payout = await self._payouts.get(payout_id)
            if not payout or payout.user_id != user_id:
                failed += 1
                continue
            if operation == "approve" and payout.workflow_stage is PayoutStage.DRAFT:
                await self.change_stage(payout_id, source_stage, reason="Bulk approve", changed_by=user_id)
            if operation == "mark_paid" and payout.workflow_stage is PayoutStage.APPROVED:
                await self.change_stage(payout_id, source_stage, reason="Bulk mark paid", changed_by=user_id)
            result = await self.change_stage(
                payout_id, target, reason=f"Bulk {operation.replace('_', ' ')}", changed_by=user_id
            )
            if result.status is PayoutStatus.OK:
                succeeded += 1
            else:
                failed += 1
        await self._payouts.finish_batch_operation(operation_id, succeeded=succeeded, failed=failed)
        logger.info("Bulk %s over %s payouts: %s ok, %s failed", operation, len(payout_ids), succeeded, failed)
        return await self._payouts.get_batch_operation(operation_id)

    async def get_payout(self, payout_id: int) -> Optional[Payout]:
        return await self._payouts.get(payout_id)

    async def list_payouts(
        self, user_id: int, *, client_id: int | None = None, stage: PayoutStage | None = None
    ) -> list[Payout]:
        return await self._payouts.list_for_user(user_id, client_id=client_id, stage=stage)

    async def history(self, payout_id: int) -> list[WorkflowHistoryEntry]:
        return await self._payouts.list_history(payout_id)

    async def get_balance(self, user_id: int, client_id: int) -> Optional[ClientBalance]:
        return await self._balances.get(user_id, client_id)

    async def statement(self, payout_id: int) -> Optional[PayoutStatement]:
        payout = await self._payouts.get(payout_id)
        if not payout:
            return None
        return PayoutStatement(
            payout=payout,
            expenses=await self._payouts.list_expenses(payout_id),
            history=await self._payouts.list_history(payout_id),
            balance=await self._balances.get(payout.user_id, payout.client_id),
        )
