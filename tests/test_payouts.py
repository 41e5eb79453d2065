import unittest
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from rightsdesk.application.presenters import StatementRenderer
from rightsdesk.domain.royalties import (
    BatchOperation,
    ClientBalance,
    ExpenseInput,
    Payout,
    PayoutExpense,
    PayoutService,
    PayoutStage,
    PayoutStatus,
    WorkflowHistoryEntry,
)


class TickingClock:
    def __init__(self):
        self.current = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        self.current += timedelta(minutes=1)
        return self.current


class FakeAllocationTotals:
    def __init__(self, totals):
        self.totals = totals

    async def sum_for_client(self, user_id, client_id, period_start, period_end):
        return self.totals.get(client_id, 0.0)


class FakePayouts:
    def __init__(self):
        self.payouts: dict[int, Payout] = {}
        self.expenses: list[PayoutExpense] = []
        self.history: list[WorkflowHistoryEntry] = []
        self.operations: dict[int, BatchOperation] = {}

    async def create(self, fields):
        payout_id = len(self.payouts) + 1
        self.payouts[payout_id] = Payout(id=payout_id, **fields)
        return payout_id

    async def get(self, payout_id):
        return self.payouts.get(payout_id)

    async def list_for_user(self, user_id, *, client_id=None, stage=None):
        return [
            p
            for p in self.payouts.values()
            if p.user_id == user_id
            and (client_id is None or p.client_id == client_id)
            and (stage is None or p.workflow_stage == stage)
        ]

    async def update(self, payout_id, fields):
        self.payouts[payout_id] = replace(self.payouts[payout_id], **fields)

    async def paid_totals(self, user_id, client_id):
        paid = [
            p
            for p in self.payouts.values()
            if p.user_id == user_id and p.client_id == client_id and p.workflow_stage is PayoutStage.PAID
        ]
        return sum(p.amount_due for p in paid), sum(p.gross_royalties for p in paid)

    async def add_expense(self, *, payout_id, **fields):
        expense = PayoutExpense(id=len(self.expenses) + 1, payout_id=payout_id, **fields)
        self.expenses.append(expense)
        return expense.id

    async def list_expenses(self, payout_id):
        return [e for e in self.expenses if e.payout_id == payout_id]

    async def add_history(self, *, payout_id, **fields):
        self.history.append(WorkflowHistoryEntry(id=len(self.history) + 1, payout_id=payout_id, **fields))

    async def list_history(self, payout_id):
        return [h for h in self.history if h.payout_id == payout_id]

    async def record_batch_operation(self, *, user_id, operation_type, payout_ids):
        operation_id = len(self.operations) + 1
        self.operations[operation_id] = BatchOperation(
            id=operation_id,
            user_id=user_id,
            operation_type=operation_type,
            payout_ids=tuple(payout_ids),
            total_count=len(payout_ids),
        )
        return operation_id

    async def finish_batch_operation(self, operation_id, *, succeeded, failed):
        self.operations[operation_id] = replace(
            self.operations[operation_id], succeeded=succeeded, failed=failed, status="completed"
        )

    async def get_batch_operation(self, operation_id):
        return self.operations.get(operation_id)


class FakeBalances:
    def __init__(self):
        self.balances: dict[tuple[int, int], ClientBalance] = {}

    async def get(self, user_id, client_id):
        return self.balances.get((user_id, client_id))

    async def apply_payment(self, user_id, client_id, *, earned, paid):
        current = self.balances.get((user_id, client_id)) or ClientBalance(user_id=user_id, client_id=client_id)
        total_earned = current.total_earned + earned
        total_paid = current.total_paid + paid
        balance = ClientBalance(
            user_id=user_id,
            client_id=client_id,
            total_earned=total_earned,
            total_paid=total_paid,
            current_balance=round(total_earned - total_paid, 2),
        )
        self.balances[(user_id, client_id)] = balance
        return balance


EXPENSES = (
    ExpenseInput("Admin fee", percentage=10.0, expense_type="admin"),
    ExpenseInput("Courier", amount=25.5),
)


class PayoutServiceTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.payouts = FakePayouts()
        self.balances = FakeBalances()
        self.service = PayoutService(
            payouts=self.payouts,
            allocations=FakeAllocationTotals({7: 1000.0, 8: 200.0}),
            balances=self.balances,
            clock=TickingClock(),
        )

    async def _create(self, client_id=7, **kwargs) -> Payout:
        result = await self.service.create_payout(1, client_id, "2024-01-01", "2024-03-31", **kwargs)
        self.assertEqual(result.status, PayoutStatus.OK)
        return result.payout

    async def _walk(self, payout_id, *stages, **kwargs):
        for stage in stages:
            result = await self.service.change_stage(payout_id, stage, **kwargs)
            self.assertEqual(result.status, PayoutStatus.OK, result.errors)
        return result.payout

    async def test_create_resolves_expenses(self):
        payout = await self._create(expenses=EXPENSES, payment_method="ACH")
        self.assertEqual(payout.gross_royalties, 1000.0)
        self.assertEqual(payout.total_expenses, 125.5)
        self.assertEqual(payout.net_payable, 874.5)
        self.assertEqual(payout.amount_due, 874.5)
        self.assertEqual(payout.royalties_to_date, 1000.0)
        self.assertEqual(payout.workflow_stage, PayoutStage.DRAFT)
        self.assertEqual(payout.status, "pending")
        admin, courier = self.payouts.expenses
        self.assertEqual((admin.amount, admin.is_percentage, admin.percentage_rate), (100.0, True, 10))
        self.assertEqual((courier.amount, courier.is_percentage), (25.5, False))
        history = await self.service.history(payout.id)
        self.assertEqual([(h.from_stage, h.to_stage) for h in history], [(None, "draft")])

    async def test_create_validates_input(self):
        result = await self.service.create_payout(
            1,
            7,
            "2024-03-31",
            "2024-01-01",
            payment_method="Cash",
            expenses=[ExpenseInput("Bad", percentage=150), ExpenseInput("Neg", amount=-1)],
        )
        self.assertEqual(result.status, PayoutStatus.INVALID)
        self.assertEqual(len(result.errors), 4)
        self.assertFalse(self.payouts.payouts)

    async def test_stage_machine_and_balance(self):
        payout = await self._create(expenses=EXPENSES)
        skipped = await self.service.change_stage(payout.id, PayoutStage.APPROVED)
        self.assertEqual(skipped.status, PayoutStatus.INVALID_TRANSITION)
        self.assertEqual(skipped.errors, ("Cannot move payout from draft to approved",))

        await self._walk(payout.id, PayoutStage.PENDING_REVIEW, PayoutStage.APPROVED, PayoutStage.PROCESSING)
        failed = await self._walk(payout.id, PayoutStage.FAILED, reason="Bank rejected")
        self.assertEqual(failed.failure_reason, "Bank rejected")
        self.assertEqual(failed.status, "failed")
        self.assertIsNone(await self.balances.get(1, 7))

        paid = await self._walk(payout.id, PayoutStage.PROCESSING, PayoutStage.PAID, payment_reference="ACH-991")
        self.assertEqual(paid.status, "paid")
        self.assertEqual(paid.payment_reference, "ACH-991")
        self.assertIsNotNone(paid.paid_at)
        balance = await self.service.get_balance(1, 7)
        self.assertEqual((balance.total_earned, balance.total_paid, balance.current_balance), (1000.0, 874.5, 125.5))
        self.assertEqual(len(await self.service.history(payout.id)), 7)

        terminal = await self.service.change_stage(payout.id, PayoutStage.PROCESSING)
        self.assertEqual(terminal.status, PayoutStatus.INVALID_TRANSITION)

        follow_up = await self._create()
        self.assertEqual(follow_up.royalties_to_date, 2000.0)
        self.assertEqual(follow_up.payments_to_date, 874.5)

    async def test_bulk_approve_steps_through_review(self):
        draft = await self._create()
        pending = await self._create(client_id=8)
        await self._walk(pending.id, PayoutStage.PENDING_REVIEW)
        processing = await self._create()
        await self._walk(processing.id, PayoutStage.PENDING_REVIEW, PayoutStage.APPROVED, PayoutStage.PROCESSING)
        foreign = (await self.service.create_payout(2, 7, "2024-01-01", "2024-03-31")).payout

        operation = await self.service.bulk_update(1, [draft.id, pending.id, processing.id, foreign.id, 99], "approve")
        self.assertEqual((operation.total_count, operation.succeeded, operation.failed), (5, 2, 3))
        self.assertEqual(operation.status, "completed")
        approved = await self.service.list_payouts(1, stage=PayoutStage.APPROVED)
        self.assertEqual({p.id for p in approved}, {draft.id, pending.id})

        paid = await self.service.bulk_update(1, [draft.id, processing.id], "mark_paid")
        self.assertEqual((paid.succeeded, paid.failed), (2, 0))
        self.assertEqual(self.payouts.payouts[draft.id].workflow_stage, PayoutStage.PAID)

        with self.assertRaises(ValueError):
            await self.service.bulk_update(1, [draft.id], "delete")

    async def test_statement_renders_totals_and_history(self):
        payout = await self._create(expenses=EXPENSES)
        await self._walk(payout.id, PayoutStage.PENDING_REVIEW, PayoutStage.APPROVED, PayoutStage.PROCESSING)
        await self._walk(payout.id, PayoutStage.PAID, payment_reference="ACH-991")

        statement = await self.service.statement(payout.id)
        self.assertEqual(len(statement.expenses), 2)
        self.assertEqual(statement.balance.current_balance, 125.5)
        self.assertIsNone(await self.service.statement(99))

        text = StatementRenderer().render(statement)
        self.assertTrue(text.startswith("ROYALTY STATEMENT"))
        self.assertIn("Period: 2024-01-01 - 2024-03-31", text)
        self.assertIn("Admin fee", text)
        self.assertIn("(10.0%)", text)
        self.assertIn("874.50", text)
        self.assertIn("Current balance", text)
        self.assertIn("Payment reference: ACH-991", text)
        self.assertIn("- -> draft: Payout created", text)
        self.assertIn("processing -> paid", text)


if __name__ == "__main__":
    unittest.main()
