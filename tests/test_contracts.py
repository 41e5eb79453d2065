import unittest
from dataclasses import replace
from datetime import date, datetime, timezone

from rightsdesk.domain.contracts import (
    Contract,
    ContractChangeStatus,
    ContractParty,
    ContractService,
    ContractStatus,
    ContractType,
    RecoupmentStatus,
    calculate_agreement_royalty,
    calculate_manual_royalty,
    can_transition,
    validate_royalty_splits,
)


class FixedClock:
    def now(self) -> datetime:
        return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _tupled(fields):
    data = dict(fields)
    for key in ("territories", "royalty_splits"):
        if key in data:
            data[key] = tuple(data[key])
    return data


class FakeContracts:
    def __init__(self):
        self.contracts: dict[int, Contract] = {}

    async def create(self, user_id, fields):
        contract_id = len(self.contracts) + 1
        self.contracts[contract_id] = Contract(id=contract_id, user_id=user_id, **_tupled(fields))
        return contract_id

    async def get(self, contract_id):
        return self.contracts.get(contract_id)

    async def list_for_user(self, user_id, *, status=None, contract_type=None, search=None, ids=None):
        rows = [c for c in self.contracts.values() if c.user_id == user_id]
        if status:
            rows = [c for c in rows if c.contract_status == status]
        if ids is not None:
            rows = [c for c in rows if c.id in ids]
        return rows

    async def update(self, contract_id, fields):
        self.contracts[contract_id] = replace(self.contracts[contract_id], **_tupled(fields))

    async def delete(self, contract_id):
        return self.contracts.pop(contract_id, None) is not None

    async def expire_before(self, today):
        count = 0
        for contract in list(self.contracts.values()):
            if contract.contract_status == ContractStatus.ACTIVE and contract.end_date and contract.end_date < today:
                self.contracts[contract.id] = replace(contract, contract_status=ContractStatus.EXPIRED)
                count += 1
        return count


class CalculationTests(unittest.TestCase):
    def test_agreement_royalty_recoups_advance(self):
        result = calculate_agreement_royalty(1000, 20, expenses=100, advance_balance=500)
        self.assertEqual(result.commission, 200)
        self.assertEqual(result.net, 800)
        self.assertEqual(result.net_payable, 700)
        self.assertEqual(result.recoupment, 500)
        self.assertEqual(result.payable, 200)
        self.assertEqual(result.remaining_advance, 0)

    def test_large_advance_absorbs_everything(self):
        result = calculate_agreement_royalty(1000, 20, advance_balance=5000)
        self.assertEqual((result.recoupment, result.payable, result.remaining_advance), (800, 0, 4200))

    def test_expenses_beyond_gross_do_not_recoup(self):
        result = calculate_agreement_royalty(100, 0, expenses=200, advance_balance=50)
        self.assertEqual(result.net_payable, -100)
        self.assertEqual((result.recoupment, result.payable, result.remaining_advance), (0, 0, 50))

    def test_commission_out_of_range(self):
        with self.assertRaises(ValueError):
            calculate_agreement_royalty(100, 120)

    def test_manual_royalty(self):
        result = calculate_manual_royalty(300, 50)
        self.assertEqual((result.commission, result.net_payable, result.payable), (0.0, 250, 250))
        self.assertEqual(calculate_manual_royalty(10, 40).payable, 0)

    def test_royalty_splits(self):
        splits = [
            {"name": "A", "performance_percentage": 60, "mechanical_percentage": 50},
            ContractParty(name="B", performance_percentage=40, mechanical_percentage=40),
        ]
        self.assertEqual(validate_royalty_splits(splits), ["mechanical splits total 90%, expected 100%"])
        self.assertEqual(validate_royalty_splits([{"name": "A", "print_percentage": 100}]), [])
        errors = validate_royalty_splits([{"name": "X", "synch_percentage": 150}])
        self.assertIn("X: synch share must be between 0 and 100", errors)


class TransitionTests(unittest.TestCase):
    def test_transition_table(self):
        self.assertTrue(can_transition(ContractStatus.DRAFT, ContractStatus.SIGNED))
        self.assertTrue(can_transition(ContractStatus.PENDING, ContractStatus.DRAFT))
        self.assertFalse(can_transition(ContractStatus.DRAFT, ContractStatus.ACTIVE))
        self.assertFalse(can_transition(ContractStatus.TERMINATED, ContractStatus.DRAFT))
        self.assertFalse(can_transition(ContractStatus.EXPIRED, ContractStatus.ACTIVE))


class ContractServiceTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.repo = FakeContracts()
        self.service = ContractService(contracts=self.repo, clock=FixedClock())

    async def _create(self, **fields) -> Contract:
        payload = {"title": "Deal", "counterparty_name": "Ava", "contract_type": "publishing", **fields}
        result = await self.service.create_contract(1, payload)
        self.assertEqual(result.status, ContractChangeStatus.OK)
        return result.contract

    async def test_create_sets_defaults(self):
        contract = await self._create(advance_amount=1000, territories=["us", "gb"])
        self.assertEqual(contract.contract_status, ContractStatus.DRAFT)
        self.assertEqual(contract.contract_type, ContractType.PUBLISHING)
        self.assertEqual(contract.advance_balance, 1000)
        self.assertEqual(contract.recoupment_status, RecoupmentStatus.PENDING)
        self.assertEqual(contract.territories, ("US", "GB"))
        plain = await self._create()
        self.assertEqual(plain.recoupment_status, RecoupmentStatus.NONE)

    async def test_create_rejects_bad_input(self):
        result = await self.service.create_contract(
            1,
            {
                "title": "",
                "counterparty_name": "Ava",
                "contract_type": "lease",
                "commission_percentage": 120,
                "start_date": "2024-05-01",
                "end_date": "2024-01-01",
            },
        )
        self.assertEqual(result.status, ContractChangeStatus.INVALID)
        self.assertEqual(len(result.errors), 4)
        self.assertFalse(self.repo.contracts)

    async def test_update_checks_dates_against_stored_values(self):
        contract = await self._create(start_date="2024-01-01", end_date="2024-12-31")
        bad = await self.service.update_contract(contract.id, {"end_date": "2023-06-01"})
        self.assertEqual(bad.status, ContractChangeStatus.INVALID)
        ok = await self.service.update_contract(contract.id, {"end_date": date(2025, 6, 1)})
        self.assertEqual(ok.contract.end_date, date(2025, 6, 1))
        missing = await self.service.update_contract(99, {"title": "x"})
        self.assertEqual(missing.status, ContractChangeStatus.NOT_FOUND)

    async def test_status_lifecycle(self):
        contract = await self._create()
        bad = await self.service.change_status(contract.id, ContractStatus.ACTIVE)
        self.assertEqual(bad.status, ContractChangeStatus.INVALID_TRANSITION)
        self.assertEqual(bad.errors, ("Cannot move contract from draft to active",))
        for target in (ContractStatus.PENDING, ContractStatus.SIGNED, ContractStatus.ACTIVE, ContractStatus.TERMINATED):
            result = await self.service.change_status(contract.id, target)
            self.assertEqual(result.status, ContractChangeStatus.OK)
        self.assertTrue(self.repo.contracts[contract.id].is_final)

    async def test_expire_overdue_only_touches_active(self):
        active = await self._create(end_date="2024-04-30")
        draft = await self._create(end_date="2024-04-30")
        await self.service.change_status(active.id, ContractStatus.SIGNED)
        await self.service.change_status(active.id, ContractStatus.ACTIVE)
        self.assertEqual(await self.service.expire_overdue(), 1)
        self.assertEqual(self.repo.contracts[active.id].contract_status, ContractStatus.EXPIRED)
        self.assertEqual(self.repo.contracts[draft.id].contract_status, ContractStatus.DRAFT)

    async def test_attach_document(self):
        contract = await self._create()
        result = await self.service.attach_document(contract.id, "w9", "/files/docs/w9.pdf")
        self.assertEqual(result.contract.w9_url, "/files/docs/w9.pdf")
        with self.assertRaises(ValueError):
            await self.service.attach_document(contract.id, "passport", "/x")

    async def test_calculation_applies_recoupment(self):
        contract = await self._create(advance_amount=1000, commission_percentage=20)
        first = await self.service.calculate_for_contract(contract.id, 500, apply=True)
        self.assertEqual(first.recoupment, 400)
        stored = self.repo.contracts[contract.id]
        self.assertEqual(stored.advance_balance, 600)
        self.assertEqual(stored.recoupment_status, RecoupmentStatus.PARTIAL)

        preview = await self.service.calculate_for_contract(contract.id, 1000)
        self.assertEqual(preview.payable, 200)
        self.assertEqual(self.repo.contracts[contract.id].advance_balance, 600)

        await self.service.calculate_for_contract(contract.id, 1000, apply=True)
        self.assertEqual(self.repo.contracts[contract.id].recoupment_status, RecoupmentStatus.COMPLETE)
        self.assertIsNone(await self.service.calculate_for_contract(99, 10))


if __name__ == "__main__":
    unittest.main()
