import unittest

from rightsdesk.application.demo import DemoCatalogSeeder
from rightsdesk.domain.contracts import ContractChangeResult, ContractChangeStatus
from rightsdesk.domain.copyright import CopyrightChangeResult, CopyrightChangeStatus
from rightsdesk.domain.sync import SyncChangeResult, SyncChangeStatus


class FakeCopyrights:
    def __init__(self, register_status=CopyrightChangeStatus.OK):
        self.register_status = register_status
        self.writers: list[str] = []

    async def register_work(self, user_id, **fields):
        if self.register_status is not CopyrightChangeStatus.OK:
            return CopyrightChangeResult(self.register_status, errors=("work_title is required",))
        return CopyrightChangeResult(CopyrightChangeStatus.OK, id=7, internal_id="CW-2024-000001")

    async def add_writer(self, copyright_id, fields):
        self.writers.append(fields["writer_name"])
        return CopyrightChangeResult(CopyrightChangeStatus.OK, id=len(self.writers))


class FakeContracts:
    def __init__(self, status=ContractChangeStatus.OK):
        self.status = status
        self.calls = 0

    async def create_contract(self, user_id, fields):
        self.calls += 1
        errors = () if self.status is ContractChangeStatus.OK else ("advance_amount must be positive",)
        return ContractChangeResult(self.status, errors=errors)


class FakeSync:
    def __init__(self):
        self.linked: list[list[int]] = []

    async def create_license(self, user_id, fields):
        self.linked.append(fields["linked_copyright_ids"])
        return SyncChangeResult(SyncChangeStatus.OK)


class DemoCatalogSeederTests(unittest.IsolatedAsyncioTestCase):
    async def test_seeds_every_step(self):
        copyrights, contracts, sync = FakeCopyrights(), FakeContracts(), FakeSync()
        seeder = DemoCatalogSeeder(copyrights=copyrights, contracts=contracts, sync=sync)

        with self.assertLogs("rightsdesk.application.demo", level="INFO") as logs:
            failed = await seeder(3)

        self.assertEqual(failed, 0)
        self.assertEqual(copyrights.writers, ["Ava Demo", "Co Writer"])
        self.assertEqual(sync.linked, [[7]])
        self.assertIn("Demo catalogue seeded for user 3", logs.output[-1])

    async def test_failed_step_is_logged_and_counted(self):
        contracts = FakeContracts(ContractChangeStatus.INVALID)
        seeder = DemoCatalogSeeder(copyrights=FakeCopyrights(), contracts=contracts, sync=FakeSync())

        with self.assertLogs("rightsdesk.application.demo", level="WARNING") as logs:
            failed = await seeder(3)

        self.assertEqual(failed, 1)
        self.assertIn("create_contract failed for user 3: invalid advance_amount must be positive", logs.output[0])
        self.assertIn("seeded with 1 failed steps", logs.output[-1])

    async def test_failed_registration_stops_seeding(self):
        contracts, sync = FakeContracts(), FakeSync()
        seeder = DemoCatalogSeeder(
            copyrights=FakeCopyrights(CopyrightChangeStatus.INVALID), contracts=contracts, sync=sync
        )

        with self.assertLogs("rightsdesk.application.demo", level="WARNING") as logs:
            failed = await seeder(3)

        self.assertEqual(failed, 1)
        self.assertEqual((contracts.calls, sync.linked), (0, []))
        self.assertIn("register_work failed", logs.output[0])


if __name__ == "__main__":
    unittest.main()
