import unittest
from dataclasses import replace
from datetime import datetime, timezone

from rightsdesk.domain.copyright import Copyright, CopyrightWriter, WorkDetails
from rightsdesk.domain.sync import (
    FeeAllocation,
    SyncChangeStatus,
    SyncLicense,
    SyncService,
    calculate_fee_allocations,
    controlled_total,
)


class FixedClock:
    def now(self) -> datetime:
        return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _work(work_id, title, *writers):
    return WorkDetails(
        copyright=Copyright(id=work_id, user_id=1, internal_id=f"CW-2024-{work_id:06d}", work_title=title),
        writers=tuple(
            CopyrightWriter(
                id=work_id * 10 + i,
                copyright_id=work_id,
                writer_name=name,
                controlled_status=status,
                ownership_percentage=pct,
            )
            for i, (name, status, pct) in enumerate(writers)
        ),
    )


WORKS = [
    _work(1, "MIDNIGHT HARBOR", ("Ava Demo", "C", 50), ("Bo Other", "NC", 50)),
    _work(2, "SUNRISE AVENUE", ("Cy Writer", "C", 100)),
]


class FakeCopyrightService:
    async def list_work_details(self, user_id, ids=None):
        return [w for w in WORKS if w.copyright.user_id == user_id and (ids is None or w.copyright.id in ids)]


def _stored(fields):
    data = dict(fields)
    for key in ("territories", "linked_copyright_ids"):
        if key in data:
            data[key] = tuple(data[key])
    if "fee_allocations" in data:
        data["fee_allocations"] = tuple(FeeAllocation.from_dict(a) for a in data["fee_allocations"])
    return data


class FakeLicenses:
    def __init__(self):
        self.licenses: dict[int, SyncLicense] = {}

    async def next_sequence(self, user_id, year):
        return sum(1 for lic in self.licenses.values() if lic.user_id == user_id) + 1

    async def create(self, user_id, synch_id, fields):
        license_id = len(self.licenses) + 1
        self.licenses[license_id] = SyncLicense(id=license_id, user_id=user_id, synch_id=synch_id, **_stored(fields))
        return license_id

    async def get(self, license_id):
        return self.licenses.get(license_id)

    async def list_for_user(self, user_id, *, status=None, media_type=None, search=None, ids=None):
        return [
            lic
            for lic in self.licenses.values()
            if lic.user_id == user_id and (ids is None or lic.id in ids) and (status is None or lic.synch_status == status)
        ]

    async def update(self, license_id, fields):
        self.licenses[license_id] = replace(self.licenses[license_id], **_stored(fields))

    async def delete(self, license_id):
        return self.licenses.pop(license_id, None) is not None


class FeeAllocationTests(unittest.TestCase):
    def test_publishing_fee_spreads_over_controlled_writers(self):
        license = SyncLicense(
            id=1,
            user_id=1,
            synch_id="SYNC-2024-0001",
            project_title="Harbor Lights",
            pub_fee=1000,
            master_fee=500,
            linked_copyright_ids=(1, 2),
            pub_share_percentage=50,
            master_share_percentage=20,
        )
        allocations = calculate_fee_allocations(license, WORKS)
        self.assertEqual(
            [(a.fee_type, a.writer_name, a.amount, a.controlled_amount) for a in allocations],
            [
                ("publishing", "Ava Demo", 250.0, 125.0),
                ("publishing", "Cy Writer", 500.0, 250.0),
                ("master", None, 500.0, 100.0),
            ],
        )
        self.assertEqual(controlled_total(allocations), 475.0)

    def test_unlinked_license_has_no_publishing_entries(self):
        license = SyncLicense(id=1, user_id=1, synch_id="S", project_title="X", pub_fee=300)
        self.assertEqual(calculate_fee_allocations(license, WORKS), [])

    def test_round_trip_dict(self):
        allocation = FeeAllocation("publishing", 10.0, 5.0, copyright_id=1, writer_name="Ava")
        self.assertEqual(FeeAllocation.from_dict(allocation.to_dict()), allocation)


class SyncServiceTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.repo = FakeLicenses()
        self.service = SyncService(licenses=self.repo, copyrights=FakeCopyrightService(), clock=FixedClock())

    async def _create(self, **fields) -> SyncLicense:
        payload = {"project_title": "Harbor Lights", "media_type": "Film", "pub_fee": 1000, **fields}
        result = await self.service.create_license(1, payload)
        self.assertEqual(result.status, SyncChangeStatus.OK, result.errors)
        return result.license

    async def test_create_assigns_id_and_allocations(self):
        license = await self._create(linked_copyright_ids=[1], territories=[" us ", ""], currency="eur")
        self.assertEqual(license.synch_id, "SYNC-2024-0001")
        self.assertEqual(license.territories, ("US",))
        self.assertEqual(license.currency, "EUR")
        self.assertEqual(len(license.fee_allocations), 1)
        self.assertEqual(license.controlled_total, 500.0)
        second = await self._create()
        self.assertEqual(second.synch_id, "SYNC-2024-0002")

    async def test_create_validates(self):
        result = await self.service.create_license(
            1,
            {
                "media_type": "Radio",
                "currency": "JPY",
                "pub_share_percentage": 150,
                "term_start": "2024-06-01",
                "term_end": "2024-01-01",
            },
        )
        self.assertEqual(result.status, SyncChangeStatus.INVALID)
        self.assertEqual(len(result.errors), 5)
        self.assertFalse(self.repo.licenses)

    async def test_update_recalculates_allocations(self):
        license = await self._create(linked_copyright_ids=[1])
        updated = await self.service.update_license(license.id, {"linked_copyright_ids": [1, 2]})
        self.assertEqual(updated.license.controlled_total, 750.0)
        bad = await self.service.update_license(license.id, {"term_end": "2020-01-01", "term_start": "2021-01-01"})
        self.assertEqual(bad.status, SyncChangeStatus.INVALID)
        self.assertEqual((await self.service.update_license(99, {})).status, SyncChangeStatus.NOT_FOUND)

    async def test_status_rules(self):
        license = await self._create()
        early = await self.service.change_status(license.id, "Licensed")
        self.assertEqual(early.status, SyncChangeStatus.INVALID_TRANSITION)
        self.assertEqual((await self.service.change_status(license.id, "Signed")).status, SyncChangeStatus.INVALID)
        for target in ("Negotiating", "Approved", "Licensed"):
            self.assertEqual((await self.service.change_status(license.id, target)).status, SyncChangeStatus.OK)

        declined = await self._create()
        await self.service.change_status(declined.id, "Declined")
        reopened = await self.service.change_status(declined.id, "Inquiry")
        self.assertEqual(reopened.status, SyncChangeStatus.INVALID_TRANSITION)

    async def test_invoice_and_payments(self):
        license = await self._create(master_fee=500)
        invoiced = await self.service.issue_invoice(license.id)
        self.assertEqual(invoiced.license.invoice_status, "Issued")
        self.assertEqual(invoiced.license.invoiced_amount, 1500.0)

        self.assertEqual((await self.service.record_payment(license.id, 0)).status, SyncChangeStatus.INVALID)
        partial = await self.service.record_payment(license.id, 500)
        self.assertEqual(partial.license.payment_status, "Partial")
        self.assertEqual(partial.license.outstanding, 1000.0)
        full = await self.service.record_payment(license.id, 1000)
        self.assertEqual(full.license.payment_status, "Paid in Full")
        self.assertEqual(full.license.invoice_status, "Paid")
        self.assertEqual(full.license.outstanding, 0.0)

        again = await self.service.issue_invoice(license.id)
        self.assertEqual(again.status, SyncChangeStatus.INVALID_TRANSITION)

    async def test_delete_and_list(self):
        license = await self._create()
        self.assertEqual([lic.id for lic in await self.service.list_licenses(1)], [license.id])
        self.assertTrue(await self.service.delete_license(license.id))
        self.assertIsNone(await self.service.get_license(license.id))


if __name__ == "__main__":
    unittest.main()
