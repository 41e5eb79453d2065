import unittest
from dataclasses import replace
from datetime import datetime, timezone

from rightsdesk.domain.copyright import Copyright, CopyrightWriter, WorkDetails
from rightsdesk.domain.royalties import (
    AllocationService,
    BatchStatus,
    ImportStaging,
    ImportStatus,
    ProcessingStatus,
    ProcessStatus,
    ReconciliationBatch,
    ReconciliationService,
    RoyaltyAllocation,
    SplitStatus,
    StatementImportService,
    build_discrepancy_report,
    rows_from_csv,
)
from rightsdesk.domain.royalties.splitting import split_amount

STATEMENT_CSV = (
    "\ufeffWork Title,IP Name,ISWC,Current Quarter Royalties,Country\n"
    "Midnight Harbor,Ava Demo,T-123456789-0,$100.00,USA\n"
    "Paper Planes Over Oslo,Nobody Known,,$20.50,Norway\n"
)


class FixedClock:
    def now(self) -> datetime:
        return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _writer(writer_id, work_id, name, controlled="C", pct=50.0):
    return CopyrightWriter(
        id=writer_id,
        copyright_id=work_id,
        writer_name=name,
        controlled_status=controlled,
        ownership_percentage=pct,
    )


class FakeCopyrightService:
    def __init__(self, works):
        self.works = {w.copyright.id: w for w in works}

    async def get_work(self, copyright_id):
        return self.works.get(copyright_id)

    async def list_work_details(self, user_id, ids=None):
        return [
            w
            for w in self.works.values()
            if w.copyright.user_id == user_id and (ids is None or w.copyright.id in ids)
        ]


class FakeAllocations:
    def __init__(self):
        self.rows: dict[int, RoyaltyAllocation] = {}

    async def create(self, user_id, fields):
        allocation_id = len(self.rows) + 1
        self.rows[allocation_id] = RoyaltyAllocation(id=allocation_id, user_id=user_id, **fields)
        return allocation_id

    async def get(self, allocation_id):
        return self.rows.get(allocation_id)

    async def list_for_user(
        self,
        user_id,
        *,
        copyright_id=None,
        staging_id=None,
        batch_id=None,
        ids=None,
        include_children=True,
        limit=None,
    ):
        rows = [a for a in self.rows.values() if a.user_id == user_id]
        if copyright_id is not None:
            rows = [a for a in rows if a.copyright_id == copyright_id]
        if staging_id is not None:
            rows = [a for a in rows if a.staging_id == staging_id]
        if batch_id is not None:
            rows = [a for a in rows if a.batch_id == batch_id]
        if ids is not None:
            rows = [a for a in rows if a.id in ids]
        if not include_children:
            rows = [a for a in rows if a.parent_allocation_id is None]
        return rows[:limit] if limit else rows

    async def update(self, allocation_id, fields):
        self.rows[allocation_id] = replace(self.rows[allocation_id], **fields)

    async def link_to_batch(self, batch_id, allocation_ids):
        for allocation_id in allocation_ids:
            await self.update(allocation_id, {"batch_id": batch_id})
        return len(allocation_ids)

    async def sum_for_client(self, user_id, client_id, period_start, period_end):
        return sum(a.gross_amount for a in self.rows.values() if a.client_id == client_id)


class FakeStaging:
    def __init__(self, allocations: FakeAllocations):
        self.rows: dict[int, ImportStaging] = {}
        self.allocations = allocations

    async def create(self, **fields):
        staging_id = len(self.rows) + 1
        self.rows[staging_id] = ImportStaging(id=staging_id, **fields)
        return staging_id

    async def get(self, staging_id):
        return self.rows.get(staging_id)

    async def list_for_user(self, user_id, *, status=None):
        return [s for s in self.rows.values() if s.user_id == user_id and (status is None or s.processing_status == status)]

    async def set_status(self, staging_id, status):
        self.rows[staging_id] = replace(self.rows[staging_id], processing_status=status)

    async def delete(self, staging_id):
        for allocation_id in [a.id for a in self.allocations.rows.values() if a.staging_id == staging_id]:
            del self.allocations.rows[allocation_id]
        return self.rows.pop(staging_id, None) is not None


class FakeBatches:
    def __init__(self):
        self.rows: dict[int, ReconciliationBatch] = {}

    async def next_sequence(self, user_id, year):
        return sum(1 for b in self.rows.values() if b.user_id == user_id) + 1

    async def create(self, *, user_id, batch_id, source, period, statement_total, date_received):
        pk = len(self.rows) + 1
        self.rows[pk] = ReconciliationBatch(
            id=pk,
            user_id=user_id,
            batch_id=batch_id,
            source=source,
            statement_total=statement_total,
            period=period,
        )
        return pk

    async def get(self, batch_pk):
        return self.rows.get(batch_pk)

    async def list_for_user(self, user_id):
        return [b for b in self.rows.values() if b.user_id == user_id]

    async def set_status(self, batch_pk, status):
        self.rows[batch_pk] = replace(self.rows[batch_pk], status=status)


def _harbor_work():
    work = Copyright(id=1, user_id=1, internal_id="CW-2024-000001", work_title="MIDNIGHT HARBOR",
                     iswc="T-123456789-0")
    return WorkDetails(
        copyright=work,
        writers=(
            _writer(1, 1, "Ava Demo", pct=50),
            _writer(2, 1, "Bo Second", pct=25),
            _writer(3, 1, "Cy Outside", controlled="NC", pct=25),
        ),
    )


class StatementImportTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.allocations = FakeAllocations()
        self.staging = FakeStaging(self.allocations)
        self.service = StatementImportService(
            staging=self.staging,
            allocations=self.allocations,
            copyrights=FakeCopyrightService([_harbor_work()]),
        )

    async def test_import_detects_source_and_stages_rows(self):
        rows = rows_from_csv(STATEMENT_CSV)
        self.assertEqual(list(rows[0])[0], "Work Title")
        result = await self.service.import_statement(1, "q1.csv", rows)
        self.assertEqual(result.status, ImportStatus.IMPORTED)
        self.assertEqual(result.source, "BMI")
        staged = self.staging.rows[result.staging_id]
        self.assertEqual(staged.detected_source, "BMI")
        self.assertEqual(staged.unmapped_fields, ["Country"])
        self.assertEqual(staged.mapped_data[0]["Gross Amount"], 100.0)
        self.assertEqual(staged.processing_status, ProcessingStatus.PENDING)

    async def test_import_rejects_empty_and_unknown(self):
        self.assertEqual((await self.service.import_statement(1, "e.csv", [])).status, ImportStatus.EMPTY)
        unknown = await self.service.import_statement(1, "x.csv", [{"foo": "1", "bar": "2"}])
        self.assertEqual(unknown.status, ImportStatus.UNKNOWN_SOURCE)
        self.assertFalse(self.staging.rows)

    async def test_process_matches_and_flags_review(self):
        staged = await self.service.import_statement(1, "q1.csv", rows_from_csv(STATEMENT_CSV), source="BMI")
        result = await self.service.process_staging(staged.staging_id)
        self.assertEqual((result.created, result.matched, result.unmatched), (2, 1, 1))
        self.assertEqual(result.processing_status, ProcessingStatus.NEEDS_REVIEW)

        matched, unmatched = self.allocations.rows[1], self.allocations.rows[2]
        self.assertEqual(matched.copyright_id, 1)
        self.assertEqual(matched.country, "US")
        self.assertEqual(matched.source, "BMI")
        self.assertGreaterEqual(matched.match_confidence, 60)
        self.assertIsNone(unmatched.copyright_id)
        self.assertEqual(unmatched.country, "NO")
        self.assertEqual(unmatched.gross_amount, 20.5)

    async def test_processed_staging_is_not_reprocessed(self):
        rows = rows_from_csv(STATEMENT_CSV)[:1]
        staged = await self.service.import_statement(1, "q1.csv", rows, source="BMI")
        first = await self.service.process_staging(staged.staging_id)
        self.assertEqual(first.processing_status, ProcessingStatus.PROCESSED)
        again = await self.service.process_staging(staged.staging_id)
        self.assertEqual(again.status, ProcessStatus.ALREADY_PROCESSED)
        self.assertEqual(len(self.allocations.rows), 1)
        self.assertEqual((await self.service.process_staging(99)).status, ProcessStatus.NOT_FOUND)

    async def test_delete_staging_drops_allocations(self):
        staged = await self.service.import_statement(1, "q1.csv", rows_from_csv(STATEMENT_CSV), source="BMI")
        await self.service.process_staging(staged.staging_id)
        self.assertTrue(await self.service.delete_staging(staged.staging_id))
        self.assertFalse(self.allocations.rows)


class SplittingTests(unittest.TestCase):
    def test_split_is_pro_rata_over_controlled_writers(self):
        parts = split_amount(100, _harbor_work().writers)
        self.assertEqual([p.writer_name for p in parts], ["Ava Demo", "Bo Second"])
        self.assertEqual([p.amount for p in parts], [66.67, 33.33])
        self.assertEqual(parts[0].ownership_key, "copyright_writer_1")

    def test_no_controlled_writers(self):
        self.assertEqual(split_amount(10, [_writer(1, 1, "X", controlled="NC")]), [])


class AllocationServiceTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.allocations = FakeAllocations()
        other = WorkDetails(
            copyright=Copyright(id=2, user_id=2, internal_id="CW-2024-000001", work_title="ELSEWHERE"),
        )
        uncontrolled = WorkDetails(
            copyright=Copyright(id=3, user_id=1, internal_id="CW-2024-000002", work_title="OPEN"),
            writers=(_writer(9, 3, "Cy Outside", controlled="NC", pct=100),),
        )
        self.service = AllocationService(
            allocations=self.allocations,
            copyrights=FakeCopyrightService([_harbor_work(), other, uncontrolled]),
        )

    async def _allocation(self, **fields) -> int:
        payload = {"song_title": "Midnight Harbor", "gross_amount": 100.0, **fields}
        return await self.allocations.create(1, payload)

    async def test_split_creates_children_and_marks_parent(self):
        parent = await self._allocation(copyright_id=1, comments="Match confidence: 95%")
        result = await self.service.split_allocation(parent)
        self.assertEqual(result.status, SplitStatus.OK)
        children = [self.allocations.rows[i] for i in result.child_ids]
        self.assertEqual([c.gross_amount for c in children], [66.67, 33.33])
        self.assertTrue(all(c.is_split and c.parent_allocation_id == parent for c in children))
        self.assertEqual(children[0].ownership_splits, {"copyright_writer_1": 50})
        self.assertEqual(
            self.allocations.rows[parent].comments, "Match confidence: 95% [SPLIT INTO 2 WRITER ALLOCATIONS]"
        )
        self.assertEqual(self.allocations.rows[parent].match_confidence, 95)

        self.assertEqual((await self.service.split_allocation(parent)).status, SplitStatus.ALREADY_SPLIT)
        self.assertEqual((await self.service.split_allocation(children[0].id)).status, SplitStatus.ALREADY_SPLIT)

    async def test_split_refusals(self):
        self.assertEqual((await self.service.split_allocation(99)).status, SplitStatus.NOT_FOUND)
        unlinked = await self._allocation()
        self.assertEqual((await self.service.split_allocation(unlinked)).status, SplitStatus.NOT_LINKED)
        open_work = await self._allocation(copyright_id=3)
        self.assertEqual(
            (await self.service.split_allocation(open_work)).status, SplitStatus.NO_CONTROLLED_WRITERS
        )

    async def test_assign_copyright_checks_ownership(self):
        allocation = await self._allocation()
        self.assertFalse(await self.service.assign_copyright(allocation, 2))
        self.assertTrue(await self.service.assign_copyright(allocation, 1))
        self.assertEqual(self.allocations.rows[allocation].copyright_id, 1)
        self.assertEqual(self.allocations.rows[allocation].match_confidence, 100)

    async def test_normalize_territories(self):
        for country in ("USA", "GB", None, "Atlantis"):
            await self._allocation(country=country)
        result = await self.service.normalize_territories(1)
        self.assertEqual((result.updated, result.skipped, result.total), (1, 2, 3))
        self.assertEqual(self.allocations.rows[1].country, "US")

    async def test_discrepancy_report(self):
        await self._allocation(song_title="Lost Song")
        await self._allocation(copyright_id=1, comments="Match confidence: 65%")
        await self._allocation(copyright_id=1, comments="Match confidence: 90%")
        await self._allocation(copyright_id=1, song_title="Child", parent_allocation_id=2, is_split=True)
        report = await self.service.discrepancy_report(1)
        self.assertEqual([a.song_title for a in report.unmatched], ["Lost Song"])
        self.assertEqual([a.id for a in report.low_confidence], [2])
        self.assertEqual(list(report.duplicates), ["midnight harbor"])
        self.assertEqual(report.total_issues, 4)

    def test_report_skips_children_even_when_passed(self):
        child = RoyaltyAllocation(id=5, user_id=1, song_title="X", gross_amount=1, parent_allocation_id=1)
        self.assertEqual(build_discrepancy_report([child]).total_issues, 0)


class ReconciliationTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.allocations = FakeAllocations()
        self.batches = FakeBatches()
        self.service = ReconciliationService(batches=self.batches, allocations=self.allocations, clock=FixedClock())

    async def test_batch_lifecycle(self):
        batch = await self.service.create_batch(1, source="BMI", statement_total=150, period="2024Q1")
        self.assertEqual(batch.batch_id, "BATCH-2024-0001")
        self.assertEqual(batch.status, BatchStatus.PENDING)

        first = await self.allocations.create(1, {"song_title": "A", "gross_amount": 100.0})
        second = await self.allocations.create(1, {"song_title": "B", "gross_amount": 49.0})
        foreign = await self.allocations.create(2, {"song_title": "C", "gross_amount": 1.0})
        self.assertEqual(await self.service.link_allocations(batch.id, [first, second, foreign]), 2)
        self.assertEqual(self.batches.rows[batch.id].status, BatchStatus.IMPORTED)
        self.assertIsNone(self.allocations.rows[foreign].batch_id)

        summary = await self.service.verify(batch.id)
        self.assertEqual((summary.allocation_count, summary.linked_gross, summary.variance), (2, 149.0, 1.0))
        self.assertFalse(summary.is_reconciled)
        self.assertEqual(summary.batch.status, BatchStatus.IMPORTED)

        third = await self.allocations.create(1, {"song_title": "D", "gross_amount": 1.0})
        await self.service.link_allocations(batch.id, [third])
        summary = await self.service.verify(batch.id)
        self.assertTrue(summary.is_reconciled)
        self.assertEqual(summary.batch.status, BatchStatus.PROCESSED)
        steps = await self.service.workflow_steps(batch.id)
        self.assertTrue(all(step.completed for step in steps))

    async def test_status_only_moves_forward_one_step(self):
        batch = await self.service.create_batch(1, source="ASCAP", statement_total=0)
        self.assertFalse(await self.service.advance_status(batch.id, BatchStatus.PROCESSED))
        self.assertTrue(await self.service.advance_status(batch.id, BatchStatus.IMPORTED))
        self.assertFalse(await self.service.advance_status(batch.id, BatchStatus.PENDING))
        steps = await self.service.workflow_steps(batch.id)
        self.assertEqual([s.completed for s in steps], [True, False, False, False])
        self.assertEqual(await self.service.link_allocations(batch.id, []), 0)
        self.assertIsNone(await self.service.reconciliation_summary(99))


if __name__ == "__main__":
    unittest.main()
