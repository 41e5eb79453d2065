import unittest
from dataclasses import replace
from datetime import datetime, timezone

from rightsdesk.domain.copyright import (
    Copyright,
    CopyrightChangeStatus,
    CopyrightPublisher,
    CopyrightRecording,
    CopyrightService,
    CopyrightWriter,
    WorkDetails,
)
from rightsdesk.domain.copyright.cwr import (
    compliance_scores,
    export_cwr,
    validate_cwr_compliance,
    validate_cwr_field,
    validate_rights_ownership,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
FULL_SHARES = {
    "ownership_percentage": 100,
    "performance_share": 100,
    "mechanical_share": 100,
    "synchronization_share": 100,
    "print_share": 100,
}


class FixedClock:
    def now(self) -> datetime:
        return NOW


class FakeCopyrights:
    def __init__(self):
        self.works: dict[int, Copyright] = {}
        self.writers: list[CopyrightWriter] = []
        self.publishers: list[CopyrightPublisher] = []
        self.recordings: list[CopyrightRecording] = []
        self.sequences: dict[tuple[int, int], int] = {}

    async def next_sequence(self, user_id, year):
        key = (user_id, year)
        self.sequences[key] = self.sequences.get(key, 0) + 1
        return self.sequences[key]

    async def create(self, user_id, internal_id, fields):
        copyright_id = len(self.works) + 1
        data = dict(fields)
        data["akas"] = tuple(data.get("akas") or ())
        self.works[copyright_id] = Copyright(id=copyright_id, user_id=user_id, internal_id=internal_id, **data)
        return copyright_id

    async def get(self, copyright_id):
        return self.works.get(copyright_id)

    async def list_for_user(self, user_id, *, search=None, status=None, ids=None):
        works = [w for w in self.works.values() if w.user_id == user_id]
        if ids is not None:
            works = [w for w in works if w.id in ids]
        if status:
            works = [w for w in works if w.status == status]
        if search:
            works = [w for w in works if search.lower() in w.work_title.lower()]
        return works

    async def update(self, copyright_id, fields):
        self.works[copyright_id] = replace(self.works[copyright_id], **fields)

    async def delete(self, copyright_id):
        return self.works.pop(copyright_id, None) is not None

    async def add_writer(self, copyright_id, fields):
        writer = CopyrightWriter(id=len(self.writers) + 1, copyright_id=copyright_id, **fields)
        self.writers.append(writer)
        return writer.id

    async def add_publisher(self, copyright_id, fields):
        publisher = CopyrightPublisher(id=len(self.publishers) + 1, copyright_id=copyright_id, **fields)
        self.publishers.append(publisher)
        return publisher.id

    async def add_recording(self, copyright_id, fields):
        recording = CopyrightRecording(id=len(self.recordings) + 1, copyright_id=copyright_id, **fields)
        self.recordings.append(recording)
        return recording.id

    async def list_writers(self, copyright_ids):
        return [w for w in self.writers if w.copyright_id in copyright_ids]

    async def list_publishers(self, copyright_ids):
        return [p for p in self.publishers if p.copyright_id in copyright_ids]

    async def list_recordings(self, copyright_ids):
        return [r for r in self.recordings if r.copyright_id in copyright_ids]


class FakeExports:
    def __init__(self):
        self.rows = []

    async def add(self, **kwargs):
        self.rows.append(kwargs)
        return len(self.rows)

    async def list_for_user(self, user_id, limit=20):
        return []


class CWRRuleTests(unittest.TestCase):
    def test_field_rules(self):
        self.assertTrue(validate_cwr_field("NWR.ISWC", "T-123456789-0").is_valid)
        self.assertFalse(validate_cwr_field("NWR.ISWC", "T1234").is_valid)
        self.assertFalse(validate_cwr_field("NWR.WORK_TITLE", "").is_valid)
        self.assertTrue(validate_cwr_field("NWR.LANGUAGE_CODE", None).is_valid)
        self.assertFalse(validate_cwr_field("NWR.WORK_TYPE", "XYZ").is_valid)
        self.assertFalse(validate_cwr_field("NWR.DURATION", 90000).is_valid)
        self.assertTrue(validate_cwr_field("REC.ISRC", "USRC17607839").is_valid)
        self.assertFalse(validate_cwr_field("NWR.WORK_TITLE", "x" * 61).is_valid)
        unknown = validate_cwr_field("XXX.NOPE", "value")
        self.assertTrue(unknown.is_valid)
        self.assertEqual(len(unknown.warnings), 1)

    def test_rights_ownership_totals(self):
        over = validate_rights_ownership([{"performance_share": 60}, {"performance_share": 50}], [], "PERFORMANCE")
        self.assertEqual(over.errors, ["PERFORMANCE rights ownership exceeds 100% (current: 110%)"])
        under = validate_rights_ownership([{"mechanical_share": 40}], [], "MECHANICAL")
        self.assertTrue(under.is_valid)
        self.assertEqual(len(under.warnings), 1)
        exact = validate_rights_ownership([{"print_share": 50}], [{"print_share": 50}], "PRINT")
        self.assertEqual((exact.errors, exact.warnings), ([], []))

    def test_compliance_scores(self):
        scores = compliance_scores(2, 3)
        self.assertEqual((scores.cwr21, scores.ddex, scores.format), (84, 88.5, 85))
        self.assertEqual(compliance_scores(30, 0).cwr21, 0)

    def test_compliance_requires_writer(self):
        work = Copyright(id=1, user_id=1, internal_id="CW-2024-000001", work_title="SONG")
        result = validate_cwr_compliance(work)
        self.assertFalse(result.is_valid)
        self.assertIn("At least one writer is required for CWR compliance", result.errors)


class CWRExportTests(unittest.TestCase):
    def test_export_layout(self):
        work = Copyright(
            id=1, user_id=1, internal_id="CW-2024-000001", work_title="MIDNIGHT HARBOR", iswc="T1234567890"
        )
        writer = CopyrightWriter(
            id=1, copyright_id=1, writer_name="Ava Demo", controlled_status="C", ownership_percentage=50
        )
        details = WorkDetails(copyright=work, writers=(writer,))
        lines = export_cwr([details], "rdesk", NOW).split("\n")

        self.assertEqual(len(lines), 4)
        self.assertTrue(lines[0].startswith("HDR0000102.10RDESK"))
        self.assertIn("20240501120000", lines[0])
        self.assertTrue(lines[1].startswith("NWR00000001MIDNIGHT HARBOR"))
        self.assertTrue(lines[1].endswith("ORIUN   "))
        self.assertTrue(lines[2].startswith("SWR00000001Ava Demo"))
        self.assertTrue(lines[2].endswith("Y05000CA"))
        self.assertEqual(lines[3], "TRL00000000004" + "01000000010")


class CopyrightServiceTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.repo = FakeCopyrights()
        self.exports = FakeExports()
        self.service = CopyrightService(
            copyrights=self.repo, exports=self.exports, clock=FixedClock(), sender_id="RDESK"
        )

    async def _work(self, title="MIDNIGHT HARBOR", **kwargs) -> int:
        result = await self.service.register_work(1, work_title=title, **kwargs)
        self.assertEqual(result.status, CopyrightChangeStatus.OK)
        return result.id

    async def test_register_assigns_internal_ids(self):
        first = await self.service.register_work(1, work_title="ONE", language_code="en")
        second = await self.service.register_work(1, work_title="TWO")
        self.assertEqual(first.internal_id, "CW-2024-000001")
        self.assertEqual(second.internal_id, "CW-2024-000002")
        self.assertEqual(self.repo.works[first.id].language_code, "EN")

    async def test_register_rejects_invalid_fields(self):
        result = await self.service.register_work(1, work_title="", iswc="bad", work_type="XYZ", status="gone")
        self.assertEqual(result.status, CopyrightChangeStatus.INVALID)
        self.assertEqual(len(result.errors), 4)
        self.assertFalse(self.repo.works)

    async def test_update_and_delete(self):
        work_id = await self._work()
        self.assertEqual(
            (await self.service.update_work(work_id, {"work_type": "BAD"})).status,
            CopyrightChangeStatus.INVALID,
        )
        ok = await self.service.update_work(work_id, {"status": "registered", "unknown": 1})
        self.assertEqual(ok.status, CopyrightChangeStatus.OK)
        self.assertEqual(self.repo.works[work_id].status, "registered")
        self.assertEqual(
            (await self.service.update_work(99, {"status": "draft"})).status, CopyrightChangeStatus.NOT_FOUND
        )
        self.assertTrue(await self.service.delete_work(work_id))
        self.assertFalse(await self.service.delete_work(work_id))

    async def test_writer_ownership_cannot_exceed_hundred(self):
        work_id = await self._work()
        first = await self.service.add_writer(work_id, {"writer_name": "A", "ownership_percentage": 70})
        self.assertEqual(first.status, CopyrightChangeStatus.OK)
        over = await self.service.add_writer(work_id, {"writer_name": "B", "ownership_percentage": 40})
        self.assertEqual(over.status, CopyrightChangeStatus.INVALID)
        bad_role = await self.service.add_writer(work_id, {"writer_name": "C", "writer_role": "singer"})
        self.assertEqual(bad_role.status, CopyrightChangeStatus.INVALID)
        missing = await self.service.add_writer(99, {"writer_name": "D"})
        self.assertEqual(missing.status, CopyrightChangeStatus.NOT_FOUND)

    async def test_publisher_and_recording_normalization(self):
        work_id = await self._work()
        pub = await self.service.add_publisher(work_id, {"publisher_name": "North Music", "publisher_role": "E"})
        self.assertEqual(pub.status, CopyrightChangeStatus.OK)
        self.assertEqual(self.repo.publishers[0].publisher_role, "E ")
        rec = await self.service.add_recording(work_id, {"isrc": "us-rc1-76-07839", "artist_name": "Ava"})
        self.assertEqual(rec.status, CopyrightChangeStatus.OK)
        self.assertEqual(self.repo.recordings[0].isrc, "USRC17607839")
        self.assertEqual(self.repo.recordings[0].recording_title, "MIDNIGHT HARBOR")

    async def test_validate_work_records_status(self):
        work_id = await self._work()
        await self.service.add_writer(work_id, {"writer_name": "Ava Demo", **FULL_SHARES})
        result = await self.service.validate_work(work_id)
        self.assertTrue(result.is_valid)
        self.assertEqual(result.compliance.cwr21, 100)
        self.assertEqual(self.repo.works[work_id].validation_status, "valid")

        partial = await self._work("SECOND")
        await self.service.add_writer(partial, {"writer_name": "Ava Demo", "ownership_percentage": 50})
        result = await self.service.validate_work(partial)
        self.assertTrue(result.is_valid)
        self.assertEqual(len(result.warnings), 4)
        self.assertEqual(self.repo.works[partial].validation_status, "warnings")
        self.assertIsNone(await self.service.validate_work(99))

    async def test_export_works_is_recorded(self):
        work_id = await self._work()
        await self.service.add_writer(work_id, {"writer_name": "Ava Demo", **FULL_SHARES})
        self.assertIsNone(await self.service.export_works(2, [work_id]))

        export = await self.service.export_works(1, [work_id])
        self.assertEqual(export.filename, "CW240501120000_RDESK.V21")
        self.assertEqual(export.record_count, 4)
        self.assertEqual(export.work_ids, (work_id,))
        self.assertEqual(self.exports.rows[0]["content"], export.content)


if __name__ == "__main__":
    unittest.main()
