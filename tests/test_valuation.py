import unittest
from dataclasses import replace

from rightsdesk.domain.copyright import Copyright, CopyrightWriter, WorkDetails
from rightsdesk.domain.valuation import (
    CatalogValuationService,
    RevenueSource,
    SongMeta,
    assess_portfolio_risk,
    calculate_additional_revenue_valuation,
    compute_catalog_pipeline,
    compute_song_pipeline,
    diversification_bonus,
    diversification_score,
    validate_revenue_source_row,
)
from rightsdesk.domain.valuation.services import metadata_completeness, song_meta_from_work

VERIFIED = SongMeta(
    id="1",
    song_title="Midnight Harbor",
    metadata_completeness_score=0.9,
    verification_status="PRO_VERIFIED",
    iswc="T-123456789-0",
    publishers={"North Music": 50},
    estimated_splits={"Ava Demo": 100},
    pro_registrations={"Ava Demo": "00014107338"},
)
BARE = SongMeta(id="2", song_title="Unknown Demo")


def _details(status="registered", ipi="00014107338"):
    work = Copyright(
        id=1, user_id=1, internal_id="CW-2024-000001", work_title="MIDNIGHT HARBOR", iswc="T-123456789-0",
        status=status,
    )
    writer = CopyrightWriter(id=1, copyright_id=1, writer_name="Ava Demo", ownership_percentage=100, ipi_number=ipi)
    return WorkDetails(copyright=work, writers=(writer,))


class FakeCopyrightService:
    def __init__(self, works):
        self.works = works

    async def list_work_details(self, user_id, ids=None):
        return [w for w in self.works if w.copyright.user_id == user_id]


class FakeRevenueSources:
    def __init__(self):
        self.sources: dict[int, tuple[int, RevenueSource]] = {}

    async def add(self, user_id, source):
        source_id = len(self.sources) + 1
        self.sources[source_id] = (user_id, replace(source, id=source_id))
        return source_id

    async def list_for_user(self, user_id):
        return [s for owner, s in self.sources.values() if owner == user_id]

    async def delete(self, user_id, source_id):
        entry = self.sources.get(source_id)
        if not entry or entry[0] != user_id:
            return False
        del self.sources[source_id]
        return True


class PipelineTests(unittest.TestCase):
    def test_bare_song_uses_defaults_and_penalties(self):
        result = compute_song_pipeline(BARE)
        self.assertAlmostEqual(result.monthly_net_r0, 250 / 12 * 0.7 * 0.25)
        self.assertAlmostEqual(result.k, 0.16)
        self.assertAlmostEqual(result.collectability, 0.7 * 0.8 * 0.85 * 0.9 * 0.8)
        self.assertEqual(result.confidence, "low")
        self.assertAlmostEqual(result.collectible_pipeline, result.base_pipeline * result.collectability)

    def test_verified_song(self):
        result = compute_song_pipeline(VERIFIED)
        self.assertAlmostEqual(result.monthly_net_r0, 1400 / 12 * 0.7 * 0.25)
        self.assertAlmostEqual(result.k, 0.10)
        self.assertEqual(result.collectability, 1.0)
        self.assertEqual(result.confidence, "high")
        self.assertAlmostEqual(result.breakdown.performance, result.collectible_pipeline * 0.6)
        self.assertAlmostEqual(result.breakdown.sync, result.collectible_pipeline * 0.1)

    def test_catalog_totals_and_confidence(self):
        catalog = compute_catalog_pipeline([VERIFIED, BARE])
        songs = [compute_song_pipeline(VERIFIED), compute_song_pipeline(BARE)]
        self.assertAlmostEqual(catalog.total, sum(s.collectible_pipeline for s in songs))
        self.assertAlmostEqual(catalog.scenario.low, catalog.total * 0.8)
        self.assertAlmostEqual(catalog.scenario.high, catalog.total * 1.2)
        self.assertEqual(catalog.confidence_score, 85)
        self.assertEqual(compute_catalog_pipeline([]).total, 0)

    def test_completeness_bonus_rounds_half_up(self):
        half = SongMeta(id="3", song_title="Half Done", metadata_completeness_score=0.125)
        self.assertEqual(compute_catalog_pipeline([half]).confidence_score, 53)


class RevenueTests(unittest.TestCase):
    def test_revenue_valuation(self):
        sources = [
            RevenueSource("publishing", 1000, "high"),
            RevenueSource("touring", 500, "low", is_recurring=False),
            RevenueSource("crypto", 900),
        ]
        valuation = calculate_additional_revenue_valuation(sources)
        self.assertAlmostEqual(valuation.total_valuation, 19800 + 720)
        self.assertAlmostEqual(valuation.breakdown["touring"], 720)
        self.assertNotIn("crypto", valuation.breakdown)
        self.assertAlmostEqual(valuation.average_multiplier, 20520 / 2400)

    def test_diversification(self):
        score = diversification_score(["publishing", "touring", "publishing"])
        self.assertAlmostEqual(score, 2 / 9)
        self.assertAlmostEqual(diversification_bonus(score), 2 / 9 * 0.2)
        self.assertEqual(diversification_score(["t%d" % i for i in range(12)]), 1.0)

    def test_portfolio_risk(self):
        empty = assess_portfolio_risk([])
        self.assertEqual((empty.risk_level, empty.score), ("high", 0))
        single = assess_portfolio_risk([RevenueSource("publishing", 1000, "high")])
        self.assertEqual(single.risk_level, "medium")
        self.assertEqual(single.score, 68)
        self.assertIn("Add more revenue source types to reduce risk", single.recommendations)
        risky = assess_portfolio_risk([RevenueSource("touring", 1000, "low")])
        self.assertEqual(risky.risk_level, "high")

    def test_row_validation(self):
        row = {"revenue_source": "Label", "annual_revenue": "1200", "revenue_type": "streaming",
               "confidence_level": "medium"}
        self.assertEqual(validate_revenue_source_row(row, 1), [])
        bad = {"annual_revenue": "abc", "revenue_type": "nft", "confidence_level": "sure",
               "start_date": "soon", "is_recurring": "maybe"}
        self.assertEqual(len(validate_revenue_source_row(bad, 3)), 6)


class CatalogValuationServiceTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.sources = FakeRevenueSources()
        self.service = CatalogValuationService(
            copyrights=FakeCopyrightService([_details()]), revenue_sources=self.sources
        )

    def test_work_metadata(self):
        self.assertEqual(metadata_completeness(_details()), 0.625)
        meta = song_meta_from_work(_details())
        self.assertEqual(meta.verification_status, "pro_verified")
        self.assertEqual(meta.pro_registrations, {"Ava Demo": "00014107338"})
        self.assertEqual(song_meta_from_work(_details(status="draft")).status, "unknown")

    async def test_import_is_all_or_nothing(self):
        good = {"revenue_source": "Label", "annual_revenue": "1200", "revenue_type": "streaming",
                "confidence_level": "medium", "is_recurring": "false"}
        bad = {"revenue_source": "", "annual_revenue": "0", "revenue_type": "streaming", "confidence_level": "low"}
        failed = await self.service.import_revenue_sources(1, [good, bad])
        self.assertEqual(failed.created, 0)
        self.assertEqual(len(failed.errors), 2)
        self.assertFalse(self.sources.sources)

        done = await self.service.import_revenue_sources(1, [good])
        self.assertEqual((done.created, done.errors), (1, []))
        stored = (await self.service.list_revenue_sources(1))[0]
        self.assertFalse(stored.is_recurring)
        self.assertEqual(stored.annual_revenue, 1200.0)

    async def test_value_catalog_combines_pipeline_and_revenue(self):
        self.assertEqual(
            await self.service.add_revenue_source(1, {"revenue_source": "Pub", "annual_revenue": 1000,
                                                      "revenue_type": "publishing", "confidence_level": "high"}),
            [],
        )
        valuation = await self.service.value_catalog(1)
        self.assertEqual(len(valuation.pipeline.song_results), 1)
        self.assertAlmostEqual(valuation.revenue.total_valuation, 19800)
        expected = valuation.pipeline.total + 19800 * (1 + diversification_bonus(1 / 9))
        self.assertAlmostEqual(valuation.total, round(expected, 2))
        self.assertEqual(valuation.risk.risk_level, "medium")

    async def test_delete_revenue_source_checks_owner(self):
        await self.service.add_revenue_source(1, {"revenue_source": "Pub", "annual_revenue": 10,
                                                  "revenue_type": "other", "confidence_level": "low"})
        self.assertFalse(await self.service.delete_revenue_source(2, 1))
        self.assertTrue(await self.service.delete_revenue_source(1, 1))


if __name__ == "__main__":
    unittest.main()
