from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from ...copyright import CopyrightService, WorkDetails
from ..pipeline import (
    DEFAULT_PIPELINE_CONFIG,
    CatalogPipelineResult,
    PipelineConfig,
    SongMeta,
    compute_catalog_pipeline,
)
from ..repositories import RevenueSourcesRepository
from ..revenue import (
    PortfolioRisk,
    RevenueSource,
    RevenueValuation,
    assess_portfolio_risk,
    calculate_additional_revenue_valuation,
    diversification_bonus,
    diversification_score,
    revenue_source_from_row,
    validate_revenue_source_row,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogValuation:
    pipeline: CatalogPipelineResult
    revenue: RevenueValuation
    risk: PortfolioRisk
    diversification_score: float
    diversification_bonus: float

    @property
    def total(self) -> float:
        return round(
            self.pipeline.total + self.revenue.total_valuation * (1 + self.diversification_bonus), 2
        )


@dataclass(frozen=True)
class RevenueImportResult:
    created: int
    errors: list[str]


def metadata_completeness(details: WorkDetails) -> float:
    """Share of the registration fields that are filled in, 0..1."""
    work = details.copyright
    writers = details.writers
    checks = [
        bool(work.work_title),
        bool(work.iswc),
        bool(writers),
        bool(writers) and all(w.ipi_number for w in writers),
        bool(details.publishers),
        bool(details.recordings),
        bool(details.recordings) and all(r.isrc for r in details.recordings),
        bool(writers) and abs(sum(w.ownership_percentage for w in writers) - 100) < 0.01,
    ]
    return round(sum(1 for c in checks if c) / len(checks), 4)


def song_meta_from_work(details: WorkDetails) -> SongMeta:
    work = details.copyright
    if work.status == "registered":
        status = "pro_verified"
    elif work.validation_status == "valid":
        status = "discovered"
    else:
        status = "unknown"
    return SongMeta(
        id=str(work.id),
        song_title=work.work_title,
        metadata_completeness_score=metadata_completeness(details),
        verification_status=status,
        iswc=work.iswc,
        publishers={p.publisher_name: p.ownership_percentage for p in details.publishers},
        estimated_splits={w.writer_name: w.ownership_percentage for w in details.writers},
        pro_registrations={w.writer_name: w.ipi_number for w in details.writers if w.ipi_number},
    )


class CatalogValuationService:
    def __init__(
        self,
        *,
        copyrights: CopyrightService,
        revenue_sources: RevenueSourcesRepository,
        config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
    ):
        self._copyrights = copyrights
        self._revenue_sources = revenue_sources
        self._config = config

    async def value_catalog(self, user_id: int) -> CatalogValuation:
        works = await self._copyrights.list_work_details(user_id)
        pipeline = compute_catalog_pipeline([song_meta_from_work(w) for w in works], self._config)
        sources = await self._revenue_sources.list_for_user(user_id)
        revenue = calculate_additional_revenue_valuation(sources)
        score = diversification_score(s.revenue_type for s in sources)
        valuation = CatalogValuation(
            pipeline=pipeline,
            revenue=revenue,
            risk=assess_portfolio_risk(sources),
            diversification_score=score,
            diversification_bonus=diversification_bonus(score),
        )
        logger.info(
            "Valued catalog for user %s: %s works, %s revenue sources, total %.2f",
            user_id,
            len(works),
            len(sources),
            valuation.total,
        )
        return valuation

    async def add_revenue_source(self, user_id: int, row: Mapping[str, Any]) -> list[str]:
        errors = validate_revenue_source_row(row, 1)
        if errors:
            return errors
        await self._revenue_sources.add(user_id, revenue_source_from_row(row))
        return []

    async def import_revenue_sources(self, user_id: int, rows: Sequence[Mapping[str, Any]]) -> RevenueImportResult:
        """Validates every row first and stores nothing when any row is invalid."""
        errors: list[str] = []
        for index, row in enumerate(rows, start=1):
            errors += validate_revenue_source_row(row, index)
        if errors:
            return RevenueImportResult(created=0, errors=errors)
        for row in rows:
            await self._revenue_sources.add(user_id, revenue_source_from_row(row))
        return RevenueImportResult(created=len(rows), errors=[])

    async def list_revenue_sources(self, user_id: int) -> list[RevenueSource]:
        return await self._revenue_sources.list_for_user(user_id)

    async def delete_revenue_source(self, user_id: int, source_id: int) -> bool:
        return await self._revenue_sources.delete(user_id, source_id)
