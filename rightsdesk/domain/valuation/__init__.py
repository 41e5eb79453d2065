from .pipeline import (
    DEFAULT_PIPELINE_CONFIG,
    CatalogPipelineResult,
    PipelineConfig,
    SongMeta,
    SongPipelineResult,
    compute_catalog_pipeline,
    compute_song_pipeline,
)
from .revenue import (
    REVENUE_TYPE_MULTIPLIERS,
    PortfolioRisk,
    RevenueSource,
    RevenueValuation,
    assess_portfolio_risk,
    calculate_additional_revenue_valuation,
    diversification_bonus,
    diversification_score,
    validate_revenue_source_row,
)
from .services import CatalogValuation, CatalogValuationService, RevenueImportResult

__all__ = [
    "CatalogPipelineResult",
    "CatalogValuation",
    "CatalogValuationService",
    "DEFAULT_PIPELINE_CONFIG",
    "PipelineConfig",
    "PortfolioRisk",
    "REVENUE_TYPE_MULTIPLIERS",
    "RevenueImportResult",
    "RevenueSource",
    "RevenueValuation",
    "SongMeta",
    "SongPipelineResult",
    "assess_portfolio_risk",
    "calculate_additional_revenue_valuation",
    "compute_catalog_pipeline",
    "compute_song_pipeline",
    "diversification_bonus",
    "diversification_score",
    "validate_revenue_source_row",
]
