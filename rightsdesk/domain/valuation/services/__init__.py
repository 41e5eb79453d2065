from .valuation_service import (
    CatalogValuation,
    CatalogValuationService,
    RevenueImportResult,
    metadata_completeness,
    song_meta_from_work,
)

__all__ = [
    "CatalogValuation",
    "CatalogValuationService",
    "RevenueImportResult",
    "metadata_completeness",
    "song_meta_from_work",
]
