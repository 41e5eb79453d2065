"""Deterministic pipeline estimate of royalties already earned but not yet collected."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

VERIFIED_STATUSES = ("pro_verified", "bmi_verified")


@dataclass(frozen=True)
class PipelineConfig:
    platform_fee: float = 0.30
    publishing_share_factor: float = 0.25
    domestic_weight: float = 0.7
    intl_weight: float = 0.3
    domestic_lag_months: int = 4
    intl_lag_months: int = 6
    base_k: float = 0.12
    min_k: float = 0.06
    max_k: float = 0.25
    performance_weight: float = 0.6
    mechanical_weight: float = 0.3
    sync_weight: float = 0.1


DEFAULT_PIPELINE_CONFIG = PipelineConfig()


@dataclass(frozen=True)
class SongMeta:
    id: str
    song_title: str
    metadata_completeness_score: Optional[float] = None
    verification_status: Optional[str] = None
    iswc: Optional[str] = None
    publishers: Mapping[str, float] = field(default_factory=dict)
    estimated_splits: Mapping[str, float] = field(default_factory=dict)
    pro_registrations: Mapping[str, object] = field(default_factory=dict)

    @property
    def status(self) -> str:
        return (self.verification_status or "unknown").lower()

    @property
    def is_verified(self) -> bool:
        return self.status in VERIFIED_STATUSES


@dataclass(frozen=True)
class StreamBreakdown:
    performance: float = 0.0
    mechanical: float = 0.0
    sync: float = 0.0

    def __add__(self, other: "StreamBreakdown") -> "StreamBreakdown":
        return StreamBreakdown(
            self.performance + other.performance,
            self.mechanical + other.mechanical,
            self.sync + other.sync,
        )


@dataclass(frozen=True)
class SongPipelineResult:
    song_id: str
    title: str
    monthly_net_r0: float
    k: float
    base_pipeline: float
    collectability: float
    collectible_pipeline: float
    breakdown: StreamBreakdown
    confidence: str


@dataclass(frozen=True)
class Scenario:
    low: float
    base: float
    high: float


@dataclass(frozen=True)
class CatalogPipelineResult:
    total: float
    breakdown: StreamBreakdown
    scenario: Scenario
    song_results: list[SongPipelineResult]
    confidence_score: int


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def annual_gross_from_completeness(score: float, verified: bool) -> float:
    if score >= 0.85:
        return 1400 if verified else 1200
    if score >= 0.7:
        return 800 if verified else 600
    if score >= 0.5:
        return 300 if verified else 250
    return 150 if verified else 100


def collectability_factor(song: SongMeta) -> float:
    p = 1.0
    has_iswc = bool(song.iswc)
    if not song.pro_registrations:
        p *= 0.7
    if not has_iswc:
        p *= 0.8
    if not song.estimated_splits:
        p *= 0.85
    if not song.publishers:
        p *= 0.9
    if song.is_verified:
        p = min(1.0, p * 1.1)
    if song.status in ("discovered", "unknown") and not has_iswc:
        p *= 0.8
    return _clamp(p, 0.0, 1.0)


def song_confidence(song: SongMeta) -> str:
    score = song.metadata_completeness_score or 0.0
    if song.is_verified and score >= 0.75:
        return "high"
    if score >= 0.6:
        return "medium"
    return "low"


def compute_song_pipeline(song: SongMeta, cfg: PipelineConfig = DEFAULT_PIPELINE_CONFIG) -> SongPipelineResult:
    completeness = song.metadata_completeness_score
    if completeness is None:
        completeness = 0.6
    verified = song.is_verified

    annual_gross = annual_gross_from_completeness(completeness, verified)
    monthly_net = annual_gross / 12 * (1 - cfg.platform_fee) * cfg.publishing_share_factor

    k = cfg.base_k
    if verified:
        k -= 0.02
    if not song.iswc:
        k += 0.04
    if completeness < 0.6:
        k += 0.03
    k = _clamp(k, cfg.min_k, cfg.max_k)

    base = sum(monthly_net * math.exp(-k * m) * cfg.domestic_weight for m in range(1, cfg.domestic_lag_months + 1))
    base += sum(monthly_net * math.exp(-k * m) * cfg.intl_weight for m in range(1, cfg.intl_lag_months + 1))

    collectability = collectability_factor(song)
    collectible = base * collectability
    return SongPipelineResult(
        song_id=song.id,
        title=song.song_title,
        monthly_net_r0=monthly_net,
        k=k,
        base_pipeline=base,
        collectability=collectability,
        collectible_pipeline=collectible,
        breakdown=StreamBreakdown(
            performance=collectible * cfg.performance_weight,
            mechanical=collectible * cfg.mechanical_weight,
            sync=collectible * cfg.sync_weight,
        ),
        confidence=song_confidence(song),
    )


def compute_catalog_pipeline(
    songs: Sequence[SongMeta], cfg: PipelineConfig = DEFAULT_PIPELINE_CONFIG
) -> CatalogPipelineResult:
    results = [compute_song_pipeline(s, cfg) for s in songs]
    total = sum(r.collectible_pipeline for r in results)
    breakdown = StreamBreakdown()
    for result in results:
        breakdown = breakdown + result.breakdown

    avg_completeness = (
        sum(s.metadata_completeness_score or 0.0 for s in songs) / len(songs) if songs else 0.0
    )
    confidence = 50
    confidence += math.floor(avg_completeness * 20 + 0.5)
    confidence += min(10, len(songs) // 10)
    if any(s.is_verified for s in songs):
        confidence += 10
    if any(s.iswc for s in songs):
        confidence += 8
    if any(s.estimated_splits for s in songs):
        confidence += 8

    return CatalogPipelineResult(
        total=total,
        breakdown=breakdown,
        scenario=Scenario(low=total * 0.8, base=total, high=total * 1.2),
        song_results=results,
        confidence_score=int(_clamp(confidence, 0, 100)),
    )
