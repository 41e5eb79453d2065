from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping, Sequence


@dataclass(frozen=True)
class RevenueTypeMultiplier:
    type: str
    label: str
    multiplier: float
    risk_level: str


REVENUE_TYPE_MULTIPLIERS: dict[str, RevenueTypeMultiplier] = {
    m.type: m
    for m in (
        RevenueTypeMultiplier("publishing", "Publishing Revenue", 18, "low"),
        RevenueTypeMultiplier("mechanical", "Mechanical Royalties", 15, "low"),
        RevenueTypeMultiplier("streaming", "Streaming Revenue", 12, "medium"),
        RevenueTypeMultiplier("master_licensing", "Master Licensing", 12, "medium"),
        RevenueTypeMultiplier("performance", "Live Performance", 10, "medium"),
        RevenueTypeMultiplier("sync", "Sync/Licensing", 8, "medium"),
        RevenueTypeMultiplier("other", "Other Revenue", 6, "high"),
        RevenueTypeMultiplier("merchandise", "Merchandise", 5, "high"),
        RevenueTypeMultiplier("touring", "Touring Revenue", 3, "high"),
    )
}

CONFIDENCE_FACTORS = {"high": 1.1, "medium": 1.0, "low": 0.8}
CONFIDENCE_LEVELS = ("low", "medium", "high")
NON_RECURRING_FACTOR = 0.6
RISK_SCORES = {"low": 1, "medium": 2, "high": 3}
CONFIDENCE_RISK_SCORES = {"low": 3, "medium": 2, "high": 1}


@dataclass(frozen=True)
class RevenueSource:
    revenue_type: str
    annual_revenue: float
    confidence_level: str = "medium"
    is_recurring: bool = True
    revenue_source: str = ""
    id: int | None = None
    currency: str = "USD"
    growth_rate: float = 0.0
    start_date: str | None = None
    end_date: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class RevenueValuation:
    total_valuation: float
    breakdown: dict[str, float] = field(default_factory=dict)
    average_multiplier: float = 0.0


@dataclass(frozen=True)
class PortfolioRisk:
    risk_level: str
    score: int
    recommendations: list[str]
    diversification_score: float = 0.0


def calculate_additional_revenue_valuation(sources: Sequence[RevenueSource]) -> RevenueValuation:
    total = 0.0
    breakdown: dict[str, float] = {}
    for source in sources:
        info = REVENUE_TYPE_MULTIPLIERS.get(source.revenue_type)
        if info is None:
            continue
        value = source.annual_revenue * info.multiplier
        value *= CONFIDENCE_FACTORS.get(source.confidence_level, 1.0)
        if not source.is_recurring:
            value *= NON_RECURRING_FACTOR
        total += value
        breakdown[source.revenue_type] = breakdown.get(source.revenue_type, 0.0) + value
    revenue = sum(s.annual_revenue for s in sources)
    return RevenueValuation(
        total_valuation=total,
        breakdown=breakdown,
        average_multiplier=total / revenue if sources and revenue else 0.0,
    )


def diversification_score(revenue_types: Iterable[str]) -> float:
    return min(len(set(revenue_types)) / 9, 1.0)


def diversification_bonus(score: float) -> float:
    return score * 0.2


def assess_portfolio_risk(sources: Sequence[RevenueSource]) -> PortfolioRisk:
    if not sources:
        return PortfolioRisk(risk_level="high", score=0, recommendations=[])

    total_revenue = 0.0
    weighted = 0.0
    types: set[str] = set()
    for source in sources:
        total_revenue += source.annual_revenue
        info = REVENUE_TYPE_MULTIPLIERS.get(source.revenue_type)
        if info is None:
            continue
        risk = RISK_SCORES[info.risk_level] + CONFIDENCE_RISK_SCORES.get(source.confidence_level, 2)
        weighted += risk * source.annual_revenue
        types.add(source.revenue_type)

    average = weighted / total_revenue / 6 if total_revenue else 1.0
    diversification = len(types) / 9
    final = average * (1 - diversification * 0.3)

    recommendations: list[str] = []
    if final < 0.3:
        level = "low"
        recommendations.append("Excellent diversification and revenue quality")
    elif final < 0.6:
        level = "medium"
        recommendations.append("Consider diversifying into more stable revenue types")
        if diversification < 0.4:
            recommendations.append("Add more revenue source types to reduce risk")
    else:
        level = "high"
        recommendations.append("High risk portfolio - consider adding more stable revenue sources")
        recommendations.append("Focus on publishing and mechanical revenue for stability")
        if diversification < 0.3:
            recommendations.append("Critically low diversification - add multiple revenue types")

    return PortfolioRisk(
        risk_level=level,
        score=round((1 - final) * 100),
        recommendations=recommendations,
        diversification_score=diversification,
    )


def _is_date(value: str) -> bool:
    try:
        date.fromisoformat(value[:10])
    except ValueError:
        return False
    return True


def validate_revenue_source_row(row: Mapping[str, Any], row_index: int) -> list[str]:
    errors: list[str] = []
    if not str(row.get("revenue_source") or "").strip():
        errors.append(f"Row {row_index}: Revenue source name is required")

    try:
        revenue = float(row.get("annual_revenue") or 0)
    except (TypeError, ValueError):
        revenue = 0.0
    if revenue <= 0:
        errors.append(f"Row {row_index}: Annual revenue must be a positive number")

    revenue_type = row.get("revenue_type")
    if revenue_type not in REVENUE_TYPE_MULTIPLIERS:
        errors.append(
            f'Row {row_index}: Invalid revenue type "{revenue_type}". '
            f"Valid types: {', '.join(REVENUE_TYPE_MULTIPLIERS)}"
        )

    confidence = row.get("confidence_level")
    if confidence not in CONFIDENCE_LEVELS:
        errors.append(
            f'Row {row_index}: Invalid confidence level "{confidence}". Valid levels: low, medium, high'
        )

    for key, label in (("start_date", "start"), ("end_date", "end")):
        value = row.get(key)
        if value and not _is_date(str(value)):
            errors.append(f'Row {row_index}: Invalid {label} date format "{value}"')

    recurring = row.get("is_recurring")
    if isinstance(recurring, str) and recurring and recurring.lower() not in ("true", "false"):
        errors.append(f'Row {row_index}: is_recurring must be "true" or "false"')
    return errors


def revenue_source_from_row(row: Mapping[str, Any]) -> RevenueSource:
    recurring = row.get("is_recurring", True)
    if isinstance(recurring, str):
        recurring = recurring.strip().lower() != "false"
    return RevenueSource(
        revenue_type=str(row["revenue_type"]),
        annual_revenue=float(row["annual_revenue"]),
        confidence_level=str(row.get("confidence_level") or "medium"),
        is_recurring=bool(recurring),
        revenue_source=str(row.get("revenue_source") or "").strip(),
        currency=str(row.get("currency") or "USD").upper(),
        growth_rate=float(row.get("growth_rate") or 0),
        start_date=row.get("start_date") or None,
        end_date=row.get("end_date") or None,
        notes=row.get("notes") or None,
    )
