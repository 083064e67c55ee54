"""Portfolio health score - weighted 0-100 composite of four portfolio metrics"""

from typing import Optional

from portfolio_risk.domain.models import (
    HealthComponents,
    HealthGrade,
    HealthScoreBreakdown,
    HealthScoreInput,
    HealthWeights,
)

WEIGHTS = HealthWeights()


def npa_component_score(gross_npa_rate: float) -> float:
    """
    Lower gross NPA rate = higher score.

    Benchmarks: <=2% excellent, 2-5% good, 5-10% fair, >10% poor.
    """
    if gross_npa_rate <= 2:
        return 100.0
    if gross_npa_rate <= 5:
        return 85 - (gross_npa_rate - 2) * 5  # 85-70
    if gross_npa_rate <= 10:
        return 70 - (gross_npa_rate - 5) * 6  # 70-40
    if gross_npa_rate <= 20:
        return 40 - (gross_npa_rate - 10) * 3  # 40-10
    return 10.0


def collection_component_score(collection_efficiency: float) -> float:
    """
    Higher collection efficiency = higher score.

    Benchmarks: >=90% excellent, 80-90% good, 70-80% fair, <70% poor.
    """
    if collection_efficiency >= 90:
        return 100.0
    if collection_efficiency >= 80:
        return 70 + (collection_efficiency - 80) * 3  # 70-100
    if collection_efficiency >= 70:
        return 40 + (collection_efficiency - 70) * 3  # 40-70
    if collection_efficiency >= 50:
        return 10 + (collection_efficiency - 50) * 1.5  # 10-40
    return max(0.0, collection_efficiency / 5)  # 0-10


def risk_component_score(avg_risk_score: float, high_risk_count: int, total_loans: int) -> float:
    """70 points from the inverse average risk score, 30 from low high-risk concentration"""
    avg_risk_part = max(0.0, 100 - avg_risk_score) * 0.7

    high_risk_pct = high_risk_count / total_loans * 100 if total_loans > 0 else 0.0
    if high_risk_pct <= 10:
        concentration_part = 30
    elif high_risk_pct <= 20:
        concentration_part = 20
    elif high_risk_pct <= 30:
        concentration_part = 10
    else:
        concentration_part = 0

    return avg_risk_part + concentration_part


def dpd_component_score(par30_rate: float, avg_dpd: float) -> float:
    """60 points from the PAR30 rate, 40 from average days past due"""
    if par30_rate <= 5:
        par30_part = 60.0
    elif par30_rate <= 10:
        par30_part = 50 - (par30_rate - 5) * 2
    elif par30_rate <= 20:
        par30_part = 40 - (par30_rate - 10) * 2
    else:
        par30_part = max(0.0, 20 - (par30_rate - 20))

    if avg_dpd <= 10:
        dpd_part = 40.0
    elif avg_dpd <= 30:
        dpd_part = 30 - (avg_dpd - 10) * 0.5
    elif avg_dpd <= 60:
        dpd_part = 20 - (avg_dpd - 30) * 0.4
    else:
        dpd_part = max(0.0, 10 - (avg_dpd - 60) * 0.1)

    return par30_part + dpd_part


def health_grade(score: float) -> HealthGrade:
    if score >= 80:
        return HealthGrade.EXCELLENT
    if score >= 65:
        return HealthGrade.GOOD
    if score >= 50:
        return HealthGrade.FAIR
    if score >= 35:
        return HealthGrade.POOR
    return HealthGrade.CRITICAL


def calculate_health_score(
    metrics: HealthScoreInput, previous_score: Optional[float] = None
) -> HealthScoreBreakdown:
    """
    Main entry point: weighted health score with grade and trend.

    Weights: NPA 30%, collection 30%, risk 20%, DPD 20%. The trend is the
    change against `previous_score`; history is kept by the caller.
    """
    npa = npa_component_score(metrics.gross_npa_rate)
    collection = collection_component_score(metrics.collection_efficiency)
    risk = risk_component_score(metrics.avg_risk_score, metrics.high_risk_count, metrics.total_loans)
    dpd = dpd_component_score(metrics.par30_rate, metrics.avg_dpd)

    overall = (
        npa * WEIGHTS.npa_weight
        + collection * WEIGHTS.collection_weight
        + risk * WEIGHTS.risk_weight
        + dpd * WEIGHTS.dpd_weight
    )
    overall = min(100.0, max(0.0, overall))
    trend = overall - previous_score if previous_score is not None else 0.0

    rounded_overall = round(overall, 1)
    return HealthScoreBreakdown(
        overall=rounded_overall,
        components=HealthComponents(
            npa_score=round(npa, 1),
            collection_score=round(collection, 1),
            risk_score=round(risk, 1),
            dpd_score=round(dpd, 1),
        ),
        weights=WEIGHTS,
        grade=health_grade(rounded_overall),
        trend=round(trend, 1),
    )
