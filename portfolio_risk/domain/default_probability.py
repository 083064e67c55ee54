"""
Default probability model.

A deterministic, explainable heuristic (not a trained model). Five
independently bounded components add up to a 0-100 default probability:

    DPD acceleration    30
    Payment pattern     25
    Risk score          20
    Sector risk         15  (10 x sector multiplier)
    NPA status          10

Every component also yields a human-readable description so the dashboard
can show why a loan scored the way it did.
"""

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, FrozenSet, Mapping, Optional, Sequence, Tuple

from portfolio_risk.config import settings
from portfolio_risk.domain.models import (
    DefaultPrediction,
    PredictionFactor,
    PredictionInput,
    RecommendedAction,
    RepaymentSnapshot,
    RiskLevel,
)

DPD_WEIGHT = 30
PAYMENT_PATTERN_WEIGHT = 25
RISK_SCORE_WEIGHT = 20
SECTOR_WEIGHT = 15
NPA_WEIGHT = 10

SECTOR_BASE_SCORE = 10
BASE_CONFIDENCE = 50
MAX_CONFIDENCE = 95


@dataclass(frozen=True)
class ComponentScore:
    score: int
    description: str
    increases_risk: bool
    accelerating: bool = False


# (min DPD, points when accelerating, points otherwise, accelerating text, steady text)
DPD_TIERS: Tuple[Tuple[int, int, int, str, str], ...] = (
    (90, 30, 28, "Critically overdue & accelerating", "Critically overdue (90+ DPD)"),
    (60, 22, 20, "Severely overdue & worsening", "Severely overdue (60+ DPD)"),
    (30, 15, 12, "Early delinquency & worsening", "Early delinquency (30+ DPD)"),
)

# Used when there are fewer than 3 repayments to read a trend from
STATIC_DPD_TIERS: Tuple[Tuple[int, int, str], ...] = (
    (90, 30, "90+ DPD"),
    (60, 22, "60+ DPD"),
    (30, 15, "30+ DPD"),
)

# (min missed rate %, points, description or None for the rate itself)
MISSED_RATE_TIERS: Tuple[Tuple[float, int, Optional[str]], ...] = (
    (40, 22, None),
    (25, 15, None),
    (10, 8, "Occasional missed payments"),
)

# (min risk score, points, description)
RISK_SCORE_TIERS: Tuple[Tuple[float, int, str], ...] = (
    (80, 20, "Very high risk score (80+)"),
    (65, 15, "High risk score (65-79)"),
    (50, 10, "Elevated risk score (50-64)"),
    (35, 5, "Moderate risk score (35-49)"),
)

# (min repayment count, confidence bonus); first match wins
HISTORY_CONFIDENCE_TIERS: Tuple[Tuple[int, int], ...] = (
    (12, 30),
    (6, 20),
    (3, 10),
)

ACTION_LABELS = {
    RecommendedAction.URGENT_CONTACT: "Urgent Contact Required",
    RecommendedAction.RESTRUCTURE: "Consider Restructuring",
    RecommendedAction.LEGAL_ACTION: "Legal Action Recommended",
    RecommendedAction.ENHANCED_MONITORING: "Enhanced Monitoring",
    RecommendedAction.ROUTINE_MONITORING: "Routine Monitoring",
}


def _dpd(snapshot: RepaymentSnapshot) -> int:
    return snapshot.dpd or 0


def is_dpd_accelerating(repayments: Sequence[RepaymentSnapshot]) -> bool:
    """True when the last 3 DPD readings are strictly increasing"""
    if len(repayments) < 3:
        return False
    first, second, third = (_dpd(r) for r in repayments[-3:])
    return third > second > first


def consecutive_missed_payments(repayments: Sequence[RepaymentSnapshot]) -> int:
    """Length of the unpaid run ending at the most recent repayment"""
    # Trailing run only, unlike the dashboard which counts unpaid among the last 3
    count = 0
    for snapshot in reversed(repayments):
        if snapshot.payment_date is not None:
            break
        count += 1
    return count


def missed_payment_rate(missed_payments: int, total_payments: int) -> float:
    return missed_payments / total_payments * 100 if total_payments > 0 else 0.0


def dpd_acceleration_score(
    repayments: Sequence[RepaymentSnapshot], current_dpd: int
) -> ComponentScore:
    """DPD tier (0-30), bumped when the last three readings are worsening"""
    if len(repayments) < 3:
        for min_dpd, points, description in STATIC_DPD_TIERS:
            if current_dpd >= min_dpd:
                return ComponentScore(points, description, True)
        return ComponentScore(0, "Current on payments", False)

    accelerating = is_dpd_accelerating(repayments)
    for min_dpd, accelerating_points, steady_points, accelerating_text, steady_text in DPD_TIERS:
        if current_dpd >= min_dpd:
            if accelerating:
                return ComponentScore(accelerating_points, accelerating_text, True, accelerating=True)
            return ComponentScore(steady_points, steady_text, True)

    if accelerating and current_dpd > 0:
        return ComponentScore(8, "Showing early signs of stress", True, accelerating=True)

    return ComponentScore(0, "Stable payment performance", False)


def payment_pattern_score(
    repayments: Sequence[RepaymentSnapshot], missed_payments: int, total_payments: int
) -> ComponentScore:
    """Missed-payment behaviour (0-25); a loan with no history at all scores 15"""
    if total_payments == 0:
        return ComponentScore(15, "New loan - no payment history", True)

    consecutive = consecutive_missed_payments(repayments)
    if consecutive >= 3:
        return ComponentScore(25, f"{consecutive} consecutive missed payments", True)
    if consecutive == 2:
        return ComponentScore(20, "2 consecutive missed payments", True)

    missed_rate = missed_payment_rate(missed_payments, total_payments)
    for min_rate, points, description in MISSED_RATE_TIERS:
        if missed_rate >= min_rate:
            return ComponentScore(points, description or f"{missed_rate:.0f}% missed payment rate", True)

    return ComponentScore(0, "Consistent payment history", False)


def risk_trajectory_score(risk_score: float) -> ComponentScore:
    for min_score, points, description in RISK_SCORE_TIERS:
        if risk_score >= min_score:
            return ComponentScore(points, description, True)
    return ComponentScore(0, "Low risk score (<35)", False)


def _normalize_sector(sector: str) -> str:
    return sector.strip().replace("_", " ").casefold()


@lru_cache(maxsize=8)
def _normalized_multipliers(items: FrozenSet[Tuple[str, float]]) -> Dict[str, float]:
    return {_normalize_sector(name): value for name, value in items}


def sector_multiplier(sector: str, multipliers: Optional[Mapping[str, float]] = None) -> float:
    """Volatility multiplier for a sector label, 1.0 when the sector is not listed"""
    table = settings.sector_risk_multipliers if multipliers is None else multipliers
    return _normalized_multipliers(frozenset(table.items())).get(_normalize_sector(sector), 1.0)


def sector_risk_score(sector: str, multipliers: Optional[Mapping[str, float]] = None) -> ComponentScore:
    multiplier = sector_multiplier(sector, multipliers)
    # Half-up rounding: 10 x 1.25 scores 13, not 12
    score = min(SECTOR_WEIGHT, math.floor(SECTOR_BASE_SCORE * multiplier + 0.5))

    if multiplier > 1.2:
        return ComponentScore(score, f"High-risk sector ({sector})", True)
    if multiplier > 1.0:
        return ComponentScore(score, f"Moderate-risk sector ({sector})", True)
    return ComponentScore(score, f"Stable sector ({sector})", False)


def npa_score(npa_status: bool) -> ComponentScore:
    if npa_status:
        return ComponentScore(NPA_WEIGHT, "Already classified as NPA", True)
    return ComponentScore(0, "Not classified as NPA", False)


def risk_level(probability: float) -> RiskLevel:
    if probability >= 70:
        return RiskLevel.HIGH
    if probability >= 40:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


ActionRule = Tuple[Callable[[float, int, bool], bool], RecommendedAction]

# Evaluated in order, first match wins
ACTION_RULES: Tuple[ActionRule, ...] = (
    (lambda p, dpd, npa: npa or p >= 80, RecommendedAction.LEGAL_ACTION),
    (lambda p, dpd, npa: p >= 70 or dpd >= 90, RecommendedAction.URGENT_CONTACT),
    (lambda p, dpd, npa: p >= 50 or dpd >= 60, RecommendedAction.RESTRUCTURE),
    (lambda p, dpd, npa: p >= 30 or dpd >= 30, RecommendedAction.ENHANCED_MONITORING),
)


def recommended_action(probability: float, current_dpd: int, npa_status: bool) -> RecommendedAction:
    for matches, action in ACTION_RULES:
        if matches(probability, current_dpd, npa_status):
            return action
    return RecommendedAction.ROUTINE_MONITORING


def action_label(action: RecommendedAction) -> str:
    return ACTION_LABELS[action]


def early_warnings(loan: PredictionInput) -> list[str]:
    """Independent warning signals; several can fire for the same loan"""
    warnings = []

    if loan.current_dpd >= 90:
        warnings.append("Critical: 90+ days past due")
    elif loan.current_dpd >= 60:
        warnings.append("Severe: 60+ days past due")
    elif loan.current_dpd >= 30:
        warnings.append("Early warning: 30+ days past due")

    consecutive = consecutive_missed_payments(loan.repayments)
    if consecutive >= 2:
        warnings.append(f"{consecutive} consecutive missed payments")

    if loan.risk_score >= 80:
        warnings.append("Very high risk score")

    if loan.npa_status:
        warnings.append("Classified as Non-Performing Asset")

    missed_rate = missed_payment_rate(loan.missed_payments, loan.total_payments)
    if missed_rate >= 30:
        warnings.append(f"{missed_rate:.0f}% payment default rate")

    return warnings


def prediction_confidence(repayments: Sequence[RepaymentSnapshot]) -> int:
    """Confidence (50-95) grows with history length and data completeness"""
    confidence = BASE_CONFIDENCE

    for min_count, bonus in HISTORY_CONFIDENCE_TIERS:
        if len(repayments) >= min_count:
            confidence += bonus
            break

    if all(r.dpd is not None and r.amount_paid is not None for r in repayments):
        confidence += 20

    return min(confidence, MAX_CONFIDENCE)


def predict_default(
    loan: PredictionInput, multipliers: Optional[Mapping[str, float]] = None
) -> DefaultPrediction:
    """
    Main entry point: default probability, confidence, drivers and next step for one loan.

    Never raises; absent history and zero counts score as neutral.
    """
    dpd_component = dpd_acceleration_score(loan.repayments, loan.current_dpd)
    payment_component = payment_pattern_score(loan.repayments, loan.missed_payments, loan.total_payments)
    risk_component = risk_trajectory_score(loan.risk_score)
    sector_component = sector_risk_score(loan.sector, multipliers)
    npa_component = npa_score(loan.npa_status)

    components = (
        ("DPD Status", DPD_WEIGHT, dpd_component),
        ("Payment Pattern", PAYMENT_PATTERN_WEIGHT, payment_component),
        ("Risk Score", RISK_SCORE_WEIGHT, risk_component),
        ("Sector Risk", SECTOR_WEIGHT, sector_component),
        ("NPA Status", NPA_WEIGHT, npa_component),
    )

    probability = min(sum(component.score for _, _, component in components), 100)

    return DefaultPrediction(
        loan_id=loan.loan_id,
        borrower_name=loan.borrower_name,
        outstanding_amount=loan.outstanding_amount,
        sector=loan.sector,
        default_probability=round(float(probability), 1),
        confidence=prediction_confidence(loan.repayments),
        risk_level=risk_level(probability),
        factors=[
            PredictionFactor(
                name=name,
                description=component.description,
                weight=weight,
                increases_risk=component.increases_risk,
            )
            for name, weight, component in components
        ],
        warnings=early_warnings(loan),
        recommended_action=recommended_action(probability, loan.current_dpd, loan.npa_status),
        dpd_accelerating=dpd_component.accelerating,
    )
