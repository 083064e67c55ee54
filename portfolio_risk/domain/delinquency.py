"""Delinquency detection from a loan's repayment history"""

from typing import List, Sequence

from portfolio_risk.domain.models import (
    DelinquencyRiskResult,
    DelinquencyTrend,
    PaymentStatus,
    Repayment,
)

DPD_THRESHOLD = 15  # early warning
DPD_CRITICAL = 30
DPD_SEVERE = 60
ON_TIME_GRACE_DAYS = 3


def _by_due_date(repayments: Sequence[Repayment]) -> List[Repayment]:
    return sorted(repayments, key=lambda r: r.due_date)


def _longest_delay_streak(repayments: Sequence[Repayment]) -> int:
    longest = 0
    streak = 0
    for repayment in repayments:
        if repayment.dpd > 0:
            streak += 1
            longest = max(longest, streak)
        else:
            streak = 0
    return longest


def _base_score(max_dpd: int) -> tuple[int, str]:
    if max_dpd == 0:
        return 5, "Perfect payment history"
    if max_dpd <= 5:
        return 10, "Minor delays only"
    if max_dpd <= DPD_THRESHOLD:
        return 25, f"Occasional delays (max {max_dpd} days)"
    if max_dpd <= DPD_CRITICAL:
        return 50, f"Consistent delays (max {max_dpd} days)"
    if max_dpd <= DPD_SEVERE:
        return 75, f"Serious delinquency (max {max_dpd} days)"
    return 95, f"Critical delinquency (max {max_dpd} days)"


def delinquency_risk(repayments: Sequence[Repayment]) -> DelinquencyRiskResult:
    """
    Score delinquency risk (0-100) from repayment history.

    Scoring:
    - Base score from the worst DPD ever recorded (5 to 95)
    - +10 for 3+ consecutive delayed EMIs within the last 6
    - +5 when average DPD exceeds 10 days
    - +10 when any of the last 3 EMIs was partially paid

    Flagged when max DPD > 15 days or 2+ consecutive delays.
    """
    if not repayments:
        return DelinquencyRiskResult(
            score=0,
            flagged=False,
            max_dpd=0,
            avg_dpd=0.0,
            consecutive_delays=0,
            reason="No repayment history",
        )

    ordered = _by_due_date(repayments)
    max_dpd = max(r.dpd for r in ordered)
    avg_dpd = sum(r.dpd for r in ordered) / len(ordered)
    consecutive_delays = _longest_delay_streak(ordered[-6:])

    score, reason = _base_score(max_dpd)
    reasons = [reason]

    if consecutive_delays >= 3:
        score += 10
        reasons.append(f"{consecutive_delays} consecutive delayed payments")

    if avg_dpd > 10:
        score += 5
        reasons.append(f"High average DPD: {avg_dpd:.1f} days")

    partial_payments = sum(
        1
        for r in ordered[-3:]
        if r.payment_amount and r.payment_amount < r.emi_amount
    )
    if partial_payments > 0:
        score += 10
        reasons.append(f"{partial_payments} partial payments in last 3 EMIs")

    return DelinquencyRiskResult(
        score=min(100, score),
        flagged=max_dpd > DPD_THRESHOLD or consecutive_delays >= 2,
        max_dpd=max_dpd,
        avg_dpd=round(avg_dpd, 1),
        consecutive_delays=consecutive_delays,
        reason="; ".join(reasons),
    )


def delinquency_trend(repayments: Sequence[Repayment]) -> DelinquencyTrend:
    """Compare mean DPD of the last 3 EMIs with the 3 before them"""
    if len(repayments) < 4:
        return DelinquencyTrend.STABLE

    ordered = _by_due_date(repayments)
    recent = sum(r.dpd for r in ordered[-3:]) / 3
    previous = sum(r.dpd for r in ordered[-6:-3]) / 3

    if recent < previous * 0.7:
        return DelinquencyTrend.IMPROVING
    if recent > previous * 1.3:
        return DelinquencyTrend.WORSENING
    return DelinquencyTrend.STABLE


def has_missed_payments(repayments: Sequence[Repayment], months: int = 3) -> bool:
    """True if any of the most recent `months` EMIs was missed"""
    recent = sorted(repayments, key=lambda r: r.due_date, reverse=True)[:months]
    return any(r.payment_status == PaymentStatus.MISSED for r in recent)


def payment_consistency(repayments: Sequence[Repayment]) -> int:
    """Share of EMIs paid within the grace period (0-100, 50 without history)"""
    if not repayments:
        return 50

    on_time = sum(1 for r in repayments if r.dpd <= ON_TIME_GRACE_DAYS)
    return round(on_time / len(repayments) * 100)
