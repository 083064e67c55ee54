"""Derive portfolio-level metric snapshots and model inputs from loan records"""

from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from portfolio_risk.domain.models import (
    DefaultPrediction,
    EarlyWarningCounts,
    HealthScoreInput,
    Loan,
    LoanStatus,
    PaymentStatus,
    PortfolioMetrics,
    PredictionInput,
    PredictionSummary,
    RepaymentSnapshot,
    RiskBucket,
    RiskCategory,
    RiskLevel,
    SectorShare,
    WeeklyChanges,
)

TOP_RISKS = 10
SECTOR_STRESS_MIN_LOANS = 3


def _percentage(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def _par_loans(loans: Sequence[Loan], min_dpd: int) -> List[Loan]:
    """Active loans whose latest repayment is at least `min_dpd` days past due"""
    return [
        loan
        for loan in loans
        if loan.status == LoanStatus.ACTIVE
        and loan.latest_repayment is not None
        and loan.current_dpd >= min_dpd
    ]


def collection_efficiency(loans: Sequence[Loan]) -> float:
    """Paid EMIs as % of all scheduled EMIs"""
    repayments = [r for loan in loans for r in loan.repayments]
    paid = sum(1 for r in repayments if r.payment_status == PaymentStatus.PAID)
    return _percentage(paid, len(repayments))


def _assessed_loans(loans: Sequence[Loan]) -> List[Loan]:
    return [loan for loan in loans if loan.current_assessment is not None]


def _average_risk_score(loans: Sequence[Loan]) -> float:
    assessed = _assessed_loans(loans)
    if not assessed:
        return 0.0
    return sum(loan.current_risk_score for loan in assessed) / len(assessed)


def _high_risk_count(loans: Sequence[Loan]) -> int:
    return sum(
        1
        for loan in _assessed_loans(loans)
        if loan.current_assessment.risk_category == RiskCategory.HIGH
    )


def health_score_input(loans: Sequence[Loan]) -> HealthScoreInput:
    """
    Build the health score input from a portfolio snapshot.

    - Gross NPA rate is by exposure
    - PAR30 rate is over ACTIVE loans only
    - Average DPD is over ACTIVE loans that are currently overdue
    """
    total_exposure = sum(loan.outstanding_amount for loan in loans)
    npa_exposure = sum(loan.outstanding_amount for loan in loans if loan.is_npa)

    active_loans = [loan for loan in loans if loan.status == LoanStatus.ACTIVE]
    par30_loans = _par_loans(loans, 30)

    overdue_dpds = [loan.current_dpd for loan in active_loans if loan.current_dpd > 0]
    avg_dpd = sum(overdue_dpds) / len(overdue_dpds) if overdue_dpds else 0.0

    repayments = [r for loan in loans for r in loan.repayments]
    successful = sum(1 for r in repayments if r.payment_status == PaymentStatus.PAID)

    return HealthScoreInput(
        gross_npa_rate=_percentage(npa_exposure, total_exposure),
        collection_efficiency=_percentage(successful, len(repayments)),
        avg_risk_score=_average_risk_score(loans),
        high_risk_count=_high_risk_count(loans),
        total_loans=len(loans),
        par30_rate=_percentage(len(par30_loans), len(active_loans)),
        avg_dpd=avg_dpd,
        npa_exposure=npa_exposure,
        total_exposure=total_exposure,
        successful_repayments=successful,
        total_repayments=len(repayments),
        par30_count=len(par30_loans),
    )


def sector_shares(loans: Sequence[Loan]) -> List[SectorShare]:
    """Per-sector loan count and exposure share, largest exposure first"""
    total_exposure = sum(loan.outstanding_amount for loan in loans)
    counts: Dict[str, int] = defaultdict(int)
    exposures: Dict[str, float] = defaultdict(float)

    for loan in loans:
        counts[loan.sector.label] += 1
        exposures[loan.sector.label] += loan.outstanding_amount

    shares = [
        SectorShare(
            sector=sector,
            count=counts[sector],
            exposure=exposure,
            percentage=round(_percentage(exposure, total_exposure), 1),
        )
        for sector, exposure in exposures.items()
    ]
    shares.sort(key=lambda s: s.exposure, reverse=True)
    return shares


def portfolio_metrics(
    loans: Sequence[Loan], weekly_changes: Optional[WeeklyChanges] = None
) -> PortfolioMetrics:
    """Snapshot consumed by the smart action generator"""
    npa_loans = [loan for loan in loans if loan.is_npa]
    par90_loans = _par_loans(loans, 90)

    overdue_amount = sum(
        r.emi_amount
        for loan in loans
        for r in loan.repayments
        if r.payment_status in (PaymentStatus.MISSED, PaymentStatus.DELAYED)
    )

    return PortfolioMetrics(
        total_loans=len(loans),
        npa_loans=len(npa_loans),
        total_exposure=sum(loan.outstanding_amount for loan in loans),
        npa_exposure=sum(loan.outstanding_amount for loan in npa_loans),
        high_risk_count=_high_risk_count(loans),
        avg_risk_score=_average_risk_score(loans),
        par30_count=len(_par_loans(loans, 30)),
        par60_count=len(_par_loans(loans, 60)),
        par90_count=len(par90_loans),
        par90_exposure=sum(loan.outstanding_amount for loan in par90_loans),
        collection_efficiency=collection_efficiency(loans),
        overdue_amount=overdue_amount,
        sector_concentration=sector_shares(loans),
        weekly_changes=weekly_changes,
    )


def prediction_input(loan: Loan) -> PredictionInput:
    """Flatten a loan and its repayment history for the default probability model"""
    repayments = loan.repayments_by_due_date()

    return PredictionInput(
        loan_id=loan.id,
        borrower_name=loan.customer.name,
        loan_amount=loan.loan_amount,
        outstanding_amount=loan.outstanding_amount,
        sector=loan.sector.label,
        risk_score=loan.current_risk_score,
        repayments=tuple(
            RepaymentSnapshot(
                dpd=r.dpd,
                amount_paid=r.payment_amount or 0.0,
                expected_amount=r.emi_amount,
                payment_date=r.payment_date,
            )
            for r in repayments
        ),
        current_dpd=loan.current_dpd,
        npa_status=loan.is_npa,
        missed_payments=sum(1 for r in repayments if r.payment_status == PaymentStatus.MISSED),
        total_payments=len(repayments),
    )


def summarize_predictions(predictions: Sequence[DefaultPrediction]) -> PredictionSummary:
    """Risk-level distribution, exposure at risk, top risks and early-warning counts"""
    total = len(predictions)
    by_level: Dict[RiskLevel, List[DefaultPrediction]] = {level: [] for level in RiskLevel}
    for prediction in predictions:
        by_level[prediction.risk_level].append(prediction)

    exposure = {
        level: sum(p.outstanding_amount for p in group) for level, group in by_level.items()
    }
    total_exposure = sum(exposure.values())

    high_risk = by_level[RiskLevel.HIGH]
    high_risk_by_sector: Dict[str, int] = defaultdict(int)
    for prediction in high_risk:
        high_risk_by_sector[prediction.sector] += 1

    early_warnings = EarlyWarningCounts(
        consecutive_missed_payments=sum(
            1
            for p in predictions
            if p.default_probability >= 50 and any("consecutive" in w for w in p.warnings)
        ),
        dpd_acceleration=sum(
            1 for p in predictions if p.dpd_accelerating and p.default_probability >= 40
        ),
        risk_score_deterioration=sum(
            1
            for p in predictions
            if any(f.name == "Risk Score" and f.increases_risk for f in p.factors)
        ),
        sector_stress=sum(
            1 for count in high_risk_by_sector.values() if count >= SECTOR_STRESS_MIN_LOANS
        ),
    )

    return PredictionSummary(
        total_loans=total,
        avg_default_probability=round(
            sum(p.default_probability for p in predictions) / total if total else 0.0, 1
        ),
        avg_confidence=round(sum(p.confidence for p in predictions) / total) if total else 0,
        high_risk_exposure_percentage=round(
            _percentage(exposure[RiskLevel.HIGH], total_exposure), 1
        ),
        risk_distribution={
            level: RiskBucket(
                count=len(group),
                exposure=round(exposure[level], 2),
                percentage=round(_percentage(len(group), total), 1),
            )
            for level, group in by_level.items()
        },
        top_risks=sorted(predictions, key=lambda p: p.default_probability, reverse=True)[:TOP_RISKS],
        early_warnings=early_warnings,
    )
