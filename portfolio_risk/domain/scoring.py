"""Loan risk scoring engine - composite 0-100 risk score per loan"""

from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence

from portfolio_risk.domain.concentration import (
    GEOGRAPHY_CONCENTRATION_THRESHOLD,
    SECTOR_CONCENTRATION_THRESHOLD,
)
from portfolio_risk.domain.delinquency import delinquency_risk
from portfolio_risk.domain.models import (
    Customer,
    Loan,
    LoanRiskScore,
    LoanStatus,
    PortfolioContext,
    PortfolioStats,
    RiskCategory,
    RiskFactorScores,
    RiskFlags,
    Sector,
)
from portfolio_risk.utils.date_utils import months_between

# Component weights
DELINQUENCY_WEIGHT = 0.4
CREDIT_PROFILE_WEIGHT = 0.3
LOAN_CHARACTERISTICS_WEIGHT = 0.2
CONCENTRATION_WEIGHT = 0.1

# Category upper bounds (inclusive)
LOW_RISK_MAX = 35
MEDIUM_RISK_MAX = 65

# Base sector risk for loan characteristics
SECTOR_BASE_RISK: Dict[Sector, int] = {
    Sector.IT: 10,
    Sector.HEALTHCARE: 15,
    Sector.MANUFACTURING: 30,
    Sector.RETAIL: 35,
    Sector.REAL_ESTATE: 40,
    Sector.AGRICULTURE: 45,
}


def categorize_risk(score: float) -> RiskCategory:
    if score <= LOW_RISK_MAX:
        return RiskCategory.LOW
    if score <= MEDIUM_RISK_MAX:
        return RiskCategory.MEDIUM
    return RiskCategory.HIGH


def credit_profile_score(customer: Customer) -> float:
    """
    Borrower credit profile risk (0-100).

    - 60%: credit score tier (750+ excellent ... <600 very poor)
    - 40%: debt-to-income tier (>60% very high ... <=30% very low)
    """
    credit_score = customer.credit_score
    if credit_score >= 750:
        credit_score_risk = 10
    elif credit_score >= 700:
        credit_score_risk = 25
    elif credit_score >= 650:
        credit_score_risk = 40
    elif credit_score >= 600:
        credit_score_risk = 60
    else:
        credit_score_risk = 85

    dti = customer.dti_ratio
    if dti > 60:
        dti_risk = 80
    elif dti > 50:
        dti_risk = 60
    elif dti > 40:
        dti_risk = 40
    elif dti > 30:
        dti_risk = 20
    else:
        dti_risk = 10

    return credit_score_risk * 0.6 + dti_risk * 0.4


def loan_characteristics_score(loan: Loan, delinquency_score: float, as_of: date) -> float:
    """
    Loan-level risk (0-100) from amortisation progress, sector, age and status.

    A loan older than 12 months with a clean delinquency record earns a
    10 point discount; NPA and restructured loans carry fixed penalties.
    """
    outstanding_ratio = loan.outstanding_amount / loan.loan_amount if loan.loan_amount > 0 else 0.0
    score = outstanding_ratio * 30 + SECTOR_BASE_RISK[loan.sector]

    if months_between(loan.disbursement_date, as_of) > 12 and delinquency_score < 20:
        score -= 10

    if loan.status == LoanStatus.NPA:
        score += 50
    elif loan.status == LoanStatus.RESTRUCTURED:
        score += 30

    return min(100.0, max(0.0, score))


def _exposure_share(exposure: float, context: PortfolioContext) -> float:
    if context.total_exposure <= 0:
        return 0.0
    return exposure / context.total_exposure * 100


def loan_risk_score(
    loan: Loan,
    context: PortfolioContext,
    as_of: Optional[date] = None,
) -> LoanRiskScore:
    """
    Composite risk score for one loan.

    Weights:
    - 40%: Delinquency (repayment history and DPD)
    - 30%: Credit profile (credit score, DTI)
    - 20%: Loan characteristics (outstanding ratio, sector, age, status)
    - 10%: Concentration (loan's sector and geography share of the book)
    """
    as_of = as_of or date.today()
    delinquency = delinquency_risk(loan.repayments)
    credit_profile = credit_profile_score(loan.customer)
    characteristics = loan_characteristics_score(loan, delinquency.score, as_of)

    sector_share = _exposure_share(context.sector_exposure.get(loan.sector, 0.0), context)
    geography_share = _exposure_share(
        context.geography_exposure.get(loan.customer.geography, 0.0), context
    )

    concentration = 0
    if sector_share > SECTOR_CONCENTRATION_THRESHOLD:
        concentration += 50
    elif sector_share > 25:
        concentration += 30

    if geography_share > GEOGRAPHY_CONCENTRATION_THRESHOLD:
        concentration += 30
    elif geography_share > 30:
        concentration += 20

    raw_score = (
        delinquency.score * DELINQUENCY_WEIGHT
        + credit_profile * CREDIT_PROFILE_WEIGHT
        + characteristics * LOAN_CHARACTERISTICS_WEIGHT
        + concentration * CONCENTRATION_WEIGHT
    )
    risk_score = round(raw_score, 1)
    risk_category = categorize_risk(risk_score)

    flags = RiskFlags(
        high_dpd=delinquency.max_dpd > 15,
        sector_concentration=sector_share > SECTOR_CONCENTRATION_THRESHOLD,
        geography_risk=geography_share > GEOGRAPHY_CONCENTRATION_THRESHOLD,
        high_dti=loan.customer.dti_ratio > 50,
    )

    recommendations: List[str] = []
    if risk_score > 70:
        recommendations.append("URGENT: Immediate follow-up required")
    if delinquency.max_dpd > 30:
        recommendations.append("Contact customer for payment arrangement")
    if delinquency.consecutive_delays >= 2:
        recommendations.append("Review repayment capacity with customer")
    if loan.customer.credit_score < 600:
        recommendations.append("Consider requiring additional collateral")
    if loan.customer.dti_ratio > 60:
        recommendations.append("High DTI - assess income stability")
    if loan.status == LoanStatus.RESTRUCTURED:
        recommendations.append("Monitor restructured loan closely")
    if flags.sector_concentration:
        recommendations.append(f"Portfolio over-exposed to {loan.sector.value} sector")
    if not recommendations and risk_category == RiskCategory.LOW:
        recommendations.append("Continue routine monitoring")

    return LoanRiskScore(
        loan_id=loan.id,
        risk_score=risk_score,
        risk_category=risk_category,
        factors=RiskFactorScores(
            delinquency_score=round(delinquency.score, 1),
            credit_profile_score=round(credit_profile, 1),
            loan_characteristics_score=round(characteristics, 1),
            concentration_score=round(concentration, 1),
        ),
        flags=flags,
        recommendations=recommendations,
    )


def portfolio_context(loans: Sequence[Loan]) -> PortfolioContext:
    """Total, per-sector and per-geography outstanding exposure"""
    sector_exposure: Dict[Sector, float] = defaultdict(float)
    geography_exposure: Dict[str, float] = defaultdict(float)

    for loan in loans:
        sector_exposure[loan.sector] += loan.outstanding_amount
        geography_exposure[loan.customer.geography] += loan.outstanding_amount

    return PortfolioContext(
        total_loans=len(loans),
        total_exposure=sum(loan.outstanding_amount for loan in loans),
        sector_exposure=dict(sector_exposure),
        geography_exposure=dict(geography_exposure),
    )


def score_portfolio(loans: Sequence[Loan], as_of: Optional[date] = None) -> List[LoanRiskScore]:
    """Score every loan against the exposure context of the whole set"""
    context = portfolio_context(loans)
    return [loan_risk_score(loan, context, as_of) for loan in loans]


def portfolio_stats(loans: Sequence[Loan]) -> PortfolioStats:
    """Status counts, NPA rate by count, risk category mix and exposure"""
    total_loans = len(loans)
    npa_loans = sum(1 for loan in loans if loan.is_npa)

    categories = [
        loan.current_assessment.risk_category if loan.current_assessment else None
        for loan in loans
    ]
    high_risk_exposure = sum(
        loan.outstanding_amount
        for loan, category in zip(loans, categories)
        if category == RiskCategory.HIGH
    )

    avg_risk_score = (
        sum(loan.current_risk_score for loan in loans) / total_loans if total_loans > 0 else 0.0
    )
    npa_rate = npa_loans / total_loans * 100 if total_loans > 0 else 0.0

    return PortfolioStats(
        total_loans=total_loans,
        active_loans=sum(1 for loan in loans if loan.status == LoanStatus.ACTIVE),
        npa_loans=npa_loans,
        npa_rate=round(npa_rate, 1),
        avg_risk_score=round(avg_risk_score, 1),
        high_risk_count=categories.count(RiskCategory.HIGH),
        medium_risk_count=categories.count(RiskCategory.MEDIUM),
        low_risk_count=categories.count(RiskCategory.LOW),
        total_exposure=round(sum(loan.outstanding_amount for loan in loans), 2),
        at_risk_exposure=round(high_risk_exposure, 2),
    )
