"""
Concentration risk analysis.

Measures how diversified the loan book is across sectors, geographies and
individual customers. Shares are always taken against the outstanding
exposure of the loans passed in, so a filtered subset is analysed on its own
terms rather than against the whole book.
"""

from collections import defaultdict
from typing import Callable, Dict, Hashable, Iterable, List, Sequence, TypeVar

from portfolio_risk.domain.models import (
    ConcentrationResult,
    ConcentrationScore,
    CustomerConcentrationResult,
    GeographicConcentrationResult,
    HHIBand,
    Loan,
)

# Limits as % of portfolio outstanding
SECTOR_CONCENTRATION_THRESHOLD = 30
GEOGRAPHY_CONCENTRATION_THRESHOLD = 35
CUSTOMER_CONCENTRATION_THRESHOLD = 10
EXTREME_SECTOR_CONCENTRATION = 40
CUSTOMER_MIN_SHARE = 1  # customers below this share are not reported
AT_RISK_SCORE = 60

# Portfolio score penalties
SECTOR_PENALTY = 30
GEOGRAPHY_PENALTY = 25
CUSTOMER_PENALTY = 20
EXTREME_SECTOR_PENALTY = 15

# HHI bands (shares expressed in percent, so HHI ranges 0-10,000)
HHI_MODERATE = 1500
HHI_HIGH = 2500

K = TypeVar("K", bound=Hashable)


def _group_by(loans: Iterable[Loan], key: Callable[[Loan], K]) -> Dict[K, List[Loan]]:
    groups: Dict[K, List[Loan]] = defaultdict(list)
    for loan in loans:
        groups[key(loan)].append(loan)
    return groups


def _exposure(loans: Iterable[Loan]) -> float:
    return sum(loan.outstanding_amount for loan in loans)


def _share(exposure: float, total_exposure: float) -> float:
    """Percentage of total exposure, 0 when the portfolio has no exposure"""
    return exposure / total_exposure * 100 if total_exposure > 0 else 0.0


def _shares(loans: Sequence[Loan], key: Callable[[Loan], Hashable]) -> List[float]:
    """Unrounded percentage share of every group along one dimension"""
    total_exposure = _exposure(loans)
    return [_share(_exposure(group), total_exposure) for group in _group_by(loans, key).values()]


def sector_concentration(loans: Sequence[Loan]) -> List[ConcentrationResult]:
    """Exposure, share, average risk and at-risk count per sector, largest first"""
    if not loans:
        return []

    total_exposure = _exposure(loans)
    results = []

    for sector, sector_loans in _group_by(loans, lambda loan: loan.sector).items():
        exposure = _exposure(sector_loans)
        percentage = _share(exposure, total_exposure)
        risk_scores = [loan.current_risk_score for loan in sector_loans]

        results.append(
            ConcentrationResult(
                sector=sector,
                total_exposure=round(exposure, 2),
                loan_count=len(sector_loans),
                percentage_of_portfolio=round(percentage, 1),
                avg_risk_score=round(sum(risk_scores) / len(risk_scores), 1),
                at_risk_loans=sum(1 for score in risk_scores if score > AT_RISK_SCORE),
                flagged=percentage > SECTOR_CONCENTRATION_THRESHOLD,
            )
        )

    results.sort(key=lambda r: r.total_exposure, reverse=True)
    return results


def geographic_concentration(loans: Sequence[Loan]) -> List[GeographicConcentrationResult]:
    """Exposure, overdue exposure, share and average DPD per customer geography"""
    if not loans:
        return []

    total_exposure = _exposure(loans)
    results = []

    for geography, geo_loans in _group_by(loans, lambda loan: loan.customer.geography).items():
        exposure = _exposure(geo_loans)
        percentage = _share(exposure, total_exposure)
        overdue_exposure = _exposure(loan for loan in geo_loans if loan.current_dpd > 0)
        avg_dpd = sum(loan.current_dpd for loan in geo_loans) / len(geo_loans)

        results.append(
            GeographicConcentrationResult(
                geography=geography,
                total_exposure=round(exposure, 2),
                overdue_exposure=round(overdue_exposure, 2),
                loan_count=len(geo_loans),
                percentage_of_portfolio=round(percentage, 1),
                avg_dpd=round(avg_dpd, 1),
                flagged=percentage > GEOGRAPHY_CONCENTRATION_THRESHOLD,
            )
        )

    results.sort(key=lambda r: r.total_exposure, reverse=True)
    return results


def customer_concentration(loans: Sequence[Loan]) -> List[CustomerConcentrationResult]:
    """Single-name exposures of at least 1% of the portfolio"""
    if not loans:
        return []

    total_exposure = _exposure(loans)
    results = []

    for customer_id, customer_loans in _group_by(loans, lambda loan: loan.customer_id).items():
        exposure = _exposure(customer_loans)
        percentage = _share(exposure, total_exposure)

        if percentage < CUSTOMER_MIN_SHARE:
            continue

        results.append(
            CustomerConcentrationResult(
                customer_id=customer_id,
                customer_name=customer_loans[0].customer.name,
                total_exposure=round(exposure, 2),
                loan_count=len(customer_loans),
                percentage_of_portfolio=round(percentage, 1),
                flagged=percentage > CUSTOMER_CONCENTRATION_THRESHOLD,
            )
        )

    results.sort(key=lambda r: r.total_exposure, reverse=True)
    return results


def herfindahl_index(percentages: Iterable[float]) -> float:
    """Sum of squared percentage shares (10,000 = a single group holds everything)"""
    return sum(share ** 2 for share in percentages)


def classify_hhi(hhi: float) -> HHIBand:
    if hhi > HHI_HIGH:
        return HHIBand.HIGH
    if hhi >= HHI_MODERATE:
        return HHIBand.MODERATE
    return HHIBand.UNCONCENTRATED


def portfolio_concentration_score(loans: Sequence[Loan]) -> ConcentrationScore:
    """
    Additive concentration score, 0 (diversified) to 100 (concentrated).

    Penalties:
    - 30: any sector above 30% of exposure
    - 25: any geography above 35%
    - 20: any customer above 10%
    - 15: largest sector above 40%
    """
    if not loans:
        return ConcentrationScore(score=0, risks=[])

    score = 0
    risks: List[str] = []

    flagged_sectors = [s for s in sector_concentration(loans) if s.flagged]
    if flagged_sectors:
        score += SECTOR_PENALTY
        risks.append(
            f"{len(flagged_sectors)} sector(s) exceed {SECTOR_CONCENTRATION_THRESHOLD}% threshold"
        )

    flagged_geographies = [g for g in geographic_concentration(loans) if g.flagged]
    if flagged_geographies:
        score += GEOGRAPHY_PENALTY
        risks.append(
            f"{len(flagged_geographies)} geography(ies) exceed {GEOGRAPHY_CONCENTRATION_THRESHOLD}% threshold"
        )

    flagged_customers = [c for c in customer_concentration(loans) if c.flagged]
    if flagged_customers:
        score += CUSTOMER_PENALTY
        risks.append(
            f"{len(flagged_customers)} customer(s) exceed {CUSTOMER_CONCENTRATION_THRESHOLD}% threshold"
        )

    sector_shares = _shares(loans, lambda loan: loan.sector)
    geography_shares = _shares(loans, lambda loan: loan.customer.geography)
    customer_shares = _shares(loans, lambda loan: loan.customer_id)

    max_sector_share = max(sector_shares)
    if max_sector_share > EXTREME_SECTOR_CONCENTRATION:
        score += EXTREME_SECTOR_PENALTY
        risks.append(f"Extremely high sector concentration: {max_sector_share:.1f}%")

    sector_hhi = herfindahl_index(sector_shares)
    geography_hhi = herfindahl_index(geography_shares)
    customer_hhi = herfindahl_index(customer_shares)

    return ConcentrationScore(
        score=min(100, score),
        risks=risks,
        sector_hhi=round(sector_hhi, 1),
        geography_hhi=round(geography_hhi, 1),
        customer_hhi=round(customer_hhi, 1),
        sector_hhi_band=classify_hhi(sector_hhi),
        geography_hhi_band=classify_hhi(geography_hhi),
        customer_hhi_band=classify_hhi(customer_hhi),
    )
