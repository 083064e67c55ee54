"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from portfolio_risk.domain.exceptions import InvalidRecordError


class Sector(str, Enum):
    """Industry sector a loan is booked against"""

    MANUFACTURING = "MANUFACTURING"
    RETAIL = "RETAIL"
    IT = "IT"
    HEALTHCARE = "HEALTHCARE"
    REAL_ESTATE = "REAL_ESTATE"
    AGRICULTURE = "AGRICULTURE"

    @property
    def label(self) -> str:
        """Display name, also the key into the sector risk multiplier table"""
        return _SECTOR_LABELS[self]


_SECTOR_LABELS = {
    Sector.MANUFACTURING: "Manufacturing",
    Sector.RETAIL: "Retail",
    Sector.IT: "Technology",
    Sector.HEALTHCARE: "Healthcare",
    Sector.REAL_ESTATE: "Real Estate",
    Sector.AGRICULTURE: "Agriculture",
}


class LoanStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    NPA = "NPA"
    RESTRUCTURED = "RESTRUCTURED"


class PaymentStatus(str, Enum):
    PAID = "PAID"
    PENDING = "PENDING"
    MISSED = "MISSED"
    DELAYED = "DELAYED"


class EmploymentStatus(str, Enum):
    SALARIED = "SALARIED"
    SELF_EMPLOYED = "SELF_EMPLOYED"
    BUSINESS = "BUSINESS"


class RiskCategory(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# ---------------------------------------------------------------------------
# Input records (owned by the data layer, never mutated here)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Customer:
    """Borrower profile"""

    id: str
    name: str
    geography: str  # free-text region label, e.g. "Mumbai"
    credit_score: int = 0
    monthly_income: float = 0.0
    employment_status: EmploymentStatus = EmploymentStatus.SALARIED
    dti_ratio: float = 0.0  # percentage


@dataclass(frozen=True)
class Repayment:
    """Scheduled EMI and its payment outcome"""

    loan_id: str
    due_date: date
    emi_amount: float
    payment_status: PaymentStatus
    dpd: int = 0
    payment_date: Optional[date] = None
    payment_amount: Optional[float] = None

    def __post_init__(self) -> None:
        if self.dpd < 0:
            raise InvalidRecordError(f"Repayment for loan {self.loan_id} has negative DPD: {self.dpd}")


@dataclass(frozen=True)
class RiskAssessment:
    """Point-in-time risk score for a loan"""

    loan_id: str
    risk_score: float  # 0-100
    risk_category: RiskCategory
    assessment_date: date
    flags: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    notes: str = ""


@dataclass(frozen=True)
class Loan:
    """Loan with its customer, repayment schedule and assessment history"""

    id: str
    customer: Customer
    loan_amount: float
    outstanding_amount: float
    interest_rate: float
    sector: Sector
    status: LoanStatus
    disbursement_date: date
    repayments: Tuple[Repayment, ...] = ()
    risk_assessments: Tuple[RiskAssessment, ...] = ()

    def __post_init__(self) -> None:
        if self.outstanding_amount < 0:
            raise InvalidRecordError(
                f"Loan {self.id} has negative outstanding amount: {self.outstanding_amount}"
            )

    @property
    def customer_id(self) -> str:
        return self.customer.id

    @property
    def is_npa(self) -> bool:
        return self.status == LoanStatus.NPA

    @property
    def latest_repayment(self) -> Optional[Repayment]:
        """Repayment with the latest due date"""
        if not self.repayments:
            return None
        return max(self.repayments, key=lambda r: r.due_date)

    @property
    def current_assessment(self) -> Optional[RiskAssessment]:
        """Most recent risk assessment"""
        if not self.risk_assessments:
            return None
        return max(self.risk_assessments, key=lambda a: a.assessment_date)

    @property
    def current_dpd(self) -> int:
        latest = self.latest_repayment
        return latest.dpd if latest else 0

    @property
    def current_risk_score(self) -> float:
        assessment = self.current_assessment
        return assessment.risk_score if assessment else 0.0

    def repayments_by_due_date(self) -> List[Repayment]:
        return sorted(self.repayments, key=lambda r: r.due_date)


# ---------------------------------------------------------------------------
# Concentration results
# ---------------------------------------------------------------------------


class HHIBand(str, Enum):
    """Herfindahl-Hirschman Index classification"""

    UNCONCENTRATED = "UNCONCENTRATED"  # < 1500
    MODERATE = "MODERATE"  # 1500 - 2500
    HIGH = "HIGH"  # > 2500


@dataclass
class ConcentrationResult:
    """Sector exposure and its share of the portfolio"""

    sector: Sector
    total_exposure: float
    loan_count: int
    percentage_of_portfolio: float
    avg_risk_score: float
    at_risk_loans: int
    flagged: bool


@dataclass
class GeographicConcentrationResult:
    """Geography exposure, overdue exposure and share of the portfolio"""

    geography: str
    total_exposure: float
    overdue_exposure: float
    loan_count: int
    percentage_of_portfolio: float
    avg_dpd: float
    flagged: bool


@dataclass
class CustomerConcentrationResult:
    """Single-name exposure"""

    customer_id: str
    customer_name: str
    total_exposure: float
    loan_count: int
    percentage_of_portfolio: float
    flagged: bool


@dataclass
class ConcentrationScore:
    """Overall concentration score, 0-100 (higher = more concentrated)"""

    score: int
    risks: List[str]
    sector_hhi: float = 0.0
    geography_hhi: float = 0.0
    customer_hhi: float = 0.0
    sector_hhi_band: HHIBand = HHIBand.UNCONCENTRATED
    geography_hhi_band: HHIBand = HHIBand.UNCONCENTRATED
    customer_hhi_band: HHIBand = HHIBand.UNCONCENTRATED


# ---------------------------------------------------------------------------
# Delinquency and loan risk scoring
# ---------------------------------------------------------------------------


class DelinquencyTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    WORSENING = "worsening"


@dataclass
class DelinquencyRiskResult:
    """Delinquency risk derived from repayment history"""

    score: int  # 0-100
    flagged: bool
    max_dpd: int
    avg_dpd: float
    consecutive_delays: int
    reason: str


@dataclass
class RiskFactorScores:
    """Component scores behind a loan's composite risk score"""

    delinquency_score: float
    credit_profile_score: float
    loan_characteristics_score: float
    concentration_score: float


@dataclass
class RiskFlags:
    high_dpd: bool
    sector_concentration: bool
    geography_risk: bool
    high_dti: bool


@dataclass
class LoanRiskScore:
    """Composite risk score for a single loan"""

    loan_id: str
    risk_score: float  # 0-100
    risk_category: RiskCategory
    factors: RiskFactorScores
    flags: RiskFlags
    recommendations: List[str]


@dataclass
class PortfolioContext:
    """Portfolio-wide exposure totals used to score concentration per loan"""

    total_loans: int
    total_exposure: float
    sector_exposure: Dict[Sector, float]
    geography_exposure: Dict[str, float]


@dataclass
class PortfolioStats:
    total_loans: int
    active_loans: int
    npa_loans: int
    npa_rate: float
    avg_risk_score: float
    high_risk_count: int
    medium_risk_count: int
    low_risk_count: int
    total_exposure: float
    at_risk_exposure: float


# ---------------------------------------------------------------------------
# Default probability
# ---------------------------------------------------------------------------


class RiskLevel(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RecommendedAction(str, Enum):
    LEGAL_ACTION = "legal_action"
    URGENT_CONTACT = "urgent_contact"
    RESTRUCTURE = "restructure"
    ENHANCED_MONITORING = "enhanced_monitoring"
    ROUTINE_MONITORING = "routine_monitoring"


@dataclass(frozen=True)
class RepaymentSnapshot:
    """Repayment as seen by the default probability model"""

    dpd: Optional[int]
    amount_paid: Optional[float]
    expected_amount: float
    payment_date: Optional[date]  # None = unpaid


@dataclass(frozen=True)
class PredictionInput:
    """Everything the default probability model needs for one loan"""

    loan_id: str
    borrower_name: str
    loan_amount: float
    outstanding_amount: float
    sector: str
    risk_score: float
    repayments: Tuple[RepaymentSnapshot, ...]  # oldest first
    current_dpd: int
    npa_status: bool
    missed_payments: int
    total_payments: int


@dataclass
class PredictionFactor:
    """One component's contribution to a default prediction"""

    name: str
    description: str
    weight: int  # maximum points this component can contribute
    increases_risk: bool


@dataclass
class DefaultPrediction:
    loan_id: str
    borrower_name: str
    outstanding_amount: float
    sector: str
    default_probability: float  # 0-100
    confidence: int  # 0-95
    risk_level: RiskLevel
    factors: List[PredictionFactor]
    warnings: List[str]
    recommended_action: RecommendedAction
    dpd_accelerating: bool = False


@dataclass
class RiskBucket:
    count: int
    exposure: float
    percentage: float


@dataclass
class EarlyWarningCounts:
    consecutive_missed_payments: int
    dpd_acceleration: int
    risk_score_deterioration: int
    sector_stress: int


@dataclass
class PredictionSummary:
    """Portfolio roll-up of default predictions"""

    total_loans: int
    avg_default_probability: float
    avg_confidence: int
    high_risk_exposure_percentage: float
    risk_distribution: Dict[RiskLevel, RiskBucket]
    top_risks: List[DefaultPrediction]
    early_warnings: EarlyWarningCounts


# ---------------------------------------------------------------------------
# Health score
# ---------------------------------------------------------------------------


class HealthGrade(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    CRITICAL = "Critical"


@dataclass
class HealthScoreInput:
    """Portfolio-level metrics feeding the health score"""

    gross_npa_rate: float  # percentage, e.g. 5.2
    collection_efficiency: float  # percentage
    avg_risk_score: float  # 0-100
    high_risk_count: int
    total_loans: int
    par30_rate: float  # percentage
    avg_dpd: float
    npa_exposure: float = 0.0
    total_exposure: float = 0.0
    successful_repayments: int = 0
    total_repayments: int = 0
    par30_count: int = 0


@dataclass
class HealthComponents:
    npa_score: float
    collection_score: float
    risk_score: float
    dpd_score: float


@dataclass(frozen=True)
class HealthWeights:
    npa_weight: float = 0.30
    collection_weight: float = 0.30
    risk_weight: float = 0.20
    dpd_weight: float = 0.20


@dataclass
class HealthScoreBreakdown:
    overall: float  # 0-100
    components: HealthComponents
    weights: HealthWeights
    grade: HealthGrade
    trend: float  # change against the previous score


# ---------------------------------------------------------------------------
# Smart actions
# ---------------------------------------------------------------------------


class ActionPriority(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANKS[self]


_PRIORITY_RANKS = {
    ActionPriority.CRITICAL: 4,
    ActionPriority.HIGH: 3,
    ActionPriority.MEDIUM: 2,
    ActionPriority.LOW: 1,
}


class ActionCategory(str, Enum):
    DELINQUENCY = "delinquency"
    RISK = "risk"
    COLLECTION = "collection"
    NPA = "npa"
    CONCENTRATION = "concentration"
    MONITORING = "monitoring"


@dataclass
class SectorShare:
    """Sector slice of the portfolio as consumed by the action generator"""

    sector: str
    count: int
    exposure: float
    percentage: float


@dataclass
class WeeklyChanges:
    npa_increase: float = 0.0
    risk_score_change: float = 0.0
    dpd_increase: float = 0.0


@dataclass
class PortfolioMetrics:
    """Flat portfolio snapshot consumed by the smart action generator"""

    total_loans: int
    npa_loans: int
    total_exposure: float
    npa_exposure: float
    high_risk_count: int
    avg_risk_score: float
    par30_count: int
    par60_count: int
    par90_count: int
    par90_exposure: float
    collection_efficiency: float
    overdue_amount: float = 0.0
    sector_concentration: Optional[List[SectorShare]] = None
    weekly_changes: Optional[WeeklyChanges] = None


@dataclass
class ActionMetrics:
    count: Optional[int] = None
    exposure: Optional[float] = None
    percentage: Optional[float] = None


@dataclass
class SmartAction:
    id: str
    title: str
    description: str
    priority: ActionPriority
    category: ActionCategory
    impact: str
    action_link: Optional[str] = None
    metrics: Optional[ActionMetrics] = None


# ---------------------------------------------------------------------------
# Portfolio report
# ---------------------------------------------------------------------------


@dataclass
class PortfolioReport:
    """Everything the dashboard renders for one portfolio snapshot"""

    sector_concentration: List[ConcentrationResult]
    geographic_concentration: List[GeographicConcentrationResult]
    customer_concentration: List[CustomerConcentrationResult]
    concentration_score: ConcentrationScore
    predictions: List[DefaultPrediction]
    prediction_summary: PredictionSummary
    health_score: HealthScoreBreakdown
    smart_actions: List[SmartAction]
