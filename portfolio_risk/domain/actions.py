"""
Smart action generator.

Turns a portfolio snapshot into a short, prioritised list of interventions.
Each rule inspects `PortfolioMetrics` on its own and proposes at most one
action; rules run in a fixed order so ties in priority keep that order.
"""

from typing import Callable, List, Optional, Tuple

from portfolio_risk.config import settings
from portfolio_risk.domain.models import (
    ActionCategory,
    ActionMetrics,
    ActionPriority,
    PortfolioMetrics,
    SmartAction,
)

CRORE = 10_000_000
MAX_SMART_ACTIONS = 5
COLLECTION_BENCHMARK = 90


def _crore(amount: float) -> str:
    return f"₹{amount / CRORE:.2f}Cr"


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def high_risk_percentage(metrics: PortfolioMetrics) -> float:
    if metrics.total_loans <= 0:
        return 0.0
    return metrics.high_risk_count / metrics.total_loans * 100


def npa_rate(metrics: PortfolioMetrics) -> float:
    """NPA exposure as % of total exposure"""
    if metrics.total_exposure <= 0:
        return 0.0
    return metrics.npa_exposure / metrics.total_exposure * 100


def par90_contact(metrics: PortfolioMetrics) -> Optional[SmartAction]:
    count = metrics.par90_count
    if count <= 0:
        return None

    return SmartAction(
        id="dpd-90-contact",
        title=f"Urgent: Contact {count} {_plural(count, 'borrower', 'borrowers')} at 90+ DPD",
        description=(
            f"{count} {_plural(count, 'loan is', 'loans are')} critically overdue (90+ days). "
            "Immediate intervention required to prevent NPA escalation. "
            "Consider restructuring or recovery proceedings."
        ),
        priority=ActionPriority.CRITICAL,
        category=ActionCategory.DELINQUENCY,
        impact=f"Protect {_crore(metrics.par90_exposure)} from becoming NPA",
        action_link="/loans?filter=dpd90plus",
        metrics=ActionMetrics(count=count, exposure=metrics.par90_exposure),
    )


def high_risk_review(metrics: PortfolioMetrics) -> Optional[SmartAction]:
    percentage = high_risk_percentage(metrics)
    if percentage <= 25:
        return None

    return SmartAction(
        id="high-risk-review",
        title=f"Review {metrics.high_risk_count} high-risk loans ({percentage:.1f}% of portfolio)",
        description=(
            "Portfolio has elevated risk concentration. Review credit policies, increase "
            "monitoring frequency, and consider risk mitigation strategies for these accounts."
        ),
        priority=ActionPriority.HIGH,
        category=ActionCategory.RISK,
        impact="Reduce portfolio volatility and potential future losses",
        action_link="/loans?filter=highRisk",
        metrics=ActionMetrics(count=metrics.high_risk_count, percentage=round(percentage, 1)),
    )


def collection_improvement(metrics: PortfolioMetrics) -> Optional[SmartAction]:
    efficiency = metrics.collection_efficiency
    if efficiency >= 80:
        return None

    return SmartAction(
        id="collection-efficiency",
        title=f"Improve collection efficiency (currently {efficiency:.1f}%)",
        description=(
            f"Collection efficiency is below industry benchmark of {COLLECTION_BENCHMARK}%. "
            "Review collection processes, borrower communication strategies, and consider "
            "automated payment reminders."
        ),
        priority=ActionPriority.CRITICAL if efficiency < 70 else ActionPriority.HIGH,
        category=ActionCategory.COLLECTION,
        impact=(
            f"Target {COLLECTION_BENCHMARK - efficiency:.1f}% improvement to reach "
            f"{COLLECTION_BENCHMARK}% efficiency"
        ),
        metrics=ActionMetrics(percentage=round(efficiency, 1)),
    )


def par60_intervention(metrics: PortfolioMetrics) -> Optional[SmartAction]:
    # PAR60 close to PAR90 means loans are rolling into the worst bucket
    if not (0 < metrics.par60_count < metrics.par90_count * 2):
        return None

    return SmartAction(
        id="par60-intervention",
        title=f"Early intervention needed for {metrics.par60_count} loans at 60+ DPD",
        description=(
            "These loans are at high risk of becoming 90+ DPD. Proactive outreach and "
            "restructuring options may prevent escalation. Contact borrowers immediately "
            "to discuss repayment plans."
        ),
        priority=ActionPriority.HIGH,
        category=ActionCategory.DELINQUENCY,
        impact="Prevent further delinquency progression and reduce potential NPAs",
        action_link="/loans?filter=dpd60plus",
        metrics=ActionMetrics(count=metrics.par60_count),
    )


def sector_diversification(metrics: PortfolioMetrics) -> Optional[SmartAction]:
    if not metrics.sector_concentration:
        return None

    top = max(metrics.sector_concentration, key=lambda s: s.percentage)
    if top.percentage <= 30:
        return None

    if top.percentage > 40:
        description = (
            f"Portfolio is heavily concentrated in {top.sector} sector with {top.count} loans "
            f"({_crore(top.exposure)}). Diversify new disbursements away from this sector "
            "to reduce sector-specific risks."
        )
    else:
        description = (
            f"{top.sector} sector holds {top.count} loans ({_crore(top.exposure)}), above the "
            "30% sector limit. Consider diversification to reduce sector-specific risks."
        )

    return SmartAction(
        id="sector-concentration",
        title=f"{top.sector} concentration at {top.percentage:.1f}% - Diversify portfolio",
        description=description,
        priority=ActionPriority.HIGH,
        category=ActionCategory.CONCENTRATION,
        impact="Reduce sector-specific risk and improve portfolio resilience",
        metrics=ActionMetrics(count=top.count, exposure=top.exposure, percentage=top.percentage),
    )


def npa_recovery(metrics: PortfolioMetrics) -> Optional[SmartAction]:
    rate = npa_rate(metrics)
    if rate <= 5:
        return None

    return SmartAction(
        id="npa-recovery",
        title=f"NPA rate at {rate:.1f}% - Accelerate recovery efforts",
        description=(
            f"{metrics.npa_loans} loans classified as NPA with total exposure of "
            f"{_crore(metrics.npa_exposure)}. Prioritize recovery actions, legal proceedings, "
            "or write-off decisions."
        ),
        priority=ActionPriority.CRITICAL if rate > 10 else ActionPriority.HIGH,
        category=ActionCategory.NPA,
        impact="Improve asset quality and reduce provisioning requirements",
        action_link="/loans?filter=npa",
        metrics=ActionMetrics(count=metrics.npa_loans, exposure=metrics.npa_exposure, percentage=round(rate, 1)),
    )


def risk_deterioration(metrics: PortfolioMetrics) -> Optional[SmartAction]:
    changes = metrics.weekly_changes
    if changes is None or changes.risk_score_change <= 5:
        return None

    return SmartAction(
        id="risk-deterioration",
        title=f"Portfolio risk increased {changes.risk_score_change:.1f} points this week",
        description=(
            "Significant risk score deterioration detected. Investigate underlying causes - "
            "payment delays, sector stress, or borrower-specific issues. Enhanced monitoring "
            "recommended."
        ),
        priority=ActionPriority.HIGH,
        category=ActionCategory.MONITORING,
        impact="Identify and address risk factors before they escalate",
    )


def early_delinquency(metrics: PortfolioMetrics) -> Optional[SmartAction]:
    count = metrics.par30_count - metrics.par60_count
    if count <= 0 or metrics.total_loans <= 0:
        return None

    percentage = count / metrics.total_loans * 100
    if percentage <= 15:
        return None

    return SmartAction(
        id="early-delinquency",
        title=f"{count} loans in early delinquency (30-60 DPD)",
        description=(
            "Send automated payment reminders and conduct courtesy calls. Early intervention "
            "at this stage typically has highest success rate (70-80% recovery)."
        ),
        priority=ActionPriority.MEDIUM,
        category=ActionCategory.DELINQUENCY,
        impact="Prevent progression to severe delinquency stages",
        action_link="/loans?filter=dpd30to60",
        metrics=ActionMetrics(count=count, percentage=round(percentage, 1)),
    )


def routine_monitoring() -> SmartAction:
    return SmartAction(
        id="routine-monitoring",
        title="Portfolio health is stable - Continue routine monitoring",
        description=(
            "No critical issues detected. Maintain current collection practices, monitor risk "
            "indicators, and prepare for upcoming repayment cycles."
        ),
        priority=ActionPriority.LOW,
        category=ActionCategory.MONITORING,
        impact="Sustain strong portfolio performance",
    )


def is_broadly_healthy(metrics: PortfolioMetrics) -> bool:
    return (
        npa_rate(metrics) < 3
        and metrics.collection_efficiency > 85
        and high_risk_percentage(metrics) < 20
    )


Rule = Callable[[PortfolioMetrics], Optional[SmartAction]]

RULES: Tuple[Rule, ...] = (
    par90_contact,
    high_risk_review,
    collection_improvement,
    par60_intervention,
    sector_diversification,
    npa_recovery,
    risk_deterioration,
    early_delinquency,
)


def generate_smart_actions(metrics: PortfolioMetrics, limit: Optional[int] = None) -> List[SmartAction]:
    """
    Main entry point: prioritised actions for a portfolio snapshot.

    Returns at most `limit` actions (default from settings, clamped to
    1..MAX_SMART_ACTIONS) sorted CRITICAL > HIGH > MEDIUM > LOW, keeping
    rule order within a priority.
    """
    actions = [action for action in (rule(metrics) for rule in RULES) if action is not None]

    if not actions or is_broadly_healthy(metrics):
        actions.append(routine_monitoring())

    actions.sort(key=lambda action: action.priority.rank, reverse=True)
    limit = min(max(limit or settings.smart_action_limit, 1), MAX_SMART_ACTIONS)
    return actions[:limit]
