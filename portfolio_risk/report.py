"""Portfolio report - runs every analyzer over one snapshot of loan records"""

import time
from typing import Optional, Sequence

from portfolio_risk.domain.actions import generate_smart_actions
from portfolio_risk.domain.concentration import (
    customer_concentration,
    geographic_concentration,
    portfolio_concentration_score,
    sector_concentration,
)
from portfolio_risk.domain.default_probability import predict_default
from portfolio_risk.domain.health_score import calculate_health_score
from portfolio_risk.domain.models import Loan, PortfolioReport, WeeklyChanges
from portfolio_risk.domain.portfolio import (
    health_score_input,
    portfolio_metrics,
    prediction_input,
    summarize_predictions,
)
from portfolio_risk.infrastructure.observability.logging import log_portfolio_report
from portfolio_risk.infrastructure.observability.metrics import (
    record_actions,
    record_portfolio_scores,
    record_predictions,
    report_duration_histogram,
)


def build_portfolio_report(
    loans: Sequence[Loan],
    previous_health_score: Optional[float] = None,
    weekly_changes: Optional[WeeklyChanges] = None,
) -> PortfolioReport:
    """
    Build the complete dashboard report for a portfolio snapshot.

    Flow:
    1. Concentration by sector, geography and customer
    2. Default prediction per loan, then the portfolio roll-up
    3. Health score from the derived portfolio metrics
    4. Smart actions from the same snapshot
    5. Record metrics and log the outcome
    """
    start_time = time.time()

    with report_duration_histogram.time():
        predictions = [predict_default(prediction_input(loan)) for loan in loans]
        concentration_score = portfolio_concentration_score(loans)
        health_score = calculate_health_score(health_score_input(loans), previous_health_score)

        report = PortfolioReport(
            sector_concentration=sector_concentration(loans),
            geographic_concentration=geographic_concentration(loans),
            customer_concentration=customer_concentration(loans),
            concentration_score=concentration_score,
            predictions=predictions,
            prediction_summary=summarize_predictions(predictions),
            health_score=health_score,
            smart_actions=generate_smart_actions(portfolio_metrics(loans, weekly_changes)),
        )

    duration_ms = (time.time() - start_time) * 1000
    record_predictions(report.predictions)
    record_actions(report.smart_actions)
    record_portfolio_scores(health_score.overall, concentration_score.score)
    log_portfolio_report(
        loan_count=len(loans),
        health_score=health_score.overall,
        health_grade=health_score.grade.value,
        concentration_score=concentration_score.score,
        action_count=len(report.smart_actions),
        duration_ms=duration_ms,
    )

    return report
