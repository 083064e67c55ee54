"""Prometheus metrics for monitoring portfolio health, predictions and recommended actions"""

from typing import Iterable
from prometheus_client import Counter, Gauge, Histogram

from portfolio_risk.domain.models import DefaultPrediction, SmartAction

# Prediction metrics
prediction_counter = Counter(
    "portfolio_default_predictions_total",
    "Default probability predictions made",
    ["risk_level"],  # High | Medium | Low
)

# Action metrics
smart_action_counter = Counter(
    "portfolio_smart_actions_total",
    "Smart actions recommended",
    ["priority"],  # CRITICAL | HIGH | MEDIUM | LOW
)

# Portfolio state
health_score_gauge = Gauge(
    "portfolio_health_score",
    "Latest composite portfolio health score (0-100)",
)

concentration_score_gauge = Gauge(
    "portfolio_concentration_score",
    "Latest portfolio concentration score (0-100)",
)

report_duration_histogram = Histogram(
    "portfolio_report_duration_seconds",
    "Time to build a full portfolio report",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


def record_predictions(predictions: Iterable[DefaultPrediction]) -> None:
    """Count predictions per risk level"""
    for prediction in predictions:
        prediction_counter.labels(risk_level=prediction.risk_level.value).inc()


def record_actions(actions: Iterable[SmartAction]) -> None:
    for action in actions:
        smart_action_counter.labels(priority=action.priority.value).inc()


def record_portfolio_scores(health_score: float, concentration_score: float) -> None:
    health_score_gauge.set(health_score)
    concentration_score_gauge.set(concentration_score)
