"""Unit tests for the portfolio report and its observability hooks"""

import json
import logging

import pytest
from prometheus_client import REGISTRY
from portfolio_risk.config import settings
from portfolio_risk.domain.health_score import calculate_health_score
from portfolio_risk.domain.models import ActionPriority, RiskLevel, WeeklyChanges
from portfolio_risk.domain.portfolio import health_score_input
from portfolio_risk.infrastructure.observability.logging import (
    CustomJsonFormatter,
    log_portfolio_report,
    setup_logging,
)
from portfolio_risk.report import build_portfolio_report


def sample_value(name, labels=None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def test_report_runs_every_analyzer(sample_portfolio):
    report = build_portfolio_report(sample_portfolio)

    assert len(report.predictions) == 10
    assert report.prediction_summary.total_loans == 10
    assert report.sector_concentration[0].percentage_of_portfolio == 50.0
    assert report.geographic_concentration[0].geography == "Mumbai"
    assert report.customer_concentration[0].customer_id == "cust_a"
    assert report.concentration_score.score == 90
    assert report.health_score == calculate_health_score(health_score_input(sample_portfolio))

    assert 1 <= len(report.smart_actions) <= 5
    assert report.smart_actions[0].id == "dpd-90-contact"
    assert report.smart_actions[0].priority == ActionPriority.CRITICAL


def test_report_trend_and_weekly_changes(sample_portfolio):
    report = build_portfolio_report(
        sample_portfolio,
        previous_health_score=50.0,
        weekly_changes=WeeklyChanges(risk_score_change=7.5),
    )

    assert report.health_score.trend == pytest.approx(report.health_score.overall - 50.0, abs=0.1)
    assert any(action.id == "risk-deterioration" for action in report.smart_actions)


def test_report_on_empty_portfolio():
    report = build_portfolio_report([])

    assert report.predictions == []
    assert report.concentration_score.score == 0
    assert report.prediction_summary.total_loans == 0
    # no repayments on record means 0% collection efficiency
    assert report.health_score.components.collection_score == 0.0
    assert report.smart_actions[0].id == "collection-efficiency"


def test_report_records_metrics(sample_portfolio):
    high_before = sample_value("portfolio_default_predictions_total", {"risk_level": RiskLevel.HIGH.value})
    critical_before = sample_value("portfolio_smart_actions_total", {"priority": ActionPriority.CRITICAL.value})
    runs_before = sample_value("portfolio_report_duration_seconds_count")

    report = build_portfolio_report(sample_portfolio)

    high_count = report.prediction_summary.risk_distribution[RiskLevel.HIGH].count
    critical_count = sum(1 for a in report.smart_actions if a.priority == ActionPriority.CRITICAL)

    assert sample_value(
        "portfolio_default_predictions_total", {"risk_level": RiskLevel.HIGH.value}
    ) == high_before + high_count
    assert sample_value(
        "portfolio_smart_actions_total", {"priority": ActionPriority.CRITICAL.value}
    ) == critical_before + critical_count
    assert sample_value("portfolio_report_duration_seconds_count") == runs_before + 1
    assert sample_value("portfolio_health_score") == report.health_score.overall
    assert sample_value("portfolio_concentration_score") == 90


def test_report_logs_outcome(sample_portfolio, caplog):
    caplog.set_level(logging.INFO, logger="portfolio_risk.report")

    report = build_portfolio_report(sample_portfolio)

    records = [r for r in caplog.records if r.getMessage() == "Portfolio report completed"]
    assert len(records) == 1
    assert records[0].loan_count == 10
    assert records[0].health_grade == report.health_score.grade.value
    assert records[0].action_count == len(report.smart_actions)
    assert records[0].duration_ms >= 0


def test_log_portfolio_report_fields(caplog):
    caplog.set_level(logging.INFO, logger="portfolio_risk.report")

    log_portfolio_report(
        loan_count=3,
        health_score=72.4,
        health_grade="Good",
        concentration_score=30,
        action_count=2,
        duration_ms=4.2,
    )

    record = caplog.records[-1]
    assert record.name == "portfolio_risk.report"
    assert record.step == "portfolio_report_complete"
    assert record.health_score == 72.4


def test_json_formatter_adds_service_metadata():
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    record = logging.LogRecord("portfolio_risk.test", logging.WARNING, __file__, 1, "NPA spike", None, None)
    record.loan_count = 12

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "NPA spike"
    assert payload["level"] == "WARNING"
    assert payload["service"] == "portfolio-risk"
    assert payload["loan_count"] == 12
    assert payload["timestamp"]


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_installs_json_handler(restore_root_logger):
    setup_logging("DEBUG")

    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 1
    assert isinstance(restore_root_logger.handlers[0].formatter, CustomJsonFormatter)


def test_setup_logging_defaults_to_configured_level(restore_root_logger, monkeypatch):
    monkeypatch.setattr(settings, "log_level", "WARNING")

    setup_logging()

    assert restore_root_logger.level == logging.WARNING
