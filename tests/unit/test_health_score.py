"""Unit tests for the portfolio health score"""

import pytest
from portfolio_risk.domain.health_score import (
    calculate_health_score,
    collection_component_score,
    dpd_component_score,
    health_grade,
    npa_component_score,
    risk_component_score,
)
from portfolio_risk.domain.models import HealthGrade, HealthScoreInput


def health_input(**overrides) -> HealthScoreInput:
    fields = dict(
        gross_npa_rate=0.0,
        collection_efficiency=95.0,
        avg_risk_score=10.0,
        high_risk_count=0,
        total_loans=100,
        par30_rate=0.0,
        avg_dpd=0.0,
    )
    fields.update(overrides)
    return HealthScoreInput(**fields)


def test_clean_portfolio_is_excellent():
    """Only the average risk score of 10 keeps the score off 100"""
    result = calculate_health_score(health_input())

    # risk component: 0.7 * 90 + 30 = 93
    assert result.components.npa_score == 100.0
    assert result.components.collection_score == 100.0
    assert result.components.risk_score == 93.0
    assert result.components.dpd_score == 100.0
    assert result.overall == 98.6
    assert result.grade == HealthGrade.EXCELLENT
    assert result.trend == 0.0


def test_zero_risk_portfolio_scores_100():
    result = calculate_health_score(health_input(avg_risk_score=0.0))
    assert result.overall == 100.0
    assert result.grade == HealthGrade.EXCELLENT


def test_weights_are_reported():
    weights = calculate_health_score(health_input()).weights
    assert (weights.npa_weight, weights.collection_weight, weights.risk_weight, weights.dpd_weight) == (
        0.30,
        0.30,
        0.20,
        0.20,
    )


@pytest.mark.parametrize(
    "npa_rate, expected",
    [(0, 100), (2, 100), (2.01, pytest.approx(84.95)), (5, 70), (10, 40), (20, 10), (35, 10)],
)
def test_npa_component_breakpoints(npa_rate, expected):
    assert npa_component_score(npa_rate) == expected


@pytest.mark.parametrize(
    "efficiency, expected",
    [(100, 100), (90, 100), (85, 85), (80, 70), (75, 55), (70, 40), (50, 10), (25, 5), (0, 0)],
)
def test_collection_component_breakpoints(efficiency, expected):
    assert collection_component_score(efficiency) == pytest.approx(expected)


@pytest.mark.parametrize(
    "high_risk, expected_concentration",
    [(10, 30), (11, 20), (20, 20), (30, 10), (31, 0)],
)
def test_risk_component_high_risk_concentration(high_risk, expected_concentration):
    score = risk_component_score(avg_risk_score=100, high_risk_count=high_risk, total_loans=100)
    assert score == expected_concentration


def test_risk_component_with_no_loans():
    assert risk_component_score(avg_risk_score=0, high_risk_count=0, total_loans=0) == 100


@pytest.mark.parametrize(
    "par30, avg_dpd, expected",
    [
        (0, 0, 100),
        (5, 10, 100),
        (10, 30, 60),  # 40 + 20
        (20, 60, 28),  # 20 + 8
        (30, 100, 16),  # 10 + 6
        (50, 200, 0),
    ],
)
def test_dpd_component_breakpoints(par30, avg_dpd, expected):
    assert dpd_component_score(par30, avg_dpd) == pytest.approx(expected)


@pytest.mark.parametrize(
    "score, grade",
    [
        (100, HealthGrade.EXCELLENT),
        (80.0, HealthGrade.EXCELLENT),
        (79.9, HealthGrade.GOOD),
        (65.0, HealthGrade.GOOD),
        (64.9, HealthGrade.FAIR),
        (50.0, HealthGrade.FAIR),
        (49.9, HealthGrade.POOR),
        (35.0, HealthGrade.POOR),
        (34.9, HealthGrade.CRITICAL),
        (0, HealthGrade.CRITICAL),
    ],
)
def test_grade_boundaries(score, grade):
    assert health_grade(score) == grade


def test_stressed_portfolio_is_critical():
    result = calculate_health_score(
        health_input(
            gross_npa_rate=25.0,
            collection_efficiency=40.0,
            avg_risk_score=80.0,
            high_risk_count=50,
            par30_rate=45.0,
            avg_dpd=120.0,
        )
    )

    # 10 * 0.3 + 8 * 0.3 + 14 * 0.2 + 4 * 0.2
    assert result.overall == 9.0
    assert result.grade == HealthGrade.CRITICAL


def test_trend_against_previous_score():
    improved = calculate_health_score(health_input(), previous_score=90.0)
    declined = calculate_health_score(health_input(), previous_score=99.6)

    assert improved.trend == 8.6
    assert declined.trend == -1.0


def test_overall_stays_within_bounds():
    for npa in (0, 5, 50):
        for efficiency in (0, 75, 100):
            for risk in (0, 50, 100):
                for par30 in (0, 15, 100):
                    result = calculate_health_score(
                        health_input(
                            gross_npa_rate=npa,
                            collection_efficiency=efficiency,
                            avg_risk_score=risk,
                            par30_rate=par30,
                            avg_dpd=par30,
                        )
                    )
                    assert 0 <= result.overall <= 100
                    assert health_grade(result.overall) == result.grade
