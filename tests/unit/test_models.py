"""Unit tests for domain record invariants and accessors"""

from datetime import date

import pytest
from portfolio_risk.domain.exceptions import InvalidRecordError
from portfolio_risk.domain.models import PaymentStatus, Repayment, Sector
from portfolio_risk.utils.date_utils import months_between


def test_negative_outstanding_raises(loan_factory):
    with pytest.raises(InvalidRecordError):
        loan_factory(outstanding=-1.0, loan_amount=100.0)


def test_negative_dpd_raises():
    with pytest.raises(InvalidRecordError):
        Repayment(
            loan_id="loan_1",
            due_date=date(2024, 1, 5),
            emi_amount=1000.0,
            payment_status=PaymentStatus.PAID,
            dpd=-1,
        )


def test_loan_accessors(loan_factory, customer_factory):
    loan = loan_factory(customer=customer_factory("cust_7"), dpds=[0, 10, 45], risk_score=52)

    assert loan.customer_id == "cust_7"
    assert loan.latest_repayment.dpd == 45
    assert loan.current_dpd == 45
    assert loan.current_risk_score == 52
    assert loan.is_npa is False
    assert [r.dpd for r in loan.repayments_by_due_date()] == [0, 10, 45]


def test_loan_without_history_is_neutral(loan_factory):
    loan = loan_factory()

    assert loan.latest_repayment is None
    assert loan.current_assessment is None
    assert loan.current_dpd == 0
    assert loan.current_risk_score == 0.0


def test_sector_labels():
    assert Sector.IT.label == "Technology"
    assert Sector.REAL_ESTATE.label == "Real Estate"
    assert Sector.AGRICULTURE.label == "Agriculture"


def test_months_between():
    assert months_between(date(2024, 1, 1), date(2024, 1, 31)) == 1.0
    assert months_between(date(2024, 1, 31), date(2024, 1, 1)) == -1.0
