"""Pytest fixtures for testing"""

import pytest
from datetime import date, timedelta
from typing import Callable, Optional, Sequence

from portfolio_risk.domain.models import (
    Customer,
    Loan,
    LoanStatus,
    PaymentStatus,
    Repayment,
    RiskAssessment,
    RiskCategory,
    Sector,
)

AS_OF = date(2024, 6, 30)


def make_customer(
    customer_id: str = "cust_1",
    geography: str = "Mumbai",
    credit_score: int = 720,
    dti_ratio: float = 25.0,
    name: Optional[str] = None,
) -> Customer:
    return Customer(
        id=customer_id,
        name=name or f"Customer {customer_id}",
        geography=geography,
        credit_score=credit_score,
        monthly_income=80000.0,
        dti_ratio=dti_ratio,
    )


def make_repayments(
    loan_id: str,
    dpds: Sequence[int],
    emi: float = 10000.0,
    start: date = date(2023, 7, 5),
) -> tuple:
    """Monthly EMIs, one per DPD value; an EMI with DPD > 30 counts as missed"""
    repayments = []
    for i, dpd in enumerate(dpds):
        due = start + timedelta(days=30 * i)
        missed = dpd > 30
        repayments.append(
            Repayment(
                loan_id=loan_id,
                due_date=due,
                emi_amount=emi,
                payment_status=PaymentStatus.MISSED if missed else PaymentStatus.PAID,
                dpd=dpd,
                payment_date=None if missed else due + timedelta(days=dpd),
                payment_amount=None if missed else emi,
            )
        )
    return tuple(repayments)


def make_loan(
    loan_id: str = "loan_1",
    outstanding: float = 1_000_000.0,
    sector: Sector = Sector.RETAIL,
    status: LoanStatus = LoanStatus.ACTIVE,
    customer: Optional[Customer] = None,
    dpds: Sequence[int] = (),
    risk_score: Optional[float] = None,
    risk_category: Optional[RiskCategory] = None,
    loan_amount: Optional[float] = None,
    disbursement_date: date = date(2023, 6, 1),
) -> Loan:
    assessments = ()
    if risk_score is not None:
        if risk_category is None:
            risk_category = (
                RiskCategory.HIGH if risk_score > 65
                else RiskCategory.MEDIUM if risk_score > 35
                else RiskCategory.LOW
            )
        assessments = (
            RiskAssessment(
                loan_id=loan_id,
                risk_score=risk_score,
                risk_category=risk_category,
                assessment_date=AS_OF,
            ),
        )

    return Loan(
        id=loan_id,
        customer=customer or make_customer(),
        loan_amount=loan_amount if loan_amount is not None else max(outstanding, 1.0) * 1.25,
        outstanding_amount=outstanding,
        interest_rate=11.5,
        sector=sector,
        status=status,
        disbursement_date=disbursement_date,
        repayments=make_repayments(loan_id, dpds),
        risk_assessments=assessments,
    )


@pytest.fixture
def loan_factory() -> Callable[..., Loan]:
    return make_loan


@pytest.fixture
def customer_factory() -> Callable[..., Customer]:
    return make_customer


@pytest.fixture
def sample_portfolio() -> list[Loan]:
    """Ten loans across three sectors and three cities, a few of them in trouble"""
    mumbai_a = make_customer("cust_a", "Mumbai", name="Asha Traders")
    mumbai_b = make_customer("cust_b", "Mumbai", name="Bharat Textiles")
    delhi = make_customer("cust_c", "Delhi", credit_score=640, dti_ratio=48.0, name="Chawla Foods")
    pune = make_customer("cust_d", "Pune", credit_score=580, dti_ratio=65.0, name="Deccan Agro")

    return [
        make_loan("L01", 4_000_000, Sector.MANUFACTURING, customer=mumbai_a, dpds=[0] * 12, risk_score=20),
        make_loan("L02", 3_000_000, Sector.MANUFACTURING, customer=mumbai_b, dpds=[0, 0, 5, 0, 0, 0], risk_score=30),
        make_loan("L03", 2_000_000, Sector.RETAIL, customer=delhi, dpds=[0, 10, 20, 35], risk_score=55),
        make_loan("L04", 1_500_000, Sector.RETAIL, customer=delhi, dpds=[0, 0, 0], risk_score=40),
        make_loan("L05", 1_000_000, Sector.IT, customer=mumbai_a, dpds=[0] * 6, risk_score=15),
        make_loan("L06", 800_000, Sector.AGRICULTURE, customer=pune, dpds=[30, 60, 95], risk_score=85),
        make_loan("L07", 700_000, Sector.AGRICULTURE, customer=pune, dpds=[40, 70], risk_score=78,
                  status=LoanStatus.NPA),
        make_loan("L08", 500_000, Sector.IT, customer=mumbai_b, dpds=[], risk_score=None),
        make_loan("L09", 300_000, Sector.HEALTHCARE, customer=delhi, dpds=[0, 0, 0, 0], risk_score=25),
        make_loan("L10", 200_000, Sector.REAL_ESTATE, customer=mumbai_a, dpds=[0, 0, 45, 65], risk_score=70),
    ]


@pytest.fixture
def repayment_factory() -> Callable[..., tuple]:
    return make_repayments
