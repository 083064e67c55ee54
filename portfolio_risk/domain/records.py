"""Build domain records from JSON-decoded mappings supplied by the data layer"""

from datetime import date
from typing import Any, Iterable, List, Mapping, Optional

from portfolio_risk.domain.exceptions import InvalidRecordError
from portfolio_risk.domain.models import (
    Customer,
    EmploymentStatus,
    Loan,
    LoanStatus,
    PaymentStatus,
    Repayment,
    RiskAssessment,
    RiskCategory,
    Sector,
)


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    # Accept full ISO timestamps ("2024-01-15T00:00:00.000Z") as well as plain dates
    return date.fromisoformat(str(value)[:10])


def _optional_date(value: Any) -> Optional[date]:
    return None if value is None else _parse_date(value)


def customer_from_mapping(data: Mapping[str, Any]) -> Customer:
    return Customer(
        id=str(data["id"]),
        name=data.get("customer_name") or data.get("name") or "Unknown",
        geography=data["geography"],
        credit_score=int(data.get("credit_score", 0)),
        monthly_income=float(data.get("monthly_income", 0.0)),
        employment_status=EmploymentStatus(data.get("employment_status", EmploymentStatus.SALARIED.value)),
        dti_ratio=float(data.get("dti_ratio", 0.0)),
    )


def repayment_from_mapping(data: Mapping[str, Any], loan_id: str) -> Repayment:
    payment_amount = data.get("payment_amount")
    return Repayment(
        loan_id=str(data.get("loan_id", loan_id)),
        due_date=_parse_date(data["due_date"]),
        emi_amount=float(data["emi_amount"]),
        payment_status=PaymentStatus(data["payment_status"]),
        dpd=int(data.get("dpd", 0)),
        payment_date=_optional_date(data.get("payment_date")),
        payment_amount=None if payment_amount is None else float(payment_amount),
    )


def assessment_from_mapping(data: Mapping[str, Any], loan_id: str) -> RiskAssessment:
    return RiskAssessment(
        loan_id=str(data.get("loan_id", loan_id)),
        risk_score=float(data["risk_score"]),
        risk_category=RiskCategory(data["risk_category"]),
        assessment_date=_parse_date(data["assessment_date"]),
        flags=dict(data.get("flags") or {}),
        notes=data.get("notes") or "",
    )


def loan_from_mapping(data: Mapping[str, Any]) -> Loan:
    """
    Convert one hydrated loan (customer, repayments and risk assessments
    included) into a Loan record.

    Raises:
        InvalidRecordError: On missing fields, bad dates, unknown enum values
            or a negative outstanding amount
    """
    if not isinstance(data, Mapping):
        raise InvalidRecordError(f"Invalid loan record: expected a mapping, got {type(data).__name__}")

    try:
        loan_id = str(data["id"])
        return Loan(
            id=loan_id,
            customer=customer_from_mapping(data["customer"]),
            loan_amount=float(data["loan_amount"]),
            outstanding_amount=float(data["outstanding_amount"]),
            interest_rate=float(data.get("interest_rate", 0.0)),
            sector=Sector(data["sector"]),
            status=LoanStatus(data["status"]),
            disbursement_date=_parse_date(data["disbursement_date"]),
            repayments=tuple(
                repayment_from_mapping(r, loan_id) for r in data.get("repayments") or ()
            ),
            risk_assessments=tuple(
                assessment_from_mapping(a, loan_id) for a in data.get("risk_assessments") or ()
            ),
        )
    except InvalidRecordError:
        raise
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        raise InvalidRecordError(f"Invalid loan record {data.get('id', '<unknown>')!r}: {e}") from e


def loans_from_mappings(items: Iterable[Mapping[str, Any]]) -> List[Loan]:
    return [loan_from_mapping(item) for item in items]
