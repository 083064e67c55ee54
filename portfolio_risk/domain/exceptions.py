"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidRecordError(DomainException):
    """Loan, customer, repayment or assessment record is malformed or violates an invariant"""

    pass
