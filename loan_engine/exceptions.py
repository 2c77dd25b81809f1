"""Custom exception hierarchy for loan-engine."""

from decimal import Decimal


class LoanEngineError(Exception):
    """Base exception for all loan-engine errors."""


class InvalidInputError(LoanEngineError):
    """Raised when a monetary or calendar input is out of range."""


class PaymentTooLowError(LoanEngineError):
    """Raised when a target payment never covers the accruing interest."""

    def __init__(self, message: str, minimum_payment: Decimal) -> None:
        super().__init__(message)
        self.minimum_payment = minimum_payment


class PaymentBelowMinimumError(LoanEngineError):
    """Raised when a payment is below the loan's monthly payment."""


class PaymentExceedsBalanceError(LoanEngineError):
    """Raised when a payment is larger than the amount needed to pay off the loan."""


class InvalidLoanStateError(LoanEngineError):
    """Raised when a loan is in an invalid state for the operation."""


class AlreadyPaidOffError(InvalidLoanStateError):
    """Raised when a payment is attempted on a paid-off loan."""


class IrreversibleActionError(InvalidLoanStateError):
    """Raised when an action would undo a default or a deletion."""


class EntityNotFoundError(LoanEngineError):
    """Raised when a referenced entity does not exist."""


class LoanNotFoundError(EntityNotFoundError):
    """Raised when a loan id is unknown to the ledger."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class DuplicateTransactionError(LoanEngineError):
    """Raised when a gateway transaction id has already been recorded."""


class ConfigurationError(LoanEngineError):
    """Raised when configuration is invalid or missing."""


class SinkError(LoanEngineError):
    """Raised when a sink operation fails."""
