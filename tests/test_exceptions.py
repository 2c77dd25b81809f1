"""Tests for custom exception hierarchy."""

from decimal import Decimal

from loan_engine.exceptions import (
    AlreadyPaidOffError,
    ConfigurationError,
    DuplicateTransactionError,
    EntityNotFoundError,
    InvalidInputError,
    InvalidLoanStateError,
    IrreversibleActionError,
    LoanEngineError,
    LoanNotFoundError,
    PaymentBelowMinimumError,
    PaymentExceedsBalanceError,
    PaymentTooLowError,
    ReferentialIntegrityError,
    SinkError,
)


class TestExceptionHierarchy:
    """Test exception inheritance chain."""

    def test_loan_engine_error_is_exception(self) -> None:
        assert isinstance(LoanEngineError("test"), Exception)

    def test_payment_errors_are_loan_engine_errors(self) -> None:
        for exc_type in (InvalidInputError, PaymentBelowMinimumError, PaymentExceedsBalanceError):
            assert isinstance(exc_type("test"), LoanEngineError)

    def test_state_errors(self) -> None:
        assert isinstance(AlreadyPaidOffError("test"), InvalidLoanStateError)
        assert isinstance(IrreversibleActionError("test"), InvalidLoanStateError)

    def test_not_found_errors(self) -> None:
        assert isinstance(LoanNotFoundError("test"), EntityNotFoundError)
        err = ReferentialIntegrityError("test")
        assert isinstance(err, EntityNotFoundError)
        assert isinstance(err, LoanEngineError)

    def test_other_errors(self) -> None:
        for exc_type in (DuplicateTransactionError, ConfigurationError, SinkError):
            assert isinstance(exc_type("test"), LoanEngineError)

    def test_payment_too_low_carries_minimum(self) -> None:
        err = PaymentTooLowError("too low", minimum_payment=Decimal("753.52"))
        assert err.minimum_payment == Decimal("753.52")
        assert str(err) == "too low"
