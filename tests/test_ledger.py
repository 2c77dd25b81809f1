"""Tests for LoanLedger."""

import threading
from datetime import date
from decimal import Decimal

import pytest

from loan_engine.exceptions import (
    DuplicateTransactionError,
    EntityNotFoundError,
    IrreversibleActionError,
    LoanNotFoundError,
    ReferentialIntegrityError,
)
from loan_engine.models import LoanNotice, LoanStatus, Payment, PaymentMethod, PaymentStatus, PaymentType, TaxPayment
from loan_engine.store.ledger import LoanLedger


def make_payment(payment_id: str, amount: str, transaction_id: str | None = None, **overrides) -> Payment:
    fields = {
        "payment_id": payment_id,
        "loan_id": "loan-test-001",
        "amount": Decimal(amount),
        "payment_date": date(2024, 2, 1),
        "method": PaymentMethod.GATEWAY,
        "payment_type": PaymentType.MONTHLY_PAYMENT,
        "transaction_id": transaction_id,
    }
    fields.update(overrides)
    return Payment(**fields)


@pytest.fixture
def loaded(ledger: LoanLedger, make_loan) -> LoanLedger:
    ledger.add_loan(make_loan())
    return ledger


class TestAdd:
    """Tests for adding entities."""

    def test_add_loan(self, loaded: LoanLedger) -> None:
        """Test a loan is indexed by customer."""
        assert loaded.get_loan("loan-test-001").status is LoanStatus.ACTIVE
        assert [loan.loan_id for loan in loaded.get_customer_loans("cust-test-001")] == ["loan-test-001"]
        assert loaded.get_loan("loan-test-001").created_at is not None

    def test_add_loan_unknown_customer(self, ledger: LoanLedger, make_loan) -> None:
        """Test referential integrity on customers."""
        with pytest.raises(ReferentialIntegrityError):
            ledger.add_loan(make_loan(customer_id="nobody"))

    def test_add_loan_unknown_property(self, ledger: LoanLedger, make_loan) -> None:
        """Test referential integrity on properties."""
        with pytest.raises(ReferentialIntegrityError):
            ledger.add_loan(make_loan(property_id="nowhere"))

    def test_add_payment_unknown_loan(self, ledger: LoanLedger) -> None:
        """Test payments need a loan."""
        with pytest.raises(ReferentialIntegrityError):
            ledger.add_payment(make_payment("pay-1", "100.00"))

    def test_duplicate_transaction(self, loaded: LoanLedger) -> None:
        """Test a gateway transaction is recorded once."""
        loaded.add_payment(make_payment("pay-1", "100.00", transaction_id="sq-1"))

        with pytest.raises(DuplicateTransactionError):
            loaded.add_payment(make_payment("pay-2", "100.00", transaction_id="sq-1"))
        assert len(loaded.get_loan_payments("loan-test-001")) == 1

    def test_payments_without_transaction_id(self, loaded: LoanLedger) -> None:
        """Test manual payments have no transaction id to deduplicate."""
        loaded.add_payment(make_payment("pay-1", "100.00"))
        loaded.add_payment(make_payment("pay-2", "100.00"))

        assert len(loaded.get_loan_payments("loan-test-001")) == 2

    def test_add_notice(self, loaded: LoanLedger) -> None:
        """Test notices are recorded per loan."""
        notice = LoanNotice(
            loan_id="loan-test-001",
            notice_date=date(2024, 3, 2),
            postal_method="Certified Mail",
            postal_cost=Decimal("8.95"),
            tracking_number="9400 1000",
            notice_fee=Decimal("75.00"),
            cure_deadline=date(2024, 3, 9),
        )
        loaded.add_notice(notice)

        assert loaded.get_loan_notices("loan-test-001") == [notice]
        with pytest.raises(ReferentialIntegrityError):
            loaded.add_notice(LoanNotice(**{**vars(notice), "loan_id": "missing"}))


class TestQueries:
    """Tests for lookups and totals."""

    def test_unknown_loan(self, ledger: LoanLedger) -> None:
        """Test a missing loan."""
        with pytest.raises(LoanNotFoundError):
            ledger.get_loan("missing")

    def test_unknown_property(self, ledger: LoanLedger) -> None:
        """Test a missing property."""
        with pytest.raises(EntityNotFoundError):
            ledger.get_property("missing")

    def test_total_paid_counts_completed_only(self, loaded: LoanLedger) -> None:
        """Test failed payments are not money received."""
        loaded.add_payment(make_payment("pay-1", "100.00"))
        loaded.add_payment(make_payment("pay-2", "250.50"))
        loaded.add_payment(make_payment("pay-3", "999.00", status=PaymentStatus.FAILED))

        assert loaded.total_paid("loan-test-001") == Decimal("350.50")

    def test_iter_loans_by_status(self, loaded: LoanLedger) -> None:
        """Test status filtering."""
        assert len(list(loaded.iter_loans(LoanStatus.ACTIVE))) == 1
        assert list(loaded.iter_loans(LoanStatus.DEFAULTED)) == []

    def test_summary(self, loaded: LoanLedger) -> None:
        """Test entity counts."""
        loaded.add_payment(make_payment("pay-1", "100.00"))

        assert loaded.summary() == {
            "customers": 1,
            "properties": 1,
            "loans": 1,
            "payments": 1,
            "notices": 0,
            "tax_payments": 0,
        }


class TestDelete:
    """Tests for hard deletes."""

    def test_delete_purges_payments(self, loaded: LoanLedger) -> None:
        """Test payments and transaction ids are purged."""
        loaded.add_payment(make_payment("pay-1", "100.00", transaction_id="sq-1"))

        purged = loaded.delete_loan("loan-test-001")

        assert [p.payment_id for p in purged] == ["pay-1"]
        assert loaded.get_loan_payments("loan-test-001") == []
        assert loaded.get_customer_loans("cust-test-001") == []

    def test_deleted_loan_is_gone_for_good(self, loaded: LoanLedger) -> None:
        """Test reading a deleted loan."""
        loaded.delete_loan("loan-test-001")

        with pytest.raises(IrreversibleActionError):
            loaded.get_loan("loan-test-001")

    def test_tax_payments(self, ledger: LoanLedger) -> None:
        """Test attaching and detaching tax payments."""
        tax_payment = TaxPayment(
            tax_payment_id="tax-1",
            property_id="prop-test-001",
            payment_date=date(2024, 11, 30),
            amount=Decimal("120.00"),
            tax_year=2024,
        )
        ledger.add_tax_payment(tax_payment)

        assert ledger.remove_tax_payment("tax-1") is tax_payment
        with pytest.raises(EntityNotFoundError):
            ledger.remove_tax_payment("tax-1")


class TestLocks:
    """Tests for per-loan locks."""

    def test_same_lock_per_loan(self, ledger: LoanLedger) -> None:
        """Test one lock per loan id."""
        assert ledger.lock_for("a") is ledger.lock_for("a")
        assert ledger.lock_for("a") is not ledger.lock_for("b")

    def test_lock_is_reentrant(self, ledger: LoanLedger) -> None:
        """Test nested acquisition by the same thread."""
        lock = ledger.lock_for("a")
        with lock:
            assert lock.acquire(blocking=False)
            lock.release()

    def test_lock_blocks_other_threads(self, ledger: LoanLedger) -> None:
        """Test another thread cannot enter while the lock is held."""
        acquired: list[bool] = []
        lock = ledger.lock_for("a")

        def try_lock() -> None:
            acquired.append(lock.acquire(blocking=False))

        with lock:
            thread = threading.Thread(target=try_lock)
            thread.start()
            thread.join()

        assert acquired == [False]
