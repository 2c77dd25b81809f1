"""Loan ledger with referential integrity and per-loan locks."""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterator

from loan_engine.exceptions import (
    DuplicateTransactionError,
    EntityNotFoundError,
    IrreversibleActionError,
    LoanNotFoundError,
    ReferentialIntegrityError,
)
from loan_engine.models import (
    Customer,
    Loan,
    LoanNotice,
    LoanStatus,
    Payment,
    PaymentStatus,
    Property,
    TaxPayment,
)
from loan_engine.money import money_sum


@dataclass
class LoanLedger:
    """In-memory store for loans, payments and escrow records.

    Callers serialize writes to one loan by holding ``lock_for(loan_id)``
    across the read-modify-write.
    """

    # Primary entities
    customers: dict[str, Customer] = field(default_factory=dict)
    properties: dict[str, Property] = field(default_factory=dict)
    loans: dict[str, Loan] = field(default_factory=dict)

    # Append-only history
    notices: list[LoanNotice] = field(default_factory=list)

    # Relationship indexes
    _customer_loans: dict[str, list[str]] = field(default_factory=dict)
    _loan_payments: dict[str, list[Payment]] = field(default_factory=dict)
    _transaction_ids: set[str] = field(default_factory=set)
    _deleted_loans: set[str] = field(default_factory=set)

    _locks: dict[str, threading.RLock] = field(default_factory=dict, repr=False)
    _locks_guard: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def lock_for(self, loan_id: str) -> threading.RLock:
        """Lock serializing every state change of one loan."""
        with self._locks_guard:
            lock = self._locks.get(loan_id)
            if lock is None:
                lock = self._locks[loan_id] = threading.RLock()
            return lock

    def add_customer(self, customer: Customer) -> None:
        """Add a customer to the ledger."""
        if customer.created_at is None:
            customer.created_at = datetime.now()
        self.customers[customer.customer_id] = customer
        self._customer_loans.setdefault(customer.customer_id, [])

    def add_property(self, prop: Property) -> None:
        """Add a property to the ledger."""
        if prop.created_at is None:
            prop.created_at = datetime.now()
        self.properties[prop.property_id] = prop

    def add_loan(self, loan: Loan) -> None:
        """Add a loan to the ledger."""
        if loan.customer_id not in self.customers:
            raise ReferentialIntegrityError(f"Customer {loan.customer_id} not found")

        if loan.property_id not in self.properties:
            raise ReferentialIntegrityError(f"Property {loan.property_id} not found")

        if loan.created_at is None:
            loan.created_at = datetime.now()
        self.loans[loan.loan_id] = loan
        self._customer_loans[loan.customer_id].append(loan.loan_id)
        self._loan_payments[loan.loan_id] = []

    def add_payment(self, payment: Payment) -> None:
        """Append a payment to its loan's history."""
        if payment.loan_id not in self.loans:
            raise ReferentialIntegrityError(f"Loan {payment.loan_id} not found")

        if payment.transaction_id:
            if payment.transaction_id in self._transaction_ids:
                raise DuplicateTransactionError(
                    f"Transaction {payment.transaction_id} was already recorded"
                )
            self._transaction_ids.add(payment.transaction_id)
        self._loan_payments[payment.loan_id].append(payment)

    def add_notice(self, notice: LoanNotice) -> None:
        """Record a mailed default/cure notice."""
        if notice.loan_id not in self.loans:
            raise ReferentialIntegrityError(f"Loan {notice.loan_id} not found")
        self.notices.append(notice)

    def add_tax_payment(self, tax_payment: TaxPayment) -> None:
        """Attach a tax disbursement to its property."""
        self.get_property(tax_payment.property_id).tax_payments.append(tax_payment)

    def remove_tax_payment(self, tax_payment_id: str) -> TaxPayment:
        """Detach a tax disbursement and return it."""
        for prop in self.properties.values():
            for tax_payment in prop.tax_payments:
                if tax_payment.tax_payment_id == tax_payment_id:
                    prop.tax_payments.remove(tax_payment)
                    return tax_payment
        raise EntityNotFoundError(f"Tax payment {tax_payment_id} not found")

    def delete_loan(self, loan_id: str) -> list[Payment]:
        """Remove a loan and purge its payments and notices.

        Returns
        -------
        list[Payment]
            The purged payments, so escrow counters can be reversed.
        """
        loan = self.get_loan(loan_id)
        payments = self._loan_payments.pop(loan_id, [])
        for payment in payments:
            if payment.transaction_id:
                self._transaction_ids.discard(payment.transaction_id)
        self.notices = [n for n in self.notices if n.loan_id != loan_id]
        self._customer_loans[loan.customer_id].remove(loan_id)
        del self.loans[loan_id]
        self._deleted_loans.add(loan_id)
        return payments

    # Query methods
    def get_loan(self, loan_id: str) -> Loan:
        """Get a loan by id."""
        loan = self.loans.get(loan_id)
        if loan is None:
            if loan_id in self._deleted_loans:
                raise IrreversibleActionError(f"Loan {loan_id} was deleted")
            raise LoanNotFoundError(f"Loan {loan_id} not found")
        return loan

    def get_property(self, property_id: str) -> Property:
        """Get a property by id."""
        prop = self.properties.get(property_id)
        if prop is None:
            raise EntityNotFoundError(f"Property {property_id} not found")
        return prop

    def get_customer_loans(self, customer_id: str) -> list[Loan]:
        """Get all loans for a customer."""
        loan_ids = self._customer_loans.get(customer_id, [])
        return [self.loans[lid] for lid in loan_ids]

    def get_loan_payments(self, loan_id: str) -> list[Payment]:
        """Get all payments for a loan, oldest first."""
        return list(self._loan_payments.get(loan_id, []))

    def get_loan_notices(self, loan_id: str) -> list[LoanNotice]:
        """Get all notices mailed for a loan."""
        return [n for n in self.notices if n.loan_id == loan_id]

    def iter_payments(self) -> Iterator[Payment]:
        """All payments of all loans."""
        for payments in self._loan_payments.values():
            yield from payments

    def iter_loans(self, status: LoanStatus | None = None) -> Iterator[Loan]:
        """Loans, optionally filtered by status."""
        for loan in self.loans.values():
            if status is None or loan.status is status:
                yield loan

    def total_paid(self, loan_id: str) -> Decimal:
        """Sum of completed payments on a loan."""
        return money_sum(
            p.amount for p in self._loan_payments.get(loan_id, []) if p.status is PaymentStatus.COMPLETED
        )

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "customers": len(self.customers),
            "properties": len(self.properties),
            "loans": len(self.loans),
            "payments": sum(len(p) for p in self._loan_payments.values()),
            "notices": len(self.notices),
            "tax_payments": sum(len(p.tax_payments) for p in self.properties.values()),
        }
