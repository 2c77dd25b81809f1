"""Loan servicing: applies engine results to the ledger.

This is the caller side of the engine. It loads loan and escrow state,
serializes work per loan, persists the outcome and publishes events.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any, Iterable

from loan_engine.config import EngineConfig
from loan_engine.engine import (
    AmortizationCalculator,
    AmortizationQuote,
    DefaultResolutionEngine,
    DelinquencyClassifier,
    DelinquencyState,
    EscrowSchedule,
    EscrowTracker,
    LoanState,
    PaymentAllocationEngine,
    PaymentQuote,
    transition,
)
from loan_engine.engine.dates import first_payment_date, next_due_date, validate_due_day
from loan_engine.exceptions import (
    EntityNotFoundError,
    InvalidInputError,
    InvalidLoanStateError,
    LoanEngineError,
    SinkError,
)
from loan_engine.models import (
    DefaultRecord,
    Event,
    LifecycleAction,
    Loan,
    LoanNotice,
    LoanStatus,
    Payment,
    PaymentMethod,
    PaymentType,
    PropertyStatus,
    TaxPayment,
)
from loan_engine.money import MoneyLike, to_money
from loan_engine.store.ledger import LoanLedger

logger = logging.getLogger(__name__)

EVENT_SOURCE = "loan-engine"


@dataclass(frozen=True)
class Proposal:
    """First half of a two-step destructive command."""

    proposal_id: str
    action: LifecycleAction
    loan_id: str
    preview: dict[str, Any]
    params: dict[str, Any] = field(default_factory=dict)


class LoanServicer:
    """Origination, payments and default administration over a ``LoanLedger``.

    Parameters
    ----------
    ledger : LoanLedger | None
        Storage for loans and payments.
    config : EngineConfig | None
        Fee and amortization policy.
    sinks : Iterable[Any] | None
        Event sinks exposing ``write_batch(topic, records)``.
    """

    def __init__(
        self,
        ledger: LoanLedger | None = None,
        config: EngineConfig | None = None,
        sinks: Iterable[Any] | None = None,
    ) -> None:
        self.ledger = ledger or LoanLedger()
        self.config = (config or EngineConfig()).validate()
        self.sinks = list(sinks or [])

        self.calculator = AmortizationCalculator(self.config.amortization)
        self.classifier = DelinquencyClassifier(self.config.fees)
        self.allocator = PaymentAllocationEngine(self.config.fees, self.config.gateway)
        self.defaults = DefaultResolutionEngine(self.config.fees)
        self.escrow = EscrowTracker()

        self._proposals: dict[str, Proposal] = {}

    # Origination

    def originate_loan(
        self,
        customer_id: str,
        property_id: str,
        down_payment: MoneyLike,
        processing_fee: MoneyLike,
        annual_rate_percent: MoneyLike,
        target_monthly_payment: MoneyLike,
        today: date,
        payment_due_day: int | None = None,
        purchase_price: MoneyLike | None = None,
        method: PaymentMethod = PaymentMethod.GATEWAY,
        transaction_id: str | None = None,
        notes: str | None = None,
        term_months: int | None = None,
    ) -> Loan:
        """Sell a property on contract.

        The purchase price defaults to the property's list price. Down
        payment and processing fee are recorded as completed payments.
        With ``term_months`` the loan is written on negotiated terms: the
        target payment over that term, instead of the derived term.
        """
        prop = self.ledger.get_property(property_id)
        if prop.status is not PropertyStatus.AVAILABLE:
            raise InvalidLoanStateError(f"Property {property_id} is {prop.status.value}, not available")

        due_day = validate_due_day(payment_due_day or self.config.default_due_day)
        price = to_money(purchase_price if purchase_price is not None else prop.list_price)
        quote: AmortizationQuote
        if term_months is None:
            quote = self.calculator.quote(
                price, down_payment, processing_fee, annual_rate_percent, target_monthly_payment
            )
        else:
            quote = self.calculator.custom_quote(
                price, down_payment, processing_fee, annual_rate_percent, target_monthly_payment, term_months
            )

        loan = Loan(
            loan_id=str(uuid.uuid4()),
            customer_id=customer_id,
            property_id=property_id,
            purchase_price=price,
            down_payment=to_money(down_payment),
            processing_fee=to_money(processing_fee),
            loan_amount=quote.loan_amount,
            annual_interest_rate=to_money(annual_rate_percent),
            term_months=quote.term_months,
            monthly_payment=quote.monthly_payment,
            total_amount=quote.total_amount,
            payment_due_day=due_day,
            balance_remaining=quote.loan_amount,
            next_payment_date=first_payment_date(today, due_day),
            notes=notes,
        )
        self.ledger.add_loan(loan)

        upfront = (
            (PaymentType.DOWN_PAYMENT, loan.down_payment, transaction_id),
            (PaymentType.PROCESSING_FEE, loan.processing_fee, None),
        )
        for payment_type, amount, txn in upfront:
            if amount > 0:
                self.ledger.add_payment(
                    Payment(
                        payment_id=str(uuid.uuid4()),
                        loan_id=loan.loan_id,
                        amount=amount,
                        payment_date=today,
                        method=method,
                        payment_type=payment_type,
                        transaction_id=txn,
                    )
                )

        prop.status = PropertyStatus.PENDING
        prop.updated_at = datetime.now()

        logger.info(
            "Originated loan %s on property %s: %s over %d months at %s%%",
            loan.loan_id, property_id, loan.loan_amount, loan.term_months, loan.annual_interest_rate,
            extra={"loan_id": loan.loan_id, "property_id": property_id},
        )
        self._publish("loan.originated", loan.loan_id, {
            "property_id": property_id,
            "customer_id": customer_id,
            "loan_amount": loan.loan_amount,
            "term_months": loan.term_months,
            "monthly_payment": loan.monthly_payment,
        })
        return loan

    def import_loan(
        self,
        loan: Loan,
        payments: Iterable[Payment] = (),
        tax_payments: Iterable[TaxPayment] = (),
    ) -> Loan:
        """Bring an existing contract and its history into the ledger.

        Imported payments keep their recorded allocation and feed the
        property's escrow counters. The property is marked sold.
        """
        prop = self.ledger.get_property(loan.property_id)
        validate_due_day(loan.payment_due_day)
        self.ledger.add_loan(loan)

        for payment in payments:
            if payment.loan_id != loan.loan_id:
                raise InvalidInputError(f"Payment {payment.payment_id} belongs to loan {payment.loan_id}")
            self.ledger.add_payment(payment)
            self.escrow.record_collection(prop.escrow, payment.allocation)

        for tax_payment in tax_payments:
            self.ledger.add_tax_payment(tax_payment)
            self.escrow.record_tax_payment(prop.escrow, tax_payment.amount)

        prop.status = PropertyStatus.SOLD
        prop.updated_at = datetime.now()
        logger.info(
            "Imported loan %s with %d payments",
            loan.loan_id, len(self.ledger.get_loan_payments(loan.loan_id)),
        )
        return loan

    # Reads

    def delinquency(self, loan_id: str, today: date) -> DelinquencyState:
        """Live overdue state, including the cure amount while curable."""
        loan = self.ledger.get_loan(loan_id)
        state = self._classify(loan, today)
        if loan.status is not LoanStatus.ACTIVE:
            return state
        fees = self.allocator.outstanding_fees(loan, state)
        cure = self.defaults.cure_amount(LoanState.from_loan(loan), self._escrow_schedule(loan), fees, state)
        return replace(state, cure_amount=cure)

    def quote_payment(
        self,
        loan_id: str,
        today: date,
        method: PaymentMethod = PaymentMethod.GATEWAY,
    ) -> PaymentQuote:
        """What the buyer owes for the current period."""
        loan = self.ledger.get_loan(loan_id)
        fees = self.allocator.outstanding_fees(loan, self._classify(loan, today))
        return self.allocator.quote_payment(
            LoanState.from_loan(loan), self._escrow_schedule(loan), fees, method
        )

    # Payments

    def record_payment(
        self,
        loan_id: str,
        amount: MoneyLike,
        payment_date: date,
        method: PaymentMethod,
        transaction_id: str | None = None,
        processing_fee: MoneyLike | None = None,
        notes: str | None = None,
    ) -> Payment:
        """Allocate and persist one payment.

        Raises
        ------
        DuplicateTransactionError
            If ``transaction_id`` was already recorded.
        LoanEngineError
            Any allocation error; the loan is left unchanged.
        """
        with self.ledger.lock_for(loan_id):
            loan = self.ledger.get_loan(loan_id)
            prop = self.ledger.get_property(loan.property_id)
            fees = self.allocator.outstanding_fees(loan, self._classify(loan, payment_date))

            try:
                result = self.allocator.allocate(
                    amount,
                    LoanState.from_loan(loan),
                    EscrowSchedule.from_account(prop.escrow),
                    fees,
                    method,
                    payment_date,
                    processing_fee=processing_fee,
                )
            except LoanEngineError as exc:
                logger.warning(
                    "Rejected payment of %s on loan %s: %s", amount, loan_id, exc, extra={"loan_id": loan_id}
                )
                raise

            payment = Payment(
                payment_id=str(uuid.uuid4()),
                loan_id=loan_id,
                amount=result.amount,
                payment_date=payment_date,
                method=method,
                payment_type=result.payment_type,
                allocation=result.allocation,
                transaction_id=transaction_id,
                notes=notes,
            )
            self.ledger.add_payment(payment)
            self.escrow.record_collection(prop.escrow, result.allocation)

            loan.balance_remaining = result.new_balance
            loan.status = result.new_status
            loan.next_payment_date = result.next_payment_date
            loan.late_fee_waived = False
            loan.notice_fee_owed -= result.allocation.notice_fee
            loan.postal_fee_owed -= result.allocation.postal_fee
            if loan.notice_fee_owed == 0 and loan.postal_fee_owed == 0:
                loan.notice_sent_date = None
                loan.cure_deadline_date = None
            loan.updated_at = datetime.now()

            if result.paid_off:
                prop.status = PropertyStatus.SOLD
                prop.updated_at = loan.updated_at

        logger.info(
            "Recorded %s payment of %s on loan %s: principal=%s interest=%s balance=%s",
            method.value, payment.amount, loan_id, result.allocation.principal,
            result.allocation.interest, result.new_balance,
            extra={"loan_id": loan_id, "payment_id": payment.payment_id},
        )
        self._publish("payment.recorded", loan_id, {
            "payment_id": payment.payment_id,
            "amount": payment.amount,
            "method": method,
            "payment_type": payment.payment_type,
            "principal": result.allocation.principal,
            "interest": result.allocation.interest,
            "new_balance": result.new_balance,
        })
        if result.paid_off:
            logger.info("Loan %s paid off", loan_id, extra={"loan_id": loan_id})
            self._publish("loan.paid_off", loan_id, {"payment_id": payment.payment_id})
        return payment

    # Administrative actions

    def set_payment_due_day(self, loan_id: str, due_day: int, today: date) -> Loan:
        """Move a loan to the 1st or 15th, starting from the next such date."""
        validate_due_day(due_day)
        with self.ledger.lock_for(loan_id):
            loan = self._active_loan(loan_id)
            loan.payment_due_day = due_day
            loan.next_payment_date = next_due_date(today, due_day)
            loan.updated_at = datetime.now()
        logger.info("Loan %s now due on day %d, next %s", loan_id, due_day, loan.next_payment_date)
        return loan

    def toggle_alerts(self, loan_id: str) -> bool:
        """Flip the alerts-disabled flag and return its new value."""
        with self.ledger.lock_for(loan_id):
            loan = self.ledger.get_loan(loan_id)
            if loan.status is LoanStatus.ARCHIVED:
                raise InvalidLoanStateError(f"Loan {loan_id} is archived and read-only")
            loan.alerts_disabled = not loan.alerts_disabled
            loan.updated_at = datetime.now()
        return loan.alerts_disabled

    def waive_late_fee(self, loan_id: str, today: date) -> Loan:
        """Waive the current late fee. Only allowed past the waiver threshold."""
        with self.ledger.lock_for(loan_id):
            loan = self._active_loan(loan_id)
            state = self._classify(loan, today)
            if not state.late_fee_waivable:
                raise InvalidLoanStateError(
                    f"Late fee of loan {loan_id} is not waivable at {state.days_overdue} days overdue"
                )
            loan.late_fee_waived = True
            loan.updated_at = datetime.now()
        logger.info("Waived late fee on loan %s (%d days overdue)", loan_id, state.days_overdue)
        return loan

    def send_notice(
        self,
        loan_id: str,
        notice_date: date,
        postal_method: str,
        postal_cost: MoneyLike,
        tracking_number: str,
        notes: str | None = None,
    ) -> LoanNotice:
        """Record a mailed default/cure notice and the fees it adds."""
        cost = to_money(postal_cost)
        if cost < 0:
            raise InvalidInputError(f"Postal cost cannot be negative, got {cost}")
        if not postal_method or not tracking_number:
            raise InvalidInputError("Postal method and tracking number are required")

        with self.ledger.lock_for(loan_id):
            loan = self._active_loan(loan_id)
            state = self._classify(loan, notice_date)
            if not state.notice_eligible:
                raise InvalidLoanStateError(
                    f"Loan {loan_id} is not eligible for a cure notice "
                    f"({state.days_overdue} days overdue, notice sent {loan.notice_sent_date})"
                )

            notice = LoanNotice(
                loan_id=loan_id,
                notice_date=notice_date,
                postal_method=postal_method,
                postal_cost=cost,
                tracking_number=tracking_number,
                notice_fee=self.config.fees.notice_fee,
                cure_deadline=notice_date + timedelta(days=self.config.fees.cure_period_days),
                notes=notes,
            )
            self.ledger.add_notice(notice)
            loan.notice_sent_date = notice_date
            loan.cure_deadline_date = notice.cure_deadline
            loan.notice_fee_owed += notice.notice_fee
            loan.postal_fee_owed += cost
            loan.updated_at = datetime.now()

        logger.info(
            "Cure notice sent for loan %s, deadline %s", loan_id, notice.cure_deadline, extra={"loan_id": loan_id}
        )
        self._publish("loan.notice_sent", loan_id, {
            "notice_date": notice_date,
            "cure_deadline": notice.cure_deadline,
            "postal_cost": cost,
            "tracking_number": tracking_number,
        })
        return notice

    def record_tax_payment(
        self,
        property_id: str,
        payment_date: date,
        amount: MoneyLike,
        tax_year: int,
        payment_method: str | None = None,
        check_number: str | None = None,
        notes: str | None = None,
    ) -> TaxPayment:
        """Record taxes paid to the county out of escrow."""
        prop = self.ledger.get_property(property_id)
        paid = self.escrow.record_tax_payment(prop.escrow, amount)
        tax_payment = TaxPayment(
            tax_payment_id=str(uuid.uuid4()),
            property_id=property_id,
            payment_date=payment_date,
            amount=paid,
            tax_year=tax_year,
            payment_method=payment_method,
            check_number=check_number,
            notes=notes,
        )
        self.ledger.add_tax_payment(tax_payment)
        logger.info("Recorded %s tax payment of %s for property %s", tax_year, paid, property_id)
        return tax_payment

    def delete_tax_payment(self, tax_payment_id: str) -> TaxPayment:
        tax_payment = self.ledger.remove_tax_payment(tax_payment_id)
        prop = self.ledger.get_property(tax_payment.property_id)
        self.escrow.reverse_tax_payment(prop.escrow, tax_payment.amount)
        return tax_payment

    # Default lifecycle

    def propose_default(
        self,
        loan_id: str,
        recovery_costs: MoneyLike,
        default_date: date,
        notes: str | None = None,
        recompute: bool = False,
    ) -> Proposal:
        """Preview the default record; nothing changes until ``confirm``."""
        loan = self.ledger.get_loan(loan_id)
        record = self._resolve_default(loan, recovery_costs, default_date, notes, recompute)
        return self._propose(LifecycleAction.DEFAULT, loan_id, {
            "net_recovery": record.net_recovery,
            "total_paid": record.total_paid,
            "acquisition_cost": record.acquisition_cost,
            "balance_written_off": record.balance_written_off,
        }, {
            "recovery_costs": recovery_costs,
            "default_date": default_date,
            "notes": notes,
            "recompute": recompute,
        })

    def propose_delete(self, loan_id: str) -> Proposal:
        """Preview a hard delete; nothing changes until ``confirm``."""
        loan = self.ledger.get_loan(loan_id)
        transition(loan.status, LifecycleAction.DELETE)
        return self._propose(LifecycleAction.DELETE, loan_id, {
            "payments_purged": len(self.ledger.get_loan_payments(loan_id)),
            "property_id": loan.property_id,
        })

    def confirm(self, proposal_id: str) -> DefaultRecord | None:
        """Execute a proposed default or delete.

        Returns
        -------
        DefaultRecord | None
            The stored record for a default, ``None`` for a delete.
        """
        proposal = self._proposals.pop(proposal_id, None)
        if proposal is None:
            raise EntityNotFoundError(f"Proposal {proposal_id} not found or already used")

        if proposal.action is LifecycleAction.DEFAULT:
            return self._apply_default(proposal.loan_id, **proposal.params)
        self._apply_delete(proposal.loan_id)
        return None

    def archive(self, loan_id: str) -> Loan:
        return self._move(loan_id, LifecycleAction.ARCHIVE, "loan.archived")

    def unarchive(self, loan_id: str) -> Loan:
        return self._move(loan_id, LifecycleAction.UNARCHIVE, "loan.unarchived")

    # Internals

    def _classify(self, loan: Loan, today: date) -> DelinquencyState:
        return self.classifier.classify(
            loan.next_payment_date, today, loan.alerts_disabled, loan.status, loan.notice_sent_date
        )

    def _escrow_schedule(self, loan: Loan) -> EscrowSchedule:
        return EscrowSchedule.from_account(self.ledger.get_property(loan.property_id).escrow)

    def _active_loan(self, loan_id: str) -> Loan:
        loan = self.ledger.get_loan(loan_id)
        if loan.status is not LoanStatus.ACTIVE:
            raise InvalidLoanStateError(f"Loan {loan_id} is {loan.status.value}")
        return loan

    def _resolve_default(
        self,
        loan: Loan,
        recovery_costs: MoneyLike,
        default_date: date,
        notes: str | None,
        recompute: bool,
    ) -> DefaultRecord:
        prop = self.ledger.get_property(loan.property_id)
        return self.defaults.resolve_default(
            loan,
            total_paid=self.ledger.total_paid(loan.loan_id),
            acquisition_cost=prop.acquisition_cost,
            recovery_costs=recovery_costs,
            default_date=default_date,
            notes=notes,
            recompute=recompute,
        )

    def _apply_default(
        self,
        loan_id: str,
        recovery_costs: MoneyLike,
        default_date: date,
        notes: str | None,
        recompute: bool,
    ) -> DefaultRecord:
        with self.ledger.lock_for(loan_id):
            loan = self.ledger.get_loan(loan_id)
            record = self._resolve_default(loan, recovery_costs, default_date, notes, recompute)
            already_defaulted = loan.status is LoanStatus.DEFAULTED
            loan.status = LoanStatus.DEFAULTED
            loan.default_record = record
            loan.alerts_disabled = True
            loan.updated_at = datetime.now()
            if not already_defaulted:
                self._release_property(loan)

        self._publish("loan.defaulted", loan_id, {
            "default_date": record.default_date,
            "net_recovery": record.net_recovery,
            "recovery_costs": record.recovery_costs,
            "balance_written_off": record.balance_written_off,
        })
        return record

    def _apply_delete(self, loan_id: str) -> None:
        with self.ledger.lock_for(loan_id):
            loan = self.ledger.get_loan(loan_id)
            transition(loan.status, LifecycleAction.DELETE)
            prop = self.ledger.get_property(loan.property_id)
            purged = self.ledger.delete_loan(loan_id)
            for payment in purged:
                self.escrow.reverse_collection(prop.escrow, payment.allocation)
            self._release_property(loan)

        logger.warning(
            "Deleted loan %s and purged %d payments", loan_id, len(purged), extra={"loan_id": loan_id}
        )
        self._publish("loan.deleted", loan_id, {"payments_purged": len(purged)})

    def _release_property(self, loan: Loan) -> None:
        """Put the loan's property back on the market unless another loan holds it."""
        holders = [
            other.loan_id
            for other in self.ledger.iter_loans()
            if other.property_id == loan.property_id
            and other.loan_id != loan.loan_id
            and other.status in (LoanStatus.ACTIVE, LoanStatus.PAID_OFF)
        ]
        if holders:
            logger.info(
                "Property %s stays with loan %s", loan.property_id, holders[0],
                extra={"loan_id": loan.loan_id, "property_id": loan.property_id},
            )
            return
        prop = self.ledger.get_property(loan.property_id)
        prop.status = PropertyStatus.AVAILABLE
        prop.updated_at = datetime.now()

    def _move(self, loan_id: str, action: LifecycleAction, event_type: str) -> Loan:
        with self.ledger.lock_for(loan_id):
            loan = self.ledger.get_loan(loan_id)
            new_status = transition(loan.status, action)
            if new_status is None:
                raise InvalidLoanStateError(f"Cannot {action.value.lower()} loan {loan_id} by a status change")
            loan.status = new_status
            loan.updated_at = datetime.now()
        logger.info("Loan %s is now %s", loan_id, loan.status.value, extra={"loan_id": loan_id})
        self._publish(event_type, loan_id, {"status": loan.status})
        return loan

    def _propose(
        self,
        action: LifecycleAction,
        loan_id: str,
        preview: dict[str, Any],
        params: dict[str, Any] | None = None,
    ) -> Proposal:
        proposal = Proposal(
            proposal_id=str(uuid.uuid4()),
            action=action,
            loan_id=loan_id,
            preview=preview,
            params=params or {},
        )
        self._proposals[proposal.proposal_id] = proposal
        return proposal

    def _publish(self, event_type: str, subject: str, data: dict[str, Any]) -> None:
        if not self.sinks:
            return
        event = Event(
            event_id=str(uuid.uuid4()),
            event_type=event_type,
            event_time=datetime.now(),
            source=EVENT_SOURCE,
            subject=subject,
            data=data,
        )
        topic = f"{self.config.output.topic_prefix}.loan-events"
        for sink in self.sinks:
            try:
                sink.write_batch(topic, [event])
            except SinkError:
                # Ledger change is already committed
                logger.exception(
                    "Failed to publish %s for %s", event_type, subject,
                    extra={"loan_id": subject, "event_type": event_type},
                )
