"""Split an incoming payment across fee, interest, escrow and principal buckets.

Buckets are filled in a fixed priority order, each capped at what is owed:

    gateway and convenience fees (gateway only) -> notice fee -> postal fee -> late fee
    -> interest -> tax escrow -> HOA escrow -> principal

Interest is simple interest for one period on the pre-payment balance.
Principal takes whatever is left, including any rounding residual, so the
balance reaches exactly zero at payoff.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from loan_engine.config import FeeSchedule, GatewayFeeConfig
from loan_engine.engine.dates import manual_next_due_date, next_due_date
from loan_engine.engine.delinquency import DelinquencyState
from loan_engine.exceptions import (
    AlreadyPaidOffError,
    InvalidInputError,
    InvalidLoanStateError,
    PaymentBelowMinimumError,
    PaymentExceedsBalanceError,
)
from loan_engine.models.enums import LoanStatus, PaymentMethod, PaymentType
from loan_engine.models.loan import Loan
from loan_engine.models.payment import PaymentAllocation
from loan_engine.models.property import EscrowAccount
from loan_engine.money import ZERO, MoneyLike, monthly_rate, round_cents, take, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoanState:
    """Snapshot of the loan fields the allocation reads."""

    loan_id: str
    balance: Decimal
    annual_interest_rate: Decimal
    monthly_payment: Decimal
    status: LoanStatus
    next_payment_date: date | None
    payment_due_day: int

    @classmethod
    def from_loan(cls, loan: Loan) -> "LoanState":
        return cls(
            loan_id=loan.loan_id,
            balance=loan.balance_remaining,
            annual_interest_rate=loan.annual_interest_rate,
            monthly_payment=loan.monthly_payment,
            status=loan.status,
            next_payment_date=loan.next_payment_date,
            payment_due_day=loan.payment_due_day,
        )


@dataclass(frozen=True)
class EscrowSchedule:
    """Monthly pass-through amounts for the property."""

    monthly_tax: Decimal = ZERO
    monthly_hoa: Decimal = ZERO

    @classmethod
    def from_account(cls, account: EscrowAccount | None) -> "EscrowSchedule":
        if account is None:
            return cls()
        return cls(monthly_tax=account.monthly_tax_portion, monthly_hoa=round_cents(account.monthly_hoa_fee))

    @property
    def total(self) -> Decimal:
        return self.monthly_tax + self.monthly_hoa


@dataclass(frozen=True)
class OutstandingFees:
    """Flagged fees owed on top of the installment."""

    notice_fee: Decimal = ZERO
    postal_fee: Decimal = ZERO
    late_fee: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.notice_fee + self.postal_fee + self.late_fee


@dataclass(frozen=True)
class AllocationResult:
    """Outcome of allocating one payment. Applied to the loan by the caller."""

    loan_id: str
    amount: Decimal
    allocation: PaymentAllocation
    payment_type: PaymentType
    previous_balance: Decimal
    new_balance: Decimal
    new_status: LoanStatus
    next_payment_date: date | None
    notice_fee_cleared: bool
    postal_fee_cleared: bool
    late_fee_cleared: bool

    @property
    def paid_off(self) -> bool:
        return self.new_status is LoanStatus.PAID_OFF


@dataclass(frozen=True)
class PaymentQuote:
    """Amount due this period, as shown to the buyer before paying."""

    loan_payment: Decimal
    monthly_tax: Decimal
    monthly_hoa: Decimal
    late_fee: Decimal
    notice_fee: Decimal
    postal_fee: Decimal
    subtotal: Decimal
    gateway_fee: Decimal
    convenience_fee: Decimal
    total: Decimal
    is_payoff: bool

    @property
    def processing_fee(self) -> Decimal:
        return self.gateway_fee + self.convenience_fee


class PaymentAllocationEngine:
    """Allocate payments against a loan's current state.

    The engine performs no I/O and never mutates its inputs; callers persist
    the returned ``AllocationResult``.

    Parameters
    ----------
    fees : FeeSchedule | None
        Late fee policy used by ``outstanding_fees``.
    gateway : GatewayFeeConfig | None
        Surcharge policy for online payments.
    """

    def __init__(
        self,
        fees: FeeSchedule | None = None,
        gateway: GatewayFeeConfig | None = None,
    ) -> None:
        self.fees = fees or FeeSchedule()
        self.gateway = gateway or GatewayFeeConfig()

    def outstanding_fees(self, loan: Loan, delinquency: DelinquencyState) -> OutstandingFees:
        """Fees owed on ``loan`` given its live delinquency state."""
        late_fee = ZERO
        if delinquency.late_fee_applies and not loan.late_fee_waived:
            late_fee = loan.late_fee_amount if loan.late_fee_amount is not None else self.fees.late_fee
        return OutstandingFees(
            notice_fee=round_cents(loan.notice_fee_owed),
            postal_fee=round_cents(loan.postal_fee_owed),
            late_fee=round_cents(late_fee),
        )

    def payoff_amount(self, state: LoanState, fees: OutstandingFees) -> Decimal:
        """Net amount that closes the loan: balance plus flagged fees."""
        return state.balance + fees.total

    def gateway_fee(self, subtotal: Decimal) -> Decimal:
        """Card processing fee on a subtotal, excluding the convenience fee."""
        return round_cents(subtotal * self.gateway.percent + self.gateway.fixed)

    def split_gateway_amount(self, gross: Decimal) -> tuple[Decimal, Decimal]:
        """Split a gross card charge into (net, processing fee)."""
        net = round_cents(
            (gross - self.gateway.fixed - self.gateway.convenience_fee) / (1 + self.gateway.percent)
        )
        return net, gross - net

    def quote_payment(
        self,
        state: LoanState,
        escrow: EscrowSchedule,
        fees: OutstandingFees,
        method: PaymentMethod = PaymentMethod.GATEWAY,
    ) -> PaymentQuote:
        """Amount the buyer owes for the current period.

        Once the balance fits in one installment, the quote is the payoff
        amount instead: balance plus owed fees, with no interest or escrow.
        """
        regular = state.monthly_payment + escrow.total + fees.total
        payoff = self.payoff_amount(state, fees)
        is_payoff = state.balance <= state.monthly_payment

        if is_payoff:
            loan_payment, monthly_tax, monthly_hoa = state.balance, ZERO, ZERO
            subtotal = payoff
        else:
            loan_payment, monthly_tax, monthly_hoa = state.monthly_payment, escrow.monthly_tax, escrow.monthly_hoa
            subtotal = regular

        if method.is_manual:
            gateway_fee = convenience_fee = ZERO
        else:
            gateway_fee = self.gateway_fee(subtotal)
            convenience_fee = round_cents(self.gateway.convenience_fee)

        return PaymentQuote(
            loan_payment=loan_payment,
            monthly_tax=monthly_tax,
            monthly_hoa=monthly_hoa,
            late_fee=fees.late_fee,
            notice_fee=fees.notice_fee,
            postal_fee=fees.postal_fee,
            subtotal=subtotal,
            gateway_fee=gateway_fee,
            convenience_fee=convenience_fee,
            total=subtotal + gateway_fee + convenience_fee,
            is_payoff=is_payoff,
        )

    def allocate(
        self,
        amount: MoneyLike,
        state: LoanState,
        escrow: EscrowSchedule,
        fees: OutstandingFees,
        method: PaymentMethod,
        payment_date: date,
        processing_fee: MoneyLike | None = None,
    ) -> AllocationResult:
        """Allocate ``amount`` and compute the loan's new state.

        Parameters
        ----------
        amount : MoneyLike
            Gross amount received.
        state : LoanState
            Loan snapshot before the payment.
        escrow : EscrowSchedule
            Monthly tax and HOA portions of the property.
        fees : OutstandingFees
            Notice, postal and late fees currently owed.
        method : PaymentMethod
            Gateway payments carry a processing fee; manual ones do not.
        payment_date : date
            Date the money was received.
        processing_fee : MoneyLike | None
            Gateway surcharge included in ``amount``. Derived from the gross
            amount when omitted. Ignored for manual methods.

        Returns
        -------
        AllocationResult
            Per-bucket split, new balance, status and due date.
        """
        gross = to_money(amount)
        if gross <= 0:
            raise InvalidInputError(f"Payment amount must be positive, got {gross}")
        self._check_payable(state)

        gateway_fee, convenience_fee = self._surcharge(gross, method, processing_fee)
        surcharge = gateway_fee + convenience_fee
        net = gross - surcharge
        if net <= 0:
            raise InvalidInputError(f"Payment {gross} does not exceed the processing fee {surcharge}")

        payoff = self.payoff_amount(state, fees)
        # A regular installment may exceed balance + fees by its interest and
        # escrow; the principal check below still caps it.
        if net > payoff and state.balance <= state.monthly_payment:
            raise PaymentExceedsBalanceError(
                f"Payment {net} exceeds the payoff amount {payoff} of loan {state.loan_id}"
            )

        if net == payoff:
            allocation = PaymentAllocation(
                gateway_fee=gateway_fee,
                convenience_fee=convenience_fee,
                notice_fee=fees.notice_fee,
                postal_fee=fees.postal_fee,
                late_fee=fees.late_fee,
                principal=state.balance,
            )
            payment_type = PaymentType.PAYOFF
        else:
            if net < state.monthly_payment:
                raise PaymentBelowMinimumError(
                    f"Payment {net} is below the monthly payment {state.monthly_payment} "
                    f"(payoff amount is {payoff})"
                )
            allocation = self._cascade(net, gateway_fee, convenience_fee, state, escrow, fees)
            payment_type = PaymentType.MONTHLY_PAYMENT

        if allocation.principal > state.balance:
            raise PaymentExceedsBalanceError(
                f"Principal {allocation.principal} exceeds balance {state.balance} of loan {state.loan_id}"
            )

        new_balance = state.balance - allocation.principal
        paid_off = new_balance == 0
        result = AllocationResult(
            loan_id=state.loan_id,
            amount=gross,
            allocation=allocation,
            payment_type=payment_type,
            previous_balance=state.balance,
            new_balance=new_balance,
            new_status=LoanStatus.PAID_OFF if paid_off else LoanStatus.ACTIVE,
            next_payment_date=None if paid_off else self._next_due(state, method, payment_date),
            notice_fee_cleared=fees.notice_fee > 0 and allocation.notice_fee == fees.notice_fee,
            postal_fee_cleared=fees.postal_fee > 0 and allocation.postal_fee == fees.postal_fee,
            late_fee_cleared=fees.late_fee > 0 and allocation.late_fee == fees.late_fee,
        )
        logger.debug(
            "Allocated %s on loan %s: interest=%s principal=%s balance %s -> %s",
            gross, state.loan_id, allocation.interest, allocation.principal,
            state.balance, new_balance,
        )
        return result

    def _check_payable(self, state: LoanState) -> None:
        if state.status is LoanStatus.PAID_OFF or (
            state.status is LoanStatus.ACTIVE and state.balance <= 0
        ):
            raise AlreadyPaidOffError(f"Loan {state.loan_id} is already paid off")
        if state.status is not LoanStatus.ACTIVE:
            raise InvalidLoanStateError(
                f"Loan {state.loan_id} is {state.status.value} and cannot accept payments"
            )

    def _surcharge(
        self,
        gross: Decimal,
        method: PaymentMethod,
        processing_fee: MoneyLike | None,
    ) -> tuple[Decimal, Decimal]:
        """Split the surcharge into (card gateway fee, convenience fee).

        The convenience fee is taken first, up to its configured amount.
        """
        if method.is_manual:
            return ZERO, ZERO
        if processing_fee is None:
            fee = self.split_gateway_amount(gross)[1]
        else:
            fee = to_money(processing_fee)
        if fee < 0:
            raise InvalidInputError(f"Processing fee cannot be negative, got {fee}")
        convenience_fee = min(fee, round_cents(self.gateway.convenience_fee))
        return fee - convenience_fee, convenience_fee

    def _cascade(
        self,
        net: Decimal,
        gateway_fee: Decimal,
        convenience_fee: Decimal,
        state: LoanState,
        escrow: EscrowSchedule,
        fees: OutstandingFees,
    ) -> PaymentAllocation:
        remaining = net
        notice_fee, remaining = take(remaining, fees.notice_fee)
        postal_fee, remaining = take(remaining, fees.postal_fee)
        late_fee, remaining = take(remaining, fees.late_fee)
        interest_due = round_cents(state.balance * monthly_rate(state.annual_interest_rate))
        interest, remaining = take(remaining, interest_due)
        tax_escrow, remaining = take(remaining, escrow.monthly_tax)
        hoa_escrow, remaining = take(remaining, escrow.monthly_hoa)

        return PaymentAllocation(
            gateway_fee=gateway_fee,
            convenience_fee=convenience_fee,
            notice_fee=notice_fee,
            postal_fee=postal_fee,
            late_fee=late_fee,
            interest=interest,
            tax_escrow=tax_escrow,
            hoa_escrow=hoa_escrow,
            principal=remaining,
        )

    @staticmethod
    def _next_due(state: LoanState, method: PaymentMethod, payment_date: date) -> date:
        if method.is_manual or state.next_payment_date is None:
            return manual_next_due_date(payment_date)
        return next_due_date(state.next_payment_date, state.payment_due_day)
