"""Loan term derivation from a target monthly payment."""

import logging
from dataclasses import dataclass
from decimal import ROUND_CEILING, Decimal

from loan_engine.config import AmortizationConfig
from loan_engine.exceptions import InvalidInputError, PaymentTooLowError
from loan_engine.money import ZERO, MoneyLike, ceil_cents, monthly_rate, round_cents, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AmortizationQuote:
    """Fixed terms of a loan at origination."""

    loan_amount: Decimal
    term_months: int
    monthly_payment: Decimal
    total_amount: Decimal
    monthly_rate: Decimal


@dataclass(frozen=True)
class ScheduledInstallment:
    """One row of a projected amortization schedule."""

    number: int
    payment: Decimal
    interest: Decimal
    principal: Decimal
    balance: Decimal


def remaining_balance(
    loan_amount: Decimal,
    rate: Decimal,
    payment: Decimal,
    months: int,
) -> Decimal:
    """Balance after ``months`` regular installments, as the loan is serviced.

    Each month charges ``round_cents(balance * rate)`` interest and applies
    the rest of the payment to principal. The result goes negative once the
    loan is overpaid.
    """
    balance = loan_amount
    for _ in range(months):
        balance -= payment - round_cents(balance * rate)
    return balance


class AmortizationCalculator:
    """Derive principal, term and total for a new loan.

    Parameters
    ----------
    config : AmortizationConfig | None
        Payment floor and the term used for the minimum-payment hint.
    """

    def __init__(self, config: AmortizationConfig | None = None) -> None:
        self.config = config or AmortizationConfig()

    def loan_amount(
        self,
        purchase_price: MoneyLike,
        down_payment: MoneyLike = 0,
        processing_fee: MoneyLike = 0,
    ) -> Decimal:
        """Financed amount: price minus down payment plus processing fee."""
        price = to_money(purchase_price)
        down = to_money(down_payment)
        fee = to_money(processing_fee)

        if price <= 0:
            raise InvalidInputError(f"Purchase price must be positive, got {price}")
        if down < 0:
            raise InvalidInputError(f"Down payment cannot be negative, got {down}")
        if fee < 0:
            raise InvalidInputError(f"Processing fee cannot be negative, got {fee}")

        amount = price - down + fee
        if amount <= 0:
            raise InvalidInputError(f"Loan amount must be positive, got {amount}")
        return amount

    def quote(
        self,
        purchase_price: MoneyLike,
        down_payment: MoneyLike,
        processing_fee: MoneyLike,
        annual_rate_percent: MoneyLike,
        target_monthly_payment: MoneyLike,
    ) -> AmortizationQuote:
        """Smallest whole-month term that retires the loan at the target payment.

        Parameters
        ----------
        purchase_price : MoneyLike
            Sale price of the property.
        down_payment : MoneyLike
            Upfront payment, may be zero.
        processing_fee : MoneyLike
            Fee rolled into the financed amount, may be zero.
        annual_rate_percent : MoneyLike
            Annual interest rate in percent.
        target_monthly_payment : MoneyLike
            Payment the buyer wants to make each month.

        Returns
        -------
        AmortizationQuote
            Loan amount, term, payment and total.

        Raises
        ------
        InvalidInputError
            On non-positive amounts or a payment below the configured floor.
        PaymentTooLowError
            When the payment never covers the first month's interest.
        """
        amount = self.loan_amount(purchase_price, down_payment, processing_fee)
        rate = self._rate(annual_rate_percent)
        payment = self._target(target_monthly_payment)

        self._check_amortizes(amount, rate, payment)

        if rate == 0:
            term = int((amount / payment).to_integral_value(rounding=ROUND_CEILING))
        else:
            k = 1 - (amount * rate) / payment
            estimate = (-k.ln()) / (1 + rate).ln()
            term = int(estimate.to_integral_value(rounding=ROUND_CEILING))
            term = self._smallest_term(amount, rate, payment, max(term, 1))

        return AmortizationQuote(
            loan_amount=amount,
            term_months=term,
            monthly_payment=payment,
            total_amount=round_cents(payment * term),
            monthly_rate=rate,
        )

    def custom_quote(
        self,
        purchase_price: MoneyLike,
        down_payment: MoneyLike,
        processing_fee: MoneyLike,
        annual_rate_percent: MoneyLike,
        monthly_payment: MoneyLike,
        term_months: int,
    ) -> AmortizationQuote:
        """Quote for negotiated terms: the agreed payment over the agreed term.

        The term is taken as given and the total is ``payment * term``. The
        payment must still cover the first month's interest.
        """
        if term_months <= 0:
            raise InvalidInputError(f"Term must be positive, got {term_months}")
        amount = self.loan_amount(purchase_price, down_payment, processing_fee)
        rate = self._rate(annual_rate_percent)
        payment = self._target(monthly_payment)
        self._check_amortizes(amount, rate, payment)

        return AmortizationQuote(
            loan_amount=amount,
            term_months=term_months,
            monthly_payment=payment,
            total_amount=round_cents(payment * term_months),
            monthly_rate=rate,
        )

    def minimum_payment(self, loan_amount: Decimal, rate: Decimal) -> Decimal:
        """Payment that retires the loan over the floor term (30 years by default)."""
        if rate == 0:
            return ceil_cents(loan_amount / self.config.floor_term_months)
        factor = 1 - (1 + rate) ** -self.config.floor_term_months
        return ceil_cents(loan_amount * rate / factor)

    def payment_for_term(
        self,
        loan_amount: MoneyLike,
        annual_rate_percent: MoneyLike,
        term_months: int,
    ) -> Decimal:
        """Level payment for a fixed term, never below the payment floor."""
        if term_months <= 0:
            raise InvalidInputError(f"Term must be positive, got {term_months}")
        amount = to_money(loan_amount)
        if amount <= 0:
            raise InvalidInputError(f"Loan amount must be positive, got {amount}")
        rate = self._rate(annual_rate_percent)

        if rate == 0:
            payment = amount / term_months
        else:
            growth = (1 + rate) ** term_months
            payment = amount * (rate * growth) / (growth - 1)

        return max(round_cents(payment), self.config.min_monthly_payment)

    def schedule(
        self,
        loan_amount: MoneyLike,
        annual_rate_percent: MoneyLike,
        monthly_payment: MoneyLike,
    ) -> list[ScheduledInstallment]:
        """Projected cent-rounded schedule.

        Each regular row pays ``round(balance * rate)`` interest and the rest
        of the payment as principal. The last row pays exactly the remaining
        balance.
        """
        balance = to_money(loan_amount)
        rate = self._rate(annual_rate_percent)
        payment = self._target(monthly_payment)

        rows: list[ScheduledInstallment] = []
        while balance > 0:
            number = len(rows) + 1
            if balance <= payment:
                rows.append(ScheduledInstallment(number, balance, ZERO, balance, ZERO))
                break

            interest = round_cents(balance * rate)
            principal = payment - interest
            if principal <= 0:
                raise PaymentTooLowError(
                    f"Monthly payment {payment} does not cover interest of {interest}",
                    minimum_payment=self.minimum_payment(balance, rate),
                )
            balance -= principal
            rows.append(ScheduledInstallment(number, payment, interest, principal, balance))

        return rows

    def _rate(self, annual_rate_percent: MoneyLike) -> Decimal:
        rate = monthly_rate(annual_rate_percent)
        if rate < 0:
            raise InvalidInputError(f"Interest rate cannot be negative, got {annual_rate_percent}")
        return rate

    def _target(self, target_monthly_payment: MoneyLike) -> Decimal:
        payment = to_money(target_monthly_payment)
        if payment <= 0:
            raise InvalidInputError(f"Monthly payment must be positive, got {payment}")
        if payment < self.config.min_monthly_payment:
            raise InvalidInputError(
                f"Monthly payment {payment} is below the minimum of "
                f"{self.config.min_monthly_payment}"
            )
        return payment

    def _check_amortizes(self, amount: Decimal, rate: Decimal, payment: Decimal) -> None:
        if rate == 0 or payment > round_cents(amount * rate):
            return
        minimum = self.minimum_payment(amount, rate)
        logger.info(
            "Payment %s never amortizes %s at %s/month (minimum %s)",
            payment, amount, rate, minimum,
        )
        raise PaymentTooLowError(
            f"Monthly payment {payment} does not cover interest of "
            f"{round_cents(amount * rate)}; minimum sustaining payment is {minimum}",
            minimum_payment=minimum,
        )

    @staticmethod
    def _smallest_term(amount: Decimal, rate: Decimal, payment: Decimal, term: int) -> int:
        # The loan closes in the first month that starts with a balance the
        # payment covers; that month is a payoff and carries no interest.
        # The log estimate ignores both this and cent rounding.
        while term > 1 and remaining_balance(amount, rate, payment, term - 2) <= payment:
            term -= 1
        while remaining_balance(amount, rate, payment, term - 1) > payment:
            term += 1
        return term
