"""Sample portfolio generator.

Originates loans through ``LoanServicer`` and replays a payment history for
each one, so every generated record went through the real engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from loan_engine.exceptions import PaymentTooLowError
from loan_engine.generators.base import BaseGenerator
from loan_engine.generators.parties import CustomerGenerator, PropertyGenerator
from loan_engine.models import Loan, LoanStatus, PaymentMethod
from loan_engine.money import ZERO
from loan_engine.services import LoanServicer

logger = logging.getLogger(__name__)


class PaymentBehavior(str, Enum):
    """How a simulated buyer pays."""

    ON_TIME = "on_time"
    LATE = "late"
    DEFAULTER = "defaulter"
    EARLY_PAYOFF = "early_payoff"


@dataclass
class PortfolioSummary:
    """Counts of what a generation run produced."""

    loans: int = 0
    payments: int = 0
    notices: int = 0
    defaults: int = 0
    payoffs: int = 0


class PortfolioGenerator(BaseGenerator):
    """Populate a servicer with customers, properties and loan histories.

    Parameters
    ----------
    servicer : LoanServicer
        Target servicer; its ledger receives every generated entity.
    seed : int | None
        Random seed for reproducibility.
    """

    BEHAVIORS = list(PaymentBehavior)
    BEHAVIOR_WEIGHTS = [0.55, 0.25, 0.12, 0.08]

    # Annual rate in percent
    RATES = (Decimal("9.9"), Decimal("12.9"), Decimal("14.9"), Decimal("18"))
    TERMS = (36, 48, 60, 84, 120)

    MANUAL_METHODS = [PaymentMethod.CHECK, PaymentMethod.MONEY_ORDER, PaymentMethod.CASH]

    def __init__(self, servicer: LoanServicer, seed: int | None = None) -> None:
        super().__init__(seed)
        self.servicer = servicer
        self.customers = CustomerGenerator(seed=seed)
        self.properties = PropertyGenerator(seed=None if seed is None else seed + 1)

    def generate(self, num_loans: int, start: date, end: date) -> PortfolioSummary:
        """Originate ``num_loans`` loans between ``start`` and ``end`` and simulate them up to ``end``.

        Returns
        -------
        PortfolioSummary
            Counts of generated records.
        """
        summary = PortfolioSummary()
        span = max((end - start).days, 1)

        for _ in range(num_loans):
            customer = self.customers.generate()
            prop = self.properties.generate()
            self.servicer.ledger.add_customer(customer)
            self.servicer.ledger.add_property(prop)

            originated = start + timedelta(days=self.rng.randint(0, span))
            loan = self._originate(customer.customer_id, prop.property_id, prop.list_price, originated)
            if loan is None:
                continue
            summary.loans += 1

            behavior = self.weighted(self.BEHAVIORS, self.BEHAVIOR_WEIGHTS)
            self._simulate(loan, behavior, end, summary)

        logger.info(
            "Generated %d loans, %d payments, %d notices, %d defaults, %d payoffs",
            summary.loans, summary.payments, summary.notices, summary.defaults, summary.payoffs,
        )
        return summary

    def _originate(self, customer_id: str, property_id: str, price: Decimal, today: date) -> Loan | None:
        down = (price * Decimal(self.rng.choice(["0.05", "0.10", "0.15", "0.20"]))).quantize(Decimal("1"))
        fee = self.whole_dollars(0, 250, 50)
        rate = self.rng.choice(self.RATES)
        calculator = self.servicer.calculator
        target = calculator.payment_for_term(calculator.loan_amount(price, down, fee), rate, self.rng.choice(self.TERMS))

        try:
            return self.servicer.originate_loan(
                customer_id=customer_id,
                property_id=property_id,
                down_payment=down,
                processing_fee=fee,
                annual_rate_percent=rate,
                target_monthly_payment=target,
                today=today,
                payment_due_day=self.rng.choice([1, 15]),
                method=self.rng.choice([PaymentMethod.GATEWAY, PaymentMethod.CHECK]),
            )
        except PaymentTooLowError as exc:
            logger.debug("Skipped property %s: %s", property_id, exc)
            return None

    def _simulate(self, loan: Loan, behavior: PaymentBehavior, end: date, summary: PortfolioSummary) -> None:
        stop_after = self.rng.randint(2, 10) if behavior is PaymentBehavior.DEFAULTER else None
        payoff_after = self.rng.randint(3, 12) if behavior is PaymentBehavior.EARLY_PAYOFF else None
        method = self.rng.choice([PaymentMethod.GATEWAY, self.rng.choice(self.MANUAL_METHODS)])
        made = 0

        while loan.status is LoanStatus.ACTIVE and loan.next_payment_date is not None:
            due = loan.next_payment_date
            if stop_after is not None and made >= stop_after:
                self._default(loan, due, end, summary)
                return

            pay_date = due
            if behavior is PaymentBehavior.LATE and self.rng.random() < 0.4:
                pay_date = due + timedelta(days=self.rng.randint(3, 20))
            if pay_date > end:
                return

            quote = self.servicer.quote_payment(loan.loan_id, pay_date, method)
            if payoff_after is not None and made >= payoff_after:
                fees = self.servicer.allocator.outstanding_fees(loan, self.servicer.delinquency(loan.loan_id, pay_date))
                net = loan.balance_remaining + fees.total
                surcharge = ZERO if method.is_manual else self.servicer.allocator.gateway_fee(net) + quote.convenience_fee
                self.servicer.record_payment(loan.loan_id, net + surcharge, pay_date, method, processing_fee=surcharge)
            else:
                self.servicer.record_payment(
                    loan.loan_id, quote.total, pay_date, method, processing_fee=quote.processing_fee
                )
            made += 1
            summary.payments += 1

        if loan.status is LoanStatus.PAID_OFF:
            summary.payoffs += 1

    def _default(self, loan: Loan, due: date, end: date, summary: PortfolioSummary) -> None:
        fees = self.servicer.config.fees
        notice_date = due + timedelta(days=fees.notice_threshold_days + self.rng.randint(0, 10))
        if notice_date > end:
            return
        self.servicer.send_notice(
            loan.loan_id,
            notice_date,
            postal_method="Certified Mail",
            postal_cost=Decimal("8.95"),
            tracking_number=self.fake.bothify("9400 #### #### #### ####"),
        )
        summary.notices += 1

        default_date = notice_date + timedelta(days=fees.cure_period_days + self.rng.randint(1, 14))
        if default_date > end:
            return
        proposal = self.servicer.propose_default(
            loan.loan_id,
            recovery_costs=self.whole_dollars(0, 900, 50),
            default_date=default_date,
            notes="Buyer stopped paying",
        )
        self.servicer.confirm(proposal.proposal_id)
        summary.defaults += 1

