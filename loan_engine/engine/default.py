"""Cure amounts, default lifecycle and recovery accounting."""

import logging
import math
from datetime import date
from decimal import Decimal

from loan_engine.config import FeeSchedule
from loan_engine.engine.allocation import EscrowSchedule, LoanState, OutstandingFees
from loan_engine.engine.delinquency import DelinquencyState
from loan_engine.exceptions import InvalidInputError, InvalidLoanStateError, IrreversibleActionError
from loan_engine.models.enums import LifecycleAction, LoanStatus
from loan_engine.models.loan import DefaultRecord, Loan
from loan_engine.money import ZERO, MoneyLike, round_cents, to_money

logger = logging.getLogger(__name__)

# None marks the terminal "deleted" state.
TRANSITIONS: dict[tuple[LoanStatus, LifecycleAction], LoanStatus | None] = {
    (LoanStatus.ACTIVE, LifecycleAction.PAY_OFF): LoanStatus.PAID_OFF,
    (LoanStatus.ACTIVE, LifecycleAction.DEFAULT): LoanStatus.DEFAULTED,
    (LoanStatus.DEFAULTED, LifecycleAction.ARCHIVE): LoanStatus.ARCHIVED,
    (LoanStatus.ARCHIVED, LifecycleAction.UNARCHIVE): LoanStatus.DEFAULTED,
    (LoanStatus.DEFAULTED, LifecycleAction.DELETE): None,
    (LoanStatus.ARCHIVED, LifecycleAction.DELETE): None,
}


def transition(status: LoanStatus, action: LifecycleAction) -> LoanStatus | None:
    """Next status for ``action``, or ``None`` when the loan is deleted.

    Raises
    ------
    IrreversibleActionError
        When defaulting a loan that is already defaulted or archived.
    InvalidLoanStateError
        For any other move the lifecycle does not allow.
    """
    key = (status, action)
    if key in TRANSITIONS:
        return TRANSITIONS[key]
    if action is LifecycleAction.DEFAULT and status in (LoanStatus.DEFAULTED, LoanStatus.ARCHIVED):
        raise IrreversibleActionError(f"Loan is already {status.value}")
    raise InvalidLoanStateError(f"Cannot {action.value.lower()} a {status.value} loan")


class DefaultResolutionEngine:
    """Compute cure amounts while a loan is curable and recovery once it is not.

    Parameters
    ----------
    fees : FeeSchedule | None
        Supplies the number of days per missed installment.
    """

    def __init__(self, fees: FeeSchedule | None = None) -> None:
        self.fees = fees or FeeSchedule()

    def missed_installments(self, days_overdue: int) -> int:
        """Installments implied by the number of days past due."""
        if days_overdue <= 0:
            return 0
        return math.ceil(days_overdue / self.fees.days_per_installment)

    def cure_amount(
        self,
        state: LoanState,
        escrow: EscrowSchedule,
        fees: OutstandingFees,
        delinquency: DelinquencyState,
    ) -> Decimal:
        """Amount that brings an overdue loan back to current.

        Missed installments (payment plus escrow) and every outstanding fee,
        not the full remaining balance. The loan portion never exceeds the
        balance itself.
        """
        if state.status is not LoanStatus.ACTIVE:
            raise InvalidLoanStateError(f"Loan {state.loan_id} is {state.status.value} and no longer curable")

        missed = self.missed_installments(delinquency.days_overdue)
        loan_portion = min(state.monthly_payment * missed, state.balance)
        return round_cents(loan_portion + escrow.total * missed + fees.total)

    @staticmethod
    def net_recovery(
        total_paid: MoneyLike,
        acquisition_cost: MoneyLike,
        recovery_costs: MoneyLike,
    ) -> Decimal:
        """Collected minus property cost minus recovery costs. May be negative."""
        return to_money(total_paid) - to_money(acquisition_cost) - to_money(recovery_costs)

    def resolve_default(
        self,
        loan: Loan,
        total_paid: MoneyLike,
        acquisition_cost: MoneyLike,
        recovery_costs: MoneyLike,
        default_date: date,
        notes: str | None = None,
        recompute: bool = False,
    ) -> DefaultRecord:
        """Build the default record for ``loan``.

        The remaining balance is written off, not counted as recovery.

        Parameters
        ----------
        loan : Loan
            Loan being defaulted (ACTIVE), or recomputed (DEFAULTED).
        total_paid : MoneyLike
            Sum of all completed payments, down payment included.
        acquisition_cost : MoneyLike
            What the lender paid for the property.
        recovery_costs : MoneyLike
            Legal, cleanup and repossession costs.
        default_date : date
            Effective default date.
        notes : str | None
            Free-form admin notes.
        recompute : bool
            Allow replacing the record of an already defaulted loan.

        Raises
        ------
        IrreversibleActionError
            On a second default without ``recompute``, or on an archived loan.
        """
        costs = to_money(recovery_costs)
        if costs < 0:
            raise InvalidInputError(f"Recovery costs cannot be negative, got {costs}")

        if loan.status is LoanStatus.ARCHIVED:
            raise IrreversibleActionError(f"Loan {loan.loan_id} is archived; its default record is final")
        if loan.status is LoanStatus.DEFAULTED:
            if not recompute:
                raise IrreversibleActionError(
                    f"Net recovery of loan {loan.loan_id} was already computed; pass recompute=True"
                )
        else:
            transition(loan.status, LifecycleAction.DEFAULT)

        previous = loan.default_record
        record = DefaultRecord(
            default_date=default_date,
            total_paid=to_money(total_paid),
            acquisition_cost=to_money(acquisition_cost),
            recovery_costs=costs,
            net_recovery=self.net_recovery(total_paid, acquisition_cost, costs),
            balance_written_off=previous.balance_written_off if previous else loan.balance_remaining,
            notice_sent_date=loan.notice_sent_date,
            notice_fee_owed=loan.notice_fee_owed,
            postal_fee_owed=loan.postal_fee_owed,
            notes=notes,
        )
        logger.info(
            "Default %s for loan %s: net recovery %s (written off %s)",
            "recomputed" if previous else "resolved",
            loan.loan_id, record.net_recovery, record.balance_written_off,
        )
        return record


def recovery_rate(net_recovery: Decimal, balance_lost: Decimal) -> Decimal:
    """Net recovery as a percentage of balance written off."""
    if balance_lost <= 0:
        return ZERO
    return round_cents(net_recovery / balance_lost * 100)
