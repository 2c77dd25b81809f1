"""Live overdue status and fee tier of a loan."""

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from loan_engine.config import FeeSchedule
from loan_engine.models.enums import FeeTier, LoanStatus
from loan_engine.money import ZERO

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class DelinquencyState:
    """Derived overdue state. Recomputed on every read, never stored."""

    is_overdue: bool
    days_overdue: int
    fee_tier: FeeTier
    late_fee_waivable: bool = False
    notice_eligible: bool = False
    cure_amount: Decimal = ZERO

    @property
    def late_fee_applies(self) -> bool:
        return self.fee_tier is not FeeTier.NONE


CURRENT = DelinquencyState(is_overdue=False, days_overdue=0, fee_tier=FeeTier.NONE)


def days_between(due: date | datetime, today: date | datetime) -> int:
    """Whole days from ``due`` to ``today``, rounded up, floored at zero.

    Dates count calendar days. Datetimes round any partial day up, so a
    payment due at midnight is one day late at 00:01.
    """
    if isinstance(due, datetime) or isinstance(today, datetime):
        due_dt = due if isinstance(due, datetime) else datetime.combine(due, datetime.min.time())
        today_dt = today if isinstance(today, datetime) else datetime.combine(today, datetime.min.time())
        seconds = (today_dt - due_dt).total_seconds()
        if seconds <= 0:
            return 0
        return math.ceil(seconds / SECONDS_PER_DAY)
    return max(0, (today - due).days)


class DelinquencyClassifier:
    """Compute days overdue and the applicable fee tier.

    Parameters
    ----------
    fees : FeeSchedule | None
        Thresholds for the late fee, the waiver window and the cure notice.
    """

    def __init__(self, fees: FeeSchedule | None = None) -> None:
        self.fees = fees or FeeSchedule()

    def classify(
        self,
        next_payment_date: date | datetime | None,
        today: date | datetime,
        alerts_disabled: bool = False,
        status: LoanStatus = LoanStatus.ACTIVE,
        notice_sent_date: date | None = None,
    ) -> DelinquencyState:
        """Classify a loan as of ``today``.

        Only active loans with alerts enabled can be overdue. A loan with no
        due date is current.
        """
        if status is not LoanStatus.ACTIVE or alerts_disabled or next_payment_date is None:
            return CURRENT

        days = days_between(next_payment_date, today)
        if days == 0:
            return CURRENT

        return DelinquencyState(
            is_overdue=True,
            days_overdue=days,
            fee_tier=self.fee_tier(days, notice_sent_date is not None),
            late_fee_waivable=days > self.fees.waivable_after_days,
            notice_eligible=days >= self.fees.notice_threshold_days and notice_sent_date is None,
        )

    def fee_tier(self, days_overdue: int, notice_sent: bool = False) -> FeeTier:
        """Fee tier for a number of days overdue."""
        if days_overdue <= self.fees.late_fee_grace_days:
            return FeeTier.NONE
        if days_overdue >= self.fees.notice_threshold_days and not notice_sent:
            return FeeTier.NOTICE
        return FeeTier.LATE_FEE
