"""Due-date arithmetic for the 1st/15th payment conventions."""

from datetime import date, timedelta

from loan_engine.config import VALID_DUE_DAYS
from loan_engine.exceptions import InvalidInputError

MANUAL_DUE_INTERVAL_DAYS = 30


def validate_due_day(due_day: int) -> int:
    """Return ``due_day`` if it is a supported day of month."""
    if due_day not in VALID_DUE_DAYS:
        raise InvalidInputError(f"Payment due day must be 1 or 15, got {due_day}")
    return due_day


def next_due_date(after: date, due_day: int) -> date:
    """First date strictly after ``after`` that falls on ``due_day``."""
    validate_due_day(due_day)
    if after.day < due_day:
        return after.replace(day=due_day)
    if after.month == 12:
        return date(after.year + 1, 1, due_day)
    return date(after.year, after.month + 1, due_day)


def first_payment_date(today: date, due_day: int) -> date:
    """First installment date of a loan originated on ``today``.

    A loan due on the 1st starts next month; a loan due on the 15th starts
    this month when today is before the 15th.
    """
    return next_due_date(today, due_day)


def manual_next_due_date(payment_date: date) -> date:
    """Admin-recorded payments push the due date a flat 30 days."""
    return payment_date + timedelta(days=MANUAL_DUE_INTERVAL_DAYS)
