"""Loan models."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from loan_engine.models.enums import LoanStatus
from loan_engine.money import ZERO


@dataclass(frozen=True)
class DefaultRecord:
    """Financial outcome of an administrative default."""

    default_date: date
    total_paid: Decimal
    acquisition_cost: Decimal
    recovery_costs: Decimal
    net_recovery: Decimal
    balance_written_off: Decimal
    notice_sent_date: date | None = None
    notice_fee_owed: Decimal = ZERO
    postal_fee_owed: Decimal = ZERO
    notes: str | None = None


@dataclass(frozen=True)
class LoanNotice:
    """A default/cure notice mailed to the buyer."""

    loan_id: str
    notice_date: date
    postal_method: str
    postal_cost: Decimal
    tracking_number: str
    notice_fee: Decimal
    cure_deadline: date
    notes: str | None = None


@dataclass
class Loan:
    """Land-contract loan."""

    loan_id: str
    customer_id: str
    property_id: str
    purchase_price: Decimal
    down_payment: Decimal
    processing_fee: Decimal
    loan_amount: Decimal  # price - down payment + processing fee
    annual_interest_rate: Decimal  # Percent (e.g., 18 for 18%)
    term_months: int
    monthly_payment: Decimal
    total_amount: Decimal
    payment_due_day: int  # 1 or 15
    balance_remaining: Decimal
    next_payment_date: date | None  # None once paid off
    status: LoanStatus = LoanStatus.ACTIVE
    alerts_disabled: bool = False
    late_fee_amount: Decimal | None = None  # None -> FeeSchedule.late_fee
    late_fee_waived: bool = False
    notice_sent_date: date | None = None
    cure_deadline_date: date | None = None
    notice_fee_owed: Decimal = ZERO
    postal_fee_owed: Decimal = ZERO
    default_record: DefaultRecord | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
