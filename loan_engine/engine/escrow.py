"""Per-property tax and HOA escrow counters."""

import logging
from decimal import Decimal

from loan_engine.exceptions import InvalidInputError
from loan_engine.models.payment import PaymentAllocation
from loan_engine.models.property import EscrowAccount
from loan_engine.money import MoneyLike, to_money

logger = logging.getLogger(__name__)

# Allocation buckets held for third parties, never operating revenue.
PASS_THROUGH_BUCKETS = ("tax_escrow", "hoa_escrow")


class EscrowTracker:
    """Accumulate collected and disbursed escrow on an ``EscrowAccount``.

    The payment engine only ever adds collections. ``tax_paid`` changes
    only through the administrative tax payment actions.
    """

    def record_collection(self, account: EscrowAccount, allocation: PaymentAllocation) -> None:
        """Add the escrow portions of one payment."""
        account.tax_collected += allocation.tax_escrow
        account.hoa_collected += allocation.hoa_escrow

    def reverse_collection(self, account: EscrowAccount, allocation: PaymentAllocation) -> None:
        """Remove the escrow portions of a purged payment."""
        account.tax_collected -= allocation.tax_escrow
        account.hoa_collected -= allocation.hoa_escrow

    def record_tax_payment(self, account: EscrowAccount, amount: MoneyLike) -> Decimal:
        """Record taxes paid to the county out of escrow."""
        paid = to_money(amount)
        if paid <= 0:
            raise InvalidInputError(f"Tax payment must be positive, got {paid}")
        account.tax_paid += paid
        if account.tax_paid > account.tax_collected:
            logger.warning(
                "Property %s has paid %s in taxes against %s collected",
                account.property_id, account.tax_paid, account.tax_collected,
            )
        return paid

    def reverse_tax_payment(self, account: EscrowAccount, amount: MoneyLike) -> None:
        paid = to_money(amount)
        if paid > account.tax_paid:
            raise InvalidInputError(
                f"Cannot reverse {paid}; only {account.tax_paid} recorded for property {account.property_id}"
            )
        account.tax_paid -= paid

    @staticmethod
    def tax_balance(account: EscrowAccount) -> Decimal:
        """Tax collected but not yet paid out."""
        return account.tax_collected - account.tax_paid
