"""Payment models."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from loan_engine.models.enums import PaymentMethod, PaymentStatus, PaymentType
from loan_engine.money import ZERO


@dataclass(frozen=True)
class PaymentAllocation:
    """How one payment was split across buckets."""

    gateway_fee: Decimal = ZERO
    convenience_fee: Decimal = ZERO
    notice_fee: Decimal = ZERO
    postal_fee: Decimal = ZERO
    late_fee: Decimal = ZERO
    interest: Decimal = ZERO
    tax_escrow: Decimal = ZERO
    hoa_escrow: Decimal = ZERO
    principal: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return (
            self.gateway_fee
            + self.convenience_fee
            + self.notice_fee
            + self.postal_fee
            + self.late_fee
            + self.interest
            + self.tax_escrow
            + self.hoa_escrow
            + self.principal
        )

    @property
    def processing_fee(self) -> Decimal:
        """Full surcharge taken by the gateway (card fee + convenience fee)."""
        return self.gateway_fee + self.convenience_fee

    @property
    def escrow(self) -> Decimal:
        """Pass-through portion (tax + HOA)."""
        return self.tax_escrow + self.hoa_escrow

    @property
    def loan_payment(self) -> Decimal:
        """Interest plus principal."""
        return self.interest + self.principal


@dataclass(frozen=True)
class Payment:
    """A recorded payment. Immutable once stored."""

    payment_id: str
    loan_id: str
    amount: Decimal
    payment_date: date
    method: PaymentMethod
    payment_type: PaymentType
    status: PaymentStatus = PaymentStatus.COMPLETED
    allocation: PaymentAllocation = field(default_factory=PaymentAllocation)
    transaction_id: str | None = None
    notes: str | None = None
