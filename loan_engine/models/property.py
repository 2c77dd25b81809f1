"""Property and escrow models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from loan_engine.models.base import Address
from loan_engine.models.enums import PropertyStatus
from loan_engine.money import ZERO, round_cents


@dataclass
class EscrowAccount:
    """Tax and HOA pass-through balances of one property.

    Collected amounts are liabilities held for the county or the HOA,
    never operating revenue.
    """

    property_id: str
    annual_tax_amount: Decimal = ZERO
    monthly_hoa_fee: Decimal = ZERO
    tax_collected: Decimal = ZERO
    tax_paid: Decimal = ZERO
    hoa_collected: Decimal = ZERO

    @property
    def monthly_tax_portion(self) -> Decimal:
        """Annual tax spread over twelve payments."""
        return round_cents(self.annual_tax_amount / 12)


@dataclass
class TaxPayment:
    """Property tax paid out of escrow by an administrator."""

    tax_payment_id: str
    property_id: str
    payment_date: date
    amount: Decimal
    tax_year: int
    payment_method: str | None = None
    check_number: str | None = None
    notes: str | None = None


@dataclass
class Property:
    """Parcel sold on a land contract."""

    property_id: str
    title: str
    address: Address
    list_price: Decimal
    acquisition_cost: Decimal
    status: PropertyStatus = PropertyStatus.AVAILABLE
    escrow: EscrowAccount | None = None
    acreage: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    tax_payments: list[TaxPayment] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.escrow is None:
            self.escrow = EscrowAccount(property_id=self.property_id)
