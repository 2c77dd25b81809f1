"""Domain models for land-contract loan servicing."""

from loan_engine.models.base import Address, Event
from loan_engine.models.customer import Customer
from loan_engine.models.enums import (
    FeeTier,
    LifecycleAction,
    LoanStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    PropertyStatus,
)
from loan_engine.models.loan import DefaultRecord, Loan, LoanNotice
from loan_engine.models.payment import Payment, PaymentAllocation
from loan_engine.models.property import EscrowAccount, Property, TaxPayment

__all__ = [
    "Address",
    "Customer",
    "DefaultRecord",
    "EscrowAccount",
    "Event",
    "FeeTier",
    "LifecycleAction",
    "Loan",
    "LoanNotice",
    "LoanStatus",
    "Payment",
    "PaymentAllocation",
    "PaymentMethod",
    "PaymentStatus",
    "PaymentType",
    "Property",
    "PropertyStatus",
    "TaxPayment",
]
