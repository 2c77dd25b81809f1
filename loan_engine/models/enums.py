"""Enumeration types for loan servicing entities."""

from enum import Enum


class LoanStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAID_OFF = "PAID_OFF"
    DEFAULTED = "DEFAULTED"
    ARCHIVED = "ARCHIVED"


class PropertyStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    PENDING = "PENDING"
    SOLD = "SOLD"


class PaymentMethod(str, Enum):
    GATEWAY = "GATEWAY"
    CASH = "CASH"
    CHECK = "CHECK"
    MONEY_ORDER = "MONEY_ORDER"
    BANK_TRANSFER = "BANK_TRANSFER"
    IMPORTED = "IMPORTED"

    @property
    def is_manual(self) -> bool:
        """Admin-recorded payments skip gateway fees."""
        return self is not PaymentMethod.GATEWAY


class PaymentType(str, Enum):
    DOWN_PAYMENT = "DOWN_PAYMENT"
    PROCESSING_FEE = "PROCESSING_FEE"
    MONTHLY_PAYMENT = "MONTHLY_PAYMENT"
    PAYOFF = "PAYOFF"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class FeeTier(str, Enum):
    NONE = "NONE"
    LATE_FEE = "LATE_FEE"
    NOTICE = "NOTICE"


class LifecycleAction(str, Enum):
    PAY_OFF = "PAY_OFF"
    DEFAULT = "DEFAULT"
    ARCHIVE = "ARCHIVE"
    UNARCHIVE = "UNARCHIVE"
    DELETE = "DELETE"
