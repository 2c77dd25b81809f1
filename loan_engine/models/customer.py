"""Customer (buyer) model."""

from dataclasses import dataclass
from datetime import datetime

from loan_engine.models.base import Address


@dataclass
class Customer:
    """Buyer of a property on a land contract."""

    customer_id: str
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    address: Address | None = None
    created_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
