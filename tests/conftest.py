"""Pytest configuration and fixtures."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable

import pytest

from loan_engine.config import EngineConfig
from loan_engine.models import Address, Customer, EscrowAccount, Loan, Property
from loan_engine.services import LoanServicer
from loan_engine.store.ledger import LoanLedger


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def config() -> EngineConfig:
    """Default engine configuration."""
    return EngineConfig()


@pytest.fixture
def sample_address() -> Address:
    """Sample parcel address."""
    return Address(
        street="Parcel 101-22-0042",
        city="Deming",
        state="NM",
        postal_code="88030",
        county="Luna County",
    )


@pytest.fixture
def sample_customer(sample_address: Address) -> Customer:
    """Sample buyer."""
    return Customer(
        customer_id="cust-test-001",
        first_name="Jamie",
        last_name="Rivera",
        email="jamie.rivera@example.com",
        phone="555-0100",
        address=sample_address,
    )


@pytest.fixture
def sample_property(sample_address: Address) -> Property:
    """Available property listed at 10,000 with 120/year taxes."""
    return Property(
        property_id="prop-test-001",
        title="5 Acres near Deming, NM",
        address=sample_address,
        list_price=Decimal("10000.00"),
        acquisition_cost=Decimal("4000.00"),
        escrow=EscrowAccount(property_id="prop-test-001", annual_tax_amount=Decimal("120.00")),
        acreage=5.0,
        created_at=datetime(2024, 1, 5, 9, 0),
    )


@pytest.fixture
def ledger(sample_customer: Customer, sample_property: Property) -> LoanLedger:
    """Ledger holding one customer and one available property."""
    ledger = LoanLedger()
    ledger.add_customer(sample_customer)
    ledger.add_property(sample_property)
    return ledger


@pytest.fixture
def servicer(ledger: LoanLedger, config: EngineConfig) -> LoanServicer:
    """Servicer over the sample ledger, without sinks."""
    return LoanServicer(ledger=ledger, config=config)


@pytest.fixture
def origination_date() -> date:
    return date(2024, 1, 10)


@pytest.fixture
def active_loan(servicer: LoanServicer, origination_date: date) -> Loan:
    """9,000 financed at 12% for 200/month, due on the 1st (first due 2024-02-01)."""
    return servicer.originate_loan(
        customer_id="cust-test-001",
        property_id="prop-test-001",
        down_payment=Decimal("1000.00"),
        processing_fee=Decimal("0.00"),
        annual_rate_percent=Decimal("12"),
        target_monthly_payment=Decimal("200.00"),
        today=origination_date,
        payment_due_day=1,
    )


@pytest.fixture
def make_loan() -> Callable[..., Loan]:
    """Factory for loans not tied to a ledger."""

    def _make(**overrides: Any) -> Loan:
        fields: dict[str, Any] = {
            "loan_id": "loan-test-001",
            "customer_id": "cust-test-001",
            "property_id": "prop-test-001",
            "purchase_price": Decimal("10000.00"),
            "down_payment": Decimal("1000.00"),
            "processing_fee": Decimal("0.00"),
            "loan_amount": Decimal("9000.00"),
            "annual_interest_rate": Decimal("12"),
            "term_months": 61,
            "monthly_payment": Decimal("200.00"),
            "total_amount": Decimal("12200.00"),
            "payment_due_day": 1,
            "balance_remaining": Decimal("9000.00"),
            "next_payment_date": date(2024, 2, 1),
        }
        fields.update(overrides)
        return Loan(**fields)

    return _make
