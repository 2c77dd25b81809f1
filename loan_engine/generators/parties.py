"""Generators for buyers and land parcels."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterator

from loan_engine.generators.base import BaseGenerator
from loan_engine.models import Address, Customer, EscrowAccount, Property


class CustomerGenerator(BaseGenerator):
    """Generate synthetic buyers."""

    def generate(self) -> Customer:
        """Generate a single customer.

        Returns
        -------
        Customer
            Generated customer.
        """
        first_name = self.fake.first_name()
        last_name = self.fake.last_name()
        return Customer(
            customer_id=self.fake.uuid4(),
            first_name=first_name,
            last_name=last_name,
            email=f"{first_name}.{last_name}@{self.fake.free_email_domain()}".lower(),
            phone=self.fake.phone_number(),
            address=Address(
                street=self.fake.street_address(),
                city=self.fake.city(),
                state=self.fake.state_abbr(),
                postal_code=self.fake.zipcode(),
            ),
            created_at=datetime.now(),
        )

    def generate_batch(self, count: int) -> Iterator[Customer]:
        for _ in range(count):
            yield self.generate()


class PropertyGenerator(BaseGenerator):
    """Generate synthetic rural parcels with tax and HOA escrow."""

    # Price per acre (USD)
    PRICE_PER_ACRE = (1500, 6000)
    ACREAGE = (0.5, 20.0)

    # Share of parcels inside an HOA
    HOA_PROBABILITY = 0.25

    def generate(self) -> Property:
        """Generate a single available property.

        Returns
        -------
        Property
            Generated property. Acquisition cost is 30-60% of list price.
        """
        property_id = self.fake.uuid4()
        acreage = round(self.rng.uniform(*self.ACREAGE), 2)
        list_price = Decimal(int(acreage * self.rng.randint(*self.PRICE_PER_ACRE) / 100) * 100 + 100)
        acquisition_cost = (list_price * Decimal(str(round(self.rng.uniform(0.3, 0.6), 2)))).quantize(Decimal("1"))
        annual_tax = self.whole_dollars(60, 900)
        hoa_fee = Decimal(self.rng.choice([10, 15, 25, 40])) if self.rng.random() < self.HOA_PROBABILITY else Decimal(0)

        city = self.fake.city()
        state = self.fake.state_abbr(include_territories=False, include_freely_associated_states=False)
        return Property(
            property_id=property_id,
            title=f"{acreage} Acres near {city}, {state}",
            address=Address(
                street=f"Parcel {self.fake.bothify('###-##-####')}",
                city=city,
                state=state,
                postal_code=self.fake.zipcode_in_state(state),
                county=f"{self.fake.last_name()} County",
            ),
            list_price=list_price,
            acquisition_cost=acquisition_cost,
            escrow=EscrowAccount(
                property_id=property_id,
                annual_tax_amount=annual_tax,
                monthly_hoa_fee=hoa_fee,
            ),
            acreage=acreage,
            created_at=datetime.now(),
        )

    def generate_batch(self, count: int) -> Iterator[Property]:
        for _ in range(count):
            yield self.generate()
