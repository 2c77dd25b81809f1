"""Sample data generators backed by Faker."""

from loan_engine.generators.parties import CustomerGenerator, PropertyGenerator
from loan_engine.generators.portfolio import PaymentBehavior, PortfolioGenerator, PortfolioSummary

__all__ = [
    "CustomerGenerator",
    "PaymentBehavior",
    "PortfolioGenerator",
    "PortfolioSummary",
    "PropertyGenerator",
]
