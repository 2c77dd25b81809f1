"""Financial engine for seller-financed land-contract loans."""

__version__ = "0.1.0"
