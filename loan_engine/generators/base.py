"""Shared state for sample data generators."""

from __future__ import annotations

import random
from abc import ABC
from decimal import Decimal
from typing import Sequence, TypeVar

from faker import Faker

T = TypeVar("T")


class BaseGenerator(ABC):
    """Faker instance plus a private random source.

    Each generator owns its ``random.Random`` so that two generators built
    with the same seed produce the same data regardless of what else draws
    from the global ``random`` module.

    Parameters
    ----------
    seed : int | None
        Seed for both Faker and the random source.
    locale : str
        Faker locale (default ``en_US``).
    """

    def __init__(self, seed: int | None = None, locale: str = "en_US") -> None:
        self.fake = Faker(locale)
        self.rng = random.Random(seed)
        if seed is not None:
            self.fake.seed_instance(seed)

    def whole_dollars(self, low: int, high: int, step: int = 1) -> Decimal:
        """Random amount between ``low`` and ``high`` in multiples of ``step``."""
        return Decimal(self.rng.randrange(low, high + 1, step))

    def weighted(self, options: Sequence[T], weights: Sequence[float]) -> T:
        return self.rng.choices(options, weights=weights, k=1)[0]
