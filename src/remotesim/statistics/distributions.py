"""
Draw primitives behind the outcome sampler.

Latencies are uniform over a [min, max] window, pass/fail draws are
Bernoulli, and outcome tables (scan variants, catalogs) are categorical.
Each one takes an optional random.Random; without it they fall back to the
module-level generator.
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ..errors import InvalidParameter


class Distribution(ABC):
    rng: random.Random | None

    @property
    def _source(self) -> Any:
        return self.rng if self.rng is not None else random

    @abstractmethod
    def sample(self) -> Any:
        """One draw."""


@dataclass
class UniformDistribution(Distribution):
    """Latency window: every value in [low, high] equally likely."""

    low: float = 0.0
    high: float = 1.0
    rng: random.Random | None = None

    def sample(self) -> float:
        return self._source.uniform(self.low, self.high)


@dataclass
class BernoulliDistribution(Distribution):
    """
    Single pass/fail draw with success probability p.

    Comparing against 1 - p keeps p=0 from ever succeeding and p=1 from ever
    failing, whatever the generator returns.
    """

    p: float = 0.5
    rng: random.Random | None = None

    def sample(self) -> float:
        return 1.0 if self.sample_bool() else 0.0

    def sample_bool(self) -> bool:
        return self._source.random() >= 1.0 - self.p


@dataclass
class CategoricalDistribution(Distribution):
    """
    Weighted outcome table.

        CategoricalDistribution(
            categories=["success", "failure", "partial", "stale"],
            weights=[0.50, 0.15, 0.15, 0.20],
        )

    Missing weights mean equal odds; weights are normalized to sum to 1.
    """

    categories: list[Any] = field(default_factory=list)
    weights: list[float] = field(default_factory=list)
    rng: random.Random | None = None

    def __post_init__(self):
        if not self.weights:
            self.weights = [1.0] * len(self.categories)
        if len(self.weights) != len(self.categories):
            raise InvalidParameter(
                f"{len(self.categories)} outcomes but {len(self.weights)} weights"
            )
        total = sum(self.weights)
        if total > 0:
            self.weights = [w / total for w in self.weights]

    def sample(self) -> Any:
        if not self.categories:
            raise InvalidParameter("Outcome table has no entries")
        return self._source.choices(self.categories, weights=self.weights)[0]
