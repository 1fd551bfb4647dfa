"""
Outcome sampler: durations and success/failure draws for every simulator.

All probability models in the operation simulators are expressed as data
(ranges, probabilities, weighted outcome tables) and resolved here, so the
model can be checked by statistical sampling independently of span emission.
"""

import random
from collections.abc import Sequence
from typing import TypeVar

from ..errors import InvalidParameter
from .distributions import BernoulliDistribution, CategoricalDistribution, UniformDistribution

T = TypeVar("T")


def clamp_probability(p: float) -> float:
    """Clamp a probability into [0, 1]."""
    return min(1.0, max(0.0, float(p)))


def _check_range(bounds: Sequence[float]) -> tuple[float, float]:
    if len(bounds) != 2:
        raise InvalidParameter(f"Range must have exactly two bounds, got {bounds!r}")
    low, high = float(bounds[0]), float(bounds[1])
    if low > high:
        raise InvalidParameter(f"Range min {low} is greater than max {high}")
    return low, high


class OutcomeSampler:
    """Stateless sampling helpers bound to one random source."""

    def __init__(self, rng: random.Random | None = None, seed: int | None = None):
        if rng is None:
            rng = random.Random(seed)
        self.rng = rng

    def sample_duration(self, bounds: Sequence[float], multiplier: float = 1.0) -> float:
        """Uniform draw in [min * multiplier, max * multiplier]."""
        low, high = _check_range(bounds)
        if multiplier < 0:
            raise InvalidParameter(f"Multiplier must be >= 0, got {multiplier}")
        return UniformDistribution(low * multiplier, high * multiplier, rng=self.rng).sample()

    def sample_outcome(self, success_probability: float) -> bool:
        """True with the given (clamped) probability."""
        p = clamp_probability(success_probability)
        return BernoulliDistribution(p, rng=self.rng).sample_bool()

    def sample_int(self, bounds: Sequence[int]) -> int:
        """Inclusive uniform integer in [min, max]."""
        low, high = _check_range(bounds)
        return self.rng.randint(int(low), int(high))

    def weighted_choice(self, table: Sequence[tuple[float, T]]) -> T:
        """Pick an outcome from a [(weight, outcome)] table."""
        if not table:
            raise InvalidParameter("Weighted outcome table is empty")
        weights = [float(w) for w, _ in table]
        if any(w < 0 for w in weights) or sum(weights) <= 0:
            raise InvalidParameter("Weights must be non-negative and sum to a positive number")
        dist = CategoricalDistribution(
            categories=[outcome for _, outcome in table], weights=weights, rng=self.rng
        )
        return dist.sample()

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise InvalidParameter("Cannot choose from an empty sequence")
        return self.rng.choice(items)

    def shuffle(self, items: list) -> None:
        self.rng.shuffle(items)
