"""Statistical distributions and sampling for realistic session generation."""

from .distributions import (
    BernoulliDistribution,
    CategoricalDistribution,
    Distribution,
    UniformDistribution,
)
from .sampler import OutcomeSampler, clamp_probability

__all__ = [
    "Distribution",
    "UniformDistribution",
    "CategoricalDistribution",
    "BernoulliDistribution",
    "OutcomeSampler",
    "clamp_probability",
]
