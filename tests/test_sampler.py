"""Tests for the outcome sampler and its distributions."""

import random
from collections import Counter

import pytest

from remotesim.errors import InvalidParameter
from remotesim.statistics import (
    BernoulliDistribution,
    CategoricalDistribution,
    OutcomeSampler,
    UniformDistribution,
    clamp_probability,
)


def test_success_rate_converges_to_requested_probability() -> None:
    """100k draws at p=0.30 land within [0.29, 0.31]."""
    sampler = OutcomeSampler(seed=42)
    hits = sum(sampler.sample_outcome(0.30) for _ in range(100_000))
    assert 0.29 <= hits / 100_000 <= 0.31


def test_duration_stays_within_scaled_range() -> None:
    """Draws never fall outside [min * multiplier, max * multiplier]."""
    sampler = OutcomeSampler(seed=7)
    draws = [sampler.sample_duration((20.0, 60.0), 2.5) for _ in range(10_000)]
    assert min(draws) >= 50.0
    assert max(draws) <= 150.0


def test_duration_mean_converges_to_midpoint() -> None:
    """Empirical mean of a uniform draw approaches the range midpoint."""
    sampler = OutcomeSampler(seed=3)
    draws = [sampler.sample_duration((100.0, 300.0)) for _ in range(100_000)]
    assert sum(draws) / len(draws) == pytest.approx(200.0, abs=1.5)


def test_degenerate_range_returns_the_bound() -> None:
    """min == max is allowed and always yields that value."""
    sampler = OutcomeSampler(seed=1)
    assert sampler.sample_duration((42.0, 42.0)) == 42.0


def test_inverted_range_is_rejected() -> None:
    """min > max fails with InvalidParameter."""
    sampler = OutcomeSampler(seed=1)
    with pytest.raises(InvalidParameter):
        sampler.sample_duration((10.0, 5.0))


def test_malformed_range_is_rejected() -> None:
    """A range needs exactly two bounds."""
    sampler = OutcomeSampler(seed=1)
    with pytest.raises(InvalidParameter):
        sampler.sample_duration((1.0, 2.0, 3.0))


def test_negative_multiplier_is_rejected() -> None:
    sampler = OutcomeSampler(seed=1)
    with pytest.raises(InvalidParameter):
        sampler.sample_duration((1.0, 2.0), -1.0)


@pytest.mark.parametrize(("raw", "expected"), [(-0.5, 0.0), (0.25, 0.25), (1.7, 1.0)])
def test_clamp_probability(raw: float, expected: float) -> None:
    assert clamp_probability(raw) == expected


def test_out_of_range_probabilities_are_clamped() -> None:
    """p <= 0 never succeeds and p >= 1 always succeeds."""
    sampler = OutcomeSampler(seed=9)
    assert not any(sampler.sample_outcome(-0.2) for _ in range(1_000))
    assert all(sampler.sample_outcome(1.5) for _ in range(1_000))


def test_weighted_choice_follows_weights() -> None:
    """A 50/15/15/20 table is reproduced over many draws."""
    sampler = OutcomeSampler(seed=11)
    table = [(0.50, "a"), (0.15, "b"), (0.15, "c"), (0.20, "d")]
    counts = Counter(sampler.weighted_choice(table) for _ in range(20_000))
    assert counts["a"] / 20_000 == pytest.approx(0.50, abs=0.02)
    assert counts["b"] / 20_000 == pytest.approx(0.15, abs=0.02)
    assert counts["c"] / 20_000 == pytest.approx(0.15, abs=0.02)
    assert counts["d"] / 20_000 == pytest.approx(0.20, abs=0.02)


def test_weighted_choice_never_picks_zero_weight() -> None:
    sampler = OutcomeSampler(seed=5)
    picks = {sampler.weighted_choice([(0.0, "never"), (1.0, "always")]) for _ in range(500)}
    assert picks == {"always"}


@pytest.mark.parametrize("table", [[], [(0.0, "x")], [(-1.0, "x"), (2.0, "y")]])
def test_weighted_choice_rejects_bad_tables(table) -> None:
    with pytest.raises(InvalidParameter):
        OutcomeSampler(seed=1).weighted_choice(table)


def test_sample_int_is_inclusive() -> None:
    sampler = OutcomeSampler(seed=2)
    values = {sampler.sample_int((3, 5)) for _ in range(500)}
    assert values == {3, 4, 5}


def test_seeded_samplers_are_reproducible() -> None:
    a = OutcomeSampler(seed=99)
    b = OutcomeSampler(seed=99)
    assert [a.sample_duration((0, 1)) for _ in range(5)] == [
        b.sample_duration((0, 1)) for _ in range(5)
    ]


def test_distributions_use_injected_rng() -> None:
    """Distributions draw from the given Random instance when provided."""
    rng_a, rng_b = random.Random(5), random.Random(5)
    u = UniformDistribution(0.0, 10.0, rng=rng_a)
    assert u.sample() == rng_b.uniform(0.0, 10.0)
    assert BernoulliDistribution(p=1.0, rng=random.Random(0)).sample_bool() is True
    assert BernoulliDistribution(p=0.0, rng=random.Random(0)).sample_bool() is False


def test_categorical_normalizes_weights() -> None:
    dist = CategoricalDistribution(categories=["x", "y"], weights=[3.0, 1.0])
    assert dist.weights == [0.75, 0.25]


def test_categorical_requires_categories() -> None:
    with pytest.raises(ValueError):
        CategoricalDistribution().sample()
