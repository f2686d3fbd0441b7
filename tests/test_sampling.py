"""Tests for seeded sampling primitives."""

import numpy as np
import pytest

from contracting_synth.util.sampling import (
    cumulative_weighted_choice,
    randint,
    sample_categorical,
    uniform,
)


class _FixedRandom:
    """Stands in for a Generator whose ``random`` returns preset values."""

    def __init__(self, values: list[float]) -> None:
        self._values = np.asarray(values, dtype=np.float64)

    def random(self, size: int) -> np.ndarray:
        return self._values[:size]


class TestCumulativeWeightedChoice:
    """Tests for cumulative_weighted_choice."""

    def test_first_index_whose_cumulative_weight_reaches_draw(self) -> None:
        # weights 1, 2, 3 -> cumulative 1, 3, 6; draws are total * (1 - r)
        rng = _FixedRandom([1 - 1 / 6, 1 - 3 / 6, 1 - 3.5 / 6, 0.0])
        indices = cumulative_weighted_choice(rng, [1, 2, 3], size=4)
        # u=1 -> 0 (boundary belongs to the lower index), u=3 -> 1, u=3.5 -> 2, u=6 -> 2
        assert indices.tolist() == [0, 1, 2, 2]

    def test_zero_weights_never_chosen(self) -> None:
        rng = np.random.default_rng(0)
        indices = cumulative_weighted_choice(rng, [0, 5, 0, 5, 0], size=2000)
        assert set(indices.tolist()) <= {1, 3}

    def test_proportional_to_weights(self) -> None:
        rng = np.random.default_rng(1)
        indices = cumulative_weighted_choice(rng, [1, 9], size=20_000)
        share = (indices == 1).mean()
        assert 0.88 < share < 0.92

    def test_draws_are_independent(self) -> None:
        """The same index may be drawn repeatedly."""
        rng = np.random.default_rng(2)
        indices = cumulative_weighted_choice(rng, [1, 1], size=50)
        assert len(set(indices.tolist())) < 50

    def test_deterministic_for_same_seed(self) -> None:
        a = cumulative_weighted_choice(np.random.default_rng(3), [3, 1, 4, 1, 5], size=100)
        b = cumulative_weighted_choice(np.random.default_rng(3), [3, 1, 4, 1, 5], size=100)
        assert np.array_equal(a, b)

    @pytest.mark.parametrize(
        "weights",
        [[], [0, 0, 0], [1, -1], [1, float("nan")], [1, float("inf")]],
    )
    def test_invalid_weights_rejected(self, weights: list[float]) -> None:
        with pytest.raises(ValueError):
            cumulative_weighted_choice(np.random.default_rng(0), weights)


class TestSampleCategorical:
    """Tests for sample_categorical."""

    def test_single_draw_returns_scalar(self) -> None:
        value = sample_categorical(np.random.default_rng(0), ["a", "b", "c"])
        assert value in {"a", "b", "c"}

    def test_many_draws_return_list(self) -> None:
        values = sample_categorical(np.random.default_rng(0), ["a", "b"], size=10)
        assert isinstance(values, list)
        assert len(values) == 10

    def test_weighted_draws_follow_weights(self) -> None:
        values = sample_categorical(np.random.default_rng(0), ["x", "y"], weights=[0, 1], size=100)
        assert set(values) == {"y"}

    def test_empty_categories_rejected(self) -> None:
        with pytest.raises(ValueError):
            sample_categorical(np.random.default_rng(0), [])


class TestScalarDraws:
    """Tests for uniform and randint."""

    def test_randint_bounds_are_inclusive(self) -> None:
        rng = np.random.default_rng(0)
        draws = {randint(rng, 1, 3) for _ in range(500)}
        assert draws == {1, 2, 3}

    def test_uniform_in_range(self) -> None:
        rng = np.random.default_rng(0)
        for _ in range(200):
            assert 0.5 <= uniform(rng, 0.5, 2.0) < 2.0
