"""Tests for chi-square comparisons."""

import math

import numpy as np
import pytest

from chainmodel.config.constants import WEATHER_CHI_SQUARE_CRITICAL
from chainmodel.config.schema import ChainDefinition
from chainmodel.estimation.goodness_of_fit import (
    chi_square,
    compare_chains,
    transition_chi_square,
)
from chainmodel.simulation.chain_factory import build_chain
from chainmodel.simulation.chain_model import ChainModel
from chainmodel.simulation.errors import UnknownStateError


class TestChiSquare:
    def test_identical_is_zero(self):
        assert chi_square([[1, 2], [3, 4]], [[1, 2], [3, 4]]) == 0.0

    def test_known_value(self):
        # (2-1)^2/1 + (2-3)^2/3
        assert chi_square([2, 2], [1, 3]) == pytest.approx(1 + 1 / 3)

    def test_zero_expected_cells(self):
        """Impossible cells cost nothing unless observed."""
        assert chi_square([0, 1], [0, 1]) == 0.0
        assert math.isinf(chi_square([1, 1], [0, 1]))

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            chi_square([1, 2, 3], [1, 2])


class TestTransitionChiSquare:
    def test_sample_from_reference_is_small(self, weather_chain):
        history = weather_chain.walk(5000)
        assert transition_chi_square(history, weather_chain) < 3 * WEATHER_CHI_SQUARE_CRITICAL

    def test_sample_from_other_chain_is_large(self, weather_chain):
        uniform = build_chain(
            ChainDefinition.from_rows(["R", "C", "S"], np.full((3, 3), 1 / 3)),
        )
        history = weather_chain.walk(5000)
        assert transition_chi_square(history, uniform) > 10 * WEATHER_CHI_SQUARE_CRITICAL

    def test_unknown_label(self, weather_chain):
        with pytest.raises(UnknownStateError):
            transition_chi_square(["R", "X"], weather_chain)


class TestCompareChains:
    def test_aligns_state_order(self, weather_chain):
        """Same chain in another state order compares as identical."""
        shuffled = weather_chain.copy()
        shuffled.sort_states_by_example(["S", "R", "C"])
        assert compare_chains(shuffled, weather_chain) == 0.0
        assert shuffled.states == ["S", "R", "C"]

    def test_trained_chain(self, weather_chain):
        trained = ChainModel()
        trained.train(weather_chain.walk(20000))
        assert compare_chains(trained, weather_chain) < 0.05

    def test_different_state_sets(self, weather_chain):
        other = ChainModel()
        other.train(list("ABAB"))
        with pytest.raises(UnknownStateError):
            compare_chains(other, weather_chain)
