"""Shared test fixtures."""

import numpy as np
import pytest

from chainmodel.config.schema import ChainDefinition
from chainmodel.simulation.chain_factory import build_chain


class FixedDraw:
    """Stands in for np.random.Generator, always returning the same draw."""

    def __init__(self, u: float):
        self.u = u

    def random(self) -> float:
        return self.u


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def weather_definition():
    return ChainDefinition.weather_default()


@pytest.fixture
def weather_chain(weather_definition):
    return build_chain(weather_definition, seed=42, start="S")


@pytest.fixture
def fixed_draw():
    return FixedDraw
