"""Chain factory: builds a ChainModel from a ChainDefinition."""

from typing import Hashable, Optional

import numpy as np

from chainmodel.config.schema import ChainDefinition
from chainmodel.simulation.chain_model import ChainModel


def build_chain(
    definition: Optional[ChainDefinition] = None,
    seed: Optional[int] = None,
    start: Optional[Hashable] = None,
    strict: bool = False,
) -> ChainModel:
    """Create a chain by adding every state and weight through the public API.

    Args:
        definition: States and rows. Defaults to the weather chain.
        seed: Seed for the chain's RNG; None draws fresh entropy.
        start: Optional initial current state.
        strict: Passed to the model; each row is written in one call so
            strict validation sees complete rows.

    Returns:
        The populated ChainModel.
    """
    if definition is None:
        definition = ChainDefinition.weather_default()

    model = ChainModel(rng=np.random.default_rng(seed), strict=strict)
    for label in definition.states:
        model.add_state(label)
    for label, row in zip(definition.states, definition.rows):
        model.set_row(label, row)

    if start is not None:
        model.set_current_state(start)
    return model
