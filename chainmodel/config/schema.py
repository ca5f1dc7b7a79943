"""Dataclasses describing chains to be built."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Sequence, Tuple

from chainmodel.config.constants import WEATHER_STATES, WEATHER_TRANSITION_MATRIX


@dataclass(frozen=True)
class ChainDefinition:
    """Labels plus one weight row per label, in label order."""

    states: Tuple[Hashable, ...]
    rows: Tuple[Tuple[float, ...], ...]

    def __post_init__(self):
        if len(set(self.states)) != len(self.states):
            raise ValueError(f"Duplicate labels in chain definition: {self.states}")
        if len(self.rows) != len(self.states):
            raise ValueError(
                f"Expected {len(self.states)} rows, got {len(self.rows)}"
            )
        for label, row in zip(self.states, self.rows):
            if len(row) != len(self.states):
                raise ValueError(
                    f"Row for {label!r} has {len(row)} weights, expected {len(self.states)}"
                )

    @classmethod
    def from_rows(
        cls, states: Sequence[Hashable], rows: Sequence[Sequence[float]]
    ) -> ChainDefinition:
        return cls(
            states=tuple(states),
            rows=tuple(tuple(float(w) for w in row) for row in rows),
        )

    @classmethod
    def weather_default(cls) -> ChainDefinition:
        return cls.from_rows(WEATHER_STATES, WEATHER_TRANSITION_MATRIX.tolist())
