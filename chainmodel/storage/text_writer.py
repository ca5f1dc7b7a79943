"""Render a transition matrix as a tab-separated text table."""

from typing import Hashable, Sequence

import numpy as np

from chainmodel.config.constants import TEXT_PRECISION, TEXT_SEPARATOR


def render_text(
    states: Sequence[Hashable],
    matrix: np.ndarray,
    precision: int = TEXT_PRECISION,
) -> str:
    """Render states and weights as a labelled table.

    The header row starts with an empty cell followed by every label; each
    following row starts with its label, then its weights.

    Args:
        states: Labels in matrix order.
        matrix: Square weight matrix of shape (len(states), len(states)).
        precision: Decimal digits per weight.

    Returns:
        The table without a trailing newline. Not meant to be parsed back.
    """
    sep = TEXT_SEPARATOR
    lines = [sep + sep.join(str(label) for label in states)]
    for label, row in zip(states, matrix):
        cells = [f"{float(w):.{precision}f}" for w in row]
        lines.append(str(label) + "".join(sep + c for c in cells))
    return "\n".join(lines)
