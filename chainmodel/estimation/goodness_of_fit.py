"""Chi-square comparison of estimated transitions against a reference chain."""

from typing import Hashable, Iterable

import numpy as np

from chainmodel.simulation.chain_model import ChainModel, count_transitions
from chainmodel.simulation.errors import UnknownStateError


def chi_square(observed, expected) -> float:
    """Pearson statistic sum((o - e)^2 / e) over all cells.

    Cells with e == 0 contribute 0 when o == 0 and infinity otherwise.
    """
    obs = np.asarray(observed, dtype=np.float64).ravel()
    exp = np.asarray(expected, dtype=np.float64).ravel()
    if obs.shape != exp.shape:
        raise ValueError(f"Shape mismatch: observed {obs.shape} vs expected {exp.shape}")

    with np.errstate(divide="ignore", invalid="ignore"):
        terms = (obs - exp) ** 2 / exp
    terms = np.where(exp == 0, np.where(obs == 0, 0.0, np.inf), terms)
    return float(terms.sum())


def transition_chi_square(sequence: Iterable[Hashable], reference: ChainModel) -> float:
    """Compare observed transition counts with those the reference predicts.

    Expected count for a cell is the number of moves observed out of the
    source state times the reference probability. Rows never left contribute
    nothing.
    """
    _, counts = count_transitions(sequence, reference.states)
    expected = counts.sum(axis=1, keepdims=True) * reference.matrix
    return chi_square(counts, expected)


def compare_chains(estimated: ChainModel, reference: ChainModel) -> float:
    """Chi-square of two probability matrices after aligning state order.

    ``estimated`` itself is not reordered.
    """
    if set(estimated.states) != set(reference.states):
        raise UnknownStateError(
            f"State sets differ: {estimated.states} vs {reference.states}"
        )
    aligned = estimated.copy()
    aligned.sort_states_by_example(reference.states)
    return chi_square(aligned.matrix, reference.matrix)
