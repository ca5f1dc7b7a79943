"""Finite-state, discrete-time Markov chain with a mutable state registry."""

from __future__ import annotations

import logging
from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from chainmodel.config.constants import DEFAULT_FILL, EPSILON
from chainmodel.simulation.errors import (
    DegenerateRowError,
    DuplicateStateError,
    InsufficientDataError,
    InvalidDistributionError,
    InvalidStateError,
    SamplingExhaustedError,
    UnknownStateError,
)
from chainmodel.storage.text_writer import render_text

logger = logging.getLogger(__name__)


def sample_index(row: Sequence[float], u: float) -> int:
    """Pick a column of ``row`` by inverse-CDF sampling.

    Walks the row accumulating a running sum and returns the first index whose
    running sum exceeds ``u``.

    Args:
        row: Non-negative weights summing to at most 1.
        u: Uniform draw in [0, 1).

    Returns:
        Selected column index.

    Raises:
        SamplingExhaustedError: The row sum never exceeds ``u``.
    """
    cumulative = np.cumsum(np.asarray(row, dtype=np.float64))
    hits = np.flatnonzero(cumulative > u)
    if hits.size == 0:
        total = float(cumulative[-1]) if cumulative.size else 0.0
        raise SamplingExhaustedError(
            f"Draw {u:.6f} not covered by row weights (row sum {total:.6f})"
        )
    return int(hits[0])


def count_transitions(
    sequence: Iterable[Hashable],
    states: Optional[Sequence[Hashable]] = None,
) -> Tuple[List[Hashable], np.ndarray]:
    """Tally transitions between consecutive observations.

    Args:
        sequence: Observed labels in time order.
        states: Row/column order of the count matrix. Defaults to the distinct
            labels of ``sequence`` in first-occurrence order.

    Returns:
        (states, counts) where counts[i, j] is the number of observed
        moves from states[i] to states[j].
    """
    observed = list(sequence)
    if states is None:
        if any(label is None for label in observed):
            raise InvalidStateError("None cannot be used as a state label")
        states = list(dict.fromkeys(observed))
    else:
        states = list(states)
    index = {label: i for i, label in enumerate(states)}

    unknown = [label for label in dict.fromkeys(observed) if label not in index]
    if unknown:
        raise UnknownStateError(f"Observed labels are not defined states: {unknown}")

    counts = np.zeros((len(states), len(states)), dtype=np.float64)
    for prev, curr in zip(observed, observed[1:]):
        counts[index[prev], index[curr]] += 1
    return states, counts


def _is_stochastic(row: np.ndarray) -> bool:
    return abs(1.0 - float(row.sum())) < EPSILON


def _check_label(label: Hashable) -> None:
    if label is None:
        raise InvalidStateError("None cannot be used as a state label")


def _check_weight(weight: float) -> float:
    weight = float(weight)
    if not np.isfinite(weight) or weight < 0.0:
        raise InvalidDistributionError(
            f"Transition weights must be finite and non-negative, got {weight}"
        )
    return weight


def _normalized(states: Sequence[Hashable], matrix: np.ndarray) -> np.ndarray:
    """Return ``matrix`` with every row divided by its sum."""
    if matrix.size == 0:
        return matrix.copy()

    # Weights are non-negative, so a zero maximum means an all-zero row
    maxes = matrix.max(axis=1)
    zero_rows = np.flatnonzero(maxes == 0)
    if zero_rows.size:
        labels = [states[i] for i in zero_rows]
        raise DegenerateRowError(f"Rows sum to zero for states: {labels}")

    # Scale by the row maximum first so huge finite weights cannot overflow the sum
    scaled = matrix / maxes[:, np.newaxis]
    result = scaled / scaled.sum(axis=1)[:, np.newaxis]
    for label, row in zip(states, result):
        if not _is_stochastic(row):
            raise InvalidDistributionError(
                f"Row for '{label}' sums to {float(row.sum())} after normalization"
            )
    return result


class ChainModel:
    """Markov chain over labelled states with a dense transition matrix.

    The ordered label list and the matrix are always resized together;
    a label-to-index dict is derived from the list after every reordering.
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        strict: bool = False,
    ):
        self._states: List[Hashable] = []
        self._index: Dict[Hashable, int] = {}
        self._matrix = np.zeros((0, 0), dtype=np.float64)
        self.current: Optional[Hashable] = None
        self.rng = rng if rng is not None else np.random.default_rng()
        # Off by default so rows can be filled in over several calls
        self.strict = strict

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    @property
    def states(self) -> List[Hashable]:
        return list(self._states)

    @property
    def matrix(self) -> np.ndarray:
        """Read-only view of the weight matrix."""
        view = self._matrix.view()
        view.flags.writeable = False
        return view

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, label) -> bool:
        return label in self._index

    def index_of(self, label: Hashable) -> int:
        try:
            return self._index[label]
        except KeyError:
            raise UnknownStateError(f"'{label}' is not a defined state") from None

    def _reindex(self) -> None:
        self._index = {label: i for i, label in enumerate(self._states)}

    def add_state(self, label: Hashable, fill: float = DEFAULT_FILL) -> None:
        """Register ``label`` and grow the matrix by one row and one column.

        Existing weights keep their positions; new cells are set to ``fill``.
        ``None`` is reserved for an unset current state and cannot be a label.
        """
        _check_label(label)
        if label in self._index:
            raise DuplicateStateError(f"State '{label}' already exists")
        fill = _check_weight(fill)

        n = len(self._states)
        grown = np.full((n + 1, n + 1), fill, dtype=np.float64)
        grown[:n, :n] = self._matrix

        self._matrix = grown
        self._states.append(label)
        self._index[label] = n
        logger.debug(f"Added state {label!r} at index {n}")

    def delete_state(self, label: Hashable) -> None:
        """Remove ``label`` with its row and column; later states shift down."""
        i = self.index_of(label)

        self._matrix = np.delete(np.delete(self._matrix, i, axis=0), i, axis=1)
        del self._states[i]
        self._reindex()

        if self.current == label:
            logger.warning(f"Deleted the current state {label!r}; reset it before stepping")
        logger.debug(f"Deleted state {label!r} from index {i}")

    # ------------------------------------------------------------------
    # Weights
    # ------------------------------------------------------------------

    def get_transition(self, from_state: Hashable, to_state: Hashable) -> float:
        return float(self._matrix[self.index_of(from_state), self.index_of(to_state)])

    def set_transition(
        self,
        from_state: Hashable,
        to_state: Hashable,
        weight: float,
        validate: Optional[bool] = None,
    ) -> None:
        """Overwrite one weight. The row is not renormalized.

        Args:
            from_state: Source label.
            to_state: Destination label.
            weight: New non-negative weight.
            validate: Require the row to sum to 1 after the write. Defaults
                to the model's ``strict`` flag.
        """
        r = self.index_of(from_state)
        c = self.index_of(to_state)
        weight = _check_weight(weight)

        check = self.strict if validate is None else validate
        if check:
            row = self._matrix[r].copy()
            row[c] = weight
            if not _is_stochastic(row):
                raise InvalidDistributionError(
                    f"Row for '{from_state}' would sum to {float(row.sum())}, expected 1"
                )

        self._matrix[r, c] = weight

    def set_row(
        self,
        from_state: Hashable,
        weights: Sequence[float],
        validate: Optional[bool] = None,
    ) -> None:
        """Replace every weight leaving ``from_state`` in one call."""
        r = self.index_of(from_state)
        if len(weights) != len(self._states):
            raise InvalidDistributionError(
                f"Row for '{from_state}' needs {len(self._states)} weights, got {len(weights)}"
            )
        row = np.array([_check_weight(w) for w in weights], dtype=np.float64)

        check = self.strict if validate is None else validate
        if check and not _is_stochastic(row):
            raise InvalidDistributionError(
                f"Row for '{from_state}' sums to {float(row.sum())}, expected 1"
            )

        self._matrix[r] = row

    def check_row(self, label: Hashable) -> None:
        """Raise InvalidDistributionError unless the row for ``label`` sums to 1."""
        row = self._matrix[self.index_of(label)]
        if not _is_stochastic(row):
            raise InvalidDistributionError(
                f"Row for '{label}' sums to {float(row.sum())}, expected 1"
            )

    def check_rows(self) -> None:
        for label in self._states:
            self.check_row(label)

    def normalize(self) -> None:
        """Divide every row by its sum, making the matrix row-stochastic."""
        self._matrix = _normalized(self._states, self._matrix)

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def set_current_state(self, label: Optional[Hashable]) -> None:
        # Membership is checked by step(); the state may be added later
        self.current = label

    def get_current_state(self) -> Optional[Hashable]:
        return self.current

    def _current_index(self) -> int:
        if self.current is None:
            raise UnknownStateError("Current state is unset")
        return self.index_of(self.current)

    def step(self) -> Hashable:
        """Move to the next state and return its label."""
        r = self._current_index()
        u = float(self.rng.random())
        j = sample_index(self._matrix[r], u)

        previous = self.current
        self.current = self._states[j]
        logger.debug(f"Step {previous!r} -> {self.current!r} (u={u:.4f})")
        return self.current

    def walk(self, n_steps: int) -> List[Hashable]:
        """Step ``n_steps`` times.

        Returns:
            History of n_steps + 1 labels, starting with the current state.
        """
        if n_steps < 0:
            raise ValueError("n_steps must be >= 0")
        self._current_index()

        history = [self.current]
        for _ in range(n_steps):
            history.append(self.step())
        return history

    def stationary_distribution(self) -> np.ndarray:
        """Compute the stationary distribution of the chain, in state order."""
        if not self._states:
            raise UnknownStateError("Chain has no states")
        self.check_rows()

        eigenvalues, eigenvectors = np.linalg.eig(self._matrix.T)
        # Find eigenvector for eigenvalue closest to 1
        idx = np.argmin(np.abs(eigenvalues - 1.0))
        pi = np.real(eigenvectors[:, idx])
        pi = pi / pi.sum()
        return pi

    # ------------------------------------------------------------------
    # Estimation and alignment
    # ------------------------------------------------------------------

    def train(self, sequence: Iterable[Hashable]) -> None:
        """Replace states and matrix with estimates from one observed trajectory.

        States become the distinct labels of ``sequence`` in first-occurrence
        order. Each weight is the observed fraction of moves out of a state
        that went to the destination state. The current state is untouched.
        """
        observed = list(sequence)
        if len(observed) < 2:
            raise InsufficientDataError(
                f"Training needs at least 2 observations, got {len(observed)}"
            )

        states, counts = count_transitions(observed)
        matrix = _normalized(states, counts)

        self._states = states
        self._matrix = matrix
        self._reindex()
        logger.info(
            f"Trained on {len(observed)} observations: "
            f"{len(states)} states, {len(observed) - 1} transitions"
        )

    def sort_states_by_example(self, example_order: Iterable[Hashable]) -> None:
        """Reorder states, rows and columns to follow ``example_order``.

        Labels missing from the example share one key placed after every
        listed label, so they keep their current relative order.
        """
        if not self._states:
            return

        example = list(example_order)
        position: Dict[Hashable, int] = {}
        for i, label in enumerate(example):
            position.setdefault(label, i)
        missing = len(example)

        order = sorted(
            range(len(self._states)),
            key=lambda k: position.get(self._states[k], missing),
        )
        self._states = [self._states[k] for k in order]
        self._matrix = self._matrix[np.ix_(order, order)]
        self._reindex()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def copy(self, rng: Optional[np.random.Generator] = None) -> ChainModel:
        """Independent copy. Without ``rng``, the copy gets a generator seeded
        from this chain's stream, so walking it never advances this chain."""
        if rng is None:
            rng = np.random.default_rng(self.rng.integers(2**63))
        other = ChainModel(rng=rng, strict=self.strict)
        other._states = list(self._states)
        other._matrix = self._matrix.copy()
        other._reindex()
        other.current = self.current
        return other

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            self._matrix.copy(),
            index=pd.Index(self._states, name="from"),
            columns=pd.Index(self._states, name="to"),
        )

    def serialize_to_text(self) -> str:
        return render_text(self._states, self._matrix)

    def __str__(self) -> str:
        return self.serialize_to_text()

    def __repr__(self) -> str:
        return f"ChainModel(states={self._states!r}, current={self.current!r})"
