"""Exceptions raised by ChainModel operations."""


class ChainModelError(Exception):
    """Base class for all chain model errors."""


class DuplicateStateError(ChainModelError):
    """A state with this label is already registered."""


class UnknownStateError(ChainModelError):
    """A label is not registered, or the current state is unset."""


class InvalidStateError(ChainModelError):
    """The label cannot be registered (None marks an unset current state)."""


class InvalidDistributionError(ChainModelError):
    """A row does not sum to 1 within EPSILON, or holds an invalid weight."""


class DegenerateRowError(ChainModelError):
    """A row sums to zero and cannot be normalized."""


class InsufficientDataError(ChainModelError):
    """Training needs at least two observations."""


class SamplingExhaustedError(ChainModelError):
    """The cumulative row weight never exceeded the random draw."""
