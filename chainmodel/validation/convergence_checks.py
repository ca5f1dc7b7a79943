"""Repeated walk-then-train trials judged by the chi-square statistic."""

import logging
from dataclasses import dataclass, field
from typing import Hashable, List, Optional

import numpy as np
import pandas as pd

from chainmodel.config.constants import (
    CONVERGENCE_MAX_REJECTION_RATE,
    CONVERGENCE_STEPS,
    CONVERGENCE_TRIALS,
    WEATHER_CHI_SQUARE_CRITICAL,
    WEATHER_START_STATE,
)
from chainmodel.estimation.goodness_of_fit import transition_chi_square
from chainmodel.simulation.chain_model import ChainModel
from chainmodel.simulation.errors import DegenerateRowError

logger = logging.getLogger(__name__)


@dataclass
class TrialResult:
    trial: int
    statistic: float
    rejected: bool
    max_abs_error: float  # largest |P_hat - P| over cells; NaN if not trainable


@dataclass
class ConvergenceReport:
    threshold: float
    max_rejection_rate: float
    results: List[TrialResult] = field(default_factory=list)

    @property
    def n_rejected(self) -> int:
        return sum(1 for r in self.results if r.rejected)

    @property
    def rejection_rate(self) -> float:
        if not self.results:
            return 0.0
        return self.n_rejected / len(self.results)

    @property
    def passed(self) -> bool:
        return bool(self.results) and self.rejection_rate <= self.max_rejection_rate

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [vars(r) for r in self.results],
            columns=["trial", "statistic", "rejected", "max_abs_error"],
        )

    def summary(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        lines = [
            f"Convergence: [{status}] {self.n_rejected}/{len(self.results)} trials "
            f"above chi-square {self.threshold:.3f} "
            f"(rate {self.rejection_rate:.3f}, allowed {self.max_rejection_rate:.3f})"
        ]
        if self.results:
            stats = np.array([r.statistic for r in self.results])
            lines.append(
                f"  statistic mean={stats.mean():.3f} median={np.median(stats):.3f} "
                f"max={stats.max():.3f}"
            )
        return "\n".join(lines)


def _max_abs_error(history: List[Hashable], reference: ChainModel) -> float:
    estimate = ChainModel()
    try:
        estimate.train(history)
    except DegenerateRowError:
        return float("nan")
    if set(estimate.states) != set(reference.states):
        return float("nan")
    estimate.sort_states_by_example(reference.states)
    return float(np.max(np.abs(estimate.matrix - reference.matrix)))


def validate_convergence(
    reference: ChainModel,
    start: Hashable = WEATHER_START_STATE,
    n_steps: int = CONVERGENCE_STEPS,
    trials: int = CONVERGENCE_TRIALS,
    threshold: float = WEATHER_CHI_SQUARE_CRITICAL,
    max_rejection_rate: float = CONVERGENCE_MAX_REJECTION_RATE,
    seed: Optional[int] = None,
) -> ConvergenceReport:
    """Check that walks sampled from ``reference`` train back into it.

    Each trial walks ``n_steps`` from ``start`` with an independent RNG,
    then compares the observed transition counts with the reference.

    Args:
        reference: Row-stochastic chain to sample from. Not modified.
        start: Initial state of every walk.
        n_steps: Steps per walk.
        trials: Number of independent walks.
        threshold: Chi-square critical value for rejecting one trial.
        max_rejection_rate: Largest acceptable fraction of rejected trials.
        seed: Master seed; trial RNGs are spawned from it.

    Returns:
        ConvergenceReport with one TrialResult per walk.
    """
    reference.check_rows()
    report = ConvergenceReport(threshold=threshold, max_rejection_rate=max_rejection_rate)

    seeds = np.random.SeedSequence(seed).spawn(trials)
    for trial, trial_seed in enumerate(seeds):
        walker = reference.copy(rng=np.random.default_rng(trial_seed))
        walker.set_current_state(start)
        history = walker.walk(n_steps)

        statistic = transition_chi_square(history, reference)
        result = TrialResult(
            trial=trial,
            statistic=statistic,
            rejected=statistic > threshold,
            max_abs_error=_max_abs_error(history, reference),
        )
        report.results.append(result)
        logger.debug(f"Trial {trial:03d}: chi2={statistic:.3f} rejected={result.rejected}")

    if report.passed:
        logger.info(f"Convergence check passed ({report.n_rejected}/{trials} rejected)")
    else:
        logger.warning(
            f"Convergence check failed: {report.n_rejected}/{trials} trials "
            f"above {threshold:.3f}"
        )
    return report


if __name__ == "__main__":
    import sys

    from chainmodel.simulation.chain_factory import build_chain

    logging.basicConfig(level=logging.INFO)
    result = validate_convergence(build_chain(), seed=42)
    print(result.summary())
    sys.exit(0 if result.passed else 1)
