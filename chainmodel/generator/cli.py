"""Command-line demo: sample the weather chain and train a model from the walk."""

import logging

import click

from chainmodel.config.constants import (
    CONVERGENCE_STEPS,
    DEMO_STEPS,
    WEATHER_START_STATE,
)
from chainmodel.estimation.goodness_of_fit import compare_chains, transition_chi_square
from chainmodel.simulation.chain_factory import build_chain
from chainmodel.simulation.chain_model import ChainModel
from chainmodel.simulation.errors import DegenerateRowError
from chainmodel.validation.convergence_checks import validate_convergence


@click.command()
@click.option("--steps", default=DEMO_STEPS, show_default=True, help="Number of steps to walk.")
@click.option("--seed", default=42, show_default=True, help="RNG seed.")
@click.option("--start", default=WEATHER_START_STATE, show_default=True, help="Initial state.")
@click.option("--align/--no-align", default=True, help="Sort the trained states like the source chain.")
@click.option("--trials", default=0, help="Also run this many convergence trials.")
@click.option("--trial-steps", default=CONVERGENCE_STEPS, show_default=True, help="Steps per convergence trial.")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def main(steps, seed, start, align, trials, trial_steps, verbose):
    """Walk the R/C/S weather chain and estimate it back from the history."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger(__name__)

    source = build_chain(seed=seed, start=start)
    if start not in source:
        raise click.BadParameter(
            f"{start!r} is not one of {source.states}", param_hint="--start",
        )
    logger.info(f"Walking {steps} steps from {start!r} (seed={seed})...")
    history = source.walk(steps)

    click.echo("History: " + "".join(str(label) for label in history))
    click.echo("")
    click.echo("Source chain:")
    click.echo(source.serialize_to_text())

    trained = ChainModel()
    try:
        trained.train(history)
    except DegenerateRowError as exc:
        logger.warning(f"Could not train on this walk: {exc}. Try more --steps.")
        trained = None

    if trained is not None:
        if align:
            trained.sort_states_by_example(source.states)
        click.echo("")
        click.echo("Trained chain:")
        click.echo(trained.serialize_to_text())

        chi2 = transition_chi_square(history, source)
        click.echo("")
        click.echo(f"Chi-square (transition counts): {chi2:.3f}")
        if set(trained.states) == set(source.states):
            click.echo(f"Chi-square (matrices): {compare_chains(trained, source):.3f}")

    if trials > 0:
        logger.info(f"Running {trials} convergence trials of {trial_steps} steps...")
        report = validate_convergence(
            source, start=start, n_steps=trial_steps, trials=trials, seed=seed,
        )
        click.echo("")
        click.echo(report.summary())

    logger.info("Done.")


if __name__ == "__main__":
    main()
