"""Click-based CLI for data2states.

Usage:
    data2states convert --data <raster> --methods <table> --output <file> [options]
    data2states methods
"""

from __future__ import annotations

import logging
import sys

import click

from .converter import StateConverter
from .exceptions import StateConversionError
from .io import load_method_table, load_raster, write_method_results, write_states
from .methods import method_names


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log progress at INFO level.")
def cli(verbose: bool) -> None:
    """data2states — convert raw measurements to discrete states."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command("convert")
@click.option(
    "--data", "-d", required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Raster file (.npy, .npz or .mat).",
)
@click.option(
    "--methods", "-m", required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Method table (.json or .csv).",
)
@click.option(
    "--output", "-o", required=True,
    type=click.Path(dir_okay=False),
    help="Output states file (.npy or .npz).",
)
@click.option(
    "--results", "-r", default=None,
    type=click.Path(dir_okay=False),
    help="Optional method results file (.json or .csv).",
)
@click.option(
    "--mat-variable", default=None,
    help="Variable to read from a .mat raster file.",
)
@click.option(
    "--probability-tolerance", default=1e-9, show_default=True, type=float,
    help="Tolerance for manual Poisson-mixture probability sums.",
)
@click.option(
    "--strict-probabilities", is_flag=True, default=False,
    help="Require probability rows to sum to exactly 1.",
)
@click.option(
    "--max-iterations", default=None, type=click.IntRange(min=1),
    help="Nelder-Mead iteration cap per Poisson rate (default 1000).",
)
@click.option(
    "--on-nonconvergence", default="raise", show_default=True,
    type=click.Choice(["raise", "warn"]),
    help="Behaviour when a Poisson-mixture fit does not converge.",
)
def convert_cmd(
    data: str,
    methods: str,
    output: str,
    results: str | None,
    mat_variable: str | None,
    probability_tolerance: float,
    strict_probabilities: bool,
    max_iterations: int | None,
    on_nonconvergence: str,
) -> None:
    """Convert the raster in DATA to states using the METHODS table."""
    click.echo(f"Loading raster: {data}")
    click.echo(f"Loading methods: {methods}")

    try:
        raster = load_raster(data, variable=mat_variable)
        table = load_method_table(methods)
        converter = StateConverter(
            probability_tolerance=probability_tolerance,
            strict_probability_sum=strict_probabilities,
            max_iterations=max_iterations,
            on_nonconvergence=on_nonconvergence,
        )
        result = converter.convert(raster, table)
    except (StateConversionError, OSError, KeyError, ValueError) as exc:
        click.echo(f"Error during conversion: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Stated {len(result.methods)} method rows.")

    try:
        write_states(result.states, output)
        click.echo(f"States written to: {output}")
        if results:
            write_method_results(result.method_results, results)
            click.echo(f"Method results written to: {results}")
    except (OSError, ValueError) as exc:
        click.echo(f"Error writing output: {exc}", err=True)
        sys.exit(1)


@cli.command("methods")
def methods_cmd() -> None:
    """List the available state conversion methods."""
    for name, aliases in method_names().items():
        suffix = f"  (aliases: {', '.join(aliases)})" if aliases else ""
        click.echo(f"{name}{suffix}")


if __name__ == "__main__":
    cli()
