#!/usr/bin/env python3
"""
cli.py

Command-line interface for inspecting call-timing snapshots: a statistics
table or a reconstructed sequence diagram.
"""
import logging

import click
from rich import print

from call_timing import config
from call_timing.exporters import sequence
from call_timing.exporters import table
from call_timing.exporters.save import save_file
from call_timing.recorder import TimingStore
from call_timing.stats import function_stats, sample_stats, sort_by_execution


def _load(snapshot_path: str) -> TimingStore:
    try:
        return TimingStore.load(snapshot_path)
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"Cannot read snapshot {snapshot_path}: {exc}")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log export activity.")
def main(verbose):
    """
    Inspect call-timing snapshots written by TimingStore.dump().
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("snapshot", type=click.Path(dir_okay=False))
@click.option("--csv", "csv_name", default=None, help="Also save the table as <export dir>/<NAME>.csv")
def stats(snapshot, csv_name):
    """Print per-function statistics, slowest first."""
    store = _load(snapshot)
    snap = store.snapshot()
    results = sort_by_execution(function_stats(snap))
    if not results:
        click.echo("No timings recorded in this snapshot.", err=True)
    else:
        table.print_table(results)

    series = sample_stats(snap)
    for sample_id, summary in series.items():
        if summary.is_empty:
            continue
        print(
            f"[b]{sample_id}[/] • avg {table.format_time(summary.avg)}"
            f" • p99 {table.format_time(summary.p99)}"
        )

    if csv_name:
        path = save_file(table.to_csv(results), csv_name, "csv")
        if path is None:
            click.echo("Could not save CSV file.", err=True)
        else:
            click.echo(f"Saved {path}")


@main.command()
@click.argument("snapshot", type=click.Path(dir_okay=False))
@click.option(
    "--max-iterations", "-n", default=config.DEFAULT_MAX_ITERATIONS, show_default=True,
    type=click.IntRange(min=0), help="Maximum number of adjacent event pairs to examine.",
)
@click.option("--save", "save_name", default=None, help="Also save the diagram as <export dir>/<NAME>.md")
def diagram(snapshot, max_iterations, save_name):
    """Print the sequence diagram reconstructed from call timings."""
    store = _load(snapshot)
    text = sequence.generate_sequence_diagram(store, max_iterations=max_iterations)
    click.echo(text, nl=False)
    if save_name:
        path = save_file(text, save_name, "markdown")
        if path is None:
            click.echo("Could not save diagram.", err=True)
        else:
            click.echo(f"Saved {path}")


if __name__ == "__main__":
    main()
