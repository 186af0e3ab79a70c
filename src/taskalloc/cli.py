"""CLI entry point for taskalloc."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from taskalloc import __version__
from taskalloc.config import LOG_LEVELS, AllocationConfig, load_config
from taskalloc.errors import ConfigError

if TYPE_CHECKING:
    from taskalloc.engine.simulation import SimulationResult

console = Console()


def configure_logging(level: str) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _load(config_path: Path | None) -> AllocationConfig:
    try:
        return load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version=__version__, prog_name="taskalloc")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level for engine diagnostics (default: config, else WARNING)",
)
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """taskalloc: stochastic task allocation for autonomous agents."""
    ctx.obj = {"log_level": log_level}
    configure_logging(log_level or "WARNING")


@main.command()
def init() -> None:
    """Initialize taskalloc: create ~/.taskalloc/ and database."""
    from taskalloc.storage.database import Database

    db = Database()
    db.ensure_tables()
    console.print(f"[green]taskalloc initialized at {db.data_dir}[/green]")
    console.print(f"  Database: {db.db_path}")
    console.print(f"  Config:   {db.data_dir / 'config.toml'}")


@main.command()
@click.option("--agents", default=4, show_default=True, help="Number of independent agents")
@click.option("--ticks", default=500, show_default=True, help="Control cycles per agent")
@click.option("--seed", default=0, show_default=True, help="Base PRNG seed")
@click.option("--workers", default=4, show_default=True, help="Worker threads")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="TOML config file (default: ~/.taskalloc/config.toml)",
)
@click.option("--save", is_flag=True, help="Record the run in the database")
@click.pass_context
def simulate(
    ctx: click.Context,
    agents: int,
    ticks: int,
    seed: int,
    workers: int,
    config_path: Path | None,
    save: bool,
) -> None:
    """Run agents over simulated control ticks and summarize their decisions."""
    from taskalloc.engine.simulation import run_simulation

    config = _load(config_path)
    if agents < 1 or ticks < 1 or workers < 1:
        raise click.BadParameter("agents, ticks and workers must all be >= 1")
    if not (ctx.obj or {}).get("log_level"):
        configure_logging(config.engine.log_level)

    result = run_simulation(config, agents=agents, ticks=ticks, seed=seed, max_workers=workers)
    _print_result(result)

    if save:
        from taskalloc.storage.database import Database

        db = Database()
        db.record_run(result)
        console.print(f"\n[green]Saved {result.run_id}[/green]")


@main.command()
@click.option("--limit", default=20, help="Number of entries to show")
def history(limit: int) -> None:
    """Show recently saved simulation runs."""
    from taskalloc.storage.database import Database

    rows = Database().recent_runs(limit)
    if not rows:
        console.print("[dim]No runs saved yet. Use `taskalloc simulate --save`.[/dim]")
        return

    table = Table(title="Simulation History")
    table.add_column("Run", style="cyan")
    table.add_column("Agents")
    table.add_column("Ticks")
    table.add_column("Seed")
    table.add_column("Completions", style="green")
    table.add_column("Aborts", style="yellow")
    table.add_column("Halted", style="red")
    table.add_column("Date")

    for row in rows:
        table.add_row(
            row["run_id"],
            str(row["agents"]),
            str(row["ticks"]),
            str(row["seed"]),
            str(row["completions"]),
            str(row["aborts"]),
            str(row["halted"]),
            str(row["created_at"])[:16],
        )

    console.print(table)


@main.command()
@click.option("--reactivity", default=8.0, show_default=True)
@click.option("--offset", default=2.0, show_default=True)
@click.option("--exec-time", type=float, required=True, help="Time spent on the task so far")
@click.option("--estimate", type=float, required=True, help="Whole-task time estimate")
@click.option("--subtask1", type=float, default=None, help="First subtask estimate")
@click.option("--subtask2", type=float, default=None, help="Second subtask estimate")
def probe(
    reactivity: float,
    offset: float,
    exec_time: float,
    estimate: float,
    subtask1: float | None,
    subtask2: float | None,
) -> None:
    """Print the abort and partition probabilities for the given numbers."""
    from taskalloc.estimation import TimeEstimate
    from taskalloc.probability import AbortProbability, PartitionProbability

    if (subtask1 is None) != (subtask2 is None):
        raise click.BadParameter("--subtask1 and --subtask2 must be given together")

    try:
        abort = AbortProbability(reactivity, offset)
        partition = PartitionProbability(reactivity)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    whole = TimeEstimate(1.0)
    whole.update(estimate)
    console.print(f"[bold]Abort (whole):[/bold] {abort.compute(exec_time, whole):.6f}")

    if subtask1 is not None and subtask2 is not None:
        first, second = TimeEstimate(1.0), TimeEstimate(1.0)
        first.update(subtask1)
        second.update(subtask2)
        console.print(
            f"[bold]Abort (partitioned):[/bold] "
            f"{abort.compute(exec_time, whole, first, second):.6f}"
        )
        console.print(
            f"[bold]Partition:[/bold] {partition.compute(estimate, subtask1, subtask2):.6f}"
        )


def _print_result(result: SimulationResult) -> None:
    """Print simulation summary."""
    status_color = "red" if result.halted else "green"
    console.print(f"\n[{status_color}]Run: {result.run_id}[/{status_color}]")
    console.print(f"Agents: {result.agents} | Ticks: {result.ticks} | Seed: {result.seed}")
    console.print(
        f"Completions: {result.completions} | Aborts: {result.aborts} | "
        f"Halted: {result.halted}"
    )
    console.print(f"Duration: {result.duration_seconds:.2f}s")

    table = Table(title="Tasks")
    table.add_column("Task", style="cyan")
    table.add_column("Exec est.")
    table.add_column("Interface est.")
    table.add_column("P(abort)")
    table.add_column("P(partition)")
    table.add_column("Completions", style="green")
    table.add_column("Aborts", style="yellow")

    for name, stats in result.task_summary().items():
        table.add_row(
            name,
            f"{stats['mean_exec_estimate']:.2f}",
            f"{stats['mean_interface_estimate']:.2f}",
            f"{stats['mean_abort_probability']:.4f}",
            f"{stats['mean_partition_probability']:.4f}",
            str(int(stats["completions"])),
            str(int(stats["aborts"])),
        )
    console.print(table)

    for report in result.reports:
        if report.halted:
            console.print(f"  [red]{report.agent_id} halted:[/red] {report.fatal_reason}")
