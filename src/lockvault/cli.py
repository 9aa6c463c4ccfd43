"""Command line entry point."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .config.loader import load_config
from .engine.voting_power import LockRecord, VotingPolicy, VotingPowerCalculator, WindowPolicy
from .reporting.export import export_csv, export_events_csv, export_json
from .simulation.runner import SimulationRunner
from .validation.sanity_checks import validate_snapshots

app = typer.Typer(add_completion=False, help="Time-weighted token-locking vault tools.")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


@app.command()
def simulate(
    config: Optional[Path] = typer.Option(None, "--config", help="YAML config (defaults to packaged defaults)"),
    seed: Optional[int] = typer.Option(None, "--seed"),
    steps: Optional[int] = typer.Option(None, "--steps"),
    csv: Optional[Path] = typer.Option(None, "--csv", help="Write per-step states"),
    events_csv: Optional[Path] = typer.Option(None, "--events-csv", help="Write every notification"),
    json_out: Optional[Path] = typer.Option(None, "--json", help="Write summary JSON"),
    log_level: str = typer.Option("WARNING", "--log-level"),
) -> None:
    """Run a seeded simulation and print its final metrics."""
    _configure_logging(log_level)
    cfg = load_config(str(config) if config else None)
    if steps is not None:
        cfg.simulation.steps = steps

    result = SimulationRunner(cfg).run(random_seed=seed)

    typer.echo(f"config {cfg.compute_hash()}  policy={cfg.voting.policy}")
    for key, value in result.final_metrics.items():
        typer.echo(f"  {key:<22} {value:,}" if isinstance(value, int) else f"  {key:<22} {value:,.2f}")

    for warning in validate_snapshots(cfg, result.snapshots):
        typer.echo(f"[{warning.severity}] {warning.message}" + (f": {warning.details}" if warning.details else ""))

    if csv:
        export_csv(result, str(csv))
    if events_csv:
        export_events_csv(result.events, str(events_csv))
    if json_out:
        export_json(result, str(json_out))

    if result.conservation_errors:
        raise typer.Exit(code=1)


@app.command()
def curve(
    amount: int = typer.Option(10_000, "--amount", help="Net principal"),
    policy: VotingPolicy = typer.Option(VotingPolicy.DECAY, "--policy"),
    lock_period: int = typer.Option(50, "--lock-period"),
    step: int = typer.Option(5, "--step"),
    include_end: bool = typer.Option(False, "--include-end/--exclude-end"),
) -> None:
    """Print the voting-power curve of a single lock starting at 0."""
    calculator = VotingPowerCalculator(policy, WindowPolicy(include_start=True, include_end=include_end))
    lock = LockRecord(principal=amount, virtual_principal=amount, start_index=0, end_index=lock_period)
    indices = sorted(set(range(0, lock_period + 1, max(1, step))) | {lock_period})
    for t, power in calculator.curve(lock, indices):
        typer.echo(f"{t:>8} {power:>14,}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
