from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer

from cli.config import CLIConfig, load_config
from cli.render import render_band, render_result
from logging_config import configure_logging
from models.group import AggregationMode
from models.schemas import BootstrapStatus
from services.classifier import classify
from services.replay import ReplayService


@dataclass
class CLIState:
    config: CLIConfig


app = typer.Typer(
    help="Replay recorded CO2 readings through a monitored sensor group.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _parse_mode(raw: Optional[str]) -> Optional[AggregationMode]:
    if raw is None:
        return None
    mode = AggregationMode.parse(raw)
    if mode is None:
        raise typer.BadParameter("Expected one of min, max, mean or 1-3.", param_hint="--mode")
    return mode


@app.callback()
def main(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(
        None,
        "--name",
        "-n",
        help="Virtual device name (defaults to CO2_DEVICE_NAME env or co2_office).",
    ),
    title: Optional[str] = typer.Option(
        None,
        "--title",
        help="Virtual device title (defaults to CO2_DEVICE_TITLE env).",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Override LOG_LEVEL for this run.",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging(log_level.upper() if log_level else None)
    try:
        config = load_config(device_name=name, device_title=title)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--name") from exc
    ctx.obj = CLIState(config=config)


@app.command("replay")
def replay_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="CSV of timestamp,address,value rows."),
    target: List[str] = typer.Option(
        ...,
        "--target",
        "-t",
        help="Member address (device/control); repeat for several sensors.",
    ),
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        "-m",
        help="Initial averaging mode: min, max or mean.",
    ),
) -> None:
    """Replay a recording and show the resulting group state."""
    state = _get_state(ctx)
    aggregation_mode = _parse_mode(mode)
    typer.echo(f"Replaying {file} into {state.config.device_name} ...")
    try:
        with file.open("r", encoding="utf-8", newline="") as handle:
            result = ReplayService().run(
                handle,
                targets=target,
                name=state.config.device_name,
                title=state.config.device_title,
                mode=aggregation_mode,
            )
    except ValueError as exc:
        typer.secho(f"Replay failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    typer.echo()
    render_result(result)
    if result.snapshot.status is BootstrapStatus.failed:
        raise typer.Exit(code=2)


@app.command("classify")
def classify_command(
    value: float = typer.Argument(..., help="CO2 concentration in ppm."),
) -> None:
    """Print the health band for a single concentration."""
    render_band(value, classify(value))
