from __future__ import annotations

from typing import Any, Iterable

import typer

from models.group import HEALTH_BAND_LABELS, MODE_LABELS, HealthBand
from models.schemas import GroupSnapshot, ReplayResult


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_number(value: float | None) -> str:
    if value is None:
        return "-"
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


def render_band(value: float, band: HealthBand) -> None:
    typer.echo(f"{_format_number(value)} ppm -> {int(band)} {band.description}")


def render_snapshot(snapshot: GroupSnapshot) -> None:
    echo_heading(f"{snapshot.title} ({snapshot.device})")
    state = snapshot.state
    echo_key_values(
        [
            ("status", snapshot.status.value),
            ("mode", f"{int(snapshot.mode)} {MODE_LABELS[snapshot.mode]}"),
            ("average", _format_number(snapshot.average)),
            ("state", f"{int(state)} {HEALTH_BAND_LABELS[state]}" if state else "-"),
            ("group_valid", snapshot.group_valid),
            ("qtyCO2", len(snapshot.members)),
        ]
    )
    if snapshot.average_error:
        typer.secho("No valid CO2 sensors in group.", fg=typer.colors.RED)

    typer.echo()
    echo_heading("Members")
    if not snapshot.members:
        typer.echo("No members admitted.")
        return
    for member in snapshot.members:
        flag = "valid" if member.valid else "INVALID"
        line = f"  - {member.exposed_name} [{member.address}]: {_format_number(member.value)} ({flag})"
        typer.secho(line, fg=None if member.valid else typer.colors.YELLOW)


def render_result(result: ReplayResult) -> None:
    render_snapshot(result.snapshot)

    typer.echo()
    echo_heading("Replay")
    echo_key_values(
        [
            ("rows_applied", result.rows_applied),
            ("virtual_seconds", _format_number(result.duration_s)),
        ]
    )
    if result.errors:
        for error in result.errors:
            typer.echo(f"  - row {error.row_number}: {error.reason}")
    else:
        typer.echo("No rows skipped.")
