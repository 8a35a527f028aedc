from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

import typer

from models.records import UTILITY_TYPE_VALUES, UtilityType
from services.dates import format_date_for_display


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _unit(utility_type: str) -> str:
    if utility_type in UTILITY_TYPE_VALUES:
        return UtilityType(utility_type).unit
    return ""


def render_readings(readings: List[Mapping[str, Any]]) -> None:
    echo_heading("Readings")
    if not readings:
        typer.echo("No readings recorded for this period.")
        return
    for reading in readings:
        utility = reading.get("type", "")
        line = (
            f"  - {format_date_for_display(reading['date'])} "
            f"{utility}: {float(reading['usage']):.2f} {_unit(utility)}".rstrip()
        )
        notes = reading.get("notes")
        if notes:
            line = f"{line} ({notes})"
        typer.echo(f"{line} [id={reading.get('id')}]")


def render_statistics(payload: Dict[str, Any]) -> None:
    echo_heading("Statistics")
    echo_key_values([("period_days", payload.get("periodDays"))])
    for utility in UTILITY_TYPE_VALUES:
        suffix = utility.capitalize()
        total = float(payload.get(f"total{suffix}") or 0.0)
        average = float(payload.get(f"avg{suffix}") or 0.0)
        unit = _unit(utility)
        typer.echo(f"{utility}: total {total:.2f} {unit}, average {average:.2f} {unit}/day")


def render_chart(points: List[Mapping[str, Any]]) -> None:
    echo_heading("Chart Data")
    if not points:
        typer.echo("No data points available.")
        return
    for point in points:
        values = [
            f"{utility}={point[utility]}" for utility in UTILITY_TYPE_VALUES if utility in point
        ]
        typer.echo(f"  - {point['date']}: {' '.join(values)}")


def render_insights(payload: Mapping[str, Any]) -> None:
    echo_heading("AI-Powered Insights")
    typer.echo(payload.get("summary") or "")
    recommendations = payload.get("recommendations") or []
    if recommendations:
        typer.echo()
        echo_heading("Recommendations")
        for index, recommendation in enumerate(recommendations, start=1):
            typer.echo(f"  {index}. {recommendation}")
    typer.echo()
    typer.echo(f"generated_at: {payload.get('generatedAt')}")
