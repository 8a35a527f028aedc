from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_chart, render_insights, render_readings, render_statistics
from services.reading_cache import ReadingCache, UpdateState


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Log utility readings and query statistics from the usage tracker service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)

_START_HELP = "Inclusive start date (YYYY-MM-DD); defaults to 30 days ago."
_END_HELP = "Inclusive end date (YYYY-MM-DD); defaults to today."


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Tracker API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        "-t",
        help="Bearer token (defaults to API_TOKEN env).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, token=token, request_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("list")
def list_command(
    ctx: typer.Context,
    start: Optional[str] = typer.Option(None, "--start", help=_START_HELP),
    end: Optional[str] = typer.Option(None, "--end", help=_END_HELP),
    utility_type: str = typer.Option("all", "--type", help="electricity, gas, water or all."),
) -> None:
    """List readings in a date range."""
    state = _get_state(ctx)
    render_readings(state.client.list_readings(start, end, utility_type))


@app.command("add")
def add_command(
    ctx: typer.Context,
    utility_type: str = typer.Argument(..., help="electricity, gas or water."),
    usage: float = typer.Argument(..., help="Amount used (kWh, m³ or L)."),
    date: str = typer.Option(..., "--date", "-d", help="Reading date (YYYY-MM-DD)."),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free-form notes."),
) -> None:
    """Log a new reading."""
    state = _get_state(ctx)
    payload: Dict[str, Any] = {"date": date, "type": utility_type, "usage": usage}
    if notes:
        payload["notes"] = notes
    created = state.client.add_reading(payload)
    typer.secho(f"Energy reading added successfully. id={created['id']}", fg=typer.colors.GREEN)


@app.command("update")
def update_command(
    ctx: typer.Context,
    reading_id: str = typer.Argument(..., help="Identifier of the reading to change."),
    date: Optional[str] = typer.Option(None, "--date", "-d", help="New reading date."),
    utility_type: Optional[str] = typer.Option(None, "--type", help="New utility type."),
    usage: Optional[float] = typer.Option(None, "--usage", help="New usage amount."),
    notes: Optional[str] = typer.Option(None, "--notes", help="New notes."),
) -> None:
    """Change fields of an existing reading."""
    state = _get_state(ctx)
    fields: Dict[str, Any] = {
        name: value
        for name, value in (
            ("date", date),
            ("utility_type", utility_type),
            ("usage", usage),
            ("notes", notes),
        )
        if value is not None
    }
    if not fields:
        typer.secho("Nothing to update.", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)

    cache = ReadingCache(state.client)
    cache.refresh()
    try:
        result = cache.update(reading_id, fields)
    except KeyError:
        typer.secho(f"Reading {reading_id} was not found.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if result.state is UpdateState.rolled_back:
        typer.secho(f"Update rolled back: {result.error}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.secho("Energy reading updated successfully.", fg=typer.colors.GREEN)


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    reading_id: str = typer.Argument(..., help="Identifier of the reading to delete."),
) -> None:
    """Delete a reading."""
    state = _get_state(ctx)
    state.client.delete_reading(reading_id)
    typer.secho("Energy reading deleted successfully.", fg=typer.colors.GREEN)


@app.command("stats")
def stats_command(
    ctx: typer.Context,
    start: Optional[str] = typer.Option(None, "--start", help=_START_HELP),
    end: Optional[str] = typer.Option(None, "--end", help=_END_HELP),
) -> None:
    """Show totals and daily averages per utility."""
    state = _get_state(ctx)
    render_statistics(state.client.get_statistics(start, end))


@app.command("chart")
def chart_command(
    ctx: typer.Context,
    start: Optional[str] = typer.Option(None, "--start", help=_START_HELP),
    end: Optional[str] = typer.Option(None, "--end", help=_END_HELP),
    utility_type: str = typer.Option("all", "--type", help="electricity, gas, water or all."),
) -> None:
    """Print chart series, one line per date."""
    state = _get_state(ctx)
    render_chart(state.client.get_chart(start, end, utility_type))


@app.command("insights")
def insights_command(
    ctx: typer.Context,
    start: Optional[str] = typer.Option(None, "--start", help=_START_HELP),
    end: Optional[str] = typer.Option(None, "--end", help=_END_HELP),
) -> None:
    """Ask the service for AI insights over readings in a date range."""
    state = _get_state(ctx)
    readings = state.client.list_readings(start, end)
    if not readings:
        typer.secho("Add some energy readings first to get insights", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.echo("Analyzing your energy usage...")
    render_insights(state.client.request_insights(readings))
