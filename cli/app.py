from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import bucket_series, render_chunks, render_devices, render_savings, render_series


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for querying the device savings service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("devices")
def devices_command(
    ctx: typer.Context,
    savings: bool = typer.Option(
        False,
        "--savings/--no-savings",
        help="Include whole-history carbon and diesel totals.",
    ),
) -> None:
    """List known devices."""
    state = _get_state(ctx)
    render_devices(state.client.list_devices(include_savings=savings))


@app.command("savings")
def savings_command(
    ctx: typer.Context,
    device_id: int = typer.Argument(..., help="Device identifier."),
    start: Optional[str] = typer.Option(None, "--start", help="Window start (ISO-8601)."),
    end: Optional[str] = typer.Option(None, "--end", help="Window end (ISO-8601)."),
    resolution: Optional[str] = typer.Option(
        None, "--resolution", "-r", help="Chunk resolution: day, week or month."
    ),
    series: bool = typer.Option(
        False,
        "--series/--no-series",
        help="Also print per-chunk sums for the window.",
    ),
) -> None:
    """Show savings totals and the records inside a date window."""
    state = _get_state(ctx)
    payload = state.client.get_savings(device_id, start=start, end=end, resolution=resolution)
    render_savings(device_id, payload)

    if not series:
        return

    chunks = state.client.get_chunks(start=start, end=end, resolution=resolution)
    render_series(bucket_series(chunks, payload.get("savingsData") or []))


@app.command("chunks")
def chunks_command(
    ctx: typer.Context,
    start: Optional[str] = typer.Option(None, "--start", help="Window start (ISO-8601)."),
    end: Optional[str] = typer.Option(None, "--end", help="Window end (ISO-8601)."),
    resolution: Optional[str] = typer.Option(
        None, "--resolution", "-r", help="Chunk resolution: day, week or month."
    ),
) -> None:
    """Print the calendar-aligned chunks covering a date window."""
    state = _get_state(ctx)
    render_chunks(state.client.get_chunks(start=start, end=end, resolution=resolution))
