from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_devices(devices: List[Dict[str, Any]]) -> None:
    echo_heading("Devices")
    if not devices:
        typer.echo("No devices found.")
        return
    for device in devices:
        line = f"  - {device.get('id')}: {device.get('name')} ({device.get('timezone')})"
        if "carbon" in device or "diesel" in device:
            line += f" carbon={device.get('carbon')} diesel={device.get('diesel')}"
        typer.echo(line)


def render_savings(device_id: int, payload: Dict[str, Any]) -> None:
    echo_heading(f"Savings for device {device_id}")
    records = payload.get("savingsData") or []
    echo_key_values(
        [
            ("total_carbon", payload.get("totalCarbon")),
            ("total_diesel", payload.get("totalDiesel")),
            ("records_in_window", len(records)),
        ]
    )


def render_chunks(chunks: List[Dict[str, Any]]) -> None:
    echo_heading("Date chunks")
    for chunk in chunks:
        typer.echo(f"  - {chunk.get('start')} -> {chunk.get('end')}")


def bucket_series(
    chunks: List[Dict[str, Any]], records: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Sum carbon and fuel per chunk for the records falling inside each one."""
    series: List[Dict[str, Any]] = []
    for chunk in chunks:
        start = datetime.fromisoformat(chunk["start"])
        end = datetime.fromisoformat(chunk["end"])
        carbon = 0.0
        diesel = 0.0
        for record in records:
            timestamp = datetime.fromisoformat(record["timestamp"])
            if start <= timestamp <= end:
                carbon += float(record.get("carbon_saved") or 0.0)
                diesel += float(record.get("fuel_saved") or 0.0)
        series.append(
            {"start": chunk["start"], "end": chunk["end"], "carbon": carbon, "diesel": diesel}
        )
    return series


def render_series(series: List[Dict[str, Any]]) -> None:
    typer.echo()
    echo_heading("Series")
    if not series:
        typer.echo("No chunks in window.")
        return
    for point in series:
        typer.echo(
            f"  - {point['start']} -> {point['end']}: "
            f"carbon={point['carbon']} diesel={point['diesel']}"
        )
