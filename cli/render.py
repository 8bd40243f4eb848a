from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

LOCATION_KEYS = ("rain", "soil", "waterLevel")


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _last_entry(collection: Dict[str, Any]) -> Any:
    if not collection:
        return None
    return list(collection.values())[-1]


def render_sensor_data(payload: Dict[str, Any]) -> None:
    data = payload.get("data") or {}
    echo_heading("Sensor Streams")
    streams = {key: value for key, value in data.items() if key != "locations"}
    if not streams:
        typer.echo("No sensor data available.")
    for key, collection in streams.items():
        collection = collection or {}
        typer.echo(f"{key}: {len(collection)} readings")
        latest = _last_entry(collection)
        if latest is not None:
            typer.echo(f"  last: {latest}")

    locations = data.get("locations")
    if locations is None:
        return
    typer.echo()
    echo_heading("Locations")
    echo_key_values(
        (key, locations.get(key) or "(unresolved)") for key in LOCATION_KEYS
    )


def render_connection(payload: Dict[str, Any]) -> None:
    echo_heading("Store Connection")
    echo_key_values(
        [
            ("connected", payload.get("connected")),
            ("message", payload.get("message")),
        ]
    )
