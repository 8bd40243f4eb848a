from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_connection, render_sensor_data


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for querying the sensor dashboard service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


def _exit_on_failure(payload: Dict[str, Any]) -> None:
    if payload.get("success"):
        return
    typer.secho(
        payload.get("message") or "Request reported failure.",
        fg=typer.colors.RED,
        err=True,
    )
    raise typer.Exit(code=1)


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
        help="Seconds to wait for each request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the latest readings and resolved sensor locations."""
    state = _get_state(ctx)
    payload = state.client.latest()
    _exit_on_failure(payload)
    render_sensor_data(payload)


@app.command("history")
def history_command(ctx: typer.Context) -> None:
    """Show reading counts for the full history of every stream."""
    state = _get_state(ctx)
    payload = state.client.history()
    _exit_on_failure(payload)
    render_sensor_data(payload)


@app.command("ping")
def ping_command(ctx: typer.Context) -> None:
    """Check that the service can reach its sensor store."""
    state = _get_state(ctx)
    payload = state.client.connection()
    render_connection(payload)
    _exit_on_failure(payload)
