"""Run the HTTP API with uvicorn."""

from __future__ import annotations

import os

import click
import uvicorn

from cardbox.app.config import CONFIG_ENV_VAR


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.option("--port", type=int, default=8000, show_default=True, help="Port to listen on.")
@click.option("--reload", is_flag=True, help="Reload on code changes (development).")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON config file for the analysis service.",
)
def serve(host: str, port: int, reload: bool, config_path: str | None) -> None:
    """Serve the card analysis API."""

    if config_path:
        # The app reads its settings from the environment on first request
        os.environ[CONFIG_ENV_VAR] = os.path.abspath(config_path)
    uvicorn.run("cardbox.app.api:app", host=host, port=port, reload=reload)
