"""Entry point for running the CardBox CLI.

This module defines a top-level Click group that aggregates all subcommands
defined in the ``cardbox.interfaces.cli`` package. Executing
``python -m cardbox.interfaces.cli`` or the installed ``cardbox`` script will
invoke this group and present the available commands.
"""

import logging

import click

from cardbox.infrastructure.observability import configure_logging, configure_tracing

from .analyze import analyze, extract
from .brands import brands
from .serve import serve


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-v", "--verbose", is_flag=True, help="Log pipeline details to stderr.")
@click.option(
    "--trace",
    is_flag=True,
    help="Record OpenTelemetry spans (requires the tracing extra).",
)
def cli(verbose: bool, trace: bool) -> None:
    """CardBox command-line interface."""
    configure_logging(level=logging.DEBUG if verbose else logging.WARNING)
    if trace and not configure_tracing(service_name="cardbox-cli"):
        click.echo("Tracing unavailable: install cardbox[tracing]", err=True)


cli.add_command(analyze)
cli.add_command(extract)
cli.add_command(brands)
cli.add_command(serve)


if __name__ == "__main__":
    cli()
