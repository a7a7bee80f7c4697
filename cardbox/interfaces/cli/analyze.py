"""CLI commands that read card numbers from photographs or text."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

from cardbox.app.config import ConfigError
from cardbox.infrastructure.ai.issuer_profiles import IssuerProfileError
from cardbox.infrastructure.ai.models import AnalysisResult, format_result
from cardbox.services.card_analysis import CardAnalysisService

console = Console()


def _build_service(config_path: str | None) -> CardAnalysisService:
    try:
        return CardAnalysisService.from_config(config_path)
    except (ConfigError, IssuerProfileError) as e:
        raise click.ClickException(str(e)) from e


def _result_payload(result: AnalysisResult) -> dict:
    payload = result.to_dict()
    payload["best_value"] = result.best_value
    payload["source"] = result.source
    return payload


def _render_result(result: AnalysisResult) -> None:
    table = Table(title="Card analysis")
    table.add_column("Source", style="bold")
    table.add_column("Value")
    for value in result.qrcodes:
        table.add_row("QR code", value)
    for value in result.barcodes:
        fmt = f" ({result.barcode_format})" if result.barcode_format else ""
        table.add_row(f"Barcode{fmt}", value)
    for rank, value in enumerate(result.numbers, start=1):
        table.add_row(f"OCR #{rank}", value)
    if table.row_count:
        console.print(table)
    console.print(format_result(result))


@click.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "json_output", is_flag=True, help="Output the result as JSON.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON config file (defaults to $CARDBOX_CONFIG).",
)
def analyze(image: str, json_output: bool, config_path: str | None) -> None:
    """Read the card number from the photograph IMAGE."""

    service = _build_service(config_path)
    try:
        result = service.analyze_file(image)
    finally:
        service.close()

    if json_output:
        click.echo(json.dumps(_result_payload(result), indent=2, ensure_ascii=False))
    elif result.error:
        console.print(f"[red]Analysis failed: {result.error}[/red]")
    else:
        _render_result(result)

    if result.error:
        raise click.exceptions.Exit(1)


@click.command()
@click.argument("text")
@click.option("--explain", is_flag=True, help="Show every candidate with its score breakdown.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON config file (defaults to $CARDBOX_CONFIG).",
)
def extract(text: str, explain: bool, config_path: str | None) -> None:
    """Pick card-number candidates out of already recognised TEXT."""

    service = _build_service(config_path)
    try:
        numbers = service.analyze_text(text)
        ranked = service.explain_text(text) if explain else []
    finally:
        service.close()

    if not numbers and not ranked:
        console.print("[yellow]No card number found.[/yellow]")
        return

    if explain:
        table = Table(title="Candidates")
        table.add_column("Candidate", style="bold")
        table.add_column("Score", justify="right")
        table.add_column("Components")
        table.add_column("Disqualified")
        for breakdown in ranked:
            components = ", ".join(
                f"{name}={value:+d}" for name, value in breakdown.components.items()
            )
            table.add_row(
                breakdown.candidate,
                str(breakdown.score),
                components,
                breakdown.disqualified_by or "",
            )
        console.print(table)

    for number in numbers:
        click.echo(number)
