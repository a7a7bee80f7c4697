"""List the popular brands offered when adding a card."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from cardbox.domain.brands import POPULAR_BRANDS, BrandCategory, brands_in_category

console = Console()


@click.command()
@click.option(
    "--category",
    type=click.Choice([c.value for c in BrandCategory], case_sensitive=False),
    default=None,
    help="Only show brands of this category.",
)
def brands(category: str | None) -> None:
    """Show the brand catalogue."""

    selected = brands_in_category(category.lower()) if category else list(POPULAR_BRANDS)

    table = Table(title="Brands")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Category")
    table.add_column("Description")
    for brand in selected:
        table.add_row(brand.id, brand.name, brand.category.value, brand.description)
    console.print(table)
