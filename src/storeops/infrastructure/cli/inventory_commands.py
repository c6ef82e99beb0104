"""CLI commands for inventory inspection."""

from __future__ import annotations

import click

from storeops.infrastructure.bootstrap import Container


@click.command("show")
@click.pass_obj
def inventory_show(container: Container) -> None:
    """Show current inventory levels."""
    lines = container.show_inventory().handle()

    if not lines:
        click.echo("No inventory records found.")
        return

    click.echo(f"{'Product':<20} {'Stock':>8} {'Sold':>8}  Status")
    click.echo("-" * 50)
    for line in lines:
        click.echo(
            f"{line.product_name:<20} {line.quantity:>8} {line.total_sold:>8}  {line.stock_status}"
        )
