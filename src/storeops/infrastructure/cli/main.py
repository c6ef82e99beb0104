from dataclasses import replace
from pathlib import Path

import click

from storeops.domain.exceptions import DomainException
from storeops.infrastructure.bootstrap import Container
from storeops.infrastructure.cli.inventory_commands import inventory_show
from storeops.infrastructure.cli.order_commands import (
    order_bulk_status,
    order_create,
    order_delete,
    order_list,
    order_show,
    order_status,
    order_timeline,
    order_update,
)
from storeops.infrastructure.cli.product_commands import (
    product_add,
    product_list,
    product_update,
)
from storeops.infrastructure.cli.stats_commands import (
    stats_breakdown,
    stats_inventory,
    stats_overview,
    stats_revenue,
    stats_series,
)
from storeops.infrastructure.config import configure_logging, load_settings


@click.group()
@click.option("--data-dir", default=None, help="Directory holding store.json.")
@click.pass_context
def cli(ctx: click.Context, data_dir: str | None) -> None:
    """StoreOps — order lifecycle, inventory and sales statistics"""
    if ctx.obj is not None:
        # Already wired (tests pass a ready container).
        return
    try:
        settings = load_settings()
    except DomainException as exc:
        raise click.ClickException(str(exc))
    if data_dir:
        settings = replace(settings, data_dir=Path(data_dir))
    configure_logging(settings.log_level)
    ctx.obj = Container(settings)


@cli.group()
def order() -> None:
    """Manage orders."""


@cli.group()
def product() -> None:
    """Manage products."""


@cli.group()
def inventory() -> None:
    """Inspect inventory."""


@cli.group()
def stats() -> None:
    """Sales statistics."""


# Register subcommands
order.add_command(order_create)
order.add_command(order_show)
order.add_command(order_list)
order.add_command(order_status)
order.add_command(order_bulk_status)
order.add_command(order_delete)
order.add_command(order_timeline)
order.add_command(order_update)
product.add_command(product_add)
product.add_command(product_list)
product.add_command(product_update)
inventory.add_command(inventory_show)
stats.add_command(stats_revenue)
stats.add_command(stats_series)
stats.add_command(stats_breakdown)
stats.add_command(stats_overview)
stats.add_command(stats_inventory)
