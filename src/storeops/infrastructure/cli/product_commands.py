"""CLI commands for the Product aggregate."""

from __future__ import annotations

import click

from storeops.application.retry import retry_on_conflict
from storeops.domain.exceptions import DomainException
from storeops.infrastructure.bootstrap import Container


@click.command("add")
@click.option("--name", required=True, help="Product name.")
@click.option("--price", required=True, help="Price (e.g. 15.00).")
@click.option("--quantity", default=0, type=int, show_default=True, help="Opening stock.")
@click.option("--category", default=None, help="Category name.")
@click.option("--id", "product_id", default=None, help="Explicit product ID.")
@click.option("--untracked", is_flag=True, default=False, help="Do not track stock.")
@click.option("--allow-backorder", is_flag=True, default=False, help="Sell when out of stock.")
@click.option("--low-stock-threshold", type=int, default=None)
@click.pass_obj
def product_add(
    container: Container,
    name: str,
    price: str,
    quantity: int,
    category: str | None,
    product_id: str | None,
    untracked: bool,
    allow_backorder: bool,
    low_stock_threshold: int | None,
) -> None:
    """Add a new product to the catalog."""
    handler = container.add_product()

    try:
        product = retry_on_conflict(
            lambda: handler.handle(
                name=name,
                price=price,
                quantity=quantity,
                category=category,
                product_id=product_id,
                track_quantity=not untracked,
                allow_out_of_stock_purchase=allow_backorder,
                low_stock_threshold=low_stock_threshold,
            ),
            attempts=container.settings.max_commit_attempts,
            backoff=container.settings.retry_backoff,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Product #{product.id} '{product.name}' added at {product.price} "
        f"with {product.quantity} in stock"
    )


@click.command("list")
@click.pass_obj
def product_list(container: Container) -> None:
    """List all products in the catalog."""
    lines = container.show_inventory().handle()

    if not lines:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<6} {'Name':<20} {'Category':<16} {'Price':>10}")
    click.echo("-" * 55)
    for line in lines:
        click.echo(
            f"{line.product_id:<6} {line.product_name:<20} "
            f"{line.category or '-':<16} {line.price:>10}"
        )


@click.command("update")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.option("--price", default=None, help="New price (e.g. 29.99).")
@click.option("--name", default=None)
@click.option("--category", default=None)
@click.option("--low-stock-threshold", type=int, default=None)
@click.option("--track/--untracked", "track_quantity", default=None)
@click.option("--allow-backorder/--no-backorder", "allow_backorder", default=None)
@click.pass_obj
def product_update(
    container: Container,
    product_id: str,
    price: str | None,
    name: str | None,
    category: str | None,
    low_stock_threshold: int | None,
    track_quantity: bool | None,
    allow_backorder: bool | None,
) -> None:
    """Edit a product's catalog details (never its stock counters)."""
    try:
        product = container.update_product().handle(
            product_id=product_id,
            price=price,
            name=name,
            category=category,
            low_stock_threshold=low_stock_threshold,
            track_quantity=track_quantity,
            allow_out_of_stock_purchase=allow_backorder,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product #{product.id} '{product.name}' updated ({product.price})")
