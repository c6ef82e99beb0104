"""CLI commands for the Order aggregate."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import click

from storeops.application.dto import (
    BulkTransitionCommand,
    CreateOrderCommand,
    OrderDTO,
    OrderFilter,
    OrderItemSpec,
    TransitionOrderCommand,
    UpdateOrderCommand,
)
from storeops.application.retry import retry_on_conflict
from storeops.domain.exceptions import DomainException, InsufficientStock
from storeops.domain.model.order import Address, Customer, PaymentMethod
from storeops.domain.model.state_machine import (
    OrderStatus,
    PaymentStatus,
    allowed_targets,
    parse_status,
)
from storeops.domain.model.value_objects import Money
from storeops.infrastructure.bootstrap import Container

_STATUS_CHOICES = click.Choice([s.value for s in OrderStatus])
_PAYMENT_STATUS_CHOICES = click.Choice([s.value for s in PaymentStatus])
_PAYMENT_METHOD_CHOICES = click.Choice([m.value for m in PaymentMethod])
_TRANSITIONS_HELP = "; ".join(
    f"{s.value} -> {'|'.join(t.value for t in OrderStatus if t in allowed_targets(s))}"
    for s in OrderStatus
    if allowed_targets(s)
)


def _parse_items(raw: str) -> list[OrderItemSpec]:
    """Parse '1:3,7:1@12.50' into OrderItemSpec list."""
    specs: list[OrderItemSpec] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ProductId:Quantity[@Price]'."
            )
        product_id, rest = pair.split(":", 1)
        qty_str, _, price = rest.partition("@")
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for product '{product_id}'."
            )
        specs.append(
            OrderItemSpec(
                product_id=product_id.strip(), quantity=qty, unit_price=price.strip() or None
            )
        )
    return specs


def _retrying(container: Container, operation):
    return retry_on_conflict(
        operation,
        attempts=container.settings.max_commit_attempts,
        backoff=container.settings.retry_backoff,
    )


def _fail(exc: DomainException) -> click.ClickException:
    message = str(exc)
    if isinstance(exc, InsufficientStock):
        message = "Insufficient stock:" + "".join(
            f"\n  {s.name}: available {s.available}, requested {s.requested}"
            for s in exc.shortages
        )
    return click.ClickException(message)


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    deleted = "  [deleted]" if dto.is_deleted else ""
    click.echo(f"Order {dto.order_number}  (status={dto.status}, payment={dto.payment_status}){deleted}")
    click.echo(f"Customer: {dto.customer_name} <{dto.customer_email}>")
    click.echo(f"Placed:   {dto.placed_at}  via {dto.payment_method}")
    if dto.tracking_number:
        click.echo(f"Tracking: {dto.tracking_number} ({dto.carrier})")
    click.echo()
    click.echo(f"  {'Product':<20} {'Qty':>5} {'Price':>10} {'Total':>10}")
    click.echo(f"  {'-'*47}")
    for item in dto.items:
        click.echo(
            f"  {item.name:<20} {item.quantity:>5} {item.unit_price:>10} {item.line_total:>10}"
        )
    click.echo(f"  {'-'*47}")
    click.echo(f"  {'Subtotal':<27} {dto.subtotal:>20}")
    click.echo(f"  {'Shipping':<27} {dto.shipping:>20}")
    click.echo(f"  {'Tax':<27} {dto.tax:>20}")
    if dto.discount != "$0.00":
        click.echo(f"  {'Discount':<27} {'-' + dto.discount:>20}")
    click.echo(f"  {'Order Total':<27} {dto.total:>20}")


@click.command("create")
@click.option("--customer-email", required=True, help="Customer email.")
@click.option("--customer-name", required=True, help="Customer name.")
@click.option("--items", required=True, help="Items as 'ProductId:Qty[@Price],...'.")
@click.option(
    "--payment-method",
    type=click.Choice([m.value for m in PaymentMethod]),
    default=PaymentMethod.CREDIT_CARD.value,
    show_default=True,
)
@click.option("--paid", is_flag=True, default=False, help="Payment already received (admin order).")
@click.option("--discount", default=None, help="Discount amount (e.g. 5.00).")
@click.option("--ship-to-address", default=None, help="Street address; enables shipping.")
@click.option("--ship-to-city", default="", help="Shipping city.")
@click.option("--ship-to-country", default="", help="Shipping country.")
@click.option("--note", default=None, help="Admin note.")
@click.option("--actor", default="admin", show_default=True)
@click.pass_obj
def order_create(
    container: Container,
    customer_email: str,
    customer_name: str,
    items: str,
    payment_method: str,
    paid: bool,
    discount: str | None,
    ship_to_address: str | None,
    ship_to_city: str,
    ship_to_country: str,
    note: str | None,
    actor: str,
) -> None:
    """Create a new order and reserve its stock."""
    shipping_address = None
    if ship_to_address:
        shipping_address = Address(
            address=ship_to_address, city=ship_to_city, country=ship_to_country
        )
    command = CreateOrderCommand(
        customer=Customer(email=customer_email, name=customer_name),
        items=_parse_items(items),
        payment_method=PaymentMethod(payment_method),
        actor=actor,
        paid=paid,
        discount=discount,
        shipping_address=shipping_address,
        admin_note=note,
    )
    handler = container.create_order()

    try:
        dto = _retrying(container, lambda: handler.handle(command))
    except DomainException as exc:
        raise _fail(exc)

    click.echo(f"Order {dto.order_number} created  (status={dto.status})")
    click.echo()
    _display_order(dto)


@click.command("show")
@click.option("--id", "order_number", required=True, help="Order number to display.")
@click.pass_obj
def order_show(container: Container, order_number: str) -> None:
    """Show details of an existing order."""
    try:
        dto = container.show_order().handle(order_number)
    except DomainException as exc:
        raise _fail(exc)

    _display_order(dto)


@click.command("list")
@click.option("--status", type=_STATUS_CHOICES, default=None, help="Only orders in this status.")
@click.option("--include-deleted", is_flag=True, default=False)
@click.option("--payment-status", type=_PAYMENT_STATUS_CHOICES, default=None)
@click.option("--payment-method", type=_PAYMENT_METHOD_CHOICES, default=None)
@click.option("--email", default=None, help="Customer email contains this text.")
@click.option("--name", default=None, help="Customer name contains this text.")
@click.option("--start", type=click.DateTime(["%Y-%m-%d"]), default=None, help="Placed on or after (UTC).")
@click.option("--end", type=click.DateTime(["%Y-%m-%d"]), default=None, help="Placed on or before (UTC).")
@click.option("--min-total", default=None, help="Minimum order total.")
@click.option("--max-total", default=None, help="Maximum order total.")
@click.option("--search", default=None, help="Order number, customer, tracking or item name.")
@click.pass_obj
def order_list(
    container: Container,
    status: str | None,
    include_deleted: bool,
    payment_status: str | None,
    payment_method: str | None,
    email: str | None,
    name: str | None,
    start: datetime | None,
    end: datetime | None,
    min_total: str | None,
    max_total: str | None,
    search: str | None,
) -> None:
    """List orders, newest first."""
    currency = container.settings.currency
    try:
        filters = OrderFilter(
            payment_status=PaymentStatus(payment_status) if payment_status else None,
            payment_method=PaymentMethod(payment_method) if payment_method else None,
            customer_email=email,
            customer_name=name,
            placed_from=start.replace(tzinfo=timezone.utc) if start else None,
            placed_before=(
                end.replace(tzinfo=timezone.utc) + timedelta(days=1) if end else None
            ),
            min_total=Money.of(min_total, currency) if min_total else None,
            max_total=Money.of(max_total, currency) if max_total else None,
            search=search,
        )
        orders = container.list_orders().handle(
            status=parse_status(status) if status else None,
            include_deleted=include_deleted,
            filters=filters,
        )
    except DomainException as exc:
        raise _fail(exc)

    if not orders:
        click.echo("No orders found.")
        return

    click.echo(f"{'Order':<24} {'Status':<11} {'Customer':<20} {'Total':>10}  Placed")
    click.echo("-" * 90)
    for dto in orders:
        click.echo(
            f"{dto.order_number:<24} {dto.status:<11} {dto.customer_name:<20} "
            f"{dto.total:>10}  {dto.placed_at}"
        )


@click.command("status")
@click.option("--id", "order_number", required=True, help="Order number.")
@click.option(
    "--to", "target", required=True, type=_STATUS_CHOICES,
    help=f"Target status ({_TRANSITIONS_HELP}).",
)
@click.option("--tracking", default=None, help="Tracking number (required to ship).")
@click.option("--carrier", default=None, help="Carrier (required to ship).")
@click.option("--note", default=None)
@click.option("--actor", default="admin", show_default=True)
@click.pass_obj
def order_status(
    container: Container,
    order_number: str,
    target: str,
    tracking: str | None,
    carrier: str | None,
    note: str | None,
    actor: str,
) -> None:
    """Move an order to another status."""
    command = TransitionOrderCommand(
        order_number=order_number,
        target_status=parse_status(target),
        actor=actor,
        note=note,
        tracking_number=tracking,
        carrier=carrier,
    )
    handler = container.transition_order()

    try:
        dto = _retrying(container, lambda: handler.handle(command))
    except DomainException as exc:
        raise _fail(exc)

    click.echo(f"Order {dto.order_number} is now {dto.status} (payment={dto.payment_status}).")


@click.command("bulk-status")
@click.option("--ids", required=True, help="Comma-separated order numbers.")
@click.option("--to", "target", required=True, type=_STATUS_CHOICES, help="Target status.")
@click.option("--tracking", default=None)
@click.option("--carrier", default=None)
@click.option("--note", default=None)
@click.option("--actor", default="admin", show_default=True)
@click.pass_obj
def order_bulk_status(
    container: Container,
    ids: str,
    target: str,
    tracking: str | None,
    carrier: str | None,
    note: str | None,
    actor: str,
) -> None:
    """Move many orders to the same status."""
    command = BulkTransitionCommand(
        order_numbers=ids.split(","),
        target_status=parse_status(target),
        actor=actor,
        note=note,
        tracking_number=tracking,
        carrier=carrier,
    )

    try:
        result = container.bulk_transition().handle(command)
    except DomainException as exc:
        raise _fail(exc)

    click.echo(
        f"{result.modified_count} of {len(result.outcomes)} order(s) moved to {result.target_status}."
    )
    for outcome in result.skipped:
        click.echo(f"  {outcome.order_number}: {outcome.status.value} - {outcome.reason}")


@click.command("delete")
@click.option("--id", "order_number", required=True, help="Order number.")
@click.option("--note", default=None)
@click.option("--actor", default="admin", show_default=True)
@click.pass_obj
def order_delete(container: Container, order_number: str, note: str | None, actor: str) -> None:
    """Soft-delete an order (open orders are cancelled and restocked first)."""
    handler = container.delete_order()

    try:
        dto = _retrying(container, lambda: handler.handle(order_number, actor, note))
    except DomainException as exc:
        raise _fail(exc)

    click.echo(f"Order {dto.order_number} deleted (status={dto.status}).")


@click.command("update")
@click.option("--id", "order_number", required=True, help="Order number.")
@click.option("--customer-note", default=None)
@click.option("--admin-note", default=None)
@click.option("--phone", default=None, help="Customer phone.")
@click.option("--payment-status", type=_PAYMENT_STATUS_CHOICES, default=None)
@click.option("--ship-to-address", default=None, help="New street address.")
@click.option("--ship-to-city", default="", help="Shipping city.")
@click.option("--ship-to-country", default="", help="Shipping country.")
@click.option("--actor", default="admin", show_default=True)
@click.pass_obj
def order_update(
    container: Container,
    order_number: str,
    customer_note: str | None,
    admin_note: str | None,
    phone: str | None,
    payment_status: str | None,
    ship_to_address: str | None,
    ship_to_city: str,
    ship_to_country: str,
    actor: str,
) -> None:
    """Edit notes, contact, address or payment status (never items or totals)."""
    changes: dict = {}
    if customer_note is not None:
        changes["customer_note"] = customer_note
    if admin_note is not None:
        changes["admin_note"] = admin_note
    if phone is not None:
        changes["customer_phone"] = phone
    if payment_status is not None:
        changes["payment_status"] = PaymentStatus(payment_status)
    if ship_to_address:
        changes["shipping_address"] = Address(
            address=ship_to_address, city=ship_to_city, country=ship_to_country
        )
    command = UpdateOrderCommand(order_number=order_number, changes=changes, actor=actor)
    handler = container.update_order()

    try:
        dto = _retrying(container, lambda: handler.handle(command))
    except DomainException as exc:
        raise _fail(exc)

    click.echo(f"Order {dto.order_number} updated (payment={dto.payment_status}).")


@click.command("timeline")
@click.option("--id", "order_number", required=True, help="Order number.")
@click.pass_obj
def order_timeline(container: Container, order_number: str) -> None:
    """Show the status and fulfillment history of an order."""
    try:
        events = container.order_timeline().handle(order_number)
    except DomainException as exc:
        raise _fail(exc)

    for event in events:
        click.echo(
            f"{event.timestamp:%Y-%m-%d %H:%M}  {event.title:<22} "
            f"{event.description}  ({event.actor})"
        )
