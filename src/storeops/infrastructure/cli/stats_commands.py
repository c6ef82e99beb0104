"""CLI commands for sales statistics."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import click

from storeops.domain.exceptions import DomainException
from storeops.domain.service.sales_statistics import DateRange, Dimension, GroupBy
from storeops.infrastructure.bootstrap import Container

DEFAULT_WINDOW_DAYS = 30


def _period_options(command):
    command = click.option(
        "--end", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
        help="Last day included (UTC). Defaults to today.",
    )(command)
    command = click.option(
        "--start", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
        help=f"First day included (UTC). Defaults to {DEFAULT_WINDOW_DAYS} days before --end.",
    )(command)
    return command


def _period(start: datetime | None, end: datetime | None) -> DateRange:
    last = end.date() if end else datetime.now(timezone.utc).date()
    first: date = start.date() if start else last - timedelta(days=DEFAULT_WINDOW_DAYS - 1)
    try:
        return DateRange.of_days(first, last)
    except DomainException as exc:
        raise click.BadParameter(str(exc))


@click.command("revenue")
@_period_options
@click.pass_obj
def stats_revenue(container: Container, start: datetime | None, end: datetime | None) -> None:
    """Revenue and order count against the previous period."""
    period = _period(start, end)
    comparison = container.show_statistics().snapshot().period_comparison(period)

    click.echo(f"Period: {period.start:%Y-%m-%d} .. {period.end - timedelta(days=1):%Y-%m-%d}")
    click.echo(
        f"Revenue: {comparison.current_revenue:>12}  "
        f"(previous {comparison.previous_revenue}, growth {comparison.revenue_growth}%)"
    )
    click.echo(
        f"Orders:  {comparison.current_orders:>12}  "
        f"(previous {comparison.previous_orders}, growth {comparison.orders_growth}%)"
    )


@click.command("series")
@_period_options
@click.option(
    "--group-by", type=click.Choice([g.value for g in GroupBy]),
    default=GroupBy.DAY.value, show_default=True,
)
@click.pass_obj
def stats_series(
    container: Container, start: datetime | None, end: datetime | None, group_by: str
) -> None:
    """Revenue per day, ISO week or month."""
    period = _period(start, end)
    buckets = container.show_statistics().snapshot().revenue_series(period, GroupBy(group_by))

    click.echo(f"{'Bucket':<12} {'Orders':>7} {'Revenue':>12} {'Avg':>10}")
    click.echo("-" * 44)
    for bucket in buckets:
        click.echo(
            f"{bucket.key:<12} {bucket.orders:>7} {bucket.revenue:>12} "
            f"{bucket.average_order_value:>10}"
        )


@click.command("breakdown")
@_period_options
@click.option(
    "--by", "dimension", type=click.Choice([d.value for d in Dimension]),
    default=Dimension.CATEGORY.value, show_default=True,
)
@click.option("--top", type=int, default=None, help="Only the first N rows.")
@click.pass_obj
def stats_breakdown(
    container: Container,
    start: datetime | None,
    end: datetime | None,
    dimension: str,
    top: int | None,
) -> None:
    """Revenue share per category, product, customer or payment method."""
    period = _period(start, end)
    rows = container.show_statistics().snapshot().breakdown(period, Dimension(dimension))
    if top is not None:
        rows = rows[:top]

    if not rows:
        click.echo("No sales in this period.")
        return

    click.echo(f"{'Name':<28} {'Orders':>7} {'Units':>7} {'Revenue':>12} {'Share':>8}")
    click.echo("-" * 66)
    for row in rows:
        click.echo(
            f"{row.label[:28]:<28} {row.orders:>7} {row.units:>7} "
            f"{row.revenue:>12} {row.percentage:>7}%"
        )


@click.command("overview")
@_period_options
@click.pass_obj
def stats_overview(container: Container, start: datetime | None, end: datetime | None) -> None:
    """Order and revenue summary with a count per status."""
    overview = container.show_statistics().snapshot().overview(_period(start, end))

    click.echo(f"Orders:        {overview.orders}")
    click.echo(f"Revenue:       {overview.revenue}")
    click.echo(f"Average order: {overview.average_order_value}")
    click.echo(f"Largest order: {overview.max_order_value}")
    click.echo(f"Smallest:      {overview.min_order_value}")
    click.echo(f"Items sold:    {overview.items_sold}")
    for status, count in overview.by_status.items():
        click.echo(f"  {status:<12} {count:>5}")


@click.command("inventory")
@click.pass_obj
def stats_inventory(container: Container) -> None:
    """Low-stock and out-of-stock products."""
    summary = container.show_statistics().snapshot().inventory_summary()

    click.echo(f"Products: {summary.products}")
    click.echo(f"Units available: {summary.units_available}")
    click.echo(f"Units sold: {summary.units_sold}")
    for title, alerts in (("Low stock", summary.low_stock), ("Out of stock", summary.out_of_stock)):
        click.echo(f"{title}: {len(alerts)}")
        for alert in alerts:
            click.echo(
                f"  {alert.name:<20} {alert.quantity:>6} (threshold {alert.low_stock_threshold})"
            )
