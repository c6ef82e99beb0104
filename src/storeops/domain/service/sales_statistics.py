"""Domain service: Sales Statistics.

Pure, read-only aggregation over a committed snapshot of orders and
products.  Nothing here mutates an order or a product.

Ranges are half-open ``[start, end)`` in UTC and every bucket boundary is
a UTC midnight, so each counted order lands in exactly one bucket and the
buckets of a series always add up to the range total.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable

from storeops.domain.exceptions import ValidationError
from storeops.domain.model.order import Order
from storeops.domain.model.product import Product, StockStatus
from storeops.domain.model.state_machine import OrderStatus

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
_TWO_PLACES = Decimal("0.01")

# Orders in these states bring in no revenue.
NON_REVENUE_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.REFUNDED})
UNCATEGORIZED = "Uncategorized"


class GroupBy(Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class Dimension(Enum):
    CATEGORY = "category"
    PRODUCT = "product"
    CUSTOMER = "customer"
    PAYMENT_METHOD = "payment_method"


@dataclass(frozen=True)
class DateRange:
    """Half-open UTC interval ``[start, end)``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValidationError("Date range bounds must be timezone-aware")
        object.__setattr__(self, "start", self.start.astimezone(timezone.utc))
        object.__setattr__(self, "end", self.end.astimezone(timezone.utc))
        if self.start >= self.end:
            raise ValidationError(
                f"Date range start {self.start:%Y-%m-%d} must be before end {self.end:%Y-%m-%d}"
            )

    @staticmethod
    def of_days(first: date, last: date) -> DateRange:
        """Whole UTC days from ``first`` through ``last`` inclusive."""
        return DateRange(
            datetime.combine(first, time.min, tzinfo=timezone.utc),
            datetime.combine(last + timedelta(days=1), time.min, tzinfo=timezone.utc),
        )

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment.astimezone(timezone.utc) < self.end

    def previous(self) -> DateRange:
        """The immediately preceding range of the same length."""
        return DateRange(self.start - (self.end - self.start), self.start)


# --- Result types ---------------------------------------------------------------


@dataclass(frozen=True)
class RevenueBucket:
    key: str
    start: datetime
    revenue: Decimal
    orders: int

    @property
    def average_order_value(self) -> Decimal:
        if not self.orders:
            return ZERO
        return (self.revenue / self.orders).quantize(_TWO_PLACES, ROUND_HALF_UP)


@dataclass(frozen=True)
class BreakdownRow:
    key: str
    label: str
    revenue: Decimal
    orders: int
    units: int
    percentage: Decimal


@dataclass(frozen=True)
class PeriodComparison:
    current_revenue: Decimal
    previous_revenue: Decimal
    revenue_growth: Decimal
    current_orders: int
    previous_orders: int
    orders_growth: Decimal


@dataclass(frozen=True)
class Overview:
    orders: int
    revenue: Decimal
    average_order_value: Decimal
    max_order_value: Decimal
    min_order_value: Decimal
    items_sold: int
    by_status: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class StockAlert:
    product_id: str
    name: str
    quantity: int
    low_stock_threshold: int
    status: StockStatus


@dataclass(frozen=True)
class InventorySummary:
    products: int
    units_available: int
    units_sold: int
    low_stock: list[StockAlert]
    out_of_stock: list[StockAlert]


# --- Formulas -------------------------------------------------------------------


def growth(current: Decimal, previous: Decimal) -> Decimal:
    """Period-over-period growth in percent, rounded to 2 decimals.

    ``100`` when there was nothing before and something now, ``0`` when
    there was nothing in either period.
    """
    current = Decimal(current)
    previous = Decimal(previous)
    if previous > 0:
        value = (current - previous) / previous * HUNDRED
    elif current > 0:
        value = HUNDRED
    else:
        value = Decimal("0")
    return value.quantize(_TWO_PLACES, ROUND_HALF_UP)


def distribute_percentages(values: list[Decimal]) -> list[Decimal]:
    """Shares of the total in percent, 2 decimals, summing to exactly 100.

    Largest-remainder rounding: floor every share to the hundredth, then
    hand the leftover hundredths to the largest fractional parts.  All
    zeros when the total is zero.
    """
    total = sum(values, Decimal("0"))
    if total <= 0:
        return [Decimal("0.00") for _ in values]

    scale = Decimal("10000")  # hundredths of a percent
    raw = [v * scale / total for v in values]
    floors = [r.to_integral_value(rounding=ROUND_DOWN) for r in raw]
    leftover = int(scale - sum(floors, Decimal("0")))
    by_remainder = sorted(
        range(len(values)), key=lambda i: (raw[i] - floors[i], values[i]), reverse=True
    )
    for i in by_remainder[:leftover]:
        floors[i] += 1
    return [(f / HUNDRED).quantize(_TWO_PLACES) for f in floors]


def bucket_start(moment: datetime, group_by: GroupBy) -> datetime:
    day = moment.astimezone(timezone.utc).date()
    if group_by is GroupBy.WEEK:
        day = day - timedelta(days=day.weekday())
    elif group_by is GroupBy.MONTH:
        day = day.replace(day=1)
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def bucket_key(start: datetime, group_by: GroupBy) -> str:
    if group_by is GroupBy.WEEK:
        iso_year, iso_week, _ = start.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if group_by is GroupBy.MONTH:
        return start.strftime("%Y-%m")
    return start.strftime("%Y-%m-%d")


def _next_bucket(start: datetime, group_by: GroupBy) -> datetime:
    if group_by is GroupBy.WEEK:
        return start + timedelta(days=7)
    if group_by is GroupBy.MONTH:
        if start.month == 12:
            return start.replace(year=start.year + 1, month=1)
        return start.replace(month=start.month + 1)
    return start + timedelta(days=1)


# --- Aggregator -----------------------------------------------------------------


class SalesStatistics:
    """Aggregations over one consistent snapshot of orders and products."""

    def __init__(self, orders: Iterable[Order], products: Iterable[Product]) -> None:
        self._orders = [o for o in orders if not o.is_deleted]
        self._products = {p.id: p for p in products}

    # --- Selection ------------------------------------------------------------

    def revenue_orders(self, period: DateRange) -> list[Order]:
        return [
            o
            for o in self._orders
            if period.contains(o.placed_at) and o.status not in NON_REVENUE_STATUSES
        ]

    # --- Totals ---------------------------------------------------------------

    def total_revenue(self, period: DateRange) -> Decimal:
        return sum((o.total.amount for o in self.revenue_orders(period)), ZERO)

    def order_count(self, period: DateRange) -> int:
        return len(self.revenue_orders(period))

    def revenue_series(
        self, period: DateRange, group_by: GroupBy = GroupBy.DAY
    ) -> list[RevenueBucket]:
        """One bucket per day/week/month touching the range, empty ones included."""
        revenue: dict[datetime, Decimal] = defaultdict(lambda: ZERO)
        counts: dict[datetime, int] = defaultdict(int)
        for order in self.revenue_orders(period):
            start = bucket_start(order.placed_at, group_by)
            revenue[start] += order.total.amount
            counts[start] += 1

        buckets: list[RevenueBucket] = []
        cursor = bucket_start(period.start, group_by)
        while cursor < period.end:
            buckets.append(
                RevenueBucket(
                    key=bucket_key(cursor, group_by),
                    start=cursor,
                    revenue=revenue[cursor],
                    orders=counts[cursor],
                )
            )
            cursor = _next_bucket(cursor, group_by)
        return buckets

    # --- Breakdowns -----------------------------------------------------------

    def breakdown(self, period: DateRange, by: Dimension) -> list[BreakdownRow]:
        """Revenue per category/product/customer/payment method.

        Category and product revenue is the sum of line totals; customer
        and payment-method revenue is the order total.  Rows are sorted by
        revenue, highest first, and their percentages sum to 100.
        """
        revenue: dict[str, Decimal] = defaultdict(lambda: ZERO)
        orders: dict[str, set[str]] = defaultdict(set)
        units: dict[str, int] = defaultdict(int)
        labels: dict[str, str] = {}

        for order in self.revenue_orders(period):
            if by in (Dimension.CATEGORY, Dimension.PRODUCT):
                for item in order.items:
                    if by is Dimension.PRODUCT:
                        key, label = item.product_id, item.name
                    else:
                        key = label = self._category_of(item.product_id)
                    revenue[key] += item.line_total.amount
                    orders[key].add(order.order_number)
                    units[key] += item.quantity.value
                    labels.setdefault(key, label)
            else:
                if by is Dimension.CUSTOMER:
                    key, label = order.customer.email, order.customer.name
                else:
                    key = label = order.payment_method.value
                revenue[key] += order.total.amount
                orders[key].add(order.order_number)
                units[key] += order.item_count
                labels.setdefault(key, label)

        keys = sorted(revenue, key=lambda k: (-revenue[k], k))
        shares = distribute_percentages([revenue[k] for k in keys])
        return [
            BreakdownRow(
                key=k,
                label=labels[k],
                revenue=revenue[k],
                orders=len(orders[k]),
                units=units[k],
                percentage=share,
            )
            for k, share in zip(keys, shares)
        ]

    def top_products(self, period: DateRange, limit: int = 10) -> list[BreakdownRow]:
        return self.breakdown(period, Dimension.PRODUCT)[:limit]

    def top_customers(self, period: DateRange, limit: int = 10) -> list[BreakdownRow]:
        return self.breakdown(period, Dimension.CUSTOMER)[:limit]

    # --- Comparisons and summaries --------------------------------------------

    def period_comparison(self, period: DateRange) -> PeriodComparison:
        previous = period.previous()
        current_revenue = self.total_revenue(period)
        previous_revenue = self.total_revenue(previous)
        current_orders = self.order_count(period)
        previous_orders = self.order_count(previous)
        return PeriodComparison(
            current_revenue=current_revenue,
            previous_revenue=previous_revenue,
            revenue_growth=growth(current_revenue, previous_revenue),
            current_orders=current_orders,
            previous_orders=previous_orders,
            orders_growth=growth(Decimal(current_orders), Decimal(previous_orders)),
        )

    def overview(self, period: DateRange) -> Overview:
        counted = self.revenue_orders(period)
        totals = [o.total.amount for o in counted]
        by_status = {s.value: 0 for s in OrderStatus}
        for order in self._orders:
            if period.contains(order.placed_at):
                by_status[order.status.value] += 1

        revenue = sum(totals, ZERO)
        return Overview(
            orders=len(counted),
            revenue=revenue,
            average_order_value=(
                (revenue / len(totals)).quantize(_TWO_PLACES, ROUND_HALF_UP)
                if totals else ZERO
            ),
            max_order_value=max(totals, default=ZERO),
            min_order_value=min(totals, default=ZERO),
            items_sold=sum(o.item_count for o in counted),
            by_status=by_status,
        )

    def inventory_summary(self) -> InventorySummary:
        low: list[StockAlert] = []
        out: list[StockAlert] = []
        for product in sorted(self._products.values(), key=lambda p: p.quantity):
            status = product.stock_status
            if status not in (StockStatus.LOW_STOCK, StockStatus.OUT_OF_STOCK):
                continue
            alert = StockAlert(
                product_id=product.id,
                name=product.name,
                quantity=product.quantity,
                low_stock_threshold=product.low_stock_threshold,
                status=status,
            )
            (low if status is StockStatus.LOW_STOCK else out).append(alert)

        tracked = [p for p in self._products.values() if p.track_quantity]
        return InventorySummary(
            products=len(self._products),
            units_available=sum(max(p.quantity, 0) for p in tracked),
            units_sold=sum(p.total_sold for p in self._products.values()),
            low_stock=low,
            out_of_stock=out,
        )

    # --- Internal helpers -----------------------------------------------------

    def _category_of(self, product_id: str) -> str:
        product = self._products.get(product_id)
        if product is None or not product.category:
            return UNCATEGORIZED
        return product.category
