"""Data Transfer Objects — plain containers that cross layer boundaries.

Commands are the single typed shape the request layer hands to the core;
they are decoded once at the boundary.  Output DTOs carry data back out
without exposing domain internals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from storeops.domain.model.order import Address, Customer, Order, PaymentMethod
from storeops.domain.model.state_machine import OrderStatus, PaymentStatus
from storeops.domain.model.value_objects import Money

# --- Commands -------------------------------------------------------------------


@dataclass(frozen=True)
class OrderItemSpec:
    """Input: what the customer asked for.

    ``unit_price`` lets an admin override the catalog price on a manual
    order; left empty, the current catalog price is snapshotted.
    """

    product_id: str
    quantity: int
    unit_price: str | None = None


@dataclass(frozen=True)
class CreateOrderCommand:
    customer: Customer
    items: list[OrderItemSpec]
    payment_method: PaymentMethod
    actor: str
    paid: bool = False
    discount: str | None = None
    shipping_address: Address | None = None
    billing_address: Address | None = None
    customer_note: str | None = None
    admin_note: str | None = None


@dataclass(frozen=True)
class TransitionOrderCommand:
    order_number: str
    target_status: OrderStatus
    actor: str
    note: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None


@dataclass(frozen=True)
class BulkTransitionCommand:
    order_numbers: list[str]
    target_status: OrderStatus
    actor: str
    note: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None

    def for_order(self, order_number: str) -> TransitionOrderCommand:
        return TransitionOrderCommand(
            order_number=order_number,
            target_status=self.target_status,
            actor=self.actor,
            note=self.note,
            tracking_number=self.tracking_number,
            carrier=self.carrier,
        )


@dataclass(frozen=True)
class UpdateOrderCommand:
    """Edit the non-financial details of an order.

    ``changes`` maps field names to new values.  Only notes, addresses,
    the customer phone and the payment status may be edited; items,
    amounts and the order number are fixed once the order is placed.
    """

    order_number: str
    changes: dict
    actor: str


@dataclass(frozen=True)
class OrderFilter:
    """Criteria for listing orders.  Unset fields match every order.

    Text criteria match case-insensitively anywhere in the field.
    ``search`` looks at the order number, the customer name and email,
    the tracking number and the item names.  ``placed_from`` is
    inclusive and ``placed_before`` exclusive; the total bounds are both
    inclusive.
    """

    payment_status: PaymentStatus | None = None
    payment_method: PaymentMethod | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    placed_from: datetime | None = None
    placed_before: datetime | None = None
    min_total: Money | None = None
    max_total: Money | None = None
    search: str | None = None

    def matches(self, order: Order) -> bool:
        if self.payment_status is not None and order.payment_status is not self.payment_status:
            return False
        if self.payment_method is not None and order.payment_method is not self.payment_method:
            return False
        if not _contains(order.customer.email, self.customer_email):
            return False
        if not _contains(order.customer.name, self.customer_name):
            return False
        if self.placed_from is not None and order.placed_at < self.placed_from:
            return False
        if self.placed_before is not None and order.placed_at >= self.placed_before:
            return False
        if self.min_total is not None and order.total < self.min_total:
            return False
        if self.max_total is not None and order.total > self.max_total:
            return False
        if self.search:
            haystack = [
                order.order_number,
                order.customer.name,
                order.customer.email,
                order.tracking_number or "",
                *(item.name for item in order.items),
            ]
            return any(_contains(text, self.search) for text in haystack)
        return True


def _contains(text: str, needle: str | None) -> bool:
    return not needle or needle.strip().lower() in text.lower()


# --- Outputs --------------------------------------------------------------------


@dataclass(frozen=True)
class OrderLineItemDTO:
    """Output: a single line item as displayed to the user."""

    product_id: str
    name: str
    quantity: int
    unit_price: str  # formatted, e.g. "$15.00"
    line_total: str


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    order_number: str
    customer_name: str
    customer_email: str
    status: str
    payment_status: str
    payment_method: str
    items: list[OrderLineItemDTO]
    subtotal: str
    shipping: str
    tax: str
    discount: str
    total: str
    placed_at: str
    tracking_number: str | None = None
    carrier: str | None = None
    is_deleted: bool = False
    version: int = 0

    @staticmethod
    def from_order(order: Order) -> OrderDTO:
        return OrderDTO(
            order_number=order.order_number,
            customer_name=order.customer.name,
            customer_email=order.customer.email,
            status=order.status.value,
            payment_status=order.payment_status.value,
            payment_method=order.payment_method.value,
            items=[
                OrderLineItemDTO(
                    product_id=item.product_id,
                    name=item.name,
                    quantity=item.quantity.value,
                    unit_price=str(item.unit_price),
                    line_total=str(item.line_total),
                )
                for item in order.items
            ],
            subtotal=str(order.subtotal),
            shipping=str(order.shipping),
            tax=str(order.tax),
            discount=str(order.discount),
            total=str(order.total),
            placed_at=order.placed_at.strftime("%Y-%m-%d %H:%M UTC"),
            tracking_number=order.tracking_number,
            carrier=order.carrier,
            is_deleted=order.is_deleted,
            version=order.version,
        )


class OutcomeStatus(Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class OrderOutcome:
    order_number: str
    status: OutcomeStatus
    reason: str | None = None
    error: Exception | None = field(default=None, compare=False)

    @property
    def applied(self) -> bool:
        return self.status is OutcomeStatus.APPLIED


@dataclass(frozen=True)
class BulkTransitionResult:
    target_status: str
    outcomes: list[OrderOutcome]

    @property
    def modified_count(self) -> int:
        return sum(1 for o in self.outcomes if o.applied)

    @property
    def skipped(self) -> list[OrderOutcome]:
        return [o for o in self.outcomes if not o.applied]


@dataclass(frozen=True)
class TimelineEventDTO:
    kind: str  # "status" or "fulfillment"
    timestamp: datetime
    title: str
    description: str
    actor: str
