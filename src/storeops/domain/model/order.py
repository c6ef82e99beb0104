"""Order aggregate — the core of the domain.

The Order is an aggregate root that owns its frozen line items and its
append-only status and fulfillment history.  Every status change goes
through ``transition_to`` which reads the required side effects from the
state machine.
"""

from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from storeops.domain.events import NotificationKind, OrderNotification
from storeops.domain.exceptions import (
    InvalidTransition,
    MissingFulfillmentDetails,
    ValidationError,
)
from storeops.domain.model.inventory import StockMovement
from storeops.domain.model.pricing import PricingPolicy
from storeops.domain.model.state_machine import (
    OrderStatus,
    PaymentStatus,
    TransitionEffects,
    effects_for,
    ensure_allowed,
)
from storeops.domain.model.value_objects import Money, Quantity


class PaymentMethod(Enum):
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    MPESA = "mpesa"
    CASH_ON_DELIVERY = "cash_on_delivery"
    BANK_TRANSFER = "bank_transfer"


class OrderSource(Enum):
    CHECKOUT = "checkout"
    ADMIN = "admin"


@dataclass(frozen=True)
class OrderItem:
    """Snapshot of a product at order-creation time.

    Never changes after the order is placed: cancellation restores exactly
    ``quantity`` units, whatever happens to the catalog afterwards.
    """

    product_id: str
    name: str
    quantity: Quantity
    unit_price: Money  # locked at order-creation time

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass(frozen=True)
class Address:
    first_name: str = ""
    last_name: str = ""
    address: str = ""
    apartment: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    zip_code: str = ""
    phone: str = ""


@dataclass(frozen=True)
class Customer:
    email: str
    name: str
    id: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class StatusHistoryEntry:
    status: OrderStatus
    timestamp: datetime
    actor: str
    note: str | None = None


@dataclass(frozen=True)
class FulfillmentEntry:
    tracking_number: str
    carrier: str
    timestamp: datetime
    actor: str
    note: str | None = None


# ---------------------------------------------------------------------------
# Constants for business rules
# ---------------------------------------------------------------------------
MAX_LINE_ITEMS = 50
DEFAULT_ORDER_NUMBER_PREFIX = "ORD"

# Fields an admin may edit after placement, and the ones fixed at creation.
EDITABLE_FIELDS = frozenset({
    "customer_note", "admin_note", "shipping_address", "billing_address",
    "customer_phone", "payment_status",
})
RESTRICTED_FIELDS = frozenset({
    "order_number", "items", "subtotal", "shipping", "tax", "discount", "total",
})

_NOTIFICATION_KINDS = {
    OrderStatus.PROCESSING: NotificationKind.ORDER_CONFIRMED,
    OrderStatus.SHIPPED: NotificationKind.ORDER_SHIPPED,
    OrderStatus.CANCELLED: NotificationKind.ORDER_CANCELLED,
}


def generate_order_number(
    at: datetime, prefix: str = DEFAULT_ORDER_NUMBER_PREFIX
) -> str:
    """``ORD-20260317-9F3A61C2``: the random suffix keeps retries unique."""
    return f"{prefix}-{at:%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Order:
    """Aggregate root for customer orders.

    Use the ``Order.create()`` factory for new orders — it enforces all
    business rules.  The ``__init__`` is intentionally simple so the
    repository can reconstitute persisted orders without re-validating.
    """

    order_number: str
    customer: Customer
    items: tuple[OrderItem, ...]
    payment_method: PaymentMethod
    shipping: Money
    tax: Money
    discount: Money
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    source: OrderSource = OrderSource.CHECKOUT
    placed_at: datetime = field(default_factory=utc_now)
    shipping_address: Address | None = None
    billing_address: Address | None = None
    paid_at: datetime | None = None
    processing_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    refunded_at: datetime | None = None
    tracking_number: str | None = None
    carrier: str | None = None
    customer_note: str | None = None
    admin_note: str | None = None
    status_history: list[StatusHistoryEntry] = field(default_factory=list)
    fulfillment_history: list[FulfillmentEntry] = field(default_factory=list)
    is_deleted: bool = False
    deleted_at: datetime | None = None
    deleted_by: str | None = None
    version: int = 0
    events: list[OrderNotification] = field(
        default_factory=list, compare=False, repr=False
    )

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        customer: Customer,
        items: list[OrderItem],
        payment_method: PaymentMethod,
        pricing: PricingPolicy,
        actor: str,
        placed_at: datetime,
        order_number: str | None = None,
        paid: bool = False,
        discount: Money | None = None,
        shipping_address: Address | None = None,
        billing_address: Address | None = None,
        customer_note: str | None = None,
        admin_note: str | None = None,
    ) -> Order:
        """Create a new order, enforcing all invariants.

        Paid orders (entered by an admin) start in PROCESSING, customer
        checkouts start in PENDING.
        """
        if not customer.email or not customer.email.strip():
            raise ValidationError("Customer email is required")
        if not customer.name or not customer.name.strip():
            raise ValidationError("Customer name is required")

        if not items:
            raise ValidationError("Order must contain at least one item")

        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        subtotal = _sum_line_totals(items, pricing.currency)
        shipping = pricing.shipping_for(subtotal, ships=shipping_address is not None)
        tax = pricing.tax_for(subtotal)
        discount = discount or Money.zero(pricing.currency)
        if discount > subtotal + shipping + tax:
            raise ValidationError(
                f"Discount {discount} exceeds order amount {subtotal + shipping + tax}"
            )

        status = OrderStatus.PROCESSING if paid else OrderStatus.PENDING
        order = Order(
            order_number=order_number or generate_order_number(placed_at),
            customer=Customer(
                email=customer.email.strip().lower(),
                name=customer.name.strip(),
                id=customer.id,
                phone=customer.phone,
            ),
            items=tuple(items),
            payment_method=payment_method,
            shipping=shipping,
            tax=tax,
            discount=discount,
            status=status,
            payment_status=PaymentStatus.PAID if paid else PaymentStatus.PENDING,
            source=OrderSource.ADMIN if paid else OrderSource.CHECKOUT,
            placed_at=placed_at,
            shipping_address=shipping_address,
            billing_address=billing_address or shipping_address,
            paid_at=placed_at if paid else None,
            processing_at=placed_at if paid else None,
            customer_note=customer_note,
            admin_note=admin_note,
        )
        order.status_history.append(
            StatusHistoryEntry(status, placed_at, actor, "Order placed")
        )
        order._record(NotificationKind.ORDER_PLACED, placed_at)
        return order

    # --- State transitions ----------------------------------------------------

    def transition_to(
        self,
        target: OrderStatus,
        actor: str,
        at: datetime,
        note: str | None = None,
        tracking_number: str | None = None,
        carrier: str | None = None,
    ) -> TransitionEffects:
        """Apply one validated status change and its side effects.

        Returns the effect set so the caller can stage the matching
        inventory work (restoration on cancel) in the same unit of work.
        Raises InvalidTransition and leaves the order untouched when the
        pair is not in the transition table.
        """
        ensure_allowed(self.status, target)
        effects = effects_for(target)

        if effects.requires_fulfillment:
            tracking_number = (tracking_number or "").strip()
            carrier = (carrier or "").strip()
            if not tracking_number or not carrier:
                raise MissingFulfillmentDetails(self.order_number)
            self.tracking_number = tracking_number
            self.carrier = carrier
            self.fulfillment_history.append(
                FulfillmentEntry(tracking_number, carrier, at, actor, note)
            )

        if effects.timestamp_field is not None:
            setattr(self, effects.timestamp_field, at)
        if (
            effects.payment_status is not None
            and self.payment_status in effects.payment_from
        ):
            self.payment_status = effects.payment_status
            if effects.payment_status is PaymentStatus.PAID:
                self.paid_at = at

        self.status = target
        if note:
            self.admin_note = note
        self.status_history.append(StatusHistoryEntry(target, at, actor, note))

        if effects.notify:
            self._record(_NOTIFICATION_KINDS[target], at)
        return effects

    def mark_deleted(self, actor: str, at: datetime) -> None:
        """Soft delete.  Only terminal orders can carry the flag."""
        if self.is_deleted:
            raise ValidationError(f"Order {self.order_number} is already deleted")
        if self.status not in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise InvalidTransition(self.status.value, "deleted")
        self.is_deleted = True
        self.deleted_at = at
        self.deleted_by = actor

    def update_details(self, changes: dict, at: datetime) -> list[str]:
        """Apply admin edits to non-financial fields; return the changed names.

        Nothing is applied unless every field in ``changes`` may be edited.
        """
        restricted = sorted(set(changes) & RESTRICTED_FIELDS)
        if restricted:
            raise ValidationError(
                f"Cannot update restricted fields: {', '.join(restricted)}"
            )
        unknown = sorted(set(changes) - EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown order fields: {', '.join(unknown)}")
        if not changes:
            raise ValidationError("No changes given")
        if self.is_deleted:
            raise ValidationError(f"Order {self.order_number} is deleted")
        for name in ("shipping_address", "billing_address"):
            if name in changes and not isinstance(changes[name], (Address, type(None))):
                raise ValidationError(f"{name} must be an address")
        if "payment_status" in changes and not isinstance(
            changes["payment_status"], PaymentStatus
        ):
            raise ValidationError("payment_status must be a payment status")

        changed = []
        for name, value in changes.items():
            if name == "customer_phone":
                if value == self.customer.phone:
                    continue
                self.customer = replace(self.customer, phone=value)
            elif getattr(self, name) == value:
                continue
            else:
                setattr(self, name, value)
                if name == "payment_status" and value is PaymentStatus.PAID:
                    self.paid_at = at
            changed.append(name)
        return changed

    # --- Inventory ------------------------------------------------------------

    def reserved_quantities(self) -> dict[str, int]:
        """Units per product recorded on this order's own item snapshots."""
        totals: Counter[str] = Counter()
        for item in self.items:
            totals[item.product_id] += item.quantity.value
        return dict(totals)

    def reservation_movements(self) -> list[StockMovement]:
        return [
            StockMovement.reservation(pid, qty, self.order_number)
            for pid, qty in self.reserved_quantities().items()
        ]

    def restoration_movements(self) -> list[StockMovement]:
        return [
            StockMovement.restoration(pid, qty, self.order_number)
            for pid, qty in self.reserved_quantities().items()
        ]

    # --- Computed properties --------------------------------------------------

    @property
    def currency(self) -> str:
        return self.shipping.currency

    @property
    def subtotal(self) -> Money:
        return _sum_line_totals(self.items, self.currency)

    @property
    def total(self) -> Money:
        return self.subtotal + self.shipping + self.tax - self.discount

    @property
    def item_count(self) -> int:
        return sum(item.quantity.value for item in self.items)

    @property
    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED)

    # --- Internal helpers -----------------------------------------------------

    def _record(self, kind: NotificationKind, at: datetime) -> None:
        self.events.append(
            OrderNotification(
                kind=kind,
                order_number=self.order_number,
                status=self.status.value,
                customer_email=self.customer.email,
                customer_name=self.customer.name,
                occurred_at=at,
                tracking_number=self.tracking_number,
                carrier=self.carrier,
            )
        )


def _sum_line_totals(items, currency: str) -> Money:
    result = Money.zero(currency)
    for item in items:
        result = result + item.line_total
    return result
