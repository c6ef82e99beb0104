"""Order status transition table and per-status side effects.

Each target status maps to exactly one ``TransitionEffects`` value that
names everything the Transition Executor has to do for it.  The Order
aggregate reads the effect set instead of branching on the status.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from storeops.domain.exceptions import InvalidTransition, ValidationError


class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def allowed_targets(source: OrderStatus) -> frozenset[OrderStatus]:
    return TRANSITIONS[source]


def is_allowed(source: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[source]


def ensure_allowed(source: OrderStatus, target: OrderStatus) -> None:
    if not is_allowed(source, target):
        raise InvalidTransition(
            source.value,
            target.value,
            allowed=tuple(s.value for s in OrderStatus if s in allowed_targets(source)),
        )


@dataclass(frozen=True)
class TransitionEffects:
    """The side-effect set required when an order enters a status."""

    timestamp_field: str | None
    requires_fulfillment: bool = False
    restores_inventory: bool = False
    payment_status: PaymentStatus | None = None
    # Only applied when the current payment status is one of these.
    payment_from: frozenset[PaymentStatus] = frozenset()
    notify: bool = False


_EFFECTS: dict[OrderStatus, TransitionEffects] = {
    OrderStatus.PENDING: TransitionEffects(timestamp_field=None),
    OrderStatus.PROCESSING: TransitionEffects(
        timestamp_field="processing_at",
        notify=True,
    ),
    OrderStatus.SHIPPED: TransitionEffects(
        timestamp_field="shipped_at",
        requires_fulfillment=True,
        notify=True,
    ),
    OrderStatus.DELIVERED: TransitionEffects(
        timestamp_field="delivered_at",
        payment_status=PaymentStatus.PAID,
        payment_from=frozenset({PaymentStatus.PENDING}),
    ),
    OrderStatus.CANCELLED: TransitionEffects(
        timestamp_field="cancelled_at",
        restores_inventory=True,
        payment_status=PaymentStatus.CANCELLED,
        payment_from=frozenset({PaymentStatus.PENDING}),
        notify=True,
    ),
    OrderStatus.REFUNDED: TransitionEffects(
        timestamp_field="refunded_at",
        payment_status=PaymentStatus.REFUNDED,
        payment_from=frozenset({PaymentStatus.PAID}),
    ),
}


def effects_for(target: OrderStatus) -> TransitionEffects:
    return _EFFECTS[target]


def parse_status(raw: str) -> OrderStatus:
    """Decode a status string from the request layer."""
    try:
        return OrderStatus(raw.strip().lower())
    except ValueError:
        valid = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(
            f"Invalid status '{raw}'. Must be one of: {valid}"
        ) from None
