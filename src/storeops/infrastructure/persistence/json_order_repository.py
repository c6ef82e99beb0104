"""JSON-document-backed implementation of OrderRepository.

Works on the snapshot taken by the unit of work; nothing is written
until the unit of work commits.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from decimal import Decimal

from storeops.domain.exceptions import ConcurrentModification, OrderNotFound
from storeops.domain.model.order import (
    Address,
    Customer,
    FulfillmentEntry,
    Order,
    OrderItem,
    OrderSource,
    PaymentMethod,
    StatusHistoryEntry,
)
from storeops.domain.model.state_machine import OrderStatus, PaymentStatus
from storeops.domain.model.value_objects import Money, Quantity
from storeops.domain.repository.order_repository import OrderRepository

_TIMESTAMP_FIELDS = (
    "placed_at",
    "paid_at",
    "processing_at",
    "shipped_at",
    "delivered_at",
    "cancelled_at",
    "refunded_at",
    "deleted_at",
)


class JsonOrderRepository(OrderRepository):

    def __init__(self, records: list[dict]) -> None:
        self._records = {raw["order_number"]: raw for raw in records}
        self._seen: dict[str, Order] = {}
        self.added: dict[str, Order] = {}
        self.changed: dict[str, Order] = {}

    # --- OrderRepository interface --------------------------------------------

    def get(self, order_number: str) -> Order | None:
        if order_number in self.added:
            return self.added[order_number]
        if order_number not in self._seen:
            raw = self._records.get(order_number)
            if raw is None:
                return None
            self._seen[order_number] = self._to_domain(raw)
        return self._seen[order_number]

    def list_all(self) -> list[Order]:
        orders = [self.get(number) for number in self._records]
        return [o for o in orders if o is not None] + list(self.added.values())

    def add(self, order: Order) -> None:
        if order.order_number in self._records or order.order_number in self.added:
            raise ConcurrentModification(
                f"Order number {order.order_number} is already taken"
            )
        self.added[order.order_number] = order

    def save(self, order: Order) -> None:
        if order.order_number in self.added:
            return
        if order.order_number not in self._records:
            raise OrderNotFound(order.order_number)
        self.changed[order.order_number] = order

    def clear_staged(self) -> None:
        self.added.clear()
        self.changed.clear()

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def to_raw(order: Order) -> dict:
        raw = {
            "order_number": order.order_number,
            "version": order.version,
            "customer": asdict(order.customer),
            "items": [
                {
                    "product_id": item.product_id,
                    "name": item.name,
                    "quantity": item.quantity.value,
                    "unit_price": str(item.unit_price.amount),
                    "line_total": str(item.line_total.amount),
                }
                for item in order.items
            ],
            "currency": order.currency,
            "subtotal": str(order.subtotal.amount),
            "shipping": str(order.shipping.amount),
            "tax": str(order.tax.amount),
            "discount": str(order.discount.amount),
            "total": str(order.total.amount),
            "status": order.status.value,
            "payment_method": order.payment_method.value,
            "payment_status": order.payment_status.value,
            "source": order.source.value,
            "shipping_address": _address_to_raw(order.shipping_address),
            "billing_address": _address_to_raw(order.billing_address),
            "tracking_number": order.tracking_number,
            "carrier": order.carrier,
            "customer_note": order.customer_note,
            "admin_note": order.admin_note,
            "status_history": [
                {
                    "status": entry.status.value,
                    "timestamp": entry.timestamp.isoformat(),
                    "actor": entry.actor,
                    "note": entry.note,
                }
                for entry in order.status_history
            ],
            "fulfillment_history": [
                {
                    "tracking_number": entry.tracking_number,
                    "carrier": entry.carrier,
                    "timestamp": entry.timestamp.isoformat(),
                    "actor": entry.actor,
                    "note": entry.note,
                }
                for entry in order.fulfillment_history
            ],
            "is_deleted": order.is_deleted,
            "deleted_by": order.deleted_by,
        }
        for name in _TIMESTAMP_FIELDS:
            value = getattr(order, name)
            raw[name] = value.isoformat() if value is not None else None
        return raw

    @staticmethod
    def _to_domain(raw: dict) -> Order:
        currency = raw.get("currency", "USD")

        def money(key: str) -> Money:
            return Money(Decimal(raw.get(key) or "0.00"), currency)

        items = tuple(
            OrderItem(
                product_id=i["product_id"],
                name=i["name"],
                quantity=Quantity(i["quantity"]),
                unit_price=Money(Decimal(i["unit_price"]), currency),
            )
            for i in raw["items"]
        )
        timestamps = {
            name: _parse_timestamp(raw.get(name)) for name in _TIMESTAMP_FIELDS
        }
        return Order(
            order_number=raw["order_number"],
            customer=Customer(**raw["customer"]),
            items=items,
            payment_method=PaymentMethod(raw["payment_method"]),
            shipping=money("shipping"),
            tax=money("tax"),
            discount=money("discount"),
            status=OrderStatus(raw["status"]),
            payment_status=PaymentStatus(raw.get("payment_status", "pending")),
            source=OrderSource(raw.get("source", "checkout")),
            shipping_address=_address_to_domain(raw.get("shipping_address")),
            billing_address=_address_to_domain(raw.get("billing_address")),
            tracking_number=raw.get("tracking_number"),
            carrier=raw.get("carrier"),
            customer_note=raw.get("customer_note"),
            admin_note=raw.get("admin_note"),
            status_history=[
                StatusHistoryEntry(
                    status=OrderStatus(e["status"]),
                    timestamp=datetime.fromisoformat(e["timestamp"]),
                    actor=e["actor"],
                    note=e.get("note"),
                )
                for e in raw.get("status_history", [])
            ],
            fulfillment_history=[
                FulfillmentEntry(
                    tracking_number=e["tracking_number"],
                    carrier=e["carrier"],
                    timestamp=datetime.fromisoformat(e["timestamp"]),
                    actor=e["actor"],
                    note=e.get("note"),
                )
                for e in raw.get("fulfillment_history", [])
            ],
            is_deleted=raw.get("is_deleted", False),
            deleted_by=raw.get("deleted_by"),
            version=raw.get("version", 0),
            **timestamps,
        )


def _parse_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _address_to_raw(address: Address | None) -> dict | None:
    return asdict(address) if address is not None else None


def _address_to_domain(raw: dict | None) -> Address | None:
    return Address(**raw) if raw else None
