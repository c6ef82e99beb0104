"""Application service: Create Order use case.

Orchestrates the flow between the catalog, the Inventory Ledger and the
Order aggregate.  Item lookup, reservation and persistence of the new
order happen inside one unit of work: either the order exists and its
stock is reserved, or neither.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from storeops.application.dto import CreateOrderCommand, OrderDTO, OrderItemSpec
from storeops.application.notifications import NullNotifier, OrderNotifier, publish
from storeops.domain.exceptions import ProductNotFound, ValidationError
from storeops.domain.model.order import (
    DEFAULT_ORDER_NUMBER_PREFIX,
    Order,
    OrderItem,
    generate_order_number,
    utc_now,
)
from storeops.domain.model.pricing import PricingPolicy
from storeops.domain.model.value_objects import Money, Quantity
from storeops.domain.repository.product_repository import ProductRepository
from storeops.domain.repository.unit_of_work import UnitOfWork
from storeops.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


class CreateOrderHandler:

    def __init__(
        self,
        uow: UnitOfWork,
        pricing: PricingPolicy,
        notifier: OrderNotifier | None = None,
        clock: Callable[[], datetime] = utc_now,
        order_number_prefix: str = DEFAULT_ORDER_NUMBER_PREFIX,
    ) -> None:
        self._uow = uow
        self._pricing = pricing
        self._notifier = notifier or NullNotifier()
        self._clock = clock
        self._prefix = order_number_prefix

    def handle(self, command: CreateOrderCommand) -> OrderDTO:
        """Place a new order and reserve its stock.

        Steps:
        1. Resolve each product (fail if not found) and snapshot name/price.
        2. Let the Order aggregate validate and price the order.
        3. Reserve stock for every line, all-or-nothing.
        4. Commit order + reservation together and return a DTO.
        """
        with self._uow:
            now = self._clock()
            items = self._build_items(self._uow.products, command.items)
            discount = (
                Money.of(command.discount, self._pricing.currency)
                if command.discount else None
            )
            order = Order.create(
                customer=command.customer,
                items=items,
                payment_method=command.payment_method,
                pricing=self._pricing,
                actor=command.actor,
                placed_at=now,
                order_number=generate_order_number(now, self._prefix),
                paid=command.paid,
                discount=discount,
                shipping_address=command.shipping_address,
                billing_address=command.billing_address,
                customer_note=command.customer_note,
                admin_note=command.admin_note,
            )
            InventoryLedger(self._uow.products).reserve_for_order(order)
            self._uow.orders.add(order)
            self._uow.commit()

        logger.info(
            "Order %s placed by %s (%s, %d item(s), total %s)",
            order.order_number, command.actor, order.status.value,
            order.item_count, order.total,
        )
        publish(self._notifier, order.events)
        order.events.clear()
        return OrderDTO.from_order(order)

    def _build_items(
        self, products: ProductRepository, specs: list[OrderItemSpec]
    ) -> list[OrderItem]:
        """Snapshot catalog data per product, merging repeated products."""
        merged: dict[str, OrderItem] = {}
        for spec in specs:
            quantity = Quantity(spec.quantity)
            product = products.get_by_id(spec.product_id)
            if product is None:
                raise ProductNotFound(spec.product_id)

            unit_price = (
                Money.of(spec.unit_price, self._pricing.currency)
                if spec.unit_price is not None
                else product.price  # <-- price snapshot
            )
            existing = merged.get(product.id)
            if existing is not None:
                if existing.unit_price != unit_price:
                    raise ValidationError(
                        f"Conflicting prices given for product '{product.id}'"
                    )
                quantity = Quantity(existing.quantity.value + quantity.value)

            merged[product.id] = OrderItem(
                product_id=product.id,
                name=product.name,
                quantity=quantity,
                unit_price=unit_price,
            )
        return list(merged.values())
