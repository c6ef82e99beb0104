"""Application service: Delete Order use case (soft delete).

Orders are never physically removed.  Open orders are cancelled first,
restoring their stock in the same unit of work; orders that are already
cancelled or refunded only get the deleted flag.  Shipped and delivered
orders cannot be deleted.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from storeops.application.dto import OrderDTO
from storeops.domain.exceptions import OrderNotFound, ValidationError
from storeops.domain.model.order import utc_now
from storeops.domain.model.state_machine import OrderStatus
from storeops.domain.repository.unit_of_work import UnitOfWork
from storeops.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

_CANCEL_BEFORE_DELETE = (OrderStatus.PENDING, OrderStatus.PROCESSING)


class DeleteOrderHandler:

    def __init__(
        self,
        uow: UnitOfWork,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._uow = uow
        self._clock = clock

    def handle(self, order_number: str, actor: str, note: str | None = None) -> OrderDTO:
        with self._uow:
            order = self._uow.orders.get(order_number)
            if order is None:
                raise OrderNotFound(order_number)
            if order.is_deleted:
                raise ValidationError(f"Order {order_number} is already deleted")

            now = self._clock()
            restored = False
            if order.status in _CANCEL_BEFORE_DELETE:
                order.transition_to(
                    OrderStatus.CANCELLED, actor=actor, at=now,
                    note=note or "Order deleted",
                )
                InventoryLedger(self._uow.products).restore_for_order(order)
                restored = True
            order.mark_deleted(actor, now)

            self._uow.orders.save(order)
            self._uow.commit()

        logger.info(
            "Order %s deleted by %s (stock restored: %s)",
            order_number, actor, "yes" if restored else "no",
        )
        # Deletion is an admin clean-up; customers are not notified.
        order.events.clear()
        return OrderDTO.from_order(order)
