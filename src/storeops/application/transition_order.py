"""Application service: Transition Executor.

Validates and applies one status change to one order.  The status check,
the history entry and (for cancellation) the inventory restoration are
staged in a single unit of work and committed together, guarded by the
order's version.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from storeops.application.dto import OrderDTO, TransitionOrderCommand
from storeops.application.notifications import NullNotifier, OrderNotifier, publish
from storeops.domain.exceptions import OrderNotFound
from storeops.domain.model.order import utc_now
from storeops.domain.repository.unit_of_work import UnitOfWork
from storeops.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


class TransitionOrderHandler:

    def __init__(
        self,
        uow: UnitOfWork,
        notifier: OrderNotifier | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._uow = uow
        self._notifier = notifier or NullNotifier()
        self._clock = clock

    def handle(self, command: TransitionOrderCommand) -> OrderDTO:
        """Move an order to ``command.target_status``.

        Raises InvalidTransition (order untouched) when the pair is not
        allowed, MissingFulfillmentDetails when shipping without tracking
        details, ConcurrentModification when another writer got there
        first.
        """
        with self._uow:
            order = self._uow.orders.get(command.order_number)
            if order is None:
                raise OrderNotFound(command.order_number)

            source = order.status
            effects = order.transition_to(
                command.target_status,
                actor=command.actor,
                at=self._clock(),
                note=command.note,
                tracking_number=command.tracking_number,
                carrier=command.carrier,
            )
            if effects.restores_inventory:
                InventoryLedger(self._uow.products).restore_for_order(order)

            self._uow.orders.save(order)
            self._uow.commit()

        logger.info(
            "Order %s: %s -> %s by %s",
            order.order_number, source.value, order.status.value, command.actor,
        )
        publish(self._notifier, order.events)
        order.events.clear()
        return OrderDTO.from_order(order)
