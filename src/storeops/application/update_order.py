"""Application service: Update Order use case.

Admin edits to notes, addresses, the customer phone and the payment
status.  The edit is saved through the same version-checked commit as a
status change, so it cannot overwrite a concurrent transition.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from storeops.application.dto import OrderDTO, UpdateOrderCommand
from storeops.domain.exceptions import OrderNotFound
from storeops.domain.model.order import utc_now
from storeops.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class UpdateOrderHandler:

    def __init__(
        self,
        uow: UnitOfWork,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._uow = uow
        self._clock = clock

    def handle(self, command: UpdateOrderCommand) -> OrderDTO:
        with self._uow:
            order = self._uow.orders.get(command.order_number)
            if order is None:
                raise OrderNotFound(command.order_number)

            changed = order.update_details(command.changes, at=self._clock())
            if changed:
                self._uow.orders.save(order)
                self._uow.commit()

        logger.info(
            "Order %s updated by %s: %s",
            order.order_number, command.actor, ", ".join(changed) or "no changes",
        )
        return OrderDTO.from_order(order)
