"""Application services: order queries (show, list, timeline).

Read-only: each query opens a unit of work only to get one consistent
snapshot and never commits.
"""

from __future__ import annotations

from storeops.application.dto import OrderDTO, OrderFilter, TimelineEventDTO
from storeops.domain.exceptions import OrderNotFound
from storeops.domain.model.order import Order
from storeops.domain.model.state_machine import OrderStatus
from storeops.domain.repository.unit_of_work import UnitOfWork


class ShowOrderHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self, order_number: str) -> OrderDTO:
        with self._uow:
            order = self._uow.orders.get(order_number)
        if order is None:
            raise OrderNotFound(order_number)
        return OrderDTO.from_order(order)


class ListOrdersHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(
        self,
        status: OrderStatus | None = None,
        include_deleted: bool = False,
        filters: OrderFilter | None = None,
    ) -> list[OrderDTO]:
        """Orders newest first, optionally filtered by status and ``filters``."""
        filters = filters or OrderFilter()
        with self._uow:
            orders = self._uow.orders.list_all()
        selected = [
            o for o in orders
            if (include_deleted or not o.is_deleted)
            and (status is None or o.status is status)
            and filters.matches(o)
        ]
        selected.sort(key=lambda o: (o.placed_at, o.order_number), reverse=True)
        return [OrderDTO.from_order(o) for o in selected]


class OrderTimelineHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self, order_number: str) -> list[TimelineEventDTO]:
        with self._uow:
            order = self._uow.orders.get(order_number)
        if order is None:
            raise OrderNotFound(order_number)
        events = self._status_events(order) + self._fulfillment_events(order)
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events

    @staticmethod
    def _status_events(order: Order) -> list[TimelineEventDTO]:
        return [
            TimelineEventDTO(
                kind="status",
                timestamp=entry.timestamp,
                title=f"Order {entry.status.value.capitalize()}",
                description=entry.note or f"Status changed to {entry.status.value}",
                actor=entry.actor,
            )
            for entry in order.status_history
        ]

    @staticmethod
    def _fulfillment_events(order: Order) -> list[TimelineEventDTO]:
        return [
            TimelineEventDTO(
                kind="fulfillment",
                timestamp=entry.timestamp,
                title="Fulfillment Updated",
                description=f"Tracking: {entry.tracking_number} via {entry.carrier}",
                actor=entry.actor,
            )
            for entry in order.fulfillment_history
        ]
