"""Abstract repository for Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storeops.domain.model.order import Order


class OrderRepository(ABC):

    @abstractmethod
    def get(self, order_number: str) -> Order | None:
        """Return an order by its order number, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[Order]:
        """Return every order, soft-deleted ones included."""

    @abstractmethod
    def add(self, order: Order) -> None:
        """Stage a newly created order."""

    @abstractmethod
    def save(self, order: Order) -> None:
        """Stage an updated order.

        The order's ``version`` is the version it was read at; committing
        fails if another writer has moved it on since.
        """
