"""Abstract unit of work.

Everything a use case stages through ``orders`` and ``products`` is
committed as one atomic change, or not at all.  Leaving the ``with``
block without calling ``commit()`` discards the staged changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from storeops.domain.repository.order_repository import OrderRepository
from storeops.domain.repository.product_repository import ProductRepository


class UnitOfWork(ABC):
    orders: OrderRepository
    products: ProductRepository

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, *args) -> None:
        self.rollback()

    @abstractmethod
    def commit(self) -> None:
        """Atomically persist all staged changes.

        Raises ConcurrentModification when a staged order is stale,
        InsufficientStock when a reservation can no longer be covered by
        the latest counters, PersistenceFailure when the store fails.
        """

    @abstractmethod
    def rollback(self) -> None:
        """Discard all staged changes."""
