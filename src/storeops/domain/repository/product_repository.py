"""Abstract repository for Product aggregate.

Defined in the domain layer so the domain never depends on
infrastructure. Concrete implementations live in the infrastructure
layer.

Counters are never saved directly: ``save`` persists catalog fields only,
and ``stage_movements`` queues ledger movements that are applied as
increments when the unit of work commits.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from storeops.domain.model.inventory import StockMovement
from storeops.domain.model.product import Product


class ProductRepository(ABC):

    @abstractmethod
    def get_by_id(self, product_id: str) -> Product | None:
        """Return a product by its ID, or None if not found."""

    @abstractmethod
    def get_by_name(self, name: str) -> Product | None:
        """Return a product by its exact name, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[Product]:
        """Return every product in the catalog."""

    @abstractmethod
    def add(self, product: Product) -> None:
        """Stage a new product, opening stock included."""

    @abstractmethod
    def save(self, product: Product) -> None:
        """Stage catalog edits (price, name, category, flags)."""

    @abstractmethod
    def stage_movements(self, movements: list[StockMovement]) -> None:
        """Queue ledger movements for atomic application at commit."""
