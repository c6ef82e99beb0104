"""Unit of work over a whole-document store.

``__enter__`` takes a snapshot of the committed document; repositories
stage changes against it.  ``commit`` holds the store lock (exclusive
across threads and processes), re-reads the latest committed document
and only then:

1. checks every staged order against the version it was read at
   (compare-and-commit), and new order numbers and product ids for
   collisions;
2. applies staged stock movements as increments on the *latest*
   counters, rejecting any decrement an enforced product cannot cover;
3. writes the resulting document in one atomic replace.

Any failure before step 3 leaves the committed document untouched.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from storeops.domain.exceptions import (
    ConcurrentModification,
    InsufficientStock,
    PersistenceFailure,
    ProductNotFound,
    StockShortage,
)
from storeops.domain.repository.unit_of_work import UnitOfWork
from storeops.infrastructure.persistence.document_store import DocumentStore
from storeops.infrastructure.persistence.json_order_repository import (
    JsonOrderRepository,
)
from storeops.infrastructure.persistence.json_product_repository import (
    CATALOG_FIELDS,
    JsonProductRepository,
)

logger = logging.getLogger(__name__)


class StoreUnitOfWork(UnitOfWork):

    orders: JsonOrderRepository
    products: JsonProductRepository

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def __enter__(self) -> StoreUnitOfWork:
        document = self._read()
        self.orders = JsonOrderRepository(document["orders"])
        self.products = JsonProductRepository(document["products"])
        return self

    def __exit__(self, *args) -> None:
        self.rollback()

    def rollback(self) -> None:
        if hasattr(self, "orders"):
            self.orders.clear_staged()
            self.products.clear_staged()

    def commit(self) -> None:
        with self._store.lock:
            document = self._read()
            orders = {raw["order_number"]: raw for raw in document["orders"]}
            products = {raw["id"]: raw for raw in document["products"]}

            self._check_order_versions(orders)
            self._merge_products(products)
            self._apply_movements(products)

            for number, order in self.orders.changed.items():
                order.version += 1
                orders[number] = JsonOrderRepository.to_raw(order)
            for number, order in self.orders.added.items():
                order.version = 1
                orders[number] = JsonOrderRepository.to_raw(order)

            document["orders"] = list(orders.values())
            document["products"] = list(products.values())
            try:
                self._store.write(document)
            except OSError as exc:
                self._undo_versions()
                raise PersistenceFailure(f"Could not write store: {exc}") from exc

            for pid, raw in products.items():
                self.products.refresh_counters(pid, raw["quantity"], raw["total_sold"])
            logger.debug(
                "Committed %d new / %d changed order(s), %d stock movement(s)",
                len(self.orders.added), len(self.orders.changed),
                len(self.products.movements),
            )
        self.rollback()

    # --- Commit steps ---------------------------------------------------------

    def _check_order_versions(self, orders: dict[str, dict]) -> None:
        for number in self.orders.added:
            if number in orders:
                raise ConcurrentModification(f"Order number {number} is already taken")
        for number, order in self.orders.changed.items():
            current = orders.get(number)
            current_version = current.get("version", 0) if current else None
            if current_version != order.version:
                raise ConcurrentModification(
                    f"Order {number} was modified concurrently "
                    f"(read version {order.version}, now {current_version})"
                )

    def _merge_products(self, products: dict[str, dict]) -> None:
        for pid, product in self.products.added.items():
            if pid in products:
                raise ConcurrentModification(
                    f"Product id {pid} was taken by another writer"
                )
            products[pid] = JsonProductRepository.to_raw(product)
        for pid, product in self.products.changed.items():
            if pid not in products:
                raise ProductNotFound(pid)
            edited = JsonProductRepository.to_raw(product)
            for name in CATALOG_FIELDS:
                products[pid][name] = edited[name]

    def _apply_movements(self, products: dict[str, dict]) -> None:
        """Apply staged movements as increments on the latest counters."""
        movements = self.products.movements
        if not movements:
            return

        net_decrement: dict[str, int] = defaultdict(int)
        for movement in movements:
            if movement.product_id not in products:
                raise ProductNotFound(movement.product_id)
            net_decrement[movement.product_id] -= movement.quantity_delta

        shortages: list[StockShortage] = []
        for pid, requested in net_decrement.items():
            if requested <= 0:
                continue
            current = JsonProductRepository.to_domain(products[pid])
            if not current.can_supply(requested):
                shortages.append(
                    StockShortage(pid, current.name, current.quantity, requested)
                )
        if shortages:
            raise InsufficientStock(shortages)

        touched = {}
        for movement in movements:
            pid = movement.product_id
            if pid not in touched:
                touched[pid] = JsonProductRepository.to_domain(products[pid])
            touched[pid].apply_stock_movement(movement)
        for pid, product in touched.items():
            products[pid]["quantity"] = product.quantity
            products[pid]["total_sold"] = product.total_sold

    # --- Helpers --------------------------------------------------------------

    def _read(self) -> dict:
        try:
            return self._store.read()
        except (OSError, ValueError) as exc:
            raise PersistenceFailure(f"Could not read store: {exc}") from exc

    def _undo_versions(self) -> None:
        for order in self.orders.changed.values():
            order.version -= 1
        for order in self.orders.added.values():
            order.version = 0
