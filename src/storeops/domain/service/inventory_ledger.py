"""Domain service: Inventory Ledger.

The only writer of product stock counters.  It turns an order's own item
snapshots into stock movements and stages them on the product repository,
where the unit of work applies them as atomic increments at commit time.

Reservation is two-phase (validate-then-stage) so a multi-item order
never leaves a partial decrement behind: either every line is covered and
every movement is staged, or ``InsufficientStock`` lists every short line
and nothing is staged.
"""

from __future__ import annotations

import logging

from storeops.domain.exceptions import (
    InsufficientStock,
    ProductNotFound,
    StockShortage,
)
from storeops.domain.model.inventory import StockMovement
from storeops.domain.model.order import Order
from storeops.domain.model.product import Product
from storeops.domain.repository.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class InventoryLedger:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    def reserve_for_order(self, order: Order) -> list[StockMovement]:
        """Stage the reservation movements for a new order.

        Phase 1 — load and validate: every product exists and can supply
                  the summed quantity across the order's lines.
        Phase 2 — stage: one movement per product.
        """
        shortages: list[StockShortage] = []
        for product_id, qty in order.reserved_quantities().items():
            product = self._load(product_id)
            if not product.can_supply(qty):
                shortages.append(
                    StockShortage(
                        product_id=product.id,
                        name=product.name,
                        available=product.quantity,
                        requested=qty,
                    )
                )
        if shortages:
            raise InsufficientStock(shortages)

        movements = order.reservation_movements()
        self._product_repo.stage_movements(movements)
        logger.debug(
            "Staged reservation of %d product(s) for %s",
            len(movements), order.order_number,
        )
        return movements

    def restore_for_order(self, order: Order) -> list[StockMovement]:
        """Stage restoration of exactly the quantities the order recorded.

        Uses the order's item snapshots, never the current catalog, so
        catalog edits made after placement cannot skew the restock.
        """
        movements = order.restoration_movements()
        for movement in movements:
            self._load(movement.product_id)
        self._product_repo.stage_movements(movements)
        logger.debug(
            "Staged restoration of %d product(s) for %s",
            len(movements), order.order_number,
        )
        return movements

    def _load(self, product_id: str) -> Product:
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product
