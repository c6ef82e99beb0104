"""Product aggregate.

Products live independently of orders. They have their own lifecycle:
prices change, products are renamed and moved between categories.  The
stock counters (``quantity`` and ``total_sold``) are the exception: they
belong to the Inventory Ledger and only move through stock movements.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from storeops.domain.exceptions import ValidationError
from storeops.domain.model.inventory import StockMovement
from storeops.domain.model.value_objects import Money

DEFAULT_LOW_STOCK_THRESHOLD = 10


class StockStatus(Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
    UNTRACKED = "untracked"


@dataclass
class Product:
    """A product in the catalog, together with its inventory counters.

    Kept as a mutable dataclass because catalog edits are a legitimate
    mutation on the aggregate.  Counter changes are not: see
    ``apply_stock_movement``.
    """

    id: str
    name: str
    price: Money
    category: str | None = None
    quantity: int = 0
    total_sold: int = 0
    track_quantity: bool = True
    allow_out_of_stock_purchase: bool = False
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD

    # --- Stock rules ----------------------------------------------------------

    @property
    def enforces_stock(self) -> bool:
        return self.track_quantity and not self.allow_out_of_stock_purchase

    def can_supply(self, requested: int) -> bool:
        if not self.enforces_stock:
            return True
        return self.quantity >= requested

    @property
    def stock_status(self) -> StockStatus:
        if not self.track_quantity:
            return StockStatus.UNTRACKED
        if self.quantity <= 0:
            return StockStatus.OUT_OF_STOCK
        if self.quantity <= self.low_stock_threshold:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK

    def apply_stock_movement(self, movement: StockMovement) -> None:
        """Shift both counters by a ledger movement.

        Called by the unit of work at commit time, against the latest
        committed counters.  Raises ValidationError when the movement would
        leave an enforced product with negative stock or make ``total_sold``
        negative.
        """
        if movement.product_id != self.id:
            raise ValidationError(
                f"Movement for {movement.product_id} applied to product {self.id}"
            )
        new_quantity = self.quantity + movement.quantity_delta
        new_sold = self.total_sold + movement.sold_delta
        if movement.is_decrement and self.enforces_stock and new_quantity < 0:
            raise ValidationError(
                f"Insufficient stock for {self.name} "
                f"(need {-movement.quantity_delta}, have {self.quantity} available)"
            )
        if new_sold < 0:
            raise ValidationError(
                f"Total sold for {self.name} cannot go below zero"
            )
        self.quantity = new_quantity
        self.total_sold = new_sold

    # --- Catalog edits --------------------------------------------------------

    def update_price(self, new_price: Money) -> None:
        """Change the product price.

        This does NOT affect any existing orders because orders
        capture a price snapshot at creation time.
        """
        if new_price.amount <= 0:
            raise ValidationError("Product price must be greater than zero")
        self.price = new_price

    def update_details(
        self,
        name: str | None = None,
        category: str | None = None,
        low_stock_threshold: int | None = None,
        track_quantity: bool | None = None,
        allow_out_of_stock_purchase: bool | None = None,
    ) -> None:
        if name is not None:
            if not name.strip():
                raise ValidationError("Product name is required")
            self.name = name.strip()
        if category is not None:
            self.category = category.strip() or None
        if low_stock_threshold is not None:
            if low_stock_threshold < 0:
                raise ValidationError("Low stock threshold cannot be negative")
            self.low_stock_threshold = low_stock_threshold
        if track_quantity is not None:
            self.track_quantity = track_quantity
        if allow_out_of_stock_purchase is not None:
            self.allow_out_of_stock_purchase = allow_out_of_stock_purchase
