"""Inventory Ledger entries.

Stock counters live on the Product.  They only ever move through a
``StockMovement``: a reservation when an order is placed, a restoration
when it is cancelled or deleted.  Every movement shifts ``quantity`` and
``total_sold`` by opposite amounts, so the two counters cannot diverge.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from storeops.domain.exceptions import ValidationError


class MovementReason(Enum):
    RESERVATION = "reservation"
    RESTORATION = "restoration"


@dataclass(frozen=True)
class StockMovement:
    """A single atomic increment applied to one product's counters."""

    product_id: str
    quantity_delta: int
    sold_delta: int
    reason: MovementReason
    order_number: str

    def __post_init__(self) -> None:
        if self.quantity_delta == 0:
            raise ValidationError("Stock movement must change the quantity")
        if self.quantity_delta != -self.sold_delta:
            raise ValidationError(
                f"Stock movement for {self.product_id} would let quantity "
                f"and total sold diverge ({self.quantity_delta:+d} / "
                f"{self.sold_delta:+d})"
            )

    @property
    def is_decrement(self) -> bool:
        return self.quantity_delta < 0

    @staticmethod
    def reservation(product_id: str, quantity: int, order_number: str) -> StockMovement:
        return StockMovement(
            product_id=product_id,
            quantity_delta=-quantity,
            sold_delta=quantity,
            reason=MovementReason.RESERVATION,
            order_number=order_number,
        )

    @staticmethod
    def restoration(product_id: str, quantity: int, order_number: str) -> StockMovement:
        return StockMovement(
            product_id=product_id,
            quantity_delta=quantity,
            sold_delta=-quantity,
            reason=MovementReason.RESTORATION,
            order_number=order_number,
        )
