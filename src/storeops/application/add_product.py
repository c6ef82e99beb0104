"""Application service: Add Product use case."""

from __future__ import annotations

import logging

from storeops.domain.exceptions import ValidationError
from storeops.domain.model.product import DEFAULT_LOW_STOCK_THRESHOLD, Product
from storeops.domain.model.value_objects import Money
from storeops.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class AddProductHandler:

    def __init__(
        self,
        uow: UnitOfWork,
        currency: str = "USD",
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    ) -> None:
        self._uow = uow
        self._currency = currency
        self._low_stock_threshold = low_stock_threshold

    def handle(
        self,
        name: str,
        price: str,
        quantity: int = 0,
        category: str | None = None,
        product_id: str | None = None,
        track_quantity: bool = True,
        allow_out_of_stock_purchase: bool = False,
        low_stock_threshold: int | None = None,
    ) -> Product:
        """Add a new product to the catalog with its opening stock.

        The opening stock is the only counter value that does not come
        from an order.  An auto-assigned id that another writer takes
        first fails the commit with ConcurrentModification; re-running
        the handler picks the next free id.
        """
        if not name or not name.strip():
            raise ValidationError("Product name is required")
        if quantity < 0:
            raise ValidationError("Opening stock cannot be negative")

        with self._uow:
            products = self._uow.products
            if products.get_by_name(name.strip()) is not None:
                raise ValidationError(f"Product '{name.strip()}' already exists")
            if product_id and products.get_by_id(product_id) is not None:
                raise ValidationError(f"Product id '{product_id}' already exists")

            product = Product(
                id=product_id or self._next_id(products.list_all()),
                name=name.strip(),
                price=Money.of(price, self._currency),
                category=(category or "").strip() or None,
                quantity=quantity,
                track_quantity=track_quantity,
                allow_out_of_stock_purchase=allow_out_of_stock_purchase,
            )
            if product.price.is_zero:
                raise ValidationError("Product price must be greater than zero")
            product.update_details(
                low_stock_threshold=(
                    self._low_stock_threshold
                    if low_stock_threshold is None else low_stock_threshold
                )
            )
            products.add(product)
            self._uow.commit()

        logger.info("Product %s (%s) added with %d unit(s)", product.id, product.name, quantity)
        return product

    @staticmethod
    def _next_id(existing: list[Product]) -> str:
        # Auto-assign ID based on existing numeric IDs
        numeric = [int(p.id) for p in existing if p.id.isdigit()]
        return str(max(numeric, default=0) + 1)
