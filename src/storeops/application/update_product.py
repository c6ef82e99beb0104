"""Application service: Update Product use case."""

from __future__ import annotations

import logging

from storeops.domain.exceptions import ProductNotFound
from storeops.domain.model.product import Product
from storeops.domain.model.value_objects import Money
from storeops.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class UpdateProductHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(
        self,
        product_id: str,
        price: str | None = None,
        name: str | None = None,
        category: str | None = None,
        low_stock_threshold: int | None = None,
        track_quantity: bool | None = None,
        allow_out_of_stock_purchase: bool | None = None,
    ) -> Product:
        """Edit catalog fields of a product.

        This does NOT affect any existing orders: they captured a price
        and name snapshot at creation time.  Stock counters are not
        editable here.
        """
        with self._uow:
            product = self._uow.products.get_by_id(product_id)
            if product is None:
                raise ProductNotFound(product_id)

            if price is not None:
                product.update_price(Money.of(price, product.price.currency))
            product.update_details(
                name=name,
                category=category,
                low_stock_threshold=low_stock_threshold,
                track_quantity=track_quantity,
                allow_out_of_stock_purchase=allow_out_of_stock_purchase,
            )
            self._uow.products.save(product)
            self._uow.commit()

        logger.info("Product %s updated", product_id)
        return product
