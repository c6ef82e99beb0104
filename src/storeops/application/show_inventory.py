"""Application service: Show Inventory use case (query)."""

from __future__ import annotations

from dataclasses import dataclass

from storeops.domain.repository.unit_of_work import UnitOfWork


@dataclass(frozen=True)
class InventoryLineDTO:
    product_id: str
    product_name: str
    category: str | None
    price: str
    quantity: int
    total_sold: int
    stock_status: str


class ShowInventoryHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self) -> list[InventoryLineDTO]:
        with self._uow:
            products = self._uow.products.list_all()
        return [
            InventoryLineDTO(
                product_id=p.id,
                product_name=p.name,
                category=p.category,
                price=str(p.price),
                quantity=p.quantity,
                total_sold=p.total_sold,
                stock_status=p.stock_status.value,
            )
            for p in sorted(products, key=lambda p: p.name.lower())
        ]
