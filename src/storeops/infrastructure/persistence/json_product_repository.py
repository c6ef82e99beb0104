"""JSON-document-backed implementation of ProductRepository."""

from __future__ import annotations

from decimal import Decimal

from storeops.domain.exceptions import ProductNotFound, ValidationError
from storeops.domain.model.inventory import StockMovement
from storeops.domain.model.product import DEFAULT_LOW_STOCK_THRESHOLD, Product
from storeops.domain.model.value_objects import Money
from storeops.domain.repository.product_repository import ProductRepository

# Fields a catalog edit may change.  Counters are deliberately absent.
CATALOG_FIELDS = (
    "name",
    "category",
    "price",
    "currency",
    "track_quantity",
    "allow_out_of_stock_purchase",
    "low_stock_threshold",
)


class JsonProductRepository(ProductRepository):

    def __init__(self, records: list[dict]) -> None:
        self._records = {raw["id"]: raw for raw in records}
        self._seen: dict[str, Product] = {}
        self.added: dict[str, Product] = {}
        self.changed: dict[str, Product] = {}
        self.movements: list[StockMovement] = []

    # --- ProductRepository interface ------------------------------------------

    def get_by_id(self, product_id: str) -> Product | None:
        if product_id in self.added:
            return self.added[product_id]
        if product_id not in self._seen:
            raw = self._records.get(product_id)
            if raw is None:
                return None
            self._seen[product_id] = self.to_domain(raw)
        return self._seen[product_id]

    def get_by_name(self, name: str) -> Product | None:
        for product in self.list_all():
            if product.name.lower() == name.lower():
                return product
        return None

    def list_all(self) -> list[Product]:
        products = [self.get_by_id(pid) for pid in self._records]
        return [p for p in products if p is not None] + list(self.added.values())

    def add(self, product: Product) -> None:
        if product.id in self._records or product.id in self.added:
            raise ValidationError(f"Product '{product.id}' already exists")
        self.added[product.id] = product

    def save(self, product: Product) -> None:
        if product.id in self.added:
            return
        if product.id not in self._records:
            raise ProductNotFound(product.id)
        self.changed[product.id] = product

    def stage_movements(self, movements: list[StockMovement]) -> None:
        self.movements.extend(movements)

    def refresh_counters(self, product_id: str, quantity: int, total_sold: int) -> None:
        """Reflect committed counters on products already handed out."""
        product = self._seen.get(product_id) or self.added.get(product_id)
        if product is not None:
            product.quantity = quantity
            product.total_sold = total_sold

    def clear_staged(self) -> None:
        self.added.clear()
        self.changed.clear()
        self.movements.clear()

    # --- Serialization helpers ------------------------------------------------

    @staticmethod
    def to_raw(product: Product) -> dict:
        return {
            "id": product.id,
            "name": product.name,
            "category": product.category,
            "price": str(product.price.amount),
            "currency": product.price.currency,
            "quantity": product.quantity,
            "total_sold": product.total_sold,
            "track_quantity": product.track_quantity,
            "allow_out_of_stock_purchase": product.allow_out_of_stock_purchase,
            "low_stock_threshold": product.low_stock_threshold,
        }

    @staticmethod
    def to_domain(raw: dict) -> Product:
        return Product(
            id=raw["id"],
            name=raw["name"],
            category=raw.get("category"),
            price=Money(Decimal(raw["price"]), raw.get("currency", "USD")),
            quantity=raw.get("quantity", 0),
            total_sold=raw.get("total_sold", 0),
            track_quantity=raw.get("track_quantity", True),
            allow_out_of_stock_purchase=raw.get("allow_out_of_stock_purchase", False),
            low_stock_threshold=raw.get("low_stock_threshold", DEFAULT_LOW_STOCK_THRESHOLD),
        )
