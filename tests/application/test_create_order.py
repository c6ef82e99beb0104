"""Integration tests for the CreateOrder use case.

Runs the real unit of work over an in-memory document store; no file I/O.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from storeops.application.create_order import CreateOrderHandler
from storeops.application.dto import CreateOrderCommand, OrderItemSpec
from storeops.domain.exceptions import (
    InsufficientStock,
    ProductNotFound,
    ValidationError,
)
from storeops.domain.model.order import (
    Address,
    Customer,
    Order,
    OrderItem,
    PaymentMethod,
)
from storeops.domain.model.pricing import PricingPolicy
from storeops.domain.model.product import Product
from storeops.domain.model.value_objects import Money, Quantity
from storeops.domain.service.inventory_ledger import InventoryLedger
from storeops.infrastructure.persistence.unit_of_work import StoreUnitOfWork
from tests.fakes import FakeClock, FakeNotifier, MemoryDocumentStore

PRICING = PricingPolicy(tax_rate=Decimal("0.10"), shipping_fee=Decimal("10.00"))


def _setup(
    products: list[Product] | None = None,
    notifier: FakeNotifier | None = None,
) -> tuple[CreateOrderHandler, MemoryDocumentStore, FakeNotifier]:
    """Build handler over a memory store, optionally pre-loaded with products."""
    if products is None:
        products = [
            Product(id="1", name="Widget", price=Money.of("15.00"), quantity=10),
            Product(id="2", name="Gadget", price=Money.of("25.00"), quantity=5),
            Product(id="3", name="Ebook", price=Money.of("5.00"), track_quantity=False),
        ]
    store = MemoryDocumentStore(products)
    notifier = notifier or FakeNotifier()
    handler = CreateOrderHandler(
        StoreUnitOfWork(store), PRICING, notifier=notifier, clock=FakeClock()
    )
    return handler, store, notifier


def _command(*items: OrderItemSpec, **kwargs) -> CreateOrderCommand:
    defaults = dict(
        customer=Customer(email="alice@example.com", name="Alice"),
        items=list(items),
        payment_method=PaymentMethod.CREDIT_CARD,
        actor="alice",
    )
    defaults.update(kwargs)
    return CreateOrderCommand(**defaults)


class TestCreateOrderHappyPath:

    def test_creates_order_with_correct_totals(self):
        handler, _, _ = _setup()
        dto = handler.handle(_command(OrderItemSpec("1", 3), OrderItemSpec("2", 1)))
        assert dto.subtotal == "$70.00"
        assert dto.tax == "$7.00"
        assert dto.shipping == "$0.00"
        assert dto.total == "$77.00"
        assert dto.status == "pending"
        assert [i.line_total for i in dto.items] == ["$45.00", "$25.00"]

    def test_shipping_address_adds_flat_fee(self):
        handler, _, _ = _setup()
        dto = handler.handle(
            _command(OrderItemSpec("1", 1), shipping_address=Address(city="Nairobi"))
        )
        assert dto.shipping == "$10.00"
        assert dto.total == "$26.50"

    def test_order_number_uses_prefix_and_date(self):
        handler, _, _ = _setup()
        dto = handler.handle(_command(OrderItemSpec("1", 1)))
        assert dto.order_number.startswith("ORD-20260317-")

    def test_persists_order_with_version(self):
        handler, store, _ = _setup()
        dto = handler.handle(_command(OrderItemSpec("1", 1)))
        raw = store.order(dto.order_number)
        assert raw["version"] == 1
        assert raw["status"] == "pending"

    def test_reserves_stock(self):
        handler, store, _ = _setup()
        handler.handle(_command(OrderItemSpec("1", 3), OrderItemSpec("2", 5)))
        assert (store.product("1")["quantity"], store.product("1")["total_sold"]) == (7, 3)
        assert (store.product("2")["quantity"], store.product("2")["total_sold"]) == (0, 5)

    def test_duplicate_products_merged(self):
        handler, store, _ = _setup()
        dto = handler.handle(_command(OrderItemSpec("1", 2), OrderItemSpec("1", 3)))
        assert len(dto.items) == 1
        assert dto.items[0].quantity == 5
        assert store.product("1")["quantity"] == 5

    def test_price_snapshot_and_override(self):
        handler, _, _ = _setup()
        dto = handler.handle(
            _command(OrderItemSpec("1", 1), OrderItemSpec("2", 1, unit_price="20.00"))
        )
        assert [i.unit_price for i in dto.items] == ["$15.00", "$20.00"]

    def test_paid_order_starts_processing(self):
        handler, _, _ = _setup()
        dto = handler.handle(_command(OrderItemSpec("1", 1), paid=True))
        assert dto.status == "processing"
        assert dto.payment_status == "paid"

    def test_untracked_product_never_short(self):
        handler, store, _ = _setup()
        handler.handle(_command(OrderItemSpec("3", 500)))
        assert store.product("3")["total_sold"] == 500

    def test_publishes_order_placed(self):
        handler, _, notifier = _setup()
        dto = handler.handle(_command(OrderItemSpec("1", 1)))
        assert notifier.kinds == ["order_placed"]
        assert notifier.events[0].order_number == dto.order_number

    def test_discount(self):
        handler, _, _ = _setup()
        dto = handler.handle(_command(OrderItemSpec("1", 2), discount="3.00"))
        assert dto.discount == "$3.00"
        assert dto.total == "$30.00"


class TestCreateOrderValidation:

    def test_unknown_product_rejected(self):
        handler, store, _ = _setup()
        with pytest.raises(ProductNotFound, match="'99'"):
            handler.handle(_command(OrderItemSpec("99", 1)))
        assert store.writes == 0

    def test_zero_quantity_rejected(self):
        handler, _, _ = _setup()
        with pytest.raises(ValidationError, match="positive"):
            handler.handle(_command(OrderItemSpec("1", 0)))

    def test_empty_order_rejected(self):
        handler, _, _ = _setup()
        with pytest.raises(ValidationError, match="at least one item"):
            handler.handle(_command())

    def test_conflicting_prices_rejected(self):
        handler, _, _ = _setup()
        with pytest.raises(ValidationError, match="Conflicting prices"):
            handler.handle(
                _command(OrderItemSpec("1", 1), OrderItemSpec("1", 1, unit_price="1.00"))
            )


class TestAllOrNothingReservation:

    def test_shortage_writes_nothing(self):
        handler, store, notifier = _setup()
        with pytest.raises(InsufficientStock) as excinfo:
            handler.handle(_command(OrderItemSpec("1", 2), OrderItemSpec("2", 6)))
        [shortage] = excinfo.value.shortages
        assert (shortage.product_id, shortage.available, shortage.requested) == ("2", 5, 6)
        assert store.writes == 0
        assert store.product("1")["quantity"] == 10
        assert store.read()["orders"] == []
        assert notifier.events == []

    def test_backorder_product_goes_negative(self):
        handler, store, _ = _setup([
            Product(id="1", name="Preorder", price=Money.of("9.00"), quantity=1,
                    allow_out_of_stock_purchase=True),
        ])
        handler.handle(_command(OrderItemSpec("1", 3)))
        assert store.product("1")["quantity"] == -2

    def test_notifier_failure_does_not_fail_order(self):
        handler, store, _ = _setup(notifier=FakeNotifier(fail=True))
        dto = handler.handle(_command(OrderItemSpec("1", 1)))
        assert store.order(dto.order_number)["status"] == "pending"


class TestCommitTimeStockCheck:

    def test_stock_drained_between_read_and_commit(self):
        handler, store, _ = _setup()
        uow = StoreUnitOfWork(store)
        with uow:
            order = Order.create(
                customer=Customer(email="bob@example.com", name="Bob"),
                items=[OrderItem("2", "Gadget", Quantity(4), Money.of("25.00"))],
                payment_method=PaymentMethod.PAYPAL,
                pricing=PRICING,
                actor="bob",
                placed_at=datetime(2026, 3, 17, tzinfo=timezone.utc),
            )
            # The snapshot still shows 5 Gadgets.
            InventoryLedger(uow.products).reserve_for_order(order)
            uow.orders.add(order)

            handler.handle(_command(OrderItemSpec("2", 3)))

            with pytest.raises(InsufficientStock) as excinfo:
                uow.commit()

        [shortage] = excinfo.value.shortages
        assert (shortage.available, shortage.requested) == (2, 4)
        assert store.product("2")["quantity"] == 2
        assert len(store.read()["orders"]) == 1
