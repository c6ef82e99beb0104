"""Integration tests for order queries, catalog handlers and the ledger view."""

import pytest

from storeops.application.add_product import AddProductHandler
from storeops.application.delete_order import DeleteOrderHandler
from storeops.application.dto import OrderFilter, TransitionOrderCommand
from storeops.application.retry import retry_on_conflict
from storeops.application.show_inventory import ShowInventoryHandler
from storeops.application.show_order import (
    ListOrdersHandler,
    OrderTimelineHandler,
    ShowOrderHandler,
)
from storeops.application.transition_order import TransitionOrderHandler
from storeops.application.update_product import UpdateProductHandler
from storeops.domain.exceptions import (
    ConcurrentModification,
    OrderNotFound,
    ProductNotFound,
    ValidationError,
)
from storeops.domain.model.order import PaymentMethod
from storeops.domain.model.product import Product
from storeops.domain.model.state_machine import OrderStatus, PaymentStatus
from storeops.domain.model.value_objects import Money
from storeops.infrastructure.persistence.unit_of_work import StoreUnitOfWork


class _RivalAddsFirst(StoreUnitOfWork):
    """Lets another writer add product "3" just before the first commit."""

    raced = False

    def commit(self) -> None:
        if not self.raced:
            self.raced = True
            with StoreUnitOfWork(self._store) as rival:
                rival.products.add(Product(id="3", name="Rival", price=Money.of("2.00")))
                rival.commit()
        super().commit()


class TestOrderQueries:

    def test_show(self, store, place_order):
        number = place_order(("1", 2))
        dto = ShowOrderHandler(StoreUnitOfWork(store)).handle(number)
        assert dto.order_number == number
        assert dto.items[0].name == "Widget"

    def test_show_unknown(self, store):
        with pytest.raises(OrderNotFound):
            ShowOrderHandler(StoreUnitOfWork(store)).handle("ORD-404")

    def test_list_newest_first_and_filters(self, store, place_order):
        first = place_order(("1", 1))
        second = place_order(("1", 1), paid=True)
        third = place_order(("2", 1))
        DeleteOrderHandler(StoreUnitOfWork(store)).handle(third, actor="admin")
        handler = ListOrdersHandler(StoreUnitOfWork(store))

        assert [o.order_number for o in handler.handle()] == [second, first]
        assert [o.order_number for o in handler.handle(include_deleted=True)] == [
            third, second, first,
        ]
        assert [o.order_number for o in handler.handle(status=OrderStatus.PROCESSING)] == [second]

    def test_list_criteria(self, store, place_order, clock):
        widget = place_order(("1", 1), email="bob@example.com")
        gadget = place_order(("2", 1), paid=True)
        TransitionOrderHandler(StoreUnitOfWork(store), clock=clock).handle(
            TransitionOrderCommand(
                gadget, OrderStatus.SHIPPED, actor="admin",
                tracking_number="1Z999", carrier="UPS",
            )
        )
        with StoreUnitOfWork(store) as uow:
            gadget_placed = uow.orders.get(gadget).placed_at
        handler = ListOrdersHandler(StoreUnitOfWork(store))

        def numbers(**criteria) -> list[str]:
            return [o.order_number for o in handler.handle(filters=OrderFilter(**criteria))]

        assert numbers() == [gadget, widget]
        assert numbers(payment_status=PaymentStatus.PAID) == [gadget]
        assert numbers(payment_method=PaymentMethod.PAYPAL) == []
        assert numbers(customer_email="BOB@") == [widget]
        assert numbers(customer_name="ali") == [gadget]
        assert numbers(placed_from=gadget_placed) == [gadget]
        assert numbers(placed_before=gadget_placed) == [widget]
        # Widget order totals $16.50, gadget order $27.50.
        assert numbers(min_total=Money.of("20.00")) == [gadget]
        assert numbers(max_total=Money.of("16.50")) == [widget]
        assert numbers(search="gadget") == [gadget]
        assert numbers(search="1z999") == [gadget]
        assert numbers(search=widget.lower()) == [widget]

    def test_timeline_merges_histories_newest_first(self, store, place_order, clock):
        number = place_order(("1", 1), paid=True)
        TransitionOrderHandler(StoreUnitOfWork(store), clock=clock).handle(
            TransitionOrderCommand(
                number, OrderStatus.SHIPPED, actor="bob", tracking_number="1Z", carrier="UPS"
            )
        )
        events = OrderTimelineHandler(StoreUnitOfWork(store)).handle(number)
        assert {e.kind for e in events} == {"status", "fulfillment"}
        assert events[-1].title == "Order Processing"
        assert events[-1].description == "Order placed"
        assert any("1Z via UPS" in e.description for e in events)
        timestamps = [e.timestamp for e in events]
        assert timestamps == sorted(timestamps, reverse=True)


class TestCatalog:

    def test_add_product_with_opening_stock(self, store):
        product = AddProductHandler(StoreUnitOfWork(store)).handle(
            name="Doohickey", price="3.50", quantity=40, category="Misc"
        )
        assert product.id == "3"
        assert store.product("3")["quantity"] == 40
        assert store.product("3")["total_sold"] == 0
        assert store.product("3")["category"] == "Misc"

    def test_add_product_explicit_id_and_threshold(self, store):
        product = AddProductHandler(StoreUnitOfWork(store), low_stock_threshold=2).handle(
            name="Sprocket", price="1.00", product_id="SKU-9"
        )
        assert product.id == "SKU-9"
        assert store.product("SKU-9")["low_stock_threshold"] == 2

    def test_duplicate_name_rejected(self, store):
        with pytest.raises(ValidationError, match="already exists"):
            AddProductHandler(StoreUnitOfWork(store)).handle(name="widget", price="1.00")

    def test_explicit_id_taken(self, store):
        with pytest.raises(ValidationError, match="Product id '2' already exists"):
            AddProductHandler(StoreUnitOfWork(store)).handle(
                name="Sprocket", price="1.00", product_id="2"
            )

    def test_auto_id_taken_by_concurrent_add_is_retried(self, store):
        handler = AddProductHandler(_RivalAddsFirst(store))
        with pytest.raises(ConcurrentModification):
            handler.handle(name="Sprocket", price="1.00")

        product = retry_on_conflict(
            lambda: handler.handle(name="Sprocket", price="1.00"), sleep=lambda _: None
        )
        assert product.id == "4"
        assert store.product("3")["name"] == "Rival"
        assert store.product("4")["name"] == "Sprocket"

    def test_zero_price_rejected(self, store):
        with pytest.raises(ValidationError, match="greater than zero"):
            AddProductHandler(StoreUnitOfWork(store)).handle(name="Freebie", price="0")

    def test_update_never_touches_counters(self, store, place_order):
        place_order(("1", 3))
        UpdateProductHandler(StoreUnitOfWork(store)).handle(
            "1", price="20.00", low_stock_threshold=1, track_quantity=True
        )
        product = store.product("1")
        assert product["price"] == "20.00"
        assert (product["quantity"], product["total_sold"]) == (7, 3)

    def test_update_unknown_product(self, store):
        with pytest.raises(ProductNotFound):
            UpdateProductHandler(StoreUnitOfWork(store)).handle("99", price="1.00")

    def test_price_change_leaves_existing_orders(self, store, place_order):
        number = place_order(("1", 1))
        UpdateProductHandler(StoreUnitOfWork(store)).handle("1", price="99.00")
        dto = ShowOrderHandler(StoreUnitOfWork(store)).handle(number)
        assert dto.items[0].unit_price == "$15.00"


class TestInventoryView:

    def test_rows(self, store, place_order):
        place_order(("2", 5))
        lines = ShowInventoryHandler(StoreUnitOfWork(store)).handle()
        by_id = {line.product_id: line for line in lines}
        assert (by_id["2"].quantity, by_id["2"].total_sold) == (0, 5)
        assert by_id["2"].stock_status == "out_of_stock"
        assert by_id["1"].stock_status == "low_stock"
