"""Shared builders for application tests."""

from decimal import Decimal

import pytest

from storeops.application.create_order import CreateOrderHandler
from storeops.application.dto import CreateOrderCommand, OrderItemSpec
from storeops.domain.model.order import Customer, PaymentMethod
from storeops.domain.model.pricing import PricingPolicy
from storeops.domain.model.product import Product
from storeops.domain.model.value_objects import Money
from storeops.infrastructure.persistence.unit_of_work import StoreUnitOfWork
from tests.fakes import FakeClock, FakeNotifier, MemoryDocumentStore

PRICING = PricingPolicy(tax_rate=Decimal("0.10"), shipping_fee=Decimal("10.00"))


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore([
        Product(id="1", name="Widget", price=Money.of("15.00"), category="Tools", quantity=10),
        Product(id="2", name="Gadget", price=Money.of("25.00"), category="Toys", quantity=5),
    ])


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def place_order(store, clock):
    """Place an order through the real handler and return its number."""
    handler = CreateOrderHandler(StoreUnitOfWork(store), PRICING, clock=clock)

    def _place(*lines: tuple[str, int], paid: bool = False, email: str = "alice@example.com") -> str:
        dto = handler.handle(
            CreateOrderCommand(
                customer=Customer(email=email, name=email.split("@")[0].title()),
                items=[OrderItemSpec(pid, qty) for pid, qty in lines],
                payment_method=PaymentMethod.CREDIT_CARD,
                actor="alice",
                paid=paid,
            )
        )
        return dto.order_number

    return _place
