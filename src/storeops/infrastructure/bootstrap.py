"""Composition root — wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from storeops.application.add_product import AddProductHandler
from storeops.application.bulk_transition import BulkTransitionHandler
from storeops.application.create_order import CreateOrderHandler
from storeops.application.delete_order import DeleteOrderHandler
from storeops.application.notifications import OrderNotifier
from storeops.application.show_inventory import ShowInventoryHandler
from storeops.application.show_order import (
    ListOrdersHandler,
    OrderTimelineHandler,
    ShowOrderHandler,
)
from storeops.application.show_statistics import ShowStatisticsHandler
from storeops.application.transition_order import TransitionOrderHandler
from storeops.application.update_order import UpdateOrderHandler
from storeops.application.update_product import UpdateProductHandler
from storeops.infrastructure.config import StoreSettings
from storeops.infrastructure.notifications.log_notifier import LoggingNotifier
from storeops.infrastructure.persistence.document_store import (
    DocumentStore,
    JsonFileStore,
)
from storeops.infrastructure.persistence.unit_of_work import StoreUnitOfWork


class Container:
    """Builds handlers over one document store for one set of settings."""

    def __init__(
        self,
        settings: StoreSettings,
        store: DocumentStore | None = None,
        notifier: OrderNotifier | None = None,
    ) -> None:
        self.settings = settings
        self.store = store or JsonFileStore(settings.store_path)
        self.notifier = notifier or LoggingNotifier()

    def unit_of_work(self) -> StoreUnitOfWork:
        return StoreUnitOfWork(self.store)

    # --- Orders ---------------------------------------------------------------

    def create_order(self) -> CreateOrderHandler:
        return CreateOrderHandler(
            self.unit_of_work(),
            self.settings.pricing_policy(),
            notifier=self.notifier,
            order_number_prefix=self.settings.order_number_prefix,
        )

    def transition_order(self) -> TransitionOrderHandler:
        return TransitionOrderHandler(self.unit_of_work(), notifier=self.notifier)

    def bulk_transition(self) -> BulkTransitionHandler:
        return BulkTransitionHandler(
            self.unit_of_work(),
            notifier=self.notifier,
            max_attempts=self.settings.max_commit_attempts,
            backoff=self.settings.retry_backoff,
        )

    def update_order(self) -> UpdateOrderHandler:
        return UpdateOrderHandler(self.unit_of_work())

    def delete_order(self) -> DeleteOrderHandler:
        return DeleteOrderHandler(self.unit_of_work())

    def show_order(self) -> ShowOrderHandler:
        return ShowOrderHandler(self.unit_of_work())

    def list_orders(self) -> ListOrdersHandler:
        return ListOrdersHandler(self.unit_of_work())

    def order_timeline(self) -> OrderTimelineHandler:
        return OrderTimelineHandler(self.unit_of_work())

    # --- Catalog, inventory, statistics ---------------------------------------

    def add_product(self) -> AddProductHandler:
        return AddProductHandler(
            self.unit_of_work(),
            currency=self.settings.currency,
            low_stock_threshold=self.settings.low_stock_threshold,
        )

    def update_product(self) -> UpdateProductHandler:
        return UpdateProductHandler(self.unit_of_work())

    def show_inventory(self) -> ShowInventoryHandler:
        return ShowInventoryHandler(self.unit_of_work())

    def show_statistics(self) -> ShowStatisticsHandler:
        return ShowStatisticsHandler(self.unit_of_work())
