"""Port for the notification/email collaborator.

Delivery is fire-and-forget: it happens after the unit of work commits,
and a failing notifier is logged, never propagated.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable

from storeops.domain.events import OrderNotification

logger = logging.getLogger(__name__)


class OrderNotifier(ABC):

    @abstractmethod
    def notify(self, event: OrderNotification) -> None:
        """Hand one event to the delivery channel."""


class NullNotifier(OrderNotifier):

    def notify(self, event: OrderNotification) -> None:
        pass


def publish(notifier: OrderNotifier, events: Iterable[OrderNotification]) -> None:
    for event in events:
        try:
            notifier.notify(event)
        except Exception:
            logger.warning(
                "Notification %s for order %s could not be delivered",
                event.kind.value, event.order_number,
                exc_info=True,
            )
