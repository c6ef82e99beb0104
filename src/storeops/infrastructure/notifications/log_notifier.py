"""Notifier that writes order notifications to the application log.

Stands in for the email channel: delivery to customers happens outside
this system.
"""

from __future__ import annotations

import logging

from storeops.application.notifications import OrderNotifier
from storeops.domain.events import OrderNotification

logger = logging.getLogger(__name__)


class LoggingNotifier(OrderNotifier):

    def notify(self, event: OrderNotification) -> None:
        extra = ""
        if event.tracking_number:
            extra = f" (tracking {event.tracking_number} via {event.carrier})"
        logger.info(
            "[%s] order %s is %s, notify %s <%s>%s",
            event.kind.value, event.order_number, event.status,
            event.customer_name, event.customer_email, extra,
        )
