"""Domain events.

Events are facts that already happened; they are immutable and named in
the past tense.  The order aggregate records them as it changes and the
application layer hands them to the notification collaborator *after*
the unit of work has committed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class NotificationKind(Enum):
    ORDER_PLACED = "order_placed"
    ORDER_CONFIRMED = "order_confirmed"
    ORDER_SHIPPED = "order_shipped"
    ORDER_CANCELLED = "order_cancelled"


@dataclass(frozen=True)
class OrderNotification:
    kind: NotificationKind
    order_number: str
    status: str
    customer_email: str
    customer_name: str
    occurred_at: datetime
    tracking_number: str | None = None
    carrier: str | None = None
