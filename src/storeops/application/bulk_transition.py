"""Application service: Bulk Transition Coordinator.

Applies the same target status to many orders.  Every order runs through
the Transition Executor in its own unit of work, so one rejected or
conflicting order never rolls back another.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable

from storeops.application.dto import (
    BulkTransitionCommand,
    BulkTransitionResult,
    OrderOutcome,
    OutcomeStatus,
)
from storeops.application.notifications import OrderNotifier
from storeops.application.retry import retry_on_conflict
from storeops.application.transition_order import TransitionOrderHandler
from storeops.domain.exceptions import (
    DomainException,
    OrdersNotFound,
    ValidationError,
)
from storeops.domain.model.order import utc_now
from storeops.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class BulkTransitionHandler:

    def __init__(
        self,
        uow: UnitOfWork,
        notifier: OrderNotifier | None = None,
        clock: Callable[[], datetime] = utc_now,
        max_attempts: int = 3,
        backoff: float = 0.05,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._uow = uow
        self._transition = TransitionOrderHandler(uow, notifier, clock)
        self._max_attempts = max_attempts
        self._backoff = backoff
        self._sleep = sleep

    def handle(self, command: BulkTransitionCommand) -> BulkTransitionResult:
        """Transition every listed order, collecting one outcome per order.

        Unknown ids fail the whole batch up front with OrdersNotFound;
        after that, per-order problems only mark that order skipped
        (business rule) or failed (lost race, storage error).
        """
        order_numbers = list(dict.fromkeys(n.strip() for n in command.order_numbers if n.strip()))
        if not order_numbers:
            raise ValidationError("At least one order number is required")

        with self._uow:
            missing = [n for n in order_numbers if self._uow.orders.get(n) is None]
        if missing:
            raise OrdersNotFound(missing)

        outcomes = [self._apply_one(command, number) for number in order_numbers]
        result = BulkTransitionResult(command.target_status.value, outcomes)
        logger.info(
            "Bulk transition to %s by %s: %d of %d order(s) modified",
            result.target_status, command.actor,
            result.modified_count, len(outcomes),
        )
        return result

    def _apply_one(self, command: BulkTransitionCommand, order_number: str) -> OrderOutcome:
        single = command.for_order(order_number)
        try:
            retry_on_conflict(
                lambda: self._transition.handle(single),
                attempts=self._max_attempts,
                backoff=self._backoff,
                sleep=self._sleep,
            )
        except ValidationError as exc:
            logger.warning("Order %s skipped: %s", order_number, exc)
            return OrderOutcome(order_number, OutcomeStatus.SKIPPED, str(exc), exc)
        except DomainException as exc:
            logger.warning("Order %s failed: %s", order_number, exc)
            return OrderOutcome(order_number, OutcomeStatus.FAILED, str(exc), exc)
        return OrderOutcome(order_number, OutcomeStatus.APPLIED)
