"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.

``retryable`` tells callers whether re-running the whole logical operation
from a fresh read can succeed.  Validation errors will fail identically on
retry; conflicts and storage failures may not.
"""

from __future__ import annotations

from dataclasses import dataclass


class DomainException(Exception):
    """Base class for all domain errors."""

    retryable = False


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class RetryableError(DomainException):
    """The operation lost a race or hit the store; safe to retry."""

    retryable = True


# --- Validation ---------------------------------------------------------------


class InvalidTransition(ValidationError):
    """The (current, target) status pair is not in the transition table."""

    def __init__(
        self, current: str, target: str, allowed: tuple[str, ...] | None = None
    ) -> None:
        self.current = current
        self.target = target
        self.allowed = allowed
        message = f"Invalid status transition from {current} to {target}"
        if allowed is not None:
            message += (
                f" (allowed: {', '.join(allowed)})" if allowed
                else f" ({current} is final)"
            )
        super().__init__(message)


@dataclass(frozen=True)
class StockShortage:
    product_id: str
    name: str
    available: int
    requested: int

    def __str__(self) -> str:
        return (
            f"{self.name} ({self.product_id}): "
            f"available {self.available}, requested {self.requested}"
        )


class InsufficientStock(ValidationError):
    """One or more products cannot cover the requested quantity."""

    def __init__(self, shortages: list[StockShortage]) -> None:
        self.shortages = tuple(shortages)
        details = "; ".join(str(s) for s in self.shortages)
        super().__init__(f"Insufficient stock: {details}")


class MissingFulfillmentDetails(ValidationError):
    """Shipping an order requires a tracking number and a carrier."""

    def __init__(self, order_number: str) -> None:
        self.order_number = order_number
        super().__init__(
            f"Order {order_number} cannot be shipped without "
            f"a tracking number and carrier"
        )


# --- Not found ----------------------------------------------------------------


class OrderNotFound(EntityNotFoundError):

    def __init__(self, order_number: str) -> None:
        self.order_number = order_number
        super().__init__(f"Order {order_number} not found")


class ProductNotFound(EntityNotFoundError):

    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(f"Product not found: '{product_id}'")


class OrdersNotFound(EntityNotFoundError):
    """Bulk precondition: some of the requested orders do not exist."""

    def __init__(self, missing_ids: list[str]) -> None:
        self.missing_ids = tuple(missing_ids)
        super().__init__(f"Some orders not found: {', '.join(self.missing_ids)}")


# --- Retryable ----------------------------------------------------------------


class ConcurrentModification(RetryableError):
    """Another writer committed first; the staged changes are stale."""


class PersistenceFailure(RetryableError):
    """The underlying store could not be read or written."""
