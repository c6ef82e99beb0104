"""Order pricing policy: flat shipping fee and flat tax multiplier."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from storeops.domain.exceptions import ValidationError
from storeops.domain.model.value_objects import Money


@dataclass(frozen=True)
class PricingPolicy:
    currency: str = "USD"
    tax_rate: Decimal = Decimal("0.10")
    shipping_fee: Decimal = Decimal("10.00")
    # None disables free shipping.
    free_shipping_threshold: Decimal | None = None

    def __post_init__(self) -> None:
        if self.tax_rate < 0:
            raise ValidationError("Tax rate cannot be negative")
        if self.shipping_fee < 0:
            raise ValidationError("Shipping fee cannot be negative")

    def shipping_for(self, subtotal: Money, ships: bool) -> Money:
        if not ships:
            return Money.zero(self.currency)
        if (
            self.free_shipping_threshold is not None
            and subtotal.amount >= self.free_shipping_threshold
        ):
            return Money.zero(self.currency)
        return Money(self.shipping_fee, self.currency)

    def tax_for(self, subtotal: Money) -> Money:
        return subtotal.scaled(self.tax_rate)
