"""Price breakdown produced by the price calculator."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from storefront.domain.model.value_objects import Money

TAX_RATE = Decimal("0.08")
SHIPPING_FLAT = Money(Decimal("15.00"))


@dataclass(frozen=True)
class PricedLine:
    """A server-resolved unit price and the quantity ordered."""

    price: Money
    quantity: int


@dataclass(frozen=True)
class PriceBreakdown:
    """Order amounts.

    ``subtotal``, ``discount``, ``tax`` and ``shipping`` keep full
    precision; ``total`` is the only rounded figure.
    """

    subtotal: Money
    discount: Money
    tax: Money
    shipping: Money
    total: Money

    @property
    def discounted_subtotal(self) -> Money:
        return self.subtotal - self.discount
