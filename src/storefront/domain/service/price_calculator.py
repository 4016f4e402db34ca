"""Domain service: Price Calculator.

Pure function of server-resolved prices and an optional coupon.  Client
supplied prices and totals are never an input.  Intermediate amounts keep
full precision; only the total is rounded (half-up, to cents).
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from storefront.domain.exceptions import EmptyCartError, ValidationError
from storefront.domain.model.coupon import HUNDRED, Coupon, DiscountKind
from storefront.domain.model.pricing import (
    SHIPPING_FLAT,
    TAX_RATE,
    PriceBreakdown,
    PricedLine,
)
from storefront.domain.model.value_objects import Money


class PriceCalculator:

    def __init__(
        self,
        tax_rate: Decimal = TAX_RATE,
        shipping: Money = SHIPPING_FLAT,
    ) -> None:
        if tax_rate < 0:
            raise ValidationError("Tax rate cannot be negative")
        self._tax_rate = tax_rate
        self._shipping = shipping

    def calculate(
        self,
        lines: Sequence[PricedLine],
        coupon: Coupon | None = None,
    ) -> PriceBreakdown:
        if not lines:
            raise EmptyCartError()

        subtotal = Money.zero()
        for line in lines:
            if line.quantity <= 0:
                raise ValidationError("Quantity must be positive")
            subtotal = subtotal + line.price * line.quantity

        discount = self.discount_for(subtotal, coupon)
        taxable = subtotal - discount
        tax = taxable.scaled(self._tax_rate)
        total = (taxable + tax + self._shipping).rounded()

        return PriceBreakdown(
            subtotal=subtotal,
            discount=discount,
            tax=tax,
            shipping=self._shipping,
            total=total,
        )

    @staticmethod
    def discount_for(subtotal: Money, coupon: Coupon | None) -> Money:
        """Never exceeds *subtotal*."""
        if coupon is None:
            return Money.zero()
        if coupon.discount_kind is DiscountKind.PERCENTAGE:
            discount = subtotal.scaled(coupon.value / HUNDRED)
        else:
            discount = Money(coupon.value, subtotal.currency)
        return min(discount, subtotal)
