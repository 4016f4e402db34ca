"""Unit tests for the PriceCalculator domain service."""

from decimal import Decimal

import pytest

from storefront.domain.exceptions import EmptyCartError, ValidationError
from storefront.domain.model.coupon import Coupon, DiscountKind
from storefront.domain.model.pricing import PricedLine
from storefront.domain.model.value_objects import Money
from storefront.domain.service.price_calculator import PriceCalculator


def _coupon(kind: DiscountKind, value: str) -> Coupon:
    return Coupon(id="C1", code="SAVE", discount_kind=kind, value=Decimal(value))


def _line(price: str, qty: int) -> PricedLine:
    return PricedLine(price=Money.of(price), quantity=qty)


class TestPriceCalculator:

    def test_percentage_coupon_breakdown(self):
        breakdown = PriceCalculator().calculate(
            [_line("10.00", 2)], _coupon(DiscountKind.PERCENTAGE, "10")
        )
        assert breakdown.subtotal == Money.of("20.00")
        assert breakdown.discount == Money.of("2.00")
        assert breakdown.tax == Money.of("1.44")
        assert breakdown.shipping == Money.of("15.00")
        assert breakdown.total == Money.of("34.44")

    def test_no_coupon(self):
        breakdown = PriceCalculator().calculate([_line("10.00", 2)])
        assert breakdown.discount == Money.zero()
        assert breakdown.total == Money.of("36.60")

    def test_fixed_coupon_capped_at_subtotal(self):
        breakdown = PriceCalculator().calculate(
            [_line("5.00", 1)], _coupon(DiscountKind.FIXED, "50")
        )
        assert breakdown.discount == Money.of("5.00")
        assert breakdown.tax == Money.zero()
        assert breakdown.total == Money.of("15.00")

    def test_full_percentage_coupon(self):
        breakdown = PriceCalculator().calculate(
            [_line("12.34", 3)], _coupon(DiscountKind.PERCENTAGE, "100")
        )
        assert breakdown.total == Money.of("15.00")

    def test_only_total_is_rounded(self):
        breakdown = PriceCalculator().calculate([_line("0.99", 3)])
        # 2.97 * 0.08 = 0.2376
        assert breakdown.tax.amount == Decimal("0.2376")
        assert breakdown.total == Money.of("18.21")

    def test_total_identity_holds(self):
        calc = PriceCalculator()
        for price, qty, coupon in [
            ("19.99", 3, _coupon(DiscountKind.PERCENTAGE, "15")),
            ("0.01", 7, None),
            ("250.00", 1, _coupon(DiscountKind.FIXED, "33.33")),
        ]:
            b = calc.calculate([_line(price, qty)], coupon)
            expected = (b.subtotal - b.discount + b.tax + b.shipping).rounded()
            assert b.total == expected
            assert b.discount <= b.subtotal

    def test_custom_rates(self):
        calc = PriceCalculator(tax_rate=Decimal("0"), shipping=Money.zero())
        assert calc.calculate([_line("10.00", 1)]).total == Money.of("10.00")

    def test_empty_cart_rejected(self):
        with pytest.raises(EmptyCartError):
            PriceCalculator().calculate([])

    def test_non_positive_quantity_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            PriceCalculator().calculate([_line("10.00", 0)])

    def test_negative_tax_rate_rejected(self):
        with pytest.raises(ValidationError):
            PriceCalculator(tax_rate=Decimal("-0.01"))
