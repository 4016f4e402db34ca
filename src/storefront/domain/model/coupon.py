"""Coupon entity.

Coupons are immutable for the duration of a checkout.  Whether a coupon
*applies* (active, not expired) is separate from whether its stored state
is *well formed*; only the latter is an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from storefront.domain.exceptions import CouponInvalidError

HUNDRED = Decimal("100")


class DiscountKind(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class Coupon:

    id: str
    code: str
    discount_kind: DiscountKind
    value: Decimal
    is_active: bool = True
    expires_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def is_usable(self, now: datetime) -> bool:
        """Active and either open-ended or expiring after *now*."""
        if not self.is_active:
            return False
        return self.expires_at is None or self.expires_at > now

    def ensure_well_formed(self) -> None:
        if not isinstance(self.value, Decimal) or not self.value.is_finite():
            raise CouponInvalidError(f"Coupon {self.code} has no usable value")
        if self.value < 0:
            raise CouponInvalidError(f"Coupon {self.code} has a negative value")
        if self.discount_kind is DiscountKind.PERCENTAGE and self.value > HUNDRED:
            raise CouponInvalidError(
                f"Coupon {self.code} discounts more than 100 percent"
            )
