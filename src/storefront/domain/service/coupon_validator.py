"""Domain service: Coupon Validator.

A code that matches nothing, or matches an inactive or expired coupon,
simply means "no discount" and checkout continues at full price.  Reuse
by the same user is an error.

The reuse check here is advisory.  The order store repeats it atomically
when the order header is inserted, which is what actually closes the
window between two concurrent checkouts.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from storefront.domain.exceptions import CouponReusedError
from storefront.domain.model.coupon import Coupon
from storefront.domain.repository.coupon_repository import CouponRepository
from storefront.domain.repository.order_repository import OrderRepository

log = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CouponValidator:

    def __init__(
        self,
        coupon_repo: CouponRepository,
        order_repo: OrderRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._coupon_repo = coupon_repo
        self._order_repo = order_repo
        self._clock = clock

    def validate(self, code: str | None, user_id: str) -> Coupon | None:
        if not code:
            return None

        coupon = self._coupon_repo.get_by_code(code)
        if coupon is None or not coupon.is_usable(self._clock()):
            log.info("coupon_not_applied", code=code, user_id=user_id)
            return None

        coupon.ensure_well_formed()

        if self._order_repo.has_active_coupon_use(user_id, coupon.id):
            raise CouponReusedError()
        return coupon
