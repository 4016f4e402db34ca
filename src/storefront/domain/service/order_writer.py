"""Domain service: Order Writer.

Creates the order header and attaches its line items.  The two writes are
one logical unit: when attaching items fails the header is deleted again,
so a header-only order is never left behind.

Single use of a coupon per user is enforced by the store in the same
statement that inserts the header (see ``OrderRepository.insert_header``).
"""

from __future__ import annotations

import structlog

from storefront.domain.exceptions import DomainException, PersistenceError
from storefront.domain.model.order import Order, OrderLineItem
from storefront.domain.model.pricing import PriceBreakdown
from storefront.domain.repository.order_repository import OrderRepository

log = structlog.get_logger(__name__)


class OrderWriter:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def create(
        self,
        user_id: str,
        breakdown: PriceBreakdown,
        coupon_id: str | None = None,
        idempotency_key: str | None = None,
    ) -> Order:
        """Insert a pending order header and return it (without items)."""
        order = Order(
            id=self._order_repo.next_id(),
            user_id=user_id,
            breakdown=breakdown,
            coupon_id=coupon_id,
            idempotency_key=idempotency_key,
        )
        self._order_repo.insert_header(order)
        log.info("order_header_created", order_id=order.id, user_id=user_id)
        return order

    def attach_items(self, order: Order, items: list[OrderLineItem]) -> None:
        try:
            self._order_repo.insert_items(order.id, items)
        except Exception as exc:
            log.warning("order_items_failed", order_id=order.id, error=str(exc))
            try:
                self._order_repo.delete(order.id)
            except Exception:
                log.exception("order_discard_failed", order_id=order.id)
            if isinstance(exc, DomainException):
                raise
            raise PersistenceError(f"Could not save items for order {order.id}") from exc
        order.items = list(items)

    def write(
        self,
        user_id: str,
        breakdown: PriceBreakdown,
        items: list[OrderLineItem],
        coupon_id: str | None = None,
        idempotency_key: str | None = None,
    ) -> Order:
        """Create the header and attach *items* as one unit."""
        order = self.create(user_id, breakdown, coupon_id, idempotency_key)
        self.attach_items(order, items)
        return order

    def discard(self, order_id: str) -> None:
        """Compensating delete of a header and whatever items it has."""
        self._order_repo.delete(order_id)
        log.info("order_discarded", order_id=order_id)
