"""Application service: Complete Order use case.

Invoked once the payment processor confirms payment.  Stock was already
taken at checkout, so completion is a pure status transition.
"""

from __future__ import annotations

import structlog

from storefront.domain.exceptions import EntityNotFoundError, ValidationError
from storefront.domain.model.order import OrderStatus
from storefront.domain.repository.order_repository import OrderRepository

log = structlog.get_logger(__name__)


class CompleteOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_id: str) -> None:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order {order_id} not found")

        order.complete()
        if not self._order_repo.transition_status(
            order.id, OrderStatus.PENDING, OrderStatus.COMPLETED
        ):
            raise ValidationError(f"Order {order_id} is no longer pending")
        log.info("order_completed", order_id=order_id)
