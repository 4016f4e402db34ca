"""Application service: Cancel Order use case.

Cancels a pending order and returns its stock.  The status change is
conditional in the store and happens first, so two concurrent
cancellations cannot both release the same units.  Only orders flagged
``stock_reserved`` at the moment they leave pending give stock back; a
checkout that never got that far has nothing to return.  A cancelled order no
longer counts against its coupon, so the user may redeem it again.
"""

from __future__ import annotations

import structlog

from storefront.domain.exceptions import EntityNotFoundError, ValidationError
from storefront.domain.model.order import Order
from storefront.domain.repository.inventory_repository import InventoryRepository
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)

log = structlog.get_logger(__name__)


class CancelOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        inventory_repo: InventoryRepository,
    ) -> None:
        self._order_repo = order_repo
        self._inventory_repo = inventory_repo

    def handle(self, order_id: str) -> None:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order {order_id} not found")
        self.cancel(order)

    def cancel(self, order: Order) -> None:
        order.cancel()
        held = self._order_repo.cancel_pending(order.id)
        if held is None:
            raise ValidationError(f"Order {order.id} is no longer pending")

        if held:
            svc = InventoryReservationService(self._inventory_repo)
            svc.release_for_order(order)
        log.info("order_cancelled", order_id=order.id, stock_released=held)
