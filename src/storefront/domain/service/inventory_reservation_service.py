"""Domain service: Inventory Reservation.

Every reservation is a single conditional decrement in the store
(decrement only if enough stock remains), so two concurrent checkouts can
never both take the last units of a product.

Reserving an order is all-or-nothing: when one line cannot be reserved,
the lines already reserved are released before the error propagates.
"""

from __future__ import annotations

import structlog

from storefront.domain.exceptions import InsufficientStockError, ValidationError
from storefront.domain.model.order import Order, OrderLineItem
from storefront.domain.repository.inventory_repository import InventoryRepository

log = structlog.get_logger(__name__)


class InventoryReservationService:

    def __init__(self, inventory_repo: InventoryRepository) -> None:
        self._inventory_repo = inventory_repo

    def reserve(self, product_id: str, quantity: int, product_name: str | None = None) -> None:
        """Take *quantity* units of one product or raise InsufficientStockError."""
        if quantity <= 0:
            raise ValidationError("Reservation quantity must be positive")
        if not self._inventory_repo.try_decrement(product_id, quantity):
            raise InsufficientStockError(product_id, product_name)
        log.debug("stock_reserved", product_id=product_id, quantity=quantity)

    def reserve_for_order(self, order: Order) -> None:
        """Reserve every line item of *order*.

        On the first failure of any kind, releases what was already taken
        (best effort) and re-raises the original error.
        """
        reserved: list[OrderLineItem] = []
        for line in order.items:
            try:
                self.reserve(line.product_id, line.quantity.value, line.product_name)
            except Exception:
                self._release_lines(order.id, reserved)
                raise
            reserved.append(line)

    def release_for_order(self, order: Order) -> None:
        """Return every line's quantity to stock (order cancelled or abandoned)."""
        for line in order.items:
            self._inventory_repo.increment(line.product_id, line.quantity.value)

    def _release_lines(self, order_id: str, lines: list[OrderLineItem]) -> None:
        for line in lines:
            try:
                self._inventory_repo.increment(line.product_id, line.quantity.value)
            except Exception:
                log.exception(
                    "stock_release_failed",
                    order_id=order_id,
                    product_id=line.product_id,
                    quantity=line.quantity.value,
                )
