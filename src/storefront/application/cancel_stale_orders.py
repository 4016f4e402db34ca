"""Application service: cancel pending orders older than a cut-off.

Operator-triggered.  Orders left pending by a dropped client or a payment
that never completed keep their stock until cancelled; this sweep is how
an operator gives it back.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import structlog

from storefront.application.cancel_order import CancelOrderHandler
from storefront.domain.exceptions import ValidationError
from storefront.domain.repository.inventory_repository import InventoryRepository
from storefront.domain.repository.order_repository import OrderRepository

log = structlog.get_logger(__name__)


class CancelStaleOrdersHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        inventory_repo: InventoryRepository,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._order_repo = order_repo
        self._cancel = CancelOrderHandler(order_repo, inventory_repo)
        self._clock = clock

    def handle(self, older_than: timedelta) -> list[str]:
        """Cancel every stale pending order; return the cancelled ids."""
        if older_than <= timedelta(0):
            raise ValidationError("Age threshold must be positive")

        cutoff = self._clock() - older_than
        cancelled: list[str] = []
        for order in self._order_repo.list_pending_before(cutoff):
            try:
                self._cancel.cancel(order)
            except ValidationError as exc:
                # completed or cancelled since it was listed
                log.info("stale_order_skipped", order_id=order.id, reason=str(exc))
                continue
            cancelled.append(order.id)
        log.info("stale_orders_cancelled", count=len(cancelled), cutoff=cutoff.isoformat())
        return cancelled
