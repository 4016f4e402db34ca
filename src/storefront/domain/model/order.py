"""Order aggregate.

The Order owns its line items.  Line items are snapshots: the price paid
is captured at checkout and never re-read from the catalog.  After the
items are attached the only permitted change is a status transition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.pricing import PriceBreakdown
from storefront.domain.model.value_objects import Money, Quantity


class OrderStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class OrderLineItem:
    """Captures the price snapshot of a product at checkout time."""

    product_id: str
    product_name: str
    quantity: Quantity
    price_at_time: Money  # locked at checkout
    color: str | None = None
    size: str | None = None

    @property
    def line_total(self) -> Money:
        return self.price_at_time * self.quantity.value


@dataclass
class Order:
    """Aggregate root for storefront orders.

    Orders are born ``PENDING`` by the order writer.  ``complete()`` and
    ``cancel()`` are the only transitions, and both require ``PENDING``.
    ``stock_reserved`` is set once checkout has taken the stock for every
    line; only such orders give stock back when cancelled.
    """

    id: str
    user_id: str
    breakdown: PriceBreakdown
    items: list[OrderLineItem] = field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING
    coupon_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    payment_session_id: str | None = None
    redirect_url: str | None = None
    idempotency_key: str | None = None
    stock_reserved: bool = False

    # --- State transitions ----------------------------------------------------

    def complete(self) -> None:
        """Transition PENDING -> COMPLETED once payment is confirmed."""
        self._require_pending("complete")
        self.status = OrderStatus.COMPLETED

    def cancel(self) -> None:
        """Transition PENDING -> CANCELLED.

        Stock release must happen *before* calling this (coordinated by the
        application handler via the reservation service).
        """
        self._require_pending("cancel")
        self.status = OrderStatus.CANCELLED

    # --- Computed properties --------------------------------------------------

    @property
    def items_subtotal(self) -> Money:
        result = Money.zero()
        for item in self.items:
            result = result + item.line_total
        return result

    @property
    def total(self) -> Money:
        return self.breakdown.total

    # --- Internal helpers -----------------------------------------------------

    def _require_pending(self, action: str) -> None:
        if self.status != OrderStatus.PENDING:
            raise ValidationError(
                f"Cannot {action} order {self.id} — current status is "
                f"{self.status.value}, expected pending"
            )
