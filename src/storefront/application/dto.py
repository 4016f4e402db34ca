"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the HTTP/CLI layers and the application layer
without exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from storefront.domain.exceptions import DomainException
from storefront.domain.model.order import Order


@dataclass(frozen=True)
class CartItemSpec:
    """Input: what the customer asked for.  Prices are never part of it."""

    product_id: str
    quantity: int
    color: str | None = None
    size: str | None = None


class CheckoutState(Enum):
    VALIDATING = "validating"
    PRICING = "pricing"
    PERSISTING = "persisting"
    PAYMENT_PENDING = "payment_pending"
    RESERVING = "reserving"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class CheckoutOutcome:
    """Result of one checkout attempt.

    A successful outcome carries the redirect target; a failed one carries
    the originating error and the state the pipeline was in when it failed.
    """

    state: CheckoutState
    order_id: str | None = None
    session_id: str | None = None
    redirect_url: str | None = None
    error: DomainException | None = None
    failed_in: CheckoutState | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is CheckoutState.DONE

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    @staticmethod
    def done(order: Order) -> CheckoutOutcome:
        return CheckoutOutcome(
            state=CheckoutState.DONE,
            order_id=order.id,
            session_id=order.payment_session_id,
            redirect_url=order.redirect_url,
        )

    @staticmethod
    def failed(state: CheckoutState, error: DomainException) -> CheckoutOutcome:
        return CheckoutOutcome(state=CheckoutState.FAILED, error=error, failed_in=state)


@dataclass(frozen=True)
class OrderLineItemDTO:
    """Output: a single line item as displayed to the user."""

    product_id: str
    product_name: str
    quantity: int
    price_at_time: str  # formatted, e.g. "$15.00"
    line_total: str
    color: str | None
    size: str | None


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    id: str
    user_id: str
    status: str
    items: list[OrderLineItemDTO]
    subtotal: str
    discount: str
    tax: str
    shipping: str
    total: str
    coupon_id: str | None
    created_at: str

    @staticmethod
    def from_order(order: Order) -> OrderDTO:
        breakdown = order.breakdown
        return OrderDTO(
            id=order.id,
            user_id=order.user_id,
            status=order.status.value,
            items=[
                OrderLineItemDTO(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity.value,
                    price_at_time=str(item.price_at_time),
                    line_total=str(item.line_total),
                    color=item.color,
                    size=item.size,
                )
                for item in order.items
            ],
            subtotal=str(breakdown.subtotal),
            discount=str(breakdown.discount),
            tax=str(breakdown.tax),
            shipping=str(breakdown.shipping),
            total=str(breakdown.total),
            coupon_id=order.coupon_id,
            created_at=order.created_at.strftime("%Y-%m-%d %H:%M UTC"),
        )
