"""Abstract repository for the Order aggregate.

Header and line items are written by separate calls so the order writer
can compensate when the second write fails.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from storefront.domain.model.order import Order, OrderLineItem, OrderStatus


class OrderRepository(ABC):

    @abstractmethod
    def next_id(self) -> str:
        """Generate a new unique order ID."""

    @abstractmethod
    def insert_header(self, order: Order) -> None:
        """Insert the order row without items.

        Must raise ``CouponReusedError`` when the user already has a
        non-cancelled order with the same coupon, checked atomically with
        the insert, and ``PersistenceError`` for any other store failure.
        """

    @abstractmethod
    def insert_items(self, order_id: str, items: list[OrderLineItem]) -> None:
        """Insert all line items for an order as one unit."""

    @abstractmethod
    def delete(self, order_id: str) -> None:
        """Remove an order and its items."""

    @abstractmethod
    def get_by_id(self, order_id: str) -> Order | None:
        """Return an order with its items, or None if not found."""

    @abstractmethod
    def get_by_idempotency_key(self, user_id: str, key: str) -> Order | None:
        """Return the user's order created under *key*, or None."""

    @abstractmethod
    def list_for_user(self, user_id: str) -> list[Order]:
        """Return a user's orders, newest first."""

    @abstractmethod
    def list_pending_before(self, cutoff: datetime) -> list[Order]:
        """Return pending orders created before *cutoff*."""

    @abstractmethod
    def has_active_coupon_use(self, user_id: str, coupon_id: str) -> bool:
        """True if a non-cancelled order of the user references the coupon."""

    @abstractmethod
    def mark_stock_reserved(self, order_id: str) -> bool:
        """Flag a pending order as holding its stock.

        Returns False (and writes nothing) when the order is no longer
        pending.
        """

    @abstractmethod
    def record_payment_session(
        self, order_id: str, session_id: str, redirect_url: str
    ) -> bool:
        """Store the payment session of a pending order.

        Returns False when the order is no longer pending.
        """

    @abstractmethod
    def cancel_pending(self, order_id: str) -> bool | None:
        """Cancel the order if it is pending, in one atomic step.

        Returns None when it was not pending, otherwise whether the order
        was holding stock at the moment it was cancelled.
        """

    @abstractmethod
    def transition_status(
        self, order_id: str, expected: OrderStatus, new: OrderStatus
    ) -> bool:
        """Set *new* status only if the current status is *expected*.

        Returns False when the order was not in the expected status.
        """
