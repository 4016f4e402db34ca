"""Domain service: Payment Session Factory.

Opens a hosted payment session for a persisted order.  Running without a
payment processor is a supported configuration: the factory then returns a
fixed direct-success session so the pipeline still completes.
"""

from __future__ import annotations

import structlog

from storefront.domain.exceptions import DomainException, PaymentGatewayError
from storefront.domain.gateway.payment_gateway import (
    PaymentGateway,
    PaymentSession,
    SessionRequest,
)
from storefront.domain.model.order import Order

log = structlog.get_logger(__name__)

DIRECT_SESSION_ID = "direct_success"


class PaymentSessionFactory:

    def __init__(self, gateway: PaymentGateway | None, origin: str) -> None:
        self._gateway = gateway
        self._origin = origin.rstrip("/")

    @property
    def is_direct(self) -> bool:
        return self._gateway is None

    def success_url(self, order_id: str) -> str:
        return f"{self._origin}/checkout?step=success&order_id={order_id}"

    def cancel_url(self) -> str:
        return f"{self._origin}/checkout?step=shipping"

    def open(self, order: Order) -> PaymentSession:
        if self._gateway is None:
            return PaymentSession(
                session_id=DIRECT_SESSION_ID,
                redirect_url=self.success_url(order.id),
            )

        request = SessionRequest(
            order=order,
            success_url=self.success_url(order.id),
            cancel_url=self.cancel_url(),
            metadata={"order_id": order.id},
        )
        try:
            session = self._gateway.open_session(request)
        except DomainException:
            raise
        except Exception as exc:
            raise PaymentGatewayError(f"Payment session failed: {exc}") from exc
        log.info("payment_session_opened", order_id=order.id, session_id=session.session_id)
        return session

    def expire(self, session_id: str) -> None:
        """Best effort; a session that cannot be expired simply lapses."""
        if self._gateway is None or session_id == DIRECT_SESSION_ID:
            return
        try:
            self._gateway.expire_session(session_id)
        except Exception:
            log.exception("payment_session_expire_failed", session_id=session_id)
