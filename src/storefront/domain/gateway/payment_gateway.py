"""Port for the external payment processor."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from storefront.domain.model.order import Order


@dataclass(frozen=True)
class PaymentSession:
    session_id: str
    redirect_url: str


@dataclass(frozen=True)
class SessionRequest:
    """Everything the processor needs to open a hosted checkout."""

    order: Order
    success_url: str
    cancel_url: str
    metadata: dict[str, str] = field(default_factory=dict)


class PaymentGateway(ABC):

    @abstractmethod
    def open_session(self, request: SessionRequest) -> PaymentSession:
        """Open a payment session; raise ``PaymentGatewayError`` on failure."""

    @abstractmethod
    def expire_session(self, session_id: str) -> None:
        """Invalidate a session that will never be paid."""
