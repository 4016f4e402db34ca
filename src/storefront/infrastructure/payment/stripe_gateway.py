"""Stripe Checkout adapter for the PaymentGateway port.

Talks to the Stripe REST API directly with httpx (form-encoded bodies,
bearer secret key).  The amount Stripe charges always equals the order
total in cents:

* without a discount the session is itemised, with one extra line that
  carries shipping and tax;
* with a discount Stripe would need a negative line, which it rejects, so
  the session carries a single line for the whole order.
"""

from __future__ import annotations

import httpx
import structlog

from storefront.domain.exceptions import PaymentGatewayError
from storefront.domain.gateway.payment_gateway import (
    PaymentGateway,
    PaymentSession,
    SessionRequest,
)
from storefront.domain.model.order import Order

log = structlog.get_logger(__name__)

STRIPE_API_BASE = "https://api.stripe.com"


class StripePaymentGateway(PaymentGateway):

    def __init__(
        self,
        secret_key: str,
        api_base: str = STRIPE_API_BASE,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._client = client or httpx.Client(timeout=timeout)
        self._api_base = api_base.rstrip("/")
        self._headers = {"Authorization": f"Bearer {secret_key}"}

    # --- PaymentGateway interface ---------------------------------------------

    def open_session(self, request: SessionRequest) -> PaymentSession:
        form = [
            ("mode", "payment"),
            ("payment_method_types[0]", "card"),
            ("success_url", request.success_url),
            ("cancel_url", request.cancel_url),
        ]
        form.extend(self._line_item_fields(request.order))
        for key, value in request.metadata.items():
            form.append((f"metadata[{key}]", value))

        body = self._post("/v1/checkout/sessions", form)
        try:
            return PaymentSession(session_id=body["id"], redirect_url=body["url"])
        except KeyError as exc:
            raise PaymentGatewayError("Payment processor returned an incomplete session") from exc

    def expire_session(self, session_id: str) -> None:
        self._post(f"/v1/checkout/sessions/{session_id}/expire", [])

    # --- Request building -----------------------------------------------------

    @staticmethod
    def _line_item_fields(order: Order) -> list[tuple[str, str]]:
        total_cents = order.breakdown.total.minor_units()
        lines: list[tuple[str, int, int, dict[str, str]]] = []

        if order.breakdown.discount.amount > 0:
            lines.append((f"Order {order.id}", total_cents, 1, {}))
        else:
            item_cents = 0
            for item in order.items:
                unit = item.price_at_time.minor_units()
                item_cents += unit * item.quantity.value
                metadata = {
                    k: v for k, v in (("color", item.color), ("size", item.size)) if v
                }
                lines.append((item.product_name, unit, item.quantity.value, metadata))
            lines.append(("Express Shipping & Tax", total_cents - item_cents, 1, {}))

        fields: list[tuple[str, str]] = []
        for i, (name, unit_amount, quantity, metadata) in enumerate(lines):
            prefix = f"line_items[{i}]"
            fields.append((f"{prefix}[price_data][currency]", "usd"))
            fields.append((f"{prefix}[price_data][product_data][name]", name))
            for key, value in metadata.items():
                fields.append((f"{prefix}[price_data][product_data][metadata][{key}]", value))
            fields.append((f"{prefix}[price_data][unit_amount]", str(unit_amount)))
            fields.append((f"{prefix}[quantity]", str(quantity)))
        return fields

    # --- HTTP helpers ---------------------------------------------------------

    def _post(self, path: str, form: list[tuple[str, str]]) -> dict:
        try:
            response = self._client.post(
                f"{self._api_base}{path}", data=dict(form), headers=self._headers
            )
        except httpx.HTTPError as exc:
            log.warning("stripe_unreachable", path=path, error=str(exc))
            raise PaymentGatewayError("Payment processor is unreachable") from exc

        if response.status_code >= 400:
            raise PaymentGatewayError(self._error_message(response))
        return response.json()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            detail = response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            detail = f"HTTP {response.status_code}"
        return f"Payment processor error: {detail}"
