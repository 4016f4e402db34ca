"""Application service: Place Order (checkout orchestrator).

Sequences the checkout pipeline for one request:

    validating -> pricing -> persisting -> payment_pending -> reserving -> done

with ``reserve_before_payment`` swapping the last two steps.  The payment
session is written to the order only once every step has succeeded, so an
idempotent replay never reports an order that may still be discarded.
Once the stock is taken the order is flagged ``stock_reserved``; from then
on whoever cancels the pending order gives the stock back.  Components
raise domain errors; this handler catches them, runs the compensations
for whatever was already written and returns an explicit
``CheckoutOutcome`` instead of raising.  Nothing is retried here.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import structlog

from storefront.application.dto import CartItemSpec, CheckoutOutcome, CheckoutState
from storefront.domain.exceptions import (
    DomainException,
    EmptyCartError,
    InsufficientStockError,
    ValidationError,
)
from storefront.domain.gateway.payment_gateway import PaymentSession
from storefront.domain.model.order import Order, OrderLineItem, OrderStatus
from storefront.domain.model.pricing import PricedLine
from storefront.domain.model.value_objects import Quantity
from storefront.domain.repository.coupon_repository import CouponRepository
from storefront.domain.repository.inventory_repository import InventoryRepository
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.product_repository import ProductRepository
from storefront.domain.service.catalog_reader import CatalogReader
from storefront.domain.service.coupon_validator import CouponValidator
from storefront.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)
from storefront.domain.service.order_writer import OrderWriter
from storefront.domain.service.payment_session_factory import PaymentSessionFactory
from storefront.domain.service.price_calculator import PriceCalculator

log = structlog.get_logger(__name__)


class PlaceOrderHandler:

    def __init__(
        self,
        product_repo: ProductRepository,
        coupon_repo: CouponRepository,
        order_repo: OrderRepository,
        inventory_repo: InventoryRepository,
        payment_sessions: PaymentSessionFactory,
        price_calculator: PriceCalculator | None = None,
        reserve_before_payment: bool = False,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._order_repo = order_repo
        self._catalog = CatalogReader(product_repo)
        if clock is None:
            self._coupons = CouponValidator(coupon_repo, order_repo)
        else:
            self._coupons = CouponValidator(coupon_repo, order_repo, clock=clock)
        self._pricing = price_calculator or PriceCalculator()
        self._writer = OrderWriter(order_repo)
        self._payment_sessions = payment_sessions
        self._reservations = InventoryReservationService(inventory_repo)
        self._reserve_before_payment = reserve_before_payment

    def handle(
        self,
        user_id: str,
        item_specs: list[CartItemSpec],
        coupon_code: str | None = None,
        idempotency_key: str | None = None,
    ) -> CheckoutOutcome:
        run_log = log.bind(user_id=user_id, idempotency_key=idempotency_key)
        run_log.info("checkout_started", items=len(item_specs), coupon_code=coupon_code)

        state = CheckoutState.VALIDATING
        order: Order | None = None
        session: PaymentSession | None = None
        reserved = False
        marked = False
        try:
            if idempotency_key:
                replay = self._replay(user_id, idempotency_key)
                if replay is not None:
                    run_log.info("checkout_replayed", order_id=replay.id)
                    return CheckoutOutcome.done(replay)

            line_items = self._resolve_items(item_specs)
            coupon = self._coupons.validate(coupon_code, user_id)

            state = CheckoutState.PRICING
            breakdown = self._pricing.calculate(
                [PricedLine(item.price_at_time, item.quantity.value) for item in line_items],
                coupon,
            )

            state = CheckoutState.PERSISTING
            order = self._writer.write(
                user_id,
                breakdown,
                line_items,
                coupon_id=coupon.id if coupon else None,
                idempotency_key=idempotency_key,
            )
            run_log = run_log.bind(order_id=order.id)
            run_log.info("order_persisted", total=str(breakdown.total))

            if self._reserve_before_payment:
                state = CheckoutState.RESERVING
                self._reservations.reserve_for_order(order)
                reserved = True
                self._mark_reserved(order)
                marked = True
                state = CheckoutState.PAYMENT_PENDING
                session = self._payment_sessions.open(order)
            else:
                state = CheckoutState.PAYMENT_PENDING
                session = self._payment_sessions.open(order)
                state = CheckoutState.RESERVING
                self._reservations.reserve_for_order(order)
                reserved = True
                self._mark_reserved(order)
                marked = True
            self._record_session(order, session)

        except DomainException as exc:
            self._compensate(order, session, reserved, marked)
            run_log.warning(
                "checkout_failed", state=state.value, kind=exc.kind, error=str(exc)
            )
            return CheckoutOutcome.failed(state, exc)
        except Exception:
            self._compensate(order, session, reserved, marked)
            run_log.exception("checkout_crashed", state=state.value)
            raise

        run_log.info("checkout_completed", session_id=order.payment_session_id)
        return CheckoutOutcome.done(order)

    # --- Steps ----------------------------------------------------------------

    def _replay(self, user_id: str, key: str) -> Order | None:
        existing = self._order_repo.get_by_idempotency_key(user_id, key)
        if existing is None or existing.status is OrderStatus.CANCELLED:
            return None
        if existing.payment_session_id is None:
            raise ValidationError("A checkout with this idempotency key is already in progress")
        return existing

    def _resolve_items(self, item_specs: list[CartItemSpec]) -> list[OrderLineItem]:
        """Build line items from catalog prices and check stock up front."""
        if not item_specs:
            raise EmptyCartError()

        quantities = [Quantity(spec.quantity) for spec in item_specs]
        products = self._catalog.resolve(spec.product_id for spec in item_specs)

        requested: dict[str, int] = {}
        for spec, qty in zip(item_specs, quantities):
            requested[spec.product_id] = requested.get(spec.product_id, 0) + qty.value
        for product_id, total in requested.items():
            product = products[product_id]
            if not product.has_stock_for(total):
                raise InsufficientStockError(product.id, product.name)

        return [
            OrderLineItem(
                product_id=spec.product_id,
                product_name=products[spec.product_id].name,
                quantity=qty,
                price_at_time=products[spec.product_id].price,  # <-- price snapshot
                color=spec.color,
                size=spec.size,
            )
            for spec, qty in zip(item_specs, quantities)
        ]

    def _mark_reserved(self, order: Order) -> None:
        if not self._order_repo.mark_stock_reserved(order.id):
            raise ValidationError(f"Order {order.id} was cancelled during checkout")
        order.stock_reserved = True

    def _record_session(self, order: Order, session: PaymentSession) -> None:
        if not self._order_repo.record_payment_session(
            order.id, session.session_id, session.redirect_url
        ):
            raise ValidationError(f"Order {order.id} was cancelled during checkout")
        order.payment_session_id = session.session_id
        order.redirect_url = session.redirect_url

    # --- Compensation ---------------------------------------------------------

    def _compensate(
        self,
        order: Order | None,
        session: PaymentSession | None,
        reserved: bool,
        marked: bool,
    ) -> None:
        if order is None:
            return
        # A flagged order's stock belongs to whoever moves it out of pending.
        try:
            if marked:
                if self._order_repo.cancel_pending(order.id):
                    self._reservations.release_for_order(order)
            elif reserved:
                self._reservations.release_for_order(order)
        except Exception:
            log.exception("compensation_failed", step="release", order_id=order.id)
        if session is not None:
            self._payment_sessions.expire(session.session_id)
        try:
            self._writer.discard(order.id)
        except Exception:
            log.exception("compensation_failed", step="discard", order_id=order.id)
