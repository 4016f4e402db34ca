"""Composition root for the storefront.

Builds the SQL stores, the payment gateway and the identity provider from
``Settings`` and hands them to the application handlers.  Nothing else in
the package constructs an adapter.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from pathlib import Path

from sqlalchemy.engine import Engine

from storefront.application.place_order import PlaceOrderHandler
from storefront.domain.gateway.identity_provider import IdentityProvider
from storefront.domain.gateway.payment_gateway import PaymentGateway
from storefront.domain.model.value_objects import Money
from storefront.domain.service.payment_session_factory import PaymentSessionFactory
from storefront.domain.service.price_calculator import PriceCalculator
from storefront.infrastructure.config import Settings
from storefront.infrastructure.identity.http_identity_provider import HttpIdentityProvider
from storefront.infrastructure.identity.static_identity_provider import (
    StaticIdentityProvider,
)
from storefront.infrastructure.payment.stripe_gateway import StripePaymentGateway
from storefront.infrastructure.persistence.schema import create_schema, make_engine
from storefront.infrastructure.persistence.sql_coupon_repository import (
    SqlCouponRepository,
)
from storefront.infrastructure.persistence.sql_inventory_repository import (
    SqlInventoryRepository,
)
from storefront.infrastructure.persistence.sql_order_repository import SqlOrderRepository
from storefront.infrastructure.persistence.sql_product_repository import (
    SqlProductRepository,
)


@dataclass
class Container:
    """Lazily built adapters for one process."""

    settings: Settings

    @cached_property
    def engine(self) -> Engine:
        if self.settings.database_url.startswith("sqlite:///"):
            db_path = Path(self.settings.database_url.removeprefix("sqlite:///"))
            if str(db_path) != ":memory:":
                db_path.parent.mkdir(parents=True, exist_ok=True)
        engine = make_engine(self.settings.database_url)
        create_schema(engine)
        return engine

    @cached_property
    def products(self) -> SqlProductRepository:
        return SqlProductRepository(self.engine)

    @cached_property
    def coupons(self) -> SqlCouponRepository:
        return SqlCouponRepository(self.engine)

    @cached_property
    def orders(self) -> SqlOrderRepository:
        return SqlOrderRepository(self.engine)

    @cached_property
    def inventory(self) -> SqlInventoryRepository:
        return SqlInventoryRepository(self.engine)

    @cached_property
    def payment_gateway(self) -> PaymentGateway | None:
        if not self.settings.payments_enabled:
            return None
        return StripePaymentGateway(
            self.settings.stripe_secret_key,  # type: ignore[arg-type]
            api_base=self.settings.stripe_api_base,
        )

    @cached_property
    def identity_provider(self) -> IdentityProvider:
        if self.settings.auth_url:
            return HttpIdentityProvider(self.settings.auth_url, self.settings.auth_api_key)
        return StaticIdentityProvider(self.settings.auth_tokens)

    def payment_sessions(self) -> PaymentSessionFactory:
        return PaymentSessionFactory(self.payment_gateway, self.settings.public_origin)

    def price_calculator(self) -> PriceCalculator:
        return PriceCalculator(
            tax_rate=self.settings.tax_rate,
            shipping=Money(self.settings.shipping_flat),
        )

    def place_order_handler(self) -> PlaceOrderHandler:
        return PlaceOrderHandler(
            product_repo=self.products,
            coupon_repo=self.coupons,
            order_repo=self.orders,
            inventory_repo=self.inventory,
            payment_sessions=self.payment_sessions(),
            price_calculator=self.price_calculator(),
            reserve_before_payment=self.settings.reserve_before_payment,
        )


def build_container(settings: Settings | None = None) -> Container:
    return Container(settings or Settings.from_env())
