"""Tests for the SQLAlchemy-backed repositories.

Most tests run against in-memory SQLite; the race tests use a file so
every thread gets its own connection.
"""

import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError

from storefront.domain.exceptions import (
    CouponInvalidError,
    CouponReusedError,
    EntityNotFoundError,
    PersistenceError,
    ValidationError,
)
from storefront.domain.model.coupon import Coupon, DiscountKind
from storefront.domain.model.order import Order, OrderLineItem, OrderStatus
from storefront.domain.model.pricing import PriceBreakdown
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money, Quantity
from storefront.domain.service.order_writer import OrderWriter
from storefront.infrastructure.persistence.schema import coupons, create_schema, make_engine
from storefront.infrastructure.persistence.sql_coupon_repository import SqlCouponRepository
from storefront.infrastructure.persistence.sql_inventory_repository import (
    SqlInventoryRepository,
)
from storefront.infrastructure.persistence.sql_order_repository import SqlOrderRepository
from storefront.infrastructure.persistence.sql_product_repository import (
    SqlProductRepository,
)


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    create_schema(engine)
    return engine


@pytest.fixture
def file_engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'race.db'}")
    create_schema(engine)
    return engine


def _breakdown(total: str = "34.44") -> PriceBreakdown:
    return PriceBreakdown(
        subtotal=Money.of("20.00"),
        discount=Money.of("2.00"),
        tax=Money.of("1.4400"),
        shipping=Money.of("15.00"),
        total=Money.of(total),
    )


def _order(repo: SqlOrderRepository, user_id: str = "u1", **kwargs) -> Order:
    return Order(id=repo.next_id(), user_id=user_id, breakdown=_breakdown(), **kwargs)


def _items() -> list[OrderLineItem]:
    return [
        OrderLineItem("P1", "Tee", Quantity(2), Money.of("10.00"), color="red"),
        OrderLineItem("P2", "Cap", Quantity(1), Money.of("0.10")),
    ]


def _seed_coupon(engine, coupon_id: str = "C1") -> None:
    SqlCouponRepository(engine).save(
        Coupon(id=coupon_id, code=f"CODE-{coupon_id}", discount_kind=DiscountKind.FIXED, value=Decimal("5"))
    )


class TestSqlProductRepository:

    def test_save_and_get(self, engine):
        repo = SqlProductRepository(engine)
        repo.save(Product(id="P1", name="Tee", price=Money.of("10.50"), stock=3, image_url="tee.png"))

        product = repo.get_by_id("P1")

        assert product.price.amount == Decimal("10.50")
        assert product.stock == 3
        assert product.image_url == "tee.png"

    def test_save_updates_existing(self, engine):
        repo = SqlProductRepository(engine)
        repo.save(Product(id="P1", name="Tee", price=Money.of("10.50"), stock=3))
        repo.save(Product(id="P1", name="Tee", price=Money.of("11.00"), stock=9))
        assert repo.get_by_id("P1").price == Money.of("11.00")
        assert len(repo.list_all()) == 1

    def test_get_many_returns_existing_only(self, engine):
        repo = SqlProductRepository(engine)
        repo.save(Product(id="P1", name="Tee", price=Money.of("1"), stock=1))
        assert [p.id for p in repo.get_many(["P1", "P9"])] == ["P1"]
        assert repo.get_many([]) == []


class TestSqlInventoryRepository:

    def test_conditional_decrement(self, engine):
        SqlProductRepository(engine).save(Product(id="P1", name="Tee", price=Money.of("1"), stock=2))
        repo = SqlInventoryRepository(engine)

        assert repo.try_decrement("P1", 2) is True
        assert repo.try_decrement("P1", 1) is False
        assert SqlProductRepository(engine).get_by_id("P1").stock == 0

    def test_increment(self, engine):
        SqlProductRepository(engine).save(Product(id="P1", name="Tee", price=Money.of("1"), stock=2))
        SqlInventoryRepository(engine).increment("P1", 3)
        assert SqlProductRepository(engine).get_by_id("P1").stock == 5

    def test_increment_unknown_product(self, engine):
        with pytest.raises(EntityNotFoundError):
            SqlInventoryRepository(engine).increment("P9", 1)

    def test_concurrent_decrements_never_oversell(self, file_engine):
        SqlProductRepository(file_engine).save(
            Product(id="P1", name="Tee", price=Money.of("1"), stock=3)
        )
        repo = SqlInventoryRepository(file_engine)
        results: list[bool] = []
        barrier = threading.Barrier(10)

        def buy() -> None:
            barrier.wait()
            results.append(repo.try_decrement("P1", 1))

        threads = [threading.Thread(target=buy) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 3
        assert SqlProductRepository(file_engine).get_by_id("P1").stock == 0


class TestSqlCouponRepository:

    def test_round_trip_with_expiry(self, engine):
        repo = SqlCouponRepository(engine)
        expires = datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc)
        repo.save(Coupon(
            id="C1", code="SAVE10", discount_kind=DiscountKind.PERCENTAGE,
            value=Decimal("10"), expires_at=expires,
        ))

        coupon = repo.get_by_code("SAVE10")

        assert coupon.discount_kind is DiscountKind.PERCENTAGE
        assert coupon.value == Decimal("10")
        assert coupon.expires_at == expires

    def test_lookup_is_case_sensitive(self, engine):
        _seed_coupon(engine)
        assert SqlCouponRepository(engine).get_by_code("code-c1") is None

    def test_malformed_row_is_coupon_invalid(self, engine):
        with engine.begin() as conn:
            conn.execute(insert(coupons).values(
                id="C9", code="BROKEN", discount_type="bogo", value="1",
                is_active=True, created_at=datetime(2026, 1, 1),
            ))
        with pytest.raises(CouponInvalidError):
            SqlCouponRepository(engine).get_by_code("BROKEN")


class TestSqlOrderRepository:

    def test_header_and_items_round_trip(self, engine):
        repo = SqlOrderRepository(engine)
        order = OrderWriter(repo).write("u1", _breakdown(), _items())

        saved = repo.get_by_id(order.id)

        assert saved.status is OrderStatus.PENDING
        assert saved.breakdown.tax.amount == Decimal("1.4400")
        assert saved.total == Money.of("34.44")
        assert [(i.product_id, i.quantity.value) for i in saved.items] == [("P1", 2), ("P2", 1)]
        assert saved.items[0].color == "red"
        assert saved.created_at.tzinfo is not None

    def test_delete_removes_items(self, engine):
        repo = SqlOrderRepository(engine)
        order = OrderWriter(repo).write("u1", _breakdown(), _items())
        repo.delete(order.id)
        assert repo.get_by_id(order.id) is None

    def test_coupon_reuse_rejected_by_index(self, engine):
        _seed_coupon(engine)
        repo = SqlOrderRepository(engine)
        repo.insert_header(_order(repo, coupon_id="C1"))

        with pytest.raises(CouponReusedError):
            repo.insert_header(_order(repo, coupon_id="C1"))

        assert repo.has_active_coupon_use("u1", "C1")
        assert not repo.has_active_coupon_use("u2", "C1")

    def test_cancelled_order_frees_coupon(self, engine):
        _seed_coupon(engine)
        repo = SqlOrderRepository(engine)
        first = _order(repo, coupon_id="C1")
        repo.insert_header(first)
        repo.transition_status(first.id, OrderStatus.PENDING, OrderStatus.CANCELLED)

        repo.insert_header(_order(repo, coupon_id="C1"))

        assert repo.has_active_coupon_use("u1", "C1")

    def test_duplicate_idempotency_key_rejected(self, engine):
        repo = SqlOrderRepository(engine)
        repo.insert_header(_order(repo, idempotency_key="k1"))
        with pytest.raises(ValidationError, match="Duplicate checkout"):
            repo.insert_header(_order(repo, idempotency_key="k1"))

    def test_get_by_idempotency_key_prefers_live_order(self, engine):
        repo = SqlOrderRepository(engine)
        old = _order(repo, idempotency_key="k1")
        repo.insert_header(old)
        repo.transition_status(old.id, OrderStatus.PENDING, OrderStatus.CANCELLED)
        live = _order(repo, idempotency_key="k1")
        repo.insert_header(live)

        assert repo.get_by_idempotency_key("u1", "k1").id == live.id
        assert repo.get_by_idempotency_key("u2", "k1") is None

    def test_record_payment_session(self, engine):
        repo = SqlOrderRepository(engine)
        order = _order(repo)
        repo.insert_header(order)
        assert repo.record_payment_session(order.id, "cs_1", "https://pay/cs_1")

        saved = repo.get_by_id(order.id)

        assert saved.payment_session_id == "cs_1"
        assert saved.redirect_url == "https://pay/cs_1"

    def test_payment_session_refused_once_cancelled(self, engine):
        repo = SqlOrderRepository(engine)
        order = _order(repo)
        repo.insert_header(order)
        repo.cancel_pending(order.id)

        assert not repo.record_payment_session(order.id, "cs_1", "https://pay/cs_1")
        assert repo.get_by_id(order.id).payment_session_id is None

    def test_stock_reserved_flag(self, engine):
        repo = SqlOrderRepository(engine)
        order = _order(repo)
        repo.insert_header(order)
        assert not repo.get_by_id(order.id).stock_reserved

        assert repo.mark_stock_reserved(order.id)

        assert repo.get_by_id(order.id).stock_reserved

    def test_stock_reserved_flag_needs_pending_order(self, engine):
        repo = SqlOrderRepository(engine)
        order = _order(repo)
        repo.insert_header(order)
        repo.cancel_pending(order.id)

        assert not repo.mark_stock_reserved(order.id)
        assert not repo.get_by_id(order.id).stock_reserved

    def test_cancel_pending_reports_held_stock(self, engine):
        repo = SqlOrderRepository(engine)
        held, bare = _order(repo), _order(repo)
        repo.insert_header(held)
        repo.insert_header(bare)
        repo.mark_stock_reserved(held.id)

        assert repo.cancel_pending(held.id) is True
        assert repo.cancel_pending(bare.id) is False
        assert repo.cancel_pending(held.id) is None
        assert repo.get_by_id(bare.id).status is OrderStatus.CANCELLED

    def test_cancel_pending_leaves_completed_order(self, engine):
        repo = SqlOrderRepository(engine)
        order = _order(repo)
        repo.insert_header(order)
        repo.transition_status(order.id, OrderStatus.PENDING, OrderStatus.COMPLETED)

        assert repo.cancel_pending(order.id) is None
        assert repo.get_by_id(order.id).status is OrderStatus.COMPLETED

    def test_transition_is_conditional(self, engine):
        repo = SqlOrderRepository(engine)
        order = _order(repo)
        repo.insert_header(order)

        assert repo.transition_status(order.id, OrderStatus.PENDING, OrderStatus.COMPLETED)
        assert not repo.transition_status(order.id, OrderStatus.PENDING, OrderStatus.CANCELLED)
        assert repo.get_by_id(order.id).status is OrderStatus.COMPLETED

    def test_list_pending_before(self, engine):
        repo = SqlOrderRepository(engine)
        now = datetime.now(timezone.utc)
        old = _order(repo, created_at=now - timedelta(hours=3))
        new = _order(repo, created_at=now)
        repo.insert_header(old)
        repo.insert_header(new)

        stale = repo.list_pending_before(now - timedelta(hours=1))

        assert [o.id for o in stale] == [old.id]

    def test_list_for_user_newest_first(self, engine):
        repo = SqlOrderRepository(engine)
        now = datetime.now(timezone.utc)
        first = _order(repo, created_at=now - timedelta(minutes=5))
        second = _order(repo, created_at=now)
        repo.insert_header(first)
        repo.insert_header(second)
        repo.insert_header(_order(repo, user_id="u2"))

        assert [o.id for o in repo.list_for_user("u1")] == [second.id, first.id]

    def test_concurrent_coupon_use_admits_one_order(self, file_engine):
        _seed_coupon(file_engine)
        repo = SqlOrderRepository(file_engine)
        outcomes: list[str] = []
        barrier = threading.Barrier(6)

        def place() -> None:
            barrier.wait()
            try:
                repo.insert_header(_order(repo, coupon_id="C1"))
                outcomes.append("ok")
            except CouponReusedError:
                outcomes.append("reused")

        threads = [threading.Thread(target=place) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("reused") == 5


class TestIntegrityErrorTranslation:

    @staticmethod
    def _translate(message: str):
        return SqlOrderRepository._translate_integrity_error(
            IntegrityError("INSERT INTO orders", {}, Exception(message))
        )

    def test_foreign_key_on_coupon_column_is_persistence_error(self):
        exc = self._translate(
            'insert or update on table "orders" violates foreign key constraint '
            '"orders_coupon_id_fkey"'
        )
        assert isinstance(exc, PersistenceError)
        assert not isinstance(exc, CouponReusedError)

    def test_coupon_index_by_name(self):
        exc = self._translate(
            'duplicate key value violates unique constraint "uq_orders_user_coupon_active"'
        )
        assert isinstance(exc, CouponReusedError)

    def test_idempotency_index_by_name(self):
        exc = self._translate(
            'duplicate key value violates unique constraint "uq_orders_user_idempotency_key"'
        )
        assert isinstance(exc, ValidationError)
        assert "Duplicate checkout" in str(exc)

    def test_sqlite_column_lists(self):
        coupon = self._translate("UNIQUE constraint failed: orders.user_id, orders.coupon_id")
        key = self._translate("UNIQUE constraint failed: orders.user_id, orders.idempotency_key")
        assert isinstance(coupon, CouponReusedError)
        assert isinstance(key, ValidationError)
