"""SQL-backed implementation of OrderRepository."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import delete, exists, insert, select, update
from sqlalchemy.engine import Connection, Engine, Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from storefront.domain.exceptions import (
    CouponReusedError,
    DomainException,
    PersistenceError,
    ValidationError,
)
from storefront.domain.model.order import Order, OrderLineItem, OrderStatus
from storefront.domain.model.pricing import PriceBreakdown
from storefront.domain.model.value_objects import Money, Quantity
from storefront.domain.repository.order_repository import OrderRepository
from storefront.infrastructure.persistence.schema import (
    COUPON_USE_INDEX,
    IDEMPOTENCY_INDEX,
    from_db_time,
    order_items,
    orders,
    to_db_time,
)


class SqlOrderRepository(OrderRepository):

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # --- OrderRepository interface --------------------------------------------

    def next_id(self) -> str:
        return str(uuid.uuid4())

    def insert_header(self, order: Order) -> None:
        try:
            with self._engine.begin() as conn:
                conn.execute(insert(orders).values(**self._header_row(order)))
        except IntegrityError as exc:
            raise self._translate_integrity_error(exc) from exc
        except SQLAlchemyError as exc:
            raise PersistenceError("Could not create order") from exc

    def insert_items(self, order_id: str, items: list[OrderLineItem]) -> None:
        rows = [self._item_row(order_id, item) for item in items]
        try:
            with self._engine.begin() as conn:
                conn.execute(insert(order_items), rows)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not save items for order {order_id}") from exc

    def delete(self, order_id: str) -> None:
        try:
            with self._engine.begin() as conn:
                conn.execute(delete(order_items).where(order_items.c.order_id == order_id))
                conn.execute(delete(orders).where(orders.c.id == order_id))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not delete order {order_id}") from exc

    def get_by_id(self, order_id: str) -> Order | None:
        with self._engine.connect() as conn:
            row = conn.execute(select(orders).where(orders.c.id == order_id)).first()
            if row is None:
                return None
            return self._load(conn, [row])[0]

    def get_by_idempotency_key(self, user_id: str, key: str) -> Order | None:
        stmt = (
            select(orders)
            .where(orders.c.user_id == user_id, orders.c.idempotency_key == key)
            .order_by(orders.c.created_at.desc())
        )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).all()
            if not rows:
                return None
            loaded = self._load(conn, rows)
        live = [o for o in loaded if o.status is not OrderStatus.CANCELLED]
        return live[0] if live else loaded[0]

    def list_for_user(self, user_id: str) -> list[Order]:
        stmt = (
            select(orders)
            .where(orders.c.user_id == user_id)
            .order_by(orders.c.created_at.desc())
        )
        with self._engine.connect() as conn:
            return self._load(conn, conn.execute(stmt).all())

    def list_pending_before(self, cutoff: datetime) -> list[Order]:
        stmt = (
            select(orders)
            .where(
                orders.c.status == OrderStatus.PENDING.value,
                orders.c.created_at < to_db_time(cutoff),
            )
            .order_by(orders.c.created_at)
        )
        with self._engine.connect() as conn:
            return self._load(conn, conn.execute(stmt).all())

    def has_active_coupon_use(self, user_id: str, coupon_id: str) -> bool:
        stmt = select(
            exists().where(
                orders.c.user_id == user_id,
                orders.c.coupon_id == coupon_id,
                orders.c.status != OrderStatus.CANCELLED.value,
            )
        )
        try:
            with self._engine.connect() as conn:
                return bool(conn.execute(stmt).scalar())
        except SQLAlchemyError as exc:
            raise PersistenceError("Could not check coupon usage") from exc

    def mark_stock_reserved(self, order_id: str) -> bool:
        stmt = (
            update(orders)
            .where(orders.c.id == order_id, orders.c.status == OrderStatus.PENDING.value)
            .values(stock_reserved=True)
        )
        try:
            with self._engine.begin() as conn:
                return conn.execute(stmt).rowcount == 1
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not mark stock reserved for {order_id}") from exc

    def record_payment_session(
        self, order_id: str, session_id: str, redirect_url: str
    ) -> bool:
        stmt = (
            update(orders)
            .where(orders.c.id == order_id, orders.c.status == OrderStatus.PENDING.value)
            .values(payment_session_id=session_id, redirect_url=redirect_url)
        )
        try:
            with self._engine.begin() as conn:
                return conn.execute(stmt).rowcount == 1
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not record payment session for {order_id}") from exc

    def cancel_pending(self, order_id: str) -> bool | None:
        # UPDATE ... RETURNING reads the flag in the same statement that
        # cancels, so a concurrent mark_stock_reserved is either seen or fails.
        stmt = (
            update(orders)
            .where(orders.c.id == order_id, orders.c.status == OrderStatus.PENDING.value)
            .values(status=OrderStatus.CANCELLED.value)
            .returning(orders.c.stock_reserved)
        )
        try:
            with self._engine.begin() as conn:
                row = conn.execute(stmt).first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not cancel order {order_id}") from exc
        return None if row is None else bool(row.stock_reserved)

    def transition_status(
        self, order_id: str, expected: OrderStatus, new: OrderStatus
    ) -> bool:
        stmt = (
            update(orders)
            .where(orders.c.id == order_id, orders.c.status == expected.value)
            .values(status=new.value)
        )
        try:
            with self._engine.begin() as conn:
                return conn.execute(stmt).rowcount == 1
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not update order {order_id}") from exc

    # --- Error translation ---------------------------------------------------

    @staticmethod
    def _translate_integrity_error(exc: IntegrityError) -> DomainException:
        """Map a unique-index violation on the order header to a domain error.

        PostgreSQL names the violated index; SQLite lists its columns.
        """
        message = str(exc.orig)
        if COUPON_USE_INDEX in message or "orders.user_id, orders.coupon_id" in message:
            return CouponReusedError()
        if IDEMPOTENCY_INDEX in message or "orders.user_id, orders.idempotency_key" in message:
            return ValidationError("Duplicate checkout request")
        return PersistenceError(f"Could not create order: {message}")

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _header_row(order: Order) -> dict:
        b = order.breakdown
        return {
            "id": order.id,
            "user_id": order.user_id,
            "subtotal": str(b.subtotal.amount),
            "discount_amount": str(b.discount.amount),
            "tax_amount": str(b.tax.amount),
            "shipping_amount": str(b.shipping.amount),
            "total": str(b.total.amount),
            "status": order.status.value,
            "coupon_id": order.coupon_id,
            "created_at": to_db_time(order.created_at),
            "payment_session_id": order.payment_session_id,
            "redirect_url": order.redirect_url,
            "idempotency_key": order.idempotency_key,
            "stock_reserved": order.stock_reserved,
        }

    @staticmethod
    def _item_row(order_id: str, item: OrderLineItem) -> dict:
        return {
            "order_id": order_id,
            "product_id": item.product_id,
            "product_name": item.product_name,
            "quantity": item.quantity.value,
            "price_at_time": str(item.price_at_time.amount),
            "color": item.color,
            "size": item.size,
        }

    def _load(self, conn: Connection, rows: list[Row]) -> list[Order]:
        if not rows:
            return []
        ids = [row.id for row in rows]
        item_rows = conn.execute(
            select(order_items)
            .where(order_items.c.order_id.in_(ids))
            .order_by(order_items.c.id)
        ).all()
        items_by_order: dict[str, list[OrderLineItem]] = {}
        for raw in item_rows:
            items_by_order.setdefault(raw.order_id, []).append(
                OrderLineItem(
                    product_id=raw.product_id,
                    product_name=raw.product_name,
                    quantity=Quantity(raw.quantity),
                    price_at_time=Money(Decimal(raw.price_at_time)),
                    color=raw.color,
                    size=raw.size,
                )
            )
        return [self._to_domain(row, items_by_order.get(row.id, [])) for row in rows]

    @staticmethod
    def _to_domain(row: Row, items: list[OrderLineItem]) -> Order:
        return Order(
            id=row.id,
            user_id=row.user_id,
            breakdown=PriceBreakdown(
                subtotal=Money(Decimal(row.subtotal)),
                discount=Money(Decimal(row.discount_amount)),
                tax=Money(Decimal(row.tax_amount)),
                shipping=Money(Decimal(row.shipping_amount)),
                total=Money(Decimal(row.total)),
            ),
            items=items,
            status=OrderStatus(row.status),
            coupon_id=row.coupon_id,
            created_at=from_db_time(row.created_at),
            payment_session_id=row.payment_session_id,
            redirect_url=row.redirect_url,
            idempotency_key=row.idempotency_key,
            stock_reserved=bool(row.stock_reserved),
        )
