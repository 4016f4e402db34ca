"""Relational schema shared by the SQL repositories.

Amounts are stored as decimal strings so no backend rounds them through a
float.  Timestamps are stored as naive UTC.

Two partial unique indexes carry the concurrency guarantees of checkout:

* ``uq_orders_user_coupon_active``: a user can hold at most one
  non-cancelled order per coupon.
* ``uq_orders_user_idempotency_key``: one live order per request key.

``orders.stock_reserved`` records that checkout took the stock for an order;
cancellation gives stock back only for orders that carry it.

``products.stock`` is guarded by a CHECK so it can never go negative even
if a caller bypasses the conditional decrement.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    and_,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("price", String(32), nullable=False),
    Column("stock", Integer, nullable=False),
    Column("image_url", Text, nullable=False, default=""),
    CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
)

coupons = Table(
    "coupons",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("code", String(64), nullable=False, unique=True),
    Column("discount_type", String(16), nullable=False),
    Column("value", String(32), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("expires_at", DateTime, nullable=True),
    Column("created_at", DateTime, nullable=False),
)

orders = Table(
    "orders",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("user_id", String(64), nullable=False, index=True),
    Column("subtotal", String(32), nullable=False),
    Column("discount_amount", String(32), nullable=False),
    Column("tax_amount", String(32), nullable=False),
    Column("shipping_amount", String(32), nullable=False),
    Column("total", String(32), nullable=False),
    Column("status", String(16), nullable=False),
    Column("coupon_id", String(64), ForeignKey("coupons.id"), nullable=True),
    Column("created_at", DateTime, nullable=False),
    Column("payment_session_id", String(255), nullable=True),
    Column("redirect_url", Text, nullable=True),
    Column("idempotency_key", String(255), nullable=True),
    Column("stock_reserved", Boolean, nullable=False, default=False),
)

COUPON_USE_INDEX = "uq_orders_user_coupon_active"
IDEMPOTENCY_INDEX = "uq_orders_user_idempotency_key"

_live_coupon = and_(orders.c.status != "cancelled", orders.c.coupon_id.isnot(None))
Index(
    COUPON_USE_INDEX,
    orders.c.user_id,
    orders.c.coupon_id,
    unique=True,
    sqlite_where=_live_coupon,
    postgresql_where=_live_coupon,
)

_live_key = and_(orders.c.status != "cancelled", orders.c.idempotency_key.isnot(None))
Index(
    IDEMPOTENCY_INDEX,
    orders.c.user_id,
    orders.c.idempotency_key,
    unique=True,
    sqlite_where=_live_key,
    postgresql_where=_live_key,
)

order_items = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", String(64), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("product_id", String(64), nullable=False),
    Column("product_name", String(255), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("price_at_time", String(32), nullable=False),
    Column("color", String(64), nullable=True),
    Column("size", String(64), nullable=True),
    CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
)


def make_engine(url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})
    return create_engine(url, pool_pre_ping=True)


def create_schema(engine: Engine) -> None:
    metadata.create_all(engine)


# --- Column helpers -----------------------------------------------------------


def to_db_time(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def from_db_time(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
