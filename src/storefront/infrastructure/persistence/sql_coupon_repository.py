"""SQL-backed implementation of CouponRepository."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import SQLAlchemyError

from storefront.domain.exceptions import CouponInvalidError, PersistenceError
from storefront.domain.model.coupon import Coupon, DiscountKind
from storefront.domain.repository.coupon_repository import CouponRepository
from storefront.infrastructure.persistence.schema import (
    coupons,
    from_db_time,
    to_db_time,
)


class SqlCouponRepository(CouponRepository):

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # --- CouponRepository interface -------------------------------------------

    def get_by_code(self, code: str) -> Coupon | None:
        try:
            with self._engine.connect() as conn:
                # SQLite's = is case-sensitive for TEXT, as is PostgreSQL's.
                row = conn.execute(select(coupons).where(coupons.c.code == code)).first()
        except SQLAlchemyError as exc:
            raise PersistenceError("Could not read coupons") from exc
        return self._to_domain(row) if row is not None else None

    def list_all(self) -> list[Coupon]:
        with self._engine.connect() as conn:
            rows = conn.execute(select(coupons).order_by(coupons.c.created_at.desc())).all()
        return [self._to_domain(row) for row in rows]

    def save(self, coupon: Coupon) -> None:
        values = self._to_row(coupon)
        with self._engine.begin() as conn:
            result = conn.execute(
                update(coupons).where(coupons.c.id == coupon.id).values(**values)
            )
            if result.rowcount == 0:
                conn.execute(insert(coupons).values(id=coupon.id, **values))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_row(coupon: Coupon) -> dict:
        return {
            "code": coupon.code,
            "discount_type": coupon.discount_kind.value,
            "value": str(coupon.value),
            "is_active": coupon.is_active,
            "expires_at": to_db_time(coupon.expires_at),
            "created_at": to_db_time(coupon.created_at),
        }

    @staticmethod
    def _to_domain(row: Row) -> Coupon:
        try:
            kind = DiscountKind(row.discount_type)
            value = Decimal(row.value)
        except (ValueError, InvalidOperation) as exc:
            raise CouponInvalidError(f"Coupon {row.code} is malformed") from exc
        return Coupon(
            id=row.id,
            code=row.code,
            discount_kind=kind,
            value=value,
            is_active=bool(row.is_active),
            expires_at=from_db_time(row.expires_at),
            created_at=from_db_time(row.created_at),
        )
