"""SQL-backed implementation of ProductRepository."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import SQLAlchemyError

from storefront.domain.exceptions import PersistenceError
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.product_repository import ProductRepository
from storefront.infrastructure.persistence.schema import products


class SqlProductRepository(ProductRepository):

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # --- ProductRepository interface ------------------------------------------

    def get_by_id(self, product_id: str) -> Product | None:
        with self._engine.connect() as conn:
            row = conn.execute(select(products).where(products.c.id == product_id)).first()
        return self._to_domain(row) if row is not None else None

    def get_many(self, product_ids: Iterable[str]) -> list[Product]:
        ids = list(product_ids)
        if not ids:
            return []
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(select(products).where(products.c.id.in_(ids))).all()
        except SQLAlchemyError as exc:
            raise PersistenceError("Could not read the catalog") from exc
        return [self._to_domain(row) for row in rows]

    def list_all(self) -> list[Product]:
        with self._engine.connect() as conn:
            rows = conn.execute(select(products).order_by(products.c.name)).all()
        return [self._to_domain(row) for row in rows]

    def save(self, product: Product) -> None:
        values = self._to_row(product)
        with self._engine.begin() as conn:
            result = conn.execute(
                update(products).where(products.c.id == product.id).values(**values)
            )
            if result.rowcount == 0:
                conn.execute(insert(products).values(id=product.id, **values))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_row(product: Product) -> dict:
        return {
            "name": product.name,
            "price": str(product.price.amount),
            "stock": product.stock,
            "image_url": product.image_url,
        }

    @staticmethod
    def _to_domain(row: Row) -> Product:
        return Product(
            id=row.id,
            name=row.name,
            price=Money(Decimal(row.price)),
            stock=row.stock,
            image_url=row.image_url or "",
        )
