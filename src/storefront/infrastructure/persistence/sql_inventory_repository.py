"""SQL-backed implementation of InventoryRepository.

Stock lives on the ``products`` row.  Each method is one UPDATE statement,
which the database applies atomically per row.
"""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from storefront.domain.exceptions import EntityNotFoundError, PersistenceError
from storefront.domain.repository.inventory_repository import InventoryRepository
from storefront.infrastructure.persistence.schema import products


class SqlInventoryRepository(InventoryRepository):

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def try_decrement(self, product_id: str, quantity: int) -> bool:
        # UPDATE products SET stock = stock - :q WHERE id = :id AND stock >= :q
        stmt = (
            update(products)
            .where(products.c.id == product_id, products.c.stock >= quantity)
            .values(stock=products.c.stock - quantity)
        )
        try:
            with self._engine.begin() as conn:
                return conn.execute(stmt).rowcount == 1
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not reserve stock for {product_id}") from exc

    def increment(self, product_id: str, quantity: int) -> None:
        stmt = (
            update(products)
            .where(products.c.id == product_id)
            .values(stock=products.c.stock + quantity)
        )
        try:
            with self._engine.begin() as conn:
                updated = conn.execute(stmt).rowcount
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not release stock for {product_id}") from exc
        if updated == 0:
            raise EntityNotFoundError(f"Product with ID '{product_id}' not found")
