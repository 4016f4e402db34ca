"""Application service: Set Stock use case."""

from __future__ import annotations

from dataclasses import replace

from storefront.domain.exceptions import EntityNotFoundError
from storefront.domain.repository.product_repository import ProductRepository


class SetStockHandler:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    def handle(self, product_id: str, stock: int) -> None:
        """Overwrite the stock level of a product."""
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product with ID '{product_id}' not found")
        self._product_repo.save(replace(product, stock=stock))
