"""Domain service: Catalog Reader.

Resolves the authoritative price, stock and name for every product in a
cart.  A single unknown id fails the whole lookup; there are no partial
carts.
"""

from __future__ import annotations

from collections.abc import Iterable

from storefront.domain.exceptions import ProductNotFoundError
from storefront.domain.model.product import Product
from storefront.domain.repository.product_repository import ProductRepository


class CatalogReader:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    def resolve(self, product_ids: Iterable[str]) -> dict[str, Product]:
        wanted = set(product_ids)
        found = {p.id: p for p in self._product_repo.get_many(wanted)}
        for product_id in sorted(wanted):
            if product_id not in found:
                raise ProductNotFoundError(product_id)
        return found
