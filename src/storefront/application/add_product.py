"""Application service: Add Product use case (catalog seeding)."""

from __future__ import annotations

import uuid

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.product_repository import ProductRepository


class AddProductHandler:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    def handle(
        self,
        name: str,
        price: str,
        stock: int,
        product_id: str | None = None,
        image_url: str = "",
    ) -> Product:
        """Add a new product to the catalog."""
        if not name or not name.strip():
            raise ValidationError("Product name is required")

        product_id = product_id or str(uuid.uuid4())
        if self._product_repo.get_by_id(product_id) is not None:
            raise ValidationError(f"Product '{product_id}' already exists")

        product = Product(
            id=product_id,
            name=name.strip(),
            price=Money.of(price),
            stock=stock,
            image_url=image_url,
        )
        self._product_repo.save(product)
        return product
