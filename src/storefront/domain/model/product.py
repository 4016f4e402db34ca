"""Product snapshot.

Products are owned by the catalog, which lives independently of orders:
prices change, stock moves, products come and go.  Checkout only ever sees
a read-only snapshot taken at the moment it resolves the cart.
"""

from __future__ import annotations

from dataclasses import dataclass

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.value_objects import Money


@dataclass(frozen=True)
class Product:
    """A product as the catalog reports it at checkout time."""

    id: str
    name: str
    price: Money
    stock: int
    image_url: str = ""

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValidationError("Product id is required")
        if self.stock < 0:
            raise ValidationError(f"Stock for {self.name} cannot be negative")

    def has_stock_for(self, quantity: int) -> bool:
        return self.stock >= quantity
