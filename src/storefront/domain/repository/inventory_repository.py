"""Abstract repository for stock levels.

Both methods must be single atomic writes in the backing store; callers
never read-modify-write stock themselves.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class InventoryRepository(ABC):

    @abstractmethod
    def try_decrement(self, product_id: str, quantity: int) -> bool:
        """Decrement stock by *quantity* only if stock >= quantity.

        Returns False when the condition did not hold (or the product is
        unknown); nothing is written in that case.
        """

    @abstractmethod
    def increment(self, product_id: str, quantity: int) -> None:
        """Return *quantity* units to stock."""
