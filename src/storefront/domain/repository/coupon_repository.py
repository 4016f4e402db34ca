"""Abstract repository for coupons."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.coupon import Coupon


class CouponRepository(ABC):

    @abstractmethod
    def get_by_code(self, code: str) -> Coupon | None:
        """Exact, case-sensitive lookup by code."""

    @abstractmethod
    def list_all(self) -> list[Coupon]:
        """Return every coupon, newest first."""

    @abstractmethod
    def save(self, coupon: Coupon) -> None:
        """Persist a new or updated coupon."""
