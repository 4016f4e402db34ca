"""Application services: coupon administration."""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime
from decimal import Decimal, InvalidOperation

from storefront.domain.exceptions import EntityNotFoundError, ValidationError
from storefront.domain.model.coupon import Coupon, DiscountKind
from storefront.domain.repository.coupon_repository import CouponRepository


class AddCouponHandler:

    def __init__(self, coupon_repo: CouponRepository) -> None:
        self._coupon_repo = coupon_repo

    def handle(
        self,
        code: str,
        kind: str,
        value: str,
        expires_at: datetime | None = None,
    ) -> Coupon:
        if not code or not code.strip():
            raise ValidationError("Coupon code is required")
        if self._coupon_repo.get_by_code(code) is not None:
            raise ValidationError(f"Coupon '{code}' already exists")
        try:
            discount_kind = DiscountKind(kind)
        except ValueError as exc:
            raise ValidationError(f"Unknown discount kind: {kind!r}") from exc
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValidationError(f"Invalid coupon value: {value!r}") from exc

        coupon = Coupon(
            id=str(uuid.uuid4()),
            code=code,
            discount_kind=discount_kind,
            value=amount,
            expires_at=expires_at,
        )
        coupon.ensure_well_formed()
        self._coupon_repo.save(coupon)
        return coupon


class DeactivateCouponHandler:

    def __init__(self, coupon_repo: CouponRepository) -> None:
        self._coupon_repo = coupon_repo

    def handle(self, code: str) -> None:
        coupon = self._coupon_repo.get_by_code(code)
        if coupon is None:
            raise EntityNotFoundError(f"Coupon '{code}' not found")
        self._coupon_repo.save(replace(coupon, is_active=False))
