"""Pydantic request/response schemas for the HTTP boundary.

Unknown fields (a client-side ``price`` or ``total``, for instance) are
ignored: the server prices every order from the catalog.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.application.dto import CartItemSpec, OrderDTO


class CheckoutItemSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    quantity: int
    color: Optional[str] = None
    size: Optional[str] = None

    def to_spec(self) -> CartItemSpec:
        return CartItemSpec(
            product_id=self.id,
            quantity=self.quantity,
            color=self.color,
            size=self.size,
        )


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: list[CheckoutItemSchema]
    coupon_code: Optional[str] = None


class CheckoutResponse(BaseModel):
    url: str
    sessionId: str
    order_id: str


class ErrorResponse(BaseModel):
    error: str


class OrderLineItemSchema(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    price_at_time: str
    line_total: str
    color: Optional[str] = None
    size: Optional[str] = None


class OrderSchema(BaseModel):
    id: str
    status: str
    items: list[OrderLineItemSchema]
    subtotal: str
    discount: str
    tax: str
    shipping: str
    total: str
    coupon_id: Optional[str] = None
    created_at: str

    @staticmethod
    def from_dto(dto: OrderDTO) -> OrderSchema:
        return OrderSchema(
            id=dto.id,
            status=dto.status,
            items=[OrderLineItemSchema(**asdict(item)) for item in dto.items],
            subtotal=dto.subtotal,
            discount=dto.discount,
            tax=dto.tax,
            shipping=dto.shipping,
            total=dto.total,
            coupon_id=dto.coupon_id,
            created_at=dto.created_at,
        )


class OrderListResponse(BaseModel):
    orders: list[OrderSchema]
    count: int
