"""Pydantic schemas for orders.

This module exposes lightweight request/validation schemas used by the
orders API and the read DTOs used to serialize ``Order`` snapshots.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from apps.payments.domain import PaymentMethod

from .domain import Order, OrderItem, OrderStatus


class OrderItemIn(BaseModel):
    """Input schema for a single order line item.

    Attributes:
        product_id: Product identifier.
        product_name: Display name of the product.
        quantity: Positive integer indicating units requested.
        unit_price: Non-negative price per unit, at most two decimals.
    """

    product_id: str = Field(min_length=1, max_length=64)
    product_name: str = Field(min_length=1, max_length=200)
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)

    def to_domain(self) -> OrderItem:
        return OrderItem(
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=self.quantity,
            unit_price=self.unit_price,
        )


class CreateOrderDTO(BaseModel):
    """Schema for creating an order.

    Attributes:
        user_id: Owner of the order.
        items: Non-empty list of `OrderItemIn` items.
        shipping_address: Free-form delivery address.
        payment_method: One of ``PaymentMethod``. Normalized to uppercase.
    """

    user_id: str = Field(min_length=1, max_length=64)
    items: list[OrderItemIn] = Field(min_length=1)
    shipping_address: str = Field(min_length=1, max_length=500)
    payment_method: PaymentMethod

    @field_validator("payment_method", mode="before")
    @classmethod
    def normalize_method(cls, v):
        """Accept lowercase method names from clients."""
        return v.upper() if isinstance(v, str) else v


class UpdateStatusDTO(BaseModel):
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return v.upper() if isinstance(v, str) else v


class OrderItemOut(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class OrderReadDTO(BaseModel):
    """Read model returned by the orders API."""

    id: str
    user_id: str
    items: list[OrderItemOut]
    total_amount: Decimal
    status: OrderStatus
    shipping_address: str
    created_at: datetime

    @classmethod
    def from_domain(cls, order: Order) -> "OrderReadDTO":
        return cls(
            id=order.id,
            user_id=order.user_id,
            items=[
                OrderItemOut(
                    product_id=i.product_id,
                    product_name=i.product_name,
                    quantity=i.quantity,
                    unit_price=i.unit_price,
                    subtotal=i.subtotal,
                )
                for i in order.items
            ],
            total_amount=order.total_amount,
            status=order.status,
            shipping_address=order.shipping_address,
            created_at=order.created_at,
        )
