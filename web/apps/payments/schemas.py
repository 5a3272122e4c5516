"""Pydantic schemas for the payments API."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .domain import Payment, PaymentMethod, PaymentResult, PaymentStatus


class RefundDTO(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    reason: str = Field(default="", max_length=500)


class PaymentReadDTO(BaseModel):
    id: str
    order_id: str
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    transaction_id: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, p: Payment) -> "PaymentReadDTO":
        return cls(
            id=p.id,
            order_id=p.order_id,
            amount=p.amount,
            method=p.method,
            status=p.status,
            transaction_id=p.transaction_id,
            processed_at=p.processed_at,
            created_at=p.created_at,
        )


class PaymentResultDTO(BaseModel):
    success: bool
    transaction_id: Optional[str] = None
    message: str
    processed_at: datetime

    @classmethod
    def from_domain(cls, r: PaymentResult) -> "PaymentResultDTO":
        return cls(
            success=r.success,
            transaction_id=r.transaction_id,
            message=r.message,
            processed_at=r.processed_at,
        )
