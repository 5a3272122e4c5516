"""Domain types and ports for payments.

This module holds the payment ledger record, the transient result of a
gateway call, the enums shared with the orders domain and the port that
external payment gateways implement.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Protocol


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentMethod(str, Enum):
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    PAYPAL = "PAYPAL"
    BANK_TRANSFER = "BANK_TRANSFER"
    CASH_ON_DELIVERY = "CASH_ON_DELIVERY"


class PaymentStatus(str, Enum):
    """Lifecycle of a ledger row.

    A charge attempt goes PENDING -> PROCESSING -> SUCCESS | FAILED. Refunds
    are separate rows created directly as REFUNDED.
    """

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of a single gateway call.

    Attributes:
        success: Whether the gateway approved the operation.
        transaction_id: Gateway reference, present only when ``success``.
        message: Human-readable outcome.
        processed_at: When the gateway answered.
    """

    success: bool
    transaction_id: Optional[str]
    message: str
    processed_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class Payment:
    """Append-only ledger record.

    Attributes:
        id: Generated ledger id (``PAY-...`` or ``REFUND-...``).
        order_id: Order the payment belongs to.
        amount: Charged amount; negative for refunds.
        method: Payment method used.
        status: Current PaymentStatus.
        transaction_id: Gateway reference once known.
        processed_at: When the gateway answered, if it did.
        created_at: When the row was first written.
    """

    id: str
    order_id: str
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    transaction_id: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)


class PaymentNotFound(ValueError):
    """Raised when a refund targets an order without a refundable payment."""

    code = "PAYMENT_NOT_FOUND"

    def __init__(self, order_id: str, detail: str | None = None):
        super().__init__(self.code)
        self.order_id = order_id
        self.detail = detail or f"No successful payment found for order {order_id}"


# ---- Ports (DIP) ----
class PaymentGatewayPort(Protocol):
    """Port describing the external payment system.

    Implementations are latency- and failure-prone: callers must expect
    both slow answers and exceptions.
    """

    def charge(self, order_id: str, amount: Decimal, method: PaymentMethod) -> PaymentResult:
        raise NotImplementedError()

    def refund(self, transaction_id: str, amount: Decimal) -> PaymentResult:
        raise NotImplementedError()

    def status_of(self, transaction_id: str) -> str:
        raise NotImplementedError()
