"""Domain models, ports and service for orders.

This module contains the order dataclasses, the typed domain errors, the
inventory port and the domain service that drives an order through the
creation saga: check stock, reserve stock, persist the order as PENDING,
charge the payment and compensate by releasing stock when payment fails.
"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from datetime import datetime
from enum import Enum
from typing import List, Optional, Protocol

from apps.payments.domain import PaymentMethod, PaymentResult, utcnow

from .repository import OrderRepository

logger = logging.getLogger("orders")

CENTS = Decimal("0.01")


# ---- Enums ----
class OrderStatus(str, Enum):
    """Enumeration of the possible order statuses.

    The saga only produces PENDING, PAID and FAILED. SHIPPED and DELIVERED
    are set from outside; CANCELLED comes from an explicit cancel.
    """

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PAYMENT_PROCESSING = "PAYMENT_PROCESSING"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


NON_CANCELLABLE = frozenset(
    {OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.FAILED}
)


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class OrderItem:
    """A single line item in an order.

    Attributes:
        product_id: Identifier of the product.
        product_name: Display name, used in user-facing errors.
        quantity: Number of units requested (>= 1).
        unit_price: Price per unit as an exact decimal (>= 0).
    """

    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Order:
    """Immutable snapshot of an order.

    Status changes produce a new snapshot stored in the repository, so a
    snapshot handed to a caller never changes underneath it.
    """

    id: str
    user_id: str
    items: tuple[OrderItem, ...]
    total_amount: Decimal
    status: OrderStatus
    shipping_address: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class InventoryCheckResult:
    product_id: str
    available: bool
    available_quantity: int
    message: str = ""


# ---- Errors ----
class OrderError(ValueError):
    """Base for order failures.

    ``str(error)`` is a stable upper-case code; ``detail`` is the
    human-readable reason shown to clients.
    """

    code = "ORDER_ERROR"

    def __init__(self, detail: str = ""):
        super().__init__(self.code)
        self.detail = detail or self.code


class EmptyOrder(OrderError):
    code = "EMPTY_ORDER"


class InsufficientInventory(OrderError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_name: str):
        super().__init__(f"Insufficient inventory: {product_name}")
        self.product_name = product_name


class InventoryCheckFailed(OrderError):
    code = "INVENTORY_UNAVAILABLE"

    def __init__(self, product_name: str, reason: str):
        super().__init__(f"Inventory check failed for {product_name}: {reason}")
        self.product_name = product_name


class ReservationFailed(OrderError):
    code = "RESERVATION_FAILED"

    def __init__(self, product_name: str):
        super().__init__(f"Inventory reservation failed: {product_name}")
        self.product_name = product_name


class PaymentFailed(OrderError):
    code = "PAYMENT_FAILED"

    def __init__(self, reason: str, order_id: Optional[str] = None):
        super().__init__(f"Payment failed: {reason}")
        self.reason = reason
        self.order_id = order_id


# ---- Ports (DIP) ----
class InventoryPort(Protocol):
    """Port describing the external inventory system.

    Any method may raise or stall; callers treat an exception as a failed
    call, never as "unavailable" data.
    """

    def check_availability(self, product_id: str, quantity: int) -> InventoryCheckResult:
        raise NotImplementedError()

    def reserve(self, product_id: str, quantity: int) -> bool:
        raise NotImplementedError()

    def release(self, product_id: str, quantity: int) -> bool:
        raise NotImplementedError()


class PaymentsPort(Protocol):
    """What the saga needs from the payment layer (``PaymentOrchestrator``)."""

    def charge(self, order_id: str, amount: Decimal, method: PaymentMethod) -> PaymentResult:
        raise NotImplementedError()


# ---- Domain service ----
class OrderService:
    """Domain service that owns orders and runs the creation saga.

    The service coordinates the inventory port and the payments port. It
    guarantees that no reservation is left behind when an order fails
    after stock was reserved: every reserved item is released (best effort)
    before the failure is reported.
    """

    def __init__(
        self,
        inventory: InventoryPort,
        payments: PaymentsPort,
        repository: Optional[OrderRepository] = None,
    ):
        """Initialize the service with required dependencies.

        Args:
            inventory: InventoryPort used to check, reserve and release stock.
            payments: PaymentsPort used to charge customers.
            repository: Order store; a fresh in-memory one by default.
        """
        self.inventory = inventory
        self.payments = payments
        self.orders = repository or OrderRepository()

    def create_order(
        self,
        user_id: str,
        items: List[OrderItem],
        shipping_address: str,
        payment_method: PaymentMethod,
    ) -> Order:
        """Run the order-creation saga.

        Steps:
            1. Check availability of every item. Nothing is reserved or
               stored if any item is unavailable.
            2. Reserve every item in list order. If one reservation fails,
               the items reserved before it are released again.
            3. Compute the exact decimal total.
            4. Store the order as PENDING, before payment is attempted.
            5. Charge the payment. On success the order becomes PAID. On
               failure it becomes FAILED and every item is released.

        Returns:
            The PAID order snapshot.

        Raises:
            EmptyOrder: If ``items`` is empty.
            InsufficientInventory: If an item is reported unavailable.
            InventoryCheckFailed: If an availability check raised.
            ReservationFailed: If a reservation returned False or raised.
            PaymentFailed: If the charge was declined or raised.
        """
        if not items:
            raise EmptyOrder("Order has no items")

        order_id = f"ORD-{uuid.uuid4()}"
        logger.info("creating order", extra={"order_id": order_id, "user_id": user_id, "items": len(items)})

        # 1) Check stock
        for item in items:
            try:
                check = self.inventory.check_availability(item.product_id, item.quantity)
            except Exception as e:
                logger.error("inventory check raised", extra={"order_id": order_id, "product_id": item.product_id})
                raise InventoryCheckFailed(item.product_name, str(e)) from e
            if not check.available:
                logger.error("insufficient inventory", extra={"order_id": order_id, "product_id": item.product_id})
                raise InsufficientInventory(item.product_name)

        # 2) Reserve stock
        reserved: list[OrderItem] = []
        for item in items:
            try:
                ok = self.inventory.reserve(item.product_id, item.quantity)
            except Exception:
                logger.exception("inventory reservation raised", extra={"order_id": order_id, "product_id": item.product_id})
                ok = False
            if not ok:
                logger.error("inventory reservation failed", extra={"order_id": order_id, "product_id": item.product_id})
                self._release_all(order_id, reserved)
                raise ReservationFailed(item.product_name)
            reserved.append(item)

        # 3) Total
        total = sum((item.subtotal for item in items), Decimal("0")).quantize(CENTS)

        # The order lock is held from the PENDING write through the final
        # transition and compensation; cancel_order waits for it.
        with self.orders.lock(order_id):
            # 4) Persist as PENDING
            order = self.orders.put(
                Order(
                    id=order_id,
                    user_id=user_id,
                    items=tuple(items),
                    total_amount=total,
                    status=OrderStatus.PENDING,
                    shipping_address=shipping_address,
                )
            )

            # 5) Charge payment
            try:
                result = self.payments.charge(order_id, total, payment_method)
            except Exception as e:
                logger.exception("payment processing raised", extra={"order_id": order_id})
                reason = str(e) or e.__class__.__name__
            else:
                if result.success:
                    paid = self.orders.update_status(order_id, OrderStatus.PAID)
                    logger.info("order paid", extra={"order_id": order_id, "transaction_id": result.transaction_id})
                    return paid
                reason = result.message

            self.orders.update_status(order_id, OrderStatus.FAILED)
            logger.error("payment failed, compensating", extra={"order_id": order_id, "reason": reason})
            self._release_all(order_id, order.items)
        raise PaymentFailed(reason, order_id=order_id)

    def get_order(self, order_id: str) -> Optional[Order]:
        return self.orders.get(order_id)

    def get_all_orders(self) -> list[Order]:
        return self.orders.all()

    def get_user_orders(self, user_id: str) -> list[Order]:
        return self.orders.list_by_user(user_id)

    def update_order_status(self, order_id: str, status: OrderStatus) -> bool:
        """Overwrite the status of an order without transition checks.

        Returns:
            bool: True if the order existed.
        """
        logger.info("updating order status", extra={"order_id": order_id, "status": status.value})
        return self.orders.update_status(order_id, status) is not None

    def cancel_order(self, order_id: str) -> bool:
        """Cancel an order and release its stock.

        Returns:
            bool: False if the order does not exist or is already SHIPPED,
            DELIVERED, CANCELLED or FAILED; True once it is CANCELLED.
        """
        logger.info("cancelling order", extra={"order_id": order_id})
        with self.orders.lock(order_id):
            order = self.orders.get(order_id)
            if order is None:
                return False
            if order.status in NON_CANCELLABLE:
                logger.warning("order cannot be cancelled", extra={"order_id": order_id, "status": order.status.value})
                return False
            self._release_all(order_id, order.items)
            self.orders.update_status(order_id, OrderStatus.CANCELLED)
            return True

    def _release_all(self, order_id: str, items) -> None:
        """Release every item once. Failures are logged and swallowed."""
        for item in items:
            try:
                released = self.inventory.release(item.product_id, item.quantity)
            except Exception:
                logger.exception("inventory release raised", extra={"order_id": order_id, "product_id": item.product_id})
                continue
            if not released:
                logger.error("inventory release failed", extra={"order_id": order_id, "product_id": item.product_id})
