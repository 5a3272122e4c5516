"""Payment orchestration behind a circuit breaker.

``PaymentOrchestrator`` is the only layer that applies a bounded-failure
discipline to the payment gateway. Every charge attempt is traced in the
ledger (PENDING, then PROCESSING, then SUCCESS or FAILED), including the
attempts short-circuited by an open breaker. Gateway calls are bounded by
``call_timeout`` so a hung dependency cannot block the caller forever.
"""

import logging
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import replace
from decimal import Decimal
from typing import Optional

from .breaker import CircuitBreaker, CircuitOpenError
from .domain import (
    Payment,
    PaymentGatewayPort,
    PaymentMethod,
    PaymentNotFound,
    PaymentResult,
    PaymentStatus,
    utcnow,
)
from .repository import PaymentLedger

logger = logging.getLogger("payments")

SERVICE_NAME = "payment-service"
FALLBACK_MESSAGE = "Payment service is temporarily unavailable. Please try again later."


class PaymentOrchestrator:
    """Wrap a ``PaymentGatewayPort`` with breaker state and a ledger.

    Args:
        gateway: External payment system.
        ledger: Ledger to record attempts into. A fresh one by default.
        breaker: Breaker keyed by ``SERVICE_NAME``. Default policy if omitted.
        call_timeout: Upper bound, in seconds, on one gateway call. ``None``
            calls the gateway inline with no bound.
    """

    def __init__(
        self,
        gateway: PaymentGatewayPort,
        ledger: Optional[PaymentLedger] = None,
        breaker: Optional[CircuitBreaker] = None,
        call_timeout: Optional[float] = 5.0,
    ):
        self.gateway = gateway
        self.ledger = ledger or PaymentLedger()
        self.breaker = breaker or CircuitBreaker(SERVICE_NAME)
        self.call_timeout = call_timeout
        self._executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="payment-call")

    def charge(self, order_id: str, amount: Decimal, method: PaymentMethod) -> PaymentResult:
        """Charge ``amount`` for ``order_id``.

        Returns the gateway result while the breaker lets the call through.
        When the breaker is open, or the gateway raises or times out, the
        fallback result is returned instead and the ledger row ends FAILED.

        Returns:
            PaymentResult: Never raises for gateway-side problems.
        """
        logger.info("charging order", extra={"order_id": order_id, "amount": str(amount)})
        payment = self.ledger.put(
            Payment(
                id=f"PAY-{uuid.uuid4()}",
                order_id=order_id,
                amount=amount,
                method=method,
                status=PaymentStatus.PENDING,
            )
        )

        try:
            self.breaker.before_call()
        except CircuitOpenError as e:
            logger.error("payment circuit open, using fallback", extra={"order_id": order_id, "reason": str(e)})
            return self._fallback(payment)

        payment = self.ledger.put(replace(payment, status=PaymentStatus.PROCESSING))
        started = time.monotonic()
        try:
            result = self._call(self.gateway.charge, order_id, amount, method)
        except FuturesTimeout as e:
            self.breaker.on_failure(time.monotonic() - started)
            logger.error("payment gateway call timed out", extra={"order_id": order_id, "timeout": self.call_timeout})
            fallback = self._fallback(payment)
            future = getattr(e, "future", None)
            if future is not None:
                # the FAILED row is written before the late outcome can be settled
                future.add_done_callback(lambda f: self._settle_late_charge(payment, f))
            return fallback
        except Exception:
            self.breaker.on_failure(time.monotonic() - started)
            logger.exception("payment gateway call failed", extra={"order_id": order_id})
            return self._fallback(payment)
        else:
            # a decline is a business outcome, not a breaker failure
            self.breaker.on_success(time.monotonic() - started)
        finally:
            self.breaker.on_finish()

        self.ledger.put(
            replace(
                payment,
                status=PaymentStatus.SUCCESS if result.success else PaymentStatus.FAILED,
                transaction_id=result.transaction_id,
                processed_at=result.processed_at,
            )
        )
        if result.success:
            logger.info("payment approved", extra={"order_id": order_id, "transaction_id": result.transaction_id})
        else:
            logger.warning("payment declined", extra={"order_id": order_id, "reason": result.message})
        return result

    def refund_payment(self, order_id: str, amount: Decimal, reason: str) -> PaymentResult:
        """Refund the most recent successful payment of ``order_id``.

        Raises:
            PaymentNotFound: If the order has no successful payment, or has
                already been refunded.
        """
        logger.info("refunding order", extra={"order_id": order_id, "amount": str(amount), "reason": reason})
        with self.ledger.lock(order_id):
            rows = self.ledger.list_by_order(order_id)
            if any(p.status == PaymentStatus.REFUNDED for p in rows):
                raise PaymentNotFound(order_id, f"Order {order_id} has already been refunded")
            paid = [p for p in rows if p.status == PaymentStatus.SUCCESS]
            if not paid:
                raise PaymentNotFound(order_id)
            original = max(paid, key=lambda p: p.created_at)

            result = self.gateway.refund(original.transaction_id, amount)
            if result.success:
                self.ledger.put(
                    Payment(
                        id=f"REFUND-{uuid.uuid4()}",
                        order_id=order_id,
                        amount=-amount,
                        method=original.method,
                        status=PaymentStatus.REFUNDED,
                        transaction_id=result.transaction_id,
                        processed_at=result.processed_at,
                    )
                )
            else:
                logger.warning("refund rejected", extra={"order_id": order_id, "reason": result.message})
        return result

    def check_status(self, transaction_id: str) -> str:
        return self.gateway.status_of(transaction_id)

    def get_payment(self, payment_id: str) -> Optional[Payment]:
        return self.ledger.get(payment_id)

    def get_payments_by_order(self, order_id: str) -> list[Payment]:
        return self.ledger.list_by_order(order_id)

    def get_all_payments(self) -> list[Payment]:
        return self.ledger.all()

    def _call(self, fn, *args):
        """Run ``fn`` bounded by ``call_timeout``.

        Raises:
            concurrent.futures.TimeoutError: With the still-running call
                attached as ``future``.
        """
        if self.call_timeout is None:
            return fn(*args)
        future = self._executor.submit(fn, *args)
        try:
            return future.result(timeout=self.call_timeout)
        except FuturesTimeout as e:
            e.future = future
            raise

    def _settle_late_charge(self, payment: Payment, future: Future):
        """Reconcile a charge that finished after its caller got the fallback.

        The order has already been failed, so a late approval is refunded
        and the row ends CANCELLED. If the refund cannot be made the row is
        set to SUCCESS so the ledger reflects the money actually taken.
        """
        if future.cancelled() or future.exception() is not None:
            return
        late = future.result()
        if not late.success:
            return
        logger.warning(
            "late payment approval after fallback, refunding",
            extra={"order_id": payment.order_id, "transaction_id": late.transaction_id},
        )
        try:
            refund = self.gateway.refund(late.transaction_id, payment.amount)
        except Exception:
            logger.exception("refund of late payment raised", extra={"order_id": payment.order_id})
            refund = None
        with self.ledger.lock(payment.order_id):
            row = self.ledger.get(payment.id) or payment
            if refund is not None and refund.success:
                status = PaymentStatus.CANCELLED
            else:
                logger.error("late payment could not be refunded", extra={"order_id": payment.order_id})
                status = PaymentStatus.SUCCESS
            self.ledger.put(
                replace(row, status=status, transaction_id=late.transaction_id, processed_at=late.processed_at)
            )

    def _fallback(self, payment: Payment) -> PaymentResult:
        now = utcnow()
        self.ledger.put(replace(payment, status=PaymentStatus.FAILED, processed_at=now))
        return PaymentResult(success=False, transaction_id=None, message=FALLBACK_MESSAGE, processed_at=now)
