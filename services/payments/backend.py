"""Randomized in-memory payment backend.

This is the default implementation of the payment gateway contract. A
charge sleeps a random latency and then succeeds with a configurable
probability; declines carry one of a few realistic reasons. Charges sent
with an idempotency key are processed at most once per key.
"""

import hashlib
import json
import os
import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

FAILURE_RATE = float(os.getenv("PAYMENT_FAILURE_RATE", "0.15"))
REFUND_FAILURE_RATE = float(os.getenv("PAYMENT_REFUND_FAILURE_RATE", "0.05"))
MIN_LATENCY_MS = int(os.getenv("PAYMENT_MIN_LATENCY_MS", "100"))
MAX_LATENCY_MS = int(os.getenv("PAYMENT_MAX_LATENCY_MS", "500"))

DECLINE_REASONS = (
    "Insufficient card balance",
    "Card expired",
    "Payment limit exceeded",
    "Bank system error",
    "Network timeout",
)
STATUSES = ("SUCCESS", "PENDING", "FAILED", "PROCESSING")


class IdempotencyConflict(ValueError):
    """The idempotency key was already used with a different payload."""


def canonical_hash(payload: dict) -> str:
    """Deterministic SHA-256 of a JSON-serializable payload."""
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class GatewayResult:
    success: bool
    transaction_id: Optional[str]
    message: str
    processed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PaymentBackend:
    """Simulated payment processor."""

    def __init__(
        self,
        failure_rate: float = FAILURE_RATE,
        refund_failure_rate: float = REFUND_FAILURE_RATE,
        latency_ms: tuple[int, int] = (MIN_LATENCY_MS, MAX_LATENCY_MS),
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.failure_rate = failure_rate
        self.refund_failure_rate = refund_failure_rate
        self.latency_ms = latency_ms
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._lock = threading.Lock()
        self._transactions: dict[str, dict] = {}
        self._idempotency: dict[str, tuple[str, GatewayResult]] = {}

    def charge(self, order_id: str, amount: Decimal, method: str, idempotency_key: Optional[str] = None) -> GatewayResult:
        """Charge once per idempotency key.

        Raises:
            IdempotencyConflict: If ``idempotency_key`` was used for a
                different payload.
        """
        payload_hash = canonical_hash({"order_id": order_id, "amount": str(amount), "method": method})
        if idempotency_key:
            with self._lock:
                seen = self._idempotency.get(idempotency_key)
            if seen:
                if seen[0] != payload_hash:
                    raise IdempotencyConflict(idempotency_key)
                return seen[1]

        self._sleep(self._rng.randint(*self.latency_ms) / 1000.0)
        with self._lock:
            if self._rng.random() >= self.failure_rate:
                tx = f"TXN-{uuid.uuid4()}"
                self._transactions[tx] = {"order_id": order_id, "amount": amount, "status": "SUCCESS"}
                result = GatewayResult(True, tx, "Payment processed successfully")
            else:
                result = GatewayResult(False, None, self._rng.choice(DECLINE_REASONS))
            if idempotency_key:
                self._idempotency[idempotency_key] = (payload_hash, result)
        return result

    def refund(self, transaction_id: str, amount: Decimal) -> GatewayResult:
        with self._lock:
            if self._rng.random() < self.refund_failure_rate:
                return GatewayResult(False, None, "Refund failed")
            if transaction_id in self._transactions:
                self._transactions[transaction_id]["status"] = "REFUNDED"
            return GatewayResult(True, f"REFUND-{uuid.uuid4()}", "Refund processed successfully")

    def status_of(self, transaction_id: str) -> str:
        """Status reported by the processor; random for unknown ids."""
        with self._lock:
            known = self._transactions.get(transaction_id)
            if known:
                return known["status"]
            return self._rng.choice(STATUSES)
