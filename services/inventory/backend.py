"""Randomized in-memory inventory backend.

This is the default implementation of the inventory contract used for
manual and integration exercising. Outcomes are random with rates taken
from the environment; an injected ``random.Random`` makes them repeatable.
Reservations are tallied per product so releases can be observed.
"""

import os
import random
import threading
from dataclasses import dataclass
from typing import Optional

UNAVAILABLE_RATE = float(os.getenv("INVENTORY_UNAVAILABLE_RATE", "0.10"))
RESERVE_FAILURE_RATE = float(os.getenv("INVENTORY_RESERVE_FAILURE_RATE", "0.05"))


@dataclass(frozen=True)
class CheckResult:
    product_id: str
    available: bool
    available_quantity: int
    message: str


class InventoryBackend:
    """Simulated stock system.

    Attributes:
        unavailable_rate: Chance a check reports the product short.
        reserve_failure_rate: Chance a reservation is refused.
    """

    def __init__(
        self,
        unavailable_rate: float = UNAVAILABLE_RATE,
        reserve_failure_rate: float = RESERVE_FAILURE_RATE,
        rng: Optional[random.Random] = None,
    ):
        self.unavailable_rate = unavailable_rate
        self.reserve_failure_rate = reserve_failure_rate
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._reserved: dict[str, int] = {}

    def check(self, product_id: str, quantity: int) -> CheckResult:
        with self._lock:
            in_stock = self._rng.random() >= self.unavailable_rate
            if in_stock:
                available_qty = self._rng.randint(100, 999)
            else:
                available_qty = self._rng.randint(0, max(quantity - 1, 0))
        ok = in_stock and available_qty >= quantity
        if ok:
            message = "Inventory available"
        else:
            message = f"Insufficient inventory (requested: {quantity}, available: {available_qty})"
        return CheckResult(product_id, ok, available_qty, message)

    def reserve(self, product_id: str, quantity: int) -> bool:
        with self._lock:
            if self._rng.random() < self.reserve_failure_rate:
                return False
            self._reserved[product_id] = self._reserved.get(product_id, 0) + quantity
            return True

    def release(self, product_id: str, quantity: int) -> bool:
        with self._lock:
            self._reserved[product_id] = max(self._reserved.get(product_id, 0) - quantity, 0)
            return True

    def reserved(self, product_id: str) -> int:
        with self._lock:
            return self._reserved.get(product_id, 0)
