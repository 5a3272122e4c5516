"""In-memory payment ledger.

The ledger is an explicitly owned store keyed by generated payment id with
a secondary index by order id. Rows are immutable dataclasses; updating a
row replaces it under the ledger lock. ``lock(order_id)`` serializes
read-check-append sequences on the rows of one order (refunds).
"""

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import List, Optional

from .domain import Payment


class PaymentLedger:
    """Thread-safe, process-lifetime store for ``Payment`` rows."""

    def __init__(self):
        self._lock = threading.Lock()
        self._rows: dict[str, Payment] = {}
        self._by_order: dict[str, List[str]] = defaultdict(list)
        self._order_locks: dict[str, threading.RLock] = {}

    @contextmanager
    def lock(self, order_id: str):
        with self._lock:
            lk = self._order_locks.setdefault(order_id, threading.RLock())
        with lk:
            yield

    def put(self, payment: Payment) -> Payment:
        """Insert or replace a row and return it."""
        with self._lock:
            if payment.id not in self._rows:
                self._by_order[payment.order_id].append(payment.id)
            self._rows[payment.id] = payment
            return payment

    def get(self, payment_id: str) -> Optional[Payment]:
        with self._lock:
            return self._rows.get(payment_id)

    def all(self) -> List[Payment]:
        with self._lock:
            return list(self._rows.values())

    def list_by_order(self, order_id: str) -> List[Payment]:
        """Rows for ``order_id`` in insertion order."""
        with self._lock:
            return [self._rows[pid] for pid in self._by_order.get(order_id, [])]
