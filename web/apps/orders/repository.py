"""Repository layer for orders.

This module contains the in-memory order store owned by ``OrderService``.
It exposes ``get/put/all`` by order id plus a secondary index by owner,
and a per-order lock so concurrent status writers are serialized instead
of racing last-writer-wins.
"""

import threading
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import replace
from typing import List


class OrderRepository:
    """Thread-safe, process-lifetime store for ``Order`` snapshots.

    Stored orders are frozen dataclasses; a status change swaps in a new
    snapshot. Orders are never deleted.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._orders: dict = {}
        self._by_user: dict[str, list[str]] = defaultdict(list)
        self._locks: dict[str, threading.RLock] = {}

    @contextmanager
    def lock(self, order_id: str):
        """Hold the lock of a single order for a read-modify-write."""
        with self._guard:
            lk = self._locks.setdefault(order_id, threading.RLock())
        with lk:
            yield

    def put(self, order):
        """Insert or replace an order and return it."""
        with self.lock(order.id):
            with self._guard:
                if order.id not in self._orders:
                    self._by_user[order.user_id].append(order.id)
                self._orders[order.id] = order
            return order

    def get(self, order_id: str):
        with self._guard:
            return self._orders.get(order_id)

    def all(self) -> List:
        with self._guard:
            return list(self._orders.values())

    def list_by_user(self, user_id: str) -> List:
        with self._guard:
            return [self._orders[oid] for oid in self._by_user.get(user_id, [])]

    def update_status(self, order_id: str, status):
        """Swap in a snapshot with ``status``.

        Returns:
            The updated order, or None if ``order_id`` is unknown.
        """
        with self.lock(order_id):
            current = self.get(order_id)
            if current is None:
                return None
            return self.put(replace(current, status=status))
