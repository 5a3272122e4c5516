"""In-process stub adapters for the inventory and payment ports.

These stubs implement ``InventoryPort`` and ``PaymentGatewayPort`` without
any network calls. They are deterministic and scriptable: by default every
call succeeds, and tests (or local experiments) can queue specific outcomes
per operation. Every call is recorded in ``calls`` so the order of side
effects can be asserted.
"""

import threading
import uuid
from collections import defaultdict, deque
from decimal import Decimal

from apps.payments.domain import PaymentGatewayPort, PaymentMethod, PaymentResult

from .domain import InventoryCheckResult, InventoryPort


class _Script:
    """Per-operation queue of scripted outcomes.

    An outcome is either a value to return or an exception instance to
    raise. When the queue for an operation is empty the default is used.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._queues: dict[str, deque] = defaultdict(deque)
        self.calls: list[tuple] = []

    def push(self, op: str, *outcomes):
        with self._lock:
            self._queues[op].extend(outcomes)

    def next(self, op: str, call: tuple, default):
        with self._lock:
            self.calls.append(call)
            queue = self._queues[op]
            outcome = queue.popleft() if queue else default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def calls_of(self, op: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == op]


class InventoryStub(InventoryPort):
    """Stub implementation of ``InventoryPort``.

    Reports every product available with ``stock`` units, approves every
    reservation and every release unless an outcome was scripted with
    ``script_check``, ``script_reserve`` or ``script_release``.
    """

    def __init__(self, stock: int = 1000):
        self.stock = stock
        self._script = _Script()

    @property
    def calls(self) -> list[tuple]:
        return self._script.calls

    def calls_of(self, op: str) -> list[tuple]:
        return self._script.calls_of(op)

    def script_check(self, *outcomes):
        """Queue check outcomes: bools, ``InventoryCheckResult`` or exceptions."""
        self._script.push("check", *outcomes)

    def script_reserve(self, *outcomes):
        self._script.push("reserve", *outcomes)

    def script_release(self, *outcomes):
        self._script.push("release", *outcomes)

    def check_availability(self, product_id: str, quantity: int) -> InventoryCheckResult:
        outcome = self._script.next("check", ("check", product_id, quantity), True)
        if isinstance(outcome, InventoryCheckResult):
            return outcome
        if outcome:
            return InventoryCheckResult(product_id, True, self.stock, "Inventory available")
        return InventoryCheckResult(
            product_id, False, 0, f"Insufficient inventory (requested: {quantity}, available: 0)"
        )

    def reserve(self, product_id: str, quantity: int) -> bool:
        return bool(self._script.next("reserve", ("reserve", product_id, quantity), True))

    def release(self, product_id: str, quantity: int) -> bool:
        return bool(self._script.next("release", ("release", product_id, quantity), True))


class PaymentsStub(PaymentGatewayPort):
    """Stub implementation of ``PaymentGatewayPort``.

    Approves charges with a positive amount and returns ``TXN-<uuid>`` as
    the transaction id. Non-positive amounts are declined. Scripted
    outcomes (``PaymentResult`` or exceptions) take precedence.
    """

    def __init__(self):
        self._script = _Script()

    @property
    def calls(self) -> list[tuple]:
        return self._script.calls

    def calls_of(self, op: str) -> list[tuple]:
        return self._script.calls_of(op)

    def script_charge(self, *outcomes):
        self._script.push("charge", *outcomes)

    def script_refund(self, *outcomes):
        self._script.push("refund", *outcomes)

    def charge(self, order_id: str, amount: Decimal, method: PaymentMethod) -> PaymentResult:
        if amount > 0:
            default = PaymentResult(True, f"TXN-{uuid.uuid4()}", "Payment approved")
        else:
            default = PaymentResult(False, None, "Invalid amount")
        return self._script.next("charge", ("charge", order_id, amount, method), default)

    def refund(self, transaction_id: str, amount: Decimal) -> PaymentResult:
        default = PaymentResult(True, f"REFUND-{uuid.uuid4()}", "Refund approved")
        return self._script.next("refund", ("refund", transaction_id, amount), default)

    def status_of(self, transaction_id: str) -> str:
        return self._script.next("status", ("status", transaction_id), "SUCCESS")
