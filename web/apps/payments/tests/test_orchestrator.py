"""Tests for PaymentOrchestrator: ledger tracing, breaker and fallback."""

import threading
from decimal import Decimal

import pytest

from apps.orders.adapters import PaymentsStub
from apps.payments.breaker import CLOSED, OPEN, CircuitBreaker
from apps.payments.domain import PaymentMethod, PaymentNotFound, PaymentResult, PaymentStatus
from apps.payments.orchestrator import FALLBACK_MESSAGE, PaymentOrchestrator

AMOUNT = Decimal("49.90")


@pytest.fixture
def gateway():
    return PaymentsStub()


@pytest.fixture
def orchestrator(gateway):
    return PaymentOrchestrator(gateway, breaker=CircuitBreaker("payment-service", reset_timeout=60.0))


def test_approved_charge_ends_success_row(orchestrator, gateway):
    gateway.script_charge(PaymentResult(True, "T1", "approved"))
    result = orchestrator.charge("ORD-1", AMOUNT, PaymentMethod.CREDIT_CARD)

    assert result.success is True
    rows = orchestrator.get_payments_by_order("ORD-1")
    assert len(rows) == 1
    assert rows[0].status == PaymentStatus.SUCCESS
    assert rows[0].transaction_id == "T1"
    assert rows[0].amount == AMOUNT
    assert rows[0].processed_at is not None
    assert orchestrator.get_payment(rows[0].id) == rows[0]


def test_row_is_processing_while_gateway_runs(gateway):
    seen = []

    class Peeking:
        def charge(self, order_id, amount, method):
            seen.append(orchestrator.get_payments_by_order(order_id)[0].status)
            return PaymentResult(True, "T2", "ok")

    orchestrator = PaymentOrchestrator(Peeking(), call_timeout=None)
    orchestrator.charge("ORD-1", AMOUNT, PaymentMethod.PAYPAL)
    assert seen == [PaymentStatus.PROCESSING]


def test_decline_is_failed_row_but_not_a_breaker_failure(orchestrator, gateway):
    gateway.script_charge(*[PaymentResult(False, None, "Card expired")] * 6)
    for i in range(6):
        result = orchestrator.charge(f"ORD-{i}", AMOUNT, PaymentMethod.CREDIT_CARD)
        assert result.success is False
        assert result.message == "Card expired"
    assert orchestrator.breaker.state == CLOSED
    assert {p.status for p in orchestrator.get_all_payments()} == {PaymentStatus.FAILED}


def test_gateway_exception_returns_fallback(orchestrator, gateway):
    gateway.script_charge(RuntimeError("gateway crashed"))
    result = orchestrator.charge("ORD-1", AMOUNT, PaymentMethod.CREDIT_CARD)

    assert result.success is False
    assert result.transaction_id is None
    assert result.message == FALLBACK_MESSAGE
    assert orchestrator.get_payments_by_order("ORD-1")[0].status == PaymentStatus.FAILED


def test_repeated_exceptions_open_breaker_and_short_circuit(orchestrator, gateway):
    gateway.script_charge(*[RuntimeError("down")] * 5)
    for i in range(5):
        orchestrator.charge(f"ORD-{i}", AMOUNT, PaymentMethod.CREDIT_CARD)
    assert orchestrator.breaker.state == OPEN
    assert len(gateway.calls_of("charge")) == 5

    result = orchestrator.charge("ORD-X", AMOUNT, PaymentMethod.CREDIT_CARD)
    assert result.message == FALLBACK_MESSAGE
    # short-circuited: gateway not called, attempt still traced
    assert len(gateway.calls_of("charge")) == 5
    rows = orchestrator.get_payments_by_order("ORD-X")
    assert [r.status for r in rows] == [PaymentStatus.FAILED]


def test_hung_gateway_is_bounded_by_call_timeout():
    release = threading.Event()

    class Hanging:
        def charge(self, order_id, amount, method):
            release.wait(5)
            return PaymentResult(True, "LATE", "ok")

    orchestrator = PaymentOrchestrator(Hanging(), call_timeout=0.05)
    try:
        result = orchestrator.charge("ORD-1", AMOUNT, PaymentMethod.CREDIT_CARD)
    finally:
        release.set()

    assert result.success is False
    assert result.message == FALLBACK_MESSAGE
    assert orchestrator.breaker.snapshot()["failure_rate"] == 100.0


def test_refund_creates_refunded_row(orchestrator, gateway):
    gateway.script_charge(PaymentResult(True, "T1", "approved"))
    orchestrator.charge("ORD-1", AMOUNT, PaymentMethod.CREDIT_CARD)

    result = orchestrator.refund_payment("ORD-1", Decimal("10.00"), "damaged")

    assert result.success is True
    assert gateway.calls_of("refund") == [("refund", "T1", Decimal("10.00"))]
    rows = orchestrator.get_payments_by_order("ORD-1")
    assert [r.status for r in rows] == [PaymentStatus.SUCCESS, PaymentStatus.REFUNDED]
    assert rows[1].amount == Decimal("-10.00")


def test_second_refund_is_rejected(orchestrator):
    orchestrator.charge("ORD-1", AMOUNT, PaymentMethod.CREDIT_CARD)
    orchestrator.refund_payment("ORD-1", AMOUNT, "")
    with pytest.raises(PaymentNotFound) as e:
        orchestrator.refund_payment("ORD-1", AMOUNT, "")
    assert "already been refunded" in e.value.detail


def test_refund_without_successful_payment(orchestrator, gateway):
    with pytest.raises(PaymentNotFound):
        orchestrator.refund_payment("ORD-none", AMOUNT, "")

    gateway.script_charge(PaymentResult(False, None, "declined"))
    orchestrator.charge("ORD-2", AMOUNT, PaymentMethod.CREDIT_CARD)
    with pytest.raises(PaymentNotFound):
        orchestrator.refund_payment("ORD-2", AMOUNT, "")


def test_rejected_refund_leaves_ledger_unchanged(orchestrator, gateway):
    orchestrator.charge("ORD-1", AMOUNT, PaymentMethod.CREDIT_CARD)
    gateway.script_refund(PaymentResult(False, None, "Refund window closed"))
    result = orchestrator.refund_payment("ORD-1", AMOUNT, "")
    assert result.success is False
    assert [r.status for r in orchestrator.get_payments_by_order("ORD-1")] == [PaymentStatus.SUCCESS]


def test_check_status_delegates(orchestrator, gateway):
    assert orchestrator.check_status("T1") == "SUCCESS"
    assert gateway.calls_of("status") == [("status", "T1")]


class LateGateway:
    """Charge blocks until released; refunds are recorded."""

    def __init__(self, late_result):
        self.late_result = late_result
        self.release = threading.Event()
        self.refunded = threading.Event()
        self.refunds = []

    def charge(self, order_id, amount, method):
        self.release.wait(5)
        return self.late_result

    def refund(self, transaction_id, amount):
        self.refunds.append((transaction_id, amount))
        self.refunded.set()
        return PaymentResult(True, "REFUND-LATE", "Refund approved")


def test_charge_approved_after_timeout_is_refunded():
    gateway = LateGateway(PaymentResult(True, "LATE", "ok"))
    orchestrator = PaymentOrchestrator(gateway, call_timeout=0.05)
    try:
        result = orchestrator.charge("ORD-1", AMOUNT, PaymentMethod.CREDIT_CARD)
        assert result.message == FALLBACK_MESSAGE
        assert orchestrator.get_payments_by_order("ORD-1")[0].status == PaymentStatus.FAILED
    finally:
        gateway.release.set()

    assert gateway.refunded.wait(2)
    # the settling callback runs on the worker thread
    orchestrator._executor.shutdown(wait=True)
    assert gateway.refunds == [("LATE", AMOUNT)]
    row = orchestrator.get_payments_by_order("ORD-1")[0]
    assert row.status == PaymentStatus.CANCELLED
    assert row.transaction_id == "LATE"
    # a cancelled charge is not refundable again
    with pytest.raises(PaymentNotFound):
        orchestrator.refund_payment("ORD-1", AMOUNT, "")


def test_charge_declined_after_timeout_stays_failed():
    gateway = LateGateway(PaymentResult(False, None, "declined"))
    orchestrator = PaymentOrchestrator(gateway, call_timeout=0.05)
    try:
        orchestrator.charge("ORD-1", AMOUNT, PaymentMethod.CREDIT_CARD)
    finally:
        gateway.release.set()

    orchestrator._executor.shutdown(wait=True)
    assert gateway.refunds == []
    rows = orchestrator.get_payments_by_order("ORD-1")
    assert [r.status for r in rows] == [PaymentStatus.FAILED]
    assert rows[0].transaction_id is None


def test_concurrent_refunds_write_one_refund_row(orchestrator, gateway):
    orchestrator.charge("ORD-1", AMOUNT, PaymentMethod.CREDIT_CARD)
    entered = threading.Event()
    release = threading.Event()
    real_refund = gateway.refund

    def slow_refund(transaction_id, amount):
        entered.set()
        release.wait(5)
        return real_refund(transaction_id, amount)

    gateway.refund = slow_refund
    outcomes = []

    def refund():
        try:
            outcomes.append(orchestrator.refund_payment("ORD-1", AMOUNT, "").success)
        except PaymentNotFound:
            outcomes.append("rejected")

    first = threading.Thread(target=refund)
    first.start()
    assert entered.wait(2)
    second = threading.Thread(target=refund)
    second.start()
    second.join(0.1)
    # the second refund waits for the first to finish
    assert second.is_alive()
    release.set()
    first.join(2)
    second.join(2)

    assert outcomes.count(True) == 1
    assert outcomes.count("rejected") == 1
    statuses = [r.status for r in orchestrator.get_payments_by_order("ORD-1")]
    assert statuses.count(PaymentStatus.REFUNDED) == 1
