"""Unit tests for HTTP adapters to inventory and payments services.

These tests verify that the HTTP clients handle success, failure, and
network error conditions correctly by monkeypatching
``httpx.Client.request`` and asserting the adapter behavior.
"""
from decimal import Decimal

import httpx
import pytest

from apps.orders.http_adapters import HttpInventoryClient, HttpPaymentsClient
from apps.payments.domain import PaymentMethod


class DummyResp:
    """Minimal httpx-like response stub for adapter tests.

    Args:
        status_code (int): HTTP status code to simulate.
        json_data (dict | None): JSON body to return from ``json()``.
    """
    def __init__(self, status_code=200, json_data=None):
        self.status_code = status_code
        self._json = json_data or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise httpx.HTTPStatusError("err", request=None, response=None)

    def json(self):
        return self._json


def patch_request(monkeypatch, resp=None, exc=None, seen=None):
    def fake_request(self, method, url, json=None, headers=None, **kw):
        if seen is not None:
            seen.append({"method": method, "url": url, "json": json, "headers": headers})
        if exc:
            raise exc
        return resp
    monkeypatch.setattr(httpx.Client, "request", fake_request, raising=True)


def test_inventory_check_ok(monkeypatch):
    seen = []
    patch_request(monkeypatch, DummyResp(200, {"product_id": "P1", "available": True, "available_quantity": 7}), seen=seen)
    result = HttpInventoryClient(base_url="http://inventory:9001").check_availability("P1", 2)
    assert result.available is True
    assert result.available_quantity == 7
    assert seen[0]["url"] == "http://inventory:9001/check"
    assert seen[0]["json"] == {"product_id": "P1", "quantity": 2}


def test_inventory_reserve_ok(monkeypatch):
    """Inventory adapter returns True on 200 with reserved=True."""
    patch_request(monkeypatch, DummyResp(200, {"reserved": True}))
    client = HttpInventoryClient(base_url="http://inventory:9001")
    assert client.reserve("P1", 2) is True


def test_inventory_reserve_fail(monkeypatch):
    """Inventory adapter returns False on 422 reserved failure."""
    patch_request(monkeypatch, DummyResp(422, {"reserved": False}))
    client = HttpInventoryClient()
    assert client.reserve("P1", 99) is False


def test_inventory_release(monkeypatch):
    patch_request(monkeypatch, DummyResp(200, {"released": True}))
    assert HttpInventoryClient().release("P1", 1) is True


def test_payments_charge_ok(monkeypatch):
    """Payments adapter returns an approved result with the gateway reference."""
    seen = []
    body = {"success": True, "transaction_id": "TXN-1", "message": "ok", "processed_at": "2026-01-01T00:00:00+00:00"}
    patch_request(monkeypatch, DummyResp(200, body), seen=seen)
    result = HttpPaymentsClient().charge("ORD-1", Decimal("10.50"), PaymentMethod.CREDIT_CARD)
    assert result.success is True
    assert result.transaction_id == "TXN-1"
    assert result.processed_at.year == 2026
    assert seen[0]["json"] == {"order_id": "ORD-1", "amount": "10.50", "method": "CREDIT_CARD"}
    assert seen[0]["headers"]["Idempotency-Key"] == "charge-ORD-1"


def test_payments_charge_declined(monkeypatch):
    patch_request(monkeypatch, DummyResp(402, {"success": False, "transaction_id": "TXN-X", "message": "Card expired"}))
    result = HttpPaymentsClient().charge("ORD-1", Decimal("10.00"), PaymentMethod.DEBIT_CARD)
    assert result.success is False
    assert result.transaction_id is None
    assert result.message == "Card expired"


def test_payments_charge_conflict_is_declined(monkeypatch):
    patch_request(monkeypatch, DummyResp(409, {"detail": "IDEMPOTENCY_KEY_REUSED"}))
    result = HttpPaymentsClient().charge("ORD-1", Decimal("10.00"), PaymentMethod.PAYPAL)
    assert result.success is False
    assert result.message == "IDEMPOTENCY_KEY_REUSED"


def test_payments_status_of(monkeypatch):
    seen = []
    patch_request(monkeypatch, DummyResp(200, {"status": "SUCCESS"}), seen=seen)
    assert HttpPaymentsClient(base_url="http://pay").status_of("TXN-1") == "SUCCESS"
    assert seen[0]["method"] == "GET"
    assert seen[0]["url"] == "http://pay/transactions/TXN-1/status"


def test_payments_charge_network_error(monkeypatch, settings):
    """Payments adapter propagates network errors from httpx."""
    settings.HTTP_RETRY_MAX = 0
    patch_request(monkeypatch, exc=httpx.ConnectError("boom"))
    client = HttpPaymentsClient()
    with pytest.raises(httpx.ConnectError):
        client.charge("ORD-1", Decimal("10.00"), PaymentMethod.CREDIT_CARD)
