"""HTTP adapter clients with retries and context headers.

This module implements concrete HTTP clients for the inventory port and
the payment gateway port using ``httpx``. It adds:

- Request correlation: propagates ``X-Request-ID`` from a ContextVar set by
    the gateway middleware.
- Simple retry policy with exponential backoff for transport errors and 5xx.
- Payments idempotency: charges carry an ``Idempotency-Key`` derived from the
    order id, so a retried charge is processed at most once downstream.

Breaking the circuit on an unhealthy payment service is not done here; it
is the job of ``PaymentOrchestrator`` which wraps the payments client.
"""

import logging
import time
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

import httpx
from django.conf import settings
from django.utils.module_loading import import_string

from apps.payments.domain import PaymentGatewayPort, PaymentMethod, PaymentResult, utcnow

from .domain import InventoryCheckResult, InventoryPort

REQUEST_ID_CTX = import_string("gateway.middleware.REQUEST_ID_CTX")

logger = logging.getLogger("orders")


# ---------------- Helpers ---------------- #

def _request_headers(extra: Optional[dict] = None) -> dict:
    """Build base headers including X-Request-ID and any extras.

    Args:
        extra: Optional dict of additional headers to include.

    Returns:
        dict: Final headers dictionary for the outgoing request.
    """
    headers: dict[str, str] = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


def _retry_policy():
    """Return retry configuration as (max_retries, backoff_base_seconds)."""
    return (
        getattr(settings, "HTTP_RETRY_MAX", 3),
        getattr(settings, "HTTP_RETRY_BACKOFF_BASE", 0.15),
    )


def _should_retry(resp: Optional[httpx.Response], exc: Optional[Exception]) -> bool:
    """Retry only on transport exceptions or HTTP 5xx."""
    if exc is not None:
        return True
    if resp is not None and 500 <= resp.status_code < 600:
        return True
    return False


class _RetryingClient:
    """Shared request loop for the downstream clients.

    ``accepted`` lists the status codes that are business answers and are
    returned to the caller as-is. Anything else is retried while the policy
    allows it and then raised.
    """

    def __init__(self, base_url: str, timeout: float):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        accepted: Iterable[int],
        json: Optional[dict] = None,
        extra_headers: Optional[dict] = None,
    ) -> httpx.Response:
        """Send a request with retries.

        Raises:
            httpx.RequestError: For network/transport errors after retries.
            httpx.HTTPStatusError: For non-accepted, non-retriable responses.
        """
        accepted = set(accepted)
        max_retries, backoff = _retry_policy()
        tries = 0
        headers = _request_headers(dict(extra_headers or {}, **{"X-Retry-Count": "0"}))

        with httpx.Client(timeout=self.timeout) as client:
            while True:
                resp = None
                exc = None
                try:
                    resp = client.request(method, f"{self.base_url}{path}", json=json, headers=headers)
                    if resp.status_code in accepted:
                        return resp
                    if not _should_retry(resp, None):
                        resp.raise_for_status()
                except httpx.RequestError as e:
                    exc = e

                tries += 1
                headers["X-Retry-Count"] = str(tries)

                if tries > max_retries or not _should_retry(resp, exc):
                    if exc:
                        raise exc
                    resp.raise_for_status()

                sleep_s = backoff * (2 ** (tries - 1))  # exponential backoff
                cap = getattr(settings, "HTTP_RETRY_MAX_SLEEP", 0.5)
                logger.warning("retrying downstream call", extra={"path": path, "retry": tries})
                time.sleep(min(sleep_s, cap))


def _parse_time(value: Optional[str]) -> datetime:
    if not value:
        return utcnow()
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return utcnow()


# ---------------- Inventory Adapter ---------------- #

class HttpInventoryClient(_RetryingClient, InventoryPort):
    """HTTP client for the inventory service with retries."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        super().__init__(
            base_url or settings.INVENTORY_BASE_URL,
            timeout or settings.HTTP_TIMEOUT_SECS,
        )

    def check_availability(self, product_id: str, quantity: int) -> InventoryCheckResult:
        resp = self._request("POST", "/check", (200,), json={"product_id": product_id, "quantity": quantity})
        data = resp.json()
        return InventoryCheckResult(
            product_id=data.get("product_id", product_id),
            available=bool(data.get("available", False)),
            available_quantity=int(data.get("available_quantity", 0)),
            message=data.get("message") or "",
        )

    def reserve(self, product_id: str, quantity: int) -> bool:
        """Reserve stock for one product.

        Business mappings:
        - 200 -> returns the "reserved" boolean
        - 422 -> returns False (reservation refused)
        """
        resp = self._request("POST", "/reserve", (200, 422), json={"product_id": product_id, "quantity": quantity})
        if resp.status_code == 422:
            return False
        return bool(resp.json().get("reserved", False))

    def release(self, product_id: str, quantity: int) -> bool:
        resp = self._request("POST", "/release", (200,), json={"product_id": product_id, "quantity": quantity})
        return bool(resp.json().get("released", False))


# ---------------- Payments Adapter ---------------- #

class HttpPaymentsClient(_RetryingClient, PaymentGatewayPort):
    """HTTP client for the payments service with retries.

    Business mappings for charge and refund:
    - 200 -> approved ``PaymentResult``
    - 402 -> declined ``PaymentResult`` (not retried)
    - 409 -> idempotency conflict, reported as declined
    """

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        super().__init__(
            base_url or settings.PAYMENTS_BASE_URL,
            timeout or settings.HTTP_TIMEOUT_SECS,
        )

    def charge(self, order_id: str, amount: Decimal, method: PaymentMethod) -> PaymentResult:
        payload = {"order_id": order_id, "amount": str(amount), "method": PaymentMethod(method).value}
        resp = self._request(
            "POST", "/charge", (200, 402, 409), json=payload, extra_headers={"Idempotency-Key": f"charge-{order_id}"}
        )
        return self._to_result(resp)

    def refund(self, transaction_id: str, amount: Decimal) -> PaymentResult:
        payload = {"transaction_id": transaction_id, "amount": str(amount)}
        resp = self._request("POST", "/refund", (200, 402), json=payload)
        return self._to_result(resp)

    def status_of(self, transaction_id: str) -> str:
        resp = self._request("GET", f"/transactions/{transaction_id}/status", (200,))
        return resp.json().get("status", "UNKNOWN")

    @staticmethod
    def _to_result(resp: httpx.Response) -> PaymentResult:
        data = resp.json()
        if resp.status_code == 409:
            detail = data.get("detail", "IDEMPOTENCY_CONFLICT")
            return PaymentResult(False, None, str(detail))
        ok = resp.status_code == 200 and bool(data.get("success", False))
        return PaymentResult(
            success=ok,
            transaction_id=data.get("transaction_id") if ok else None,
            message=data.get("message") or "",
            processed_at=_parse_time(data.get("processed_at")),
        )
