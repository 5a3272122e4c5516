"""Payments service API built with FastAPI.

This module exposes the payment gateway contract over HTTP: charges (with
optional ``Idempotency-Key``), refunds and transaction status lookups.
Validation is performed with Pydantic models; behavior is delegated to
the randomized ``PaymentBackend``.
"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pythonjsonlogger import jsonlogger

from .backend import IdempotencyConflict, PaymentBackend

app = FastAPI(title="Payments Service")
backend = PaymentBackend()

logger = logging.getLogger("payments")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(logging.INFO)


class ChargeRequest(BaseModel):
    """Request body for the charge endpoint.

    Attributes:
        order_id: Order being paid.
        amount: Positive amount as a decimal.
        method: Payment method name.
    """

    order_id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    method: str = Field(min_length=1)


class RefundRequest(BaseModel):
    transaction_id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)


class PaymentResponse(BaseModel):
    """Shared response shape for charges and refunds."""

    success: bool
    transaction_id: Optional[str] = None
    message: str
    processed_at: datetime


def _respond(result) -> JSONResponse:
    body = PaymentResponse(
        success=result.success,
        transaction_id=result.transaction_id,
        message=result.message,
        processed_at=result.processed_at,
    )
    # declines are answered with 402 so clients do not retry them
    return JSONResponse(body.model_dump(mode="json"), status_code=200 if result.success else 402)


@app.get("/health")
def health():
    return {"ok": True}


@app.post("/charge", response_model=PaymentResponse)
def charge(
    req: ChargeRequest,
    idempotency_key: Annotated[Optional[str], Header(alias="Idempotency-Key")] = None,
):
    """Charge a payment with optional idempotency.

    Raises:
        HTTPException: 409 when the idempotency key is reused with a
            different payload.
    """
    try:
        result = backend.charge(req.order_id, req.amount, req.method, idempotency_key)
    except IdempotencyConflict:
        raise HTTPException(status_code=409, detail="IDEMPOTENCY_CONFLICT")
    return _respond(result)


@app.post("/refund", response_model=PaymentResponse)
def refund(req: RefundRequest):
    return _respond(backend.refund(req.transaction_id, req.amount))


@app.get("/transactions/{transaction_id}/status")
def transaction_status(transaction_id: str):
    return {"transaction_id": transaction_id, "status": backend.status_of(transaction_id)}


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    try:
        response = await call_next(request)
    finally:
        logger.info("request handled", extra={"request_id": rid, "path": request.url.path, "method": request.method})
    response.headers["X-Request-ID"] = rid
    return response
