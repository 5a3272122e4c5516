"""Inventory service API built with FastAPI.

This module exposes the inventory contract over HTTP: availability
checks, reservations and releases. Validation is performed with Pydantic
models; behavior is delegated to the randomized ``InventoryBackend``.
"""

import logging
import uuid

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field
from pythonjsonlogger import jsonlogger

from .backend import InventoryBackend

app = FastAPI(title="Inventory Service")
backend = InventoryBackend()

logger = logging.getLogger("inventory")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(logging.INFO)


class ItemRequest(BaseModel):
    """Product and quantity for check, reserve and release calls."""

    product_id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(ge=0)


class CheckResponse(BaseModel):
    product_id: str
    available: bool
    available_quantity: int
    message: str


class ReserveResponse(BaseModel):
    reserved: bool
    detail: str | None = None


class ReleaseResponse(BaseModel):
    released: bool


@app.get("/health")
def health():
    return {"ok": True}


@app.post("/check", response_model=CheckResponse)
def check(req: ItemRequest):
    r = backend.check(req.product_id, req.quantity)
    return CheckResponse(
        product_id=r.product_id, available=r.available, available_quantity=r.available_quantity, message=r.message
    )


@app.post("/reserve", response_model=ReserveResponse)
def reserve(req: ItemRequest):
    """Reserve stock for one product.

    Raises:
        HTTPException: 422 with ``reserved=false`` when the reservation is
            refused.
    """
    if not backend.reserve(req.product_id, req.quantity):
        logger.warning("reservation refused", extra={"product_id": req.product_id})
        raise HTTPException(status_code=422, detail={"reserved": False, "detail": "RESERVATION_FAILED"})
    return ReserveResponse(reserved=True)


@app.post("/release", response_model=ReleaseResponse)
def release(req: ItemRequest):
    return ReleaseResponse(released=backend.release(req.product_id, req.quantity))


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
