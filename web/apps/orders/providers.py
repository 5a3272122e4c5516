"""Service provider helpers for wiring OrderService with ports.

This module exposes process-wide factories: ``get_payment_orchestrator``
and ``get_order_service``. By default the service uses the in-process
stubs; when ``settings.USE_HTTP_ADAPTERS`` is truthy it uses the HTTP
clients that talk to the inventory and payments services. Either way the
gateways are wrapped in a ``FaultInjectingProxy`` so the fault-injection
toggle reaches every dependency call.

The instances are cached because orders and payments live in memory for
the lifetime of the process. ``reset_services`` drops them (tests).
"""

from functools import lru_cache

from django.conf import settings

from apps.chaos.injector import FaultInjectingProxy, get_fault_injector
from apps.payments.breaker import CircuitBreaker
from apps.payments.orchestrator import SERVICE_NAME, PaymentOrchestrator

from .adapters import InventoryStub, PaymentsStub
from .domain import OrderService
from .http_adapters import HttpInventoryClient, HttpPaymentsClient


def _payment_breaker() -> CircuitBreaker:
    return CircuitBreaker(
        SERVICE_NAME,
        window_size=getattr(settings, "PAYMENT_CB_WINDOW_SIZE", 10),
        min_calls=getattr(settings, "PAYMENT_CB_MIN_CALLS", 5),
        failure_rate_threshold=getattr(settings, "PAYMENT_CB_FAILURE_RATE", 50.0),
        slow_call_duration=getattr(settings, "PAYMENT_CB_SLOW_CALL_SECS", 2.0),
        slow_call_rate_threshold=getattr(settings, "PAYMENT_CB_SLOW_CALL_RATE", 100.0),
        reset_timeout=getattr(settings, "PAYMENT_CB_RESET_TIMEOUT", 30.0),
    )


@lru_cache(maxsize=1)
def get_payment_orchestrator() -> PaymentOrchestrator:
    """Return the process-wide PaymentOrchestrator."""
    gateway = HttpPaymentsClient() if getattr(settings, "USE_HTTP_ADAPTERS", False) else PaymentsStub()
    return PaymentOrchestrator(
        gateway=FaultInjectingProxy(gateway, get_fault_injector(), "payments"),
        breaker=_payment_breaker(),
        call_timeout=getattr(settings, "PAYMENT_CALL_TIMEOUT_SECS", 5.0),
    )


@lru_cache(maxsize=1)
def get_order_service() -> OrderService:
    """Return the process-wide OrderService.

    Returns:
        OrderService: A service instance with appropriate ports.
    """
    inventory = HttpInventoryClient() if getattr(settings, "USE_HTTP_ADAPTERS", False) else InventoryStub()
    return OrderService(
        inventory=FaultInjectingProxy(inventory, get_fault_injector(), "inventory"),
        payments=get_payment_orchestrator(),
    )


# bound at import so a monkeypatched provider still gets its cache dropped
_CACHED = (get_order_service, get_payment_orchestrator)


def reset_services():
    for provider in _CACHED:
        provider.cache_clear()
