from django.http import JsonResponse

from apps.chaos.injector import get_fault_injector
from apps.orders.providers import get_payment_orchestrator
from apps.traffic.providers import get_load_generator


def health_view(_request):
    breaker = get_payment_orchestrator().breaker.snapshot()
    payments_ok = breaker["state"] != "OPEN"

    ok = payments_ok
    code = 200 if ok else 503
    return JsonResponse(
        {
            "ok": ok,
            "components": {
                "payments": {"ok": payments_ok, "circuit": breaker},
                "traffic": {"running": get_load_generator().is_running},
                "chaos": {"enabled": get_fault_injector().enabled},
            },
        },
        status=code,
    )
