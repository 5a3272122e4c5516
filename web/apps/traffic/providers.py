"""Process-wide LoadGenerator wiring."""

from functools import lru_cache

from django.conf import settings

from .generator import LoadGenerator


@lru_cache(maxsize=1)
def get_load_generator() -> LoadGenerator:
    return LoadGenerator(
        base_url=getattr(settings, "TRAFFIC_BASE_URL", "http://localhost:8000"),
        request_timeout=getattr(settings, "TRAFFIC_REQUEST_TIMEOUT_SECS", 5.0),
    )


def reset_load_generator():
    """Stop and drop the cached generator (tests)."""
    if get_load_generator.cache_info().currsize:
        get_load_generator().stop()
    get_load_generator.cache_clear()
