import pytest

from apps.chaos.injector import get_fault_injector
from apps.orders.providers import reset_services
from apps.traffic.providers import reset_load_generator


@pytest.fixture(autouse=True)
def use_stubs_for_tests(settings):
    settings.USE_HTTP_ADAPTERS = False
    settings.HTTP_RETRY_BACKOFF_BASE = 0.0
    reset_services()
    get_fault_injector.cache_clear()
    yield
    reset_load_generator()
    reset_services()
    get_fault_injector.cache_clear()
