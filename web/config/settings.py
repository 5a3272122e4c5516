"""Django settings for the storefront web tier.

Everything is read from environment variables with development defaults.
There is no database: orders, payments and traffic statistics live in
memory for the lifetime of the process.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() in {"1", "true", "yes", "on"}


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-secret-key")
DEBUG = env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = os.getenv("DJANGO_ALLOWED_HOSTS", "*").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "apps.orders",
    "apps.payments",
    "apps.traffic",
    "apps.chaos",
    "apps.monitoring",
]

MIDDLEWARE = [
    "gateway.middleware.RequestIdMiddleware",
    "gateway.middleware.ApiSizeLimitMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {}

USE_TZ = True
TIME_ZONE = "UTC"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "DEFAULT_THROTTLE_RATES": {
        "orders_list": os.getenv("THROTTLE_ORDERS_LIST", "6000/min"),
        "orders_create": os.getenv("THROTTLE_ORDERS_CREATE", "3000/min"),
        "orders_detail": os.getenv("THROTTLE_ORDERS_DETAIL", "6000/min"),
    },
}

# ---- Downstream services ----
USE_HTTP_ADAPTERS = env_bool("USE_HTTP_ADAPTERS", False)
INVENTORY_BASE_URL = os.getenv("INVENTORY_BASE_URL", "http://inventory:9001")
PAYMENTS_BASE_URL = os.getenv("PAYMENTS_BASE_URL", "http://payments:9002")
HTTP_TIMEOUT_SECS = float(os.getenv("HTTP_TIMEOUT_SECS", "2.0"))
HTTP_RETRY_MAX = int(os.getenv("HTTP_RETRY_MAX", "2"))
HTTP_RETRY_BACKOFF_BASE = float(os.getenv("HTTP_RETRY_BACKOFF_BASE", "0.15"))
HTTP_RETRY_MAX_SLEEP = float(os.getenv("HTTP_RETRY_MAX_SLEEP", "0.5"))

# ---- Payment circuit breaker ----
PAYMENT_CB_WINDOW_SIZE = int(os.getenv("PAYMENT_CB_WINDOW_SIZE", "10"))
PAYMENT_CB_MIN_CALLS = int(os.getenv("PAYMENT_CB_MIN_CALLS", "5"))
PAYMENT_CB_FAILURE_RATE = float(os.getenv("PAYMENT_CB_FAILURE_RATE", "50"))
PAYMENT_CB_SLOW_CALL_SECS = float(os.getenv("PAYMENT_CB_SLOW_CALL_SECS", "2.0"))
PAYMENT_CB_SLOW_CALL_RATE = float(os.getenv("PAYMENT_CB_SLOW_CALL_RATE", "100"))
PAYMENT_CB_RESET_TIMEOUT = float(os.getenv("PAYMENT_CB_RESET_TIMEOUT", "30"))
PAYMENT_CALL_TIMEOUT_SECS = float(os.getenv("PAYMENT_CALL_TIMEOUT_SECS", "5.0"))

# ---- Traffic generator ----
TRAFFIC_BASE_URL = os.getenv("TRAFFIC_BASE_URL", "http://localhost:8000")
TRAFFIC_REQUEST_TIMEOUT_SECS = float(os.getenv("TRAFFIC_REQUEST_TIMEOUT_SECS", "5.0"))

# ---- Logging ----
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_id": {"()": "gateway.logging_filters.RequestIdFilter"},
    },
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "filters": ["request_id"],
        },
    },
    "loggers": {
        name: {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False}
        for name in ("orders", "payments", "traffic", "chaos", "gateway.access")
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
}
