import os

# One process: orders, payments and traffic stats are in-memory, and the
# traffic generator must run in exactly one place.
wsgi_app = "config.wsgi:application"
bind = os.getenv("GUNI_BIND", "0.0.0.0:8000")
workers = 1

# Threads for blocking IO (payment latency, self-traffic)
worker_class = "gthread"
threads = int(os.getenv("GTHREADS", "16"))

# Timeouts
timeout = int(os.getenv("GUNI_TIMEOUT", "60"))
graceful_timeout = int(os.getenv("GUNI_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNI_KEEPALIVE", "5"))

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNI_LOGLEVEL", "info")
