import os

# Run with: uvicorn services.inventory.main:app --host $HOST --port $PORT
host = "0.0.0.0"
port = int(os.getenv("PORT", "9001"))
# Reservation tallies are in-memory, keep a single worker
workers = 1
loop = "uvloop"  # needs uvicorn[standard]
http = "h11"
log_level = os.getenv("LOG_LEVEL", "info")
