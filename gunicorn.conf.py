"""
Gunicorn Configuration

Runs the FastAPI app with Uvicorn workers. Each worker holds its own
in-process snapshot cache unless ANALYTICS_CACHE_BACKEND=redis.
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", f"0.0.0.0:{os.getenv('PORT', '3000')}")
backlog = 2048

# Worker processes
workers = int(os.getenv("WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 10000
max_requests_jitter = 1000
timeout = 120
keepalive = 5
graceful_timeout = 30

proc_name = "dashboard-analytics-api"

# Logging
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = "-"


def post_fork(server, worker):
    server.log.info("Worker spawned (pid: %s)", worker.pid)
