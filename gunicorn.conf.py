"""
Production Server Configuration

Uvicorn workers under Gunicorn. Each worker process owns one store executor,
created by the app lifespan.
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:3000")
backlog = 2048

# Worker processes
workers = int(os.getenv("WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
max_requests = 10000
max_requests_jitter = 1000
# Active-day regeneration over long ranges is slow
timeout = 300
keepalive = 5
graceful_timeout = 30

proc_name = "promo-catalog-api"

daemon = False
pidfile = "/tmp/promo-catalog.pid"

# Logging
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = "-"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'
