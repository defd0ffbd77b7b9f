"""
Production Server Configuration

Run the analytics API with Uvicorn workers under Gunicorn. Every worker holds
its own response cache and its own database engine.
"""

import multiprocessing
import os

from academy_analytics.config import get_settings

_settings = get_settings()

# Server socket
bind = os.getenv("BIND", f"{_settings.api_host}:{_settings.api_port}")
backlog = 2048

# Worker processes
workers = int(os.getenv("WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 10000
max_requests_jitter = 1000
timeout = 120
keepalive = 5
graceful_timeout = 30

proc_name = _settings.app_name

# Logging
errorlog = "-"
loglevel = _settings.monitoring.log_level.lower()
accesslog = "-"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'


def when_ready(server):
    """Called when server is ready to receive connections."""
    server.log.info("Academy Analytics API ready on %s with %s workers", bind, workers)


def worker_abort(worker):
    """Called when worker receives SIGABRT signal."""
    worker.log.warning("Worker %s aborted, its response cache is lost", worker.pid)
