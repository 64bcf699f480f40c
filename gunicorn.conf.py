"""
Gunicorn configuration for the Signalboard API.

Start with: gunicorn -c gunicorn.conf.py signalboard.main:app
Env vars: PORT (default 8000), WORKERS (default 2), LOG_LEVEL (default info).

The scoring pipeline runs in the separate worker process
(python -m signalboard.jobs.worker), never inside these web workers.
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"
workers = int(os.environ.get("WORKERS", "2"))
worker_class = "uvicorn.workers.UvicornWorker"
keepalive = 5

# POST /pipeline/run computes synchronously.
timeout = 300
graceful_timeout = 30

loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'
