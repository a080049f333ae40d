"""
Gunicorn configuration for the ops dashboard API.

Env vars that override defaults:
  PORT     TCP port to bind (the hosting platform usually sets this)
  WORKERS  number of worker processes (default: 1)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Justification sessions and their pending-item monitors live in worker
# memory, so a session must keep hitting the same process. Only raise this
# behind sticky routing.
workers = int(os.environ.get("WORKERS", "1"))

worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

timeout = 120

# stdout only; application loggers go to stderr via app.core.logging_config.
loglevel = "info"
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
