"""
Gunicorn configuration for the Streak Engine API.

    gunicorn -c gunicorn.conf.py streak_engine.main:app

Env vars that override defaults:
  PORT     — TCP port to bind (Railway / Render set this)
  WORKERS  — number of worker processes (default: 2)
  TIMEOUT  — seconds before a silent worker is restarted (default: 60)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

workers = int(os.environ.get("WORKERS", "2"))

# Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

timeout = int(os.environ.get("TIMEOUT", "60"))

# Application logs go through structlog to stdout; gunicorn only adds access lines.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
