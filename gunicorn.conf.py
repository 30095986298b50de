# gunicorn.conf.py - Production configuration for the ingredient scanner API
import os

# Bind to the port provided by the platform
bind = f"0.0.0.0:{os.environ.get('PORT', 5000)}"

# Analysis is CPU-light; the only slow path is the product database lookup
workers = int(os.environ.get('WEB_CONCURRENCY', 2))
worker_class = "sync"

# Timeout must exceed the lookup retries (attempts x request timeout + backoff)
timeout = int(os.environ.get('TIMEOUT', 60))
keepalive = 5
max_requests = 1000
max_requests_jitter = 50

# Graceful shutdowns
graceful_timeout = 30

# Logging configuration
accesslog = "-"  # Log to stdout
errorlog = "-"   # Log to stderr
loglevel = os.environ.get('LOG_LEVEL', 'info').lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Security settings
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

# Application-specific settings
wsgi_app = "app:app"
pythonpath = "."
chdir = "."

# Development vs Production detection
if os.environ.get('FLASK_ENV') == 'development':
    reload = True
    loglevel = "debug"
else:
    reload = False


def when_ready(server):
    """Called when the server is ready to serve requests"""
    server.log.info("Gunicorn server ready - PID: %s", os.getpid())
    server.log.info("Workers: %s, Timeout: %ss, Listening on %s", workers, timeout, bind)


def worker_abort(worker):
    """Called when a worker is aborted"""
    worker.log.warning("Worker %s aborted - likely a product lookup timeout", worker.pid)


def on_exit(server):
    server.log.info("Gunicorn server shutting down")
