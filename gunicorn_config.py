"""
Gunicorn configuration
Usage: gunicorn -c gunicorn_config.py wsgi:application
"""
import multiprocessing
import os

# Server socket
bind = os.getenv("GUNICORN_BIND", f"0.0.0.0:{os.getenv('PORT', '5001')}")
backlog = 2048

# Worker processes. Editor sessions live in process memory, so the
# session API needs a single worker; conversions scale with more.
# Threads share sessions; each one is used under its own lock.
workers = int(os.getenv("GUNICORN_WORKERS", "1"))
threads = int(os.getenv("GUNICORN_THREADS", str(multiprocessing.cpu_count() * 2)))
worker_class = "gthread"
timeout = 30
keepalive = 2

# Restarts
max_requests = 1000
max_requests_jitter = 50
preload_app = True

# Logging
log_dir = os.getenv("LOG_DIR", "logs")
os.makedirs(log_dir, exist_ok=True)
accesslog = os.path.join(log_dir, "gunicorn_access.log")
errorlog = os.path.join(log_dir, "gunicorn_error.log")
loglevel = os.getenv("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s"'

# Process naming
proc_name = "dbml_canvas_app"

daemon = False
pidfile = os.path.join(log_dir, "gunicorn.pid")
tmp_upload_dir = None
