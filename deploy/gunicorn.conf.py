import multiprocessing
import os

# Run with: gunicorn -c deploy/gunicorn.conf.py precalc.main:app
bind = os.getenv("PRECALC_BIND", "127.0.0.1:8000")
workers = int(os.getenv("PRECALC_WORKERS", (multiprocessing.cpu_count() * 2) + 1))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 60
graceful_timeout = 30
keepalive = 5
loglevel = "info"
accesslog = "-"
errorlog = "-"
