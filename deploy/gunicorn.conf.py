"""
Gunicorn settings for the dbq HTTP API, read from the environment.

    gunicorn -c deploy/gunicorn.conf.py dbq.wsgi:app

NODE_ID is the host index (0, 1, 2, ...), not a node id. Keep GUNICORN_PRELOAD
off: each worker gets its node id in post_fork, before the app (and its id
generator) is loaded.
"""

from __future__ import annotations

import logging
import multiprocessing
import os

bind = os.environ.get("DBQ_BIND", "0.0.0.0:8080")

# Threads let one worker keep serving while a pull waits on a row lock.
worker_class = "gthread"
workers = int(os.environ.get("GUNICORN_WORKERS", str(min(multiprocessing.cpu_count() * 2 + 1, 16))))
threads = int(os.environ.get("GUNICORN_THREADS", "8"))
max_requests = int(os.environ.get("GUNICORN_MAX_REQUESTS", "0"))

# Pull has no lock timeout of its own; this is the upper bound on a blocked request.
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "120"))
graceful_timeout = int(os.environ.get("GUNICORN_GRACEFUL_TIMEOUT", "30"))

accesslog = os.environ.get("GUNICORN_ACCESSLOG", "-")
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '{"t": "%(t)s", "req": "%(r)s", "status": %(s)s, "ms": %(M)s, "pid": %(p)s}'

preload_app = os.environ.get("GUNICORN_PRELOAD", "false").lower() in ("1", "true", "yes")
proc_name = "dbq"

# Snowflake node ids: NODE_ID is this host's index and every host owns a block
# of NODE_STRIDE ids. Each live worker holds one slot of the block, so ids
# never overlap between workers or between hosts with adjacent indexes.
HOST_INDEX = int(os.environ.get("NODE_ID", "0"))
NODE_STRIDE = int(os.environ.get("DBQ_NODE_STRIDE", "64"))
MAX_NODES = 1024

# A graceful reload briefly runs old and new workers side by side.
if workers * 2 > NODE_STRIDE:
    raise RuntimeError(f"DBQ_NODE_STRIDE={NODE_STRIDE} is too small for {workers} workers")
if (HOST_INDEX + 1) * NODE_STRIDE > MAX_NODES:
    raise RuntimeError(f"NODE_ID={HOST_INDEX} with stride {NODE_STRIDE} exceeds {MAX_NODES} node ids")


def node_id_for(slot: int) -> int:
    return HOST_INDEX * NODE_STRIDE + slot


def pre_fork(server, worker):
    # Runs in the master, which knows every live worker's slot.
    taken = {getattr(w, "dbq_slot", None) for w in server.WORKERS.values()}
    worker.dbq_slot = min(slot for slot in range(NODE_STRIDE) if slot not in taken)


def post_fork(server, worker):
    os.environ["NODE_ID"] = str(node_id_for(worker.dbq_slot))
    server.log.info("Worker %s using NODE_ID=%s", worker.pid, os.environ["NODE_ID"])


def when_ready(server):
    logging.getLogger(__name__).info("dbq ready on %s (workers=%s, threads=%s)", bind, workers, threads)


def worker_abort(worker):
    """Called when a worker is timed out and is being replaced."""
    worker.log.warning("Worker %s exceeded %ss, likely blocked on a queue lock", worker.pid, timeout)
