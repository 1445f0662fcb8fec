from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import func, select

from dbq.core import Message, MsgStatus, queue_table

pytestmark = [pytest.mark.integration, pytest.mark.slow]

WORKERS = 6
MESSAGES = 120
BATCH = 7


def _drain(store, queue_name, barrier):
    barrier.wait()
    claimed = []
    while True:
        batch = store.pull(queue_name, BATCH)
        if not batch:
            return claimed
        claimed.extend(m.id for m in batch)


def test_concurrent_pulls_never_share_a_message(engine, store, queue_name):
    store.push(queue_name, [Message(id=i, data=str(i).encode()) for i in range(1, MESSAGES + 1)])
    barrier = threading.Barrier(WORKERS)

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        futures = [pool.submit(_drain, store, queue_name, barrier) for _ in range(WORKERS)]
        results = [f.result(timeout=120) for f in futures]

    all_ids = [i for ids in results for i in ids]
    assert len(all_ids) == len(set(all_ids))
    assert set(all_ids) == set(range(1, MESSAGES + 1))

    table = queue_table(queue_name)
    with engine.connect() as conn:
        dispatched = conn.execute(
            select(func.count()).select_from(table).where(table.c.status == int(MsgStatus.DISPATCHED))
        ).scalar_one()
    assert dispatched == len(all_ids)


def test_dry_runs_alongside_live_pulls_do_not_claim(store, queue_name):
    store.push(queue_name, [Message(id=i) for i in range(1, 41)])
    barrier = threading.Barrier(2)

    def peek():
        barrier.wait()
        for _ in range(10):
            for msg in store.pull(queue_name, 5, dry_run=True):
                assert msg.status is MsgStatus.PENDING

    with ThreadPoolExecutor(max_workers=2) as pool:
        peeker = pool.submit(peek)
        drainer = pool.submit(_drain, store, queue_name, barrier)
        peeker.result(timeout=120)
        claimed = drainer.result(timeout=120)

    assert sorted(claimed) == list(range(1, 41))
