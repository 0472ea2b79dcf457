import threading
import time

import pytest

from gtsnet.pool import (
    PoolClosedError,
    PoolOverloadedError,
    WorkerPool,
    WorkerPoolWithFunc,
    WorkerStack,
)


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class Tracker:
    def __init__(self, delay):
        self.delay = delay
        self.lock = threading.Lock()
        self.active = 0
        self.peak = 0
        self.done = 0
        self.args = []

    def run(self, *args):
        with self.lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        time.sleep(self.delay)
        with self.lock:
            self.active -= 1
            self.done += 1
            self.args.extend(args)


class FakeWorker:
    def __init__(self, last_used):
        self.last_used = last_used
        self.finished = 0

    def finish(self):
        self.finished += 1


def test_pool_runs_all_tasks_within_cap():
    pool = WorkerPool(50)
    tracker = Tracker(0.1)
    try:
        for _ in range(100):
            pool.submit(tracker.run)
        assert wait_until(lambda: tracker.done == 100)
        assert tracker.peak <= 50
        assert pool.running() <= 50
    finally:
        pool.release()


def test_pool_with_func_passes_each_argument():
    tracker = Tracker(0.01)
    pool = WorkerPoolWithFunc(10, tracker.run)
    try:
        for i in range(100):
            pool.invoke(i)
        assert wait_until(lambda: tracker.done == 100)
        assert sorted(tracker.args) == list(range(100))
        assert tracker.peak <= 10
    finally:
        pool.release()


def test_invoke_accepts_none_argument():
    received = []
    done = threading.Event()

    def record(arg):
        received.append(arg)
        done.set()

    pool = WorkerPoolWithFunc(1, record)
    try:
        pool.invoke(None)
        assert done.wait(5)
        assert received == [None]
        assert pool.running() == 1
        assert pool.free() == 0
    finally:
        pool.release()


def test_size_and_free():
    bounded = WorkerPool(5)
    unbounded = WorkerPool(0)
    try:
        assert bounded.cap() == 5
        assert bounded.free() == 5
        assert unbounded.cap() == -1
        assert unbounded.free() == -1
    finally:
        bounded.release()
        unbounded.release()


def test_tune_changes_bounded_capacity_only():
    bounded = WorkerPool(5)
    unbounded = WorkerPool(-3)
    try:
        bounded.tune(10)
        assert bounded.cap() == 10
        bounded.tune(0)
        assert bounded.cap() == 10
        unbounded.tune(4)
        assert unbounded.cap() == -1
    finally:
        bounded.release()
        unbounded.release()


def test_submit_after_release_raises_and_reboot_reopens():
    pool = WorkerPool(2)
    pool.release()
    assert pool.is_closed()
    with pytest.raises(PoolClosedError):
        pool.submit(lambda: None)
    pool.reboot()
    assert not pool.is_closed()
    done = threading.Event()
    try:
        pool.submit(done.set)
        assert done.wait(5)
    finally:
        pool.release()


def test_waiting_submitter_gives_up_on_release():
    pool = WorkerPool(1)
    gate = threading.Event()
    errors = []

    def second():
        try:
            pool.submit(lambda: None)
        except PoolOverloadedError as exc:
            errors.append(exc)

    pool.submit(gate.wait)
    thread = threading.Thread(target=second)
    thread.start()
    try:
        assert wait_until(lambda: pool.waiting() == 1)
        pool.release()
        thread.join(5)
        assert len(errors) == 1
        assert pool.waiting() == 0
    finally:
        gate.set()
        pool.release()


def test_failing_task_ends_its_worker_but_pool_keeps_working():
    pool = WorkerPool(1)

    def boom():
        raise RuntimeError("boom")

    try:
        pool.submit(boom)
        wait_until(lambda: pool.running() == 0)
        assert pool.running() == 0
        done = threading.Event()
        pool.submit(done.set)
        assert done.wait(5)
    finally:
        pool.release()


def test_release_ends_idle_workers():
    pool = WorkerPool(3)
    tracker = Tracker(0.01)
    for _ in range(3):
        pool.submit(tracker.run)
    wait_until(lambda: tracker.done == 3)
    assert tracker.done == 3
    pool.release()
    wait_until(lambda: pool.running() == 0)
    assert pool.running() == 0
    assert pool.is_closed()


def test_worker_stack_is_lifo():
    stack = WorkerStack()
    first, second = FakeWorker(1.0), FakeWorker(2.0)
    stack.insert(first)
    stack.insert(second)
    assert len(stack) == 2
    assert stack.detach() is second
    assert stack.detach() is first
    assert stack.detach() is None
    assert len(stack) == 0


def test_worker_stack_refresh_returns_only_stale_workers():
    now = time.monotonic()
    stack = WorkerStack()
    old1, old2 = FakeWorker(now - 100), FakeWorker(now - 50)
    fresh = FakeWorker(now + 100)
    for worker in (old1, old2, fresh):
        stack.insert(worker)
    assert stack.refresh(10) == [old1, old2]
    assert len(stack) == 1
    assert stack.detach() is fresh


def test_worker_stack_refresh_keeps_all_fresh_workers():
    now = time.monotonic()
    stack = WorkerStack()
    stack.insert(FakeWorker(now + 100))
    assert stack.refresh(10) == []
    assert len(stack) == 1
    assert WorkerStack().refresh(10) == []


def test_worker_stack_reset_finishes_everyone():
    stack = WorkerStack()
    workers = [FakeWorker(float(i)) for i in range(3)]
    for worker in workers:
        stack.insert(worker)
    stack.reset()
    assert len(stack) == 0
    assert [w.finished for w in workers] == [1, 1, 1]