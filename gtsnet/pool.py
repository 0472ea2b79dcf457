"""Bounded pools of reusable worker threads."""

from __future__ import annotations

import bisect
import functools
import queue
import threading
import time
import traceback
from typing import Any, Callable, Optional

EXPIRY_DURATION = 10.0  # seconds an idle worker may wait before it is purged

_STOP = object()


class PoolClosedError(RuntimeError):
    """Raised when a task is given to a released pool."""


class PoolOverloadedError(RuntimeError):
    """Raised when no worker could be obtained for a task."""


class _Worker:
    """A thread that runs the jobs handed to it until told to finish."""

    def __init__(self, pool: "WorkerPool") -> None:
        self._pool = pool
        self._jobs: "queue.SimpleQueue[Any]" = queue.SimpleQueue()
        self.last_used = time.monotonic()
        self._thread = threading.Thread(target=self._loop, daemon=True)

    def run(self) -> None:
        self._thread.start()

    def finish(self) -> None:
        self._jobs.put(_STOP)

    def put(self, job: Callable[[], Any]) -> None:
        self._jobs.put(job)

    def _loop(self) -> None:
        try:
            while True:
                job = self._jobs.get()
                if job is _STOP:
                    return
                job()
                if not self._pool._revert_worker(self):
                    return
        except Exception:
            print("worker exits from exception:")
            traceback.print_exc()
        finally:
            self._pool._worker_exited()


class WorkerStack:
    """Idle workers, most recently used last."""

    def __init__(self) -> None:
        self._items: list[Any] = []

    def __len__(self) -> int:
        return len(self._items)

    def insert(self, worker: Any) -> None:
        """Push a worker that has just become idle."""
        self._items.append(worker)

    def detach(self) -> Optional[Any]:
        """Pop the most recently used worker, or None when empty."""
        return self._items.pop() if self._items else None

    def refresh(self, duration: float) -> list[Any]:
        """Remove and return the workers idle for at least ``duration`` seconds."""
        if not self._items:
            return []
        expiry = time.monotonic() - duration
        index = bisect.bisect_right(self._items, expiry, key=lambda w: w.last_used)
        stale = self._items[:index]
        del self._items[:index]
        return stale

    def reset(self) -> None:
        """Tell every idle worker to finish and forget them."""
        for worker in self._items:
            worker.finish()
        self._items.clear()


class WorkerPool:
    """Runs submitted callables on at most ``size`` threads; ``size <= 0`` means no limit."""

    def __init__(self, size: int = 0) -> None:
        self._cap = size if size > 0 else -1
        self._running = 0
        self._waiting = 0
        self._closed = False
        self._lock = threading.Lock()
        self._cond = threading.Condition(self._lock)
        self._workers = WorkerStack()
        self._purge_stop: Optional[threading.Event] = None
        self._start_purge()

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

    def submit(self, task: Callable[[], Any]) -> None:
        """Run ``task`` on a pooled worker, waiting for one if the pool is full."""
        self._dispatch(task)

    def is_closed(self) -> bool:
        return self._closed

    def cap(self) -> int:
        return self._cap

    def running(self) -> int:
        """Number of live worker threads."""
        return self._running

    def waiting(self) -> int:
        """Number of callers blocked waiting for a worker."""
        return self._waiting

    def free(self) -> int:
        """Workers still available before the cap, or -1 when unbounded."""
        with self._lock:
            return self._free_locked()

    def release(self) -> None:
        """Close the pool: idle workers finish and waiters give up."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._workers.reset()
            self._cond.notify_all()

    def reboot(self) -> None:
        """Reopen a released pool."""
        with self._lock:
            if not self._closed:
                return
            self._closed = False
        self._start_purge()

    def tune(self, size: int) -> None:
        """Change the capacity of a bounded pool."""
        with self._lock:
            capacity = self._cap
            if capacity == -1 or size <= 0 or size == capacity:
                return
            self._cap = size
            if size > capacity:
                if size - capacity == 1:
                    self._cond.notify()
                else:
                    self._cond.notify_all()

    def stop_purge(self) -> None:
        """Stop the periodic removal of idle workers."""
        if self._purge_stop is not None:
            self._purge_stop.set()
            self._purge_stop = None

    def _dispatch(self, job: Callable[[], Any]) -> None:
        if self._closed:
            raise PoolClosedError("pool is closed")
        worker = self._retrieve_worker()
        if worker is None:
            raise PoolOverloadedError("pool is overloaded")
        worker.put(job)

    def _free_locked(self) -> int:
        if self._cap < 0:
            return -1
        return self._cap - self._running

    def _spawn_locked(self) -> _Worker:
        worker = _Worker(self)
        self._running += 1
        worker.run()
        return worker

    def _retrieve_worker(self) -> Optional[_Worker]:
        with self._lock:
            worker = self._workers.detach()
            if worker is not None:
                return worker
            if self._cap == -1 or self._cap > self._running:
                return self._spawn_locked()
            while True:
                self._waiting += 1
                self._cond.wait()
                self._waiting -= 1
                if self._closed:
                    return None
                worker = self._workers.detach()
                if worker is not None:
                    return worker
                if self._free_locked() > 0:
                    return self._spawn_locked()

    def _revert_worker(self, worker: _Worker) -> bool:
        with self._lock:
            if (self._cap > 0 and self._running > self._cap) or self._closed:
                self._cond.notify_all()
                return False
            worker.last_used = time.monotonic()
            self._workers.insert(worker)
            self._cond.notify()
            return True

    def _worker_exited(self) -> None:
        with self._lock:
            self._running -= 1
            self._cond.notify()

    def _start_purge(self) -> None:
        stop = threading.Event()
        self._purge_stop = stop
        threading.Thread(target=self._purge_stale_workers, args=(stop,), daemon=True).start()

    def _purge_stale_workers(self, stop: threading.Event) -> None:
        while not stop.wait(EXPIRY_DURATION):
            if self._closed:
                return
            with self._lock:
                stale = self._workers.refresh(EXPIRY_DURATION)
                count = self._running
                dormant = count == 0 or count == len(stale)
            if stale:
                print("purge workers:", len(stale))
            for worker in stale:
                worker.finish()
            if dormant and self._waiting > 0:
                with self._lock:
                    self._cond.notify_all()


class WorkerPoolWithFunc(WorkerPool):
    """A pool whose workers all run one function, each call with its own argument."""

    def __init__(self, size: int, func: Callable[[Any], Any]) -> None:
        self._func = func
        super().__init__(size)

    def invoke(self, arg: Any) -> None:
        """Run the pool's function with ``arg`` on a pooled worker."""
        self._dispatch(functools.partial(self._func, arg))