"""Dispatches requests to routers, directly or through a worker pool."""

from __future__ import annotations

from typing import Any, Optional

from . import config
from .pool import PoolClosedError, PoolOverloadedError, WorkerPoolWithFunc


class DuplicateRouteError(ValueError):
    """Raised when a router is registered twice for the same message id."""


class MsgHandler:
    """Maps message ids to routers and runs them."""

    def __init__(self, worker_pool_size: Optional[int] = None) -> None:
        if worker_pool_size is None:
            worker_pool_size = config.conf.worker_pool_size
        self.worker_pool_size = worker_pool_size
        self.apis: dict[int, Any] = {}
        self.worker_pool: Optional[WorkerPoolWithFunc] = None

    def do_msg_handler(self, request: Any) -> None:
        """Run the router for the request's id now; unknown ids are ignored."""
        handler = self.apis.get(request.msg_id)
        if handler is None:
            print("api msgId =", request.msg_id, "is not FOUND!")
            return
        handler.pre_handle(request)
        handler.handle(request)
        handler.post_handle(request)

    def add_router(self, msg_id: int, router: Any) -> None:
        """Register ``router`` for ``msg_id``."""
        if msg_id in self.apis:
            raise DuplicateRouteError(f"repeated api, msgId = {msg_id}")
        self.apis[msg_id] = router
        print("Add api msgId =", msg_id)

    def start_worker_pool(self) -> None:
        """Create the pool that runs requests handed to the task queue."""
        self.worker_pool = WorkerPoolWithFunc(self.worker_pool_size, self.do_msg_handler)

    def send_msg_to_task_queue(self, request: Any) -> None:
        """Hand the request to a pooled worker."""
        if self.worker_pool is None:
            raise RuntimeError("worker pool not started")
        try:
            self.worker_pool.invoke(request)
        except (PoolClosedError, PoolOverloadedError) as exc:
            print("Invoke err:", exc)