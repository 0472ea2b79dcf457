"""Base router with optional pre/post hooks and the default heartbeat router."""

from __future__ import annotations

from typing import Any, Callable, Optional

Hook = Callable[[Any], None]


class BaseRouter:
    """Subclass and override the steps you need.

    The pre and post steps run the hooks given to the constructor, if any;
    without hooks they leave the request untouched.
    """

    _pre_hook: Optional[Hook] = None
    _post_hook: Optional[Hook] = None

    def __init__(
        self, pre_hook: Optional[Hook] = None, post_hook: Optional[Hook] = None
    ) -> None:
        self._pre_hook = pre_hook
        self._post_hook = post_hook

    def pre_handle(self, request: Any) -> None:
        """Hook run before ``handle``."""
        hook = self._pre_hook
        if hook is not None:
            hook(request)

    def handle(self, request: Any) -> None:
        """Main processing of a request."""

    def post_handle(self, request: Any) -> None:
        """Hook run after ``handle``."""
        hook = self._post_hook
        if hook is not None:
            hook(request)


class HeartbeatDefaultRouter(BaseRouter):
    """Logs heartbeat messages received from the remote side."""

    def handle(self, request: Any) -> None:
        data = bytes(request.data).decode("utf-8", errors="replace")
        print(
            f"Recv Heartbeat from {request.conn.remote_addr()}, "
            f"MsgID = {request.msg_id}, Data = {data}"
        )