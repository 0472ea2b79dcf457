"""Periodic liveness checking of a connection."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from .interfaces import HEARTBEAT_DEFAULT_MSG_ID
from .router import HeartbeatDefaultRouter


def make_default_msg(conn: Any) -> bytes:
    """Default heartbeat payload naming both ends of the connection."""
    return f"heartbeat [{conn.local_addr()}->{conn.remote_addr()}]".encode()


def not_alive_default(conn: Any) -> None:
    """Default action for a dead peer: stop the connection."""
    print(f"Remote connection {conn.remote_addr()} is not alive, stop it")
    conn.stop()


class Heartbeat:
    """Every ``interval`` seconds, pings a live connection or acts on a dead one."""

    def __init__(self, interval: float) -> None:
        self.interval = interval
        self.msg_id = HEARTBEAT_DEFAULT_MSG_ID
        self.router: Any = HeartbeatDefaultRouter()
        self.make_msg: Callable[[Any], bytes] = make_default_msg
        self.on_remote_not_alive: Callable[[Any], None] = not_alive_default
        self.conn: Any = None
        self._quit = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def set_on_remote_not_alive(self, func: Optional[Callable[[Any], None]]) -> None:
        if func is not None:
            self.on_remote_not_alive = func

    def set_heartbeat_msg_func(self, func: Optional[Callable[[Any], bytes]]) -> None:
        if func is not None:
            self.make_msg = func

    def bind_router(self, msg_id: int, router: Any) -> None:
        """Use a custom router and id; the default id cannot be rebound."""
        if router is not None and msg_id != HEARTBEAT_DEFAULT_MSG_ID:
            self.msg_id = msg_id
            self.router = router

    def start(self) -> None:
        """Begin checking in a background thread."""
        quit_event = threading.Event()
        self._quit = quit_event
        self._thread = threading.Thread(target=self._run, args=(quit_event,), daemon=True)
        self._thread.start()

    def _run(self, quit_event: threading.Event) -> None:
        while not quit_event.wait(self.interval):
            try:
                self.check()
            except Exception as exc:
                print("Heartbeat err:", exc)
                return

    def stop(self) -> None:
        """Stop checking."""
        conn_id = getattr(self.conn, "conn_id", None)
        print(f"heartbeat checker stop, connID={conn_id}")
        self._quit.set()

    def send_heartbeat_msg(self) -> None:
        """Send one heartbeat message on the bound connection."""
        msg = self.make_msg(self.conn)
        try:
            self.conn.send(self.msg_id, msg)
        except Exception as exc:
            print(f"send heartbeat msg error: {exc}, msgId={self.msg_id} msg={msg!r}")
            raise

    def check(self) -> None:
        """Ping the peer if alive; otherwise run the dead-peer action and stop."""
        if self.conn is None:
            raise RuntimeError("conn is not exist")
        if not self.conn.is_alive():
            self.on_remote_not_alive(self.conn)
            self._quit.set()
        else:
            self.send_heartbeat_msg()

    def bind_conn(self, conn: Any) -> None:
        """Attach this checker to ``conn``."""
        print("BindConn:", conn.conn_id)
        self.conn = conn
        conn.set_heartbeat(self)

    def clone(self) -> "Heartbeat":
        """A fresh checker with the same settings and no connection."""
        copy = Heartbeat(self.interval)
        copy.make_msg = self.make_msg
        copy.on_remote_not_alive = self.on_remote_not_alive
        copy.msg_id = self.msg_id
        copy.router = self.router
        return copy