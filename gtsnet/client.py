"""Client that opens one framed TCP connection to a server."""

from __future__ import annotations

import dataclasses
import socket
import threading
from typing import Any, Callable, Optional

from . import config as settings
from .connection import TcpConnection
from .heartbeat import Heartbeat
from .msghandler import MsgHandler

CLIENT_HEARTBEAT_INTERVAL = 15.0

ConnHook = Callable[[Any], None]


class Client:
    """Connects to ``ip:port`` and routes the messages the server sends back."""

    def __init__(
        self, ip: str, port: int, config: Optional[settings.AppConfig] = None
    ) -> None:
        self.config = config if config is not None else settings.conf
        self.ip_version = self.config.ip_version
        self.ip = ip
        self.port = port
        self.conn: Optional[TcpConnection] = None
        self.msg_handler = MsgHandler(0)
        self.on_conn_start: Optional[ConnHook] = None
        self.on_conn_stop: Optional[ConnHook] = None
        self.heartbeat: Optional[Heartbeat] = None

    def start(self) -> None:
        """Connect and run the connection in the background.

        Raises ``OSError`` when the server cannot be reached.
        """
        # A client dispatches received messages directly, without a worker pool.
        conn_config = dataclasses.replace(self.config, worker_pool_size=0)
        try:
            sock = socket.create_connection((self.ip, self.port))
        except OSError as exc:
            print(f"client connect to server failed, err:{exc}")
            raise
        conn = TcpConnection(
            sock,
            0,
            self.msg_handler,
            None,
            self.on_conn_start,
            self.on_conn_stop,
            queue_size=1,
            config=conn_config,
        )
        self.conn = conn
        print(f"[START] Client at IP: {self.ip}, Port {self.port}, is starting")
        if self.heartbeat is not None:
            self.heartbeat.bind_conn(conn)
        threading.Thread(target=conn.start, daemon=True).start()

    def stop(self) -> None:
        """Close the connection."""
        if self.conn is None:
            raise RuntimeError("client is not started")
        print(
            f"[STOP] Client LocalAddr: {self.conn.local_addr()}, "
            f"RemoteAddr: {self.conn.remote_addr()}"
        )
        self.conn.stop()

    def add_router(self, msg_id: int, router: Any) -> None:
        """Register ``router`` for messages with id ``msg_id``."""
        self.msg_handler.add_router(msg_id, router)
        print("Add Router success!")

    def start_heartbeat(self) -> None:
        """Enable heartbeat checking for the connection made by ``start``."""
        heartbeat = Heartbeat(CLIENT_HEARTBEAT_INTERVAL)
        self.add_router(heartbeat.msg_id, heartbeat.router)
        self.heartbeat = heartbeat