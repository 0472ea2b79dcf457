"""Server that accepts TCP and WebSocket connections and routes their messages."""

from __future__ import annotations

import signal
import socket
import threading
from typing import Any, Callable, Optional

from websockets.sync.server import serve as ws_serve

from . import config as settings
from .connection import TcpConnection, WsConnection
from .connmanager import ConnManager
from .heartbeat import Heartbeat
from .msghandler import MsgHandler
from .snowflake import SnowflakeError, SnowflakeGenerator

_POLL_SECONDS = 0.2

ConnHook = Callable[[Any], None]


def _echo_subprotocol(connection: Any, subprotocols: Any) -> Optional[str]:
    """Accept the first subprotocol the peer asked for, as the upgrader does."""
    return subprotocols[0] if subprotocols else None


class Server:
    """Listens on the transports enabled in the config and serves connections."""

    def __init__(self, config: Optional[settings.AppConfig] = None) -> None:
        self.config = config if config is not None else settings.conf
        self.name = self.config.name
        self.ip_version = self.config.ip_version
        self.ip = self.config.ip
        self.port = self.config.port
        self.ws_port = self.config.ws_port
        self.msg_handler = MsgHandler(self.config.worker_pool_size)
        self.conn_mgr = ConnManager()
        self.on_conn_start: Optional[ConnHook] = None
        self.on_conn_stop: Optional[ConnHook] = None
        self.heartbeat: Optional[Heartbeat] = None
        self.tcp_address: Any = None
        self.ws_address: Any = None
        self._ids = SnowflakeGenerator(self.config.worker_id, self.config.datacenter_id)
        self._exit = threading.Event()
        self._ready: list[threading.Event] = []
        self._listener: Optional[socket.socket] = None
        self._ws_server: Any = None

    # life cycle -------------------------------------------------------

    def start(self) -> None:
        """Start the worker pool and a listener for each enabled transport."""
        self._exit = threading.Event()
        self.msg_handler.start_worker_pool()
        self._ready = []
        if self.config.tcp_mode:
            self._launch(self._serve_tcp)
        if self.config.ws_mode:
            self._launch(self._serve_ws)
        if self.config.quic_mode:
            print("[START] QUIC transport is not available here; skipped")
        if self.config.kcp_mode:
            print("[START] KCP transport is not available here; skipped")

    def wait_until_listening(self, timeout: float = 5.0) -> bool:
        """Wait until every started listener has bound (or failed to)."""
        return all(ready.wait(timeout) for ready in self._ready)

    def stop(self) -> None:
        """Stop every connection and close the listeners."""
        print("[STOP] Gts server , name", self.name)
        self.conn_mgr.clear_conn()
        self._exit.set()
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.close()
        ws_server, self._ws_server = self._ws_server, None
        if ws_server is not None:
            ws_server.shutdown()

    def serve(self) -> signal.Signals:
        """Start, block until SIGINT or SIGTERM, then stop; return the signal."""
        self.start()
        received: list[int] = []
        caught = threading.Event()

        def on_signal(signum: int, frame: Any) -> None:
            received.append(signum)
            caught.set()

        watched = (signal.SIGINT, signal.SIGTERM)
        previous = {sig: signal.signal(sig, on_signal) for sig in watched}
        try:
            while not caught.wait(_POLL_SECONDS):
                pass
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
        sig = signal.Signals(received[0])
        print(f"[SERVE] {self.name}, Serve Interrupt, signal = {sig.name}")
        self.stop()
        return sig

    # routing ----------------------------------------------------------

    def add_router(self, msg_id: int, router: Any) -> None:
        """Register ``router`` for messages with id ``msg_id``."""
        self.msg_handler.add_router(msg_id, router)
        print("Add Router success!")

    def start_heartbeat(self) -> None:
        """Enable heartbeat checking for connections accepted from now on."""
        heartbeat = Heartbeat(self.config.heartbeat_interval())
        self.add_router(heartbeat.msg_id, heartbeat.router)
        self.heartbeat = heartbeat

    # transports -------------------------------------------------------

    def _launch(self, target: Callable[[threading.Event], None]) -> None:
        ready = threading.Event()
        self._ready.append(ready)
        threading.Thread(target=target, args=(ready,), daemon=True).start()

    def _family(self) -> socket.AddressFamily:
        if self.ip_version == "tcp6":
            return socket.AF_INET6
        if self.ip_version == "tcp4":
            return socket.AF_INET
        return socket.AF_INET6 if ":" in self.ip else socket.AF_INET

    def _at_capacity(self) -> bool:
        return len(self.conn_mgr) >= self.config.max_conn

    def _next_id(self) -> Optional[int]:
        try:
            return self._ids.next_id()
        except SnowflakeError as exc:
            print("Id gen err", exc)
            return None

    def _serve_tcp(self, ready: threading.Event) -> None:
        print(f"[START] Tcp Server listener at IP: {self.ip}, Port {self.port}, is starting")
        try:
            listener = socket.create_server((self.ip, self.port), family=self._family())
        except OSError as exc:
            print("listen", self.ip_version, "err", exc)
            ready.set()
            return
        listener.settimeout(_POLL_SECONDS)
        self._listener = listener
        self.tcp_address = listener.getsockname()
        ready.set()
        print("start Gts server", self.name, "success, now listening...")
        with listener:
            while not self._exit.is_set():
                if self._at_capacity():
                    self._exit.wait(_POLL_SECONDS)
                    continue
                try:
                    sock, _ = listener.accept()
                except socket.timeout:
                    continue
                except OSError as exc:
                    if self._exit.is_set():
                        break
                    print("Accept err", exc)
                    continue
                sock.settimeout(None)
                conn_id = self._next_id()
                if conn_id is None:
                    sock.close()
                    continue
                conn = TcpConnection(
                    sock,
                    conn_id,
                    self.msg_handler,
                    self.conn_mgr,
                    self.on_conn_start,
                    self.on_conn_stop,
                    config=self.config,
                )
                if self.heartbeat is not None:
                    self.heartbeat.clone().bind_conn(conn)
                threading.Thread(target=conn.start, daemon=True).start()

    def _serve_ws(self, ready: threading.Event) -> None:
        print(f"[START] WS Server listener at IP: {self.ip}, Port {self.ws_port}, is starting")
        try:
            server = ws_serve(
                self._handle_ws,
                self.ip,
                self.ws_port,
                select_subprotocol=_echo_subprotocol,
            )
        except OSError as exc:
            print("start ws err:", exc)
            ready.set()
            return
        self._ws_server = server
        self.ws_address = server.socket.getsockname()
        ready.set()
        server.serve_forever()

    def _handle_ws(self, ws: Any) -> None:
        if self._at_capacity():
            print("Exceeded the maxConn")
            ws.close()
            return
        conn_id = self._next_id()
        if conn_id is None:
            ws.close()
            return
        conn = WsConnection(
            ws,
            conn_id,
            self.msg_handler,
            self.conn_mgr,
            self.on_conn_start,
            self.on_conn_stop,
            config=self.config,
        )
        conn.start()