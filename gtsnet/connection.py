"""Connections that frame messages over TCP sockets or WebSockets."""

from __future__ import annotations

import queue
import socket
import threading
import time
from typing import Any, Callable, Optional

from websockets.exceptions import ConnectionClosed

from . import config as _settings
from .interfaces import HEARTBEAT_DEFAULT_MSG_ID
from .message import DataPack, Message, Request

_POLL_SECONDS = 0.05

ConnHook = Callable[[Any], None]


class ConnectionClosedError(ConnectionError):
    """Raised when sending on a connection that has been stopped."""


class PropertyNotFoundError(LookupError):
    """Raised when a connection property is not set."""


class BaseConnection:
    """Shared life cycle, properties, sending and dispatch of a connection.

    A connection given a ``conn_manager`` registers itself there on creation
    and is removed from it when stopped.
    """

    def __init__(
        self,
        conn_id: int,
        msg_handler: Any,
        conn_manager: Any = None,
        on_conn_start: Optional[ConnHook] = None,
        on_conn_stop: Optional[ConnHook] = None,
        queue_size: int = 1024,
        config: Optional[_settings.AppConfig] = None,
    ) -> None:
        self.conn_id = conn_id
        self.msg_handler = msg_handler
        self.conn_manager = conn_manager
        self.on_conn_start = on_conn_start
        self.on_conn_stop = on_conn_stop
        self.heartbeat: Any = None
        self.last_activity: Optional[float] = None
        self._config = config
        self._packer = DataPack(None if config is None else config.max_packet_size)
        self._outbox: "queue.Queue[bytes]" = queue.Queue(maxsize=max(queue_size, 0))
        self._closed = False
        self._cancel = threading.Event()
        self._state_lock = threading.RLock()
        self._properties: dict[str, Any] = {}
        self._property_lock = threading.Lock()
        if conn_manager is not None:
            conn_manager.add(self)

    @property
    def config(self) -> _settings.AppConfig:
        return self._config if self._config is not None else _settings.conf

    @property
    def is_closed(self) -> bool:
        return self._closed

    # life cycle -------------------------------------------------------

    def start_reader(self) -> None:
        raise NotImplementedError

    def start_writer(self) -> None:
        raise NotImplementedError

    def remote_addr(self) -> Any:
        raise NotImplementedError

    def local_addr(self) -> Any:
        raise NotImplementedError

    def _write(self, data: bytes) -> None:
        raise NotImplementedError

    def _close_transport(self) -> None:
        raise NotImplementedError

    def start(self) -> None:
        """Run the reader and writer, call the start hook, and block until stopped."""
        print("Conn Start(), ConnID =", self.conn_id)
        if self.heartbeat is not None:
            self.heartbeat.start()
            self.update_activity()
        threading.Thread(target=self.start_reader, daemon=True).start()
        threading.Thread(target=self.start_writer, daemon=True).start()
        self._call_hook(self.on_conn_start)
        self._cancel.wait()

    def stop(self) -> None:
        """Close the connection once; later calls do nothing."""
        print("Conn Stop(), ConnID =", self.conn_id)
        with self._state_lock:
            if self._closed:
                return
            if self.heartbeat is not None:
                self.heartbeat.stop()
            self._closed = True
        self._call_hook(self.on_conn_stop)
        if self.conn_manager is not None:
            self.conn_manager.remove(self)
        try:
            self._close_transport()
        except OSError as exc:
            print("Conn Stop() Error, err =", exc)
            return
        self._cancel.set()

    def _call_hook(self, hook: Optional[ConnHook]) -> None:
        if hook is not None:
            hook(self)

    def _run_writer(self) -> None:
        try:
            while not self._cancel.is_set():
                try:
                    data = self._outbox.get(timeout=_POLL_SECONDS)
                except queue.Empty:
                    continue
                try:
                    self._write(data)
                except Exception as exc:
                    print("Send Data error:", exc, "Conn Writer exit")
                    return
        finally:
            self.stop()

    # messaging --------------------------------------------------------

    def send(self, msg_id: int, data: bytes) -> None:
        """Frame ``data`` under ``msg_id`` and queue it for the peer."""
        if self._closed:
            raise ConnectionClosedError("connection closed when send msg")
        try:
            packed = self._packer.pack(Message.package(msg_id, data))
        except ValueError as exc:
            raise ValueError(f"pack error msg id = {msg_id}") from exc
        self._outbox.put(packed)

    def dispatch(self, msg: Message) -> None:
        """Handle one received message: heartbeat or a request for the routers."""
        if msg.msg_id == HEARTBEAT_DEFAULT_MSG_ID:
            if self.heartbeat is not None:
                self.update_activity()
            return
        request = Request(conn=self, msg=msg)
        if self.config.worker_pool_size > 0:
            self.msg_handler.send_msg_to_task_queue(request)
        else:
            threading.Thread(
                target=self.msg_handler.do_msg_handler, args=(request,), daemon=True
            ).start()

    # properties -------------------------------------------------------

    def set_property(self, key: str, value: Any) -> None:
        with self._property_lock:
            self._properties[key] = value

    def get_property(self, key: str) -> Any:
        with self._property_lock:
            try:
                return self._properties[key]
            except KeyError:
                raise PropertyNotFoundError("no property found") from None

    def remove_property(self, key: str) -> None:
        with self._property_lock:
            self._properties.pop(key, None)

    # liveness ---------------------------------------------------------

    def set_heartbeat(self, heartbeat: Any) -> None:
        self.heartbeat = heartbeat

    def is_alive(self) -> bool:
        """True while open and active within the configured heartbeat max time."""
        if self._closed or self.last_activity is None:
            return False
        return time.monotonic() - self.last_activity < self.config.heartbeat_max_time()

    def update_activity(self) -> None:
        self.last_activity = time.monotonic()


class TcpConnection(BaseConnection):
    """A connection over a stream socket."""

    def __init__(
        self,
        sock: socket.socket,
        conn_id: int,
        msg_handler: Any,
        conn_manager: Any = None,
        on_conn_start: Optional[ConnHook] = None,
        on_conn_stop: Optional[ConnHook] = None,
        queue_size: int = 1024,
        config: Optional[_settings.AppConfig] = None,
    ) -> None:
        self.sock = sock
        super().__init__(
            conn_id, msg_handler, conn_manager, on_conn_start, on_conn_stop,
            queue_size, config,
        )

    def _read_exactly(self, size: int) -> bytes:
        chunks = []
        remaining = size
        while remaining:
            chunk = self.sock.recv(remaining)
            if not chunk:
                raise EOFError("connection closed by peer")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def start_reader(self) -> None:
        """Read framed messages until the stream ends, dispatching each."""
        print("Reader thread is running")
        try:
            while not self._closed:
                try:
                    head = self._read_exactly(self._packer.head_len)
                except (EOFError, OSError) as exc:
                    print("read Msg head error", exc)
                    break
                try:
                    msg = self._packer.unpack_head(head)
                except ValueError as exc:
                    print("unpack err", exc)
                    continue
                if msg.data_len > 0:
                    try:
                        msg.data = self._read_exactly(msg.data_len)
                    except (EOFError, OSError) as exc:
                        print("read Msg data error", exc)
                        break
                self.dispatch(msg)
        finally:
            self.stop()

    def start_writer(self) -> None:
        """Write queued frames to the socket until the connection stops."""
        print("Writer thread is running")
        self._run_writer()

    def _write(self, data: bytes) -> None:
        self.sock.sendall(data)

    def _close_transport(self) -> None:
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.sock.close()

    def remote_addr(self) -> Any:
        return self.sock.getpeername()

    def local_addr(self) -> Any:
        return self.sock.getsockname()


class WsConnection(BaseConnection):
    """A connection over a WebSocket; each binary frame holds one message."""

    def __init__(
        self,
        ws: Any,
        conn_id: int,
        msg_handler: Any,
        conn_manager: Any = None,
        on_conn_start: Optional[ConnHook] = None,
        on_conn_stop: Optional[ConnHook] = None,
        queue_size: int = 1024,
        config: Optional[_settings.AppConfig] = None,
    ) -> None:
        self.ws = ws
        super().__init__(
            conn_id, msg_handler, conn_manager, on_conn_start, on_conn_stop,
            queue_size, config,
        )

    def start_reader(self) -> None:
        """Receive frames until the socket closes, dispatching each message."""
        print("Reader thread is running")
        try:
            while not self._closed:
                try:
                    frame = self.ws.recv()
                except ConnectionClosed as exc:
                    print("error:", exc)
                    break
                except Exception as exc:
                    if self._closed:
                        break
                    print("read Msg error", exc)
                    continue
                if isinstance(frame, str):
                    frame = frame.encode("utf-8")
                try:
                    msg = self._packer.unpack_head(frame)
                except ValueError as exc:
                    print("unpack err", exc)
                    continue
                head = self._packer.head_len
                msg.data = bytes(frame[head:head + msg.data_len])
                self.dispatch(msg)
        finally:
            self.stop()

    def start_writer(self) -> None:
        """Send queued frames as binary messages until the connection stops."""
        self._run_writer()

    def _write(self, data: bytes) -> None:
        self.ws.send(data)

    def _close_transport(self) -> None:
        self.ws.close()

    def remote_addr(self) -> Any:
        return getattr(self.ws, "remote_address", None)

    def local_addr(self) -> Any:
        return getattr(self.ws, "local_address", None)