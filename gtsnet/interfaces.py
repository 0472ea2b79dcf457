"""Structural interfaces shared by the server, client and their parts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Protocol, runtime_checkable

HEARTBEAT_DEFAULT_MSG_ID = 99999

HeartbeatMsgFunc = Callable[["Connection"], bytes]
OnRemoteNotAlive = Callable[["Connection"], None]
ConnHook = Callable[["Connection"], None]


@runtime_checkable
class Connection(Protocol):
    """One live connection to a peer."""

    conn_id: int

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def remote_addr(self) -> Any: ...

    def local_addr(self) -> Any: ...

    def send(self, msg_id: int, data: bytes) -> None: ...

    def set_property(self, key: str, value: Any) -> None: ...

    def get_property(self, key: str) -> Any: ...

    def remove_property(self, key: str) -> None: ...

    def is_alive(self) -> bool: ...

    def set_heartbeat(self, heartbeat: "Heartbeat") -> None: ...


@runtime_checkable
class ConnManager(Protocol):
    """Registry of live connections by id."""

    def add(self, conn: Connection) -> None: ...

    def remove(self, conn: Connection) -> None: ...

    def get(self, conn_id: int) -> Connection: ...

    def __len__(self) -> int: ...

    def clear_conn(self) -> None: ...

    def all_conn_ids(self) -> list[int]: ...


@runtime_checkable
class DataPacker(Protocol):
    """Frames messages on a byte stream with a length and id header."""

    def pack(self, msg: Any) -> bytes: ...

    def unpack(self, data: bytes) -> Any: ...


@runtime_checkable
class Request(Protocol):
    """A message received on a connection."""

    conn: Connection

    @property
    def data(self) -> bytes: ...

    @property
    def msg_id(self) -> int: ...


@runtime_checkable
class Router(Protocol):
    """Handler for one message id, with hooks around the main step."""

    def pre_handle(self, request: Request) -> None: ...

    def handle(self, request: Request) -> None: ...

    def post_handle(self, request: Request) -> None: ...


@runtime_checkable
class Heartbeat(Protocol):
    """Periodic liveness checker bound to one connection."""

    msg_id: int
    router: Router

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def clone(self) -> "Heartbeat": ...

    def send_heartbeat_msg(self) -> None: ...

    def set_on_remote_not_alive(self, func: Optional[OnRemoteNotAlive]) -> None: ...

    def set_heartbeat_msg_func(self, func: Optional[HeartbeatMsgFunc]) -> None: ...

    def bind_router(self, msg_id: int, router: Optional[Router]) -> None: ...

    def bind_conn(self, conn: Connection) -> None: ...


@runtime_checkable
class MsgHandler(Protocol):
    """Dispatches requests to the router registered for their id."""

    def do_msg_handler(self, request: Request) -> None: ...

    def add_router(self, msg_id: int, router: Router) -> None: ...

    def start_worker_pool(self) -> None: ...

    def send_msg_to_task_queue(self, request: Request) -> None: ...


@runtime_checkable
class Server(Protocol):
    """Accepts connections and routes their messages."""

    conn_mgr: ConnManager
    msg_handler: MsgHandler
    on_conn_start: Optional[ConnHook]
    on_conn_stop: Optional[ConnHook]
    heartbeat: Optional[Heartbeat]

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def serve(self) -> None: ...

    def add_router(self, msg_id: int, router: Router) -> None: ...

    def start_heartbeat(self) -> None: ...


@runtime_checkable
class Client(Protocol):
    """Opens one connection to a server and routes its messages."""

    conn: Optional[Connection]
    msg_handler: MsgHandler
    on_conn_start: Optional[ConnHook]
    on_conn_stop: Optional[ConnHook]

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def add_router(self, msg_id: int, router: Router) -> None: ...

    def start_heartbeat(self) -> None: ...


@dataclass
class HeartbeatOption:
    """User choices for heartbeat message, dead-peer action, id and router."""

    make_msg: Optional[HeartbeatMsgFunc] = None
    on_remote_not_alive: Optional[OnRemoteNotAlive] = None
    msg_id: int = HEARTBEAT_DEFAULT_MSG_ID
    router: Optional[Router] = None


__all__: Iterable[str] = (
    "HEARTBEAT_DEFAULT_MSG_ID",
    "HeartbeatMsgFunc",
    "OnRemoteNotAlive",
    "ConnHook",
    "Connection",
    "ConnManager",
    "DataPacker",
    "Request",
    "Router",
    "Heartbeat",
    "MsgHandler",
    "Server",
    "Client",
    "HeartbeatOption",
)