"""Thread-safe registry of live connections keyed by connection id."""

from __future__ import annotations

import threading
from typing import Any


class ConnectionNotFoundError(LookupError):
    """Raised when no connection has the requested id."""


class ConnManager:
    """Keeps the connections a server currently holds."""

    def __init__(self) -> None:
        self._connections: dict[int, Any] = {}
        self._lock = threading.RLock()

    def add(self, conn: Any) -> None:
        with self._lock:
            self._connections[conn.conn_id] = conn
        print("connection add to ConnManager successfully: Conn num =", len(self))

    def remove(self, conn: Any) -> None:
        with self._lock:
            self._connections.pop(conn.conn_id, None)
        print(
            "connection Remove ConnID=", conn.conn_id,
            "successfully: Conn num =", len(self),
        )

    def get(self, conn_id: int) -> Any:
        with self._lock:
            try:
                return self._connections[conn_id]
            except KeyError:
                raise ConnectionNotFoundError("connection not found") from None

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def clear_conn(self) -> None:
        """Stop every connection and forget it."""
        with self._lock:
            for conn_id, conn in list(self._connections.items()):
                conn.stop()
                self._connections.pop(conn_id, None)
        print("Clear All Connections successfully: Conn num =", len(self))

    def all_conn_ids(self) -> list[int]:
        with self._lock:
            return list(self._connections)