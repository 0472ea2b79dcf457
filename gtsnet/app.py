"""Example server with two ping routes and connection hooks."""

from __future__ import annotations

import argparse
from typing import Any, Optional, Sequence

from .config import init_settings
from .connection import ConnectionClosedError, PropertyNotFoundError
from .router import BaseRouter
from .server import Server

DEFAULT_CONFIG = "./conf/config.yaml"
_PROPERTY_KEYS = ("name", "key1", "key2", "key3")


class PingRouter(BaseRouter):
    """Answers message 1 with a ping line."""

    def handle(self, request: Any) -> None:
        print("Call PingRouter Handle")
        try:
            request.conn.send(1, b"ping...ping...ping\n")
        except (ConnectionClosedError, ValueError):
            print("call back ping ping ping error")


class Ping2Router(BaseRouter):
    """Answers message 2 with a second ping line."""

    def handle(self, request: Any) -> None:
        print("Call PingRouter Handle")
        try:
            request.conn.send(1, b"ping2...ping2...ping2\n")
        except (ConnectionClosedError, ValueError):
            print("call back ping ping ping error")


def handle_start(conn: Any) -> None:
    """Give a new connection its properties."""
    print("Start")
    print("Set Property")
    conn.set_property("name", "ST")
    conn.set_property("key1", "Test1")
    conn.set_property("key2", "Test2")
    conn.set_property("key3", "Test3")


def handle_stop(conn: Any) -> None:
    """Print the properties of a closing connection."""
    print("Stop")
    for key in _PROPERTY_KEYS:
        try:
            print(conn.get_property(key))
        except PropertyNotFoundError as exc:
            print(None, exc)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run the message server.")
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="YAML settings file")
    args = parser.parse_args(argv)

    init_settings(args.config)
    server = Server()
    server.on_conn_start = handle_start
    server.on_conn_stop = handle_stop
    server.add_router(1, PingRouter())
    server.add_router(2, Ping2Router())
    server.serve()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())