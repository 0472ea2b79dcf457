"""Message-routing server framework: framed messages over TCP and WebSocket, routers,
worker pools, heartbeats, snowflake ids, YAML settings and logging."""

__version__ = "0.1.0"
__all__ = ["__version__"]