# gtsnet

A small server framework that routes length-prefixed binary messages arriving over TCP or
WebSocket to handlers you register by message ID.

## Features

- A simple wire format: a little-endian header of data length (4 bytes) and message ID
  (4 bytes), then the payload (`gtsnet.message.DataPack`, `gtsnet.message.Message`).
- Routers with pre-, main and post-handling steps (`gtsnet.router.BaseRouter`). The pre and
  post steps run optional hooks passed to the constructor.
- Dispatch by message ID through `gtsnet.msghandler.MsgHandler`. When `worker_pool_size` is
  above 0, requests run on a bounded pool of worker threads
  (`gtsnet.pool.WorkerPoolWithFunc`). Otherwise each request runs on its own thread.
- Connection start and stop hooks, and per-connection properties
  (`set_property`, `get_property`, `remove_property` on `gtsnet.connection.BaseConnection`).
- Optional heartbeat checking (`gtsnet.heartbeat.Heartbeat`). A checker pings the peer every
  `heartbeat_interval` seconds. When the peer has sent nothing under the heartbeat message
  ID (99999) for `heartbeat_max_time` seconds, the checker stops the connection.
- Unique connection IDs from a snowflake generator (`gtsnet.snowflake.SnowflakeGenerator`).
- Configuration from a YAML file, optionally reloaded when the file changes
  (`gtsnet.config.init_settings`, `gtsnet.config.load_config`).
- A leveled logger that prints to stdout and can also append to dated log files
  (`gtsnet.logger.init_logger`, `gtsnet.logger.init_logger_default`).

## Installation

```
pip install .
```

To install and run the tests:

```
pip install ".[test]"
pytest
```

## Configuration

Settings are read from a YAML file. These are the keys:

```yaml
name: gts-demo
ip: 0.0.0.0
port: 7777
ws_port: 8888
ip_version: tcp4        # tcp4, tcp6, or anything else to guess from ip
tcp_mode: true
ws_mode: false
max_conn: 1000
max_packet_size: 4096   # 0 means no limit
worker_pool_size: 10    # 0 dispatches each request on its own thread
heartbeat_interval: 5
heartbeat_max_time: 15
worker_id: 1
datacenter_id: 1
log_level: debug
log_path: ./logs
```

Unknown keys are ignored. A value that cannot be read as the right type raises `ValueError`.

## Running the demo server

```
gtsnet
gtsnet --config path/to/config.yaml
```

By default the demo server reads `./conf/config.yaml`. It answers a message with ID 1 by
sending `ping...ping...ping`, and a message with ID 2 by sending `ping2...ping2...ping2`.
Both replies go out under message ID 1. When a connection opens, the server sets some
properties on it, and it prints them when the connection closes. The server stops on
SIGINT (Ctrl+C) or SIGTERM.

## Writing your own server

```python
from gtsnet.config import init_settings
from gtsnet.router import BaseRouter
from gtsnet.server import Server


class EchoRouter(BaseRouter):
    def handle(self, request):
        request.conn.send(request.msg_id, request.data)


config = init_settings("./conf/config.yaml", watch=False)
server = Server(config)
server.add_router(1, EchoRouter())
server.start_heartbeat()   # optional
server.serve()             # blocks until SIGINT or SIGTERM, then stops
```

To run the server without blocking, call `server.start()`, then
`server.wait_until_listening()`, and later `server.stop()`. After it starts,
`server.tcp_address` and `server.ws_address` hold the bound addresses.

Registering two routers for the same message ID raises
`gtsnet.msghandler.DuplicateRouteError`. Sending on a stopped connection raises
`gtsnet.connection.ConnectionClosedError`.

## Packing messages by hand

```python
from gtsnet.message import DataPack, Message

dp = DataPack(max_packet_size=4096)
frame = dp.pack(Message.package(1, b"hello"))
msg = dp.unpack(frame)
assert msg.msg_id == 1 and msg.data == b"hello"
```

A header that announces more data than `max_packet_size` raises
`gtsnet.message.PacketTooLargeError`.

## Client

`gtsnet.client.Client(ip, port, config)` opens one TCP connection to a server. Routers and
hooks work the same way as the server's. The client handles each received message on its
own thread. `start()` raises `OSError` if the server cannot be reached. `start_heartbeat()`
checks the connection every 15 seconds.

## What it does not do

- Only TCP and WebSocket transports exist. If `quic_mode` or `kcp_mode` is set in the
  config, the server prints a notice and skips that transport.
- The client speaks plain TCP only. It has no WebSocket client.
- Messages are raw bytes. There is no serialization layer beyond the 8-byte header.