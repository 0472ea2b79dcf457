import queue
import socket
import threading

import pytest

from gtsnet.client import Client
from gtsnet.config import AppConfig
from gtsnet.interfaces import HEARTBEAT_DEFAULT_MSG_ID
from gtsnet.message import DataPack, Message
from gtsnet.router import BaseRouter

PACKER = DataPack(0)


def read_exactly(sock, size):
    data = b""
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            break
        data += chunk
    return data


def read_message(sock):
    msg = PACKER.unpack_head(read_exactly(sock, PACKER.head_len))
    msg.data = read_exactly(sock, msg.data_len)
    return msg


class Recorder(BaseRouter):
    def __init__(self):
        self.received = queue.Queue()

    def handle(self, request):
        self.received.put((request.msg_id, request.data))


@pytest.fixture
def listener():
    sock = socket.create_server(("127.0.0.1", 0))
    sock.settimeout(5)
    yield sock
    sock.close()


def make_client(listener):
    port = listener.getsockname()[1]
    return Client("127.0.0.1", port, config=AppConfig(max_packet_size=0, worker_pool_size=4))


def test_pack_of_client_messages_is_fixed():
    assert PACKER.pack(Message.package(1, b"Hello world")) == (
        b"\x0b\x00\x00\x00\x01\x00\x00\x00Hello world"
    )
    msg = PACKER.unpack(PACKER.pack(Message.package(99999, b"Hello world2222")))
    assert msg.msg_id == 99999
    assert msg.data == b"Hello world2222"


def test_client_sends_framed_messages(listener):
    client = make_client(listener)
    started = threading.Event()
    client.on_conn_start = lambda conn: started.set()
    client.start()
    peer, _ = listener.accept()
    peer.settimeout(5)
    try:
        assert started.wait(5)
        client.conn.send(1, b"Hello world")
        client.conn.send(99999, b"Hello world2222")
        first = read_message(peer)
        second = read_message(peer)
        assert (first.msg_id, first.data) == (1, b"Hello world")
        assert (second.msg_id, second.data) == (99999, b"Hello world2222")
    finally:
        client.stop()
        peer.close()


def test_client_routes_server_messages(listener):
    client = make_client(listener)
    recorder = Recorder()
    client.add_router(1, recorder)
    client.start()
    peer, _ = listener.accept()
    try:
        peer.sendall(PACKER.pack(Message.package(1, b"Hello world Start")))
        assert recorder.received.get(timeout=5) == (1, b"Hello world Start")
        assert client.conn.config.worker_pool_size == 0
    finally:
        client.stop()
        peer.close()


def test_stop_closes_connection_and_runs_hook(listener):
    client = make_client(listener)
    stopped = []
    client.on_conn_stop = lambda conn: stopped.append(conn.conn_id)
    client.start()
    peer, _ = listener.accept()
    peer.settimeout(5)
    try:
        client.stop()
        assert stopped == [0]
        assert client.conn.is_closed
        assert read_exactly(peer, 1) == b""
    finally:
        peer.close()


def test_stop_before_start_raises():
    client = Client("127.0.0.1", 1, config=AppConfig())
    with pytest.raises(RuntimeError):
        client.stop()


def test_start_fails_when_server_is_absent():
    probe = socket.create_server(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    client = Client("127.0.0.1", port, config=AppConfig())
    with pytest.raises(OSError):
        client.start()
    assert client.conn is None


def test_start_heartbeat_binds_connection(listener):
    client = make_client(listener)
    client.start_heartbeat()
    assert client.heartbeat.interval == 15
    assert client.msg_handler.apis[HEARTBEAT_DEFAULT_MSG_ID] is client.heartbeat.router
    client.start()
    peer, _ = listener.accept()
    try:
        assert client.heartbeat.conn is client.conn
        assert client.conn.heartbeat is client.heartbeat
    finally:
        client.stop()
        peer.close()