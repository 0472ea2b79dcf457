import io

import pytest

from gtsnet.message import DataPack, Message, PacketTooLargeError, Request


def test_pack_then_unpack_round_trip():
    dp = DataPack(max_packet_size=0)
    packed = dp.pack(Message.package(1, b"dada1313"))
    unpacked = dp.unpack(packed)
    assert unpacked.msg_id == 1
    assert unpacked.data == b"dada1313"
    assert unpacked.data_len == 8


def test_pack_wire_bytes():
    dp = DataPack(max_packet_size=0)
    packed = dp.pack(Message.package(1, b"dada1313"))
    assert packed == b"\x08\x00\x00\x00\x01\x00\x00\x00dada1313"


def test_head_len_is_eight():
    assert DataPack(max_packet_size=0).head_len == 8


def test_sticky_packets_are_split_by_header():
    dp = DataPack(max_packet_size=0)
    msg1 = Message(msg_id=0, data=b"hello", data_len=5)
    msg2 = Message(msg_id=1, data=b"world!!", data_len=7)
    stream = io.BytesIO(dp.pack(msg1) + dp.pack(msg2))

    received = []
    while True:
        head = stream.read(dp.head_len)
        if not head:
            break
        msg = dp.unpack_head(head)
        if msg.data_len > 0:
            msg.data = stream.read(msg.data_len)
        received.append((msg.msg_id, msg.data_len, msg.data))

    assert received == [(0, 5, b"hello"), (1, 7, b"world!!")]


def test_unpack_head_leaves_data_empty():
    dp = DataPack(max_packet_size=0)
    msg = dp.unpack_head(dp.pack(Message.package(1, b"Hello world")))
    assert msg.msg_id == 1
    assert msg.data_len == len(b"Hello world")
    assert msg.data == b""


def test_too_large_packet_rejected():
    dp = DataPack(max_packet_size=4)
    packed = dp.pack(Message.package(1, b"Hello world"))
    with pytest.raises(PacketTooLargeError):
        dp.unpack_head(packed)
    with pytest.raises(PacketTooLargeError):
        dp.unpack(packed)


def test_limit_allows_exact_size():
    dp = DataPack(max_packet_size=5)
    assert dp.unpack(dp.pack(Message.package(2, b"hello"))).data == b"hello"


def test_short_head_rejected():
    with pytest.raises(ValueError):
        DataPack(max_packet_size=0).unpack_head(b"\x01\x00\x00")


def test_truncated_data_rejected():
    dp = DataPack(max_packet_size=0)
    packed = dp.pack(Message.package(1, b"Hello world"))
    with pytest.raises(ValueError):
        dp.unpack(packed[:-1])


def test_out_of_range_id_rejected():
    with pytest.raises(ValueError):
        DataPack(max_packet_size=0).pack(Message.package(-1, b"x"))


def test_request_exposes_message_fields():
    msg = Message.package(99999, b"Hello world2222")
    request = Request(conn="conn", msg=msg)
    assert request.msg_id == 99999
    assert request.data == b"Hello world2222"
    assert request.conn == "conn"