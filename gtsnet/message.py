"""Length-prefixed message framing and the request that carries a message."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Optional

from . import config

_HEAD = struct.Struct("<II")


class PacketTooLargeError(ValueError):
    """Raised when a header announces more data than the configured maximum."""


@dataclass
class Message:
    """One message: an id and its payload; ``data_len`` defaults to ``len(data)``."""

    msg_id: int
    data: bytes = b""
    data_len: Optional[int] = None

    def __post_init__(self) -> None:
        if self.data_len is None:
            self.data_len = len(self.data)

    @classmethod
    def package(cls, msg_id: int, data: bytes) -> "Message":
        """Build a message whose length is taken from ``data``."""
        return cls(msg_id=msg_id, data=bytes(data), data_len=len(data))


class DataPack:
    """Packs messages as ``data_len (u32 LE) | msg_id (u32 LE) | data``.

    ``max_packet_size`` of 0 means no limit; ``None`` uses the shared config.
    """

    HEAD_LEN = _HEAD.size

    def __init__(self, max_packet_size: Optional[int] = None) -> None:
        self._max_packet_size = max_packet_size

    @property
    def head_len(self) -> int:
        return self.HEAD_LEN

    @property
    def max_packet_size(self) -> int:
        if self._max_packet_size is None:
            return config.conf.max_packet_size
        return self._max_packet_size

    def pack(self, msg: Message) -> bytes:
        """Return the wire form of ``msg``."""
        try:
            head = _HEAD.pack(msg.data_len, msg.msg_id)
        except struct.error as exc:
            raise ValueError(f"cannot pack message header: {exc}") from exc
        return head + bytes(msg.data)

    def unpack_head(self, data: bytes) -> Message:
        """Read only the header; the returned message has empty data."""
        if len(data) < self.HEAD_LEN:
            raise ValueError(
                f"message head needs {self.HEAD_LEN} bytes, got {len(data)}"
            )
        data_len, msg_id = _HEAD.unpack_from(data)
        limit = self.max_packet_size
        if limit > 0 and data_len > limit:
            raise PacketTooLargeError(
                f"too large msg data received DataLen {data_len} MaxDataLen {limit}"
            )
        return Message(msg_id=msg_id, data=b"", data_len=data_len)

    def unpack(self, data: bytes) -> Message:
        """Read a header and the payload it announces from ``data``."""
        msg = self.unpack_head(data)
        end = self.HEAD_LEN + msg.data_len
        if len(data) < end:
            raise ValueError(
                f"message data needs {msg.data_len} bytes, got {len(data) - self.HEAD_LEN}"
            )
        msg.data = bytes(data[self.HEAD_LEN:end])
        return msg


@dataclass
class Request:
    """A message together with the connection it arrived on."""

    conn: Any
    msg: Message

    @property
    def data(self) -> bytes:
        return self.msg.data

    @property
    def msg_id(self) -> int:
        return self.msg.msg_id