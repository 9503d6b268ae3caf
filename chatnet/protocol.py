"""Wire format of chat messages and helpers to move them over a socket."""

from __future__ import annotations

import socket
import struct
from dataclasses import dataclass

BUFFER_LENGTH = 1024
NAME_LENGTH = 13
MAX_NICKNAME_LENGTH = 50

# nickname, message, padding to align the int, flags, recipient, tail padding
_LAYOUT = struct.Struct(f"<{NAME_LENGTH}s{BUFFER_LENGTH}s3xi{NAME_LENGTH}s3x")
MESSAGE_SIZE = _LAYOUT.size


class ConnectionClosed(ConnectionError):
    """The peer closed the connection or nothing could be read."""


def _encode_field(text: str, length: int) -> bytes:
    """Encode text into a fixed field, always leaving room for a terminator."""
    return text.encode("utf-8")[: length - 1]


def _decode_field(raw: bytes) -> str:
    """Decode a null-terminated field."""
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")


@dataclass
class Message:
    """A message sent between users of the chat server."""

    nickname: str = ""
    message: str = ""
    flags: int = 0
    recipient: str = ""

    def pack(self) -> bytes:
        """Return the fixed-size wire representation of the message."""
        return _LAYOUT.pack(
            _encode_field(self.nickname, NAME_LENGTH),
            _encode_field(self.message, BUFFER_LENGTH),
            self.flags,
            _encode_field(self.recipient, NAME_LENGTH),
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "Message":
        """Decode a message; shorter input is treated as zero-filled."""
        if len(data) > MESSAGE_SIZE:
            raise ValueError(
                f"message data is {len(data)} bytes, at most {MESSAGE_SIZE} allowed"
            )
        padded = bytes(data) + bytes(MESSAGE_SIZE - len(data))
        nickname, text, flags, recipient = _LAYOUT.unpack(padded)
        return cls(
            nickname=_decode_field(nickname),
            message=_decode_field(text),
            flags=flags,
            recipient=_decode_field(recipient),
        )


def server_address(port: int) -> tuple[str, int]:
    """Return the address a server listens on for the given port."""
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port out of range: {port}")
    return ("0.0.0.0", port)


def read_message(sock: socket.socket) -> Message:
    """Read one message from a connected socket.

    Raises ConnectionClosed when the peer has closed the connection.
    """
    chunks: list[bytes] = []
    received = 0
    while received < MESSAGE_SIZE:
        try:
            chunk = sock.recv(MESSAGE_SIZE - received)
        except OSError as exc:
            raise ConnectionClosed(str(exc)) from exc
        if not chunk:
            break
        chunks.append(chunk)
        received += len(chunk)
    if received == 0:
        raise ConnectionClosed("connection closed by peer")
    return Message.from_bytes(b"".join(chunks))


def send_message(sock: socket.socket, message: Message) -> None:
    """Send a message over a connected socket."""
    sock.sendall(message.pack())