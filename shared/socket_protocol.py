from __future__ import annotations

import base64
import json
import socket
from typing import Any


def send_json_line(sock: socket.socket, payload: dict[str, Any]) -> None:
    body = (json.dumps(payload) + "\n").encode("utf-8")
    sock.sendall(body)


def read_json_line(sock: socket.socket, buffer: bytearray | None = None) -> dict[str, Any]:
    # Bytes past the first newline stay in `buffer` for the next call.
    data = buffer if buffer is not None else bytearray()
    while b"\n" not in data:
        chunk = sock.recv(65536)
        if not chunk:
            break
        data.extend(chunk)

    if not data:
        raise ConnectionError("No data received")

    line, _, rest = bytes(data).partition(b"\n")
    data[:] = rest
    return json.loads(line.decode("utf-8"))


def encode_block(data: bytes | None) -> str | None:
    if data is None:
        return None
    return base64.b64encode(data).decode("ascii")


def decode_block(text: str | None) -> bytes | None:
    if text is None:
        return None
    return base64.b64decode(text.encode("ascii"), validate=True)


class SocketProtocol:
    """Frame helper that keeps a receive buffer per connection."""

    def __init__(self) -> None:
        self._pending = bytearray()

    def send_frame(self, sock: socket.socket, payload: dict[str, Any]) -> None:
        send_json_line(sock, payload)

    def receive_frame(self, sock: socket.socket) -> dict[str, Any] | None:
        try:
            return read_json_line(sock, self._pending)
        except ConnectionError:
            return None
