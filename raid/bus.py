"""
RAID bus transports.

A bus moves one (opcode, payload) request to the array and returns the
(response opcode, payload) reply. LocalRaidBus calls an in-process array;
RaidBusClient reaches a RaidBusServer over TCP with newline-delimited JSON
frames:

    request:  {"opcode": int, "data_b64": str | null}
    response: {"opcode": int, "data_b64": str | null}
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Tuple

from raid.array import RaidArray
from shared.socket_protocol import SocketProtocol, decode_block, encode_block

logger = logging.getLogger(__name__)


class RaidBusError(Exception):
    """The bus could not deliver a request or its reply."""


class RaidBus(Protocol):
    def request(self, opcode: int, data: Optional[bytes] = None) -> Tuple[int, Optional[bytes]]:
        ...


@dataclass
class LocalRaidBus:
    array: RaidArray

    def request(self, opcode: int, data: Optional[bytes] = None) -> Tuple[int, Optional[bytes]]:
        return self.array.request(opcode, data)


@dataclass
class RaidBusClient:
    """TCP bus client; keeps one connection open across requests."""
    host: str
    port: int
    timeout_seconds: float = 10.0
    _sock: Optional[socket.socket] = field(default=None, init=False, repr=False)
    _protocol: SocketProtocol = field(default_factory=SocketProtocol, init=False, repr=False)

    def _connect(self) -> socket.socket:
        if self._sock is None:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout_seconds)
            sock.settimeout(self.timeout_seconds)
            self._sock = sock
            self._protocol = SocketProtocol()
            logger.debug(f"Connected to RAID bus at {self.host}:{self.port}")
        return self._sock

    def request(self, opcode: int, data: Optional[bytes] = None) -> Tuple[int, Optional[bytes]]:
        payload: dict[str, Any] = {"opcode": opcode, "data_b64": encode_block(data)}
        try:
            sock = self._connect()
            self._protocol.send_frame(sock, payload)
            reply = self._protocol.receive_frame(sock)
        except (OSError, ValueError) as e:
            self.close()
            raise RaidBusError(f"RAID bus request to {self.host}:{self.port} failed: {e}") from e

        if reply is None:
            self.close()
            raise RaidBusError(f"RAID bus at {self.host}:{self.port} closed the connection")

        try:
            return int(reply["opcode"]), decode_block(reply.get("data_b64"))
        except (KeyError, TypeError, ValueError) as e:
            raise RaidBusError(f"Malformed RAID bus reply: {reply!r}") from e

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None
