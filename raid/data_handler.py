"""
RAID Bus Server

TCP socket server fronting a RaidArray.
Each frame carries one bus request; the reply carries the response opcode
and, for READ, the block payload.

Protocol: Newline-delimited JSON over TCP (from shared/socket_protocol.py)
"""

import socket
import threading
import logging
from typing import Dict, Optional

from raid.array import RaidArray
from shared.socket_protocol import SocketProtocol, decode_block, encode_block

logger = logging.getLogger(__name__)


class RaidBusServer:
    """
    RAID bus endpoint.
    Serves any number of driver connections; the array serializes the requests.
    """

    def __init__(self, host: str, port: int, array: RaidArray):
        """
        Initialize RAID bus server.

        Args:
            host: Listen address (e.g., "0.0.0.0" or "127.0.0.1")
            port: Listen port (0 picks a free port)
            array: Array that executes the requests
        """
        self.host = host
        self.port = port
        self.array = array

        self.server_socket: Optional[socket.socket] = None
        self.running = False
        self._ready = threading.Event()

        logger.info(f"RAID bus server initialized: {host}:{port}")

    def start(self):
        """Bind, then serve until stop() is called"""
        self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server_socket.bind((self.host, self.port))
        self.server_socket.listen(5)
        self.port = self.server_socket.getsockname()[1]
        self.running = True
        self._ready.set()

        logger.info(f"RAID bus server listening on {self.host}:{self.port}")

        while self.running:
            try:
                client_socket, client_addr = self.server_socket.accept()
                logger.debug(f"Accepted connection from {client_addr}")

                client_thread = threading.Thread(
                    target=self._handle_client,
                    args=(client_socket, client_addr),
                    daemon=True
                )
                client_thread.start()

            except OSError as e:
                if self.running:
                    logger.error(f"Error accepting connection: {e}")

    def start_background(self, timeout: float = 5.0) -> threading.Thread:
        """Run start() in a daemon thread and wait until the socket is listening"""
        thread = threading.Thread(target=self.start, daemon=True)
        thread.start()
        if not self._ready.wait(timeout):
            raise RuntimeError(f"RAID bus server did not start on {self.host}:{self.port}")
        return thread

    def stop(self):
        """Stop the server"""
        self.running = False
        if self.server_socket:
            self.server_socket.close()
        logger.info("RAID bus server stopped")

    def _handle_client(self, client_socket: socket.socket, client_addr):
        """Handle a single driver connection"""
        protocol = SocketProtocol()
        try:
            while True:
                frame = protocol.receive_frame(client_socket)
                if frame is None:
                    break  # Connection closed

                response = self._process_request(frame)
                protocol.send_frame(client_socket, response)

        except Exception as e:
            logger.error(f"Error handling client {client_addr}: {e}")
        finally:
            client_socket.close()
            logger.debug(f"Connection closed: {client_addr}")

    def _process_request(self, request: Dict) -> Dict:
        """
        Execute one bus frame.

        Request format:
        {
            "opcode": int,          # packed 64-bit request
            "data_b64": str | None  # block payload for WRITE
        }
        """
        opcode = request.get("opcode")
        if not isinstance(opcode, int):
            logger.warning(f"Rejecting frame without an integer opcode: {request!r}")
            return {"opcode": 0, "data_b64": None}

        try:
            data = decode_block(request.get("data_b64"))
        except ValueError as e:
            logger.warning(f"Rejecting frame with invalid base64 payload: {e}")
            data = None

        response, payload = self.array.request(opcode, data)
        return {"opcode": response, "data_b64": encode_block(payload)}
