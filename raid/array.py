"""
Simulated RAID Array

Answers RAID bus requests against a set of independent disks.
Every request gets a response that echoes the request fields; bit 32 tells
the driver whether the operation succeeded.

Request handling:
- INIT: create `disk_id` disks of `disk_blocks` blocks each (opens the array)
- FORMAT: zero-fill one disk
- READ / WRITE: move exactly one block at (disk_id, block_address)
- CLOSE: close every disk
"""

import logging
import threading
from typing import Dict, Optional, Tuple, Union

from raid.disk import FileDisk, MemoryDisk
from raid.opcodes import (
    RESERVED_MASK,
    RaidRequestType,
    extract_raid_opcode,
    make_raid_response,
)

logger = logging.getLogger(__name__)

Disk = Union[MemoryDisk, FileDisk]


class RaidRequestError(Exception):
    """A request the array refuses; answered with the success bit cleared."""


class RaidArray:
    """
    In-process RAID array behind the bus.
    Requests are serialized; one request completes before the next starts.
    """

    def __init__(self, disk_blocks: int, block_size: int, storage_root: Optional[str] = None):
        """
        Initialize an array with no disks (INIT creates them).

        Args:
            disk_blocks: Physical blocks per disk
            block_size: Bytes per block
            storage_root: Directory for disk images (None keeps disks in memory)
        """
        self.disk_blocks = disk_blocks
        self.block_size = block_size
        self.storage_root = storage_root

        self.disks: Dict[int, Disk] = {}
        self.is_open = False
        self._lock = threading.Lock()

    def request(self, opcode: int, data: Optional[bytes] = None) -> Tuple[int, Optional[bytes]]:
        """
        Execute one bus request.

        Returns:
            (response_opcode, payload) - payload is the block contents for READ, else None
        """
        with self._lock:
            try:
                payload = self._dispatch(opcode, data)
                return make_raid_response(opcode, True), payload
            except (RaidRequestError, IndexError, ValueError, OSError) as e:
                logger.warning(f"RAID request {opcode:#018x} failed: {e}")
                try:
                    return make_raid_response(opcode, False), None
                except ValueError:
                    # Not even a decodable opcode; answer with an all-zero failure
                    return 0, None

    def _dispatch(self, opcode: int, data: Optional[bytes]) -> Optional[bytes]:
        if opcode & RESERVED_MASK:
            raise RaidRequestError("Reserved field must be zero")

        fields = extract_raid_opcode(opcode)
        try:
            request_type = RaidRequestType(fields.request_type)
        except ValueError:
            raise RaidRequestError(f"Unknown request type {fields.request_type}")

        if request_type == RaidRequestType.INIT:
            self._init_disks(fields.disk_id)
            return None

        if not self.is_open:
            raise RaidRequestError(f"{request_type.name} on a closed array")

        if request_type == RaidRequestType.CLOSE:
            self._close_disks()
            return None

        disk = self.disks.get(fields.disk_id)
        if disk is None:
            raise RaidRequestError(f"Unknown disk {fields.disk_id}")

        if request_type == RaidRequestType.FORMAT:
            disk.format()
            logger.debug(f"Formatted disk {fields.disk_id}")
            return None

        if fields.num_blocks != 1:
            raise RaidRequestError(f"{request_type.name} moves exactly one block, got {fields.num_blocks}")

        if request_type == RaidRequestType.READ:
            return disk.read_block(fields.block_address)

        if data is None:
            raise RaidRequestError("WRITE without a block payload")
        disk.write_block(fields.block_address, data)
        return None

    def _init_disks(self, disk_count: int) -> None:
        if disk_count <= 0:
            raise RaidRequestError("INIT needs at least one disk")
        self._close_disks()
        for disk_id in range(disk_count):
            if self.storage_root:
                self.disks[disk_id] = FileDisk(disk_id, self.disk_blocks, self.block_size, self.storage_root)
            else:
                self.disks[disk_id] = MemoryDisk(disk_id, self.disk_blocks, self.block_size)
        self.is_open = True
        logger.info(f"RAID array initialized: {disk_count} disks x {self.disk_blocks} blocks of {self.block_size} bytes")

    def _close_disks(self) -> None:
        for disk in self.disks.values():
            disk.close()
        self.disks.clear()
        if self.is_open:
            logger.info("RAID array closed")
        self.is_open = False
