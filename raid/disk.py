"""
Physical disks of the simulated RAID array.

A disk is a fixed number of fixed-size blocks. MemoryDisk keeps them in a
bytearray; FileDisk keeps them in an image file addressed with positional IO.
"""

import os
from pathlib import Path


class MemoryDisk:
    def __init__(self, disk_id: int, num_blocks: int, block_size: int):
        self.disk_id = disk_id
        self.num_blocks = num_blocks
        self.block_size = block_size
        self._data = bytearray(num_blocks * block_size)

    def _offset(self, blkno: int) -> int:
        if not 0 <= blkno < self.num_blocks:
            raise IndexError(f"Block {blkno} out of range (0-{self.num_blocks - 1}) on disk {self.disk_id}")
        return blkno * self.block_size

    def read_block(self, blkno: int) -> bytes:
        off = self._offset(blkno)
        return bytes(self._data[off:off + self.block_size])

    def write_block(self, blkno: int, data: bytes) -> None:
        if len(data) != self.block_size:
            raise ValueError("must write full block")
        off = self._offset(blkno)
        self._data[off:off + self.block_size] = data

    def format(self) -> None:
        self._data = bytearray(self.num_blocks * self.block_size)

    def close(self) -> None:
        pass


class FileDisk(MemoryDisk):
    """Disk image file `disk_<id>.img` under a storage root."""

    def __init__(self, disk_id: int, num_blocks: int, block_size: int, storage_root: str):
        self.disk_id = disk_id
        self.num_blocks = num_blocks
        self.block_size = block_size
        root = Path(storage_root)
        root.mkdir(parents=True, exist_ok=True)
        self.path = root / f"disk_{disk_id}.img"
        with open(self.path, "ab"):
            pass
        self.fd = os.open(self.path, os.O_RDWR)
        os.ftruncate(self.fd, num_blocks * block_size)

    def read_block(self, blkno: int) -> bytes:
        return os.pread(self.fd, self.block_size, self._offset(blkno))

    def write_block(self, blkno: int, data: bytes) -> None:
        if len(data) != self.block_size:
            raise ValueError("must write full block")
        os.pwrite(self.fd, data, self._offset(blkno))

    def format(self) -> None:
        os.ftruncate(self.fd, 0)
        os.ftruncate(self.fd, self.num_blocks * self.block_size)

    def close(self) -> None:
        if self.fd is not None:
            os.close(self.fd)
            self.fd = None
