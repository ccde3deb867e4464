"""
Disk Load Tracker
Tracks how many physical blocks have been handed out on each disk and
decides where new data lands (greedy least-filled placement).
"""

import logging
from typing import Dict

from sqlalchemy import select

from tagline.errors import CapacityExceeded
from tagline.models import DiskUsage, PhysicalLocation
from tagline.store import Store

logger = logging.getLogger(__name__)


class DiskLoadTracker:
    """
    Per-disk allocation counters.
    Counters only move forward: space is never returned to a disk.
    """

    def __init__(self, store: Store):
        self.store = store
        self.db = store.db

    def reset(self, disk_count: int, capacity_blocks: int) -> None:
        """Start every disk over at block 0 (store teardown only)."""
        existing = {row.disk_id: row for row in self.db.scalars(select(DiskUsage)).all()}
        for disk_id, row in existing.items():
            if disk_id >= disk_count:
                self.db.delete(row)
        for disk_id in range(disk_count):
            row = existing.get(disk_id)
            if row is None:
                self.db.add(DiskUsage(disk_id=disk_id, next_block=0, capacity_blocks=capacity_blocks))
            else:
                row.next_block = 0
                row.capacity_blocks = capacity_blocks
        self.db.flush()

    def pick_disk(self) -> int:
        """
        Disk with the smallest usage counter; ties go to the lowest disk index.

        Raises:
            CapacityExceeded: the array has no disks
        """
        least_filled = self.db.scalars(
            select(DiskUsage).order_by(DiskUsage.next_block, DiskUsage.disk_id).limit(1)
        ).first()
        if least_filled is None:
            raise CapacityExceeded("No disks available for allocation")
        return least_filled.disk_id

    def allocate(self, disk_id: int, count: int) -> PhysicalLocation:
        """
        Hand out `count` consecutive blocks starting at the disk's counter.

        Raises:
            CapacityExceeded: the disk would run past its physical capacity
        """
        if count <= 0:
            raise ValueError("Allocation count must be positive")

        usage = self.db.get(DiskUsage, disk_id)
        if usage is None:
            raise CapacityExceeded(f"Disk {disk_id} is not part of the array")

        if usage.next_block + count > usage.capacity_blocks:
            raise CapacityExceeded(
                f"Disk {disk_id} full: need {count} block(s), "
                f"{usage.capacity_blocks - usage.next_block} free"
            )

        location = PhysicalLocation(disk_id=disk_id, physical_block=usage.next_block)
        usage.next_block += count
        self.db.flush()
        logger.debug(f"Allocated {count} block(s) at disk {disk_id} block {location.physical_block}")
        return location

    def usage(self) -> Dict[int, int]:
        """Next free block per disk."""
        rows = self.db.scalars(select(DiskUsage).order_by(DiskUsage.disk_id)).all()
        return {row.disk_id: row.next_block for row in rows}
