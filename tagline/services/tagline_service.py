"""
Tagline Service
Public driver API (init / read / write / close) composing the address table,
the disk load tracker and the block I/O adapter.

State machine:
    UNINITIALIZED --init--> READY --close--> CLOSED
    init is accepted in any state and rebuilds the store from scratch;
    a failed init falls back to an empty UNINITIALIZED store.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Dict, List, Tuple

from raid.bus import RaidBus
from raid.opcodes import RaidRequestType
from tagline.errors import BlockOutOfRange, BusFailure, NotReady, UnknownTag
from tagline.models import PhysicalLocation, ServiceState
from tagline.services.address_table import AddressTable
from tagline.services.block_io import BlockIOAdapter
from tagline.services.disk_tracker import DiskLoadTracker
from tagline.store import Store

logger = logging.getLogger(__name__)


class TaglineService:
    """
    Virtual block store over the RAID array.
    Every public operation holds one lock for its whole duration, so callers
    on different threads never interleave allocations or counter updates.
    """

    def __init__(self, store: Store, bus: RaidBus):
        """
        Args:
            store: Store holding the metadata session and geometry
            bus: RAID bus used for every physical transfer
        """
        self.store = store
        self.config = store.config
        self.address_table = AddressTable(store)
        self.disk_tracker = DiskLoadTracker(store)
        self.block_io = BlockIOAdapter(bus, self.config.block_size)
        self._lock = threading.RLock()

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def init(self, max_tags: int) -> None:
        """
        Initialize the array and start an empty store.

        Sends INIT, formats every disk, zeroes the disk counters and clears
        the address table.

        The array may already be wiped when a bus request fails, so a failed
        init leaves an empty UNINITIALIZED store behind.

        Raises:
            BusFailure: INIT or any FORMAT request failed
        """
        if max_tags < 0:
            raise ValueError("max_tags must be >= 0")

        with self._lock:
            try:
                self.block_io.transfer(RaidRequestType.INIT, block_count=self.config.disk_count)
                for disk_id in range(self.config.disk_count):
                    self.block_io.transfer(RaidRequestType.FORMAT, PhysicalLocation(disk_id, 0))
            except BusFailure:
                self._discard_store()
                raise

            with self.store.transaction():
                self._reset_tables()

                meta = self.store.metadata()
                meta.state = ServiceState.READY
                meta.max_tags = max_tags
                meta.disk_count = self.config.disk_count
                meta.initialized_at = datetime.utcnow()
                meta.closed_at = None

        logger.info(f"TAGLINE: initialized storage (maxlines={max_tags}, disks={self.config.disk_count})")

    def _reset_tables(self) -> None:
        self.address_table.clear()
        self.disk_tracker.reset(self.config.disk_count, self.config.disk_blocks)

    def _discard_store(self) -> None:
        """Drop every mapping and fall back to UNINITIALIZED in its own commit."""
        with self.store.transaction():
            self._reset_tables()

            meta = self.store.metadata()
            meta.state = ServiceState.UNINITIALIZED
            meta.max_tags = 0
            meta.initialized_at = None
            meta.closed_at = None

        logger.warning("TAGLINE: initialization failed, store discarded")

    def close(self) -> None:
        """
        Close the array; later reads and writes fail with NotReady.

        Raises:
            NotReady: the store is not initialized
            BusFailure: the CLOSE request failed
        """
        with self._lock, self.store.transaction():
            self._require_ready()
            self.block_io.transfer(RaidRequestType.CLOSE)

            meta = self.store.metadata()
            meta.state = ServiceState.CLOSED
            meta.closed_at = datetime.utcnow()

        logger.info("TAGLINE storage device: closing completed.")

    # ========================================================================
    # BLOCK IO
    # ========================================================================

    def read(self, tag: int, start_offset: int, count: int) -> bytes:
        """
        Read `count` blocks of a tagline starting at `start_offset`.

        Every block is resolved before the first transfer, so an unmapped
        offset fails the call without touching the bus.

        Raises:
            NotReady, BlockOutOfRange, UnknownTag, BusFailure
        """
        with self._lock:
            self._require_ready()
            self._check_range(start_offset, count)

            if not self.address_table.tag_exists(tag):
                raise UnknownTag(f"Tagline {tag} was never written")

            locations: List[PhysicalLocation] = []
            for i in range(count):
                location = self.address_table.lookup(tag, start_offset + i)
                if location is None:
                    raise BlockOutOfRange(f"Block {start_offset + i} of tagline {tag} was never written")
                locations.append(location)

            data = b"".join(
                self.block_io.transfer(RaidRequestType.READ, location, 1) for location in locations
            )

        logger.info(f"TAGLINE : read {count} blocks from tagline {tag}, starting block {start_offset}.")
        return data

    def write(self, tag: int, start_offset: int, count: int, data: bytes) -> None:
        """
        Write `count` blocks to a tagline starting at `start_offset`.

        Mapped blocks are overwritten in place. Each unmapped block goes to
        the least-filled disk at the moment it is placed.

        Raises:
            NotReady, BlockOutOfRange, CapacityExceeded, BusFailure
            ValueError: `data` is not exactly `count` blocks long
        """
        block_size = self.config.block_size
        with self._lock:
            self._require_ready()
            self._check_range(start_offset, count)
            if len(data) != count * block_size:
                raise ValueError(
                    f"Write of {count} block(s) needs {count * block_size} bytes, got {len(data)}"
                )

            with self.store.transaction():
                if not self.address_table.tag_exists(tag):
                    self.address_table.create_tag(tag)

                for i in range(count):
                    offset = start_offset + i
                    block = data[i * block_size:(i + 1) * block_size]

                    location = self.address_table.lookup(tag, offset)
                    if location is not None:
                        self.block_io.transfer(RaidRequestType.WRITE, location, 1, block)
                        continue

                    disk_id = self.disk_tracker.pick_disk()
                    location = self.disk_tracker.allocate(disk_id, 1)
                    self.block_io.transfer(RaidRequestType.WRITE, location, 1, block)
                    self.address_table.record(tag, offset, location)

        logger.info(f"TAGLINE : wrote {count} blocks to tagline {tag}, starting block {start_offset}.")

    # ========================================================================
    # INTROSPECTION
    # ========================================================================

    @property
    def state(self) -> ServiceState:
        with self._lock:
            return self.store.state

    def status(self) -> Dict[str, Any]:
        """State, tag limit, tag count and per-disk usage."""
        with self._lock:
            meta = self.store.metadata()
            return {
                "state": ServiceState(meta.state).value,
                "max_tags": meta.max_tags,
                "tag_count": self.address_table.tag_count(),
                "disk_usage": self.disk_tracker.usage(),
            }

    def block_map(self, tag: int) -> List[Tuple[int, PhysicalLocation]]:
        """Offset-ordered physical placement of a tagline."""
        with self._lock:
            if not self.address_table.tag_exists(tag):
                raise UnknownTag(f"Tagline {tag} was never written")
            return self.address_table.mapped_blocks(tag)

    # ========================================================================
    # VALIDATION
    # ========================================================================

    def _require_ready(self) -> None:
        state = self.store.state
        if state != ServiceState.READY:
            raise NotReady(f"Tagline store is {state.value}")

    def _check_range(self, start_offset: int, count: int) -> None:
        if count <= 0:
            raise BlockOutOfRange(f"Block count must be positive, got {count}")
        if start_offset < 0 or start_offset + count > self.config.max_blocks:
            raise BlockOutOfRange(
                f"Blocks {start_offset}..{start_offset + count - 1} outside tagline range "
                f"0..{self.config.max_blocks - 1}"
            )
