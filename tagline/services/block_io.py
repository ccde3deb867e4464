"""
Block I/O Adapter
Issues single-block transfer requests on the RAID bus and checks the replies.
READ and WRITE cost one bus round trip per block; failures are raised, never retried.
"""

import logging
from typing import List, Optional

from raid.bus import RaidBus, RaidBusError
from raid.opcodes import RaidRequestType, extract_raid_response, make_raid_request
from tagline.errors import BusFailure
from tagline.models import PhysicalLocation

logger = logging.getLogger(__name__)


class BlockIOAdapter:
    """Translates tagline transfers into RAID bus requests."""

    def __init__(self, bus: RaidBus, block_size: int):
        self.bus = bus
        self.block_size = block_size

    def transfer(
        self,
        operation: RaidRequestType,
        location: Optional[PhysicalLocation] = None,
        block_count: int = 1,
        buffer: Optional[bytes] = None,
    ) -> Optional[bytes]:
        """
        Run one operation against the array.

        READ/WRITE move `block_count` blocks starting at `location`, one
        request per block; FORMAT targets `location.disk_id`; INIT sends
        `block_count` as the disk count; CLOSE takes no arguments.

        Returns:
            The blocks read (READ only), else None

        Raises:
            BusFailure: the bus failed or a response reported failure
        """
        operation = RaidRequestType(operation)

        if operation == RaidRequestType.INIT:
            self._request(make_raid_request(RaidRequestType.INIT, 1, block_count, 0))
            return None

        if operation == RaidRequestType.CLOSE:
            self._request(make_raid_request(RaidRequestType.CLOSE, 0, 0, 0))
            return None

        if location is None:
            raise ValueError(f"{operation.name} needs a physical location")

        if operation == RaidRequestType.FORMAT:
            self._request(make_raid_request(RaidRequestType.FORMAT, 0, location.disk_id, 0))
            return None

        if operation == RaidRequestType.READ:
            blocks: List[bytes] = []
            for i in range(block_count):
                block_address = location.physical_block + i
                data = self._request(
                    make_raid_request(RaidRequestType.READ, 1, location.disk_id, block_address)
                )
                if data is None or len(data) != self.block_size:
                    raise BusFailure(
                        f"READ of disk {location.disk_id} block {block_address} "
                        f"returned {0 if data is None else len(data)} bytes"
                    )
                blocks.append(data)
            return b"".join(blocks)

        if buffer is None or len(buffer) != block_count * self.block_size:
            raise ValueError(
                f"WRITE of {block_count} block(s) needs {block_count * self.block_size} bytes"
            )
        for i in range(block_count):
            block = buffer[i * self.block_size:(i + 1) * self.block_size]
            self._request(
                make_raid_request(RaidRequestType.WRITE, 1, location.disk_id, location.physical_block + i),
                block,
            )
        return None

    def _request(self, opcode: int, data: Optional[bytes] = None) -> Optional[bytes]:
        try:
            response, payload = self.bus.request(opcode, data)
        except RaidBusError as e:
            raise BusFailure(str(e)) from e

        sent = extract_raid_response(opcode)
        try:
            reply = extract_raid_response(response)
        except ValueError as e:
            raise BusFailure(str(e)) from e
        kind = RaidRequestType(sent.request_type).name

        if reply.request_type != sent.request_type:
            raise BusFailure(f"{kind} answered with request type {reply.request_type}")
        if not reply.success:
            raise BusFailure(
                f"{kind} failed on disk {sent.disk_id} block {sent.block_address}"
            )

        logger.debug(f"{kind} ok: disk={sent.disk_id} block={sent.block_address} blocks={sent.num_blocks}")
        return payload
