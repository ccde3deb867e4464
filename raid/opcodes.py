"""
RAID bus opcode codec.

Requests and responses are opaque 64-bit values, packed most significant
field first:

    63:56  request_type
    55:48  num_blocks
    47:40  disk_id
    39:32  reserved (bit 32 is the success flag in responses)
    31:0   block_address

Every field is extracted by masking in place and shifting right by the
field's own bit offset.
"""

import enum
from dataclasses import dataclass


class RaidRequestType(enum.IntEnum):
    """Operations understood by the RAID array"""
    INIT = 0
    FORMAT = 1
    READ = 2
    WRITE = 3
    CLOSE = 4


REQUEST_TYPE_SHIFT = 56
NUM_BLOCKS_SHIFT = 48
DISK_ID_SHIFT = 40
RESERVED_SHIFT = 32
SUCCESS_SHIFT = 32
BLOCK_ADDRESS_SHIFT = 0

REQUEST_TYPE_MASK = 0xFF << REQUEST_TYPE_SHIFT
NUM_BLOCKS_MASK = 0xFF << NUM_BLOCKS_SHIFT
DISK_ID_MASK = 0xFF << DISK_ID_SHIFT
RESERVED_MASK = 0xFF << RESERVED_SHIFT
SUCCESS_MASK = 0x1 << SUCCESS_SHIFT
BLOCK_ADDRESS_MASK = 0xFFFFFFFF << BLOCK_ADDRESS_SHIFT

OPCODE_MASK = (1 << 64) - 1


@dataclass(frozen=True)
class RaidOpcode:
    """Decoded view of a request or response."""
    request_type: int
    num_blocks: int
    disk_id: int
    block_address: int
    success: bool = False


def _check_field(name: str, value: int, bits: int) -> int:
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name}={value} does not fit in {bits} bits")
    return value


def _pack(request_type: int, num_blocks: int, disk_id: int, block_address: int, low_flags: int) -> int:
    return (
        (_check_field("request_type", int(request_type), 8) << REQUEST_TYPE_SHIFT)
        | (_check_field("num_blocks", num_blocks, 8) << NUM_BLOCKS_SHIFT)
        | (_check_field("disk_id", disk_id, 8) << DISK_ID_SHIFT)
        | (low_flags << RESERVED_SHIFT)
        | (_check_field("block_address", block_address, 32) << BLOCK_ADDRESS_SHIFT)
    )


def make_raid_request(request_type: int, num_blocks: int, disk_id: int, block_address: int) -> int:
    """Pack a bus request; the reserved byte is always zero."""
    return _pack(request_type, num_blocks, disk_id, block_address, 0)


def make_raid_response(request: int, success: bool) -> int:
    """Echo a request back with the success bit set or cleared."""
    fields = extract_raid_opcode(request)
    return _pack(fields.request_type, fields.num_blocks, fields.disk_id, fields.block_address, 1 if success else 0)


def extract_raid_opcode(opcode: int) -> RaidOpcode:
    """Unpack any 64-bit bus value into its fields."""
    if not 0 <= opcode <= OPCODE_MASK:
        raise ValueError(f"Opcode {opcode:#x} is not a 64-bit value")
    return RaidOpcode(
        request_type=(opcode & REQUEST_TYPE_MASK) >> REQUEST_TYPE_SHIFT,
        num_blocks=(opcode & NUM_BLOCKS_MASK) >> NUM_BLOCKS_SHIFT,
        disk_id=(opcode & DISK_ID_MASK) >> DISK_ID_SHIFT,
        block_address=(opcode & BLOCK_ADDRESS_MASK) >> BLOCK_ADDRESS_SHIFT,
        success=bool((opcode & SUCCESS_MASK) >> SUCCESS_SHIFT),
    )


def extract_raid_response(response: int) -> RaidOpcode:
    return extract_raid_opcode(response)
