import pytest

from raid.array import RaidArray
from raid.bus import LocalRaidBus, RaidBusError
from raid.opcodes import RaidRequestType, make_raid_request, make_raid_response
from tagline.errors import BusFailure
from tagline.models import PhysicalLocation
from tagline.services.block_io import BlockIOAdapter
from tests.conftest import RecordingBus

BLOCK = 4


@pytest.fixture
def array():
    return RaidArray(disk_blocks=8, block_size=BLOCK)


@pytest.fixture
def bus(array):
    return RecordingBus(array)


@pytest.fixture
def adapter(bus):
    adapter = BlockIOAdapter(bus, BLOCK)
    adapter.transfer(RaidRequestType.INIT, block_count=2)
    return adapter


def test_init_sends_disk_count_in_disk_field(bus, adapter):
    init = bus.requests[0]
    assert init.request_type == RaidRequestType.INIT
    assert init.disk_id == 2
    assert init.num_blocks == 1


def test_multi_block_write_issues_one_request_per_block(bus, adapter):
    adapter.transfer(RaidRequestType.WRITE, PhysicalLocation(1, 2), 3, b"aaaabbbbcccc")
    writes = [r for r in bus.requests if r.request_type == RaidRequestType.WRITE]
    assert [(w.disk_id, w.block_address, w.num_blocks) for w in writes] == [(1, 2, 1), (1, 3, 1), (1, 4, 1)]


def test_read_concatenates_blocks_in_order(bus, adapter):
    adapter.transfer(RaidRequestType.WRITE, PhysicalLocation(0, 0), 2, b"xxxxyyyy")
    assert adapter.transfer(RaidRequestType.READ, PhysicalLocation(0, 0), 2) == b"xxxxyyyy"
    assert bus.count(RaidRequestType.READ) == 2


def test_format_targets_location_disk(bus, adapter):
    adapter.transfer(RaidRequestType.FORMAT, PhysicalLocation(1, 0))
    assert bus.requests[-1].request_type == RaidRequestType.FORMAT
    assert bus.requests[-1].disk_id == 1


def test_failed_response_raises_bus_failure(array):
    bus = RecordingBus(array, fail_when=lambda fields, n: fields.request_type == RaidRequestType.WRITE)
    adapter = BlockIOAdapter(bus, BLOCK)
    adapter.transfer(RaidRequestType.INIT, block_count=1)
    with pytest.raises(BusFailure):
        adapter.transfer(RaidRequestType.WRITE, PhysicalLocation(0, 0), 2, b"11112222")
    # no retry: the failing block is tried once and the rest are never sent
    assert bus.count(RaidRequestType.WRITE) == 1


def test_mismatched_request_type_is_a_failure():
    class WrongEchoBus:
        def request(self, opcode, data=None):
            return make_raid_response(make_raid_request(RaidRequestType.CLOSE, 0, 0, 0), True), None

    with pytest.raises(BusFailure):
        BlockIOAdapter(WrongEchoBus(), BLOCK).transfer(RaidRequestType.READ, PhysicalLocation(0, 0), 1)


def test_short_read_payload_is_a_failure():
    class ShortReadBus:
        def request(self, opcode, data=None):
            return make_raid_response(opcode, True), b"x"

    with pytest.raises(BusFailure):
        BlockIOAdapter(ShortReadBus(), BLOCK).transfer(RaidRequestType.READ, PhysicalLocation(0, 0), 1)


def test_transport_errors_become_bus_failures():
    class DeadBus:
        def request(self, opcode, data=None):
            raise RaidBusError("connection refused")

    with pytest.raises(BusFailure):
        BlockIOAdapter(DeadBus(), BLOCK).transfer(RaidRequestType.CLOSE)


def test_write_buffer_must_match_block_count(adapter):
    with pytest.raises(ValueError):
        adapter.transfer(RaidRequestType.WRITE, PhysicalLocation(0, 0), 2, b"too short")


def test_local_bus_passes_through(array):
    bus = LocalRaidBus(array)
    response, _ = bus.request(make_raid_request(RaidRequestType.INIT, 1, 1, 0))
    assert response & (1 << 32)
