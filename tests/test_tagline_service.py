import threading

import pytest

from raid.opcodes import RaidRequestType
from tagline.config import StoreConfig
from tagline.errors import BlockOutOfRange, BusFailure, CapacityExceeded, NotReady, UnknownTag
from tagline.models import ServiceState
from tests.conftest import make_service


# ============================================================================
# LIFECYCLE
# ============================================================================

def test_init_formats_every_disk(service_and_bus, config):
    service, bus = service_and_bus
    service.init(2)
    assert service.state == ServiceState.READY
    assert bus.requests[0].request_type == RaidRequestType.INIT
    assert bus.requests[0].disk_id == config.disk_count
    formats = [r.disk_id for r in bus.requests if r.request_type == RaidRequestType.FORMAT]
    assert formats == list(range(config.disk_count))
    assert service.status()["disk_usage"] == {0: 0, 1: 0, 2: 0}


def test_read_write_before_init_not_ready(service, blocks):
    assert service.state == ServiceState.UNINITIALIZED
    with pytest.raises(NotReady):
        service.write(1, 0, 1, blocks("A"))
    with pytest.raises(NotReady):
        service.read(1, 0, 1)
    with pytest.raises(NotReady):
        service.close()


def test_read_write_after_close_not_ready(ready_service, blocks):
    ready_service.write(1, 0, 1, blocks("A"))
    ready_service.close()
    assert ready_service.state == ServiceState.CLOSED
    with pytest.raises(NotReady):
        ready_service.read(1, 0, 1)
    with pytest.raises(NotReady):
        ready_service.write(1, 0, 1, blocks("B"))


def test_reinit_tears_down_store(ready_service, blocks):
    ready_service.write(1, 0, 2, blocks("AB"))
    ready_service.close()
    ready_service.init(1)
    assert ready_service.status()["tag_count"] == 0
    assert ready_service.status()["disk_usage"] == {0: 0, 1: 0, 2: 0}
    with pytest.raises(UnknownTag):
        ready_service.read(1, 0, 1)


def test_init_bus_failure_leaves_state_unchanged(config):
    service, _ = make_service(config, fail_when=lambda f, n: f.request_type == RaidRequestType.FORMAT and f.disk_id == 1)
    with pytest.raises(BusFailure):
        service.init(2)
    assert service.state == ServiceState.UNINITIALIZED


def test_failed_reinit_discards_old_taglines(config, blocks):
    service, bus = make_service(config)
    service.init(2)
    service.write(1, 0, 2, blocks("AB"))

    bus.fail_when = lambda f, n: f.request_type == RaidRequestType.FORMAT and f.disk_id == 2
    with pytest.raises(BusFailure):
        service.init(2)

    assert service.state == ServiceState.UNINITIALIZED
    with pytest.raises(NotReady):
        service.read(1, 0, 2)

    bus.fail_when = None
    service.init(2)
    assert service.status()["tag_count"] == 0
    assert service.status()["disk_usage"] == {0: 0, 1: 0, 2: 0}
    with pytest.raises(UnknownTag):
        service.read(1, 0, 1)


# ============================================================================
# READ / WRITE
# ============================================================================

def test_scenario_write_abc_then_read(service, blocks):
    service.init(2)
    service.write(5, 0, 3, blocks("ABC"))
    assert service.read(5, 0, 3) == blocks("ABC")
    with pytest.raises(UnknownTag):
        service.read(7, 0, 1)


@pytest.mark.parametrize("tag,start,pattern", [(0, 0, "Q"), (3, 2, "XYZ"), (9, 7, "k"), (1, 0, "ABCDEFGH")])
def test_read_after_write(ready_service, blocks, tag, start, pattern):
    ready_service.write(tag, start, len(pattern), blocks(pattern))
    assert ready_service.read(tag, start, len(pattern)) == blocks(pattern)


def test_partial_reads_return_requested_slice(ready_service, blocks):
    ready_service.write(2, 0, 4, blocks("WXYZ"))
    assert ready_service.read(2, 1, 2) == blocks("XY")


def test_overwrite_reuses_physical_location(ready_service, blocks):
    ready_service.write(1, 0, 2, blocks("AB"))
    placement = ready_service.block_map(1)
    usage = ready_service.status()["disk_usage"]

    ready_service.write(1, 0, 2, blocks("CD"))

    assert ready_service.block_map(1) == placement
    assert ready_service.status()["disk_usage"] == usage
    assert ready_service.read(1, 0, 2) == blocks("CD")


def test_overlapping_write_allocates_only_new_blocks(ready_service, blocks):
    ready_service.write(1, 0, 2, blocks("AB"))
    ready_service.write(1, 1, 3, blocks("xyz"))
    assert sum(ready_service.status()["disk_usage"].values()) == 4
    assert ready_service.read(1, 0, 4) == blocks("Axyz")


def test_multi_block_write_spreads_over_disks(ready_service, blocks):
    ready_service.write(1, 0, 3, blocks("ABC"))
    disks = [loc.disk_id for _, loc in ready_service.block_map(1)]
    assert disks == [0, 1, 2]


def test_allocator_fairness(ready_service, blocks):
    for tag in range(2):
        for offset in range(8):
            ready_service.write(tag, offset, 1, blocks("z"))
            usage = ready_service.status()["disk_usage"].values()
            assert max(usage) - min(usage) <= 1


def test_no_physical_block_is_shared(ready_service, blocks):
    ready_service.write(1, 0, 5, blocks("abcde"))
    ready_service.write(2, 3, 5, blocks("fghij"))
    ready_service.write(1, 2, 4, blocks("klmn"))
    locations = [loc for tag in (1, 2) for _, loc in ready_service.block_map(tag)]
    assert len(locations) == len(set(locations))
    usage = ready_service.status()["disk_usage"]
    assert all(loc.physical_block < usage[loc.disk_id] for loc in locations)


def test_taglines_do_not_interfere(ready_service, blocks):
    ready_service.write(1, 0, 2, blocks("AA"))
    ready_service.write(2, 0, 2, blocks("BB"))
    assert ready_service.read(1, 0, 2) == blocks("AA")
    assert ready_service.read(2, 0, 2) == blocks("BB")


# ============================================================================
# ERRORS
# ============================================================================

def test_tag_capacity_enforced(service, blocks):
    service.init(3)
    for tag in (10, 20, 30):
        service.write(tag, 0, 1, blocks("a"))
    with pytest.raises(CapacityExceeded):
        service.write(40, 0, 1, blocks("a"))
    # existing taglines keep accepting writes
    service.write(10, 1, 1, blocks("b"))


def test_unwritten_block_of_known_tag_is_out_of_range(ready_service, blocks):
    ready_service.write(1, 0, 1, blocks("A"))
    with pytest.raises(BlockOutOfRange):
        ready_service.read(1, 1, 1)


def test_read_with_gap_transfers_nothing(service_and_bus, blocks):
    service, bus = service_and_bus
    service.init(2)
    service.write(1, 0, 1, blocks("A"))
    service.write(1, 2, 1, blocks("C"))
    with pytest.raises(BlockOutOfRange):
        service.read(1, 0, 3)
    assert bus.count(RaidRequestType.READ) == 0


@pytest.mark.parametrize("start,count", [(-1, 1), (8, 1), (6, 3), (0, 0)])
def test_offsets_outside_tagline_range(ready_service, config, start, count):
    with pytest.raises(BlockOutOfRange):
        ready_service.write(1, start, count, bytes(max(count, 0) * config.block_size))
    with pytest.raises(BlockOutOfRange):
        ready_service.read(1, start, count)


def test_write_buffer_size_checked(ready_service):
    with pytest.raises(ValueError):
        ready_service.write(1, 0, 2, b"not two blocks")
    assert ready_service.status()["tag_count"] == 0


def test_disk_capacity_exhaustion():
    config = StoreConfig(block_size=4, max_blocks=8, disk_count=2, disk_blocks=2)
    service, _ = make_service(config)
    service.init(1)
    service.write(1, 0, 4, b"a" * 16)
    with pytest.raises(CapacityExceeded):
        service.write(1, 4, 1, b"b" * 4)
    assert service.read(1, 0, 4) == b"a" * 16


def test_bus_failure_mid_write_rolls_back_metadata(config, blocks):
    service, bus = make_service(
        config,
        fail_when=lambda f, n: f.request_type == RaidRequestType.WRITE and f.disk_id == 1,
    )
    service.init(2)
    with pytest.raises(BusFailure):
        service.write(1, 0, 3, blocks("ABC"))

    status = service.status()
    assert status["tag_count"] == 0
    assert status["disk_usage"] == {0: 0, 1: 0, 2: 0}
    assert bus.count(RaidRequestType.WRITE) == 2
    with pytest.raises(UnknownTag):
        service.read(1, 0, 1)


def test_bus_failure_on_read(config, blocks):
    service, bus = make_service(config)
    service.init(2)
    service.write(1, 0, 1, blocks("A"))
    bus.fail_when = lambda f, n: f.request_type == RaidRequestType.READ
    with pytest.raises(BusFailure):
        service.read(1, 0, 1)


def test_block_map_of_unknown_tag(ready_service):
    with pytest.raises(UnknownTag):
        ready_service.block_map(99)


def test_state_waits_for_running_operation(ready_service):
    seen = []
    reader = threading.Thread(target=lambda: seen.append(ready_service.state))

    with ready_service._lock:
        reader.start()
        reader.join(timeout=0.2)
        assert reader.is_alive()
        assert seen == []

    reader.join(timeout=5.0)
    assert seen == [ServiceState.READY]
