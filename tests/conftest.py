import pytest

from raid.array import RaidArray
from raid.bus import LocalRaidBus
from raid.opcodes import RaidRequestType, extract_raid_opcode, make_raid_response
from tagline.config import StoreConfig
from tagline.services.tagline_service import TaglineService
from tagline.store import Store
from tagline.workload import fill_blocks

SMALL_CONFIG = StoreConfig(block_size=16, max_blocks=8, disk_count=3, disk_blocks=16)


class RecordingBus:
    """Local bus that records every request and can fail chosen ones."""

    def __init__(self, array, fail_when=None):
        self.inner = LocalRaidBus(array)
        self.fail_when = fail_when
        self.requests = []

    def request(self, opcode, data=None):
        fields = extract_raid_opcode(opcode)
        self.requests.append(fields)
        if self.fail_when is not None and self.fail_when(fields, len(self.requests)):
            return make_raid_response(opcode, False), None
        return self.inner.request(opcode, data)

    def count(self, request_type: RaidRequestType) -> int:
        return sum(1 for r in self.requests if r.request_type == request_type)


def make_service(config=SMALL_CONFIG, fail_when=None):
    array = RaidArray(config.disk_blocks, config.block_size)
    bus = RecordingBus(array, fail_when)
    service = TaglineService(Store.open("sqlite://", config), bus)
    return service, bus


@pytest.fixture
def config():
    return SMALL_CONFIG


@pytest.fixture
def store(config):
    store = Store.open("sqlite://", config)
    yield store
    store.close()


@pytest.fixture
def service_and_bus(config):
    service, bus = make_service(config)
    yield service, bus
    service.store.close()


@pytest.fixture
def service(service_and_bus):
    return service_and_bus[0]


@pytest.fixture
def ready_service(service):
    service.init(4)
    return service


@pytest.fixture
def blocks(config):
    def _blocks(pattern: str) -> bytes:
        return fill_blocks(pattern, config.block_size)
    return _blocks
