import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from shared.socket_protocol import encode_block
from tagline.api import tagline
from tagline.client import TaglineApiClient
from tagline.errors import BlockOutOfRange, CapacityExceeded, NotReady, UnknownTag


@pytest.fixture
def app(service):
    app = FastAPI()
    app.include_router(tagline.router)
    app.dependency_overrides[tagline.get_service] = lambda: service
    return app


@pytest.fixture
def http(app):
    return TestClient(app)


def test_init_returns_status(http, config):
    resp = http.post("/tagline/init", json={"max_tags": 2})
    assert resp.status_code == 200
    body = resp.json()
    assert body["state"] == "READY"
    assert body["max_tags"] == 2
    assert body["tag_count"] == 0
    assert body["disk_usage"] == {str(d): 0 for d in range(config.disk_count)}


def test_write_then_read(http, blocks):
    http.post("/tagline/init", json={"max_tags": 2})
    resp = http.post("/tagline/5/write", json={"start_block": 0, "num_blocks": 3, "data_b64": encode_block(blocks("ABC"))})
    assert resp.status_code == 200

    resp = http.get("/tagline/5/read", params={"start_block": 1, "num_blocks": 2})
    assert resp.status_code == 200
    assert resp.json()["data_b64"] == encode_block(blocks("BC"))

    resp = http.get("/tagline/5/blocks")
    assert [b["block_offset"] for b in resp.json()] == [0, 1, 2]


@pytest.mark.parametrize(
    "method,path,kwargs,status,kind",
    [
        ("get", "/tagline/7/read", {"params": {"start_block": 0, "num_blocks": 1}}, 404, "UnknownTag"),
        ("get", "/tagline/7/blocks", {}, 404, "UnknownTag"),
        ("get", "/tagline/5/read", {"params": {"start_block": 3, "num_blocks": 1}}, 416, "BlockOutOfRange"),
        ("post", "/tagline/5/write", {"json": {"start_block": 0, "num_blocks": 2, "data_b64": "QUJD"}}, 400, "ValueError"),
        ("post", "/tagline/5/write", {"json": {"start_block": 0, "num_blocks": 1, "data_b64": "***"}}, 400, "ValueError"),
    ],
)
def test_errors_map_to_status_codes(http, blocks, method, path, kwargs, status, kind):
    http.post("/tagline/init", json={"max_tags": 1})
    http.post("/tagline/5/write", json={"start_block": 0, "num_blocks": 1, "data_b64": encode_block(blocks("A"))})

    resp = getattr(http, method)(path, **kwargs)
    assert resp.status_code == status
    assert resp.json()["detail"]["error"] == kind


def test_capacity_and_not_ready_codes(http, blocks):
    data = encode_block(blocks("A"))
    assert http.post("/tagline/1/write", json={"start_block": 0, "num_blocks": 1, "data_b64": data}).status_code == 409

    http.post("/tagline/init", json={"max_tags": 1})
    http.post("/tagline/1/write", json={"start_block": 0, "num_blocks": 1, "data_b64": data})
    resp = http.post("/tagline/2/write", json={"start_block": 0, "num_blocks": 1, "data_b64": data})
    assert resp.status_code == 507
    assert resp.json()["detail"]["error"] == "CapacityExceeded"

    assert http.post("/tagline/close").json()["state"] == "CLOSED"
    assert http.post("/tagline/close").status_code == 409


def test_service_not_started_is_unavailable():
    app = FastAPI()
    app.include_router(tagline.router)
    resp = TestClient(app).get("/tagline/status")
    assert resp.status_code == 503


def test_api_client_drives_the_service(http, blocks):
    client = TaglineApiClient("http://testserver", session=http)
    client.init(2)
    client.write(5, 0, 3, blocks("ABC"))
    assert client.read(5, 0, 3) == blocks("ABC")
    assert client.status()["tag_count"] == 1

    with pytest.raises(UnknownTag):
        client.read(7, 0, 1)
    with pytest.raises(BlockOutOfRange):
        client.read(5, 4, 1)
    with pytest.raises(ValueError):
        client.write(5, 0, 1, b"short")

    client.write(6, 0, 1, blocks("D"))
    with pytest.raises(CapacityExceeded):
        client.write(8, 0, 1, blocks("E"))

    client.close()
    with pytest.raises(NotReady):
        client.read(5, 0, 1)
