"""
Tagline API

HTTP control surface of the tagline driver.

Endpoints:
- POST /tagline/init: initialize the array and start an empty store
- POST /tagline/close: close the array
- POST /tagline/{tag}/write: write base64 blocks to a tagline
- GET /tagline/{tag}/read: read blocks from a tagline
- GET /tagline/{tag}/blocks: physical placement of a tagline
- GET /tagline/status: state, tag count and disk usage
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from typing import Dict, List
import logging

from shared.socket_protocol import decode_block, encode_block
from tagline.errors import TaglineError
from tagline.services.tagline_service import TaglineService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tagline", tags=["tagline"])

ERROR_STATUS = {
    "NotReady": 409,
    "UnknownTag": 404,
    "BlockOutOfRange": 416,
    "CapacityExceeded": 507,
    "BusFailure": 502,
}


# Will be injected by service.py
_tagline_service = None

def set_tagline_service(service: TaglineService):
    """Set tagline service reference (called by service.py)"""
    global _tagline_service
    _tagline_service = service


def get_service() -> TaglineService:
    if _tagline_service is None:
        raise HTTPException(status_code=503, detail={"error": "Unavailable", "message": "Tagline service not started"})
    return _tagline_service


def _error(exc: Exception) -> HTTPException:
    logger.warning(f"Tagline request failed: {type(exc).__name__}: {exc}")
    if isinstance(exc, TaglineError):
        return HTTPException(
            status_code=ERROR_STATUS.get(exc.kind, 500),
            detail={"error": exc.kind, "message": str(exc)},
        )
    return HTTPException(status_code=400, detail={"error": "ValueError", "message": str(exc)})


class InitRequest(BaseModel):
    max_tags: int = Field(ge=0)


class WriteRequest(BaseModel):
    start_block: int = Field(ge=0)
    num_blocks: int = Field(gt=0)
    data_b64: str


class ReadResponse(BaseModel):
    tag: int
    start_block: int
    num_blocks: int
    data_b64: str


class BlockPlacement(BaseModel):
    block_offset: int
    disk_id: int
    physical_block: int


class StatusResponse(BaseModel):
    state: str
    max_tags: int
    tag_count: int
    disk_usage: Dict[int, int]


@router.post("/init", response_model=StatusResponse)
def init_store(req: InitRequest, service: TaglineService = Depends(get_service)):
    try:
        service.init(req.max_tags)
    except (TaglineError, ValueError) as exc:
        raise _error(exc)
    return service.status()


@router.post("/close", response_model=StatusResponse)
def close_store(service: TaglineService = Depends(get_service)):
    try:
        service.close()
    except (TaglineError, ValueError) as exc:
        raise _error(exc)
    return service.status()


@router.get("/status", response_model=StatusResponse)
def store_status(service: TaglineService = Depends(get_service)):
    return service.status()


@router.post("/{tag}/write")
def write_blocks(tag: int, req: WriteRequest, service: TaglineService = Depends(get_service)):
    try:
        data = decode_block(req.data_b64)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail={"error": "ValueError", "message": f"Invalid base64 data: {exc}"})

    try:
        service.write(tag, req.start_block, req.num_blocks, data)
    except (TaglineError, ValueError) as exc:
        raise _error(exc)
    return {"status": "written", "tag": tag, "start_block": req.start_block, "num_blocks": req.num_blocks}


@router.get("/{tag}/read", response_model=ReadResponse)
def read_blocks(
    tag: int,
    start_block: int = Query(0, ge=0),
    num_blocks: int = Query(1, gt=0),
    service: TaglineService = Depends(get_service),
):
    try:
        data = service.read(tag, start_block, num_blocks)
    except (TaglineError, ValueError) as exc:
        raise _error(exc)
    return {"tag": tag, "start_block": start_block, "num_blocks": num_blocks, "data_b64": encode_block(data)}


@router.get("/{tag}/blocks", response_model=List[BlockPlacement])
def tagline_blocks(tag: int, service: TaglineService = Depends(get_service)):
    try:
        placement = service.block_map(tag)
    except TaglineError as exc:
        raise _error(exc)
    return [
        {"block_offset": offset, "disk_id": loc.disk_id, "physical_block": loc.physical_block}
        for offset, loc in placement
    ]
