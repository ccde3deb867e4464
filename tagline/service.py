"""
Tagline Service Entrypoint

FastAPI application exposing the tagline driver over HTTP.
The driver talks to a RAID bus server over TCP, or to an in-process array
when TAGLINE_LOCAL_RAID is set.

Usage:
    python -m tagline.service --port 8001 --raid-host 127.0.0.1 --raid-port 9700
    python -m tagline.service --local-raid
"""

import argparse
import logging
import os
import sys

import uvicorn
from fastapi import FastAPI

from raid.array import RaidArray
from raid.bus import LocalRaidBus, RaidBusClient
from shared.logging_config import setup_logging
from tagline.api import tagline
from tagline.config import API_PORT, DATABASE_URL, RAID_HOST, RAID_PORT, STORAGE_ROOT, StoreConfig
from tagline.services.tagline_service import TaglineService
from tagline.store import Store

logger = logging.getLogger(__name__)

app = FastAPI(title="TAGLINE Driver Service")

app.include_router(tagline.router)

# Global service instance
tagline_service = None


def build_service(
    database_url: str = DATABASE_URL,
    raid_host: str = RAID_HOST,
    raid_port: int = RAID_PORT,
    local_raid: bool = False,
    config: StoreConfig = None,
) -> TaglineService:
    """Wire a store and a RAID bus into a tagline service."""
    config = config or StoreConfig()
    store = Store.open(database_url, config)
    if local_raid:
        bus = LocalRaidBus(RaidArray(config.disk_blocks, config.block_size, STORAGE_ROOT))
        logger.info("Using in-process RAID array")
    else:
        bus = RaidBusClient(raid_host, raid_port)
        logger.info(f"Using RAID bus at {raid_host}:{raid_port}")
    return TaglineService(store, bus)


@app.on_event("startup")
def startup_init():
    """Build the driver unless one was injected already"""
    global tagline_service

    if tagline_service is None:
        tagline_service = build_service(local_raid=bool(os.getenv("TAGLINE_LOCAL_RAID")))
    tagline.set_tagline_service(tagline_service)

    logger.info("Tagline service startup complete")


@app.on_event("shutdown")
def shutdown_cleanup():
    """Release the metadata session on shutdown"""
    if tagline_service is not None:
        tagline_service.store.close()
    logger.info("Tagline service shutdown complete")


@app.get("/")
def root():
    return {
        "service": "tagline",
        "message": "TAGLINE driver service running",
    }


def main(argv=None) -> int:
    global tagline_service

    parser = argparse.ArgumentParser(description="Run the TAGLINE driver HTTP service")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="API bind address")
    parser.add_argument("--port", type=int, default=API_PORT, help="API port")
    parser.add_argument("--raid-host", type=str, default=RAID_HOST, help="RAID bus server host")
    parser.add_argument("--raid-port", type=int, default=RAID_PORT, help="RAID bus server port")
    parser.add_argument("--local-raid", action="store_true", help="Use an in-process RAID array")
    parser.add_argument("--database-url", type=str, default=DATABASE_URL, help="SQLAlchemy URL for store metadata")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-l", "--log-file", type=str, default=None, help="Write log messages to this file")
    args = parser.parse_args(argv)

    setup_logging("tagline", level=logging.INFO if args.verbose else logging.WARNING, log_file=args.log_file)

    tagline_service = build_service(
        database_url=args.database_url,
        raid_host=args.raid_host,
        raid_port=args.raid_port,
        local_raid=args.local_raid,
    )
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
