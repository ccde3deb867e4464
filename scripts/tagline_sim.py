"""
Tagline Workload Simulator

Replays a workload file against the tagline driver and reports whether the
storage returned what the workload expected.

Usage:
    python scripts/tagline_sim.py [-v] [-l <logfile>] <workload-file>
    python scripts/tagline_sim.py --raid-host 127.0.0.1 --raid-port 9700 <workload-file>
    python scripts/tagline_sim.py --api-url http://127.0.0.1:8001 <workload-file>

With no bus options the driver runs against an in-process RAID array.
"""

import argparse
import logging
import os
import sys

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from raid.array import RaidArray
from raid.bus import LocalRaidBus, RaidBusClient
from shared.logging_config import setup_logging
from tagline.client import TaglineApiClient
from tagline.config import DATABASE_URL, RAID_PORT, STORAGE_ROOT, StoreConfig
from tagline.services.tagline_service import TaglineService
from tagline.store import Store
from tagline.workload import WorkloadError, WorkloadRunner

logger = logging.getLogger("tagline_sim")


def build_driver(args, config: StoreConfig):
    if args.api_url:
        return TaglineApiClient(args.api_url)
    if args.raid_host:
        bus = RaidBusClient(args.raid_host, args.raid_port)
    else:
        bus = LocalRaidBus(RaidArray(config.disk_blocks, config.block_size, args.storage_root))
    return TaglineService(Store.open(args.database_url, config), bus)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run a TAGLINE workload simulation")
    parser.add_argument("workload", help="File containing the workload to simulate")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-l", "--log-file", type=str, default=None, help="Write log messages to this file")
    parser.add_argument("--raid-host", type=str, default=None, help="RAID bus server host (default: in-process array)")
    parser.add_argument("--raid-port", type=int, default=RAID_PORT, help="RAID bus server port")
    parser.add_argument("--api-url", type=str, default=None, help="Drive a running tagline service instead")
    parser.add_argument("--storage-root", type=str, default=STORAGE_ROOT, help="Disk image directory for the in-process array")
    parser.add_argument("--database-url", type=str, default=DATABASE_URL, help="SQLAlchemy URL for store metadata")
    args = parser.parse_args(argv)

    setup_logging("tagline", level=logging.INFO if args.verbose else logging.WARNING, log_file=args.log_file)

    config = StoreConfig()
    runner = WorkloadRunner(build_driver(args, config), config.block_size)
    try:
        runner.run_file(args.workload)
    except WorkloadError as e:
        logger.error(str(e))
        logger.error("Tagline simulation failed.")
        return 1

    logger.info(f"Tagline simulation completed successfully ({runner.commands_run} commands).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
