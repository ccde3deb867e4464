"""
RAID Bus Service

Runs the simulated RAID array behind a TCP bus endpoint.

Usage:
    python -m raid.service --host 127.0.0.1 --port 9700 --storage-root ./vm_storage/raid -v
"""

import argparse
import logging
import signal
import sys

from raid.array import RaidArray
from raid.data_handler import RaidBusServer
from shared.logging_config import setup_logging
from tagline.config import RAID_DISKBLOCKS, RAID_HOST, RAID_PORT, STORAGE_ROOT, TAGLINE_BLOCK_SIZE

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the simulated RAID array bus server")
    parser.add_argument("--host", type=str, default=RAID_HOST, help="Listen address")
    parser.add_argument("--port", type=int, default=RAID_PORT, help="Listen port")
    parser.add_argument(
        "--storage-root",
        type=str,
        default=STORAGE_ROOT,
        help="Directory for disk images (default: keep disks in memory)"
    )
    parser.add_argument("--disk-blocks", type=int, default=RAID_DISKBLOCKS, help="Blocks per disk")
    parser.add_argument("--block-size", type=int, default=TAGLINE_BLOCK_SIZE, help="Bytes per block")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-l", "--log-file", type=str, default=None, help="Write log messages to this file")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("raid", level=logging.INFO if args.verbose else logging.WARNING, log_file=args.log_file)

    array = RaidArray(
        disk_blocks=args.disk_blocks,
        block_size=args.block_size,
        storage_root=args.storage_root,
    )
    server = RaidBusServer(args.host, args.port, array)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        server.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    server.start()
    return 0


if __name__ == "__main__":
    sys.exit(main())
