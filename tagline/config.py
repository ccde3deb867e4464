import os
from dataclasses import dataclass


def _int_env(name: str, default: int) -> int:
    raw = str(os.getenv(name, str(default))).strip()
    try:
        return int(raw)
    except Exception:
        return default


TAGLINE_BLOCK_SIZE = _int_env("TAGLINE_BLOCK_SIZE", 1024)
MAX_TAGLINE_BLOCK_NUMBER = _int_env("TAGLINE_MAX_BLOCKS", 256)
RAID_DISKS = _int_env("TAGLINE_RAID_DISKS", 9)
RAID_DISKBLOCKS = _int_env("TAGLINE_RAID_DISKBLOCKS", 4096)

DATABASE_URL = str(os.getenv("TAGLINE_DATABASE_URL", "sqlite://")).strip()
RAID_HOST = str(os.getenv("TAGLINE_RAID_HOST", "127.0.0.1")).strip()
RAID_PORT = _int_env("TAGLINE_RAID_PORT", 9700)
API_PORT = _int_env("TAGLINE_API_PORT", 8001)
STORAGE_ROOT = os.getenv("TAGLINE_STORAGE_ROOT") or None


@dataclass(frozen=True)
class StoreConfig:
    """Geometry of the virtual block store."""
    block_size: int = TAGLINE_BLOCK_SIZE
    max_blocks: int = MAX_TAGLINE_BLOCK_NUMBER
    disk_count: int = RAID_DISKS
    disk_blocks: int = RAID_DISKBLOCKS
