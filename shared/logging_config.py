"""
Logging configuration for the TAGLINE services.

Provides consistent logging setup across the tagline driver, the RAID bus server and the workload simulator.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(
    component_name: str,
    level=logging.INFO,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
):
    """
    Configure logging for a TAGLINE component.

    Args:
        component_name: Component identifier (e.g., 'tagline', 'raid')
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output (replaces stdout, like the simulator's -l)
        format_string: Custom format string (default provided)
    """
    if format_string is None:
        format_string = f'[%(asctime)s] [{component_name.upper()}] %(levelname)s - %(message)s'

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(format_string, datefmt=DATE_FORMAT))

    # Configure root logger; force replaces handlers from an earlier call in the same process
    logging.basicConfig(level=level, handlers=[handler], force=True)

    logger = logging.getLogger(component_name)
    logger.info(f"{component_name.upper()} logging initialized (level={logging.getLevelName(level)})")

    return logger
