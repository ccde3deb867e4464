import logging

import pytest

from shared.logging_config import setup_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def test_log_file_replaces_stdout(root_logger, tmp_path):
    log_file = tmp_path / "logs" / "sim.log"
    setup_logging("tagline", level=logging.INFO, log_file=str(log_file))

    assert [type(h) for h in root_logger.handlers] == [logging.FileHandler]
    logging.getLogger("tagline.test").warning("disk 2 went away")
    root_logger.handlers[0].flush()
    assert "[TAGLINE] WARNING - disk 2 went away" in log_file.read_text()


def test_stdout_by_default(root_logger):
    setup_logging("raid", level=logging.WARNING)
    assert len(root_logger.handlers) == 1
    assert type(root_logger.handlers[0]) is logging.StreamHandler
    assert root_logger.level == logging.WARNING
