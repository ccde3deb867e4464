"""
Workload Simulator

Replays a workload file against a tagline driver and checks every read
against the data the workload expects.

Each line reads:

    COMMAND tag num_blocks start_block pattern

COMMAND is INIT (tag field carries max_tags), WRITE, READ, CLOSE, or
`tagline`, which validates the final contents of a tag one block at a
time. Each pattern character fills one whole block. Commands are
case-sensitive; unrecognized ones are logged and skipped. The first
failure aborts the rest of the workload.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Protocol, Union

from tagline.errors import TaglineError

logger = logging.getLogger(__name__)


class TaglineDriver(Protocol):
    def init(self, max_tags: int) -> None: ...
    def read(self, tag: int, start_offset: int, count: int) -> bytes: ...
    def write(self, tag: int, start_offset: int, count: int, data: bytes) -> None: ...
    def close(self) -> None: ...


class WorkloadError(Exception):
    """The workload could not be parsed or did not replay cleanly."""

    def __init__(self, message: str, line_number: int = 0):
        super().__init__(message)
        self.line_number = line_number


@dataclass(frozen=True)
class WorkloadCommand:
    command: str
    tag: int
    num_blocks: int
    start_block: int
    pattern: str
    line_number: int = 0


def parse_line(line: str, line_number: int = 0) -> WorkloadCommand:
    fields = line.split()
    if len(fields) != 5:
        raise WorkloadError(f"Tagline un-parsable workload string, aborting [{line.strip()}], line {line_number}", line_number)
    command, tag, num_blocks, start_block, pattern = fields
    try:
        return WorkloadCommand(command, int(tag), int(num_blocks), int(start_block), pattern, line_number)
    except ValueError:
        raise WorkloadError(f"Tagline un-parsable workload string, aborting [{line.strip()}], line {line_number}", line_number)


def parse_workload(lines: Iterable[str]) -> Iterator[WorkloadCommand]:
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        yield parse_line(line, line_number)


def fill_blocks(pattern: str, block_size: int) -> bytes:
    """One block per pattern character, each block filled with that character."""
    return b"".join(ch.encode("latin-1") * block_size for ch in pattern)


class WorkloadRunner:
    """Replays workload commands against a driver, failing fast"""

    def __init__(self, driver: TaglineDriver, block_size: int):
        self.driver = driver
        self.block_size = block_size
        self.commands_run = 0

    def run_file(self, path: Union[str, Path]) -> int:
        """Replay a workload file; returns the number of commands executed."""
        try:
            with open(path, "r", encoding="utf-8") as handle:
                return self.run(handle)
        except OSError as e:
            raise WorkloadError(f"Failure opening the workload file [{path}], error: {e}")

    def run(self, lines: Iterable[str]) -> int:
        for cmd in parse_workload(lines):
            logger.info(
                f"INPUT cmd={cmd.command} tag={cmd.tag} #blks={cmd.num_blocks} "
                f"start-blk={cmd.start_block} data={cmd.pattern}"
            )
            try:
                if not self.execute(cmd):
                    continue
            except TaglineError as e:
                raise WorkloadError(f"{cmd.command} failed on line {cmd.line_number}: {type(e).__name__}: {e}", cmd.line_number) from e
            except ValueError as e:
                raise WorkloadError(f"{cmd.command} rejected on line {cmd.line_number}: {e}", cmd.line_number) from e
            self.commands_run += 1
        return self.commands_run

    def execute(self, cmd: WorkloadCommand) -> bool:
        """Run one command; returns False when the command is not recognized and was skipped."""
        command = cmd.command
        if command == "INIT":
            self.driver.init(cmd.tag)
        elif command == "CLOSE":
            self.driver.close()
        elif command == "READ":
            self._check_pattern(cmd)
            self._read_and_compare(cmd.tag, cmd.start_block, cmd.pattern, cmd.line_number)
        elif command == "WRITE":
            self._check_pattern(cmd)
            self.driver.write(cmd.tag, cmd.start_block, cmd.num_blocks, fill_blocks(cmd.pattern, self.block_size))
        elif command == "tagline":
            logger.info(f"Getting tagline final data ({command})")
            for i, ch in enumerate(cmd.pattern):
                self._read_and_compare(cmd.tag, i, ch, cmd.line_number)
            logger.info(f"Tagline validation successful for tag line [{cmd.tag}]")
        else:
            logger.warning(f"Skipping unknown workload command [{command}], line {cmd.line_number}")
            return False
        return True

    def _check_pattern(self, cmd: WorkloadCommand) -> None:
        if len(cmd.pattern) != cmd.num_blocks:
            raise WorkloadError(f"Text/number blocks mismatch in input data, line {cmd.line_number}", cmd.line_number)

    def _read_and_compare(self, tag: int, start_block: int, pattern: str, line_number: int) -> None:
        expected = fill_blocks(pattern, self.block_size)
        actual = self.driver.read(tag, start_block, len(pattern))
        if actual != expected:
            first = next((i for i, (a, b) in enumerate(zip(expected, actual)) if a != b), min(len(expected), len(actual)))
            raise WorkloadError(
                f"Read blocks data mismatch return from tagline storage (tag {tag}, "
                f"block {start_block + first // self.block_size}), line {line_number}",
                line_number,
            )
