"""Capture femtologging output for assertions."""

from __future__ import annotations

import contextlib
import dataclasses
import threading
import time
import typing as typ

from femtologging import get_logger


@dataclasses.dataclass(slots=True)
class CapturedRecord:
    """One captured log record."""

    logger: str
    level: str
    message: str


class LogCapture:
    """Python handler collecting records from the femtologging worker."""

    def __init__(self) -> None:
        self.records: list[CapturedRecord] = []
        self._condition = threading.Condition()

    def handle(self, logger: str, level: str, message: str) -> None:
        """Store a record delivered by femtologging."""
        with self._condition:
            self.records.append(CapturedRecord(str(logger), str(level), message))
            self._condition.notify_all()

    def wait_for(
        self, predicate: typ.Callable[[CapturedRecord], bool], timeout: float = 1.0
    ) -> CapturedRecord:
        """Block until a record matches ``predicate`` and return it."""
        deadline = time.monotonic() + timeout
        with self._condition:
            while True:
                for record in self.records:
                    if predicate(record):
                        return record
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._condition.wait(timeout=remaining)
        messages = [record.message for record in self.records]
        msg = f"No matching log record; captured {messages!r}"
        raise AssertionError(msg)

    def wait_for_message(self, fragment: str, timeout: float = 1.0) -> CapturedRecord:
        """Block until a record containing ``fragment`` arrives."""
        return self.wait_for(lambda record: fragment in record.message, timeout)


@contextlib.contextmanager
def capture_logs(logger_name: str, *, level: str = "DEBUG") -> typ.Iterator[LogCapture]:
    """Attach a :class:`LogCapture` to ``logger_name`` for the block."""
    logger = get_logger(logger_name)
    previous_level = logger.level
    previous_propagate = logger.propagate
    logger.set_level(level)
    logger.set_propagate(False)
    handler = LogCapture()
    logger.add_handler(handler)
    try:
        yield handler
    finally:
        logger.remove_handler(handler)
        logger.set_level(previous_level)
        logger.set_propagate(previous_propagate)
