from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import structlog


@dataclass
class LogRecordEntry:
    logger_name: str
    level: int
    level_name: str
    message: str
    created: float


class LogCapture:
    """Bounded in-memory store of log records, for host UIs and tests."""

    def __init__(self, max_entries: Optional[int] = None) -> None:
        self._max_entries = max_entries
        self._records: list[LogRecordEntry] = []

    def add_record(self, record: logging.LogRecord) -> None:
        self._records.append(
            LogRecordEntry(
                logger_name=record.name,
                level=record.levelno,
                level_name=record.levelname,
                message=record.getMessage(),
                created=record.created,
            )
        )
        if self._max_entries is not None and len(self._records) > self._max_entries:
            del self._records[0 : len(self._records) - self._max_entries]

    def get_records(self) -> list[LogRecordEntry]:
        return list(self._records)

    def messages(self, min_level: int = logging.NOTSET) -> list[str]:
        return [r.message for r in self._records if r.level >= min_level]

    def clear(self) -> None:
        self._records.clear()


class _CaptureHandler(logging.Handler):
    def __init__(self, capture: LogCapture) -> None:
        super().__init__()
        self._capture = capture

    def emit(self, record: logging.LogRecord) -> None:
        self._capture.add_record(record)


_capture: Optional[LogCapture] = None
_capture_handler: Optional[_CaptureHandler] = None


def install_log_capture(max_entries: Optional[int] = None) -> LogCapture:
    """Attach an in-memory handler to the voedit logger and return its store.

    Repeated calls return the same store.
    """
    global _capture, _capture_handler
    if _capture is None:
        _capture = LogCapture(max_entries=max_entries)
        _capture_handler = _CaptureHandler(_capture)

    voedit_logger = logging.getLogger("voedit")
    if _capture_handler is not None and _capture_handler not in voedit_logger.handlers:
        voedit_logger.addHandler(_capture_handler)
    if voedit_logger.level == logging.NOTSET or voedit_logger.level > logging.DEBUG:
        voedit_logger.setLevel(logging.DEBUG)
    return _capture


def get_log_capture() -> Optional[LogCapture]:
    return _capture


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
) -> None:
    """Route voedit log output to a file, or to stderr when no file is given."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    if log_file is not None:
        handler: logging.Handler = logging.FileHandler(
            log_file, mode="a", encoding="utf-8", delay=True
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    voedit_logger = logging.getLogger("voedit")
    voedit_logger.addHandler(handler)
    voedit_logger.setLevel(level)


structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(logging.NOTSET),
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.dev.ConsoleRenderer(colors=False),
    ],
)

logger: structlog.BoundLogger = structlog.get_logger("voedit")
