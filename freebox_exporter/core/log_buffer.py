"""Circular log buffer for Freebox exporter diagnostics.

Captures INFO+ logs from freebox_exporter loggers into a fixed-size circular
buffer so the session diagnostic can report what the authentication layer
did recently, independent of where the process sends its logs. Oldest
entries are automatically dropped when the buffer is full.

Usage:
    # At process startup:
    from freebox_exporter.core.log_buffer import setup_logging
    setup_logging("INFO")

    # When building a diagnostic report:
    from freebox_exporter.core.log_buffer import get_log_entries
    logs = get_log_entries()
"""

from __future__ import annotations

import logging
import re
import time
from collections import deque
from dataclasses import dataclass, field

from ..const import DOMAIN

MAX_LOG_ENTRIES = 200

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Loggers of the HTTP stack, only shown when debugging
NOISY_LOGGERS = ("aiohttp", "asyncio")


def sanitize_message(message: str) -> str:
    """Redact anything that looks like a secret from a log message.

    Args:
        message: Raw log message

    Returns:
        Message with token, password and challenge values redacted
    """
    return re.sub(
        r"(password|app_token|session_token|token|challenge|secret)([\"']?\s*[=:]\s*[\"']?)[^\s,}\]\"']+",
        r"\1\2***REDACTED***",
        message,
        flags=re.IGNORECASE,
    )


@dataclass
class LogEntry:
    """A single log entry."""

    timestamp: float
    level: str
    logger: str
    message: str

    def to_dict(self) -> dict:
        """Convert to dictionary for diagnostics output."""
        return {
            "timestamp": self.timestamp,
            "level": self.level,
            "logger": self.logger,
            "message": self.message,
        }


@dataclass
class LogBuffer:
    """Fixed-size circular buffer using deque. Drops oldest when full."""

    entries: deque[LogEntry] = field(default_factory=lambda: deque(maxlen=MAX_LOG_ENTRIES))

    def add(self, level: str, logger: str, message: str) -> None:
        """Add a log entry to the buffer."""
        # Strip the common prefix for cleaner output
        short_logger = logger.replace(f"{DOMAIN}.", "")
        self.entries.append(
            LogEntry(
                timestamp=time.time(),
                level=level,
                logger=short_logger,
                message=sanitize_message(message),
            )
        )

    def get_entries(self) -> list[dict]:
        """Get all entries as list of dicts."""
        return [entry.to_dict() for entry in self.entries]

    def clear(self) -> None:
        """Clear all entries."""
        self.entries.clear()


class BufferingHandler(logging.Handler):
    """Log handler that captures entries to our buffer.

    Installed on the freebox_exporter logger to capture all INFO+ logs
    while still allowing them to propagate to the root handlers.
    """

    def __init__(self, buffer: LogBuffer, level: int = logging.INFO) -> None:
        """Initialize the handler."""
        super().__init__(level)
        self.buffer = buffer

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record to the buffer."""
        try:
            message = self.format(record)
            self.buffer.add(record.levelname, record.name, message)
        except Exception:
            self.handleError(record)


def install_log_buffer(level: int = logging.INFO) -> LogBuffer:
    """Install the buffering handler on the package logger.

    Idempotent: a second call returns the buffer already installed.

    Args:
        level: Minimum level captured by the buffer

    Returns:
        The active LogBuffer
    """
    existing = get_log_buffer()
    if existing is not None:
        return existing

    buffer = LogBuffer()
    handler = BufferingHandler(buffer, level=level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logging.getLogger(DOMAIN).addHandler(handler)
    return buffer


def get_log_buffer() -> LogBuffer | None:
    """Get the buffer installed on the package logger, if any."""
    for handler in logging.getLogger(DOMAIN).handlers:
        if isinstance(handler, BufferingHandler):
            return handler.buffer
    return None


def get_log_entries() -> list[dict]:
    """Get log entries for diagnostics.

    Returns:
        List of log entry dicts, or empty list if buffer not installed
    """
    buffer = get_log_buffer()
    if buffer is None:
        return []
    return buffer.get_entries()


def setup_logging(level: str | int = logging.INFO) -> LogBuffer:
    """Configure process logging for command line use.

    Sends records to stderr, keeps the HTTP stack quiet unless debugging,
    and installs the diagnostics buffer.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level

    Returns:
        The active LogBuffer
    """
    if isinstance(level, str):
        numeric_level = logging.getLevelName(level.upper())
        if not isinstance(numeric_level, int):
            raise ValueError(f"Unknown log level: {level}")
        level = numeric_level

    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger(DOMAIN).setLevel(level)

    noisy_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    return install_log_buffer()
