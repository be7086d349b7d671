"""Engine logging and audit trail.

The engine records what every request did to the file table: which
request came in, which file it observed, and how the file's observation
state moved.  The log is the only place anomalous transitions surface,
since they are never errors.

- **LogLevel** — severity levels ordered for filtering (DEBUG < ERROR).
- **LogEntry** — a single structured record (level, message, source,
  uid, path).
- **Logger** — a bounded append-only buffer with filtering.  When the
  buffer is full the oldest entries fall off, like a kernel ring buffer.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """Severity levels for log entries.

    IntEnum so levels compare with ``<`` / ``>`` for minimum-level
    filtering.
    """

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The component that generated the event (e.g. "observe").
        uid: The caller uid the event is attributed to.
        path: The file the event concerns, or None for table-wide events.

    """

    level: LogLevel
    message: str
    source: str
    uid: int = 0
    path: str | None = None

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message``."""
        return f"[{self.level.name}] {self.source}: {self.message}"


class Logger:
    """Bounded append-only log buffer with filtering."""

    def __init__(self, *, capacity: int | None = None) -> None:
        """Create an empty logger.

        Args:
            capacity: Most entries kept; None keeps everything.

        """
        self._entries: deque[LogEntry] = deque(maxlen=capacity)

    @property
    def entries(self) -> list[LogEntry]:
        """Return all retained log entries in chronological order."""
        return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        uid: int = 0,
        path: str | None = None,
    ) -> None:
        """Append a new entry to the log.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Component that generated the event.
            uid: Caller uid associated with the event.
            path: File the event concerns, if any.

        """
        self._entries.append(
            LogEntry(level=level, message=message, source=source, uid=uid, path=path)
        )

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
        path: str | None = None,
    ) -> list[LogEntry]:
        """Return entries matching all of the given criteria.

        Args:
            min_level: If set, only return entries at or above this level.
            source: If set, only return entries from this source.
            path: If set, only return entries about this file.

        Returns:
            A filtered list of log entries.

        """
        result = list(self._entries)
        if min_level is not None:
            result = [e for e in result if e.level >= min_level]
        if source is not None:
            result = [e for e in result if e.source == source]
        if path is not None:
            result = [e for e in result if e.path == path]
        return result

    def tail(self, count: int) -> list[LogEntry]:
        """Return the last *count* entries."""
        if count <= 0:
            return []
        return list(self._entries)[-count:]

    def clear(self) -> None:
        """Remove all log entries."""
        self._entries.clear()
