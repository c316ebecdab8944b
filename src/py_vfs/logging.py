"""Session audit log — who touched which path, and whether it was allowed.

Every mutation that goes through the filesystem gateway, and every
permission denial it raises, is recorded here.  The log is the virtual
system's ``/var/log/auth.log``: an append-only buffer of structured
records that the ``log`` shell command can display and filter.

Denials are written at WARNING and mutations at INFO, so
``logger.filter(min_level=LogLevel.WARNING)`` answers "what was refused?"
and ``logger.filter(uid=1000)`` answers "what did alice do?".  Levels are
an ``IntEnum`` so they order naturally; entries are frozen once written.
"""

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """Severity levels for log entries."""

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
        source: The subsystem that generated the event (e.g. "fs").
        uid: The uid of the session user that triggered the event.

    """

    level: LogLevel
    message: str
    source: str
    uid: int = 0

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message``."""
        return f"[{self.level.name}] {self.source}: {self.message}"


class Logger:
    """Append-only log buffer with filtering.

    One logger lives on each session context; the filesystem service,
    the shell, and the installer all write into it.
    """

    def __init__(self, *, min_level: LogLevel = LogLevel.DEBUG) -> None:
        """Create an empty logger.

        Args:
            min_level: Entries below this level are dropped on write.

        """
        self._entries: list[LogEntry] = []
        self._min_level = min_level

    @property
    def entries(self) -> list[LogEntry]:
        """Return all log entries in chronological order."""
        return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        uid: int = 0,
    ) -> None:
        """Append a new entry to the log.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Subsystem that generated the event.
            uid: User id associated with the event.

        """
        if level < self._min_level:
            return
        self._entries.append(LogEntry(level=level, message=message, source=source, uid=uid))

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
        uid: int | None = None,
    ) -> list[LogEntry]:
        """Return entries matching the given criteria.

        Args:
            min_level: If set, only return entries at or above this level.
            source: If set, only return entries from this source.
            uid: If set, only return entries triggered by this uid.

        Returns:
            A filtered list of log entries.

        """
        result = list(self._entries)
        if min_level is not None:
            result = [e for e in result if e.level >= min_level]
        if source is not None:
            result = [e for e in result if e.source == source]
        if uid is not None:
            result = [e for e in result if e.uid == uid]
        return result

    def tail(self, count: int) -> list[LogEntry]:
        """Return the last *count* entries."""
        if count <= 0:
            return []
        return self._entries[-count:]

    def clear(self) -> None:
        """Remove all log entries."""
        self._entries.clear()

    def __len__(self) -> int:
        """Return the number of stored entries."""
        return len(self._entries)
