"""File table — the fixed-capacity flat namespace.

The table is the single owner of every ``FileRecord``.  Records are kept
in a list in insertion order (that order is the directory listing) and
indexed by name in a dict for constant-time lookup.

There is no removal and no rename: once created, a record lives as long
as the table does.  Every insert is validated before anything changes,
so a failed insert leaves the table exactly as it was.
"""

from __future__ import annotations

import uuid

from heisenberg_fs.config import DEFAULT_MAX_FILES
from heisenberg_fs.observation import Operation, Transition
from heisenberg_fs.record import FileRecord


class FileTableError(Exception):
    """Base class for file table failures."""


class DuplicateNameError(FileTableError):
    """Raised when inserting a name that is already in the table."""


class CapacityExceededError(FileTableError):
    """Raised when inserting into a full table."""


class FileTable:
    """Insertion-ordered, name-unique, capacity-bounded record store."""

    def __init__(self, *, capacity: int = DEFAULT_MAX_FILES) -> None:
        """Create an empty table holding at most *capacity* records."""
        self._capacity = capacity
        self._records: list[FileRecord] = []
        self._index: dict[str, int] = {}

    @property
    def capacity(self) -> int:
        """Return the maximum number of records."""
        return self._capacity

    @property
    def is_full(self) -> bool:
        """Return True when no more records can be inserted."""
        return len(self._records) >= self._capacity

    def __len__(self) -> int:
        """Return the number of records."""
        return len(self._records)

    def __contains__(self, name: object) -> bool:
        """Return True if a record with *name* exists."""
        return name in self._index

    def insert(self, record: FileRecord) -> uuid.UUID:
        """Append *record* to the table.

        Returns:
            The record's identifier.

        Raises:
            CapacityExceededError: If the table is full.
            DuplicateNameError: If the name is already taken.

        """
        if self.is_full:
            msg = f"File table full ({self._capacity} files)"
            raise CapacityExceededError(msg)
        if record.name in self._index:
            msg = f"File exists: {record.name}"
            raise DuplicateNameError(msg)
        self._index[record.name] = len(self._records)
        self._records.append(record)
        return record.record_id

    def lookup(self, name: str) -> FileRecord | None:
        """Return the record named *name*, or None."""
        position = self._index.get(name)
        if position is None:
            return None
        return self._records[position]

    def list_all(self) -> list[str]:
        """Return every name in insertion order, observing each record.

        Listing is itself an observation: each record takes a
        ``LIST`` transition.  Use ``list_transitions`` to see them.
        """
        return [name for name, _ in self.list_transitions()]

    def list_transitions(self) -> list[tuple[str, Transition]]:
        """Observe every record with ``LIST`` and return ``(name, transition)``."""
        return [(record.name, record.observe(Operation.LIST)) for record in self._records]

    def records(self) -> list[FileRecord]:
        """Return the records in insertion order without observing them."""
        return list(self._records)
