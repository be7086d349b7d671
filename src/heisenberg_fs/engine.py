"""Filesystem engine — the facade a kernel bridge talks to.

The engine owns one ``FileTable`` and translates each bridge request
into table and record calls.  It is also the only place that:

- Reads the caller identity (to stamp owner/group on new files).
- Turns internal exceptions into ``EngineError`` with a kind and errno.
- Writes the audit log: every request, every observation, and every
  anomalous transition.

Paths are absolute and flat: ``/name``.  The root ``/`` can be listed and
stat'ed; anything deeper is not part of the namespace.

Every request perturbs observation state (even stat and list), so every
request is a mutation.  A single re-entrant lock serializes them.
"""

from __future__ import annotations

import stat as stat_mod
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any, NoReturn, TypeVar

from heisenberg_fs.config import EngineConfig
from heisenberg_fs.dispatch import EngineError, ErrorKind, RequestKind, dispatch_request
from heisenberg_fs.identity import Identity, IdentityProvider, process_identity
from heisenberg_fs.logging import Logger, LogLevel
from heisenberg_fs.observation import Transition
from heisenberg_fs.record import FileAttributes, FileRecord, InvalidNameError, OutOfRangeError
from heisenberg_fs.table import CapacityExceededError, DuplicateNameError, FileTable

ROOT_PATH = "/"

_F = TypeVar("_F", bound=Callable[..., Any])


@dataclass(frozen=True)
class RootAttributes:
    """Stat result for the root directory."""

    mode: int
    nlink: int
    uid: int
    gid: int


def _serialized(method: _F) -> _F:
    """Run *method* while holding the engine lock."""

    @wraps(method)
    def wrapper(self: FilesystemEngine, *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class FilesystemEngine:
    """Serve bridge requests against one flat file table."""

    def __init__(
        self,
        *,
        config: EngineConfig | None = None,
        identity: IdentityProvider = process_identity,
        logger: Logger | None = None,
    ) -> None:
        """Create an engine with an empty table.

        Args:
            config: Limits for this mount; defaults to ``EngineConfig()``.
            identity: Returns the identity of the current caller.
            logger: Where to record events; a bounded logger by default.

        """
        self._config = config or EngineConfig()
        self._identity = identity
        self._owner: Identity = identity()
        self._table = FileTable(capacity=self._config.max_files)
        self._logger = logger or Logger(capacity=self._config.log_capacity)
        self._lock = threading.RLock()
        self._logger.log(
            LogLevel.INFO,
            f"file table ready ({self._config.max_files} files of "
            f"{self._config.max_file_size} bytes)",
            source="engine",
            uid=self._owner.uid,
        )

    @property
    def config(self) -> EngineConfig:
        """Return the engine's limits."""
        return self._config

    @property
    def table(self) -> FileTable:
        """Return the file table."""
        return self._table

    @property
    def logger(self) -> Logger:
        """Return the audit log."""
        return self._logger

    @property
    @_serialized
    def file_count(self) -> int:
        """Return the number of files in the table."""
        return len(self._table)

    @property
    @_serialized
    def anomaly_count(self) -> int:
        """Return the number of anomalous transitions across all files."""
        return sum(record.anomaly_count for record in self._table.records())

    # -- Request interface ------------------------------------------------------

    @_serialized
    def handle(self, kind: RequestKind, **kwargs: Any) -> Any:
        """Serve one bridge request.

        Args:
            kind: The request kind.
            **kwargs: Arguments specific to the request.

        Returns:
            The request result (type depends on the request).

        Raises:
            EngineError: If the request fails.

        """
        label = kind.name if isinstance(kind, RequestKind) else str(kind)
        self._logger.log(
            LogLevel.DEBUG,
            f"request {label}",
            source="request",
            uid=self._identity().uid,
            path=kwargs.get("path"),
        )
        return dispatch_request(self, kind, **kwargs)

    # -- Namespace operations ---------------------------------------------------

    @_serialized
    def list_dir(self, path: str = ROOT_PATH) -> list[str]:
        """Return every file name in insertion order.

        Listing observes each file.

        Raises:
            EngineError: NOT_FOUND for any path other than the root.

        """
        if path != ROOT_PATH:
            self._fail(ErrorKind.NOT_FOUND, f"No such directory: {path}", path)
        names: list[str] = []
        for name, transition in self._table.list_transitions():
            self._log_transition(name, transition)
            names.append(name)
        return names

    @_serialized
    def stat(self, path: str) -> FileAttributes | RootAttributes:
        """Return the attributes of a file, or of the root directory.

        Stat on the root observes nothing.

        Raises:
            EngineError: NOT_FOUND if the file does not exist.

        """
        if path == ROOT_PATH:
            return RootAttributes(
                mode=stat_mod.S_IFDIR | self._config.root_mode,
                nlink=2 + len(self._table),
                uid=self._owner.uid,
                gid=self._owner.gid,
            )
        record = self._require(path)
        attributes = record.stat()
        self._log_observed(record)
        return attributes

    @_serialized
    def create(self, path: str, mode: int) -> uuid.UUID:
        """Create a file owned by the current caller.

        Returns:
            The new record's identifier.

        Raises:
            EngineError: CAPACITY_EXCEEDED, DUPLICATE_NAME or INVALID_NAME.

        """
        caller = self._identity()
        try:
            record = FileRecord.create(
                self._name_for(path),
                mode,
                caller.uid,
                caller.gid,
                capacity=self._config.max_file_size,
                max_name_length=self._config.max_name_length,
            )
            record_id = self._table.insert(record)
        except InvalidNameError as e:
            self._fail(ErrorKind.INVALID_NAME, str(e), path, cause=e)
        except CapacityExceededError as e:
            self._fail(ErrorKind.CAPACITY_EXCEEDED, str(e), path, cause=e)
        except DuplicateNameError as e:
            self._fail(ErrorKind.DUPLICATE_NAME, str(e), path, cause=e)
        self._log_observed(record)
        return record_id

    @_serialized
    def mkdir(self, path: str, mode: int = 0o755) -> None:
        """Refuse: the namespace has no subdirectories.

        Raises:
            EngineError: Always NOT_SUPPORTED.

        """
        self._fail(ErrorKind.NOT_SUPPORTED, f"Directories are not supported: {path}", path)

    # -- Per-file operations ----------------------------------------------------

    @_serialized
    def open(self, path: str) -> None:
        """Open a file; any number of opens may be outstanding."""
        record = self._require(path)
        record.open()
        self._log_observed(record)

    @_serialized
    def set_times(self, path: str, access_time: float, modify_time: float) -> None:
        """Set the access and modification times together."""
        record = self._require(path)
        record.set_times(access_time, modify_time)
        self._log_observed(record)

    @_serialized
    def write(self, path: str, offset: int, data: bytes) -> int:
        """Write *data* at *offset*.

        Returns:
            The number of bytes written.

        Raises:
            EngineError: NOT_FOUND, or OUT_OF_RANGE if the write does not
                fit the file's fixed buffer.

        """
        record = self._require(path)
        try:
            written = record.write(offset, bytes(data))
        except OutOfRangeError as e:
            self._fail(ErrorKind.OUT_OF_RANGE, str(e), path, cause=e)
        self._log_observed(record)
        return written

    @_serialized
    def read(self, path: str, offset: int, max_length: int) -> bytes:
        """Read up to *max_length* bytes at *offset*; empty past the end."""
        record = self._require(path)
        data = record.read(offset, max_length)
        self._log_observed(record)
        return data

    @_serialized
    def truncate(self, path: str, new_size: int) -> None:
        """Set the logical size of a file.

        Raises:
            EngineError: NOT_FOUND, or OUT_OF_RANGE beyond the buffer.

        """
        record = self._require(path)
        try:
            record.truncate(new_size)
        except OutOfRangeError as e:
            self._fail(ErrorKind.OUT_OF_RANGE, str(e), path, cause=e)
        self._log_observed(record)

    @_serialized
    def release(self, path: str) -> None:
        """Release a file; the record stays in the table."""
        record = self._require(path)
        record.release()
        self._log_observed(record)

    # -- Inspection -------------------------------------------------------------

    @_serialized
    def inspect(self) -> list[FileAttributes]:
        """Return every file's attributes without observing anything."""
        return [record.attributes() for record in self._table.records()]

    # -- Internals --------------------------------------------------------------

    def _require(self, path: str) -> FileRecord:
        """Return the record at *path* or fail with NOT_FOUND."""
        record = self._table.lookup(self._name_for(path))
        if record is None:
            self._fail(ErrorKind.NOT_FOUND, f"No such file: {path}", path)
        return record

    def _name_for(self, path: str) -> str:
        """Turn an absolute path into a file name, or fail with NOT_FOUND."""
        if not path.startswith(ROOT_PATH):
            self._fail(ErrorKind.NOT_FOUND, f"Path is not absolute: {path}", path)
        return path[len(ROOT_PATH) :]

    def _fail(
        self,
        kind: ErrorKind,
        message: str,
        path: str,
        *,
        cause: Exception | None = None,
    ) -> NoReturn:
        """Log a failed request and raise ``EngineError``."""
        self._logger.log(
            LogLevel.INFO,
            f"{kind.value}: {message}",
            source="engine",
            uid=self._identity().uid,
            path=path,
        )
        raise EngineError(kind, message) from cause

    def _log_observed(self, record: FileRecord) -> None:
        """Log the record's most recent transition."""
        if record.last_transition is not None:
            self._log_transition(record.name, record.last_transition)

    def _log_transition(self, name: str, transition: Transition) -> None:
        """Log one observation, and a warning if it was anomalous."""
        uid = self._identity().uid
        self._logger.log(
            LogLevel.DEBUG,
            f"{name}: {transition.source} -> {transition.destination}",
            source="observe",
            uid=uid,
            path=ROOT_PATH + name,
        )
        if transition.anomaly:
            self._logger.log(
                LogLevel.WARNING,
                f"{name}: unexpected {transition.operation} while {transition.source}",
                source="observe",
                uid=uid,
                path=ROOT_PATH + name,
            )
