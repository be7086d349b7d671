"""File records — one file's identity, metadata, bytes, and observation state.

A ``FileRecord`` is what the file table stores for each name.  It owns a
fixed-capacity byte buffer and a logical ``size``; the buffer never
grows, so every write must fit inside it.

Every mutator starts by *observing* the record: the observation state
machine decides the record's next state, and the record remembers how
many of its transitions were anomalous.  Validation happens before the
observation, so a failed call leaves the record untouched.

Records are created and mutated only through the engine; callers outside
the package see ``FileAttributes`` snapshots.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from heisenberg_fs.config import DEFAULT_MAX_FILE_SIZE, DEFAULT_MAX_NAME_LENGTH
from heisenberg_fs.observation import ObservationState, Operation, Transition, next_state


class OutOfRangeError(Exception):
    """Raised when an offset or size falls outside the file's buffer."""


class InvalidNameError(Exception):
    """Raised when a name cannot be stored in the flat namespace."""


@dataclass(frozen=True)
class FileAttributes:
    """Read-only snapshot of a record's metadata (returned by stat)."""

    record_id: uuid.UUID
    name: str
    mode: int
    uid: int
    gid: int
    size: int
    access_time: float
    modify_time: float
    observation: ObservationState


def validate_name(name: str, *, max_length: int = DEFAULT_MAX_NAME_LENGTH) -> None:
    """Check that *name* fits the flat namespace.

    Raises:
        InvalidNameError: If the name is empty, too long, contains ``/``
            or is one of the reserved entries ``.`` and ``..``.

    """
    if not name or name in {".", ".."}:
        msg = f"Invalid file name: {name!r}"
        raise InvalidNameError(msg)
    if "/" in name:
        msg = f"Nested paths are not supported: {name!r}"
        raise InvalidNameError(msg)
    if len(name) > max_length:
        msg = f"File name longer than {max_length} characters: {name!r}"
        raise InvalidNameError(msg)


class FileRecord:
    """A single file in the flat namespace.

    The buffer is allocated once at full capacity and zero-filled.
    ``size`` is the logical length; bytes beyond it keep whatever was
    last written there.
    """

    def __init__(
        self,
        *,
        name: str,
        mode: int,
        uid: int,
        gid: int,
        capacity: int = DEFAULT_MAX_FILE_SIZE,
    ) -> None:
        """Allocate a record in the NEW state.

        Use ``FileRecord.create`` to also apply the create observation.
        """
        self._record_id = uuid.uuid4()
        self._name = name
        self._mode = mode
        self._uid = uid
        self._gid = gid
        self._access_time = 0.0
        self._modify_time = 0.0
        self._data = bytearray(capacity)
        self._size = 0
        self._observation = ObservationState.NEW
        self._anomaly_count = 0
        self._last_transition: Transition | None = None

    @classmethod
    def create(
        cls,
        name: str,
        mode: int,
        uid: int,
        gid: int,
        *,
        capacity: int = DEFAULT_MAX_FILE_SIZE,
        max_name_length: int = DEFAULT_MAX_NAME_LENGTH,
    ) -> FileRecord:
        """Allocate a record and observe its creation.

        Raises:
            InvalidNameError: If *name* does not fit the namespace.

        """
        validate_name(name, max_length=max_name_length)
        record = cls(name=name, mode=mode, uid=uid, gid=gid, capacity=capacity)
        record.observe(Operation.CREATE)
        return record

    @property
    def record_id(self) -> uuid.UUID:
        """Return the process-unique identifier."""
        return self._record_id

    @property
    def name(self) -> str:
        """Return the file name (immutable)."""
        return self._name

    @property
    def mode(self) -> int:
        """Return the permission bits given at creation."""
        return self._mode

    @property
    def uid(self) -> int:
        """Return the owner uid."""
        return self._uid

    @property
    def gid(self) -> int:
        """Return the owner gid."""
        return self._gid

    @property
    def times(self) -> tuple[float, float]:
        """Return ``(access_time, modify_time)``."""
        return (self._access_time, self._modify_time)

    @property
    def size(self) -> int:
        """Return the logical length in bytes."""
        return self._size

    @property
    def capacity(self) -> int:
        """Return the fixed buffer capacity in bytes."""
        return len(self._data)

    @property
    def observation(self) -> ObservationState:
        """Return the current observation state."""
        return self._observation

    @property
    def anomaly_count(self) -> int:
        """Return how many anomalous transitions this record has taken."""
        return self._anomaly_count

    @property
    def last_transition(self) -> Transition | None:
        """Return the most recent transition, or None before any observation."""
        return self._last_transition

    def observe(self, operation: Operation) -> Transition:
        """Move the observation state and count anomalies.

        Returns:
            The transition that was applied.

        """
        transition = next_state(self._observation, operation)
        self._observation = transition.destination
        if transition.anomaly:
            self._anomaly_count += 1
        self._last_transition = transition
        return transition

    def attributes(self) -> FileAttributes:
        """Snapshot the metadata without observing the record."""
        return FileAttributes(
            record_id=self._record_id,
            name=self._name,
            mode=self._mode,
            uid=self._uid,
            gid=self._gid,
            size=self._size,
            access_time=self._access_time,
            modify_time=self._modify_time,
            observation=self._observation,
        )

    # -- Mutators (each one observes) -----------------------------------------

    def stat(self) -> FileAttributes:
        """Observe a stat query and return the metadata snapshot."""
        self.observe(Operation.STAT_QUERY)
        return self.attributes()

    def set_times(self, access_time: float, modify_time: float) -> None:
        """Overwrite both timestamps together."""
        self.observe(Operation.SET_TIMES)
        self._access_time = access_time
        self._modify_time = modify_time

    def open(self) -> None:
        """Observe an open; there is no exclusive-open bookkeeping."""
        self.observe(Operation.OPEN)

    def write(self, offset: int, data: bytes) -> int:
        """Copy *data* into the buffer at *offset*.

        Returns:
            The number of bytes written.

        Raises:
            OutOfRangeError: If the write does not fit the buffer.  The
                buffer and state are left unchanged.

        """
        end = offset + len(data)
        if offset < 0 or end > self.capacity:
            msg = (
                f"Write of {len(data)} bytes at offset {offset} exceeds "
                f"capacity {self.capacity} of {self._name!r}"
            )
            raise OutOfRangeError(msg)
        self.observe(Operation.WRITE)
        self._data[offset:end] = data
        self._size = max(self._size, end)
        return len(data)

    def read(self, offset: int, max_length: int) -> bytes:
        """Return up to *max_length* bytes starting at *offset*.

        The read is clamped to ``size``; at or past the end it returns
        ``b""`` rather than failing.
        """
        self.observe(Operation.READ)
        if offset < 0 or offset >= self._size or max_length <= 0:
            return b""
        length = min(max_length, self._size - offset)
        return bytes(self._data[offset : offset + length])

    def truncate(self, new_size: int) -> None:
        """Set the logical size.

        Growing does not zero the exposed region: it shows whatever the
        buffer last held there.

        Raises:
            OutOfRangeError: If *new_size* is negative or beyond capacity.

        """
        if new_size < 0 or new_size > self.capacity:
            msg = f"Cannot truncate {self._name!r} to {new_size} (capacity {self.capacity})"
            raise OutOfRangeError(msg)
        self.observe(Operation.TRUNCATE)
        self._size = new_size

    def release(self) -> None:
        """Observe a release; the record stays in the table."""
        self.observe(Operation.RELEASE)

    def __repr__(self) -> str:
        """Return a readable representation."""
        return (
            f"FileRecord(name={self._name!r}, size={self._size}, "
            f"observation={self._observation.value})"
        )
