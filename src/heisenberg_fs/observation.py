"""Observation state machine — every look at a file changes it.

Each file remembers the last operation that touched it.  That memory is
its **observation state**.  Applying an operation always moves the file
to the state named after that operation; the only question the machine
answers is whether the move was one the documented command traces
expect.

The expected edges come from watching what ordinary shell commands do
to a file through a kernel bridge::

    touch f          create stat set-times stat release
                     stat open set-times stat release
    truncate -s N f  create stat truncate stat release
                     stat open truncate stat release
    echo hi > f      create stat write release
                     stat open truncate stat write write release
    echo hi >> f     create stat write write release
                     stat open write write release
    cat f            stat open read read stat release
    ls -l            list, then stat on each entry

A command can begin from any resting state, so ``stat`` and ``list``
are expected from each of them.

Unmatched pairs are not rejected.  They still transition, and the
returned ``Transition`` carries ``anomaly=True`` so the caller can log
or count it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ObservationState(StrEnum):
    """The last operation applied to a file."""

    NEW = "new"
    CREATED = "created"
    STAT_QUERIED = "stat_queried"
    TIMES_SET = "times_set"
    OPENED = "opened"
    TRUNCATED = "truncated"
    READ = "read"
    WRITTEN = "written"
    RELEASED = "released"
    LISTED = "listed"


class Operation(StrEnum):
    """An observation that can be applied to a file."""

    CREATE = "create"
    STAT_QUERY = "stat_query"
    SET_TIMES = "set_times"
    OPEN = "open"
    TRUNCATE = "truncate"
    READ = "read"
    WRITE = "write"
    RELEASE = "release"
    LIST = "list"


DESTINATIONS: dict[Operation, ObservationState] = {
    Operation.CREATE: ObservationState.CREATED,
    Operation.STAT_QUERY: ObservationState.STAT_QUERIED,
    Operation.SET_TIMES: ObservationState.TIMES_SET,
    Operation.OPEN: ObservationState.OPENED,
    Operation.TRUNCATE: ObservationState.TRUNCATED,
    Operation.READ: ObservationState.READ,
    Operation.WRITE: ObservationState.WRITTEN,
    Operation.RELEASE: ObservationState.RELEASED,
    Operation.LIST: ObservationState.LISTED,
}
"""Where each operation leaves a file, whatever state it came from."""

_RESTING_STATES = (
    ObservationState.NEW,
    ObservationState.CREATED,
    ObservationState.STAT_QUERIED,
    ObservationState.RELEASED,
    ObservationState.LISTED,
)

EXPECTED_EDGES: frozenset[tuple[ObservationState, Operation]] = frozenset(
    {
        (ObservationState.NEW, Operation.CREATE),
        # Resting states: a fresh command starts with stat (or a listing).
        *((state, Operation.STAT_QUERY) for state in _RESTING_STATES),
        *((state, Operation.LIST) for state in _RESTING_STATES),
        # create ... release with nothing in between
        (ObservationState.CREATED, Operation.RELEASE),
        # After stat: touch, truncate, echo on a fresh file, or open.
        (ObservationState.STAT_QUERIED, Operation.SET_TIMES),
        (ObservationState.STAT_QUERIED, Operation.TRUNCATE),
        (ObservationState.STAT_QUERIED, Operation.WRITE),
        (ObservationState.STAT_QUERIED, Operation.OPEN),
        (ObservationState.STAT_QUERIED, Operation.RELEASE),
        (ObservationState.TIMES_SET, Operation.STAT_QUERY),
        (ObservationState.TRUNCATED, Operation.STAT_QUERY),
        # Opened handles go wherever the command takes them.
        (ObservationState.OPENED, Operation.SET_TIMES),
        (ObservationState.OPENED, Operation.TRUNCATE),
        (ObservationState.OPENED, Operation.WRITE),
        (ObservationState.OPENED, Operation.READ),
        (ObservationState.OPENED, Operation.RELEASE),
        (ObservationState.WRITTEN, Operation.WRITE),
        (ObservationState.WRITTEN, Operation.RELEASE),
        (ObservationState.READ, Operation.READ),
        (ObservationState.READ, Operation.STAT_QUERY),
    }
)


@dataclass(frozen=True)
class Transition:
    """The outcome of applying one operation to one state.

    Attributes:
        source: The state before the operation.
        operation: The operation applied.
        destination: The state after the operation.
        anomaly: True when ``(source, operation)`` is not an expected edge.

    """

    source: ObservationState
    operation: Operation
    destination: ObservationState
    anomaly: bool

    def __str__(self) -> str:
        """Format as ``source -> destination`` with an anomaly marker."""
        marker = " (anomaly)" if self.anomaly else ""
        return f"{self.source} -> {self.destination}{marker}"


def next_state(current: ObservationState, operation: Operation) -> Transition:
    """Apply *operation* to *current* and report where it lands.

    Args:
        current: The file's observation state.
        operation: The incoming observation.

    Returns:
        The transition; ``destination`` is always the operation's state.

    """
    return Transition(
        source=current,
        operation=operation,
        destination=DESTINATIONS[operation],
        anomaly=(current, operation) not in EXPECTED_EDGES,
    )


def is_expected(current: ObservationState, operation: Operation) -> bool:
    """Return True if *operation* from *current* is a documented edge."""
    return (current, operation) in EXPECTED_EDGES


def expected_operations(current: ObservationState) -> list[Operation]:
    """Return the operations expected from *current*, in declaration order."""
    return [op for op in Operation if (current, op) in EXPECTED_EDGES]
