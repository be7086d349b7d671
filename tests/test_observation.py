"""Tests for the observation state machine.

Every operation moves a file to the state named after it.  The machine
only decides whether the move was one the documented command traces
expect; unexpected moves still happen but are flagged as anomalies.
"""

import pytest

from heisenberg_fs.observation import (
    DESTINATIONS,
    EXPECTED_EDGES,
    ObservationState,
    Operation,
    Transition,
    expected_operations,
    is_expected,
    next_state,
)


def _walk(start: ObservationState, operations: list[Operation]) -> list[Transition]:
    """Apply *operations* in order from *start* and collect the transitions."""
    transitions: list[Transition] = []
    state = start
    for operation in operations:
        transition = next_state(state, operation)
        transitions.append(transition)
        state = transition.destination
    return transitions


TOUCH_NEW = [
    Operation.CREATE,
    Operation.STAT_QUERY,
    Operation.SET_TIMES,
    Operation.STAT_QUERY,
    Operation.RELEASE,
]
TOUCH_EXISTING = [
    Operation.STAT_QUERY,
    Operation.OPEN,
    Operation.SET_TIMES,
    Operation.STAT_QUERY,
    Operation.RELEASE,
]
TRUNCATE_NEW = [
    Operation.CREATE,
    Operation.STAT_QUERY,
    Operation.TRUNCATE,
    Operation.STAT_QUERY,
    Operation.RELEASE,
]
TRUNCATE_EXISTING = [
    Operation.STAT_QUERY,
    Operation.OPEN,
    Operation.TRUNCATE,
    Operation.STAT_QUERY,
    Operation.RELEASE,
]
ECHO_NEW = [Operation.CREATE, Operation.STAT_QUERY, Operation.WRITE, Operation.RELEASE]
ECHO_EXISTING = [
    Operation.STAT_QUERY,
    Operation.OPEN,
    Operation.TRUNCATE,
    Operation.STAT_QUERY,
    Operation.WRITE,
    Operation.WRITE,
    Operation.RELEASE,
]
APPEND_NEW = [
    Operation.CREATE,
    Operation.STAT_QUERY,
    Operation.WRITE,
    Operation.WRITE,
    Operation.RELEASE,
]
APPEND_EXISTING = [
    Operation.STAT_QUERY,
    Operation.OPEN,
    Operation.WRITE,
    Operation.WRITE,
    Operation.RELEASE,
]
CAT = [
    Operation.STAT_QUERY,
    Operation.OPEN,
    Operation.READ,
    Operation.READ,
    Operation.STAT_QUERY,
    Operation.RELEASE,
]


class TestDestinations:
    """Verify every operation lands on its own state."""

    def test_every_operation_has_a_destination(self) -> None:
        """Each operation should map to exactly one state."""
        assert set(DESTINATIONS) == set(Operation)

    @pytest.mark.parametrize("operation", list(Operation))
    def test_destination_ignores_source(self, operation: Operation) -> None:
        """The destination should not depend on the current state."""
        destinations = {next_state(state, operation).destination for state in ObservationState}
        assert destinations == {DESTINATIONS[operation]}

    def test_new_is_never_a_destination(self) -> None:
        """NEW is only the state before creation."""
        assert ObservationState.NEW not in DESTINATIONS.values()


class TestDocumentedTraces:
    """Verify the shell command traces run without anomalies."""

    @pytest.mark.parametrize("trace", [TOUCH_NEW, TRUNCATE_NEW, ECHO_NEW, APPEND_NEW])
    def test_new_file_traces(self, trace: list[Operation]) -> None:
        """Traces on a fresh file should start from NEW cleanly."""
        transitions = _walk(ObservationState.NEW, trace)
        assert not any(t.anomaly for t in transitions)
        assert transitions[-1].destination is ObservationState.RELEASED

    @pytest.mark.parametrize(
        "trace",
        [TOUCH_EXISTING, TRUNCATE_EXISTING, ECHO_EXISTING, APPEND_EXISTING, CAT],
    )
    @pytest.mark.parametrize(
        "start",
        [ObservationState.CREATED, ObservationState.RELEASED, ObservationState.LISTED],
    )
    def test_existing_file_traces(
        self, trace: list[Operation], start: ObservationState
    ) -> None:
        """Traces on an existing file should work from any resting state."""
        transitions = _walk(start, trace)
        assert not any(t.anomaly for t in transitions)
        assert transitions[-1].destination is ObservationState.RELEASED

    def test_bare_stat_from_new(self) -> None:
        """A stat with no prior transition is expected."""
        assert not next_state(ObservationState.NEW, Operation.STAT_QUERY).anomaly

    def test_repeated_stat(self) -> None:
        """Stat after stat is expected."""
        assert not next_state(ObservationState.STAT_QUERIED, Operation.STAT_QUERY).anomaly

    def test_release_from_created_and_opened(self) -> None:
        """RELEASED is reachable from CREATED and from OPENED."""
        assert is_expected(ObservationState.CREATED, Operation.RELEASE)
        assert is_expected(ObservationState.OPENED, Operation.RELEASE)

    def test_list_then_stat(self) -> None:
        """``ls -l`` lists, then stats each entry."""
        transitions = _walk(ObservationState.RELEASED, [Operation.LIST, Operation.STAT_QUERY])
        assert not any(t.anomaly for t in transitions)


class TestAnomalies:
    """Verify unexpected pairs still transition but are flagged."""

    def test_read_without_open_is_anomalous(self) -> None:
        """Reading a file that was never opened is not in any trace."""
        transition = next_state(ObservationState.RELEASED, Operation.READ)
        assert transition.anomaly
        assert transition.destination is ObservationState.READ

    def test_create_twice_is_anomalous(self) -> None:
        """Only NEW expects CREATE."""
        transition = next_state(ObservationState.CREATED, Operation.CREATE)
        assert transition.anomaly
        assert transition.destination is ObservationState.CREATED

    def test_transition_records_source_and_operation(self) -> None:
        """The transition should carry what it was computed from."""
        transition = next_state(ObservationState.TIMES_SET, Operation.WRITE)
        assert transition.source is ObservationState.TIMES_SET
        assert transition.operation is Operation.WRITE

    def test_str_marks_anomaly(self) -> None:
        """String form should show the arrow and an anomaly marker."""
        text = str(next_state(ObservationState.RELEASED, Operation.READ))
        assert "released -> read" in text
        assert "anomaly" in text

    def test_str_without_anomaly(self) -> None:
        """Expected transitions have no marker."""
        text = str(next_state(ObservationState.NEW, Operation.CREATE))
        assert text == "new -> created"


class TestEdgeQueries:
    """Verify the helpers that read the edge table."""

    def test_new_expects_create_stat_and_list(self) -> None:
        """NEW should expect exactly create, stat and list."""
        assert expected_operations(ObservationState.NEW) == [
            Operation.CREATE,
            Operation.STAT_QUERY,
            Operation.LIST,
        ]

    def test_every_edge_is_reported(self) -> None:
        """expected_operations should agree with the edge table."""
        reported = {
            (state, op) for state in ObservationState for op in expected_operations(state)
        }
        assert reported == EXPECTED_EDGES

    def test_is_pure(self) -> None:
        """Same inputs give equal outputs."""
        first = next_state(ObservationState.OPENED, Operation.READ)
        second = next_state(ObservationState.OPENED, Operation.READ)
        assert first == second
