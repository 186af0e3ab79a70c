"""Tests for the hierarchical state machine dispatcher."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from taskalloc.errors import ConfigError
from taskalloc.hfsm import EventData, EventType, Hfsm, NoEventData, Signal, State

IGNORED = Signal.IGNORED
FATAL = Signal.FATAL


class SixStateFsm(Hfsm):
    """Flat six-state machine driven by two event maps."""

    S1, S2, S3, S4, S5, S6 = range(6)

    def __init__(self, max_transitions: int = 16) -> None:
        self.visits: list[int] = []
        handlers = [self._s1, self._s2, self._s3, self._s4, self._s5, self._s6]
        states = [State(f"s{i + 1}", h) for i, h in enumerate(handlers)]
        super().__init__(states, self.S1, max_transitions=max_transitions)
        self.event1_map = self.transition_map(self.S2, self.S3, self.S1, FATAL, FATAL, FATAL)
        self.event2_map = self.transition_map(IGNORED, self.S4, FATAL, self.S4, self.S5, self.S5)

    def event1(self) -> Signal:
        return self.external_event(self.event1_map[self.current_state])

    def event2(self) -> Signal:
        return self.external_event(self.event2_map[self.current_state])

    def _s1(self) -> Signal:
        self.visits.append(self.S1)
        return Signal.HANDLED

    def _s2(self) -> Signal:
        self.visits.append(self.S2)
        return Signal.HANDLED

    def _s3(self) -> Signal:
        self.visits.append(self.S3)
        return Signal.HANDLED

    def _s4(self) -> Signal:
        self.visits.append(self.S4)
        self.internal_event(self.S5)
        return Signal.HANDLED

    def _s5(self) -> Signal:
        self.visits.append(self.S5)
        return Signal.HANDLED

    def _s6(self) -> Signal:
        self.visits.append(self.S6)
        return Signal.HANDLED


class PingPongFsm(Hfsm):
    """Two states that hand control to each other forever."""

    A, B = range(2)

    def __init__(self, max_transitions: int) -> None:
        self.calls = 0
        states = [State("a", self._a), State("b", self._b)]
        super().__init__(states, self.A, max_transitions=max_transitions)

    def _a(self) -> None:
        self.calls += 1
        self.internal_event(self.B)

    def _b(self) -> None:
        self.calls += 1
        self.internal_event(self.A)


class NestedFsm(Hfsm):
    """root > (a > a1, b), plus a separate top-level c."""

    ROOT, A, A1, B, C = range(5)

    def __init__(self) -> None:
        self.log: list[str] = []
        names = ["root", "a", "a1", "b", "c"]
        parents = [None, self.ROOT, self.A, self.ROOT, None]
        states = [
            State(
                name,
                self._handler(name),
                enter=self._hook("enter", name),
                exit=self._hook("exit", name),
                parent=parent,
            )
            for name, parent in zip(names, parents)
        ]
        super().__init__(states, self.A1)

    def _handler(self, name: str):
        def handle() -> Signal:
            self.log.append(f"handle {name}")
            return Signal.HANDLED

        return handle

    def _hook(self, kind: str, name: str):
        def hook() -> None:
            self.log.append(f"{kind} {name}")

        return hook


@dataclass
class Ping(EventData):
    payload: str = ""


@dataclass
class Pong(EventData):
    pass


class BubbleFsm(Hfsm):
    """A child that passes every event to its parent."""

    PARENT, CHILD = range(2)

    def __init__(self) -> None:
        self.seen: list[tuple[str, EventType | None]] = []
        states = [
            State("parent", self._parent, data_type=Ping),
            State("child", self._child, parent=self.PARENT, data_type=Ping),
        ]
        super().__init__(states, self.CHILD)

    def _parent(self, data: Ping | None) -> Signal:
        self.seen.append(("parent", data.type if data else None))
        return Signal.HANDLED

    def _child(self, data: Ping | None) -> Signal:
        self.seen.append(("child", data.type if data else None))
        return Signal.UNHANDLED


class TestTableDrivenScenario:
    """Test the six-state table-driven scenario."""

    def test_event1_cycles_and_init_resets(self) -> None:
        """event1 walks S1 -> S2 -> S3 and init() returns to S1."""
        fsm = SixStateFsm()
        assert fsm.current_state == fsm.S1

        assert fsm.event1() == Signal.HANDLED
        assert fsm.current_state == fsm.S2
        fsm.event1()
        assert fsm.current_state == fsm.S3

        fsm.init()
        assert fsm.current_state == fsm.S1

    def test_event2_ignored_then_internal_chain(self) -> None:
        """event2 is ignored in S1 and chains S4 -> S5 from S2."""
        fsm = SixStateFsm()
        assert fsm.event2() == Signal.IGNORED
        assert fsm.current_state == fsm.S1
        assert fsm.visits == []

        fsm.event1()
        assert fsm.current_state == fsm.S2

        fsm.event2()
        assert fsm.current_state == fsm.S5
        assert fsm.visits == [fsm.S2, fsm.S4, fsm.S5]
        assert fsm.previous_state == fsm.S4

    def test_fatal_entry_halts(self) -> None:
        """A FATAL map entry halts the machine until init()."""
        fsm = SixStateFsm()
        fsm.event1()
        fsm.event1()
        assert fsm.event2() == Signal.FATAL
        assert fsm.halted
        assert fsm.fatal_reason is not None

        assert fsm.event1() == Signal.FATAL
        assert fsm.state_engine() == Signal.FATAL
        assert fsm.current_state == fsm.S3

        fsm.init()
        assert not fsm.halted
        assert fsm.event1() == Signal.HANDLED

    def test_undefined_target_is_fatal(self) -> None:
        """A target outside the table halts instead of raising."""
        fsm = SixStateFsm()
        assert fsm.external_event(42) == Signal.FATAL
        assert fsm.halted

    def test_continue_event_reruns_current_state(self) -> None:
        """state_engine() without a pending event runs the active state."""
        fsm = SixStateFsm()
        assert fsm.state_engine() == Signal.HANDLED
        assert fsm.state_engine() == Signal.HANDLED
        assert fsm.visits == [fsm.S1, fsm.S1]


class TestTransitionBound:
    """Test the per-step internal event limit."""

    def test_runaway_chain_is_fatal(self) -> None:
        """Exceeding max_transitions halts with FATAL."""
        fsm = PingPongFsm(max_transitions=5)
        assert fsm.external_event(fsm.B) == Signal.FATAL
        assert fsm.halted
        # The posted event plus five internal events
        assert fsm.calls == 6
        assert "transitions" in (fsm.fatal_reason or "")

    def test_chain_within_bound(self) -> None:
        """A chain that fits the bound completes normally."""
        fsm = SixStateFsm()
        fsm.event1()
        assert fsm.event2() == Signal.HANDLED
        assert not fsm.halted

    def test_bound_counts_internal_events_only(self) -> None:
        """A bound of one allows exactly one internal event per step."""
        fsm = SixStateFsm(max_transitions=1)
        fsm.event1()
        assert fsm.event2() == Signal.HANDLED
        assert fsm.current_state == fsm.S5

        # Plain continue events never use up the budget
        for _ in range(3):
            assert fsm.state_engine() == Signal.HANDLED
        assert not fsm.halted

    def test_zero_bound_forbids_chaining(self) -> None:
        fsm = SixStateFsm(max_transitions=0)
        assert fsm.event1() == Signal.HANDLED
        assert fsm.event2() == Signal.FATAL
        assert fsm.halted

    def test_invalid_bound(self) -> None:
        with pytest.raises(ConfigError):
            PingPongFsm(max_transitions=-1)


class TestHierarchy:
    """Test entry and exit chains across the state hierarchy."""

    def test_init_enters_from_root(self) -> None:
        """init() enters every ancestor of the initial state, root first."""
        fsm = NestedFsm()
        fsm.init()
        assert fsm.log == ["enter root", "enter a", "enter a1"]
        assert fsm.ancestry(fsm.A1) == [fsm.ROOT, fsm.A, fsm.A1]

    def test_sibling_transition_stops_at_common_ancestor(self) -> None:
        """Moving a1 -> b exits a1 and a but leaves root active."""
        fsm = NestedFsm()
        fsm.init()
        fsm.log.clear()

        fsm.external_event(fsm.B)
        assert fsm.log == ["exit a1", "exit a", "enter b", "handle b"]
        assert fsm.is_in(fsm.ROOT)
        assert not fsm.is_in(fsm.A)

    def test_transition_to_other_tree(self) -> None:
        """Moving to an unrelated state exits up to and including root."""
        fsm = NestedFsm()
        fsm.init()
        fsm.external_event(fsm.B)
        fsm.log.clear()

        fsm.external_event(fsm.C)
        assert fsm.log == ["exit b", "exit root", "enter c", "handle c"]

    def test_self_transition_skips_hooks(self) -> None:
        fsm = NestedFsm()
        fsm.init()
        fsm.log.clear()
        fsm.external_event(fsm.A1)
        assert fsm.log == ["handle a1"]

    def test_unhandled_bubbles_to_parent(self) -> None:
        """An UNHANDLED signal passes the payload to the parent as a child event."""
        fsm = BubbleFsm()
        fsm.init()
        assert fsm.external_event(fsm.CHILD, Ping(payload="hello")) == Signal.HANDLED
        assert fsm.seen == [("child", EventType.NORMAL), ("parent", EventType.CHILD)]

    def test_bubbling_leaves_payload_untouched(self) -> None:
        """Re-sending the same payload reaches the child as a normal event again."""
        fsm = BubbleFsm()
        fsm.init()
        ping = Ping(payload="again")

        fsm.external_event(fsm.CHILD, ping)
        fsm.external_event(fsm.CHILD, ping)

        assert ping.type == EventType.NORMAL
        assert fsm.seen == [
            ("child", EventType.NORMAL),
            ("parent", EventType.CHILD),
        ] * 2

    def test_state_name(self) -> None:
        fsm = NestedFsm()
        assert fsm.state_name(fsm.A1) == "a1"
        assert "undefined" in fsm.state_name(99)


class TestPayloads:
    """Test event payload checks."""

    def test_no_event_data_is_not_a_payload(self) -> None:
        """Passing NoEventData as a payload is a configuration error."""
        fsm = BubbleFsm()
        with pytest.raises(ConfigError):
            fsm.external_event(fsm.CHILD, NoEventData())  # type: ignore[arg-type]

    def test_wrong_payload_type_is_fatal(self) -> None:
        """A payload of the wrong EventData subclass halts the machine."""
        fsm = BubbleFsm()
        fsm.init()
        assert fsm.external_event(fsm.CHILD, Pong()) == Signal.FATAL
        assert fsm.halted

    def test_state_rejects_non_payload_type(self) -> None:
        with pytest.raises(ConfigError):
            State("bad", lambda: None, data_type=int)

    def test_event_data_reset(self) -> None:
        data = Ping(payload="x", signal=Signal.HANDLED, type=EventType.CHILD)
        data.reset()
        assert data.signal == Signal.IGNORED
        assert data.type == EventType.NORMAL

    def test_unknown_signal_is_fatal(self) -> None:
        """A handler returning a value outside Signal halts the machine."""
        fsm = Hfsm([State("odd", lambda: 7)])
        assert fsm.state_engine() == Signal.FATAL
        assert fsm.halted


class TestTableValidation:
    """Test state table and transition map checks."""

    def test_map_length_must_match(self) -> None:
        fsm = SixStateFsm()
        with pytest.raises(ConfigError):
            fsm.transition_map(fsm.S2, fsm.S3)

    def test_empty_table(self) -> None:
        with pytest.raises(ConfigError):
            Hfsm([])

    def test_initial_state_out_of_range(self) -> None:
        with pytest.raises(ConfigError):
            Hfsm([State("only", lambda: None)], initial_state=1)

    def test_undefined_parent(self) -> None:
        with pytest.raises(ConfigError):
            Hfsm([State("orphan", lambda: None, parent=3)])

    def test_cyclic_parents(self) -> None:
        states = [
            State("a", lambda: None, parent=1),
            State("b", lambda: None, parent=0),
        ]
        with pytest.raises(ConfigError):
            Hfsm(states)
