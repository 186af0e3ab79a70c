"""Hierarchical, table-driven state machine dispatcher.

States live in a table of ``State`` rows indexed by small integer ids. The
hierarchy is expressed by each row's ``parent`` id, so entry/exit chains and
event bubbling are plain walks over the table.

One call to ``state_engine()`` runs the pending event (or a synthesized
continue event) through the active state, then follows any internal events
the handlers request. Only those internal events count towards
``max_transitions``; the first dispatch of each call is free. Protocol errors
never raise out of the dispatcher: the machine halts and every later call
returns ``Signal.FATAL`` until ``init()`` re-arms it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace

from taskalloc.errors import ConfigError

from .event import EventData, EventType, Signal
from .state import State, TransitionMap, validate_table

DEFAULT_MAX_TRANSITIONS = 16


class Hfsm:
    """Hierarchical finite state machine.

    Subclasses usually build their state table from bound methods and pass
    it to ``__init__``; handlers call ``internal_event()`` to chain into
    another state within the same step.
    """

    def __init__(
        self,
        states: Sequence[State],
        initial_state: int = 0,
        *,
        max_transitions: int = DEFAULT_MAX_TRANSITIONS,
        name: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        validate_table(states, initial_state)
        if max_transitions < 0:
            raise ConfigError(f"max_transitions must be >= 0, got {max_transitions}")

        self.name = name or type(self).__name__
        self._log = logger or logging.getLogger(__name__)
        self._states: tuple[State, ...] = tuple(states)
        self._initial = initial_state
        self._max_transitions = max_transitions

        self._current = initial_state
        self._previous = initial_state
        self._next = initial_state
        self._event_generated = False
        self._pending: EventData | None = None
        self._fatal_reason: str | None = None

    # -- queries -----------------------------------------------------------

    @property
    def num_states(self) -> int:
        return len(self._states)

    @property
    def current_state(self) -> int:
        return self._current

    @property
    def previous_state(self) -> int:
        return self._previous

    @property
    def initial_state(self) -> int:
        return self._initial

    @property
    def max_transitions(self) -> int:
        return self._max_transitions

    @property
    def halted(self) -> bool:
        return self._fatal_reason is not None

    @property
    def fatal_reason(self) -> str | None:
        return self._fatal_reason

    def state_name(self, state_id: int) -> str:
        if 0 <= state_id < len(self._states):
            return self._states[state_id].name
        return f"<undefined {state_id}>"

    def ancestry(self, state_id: int) -> list[int]:
        """Ids from the root of ``state_id``'s hierarchy down to ``state_id``."""
        chain = [state_id]
        parent = self._states[state_id].parent
        while parent is not None:
            chain.append(parent)
            parent = self._states[parent].parent
        chain.reverse()
        return chain

    def is_in(self, state_id: int) -> bool:
        """True if ``state_id`` is the active state or one of its ancestors."""
        return state_id in self.ancestry(self._current)

    def transition_map(self, *entries: int) -> TransitionMap:
        """Build a transition map with one entry per state of this machine."""
        return TransitionMap.build(entries, len(self._states))

    # -- events ------------------------------------------------------------

    def init(self) -> None:
        """Return to the initial state, running its entry chain."""
        self._fatal_reason = None
        self._pending = None
        self._event_generated = False
        self._previous = self._current
        self._current = self._initial
        self._next = self._initial
        for sid in self.ancestry(self._initial):
            self._enter(sid)
        self._log.debug("%s: initialized in %s", self.name, self.state_name(self._initial))

    def generated_event(self, flag: bool = True) -> None:
        """Mark a continue event for the active state as pending (or clear it)."""
        self._event_generated = flag
        if flag:
            self._next = self._current
            self._pending = None

    def external_event(self, target: int, data: EventData | None = None) -> Signal:
        """Post an event from outside the machine and run the engine once.

        ``target`` is normally a lookup into a ``TransitionMap``.
        """
        self._check_payload(data)
        if self.halted:
            return Signal.FATAL
        if target == Signal.IGNORED:
            self._log.debug("%s: event ignored in %s", self.name, self.state_name(self._current))
            return Signal.IGNORED
        if target == Signal.FATAL:
            return self._halt(f"fatal event in state {self.state_name(self._current)}")
        if not self._defined(target):
            return self._halt(f"transition to undefined state {target}")

        self._next = target
        self._pending = data
        self._event_generated = True
        return self.state_engine()

    def internal_event(self, target: int, data: EventData | None = None) -> None:
        """Request a transition from inside a handler, taken in the same step."""
        self._check_payload(data)
        if target == Signal.IGNORED:
            return
        if target == Signal.FATAL:
            self._halt(f"fatal internal event in state {self.state_name(self._current)}")
            return
        if not self._defined(target):
            self._halt(f"internal transition to undefined state {target}")
            return
        self._next = target
        self._pending = data
        self._event_generated = True

    def state_engine(self) -> Signal:
        """Run the pending event and any internal event chain it triggers."""
        if self.halted:
            return Signal.FATAL
        if not self._event_generated:
            self.generated_event(True)

        signal = Signal.HANDLED
        # Internal events taken so far; the first pass is the posted event.
        transitions = -1
        while self._event_generated:
            if transitions >= self._max_transitions:
                self._event_generated = False
                self._pending = None
                return self._halt(
                    f"more than {self._max_transitions} internal transitions in one step "
                    f"(stuck near {self.state_name(self._next)})"
                )
            transitions += 1

            target = self._next
            data = self._pending
            self._pending = None
            self._event_generated = False

            if target != self._current:
                self._switch(target)
            signal = self._dispatch(target, data)
            if signal == Signal.FATAL or self.halted:
                return self._halt(f"state {self.state_name(target)} signalled FATAL")
        return signal

    # -- internals ---------------------------------------------------------

    def _defined(self, state_id: int) -> bool:
        return 0 <= state_id < len(self._states)

    def _check_payload(self, data: object) -> None:
        if data is not None and not isinstance(data, EventData):
            raise ConfigError(
                f"{self.name}: event payload must be an EventData, got {type(data).__name__}"
            )

    def _halt(self, reason: str) -> Signal:
        if self._fatal_reason is None:
            self._fatal_reason = reason
            self._log.error("%s: halted: %s", self.name, reason)
        return Signal.FATAL

    def _enter(self, state_id: int) -> None:
        hook = self._states[state_id].enter
        if hook is not None:
            hook()

    def _exit(self, state_id: int) -> None:
        hook = self._states[state_id].exit
        if hook is not None:
            hook()

    def _switch(self, target: int) -> None:
        old_chain = self.ancestry(self._current)
        new_chain = self.ancestry(target)
        common = 0
        while (
            common < len(old_chain)
            and common < len(new_chain)
            and old_chain[common] == new_chain[common]
        ):
            common += 1

        for sid in reversed(old_chain[common:]):
            self._exit(sid)
        self._previous = self._current
        self._current = target
        for sid in new_chain[common:]:
            self._enter(sid)
        self._log.debug(
            "%s: %s -> %s",
            self.name,
            self.state_name(self._previous),
            self.state_name(target),
        )

    def _dispatch(self, state_id: int, data: EventData | None) -> Signal:
        sid: int | None = state_id
        signal = Signal.UNHANDLED
        while sid is not None:
            state = self._states[sid]
            signal = self._invoke(state, data)
            if signal != Signal.UNHANDLED:
                return signal
            if state.parent is not None:
                self._log.debug(
                    "%s: %s bubbled event to %s",
                    self.name,
                    state.name,
                    self.state_name(state.parent),
                )
                if data is not None and data.type != EventType.CHILD:
                    data = replace(data, type=EventType.CHILD)
            sid = state.parent
        self._log.debug("%s: event unhandled by %s", self.name, self.state_name(state_id))
        return signal

    def _invoke(self, state: State, data: EventData | None) -> Signal:
        if not state.takes_data:
            result = state.handle()
        elif data is not None and not isinstance(data, state.data_type):
            return self._halt(
                f"state {state.name} expects {state.data_type.__name__}, "
                f"got {type(data).__name__}"
            )
        else:
            result = state.handle(data)

        if result is None:
            return Signal.HANDLED
        try:
            return Signal(result)
        except ValueError:
            return self._halt(f"state {state.name} returned unknown signal {result}")
