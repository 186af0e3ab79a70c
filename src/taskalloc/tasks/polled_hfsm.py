"""Adapter letting a hierarchical state machine execute a task."""

from __future__ import annotations

from collections.abc import Iterable

from taskalloc.errors import ConfigError
from taskalloc.hfsm import Hfsm, Signal

from .taskable import Taskable


class PolledHfsm(Taskable):
    """Drives one ``Hfsm`` one step per ``execute()``.

    The task counts as finished while the machine sits in one of
    ``terminal_states``.
    """

    def __init__(self, fsm: Hfsm, terminal_states: Iterable[int]) -> None:
        self.fsm = fsm
        self.terminal_states = frozenset(terminal_states)
        if not self.terminal_states:
            raise ConfigError(f"{fsm.name}: at least one terminal state is required")
        undefined = [s for s in self.terminal_states if not 0 <= s < fsm.num_states]
        if undefined:
            raise ConfigError(f"{fsm.name}: undefined terminal state(s) {sorted(undefined)}")

    def reset(self) -> None:
        self.fsm.init()

    def execute(self) -> Signal:
        self.fsm.generated_event(True)
        return self.fsm.state_engine()

    def finished(self) -> bool:
        return self.fsm.current_state in self.terminal_states

    @property
    def halted(self) -> bool:
        return self.fsm.halted
