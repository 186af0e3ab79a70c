"""Table entries describing states and transitions."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from taskalloc.errors import ConfigError

from .event import NoEventData, Signal, is_payload_type


@dataclass(frozen=True)
class State:
    """One row of a state table.

    ``handle`` is called with no arguments when ``data_type`` is
    ``NoEventData``, and with the event payload (or None) otherwise. It may
    return a ``Signal``; returning None counts as ``HANDLED``.
    """

    name: str
    handle: Callable[..., int | None]
    enter: Callable[[], None] | None = None
    exit: Callable[[], None] | None = None
    parent: int | None = None
    data_type: type = NoEventData

    def __post_init__(self) -> None:
        if not is_payload_type(self.data_type):
            raise ConfigError(
                f"State {self.name!r}: data_type must be NoEventData or an EventData "
                f"subclass, got {self.data_type!r}"
            )

    @property
    def takes_data(self) -> bool:
        return self.data_type is not NoEventData


@dataclass(frozen=True)
class TransitionMap:
    """Targets for one external event, indexed by the current state id."""

    entries: tuple[int, ...]

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, state_id: int) -> int:
        return self.entries[state_id]

    @classmethod
    def build(cls, entries: Sequence[int], num_states: int) -> TransitionMap:
        if len(entries) != num_states:
            raise ConfigError(
                f"Transition map has {len(entries)} entries for {num_states} states"
            )
        return cls(tuple(int(e) for e in entries))


def validate_table(states: Sequence[State], initial_state: int) -> None:
    """Check ids, parent links and the initial state of a state table."""
    count = len(states)
    if count == 0:
        raise ConfigError("State table is empty")
    if count >= Signal.IGNORED:
        raise ConfigError(f"At most {int(Signal.IGNORED)} states supported, got {count}")
    if not 0 <= initial_state < count:
        raise ConfigError(f"Initial state {initial_state} outside [0, {count})")

    for sid, state in enumerate(states):
        if state.parent is not None and not 0 <= state.parent < count:
            raise ConfigError(f"State {state.name!r} has undefined parent {state.parent}")
        # A parent chain longer than the table must contain a cycle.
        seen = 0
        cursor = state.parent
        while cursor is not None:
            seen += 1
            if cursor == sid or seen > count:
                raise ConfigError(f"State {state.name!r} has a cyclic parent chain")
            cursor = states[cursor].parent
