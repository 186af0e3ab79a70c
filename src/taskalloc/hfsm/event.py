"""Signals and event payloads understood by the state dispatcher."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class Signal(IntEnum):
    """Reserved signal values.

    ``IGNORED`` and ``FATAL`` double as transition map entries, so state ids
    must stay below ``IGNORED``.
    """

    HANDLED = 0
    UNHANDLED = 1
    IGNORED = 0xFE
    FATAL = 0xFF


class EventType(IntEnum):
    """Whether a payload is addressed to a state or bubbled up from a child."""

    NORMAL = 0
    CHILD = 1


@dataclass
class EventData:
    """Base class for all event payloads.

    Subclasses are dataclasses: when an event bubbles to a parent state the
    parent receives a ``dataclasses.replace`` copy tagged ``CHILD``.
    """

    signal: int = Signal.IGNORED
    type: EventType = EventType.NORMAL

    def reset(self) -> None:
        self.signal = Signal.IGNORED
        self.type = EventType.NORMAL


class NoEventData:
    """Marks a state that takes no payload.

    Deliberately not an ``EventData`` subclass: handing an instance to the
    dispatcher as a payload is a configuration error.
    """


def is_payload_type(data_type: type) -> bool:
    """True for ``NoEventData`` and ``EventData`` subclasses."""
    return data_type is NoEventData or (isinstance(data_type, type) and issubclass(data_type, EventData))
