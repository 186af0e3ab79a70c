"""Hierarchical state machine dispatcher."""

from __future__ import annotations

from .event import EventData, EventType, NoEventData, Signal
from .machine import DEFAULT_MAX_TRANSITIONS, Hfsm
from .state import State, TransitionMap

__all__ = [
    "DEFAULT_MAX_TRANSITIONS",
    "EventData",
    "EventType",
    "Hfsm",
    "NoEventData",
    "Signal",
    "State",
    "TransitionMap",
]
