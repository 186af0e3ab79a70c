"""Task tree: execution contract, HFSM adapter and decision loop."""

from __future__ import annotations

from .executable_task import ExecutableTask, TaskOutcome, TaskSnapshot
from .logical_task import LogicalTask
from .polled_hfsm import PolledHfsm
from .taskable import Taskable

__all__ = [
    "ExecutableTask",
    "LogicalTask",
    "PolledHfsm",
    "TaskOutcome",
    "TaskSnapshot",
    "Taskable",
]
