"""The minimal contract for anything that can carry out a task."""

from __future__ import annotations

from abc import ABC, abstractmethod

from taskalloc.hfsm import Signal


class Taskable(ABC):
    """Execution mechanism of a task.

    ``execute()`` advances exactly one unit of work and reports how it went
    as a ``Signal``; ``FATAL`` means the mechanism cannot continue.
    """

    def reset(self) -> None:
        """Re-arm for a fresh run."""

    @abstractmethod
    def execute(self) -> Signal:
        ...

    @abstractmethod
    def finished(self) -> bool:
        ...

    @property
    def halted(self) -> bool:
        return False
