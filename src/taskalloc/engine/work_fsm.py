"""A small foraging-style state machine used as a task mechanism."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

from taskalloc.errors import ConfigError
from taskalloc.hfsm import DEFAULT_MAX_TRANSITIONS, Hfsm, Signal, State

if TYPE_CHECKING:
    from taskalloc.tasks import ExecutableTask


@dataclass(frozen=True)
class WorkProfile:
    """Inclusive tick ranges drawn for the search and work phases."""

    search: tuple[int, int] = (1, 4)
    work: tuple[int, int] = (4, 12)

    def __post_init__(self) -> None:
        for label, (low, high) in (("search", self.search), ("work", self.work)):
            if low < 0 or high < low:
                raise ConfigError(f"{label} range must satisfy 0 <= low <= high, got {(low, high)}")


class WorkFsm(Hfsm):
    """Searches for a work site, works there, then stops.

    ``SEARCH`` and ``WORK`` are children of ``ACTIVE``. On ticks where a
    child has nothing to decide it leaves the event unhandled and ``ACTIVE``
    accounts for the time. The search phase is reported to the bound task
    as its interface phase.
    """

    ACTIVE, SEARCH, WORK, DONE = range(4)

    def __init__(
        self,
        rng: random.Random,
        profile: WorkProfile | None = None,
        *,
        name: str | None = None,
        max_transitions: int = DEFAULT_MAX_TRANSITIONS,
        logger: logging.Logger | None = None,
    ) -> None:
        states = [
            State("active", self._active, enter=self._enter_active),
            State("search", self._search, enter=self._enter_search, exit=self._exit_search, parent=self.ACTIVE),
            State("work", self._work, enter=self._enter_work, parent=self.ACTIVE),
            State("done", self._done),
        ]
        super().__init__(
            states,
            self.SEARCH,
            max_transitions=max_transitions,
            name=name,
            logger=logger,
        )
        self.rng = rng
        self.profile = profile or WorkProfile()
        self.task: ExecutableTask | None = None
        self.remaining = 0
        self.active_ticks = 0

    def bind(self, task: ExecutableTask) -> None:
        """Report interface phases to ``task``."""
        self.task = task

    def _enter_active(self) -> None:
        self.active_ticks = 0

    def _active(self) -> Signal:
        self.active_ticks += 1
        return Signal.HANDLED

    def _enter_search(self) -> None:
        self.remaining = self.rng.randint(*self.profile.search)
        if self.task is not None:
            self.task.enter_interface()

    def _exit_search(self) -> None:
        if self.task is not None:
            self.task.exit_interface()

    def _search(self) -> Signal:
        if self.remaining > 0:
            self.remaining -= 1
            return Signal.UNHANDLED
        self.internal_event(self.WORK)
        return Signal.HANDLED

    def _enter_work(self) -> None:
        self.remaining = self.rng.randint(*self.profile.work)

    def _work(self) -> Signal:
        if self.remaining > 0:
            self.remaining -= 1
            return Signal.UNHANDLED
        self.internal_event(self.DONE)
        return Signal.HANDLED

    def _done(self) -> Signal:
        return Signal.HANDLED
