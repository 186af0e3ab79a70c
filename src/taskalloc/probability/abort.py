"""Probability of abandoning the task currently being executed."""

from __future__ import annotations

import math

from taskalloc.errors import ConfigError
from taskalloc.estimation import TimeEstimate

from .base import ProbabilityExpression, logistic

# Used whenever there is no usable estimate to compare against.
NO_EST_ABORT_PROB = 0.001


class AbortProbability(ProbabilityExpression):
    """Logistic abort probability over the execution-time/estimate ratio.

    ``omega = reactivity * (ratio + offset)`` and ``p = 1 / (1 + exp(omega))``.

    - reactivity: how sharply the probability reacts to a deviation between
      the time spent so far and the estimate.
    - offset: how far the ratio may move before the curve starts to bend.

    Two forms are supported. With a single estimate the ratio is
    ``(exec_time - estimate) / estimate``. Once a task has been split, pass
    the whole-task estimate and both subtask estimates; the ratio becomes
    ``(exec_time - whole) / (subtask1 + subtask2)``.
    """

    def __init__(self, reactivity: float, offset: float) -> None:
        super().__init__()
        if not math.isfinite(reactivity) or reactivity <= 0.0:
            raise ConfigError(f"reactivity must be > 0.0, got {reactivity}")
        if not math.isfinite(offset) or offset < 0.0:
            raise ConfigError(f"offset must be >= 0.0, got {offset}")
        self.reactivity = reactivity
        self.offset = offset

    def compute(
        self,
        exec_time: float,
        estimate: TimeEstimate,
        subtask1: TimeEstimate | None = None,
        subtask2: TimeEstimate | None = None,
    ) -> float:
        if (subtask1 is None) != (subtask2 is None):
            raise TypeError("Partitioned form needs both subtask estimates")

        if subtask1 is None or subtask2 is None:
            if not estimate.initialized:
                return self._set_result(NO_EST_ABORT_PROB)
            denominator = estimate.last_result()
        else:
            if not (estimate.initialized and subtask1.initialized and subtask2.initialized):
                return self._set_result(NO_EST_ABORT_PROB)
            denominator = subtask1.last_result() + subtask2.last_result()

        if denominator == 0.0 or not math.isfinite(exec_time):
            return self._set_result(NO_EST_ABORT_PROB)

        ratio = (exec_time - estimate.last_result()) / denominator
        return self._set_result(logistic(self.reactivity * (ratio + self.offset)))
