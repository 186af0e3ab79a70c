"""Probability of splitting a task into its two subtasks."""

from __future__ import annotations

import math

from taskalloc.errors import ConfigError

from .base import ProbabilityExpression, logistic

# Returned when the estimates cannot be compared.
NO_EST_PARTITION_PROB = 0.5


class PartitionProbability(ProbabilityExpression):
    """Logistic partition probability centred on ``task == sub1 + sub2``.

    When the whole task is estimated to take longer than its two subtasks
    together, the probability rises above 0.5; when it is cheaper, it falls
    below. Both branches meet at exactly 0.5.
    """

    def __init__(self, reactivity: float) -> None:
        super().__init__()
        if not math.isfinite(reactivity) or reactivity <= 0.0:
            raise ConfigError(f"reactivity must be > 0.0, got {reactivity}")
        self.reactivity = reactivity

    def compute(
        self, task_estimate: float, subtask1_estimate: float, subtask2_estimate: float
    ) -> float:
        subtasks = subtask1_estimate + subtask2_estimate
        if task_estimate == 0.0 or subtasks == 0.0:
            return self._set_result(NO_EST_PARTITION_PROB)
        if not (math.isfinite(task_estimate) and math.isfinite(subtasks)):
            return self._set_result(NO_EST_PARTITION_PROB)

        if task_estimate > subtasks:
            deviation = task_estimate / subtasks - 1.0
        else:
            deviation = 1.0 - subtasks / task_estimate

        # logistic() computes 1/(1+exp(x)); the curve here is 1/(1+exp(-r*d)).
        return self._set_result(logistic(-self.reactivity * deviation))
