"""Tasks that carry out work and decide, every cycle, whether to keep going."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from taskalloc.config import TaskParams
from taskalloc.errors import ConfigError
from taskalloc.estimation import TimeEstimate
from taskalloc.hfsm import Signal
from taskalloc.probability import AbortProbability, PartitionProbability

from .logical_task import LogicalTask
from .taskable import Taskable


class TaskOutcome(StrEnum):
    """Result of one control cycle of an ExecutableTask."""

    RUNNING = "running"
    FINISHED = "finished"
    ABORTED = "aborted"
    FATAL = "fatal"


@dataclass(frozen=True)
class TaskSnapshot:
    """Read-only view of a task's estimates and last decisions."""

    name: str
    exec_time: float
    interface_time: float
    exec_estimate: float
    interface_estimate: float
    abort_probability: float
    partition_probability: float
    partitioned: bool
    active_subtask: str | None
    abort_count: int
    completion_count: int


class ExecutableTask(LogicalTask):
    """A task node that runs the per-cycle allocation decision loop.

    Each call to ``execute()``:

    1. refreshes the execution (and interface) time of the current instance,
    2. for a partitionable task not yet split, draws against the partition
       probability and, on success, commits to its two subtasks for the rest
       of the instance,
    3. draws against the abort probability and, on success, resets the
       mechanism and reports ``ABORTED``,
    4. otherwise advances either its own mechanism or the selected subtask.

    Estimates are only updated when a phase completes. ``rng`` and ``clock``
    belong to the owning agent and must not be shared across agents.
    """

    def __init__(
        self,
        name: str,
        params: TaskParams,
        parent: ExecutableTask | None = None,
        *,
        mechanism: Taskable | None = None,
        subtasks: tuple[ExecutableTask, ExecutableTask] | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(name, parent)
        if mechanism is None:
            raise ConfigError(f"Task {name!r} needs an execution mechanism")
        if subtasks is not None:
            if len(subtasks) != 2:
                raise ConfigError(f"Task {name!r} must have exactly two subtasks")
            if subtasks[0] is subtasks[1] or self in subtasks:
                raise ConfigError(f"Task {name!r} needs two distinct subtasks")
            for sub in subtasks:
                self.add_child(sub)

        self.params = params
        self.mechanism = mechanism
        self._subtasks = subtasks
        self._rng = rng or random.Random()
        self._clock = clock
        self._log = logger or logging.getLogger(__name__)

        self.exec_estimate = TimeEstimate(params.estimation_alpha)
        self.interface_estimate = TimeEstimate(params.estimation_alpha)
        self.abort_prob = AbortProbability(params.reactivity, params.offset)
        self.partition_prob = PartitionProbability(params.reactivity)

        self.exec_time = 0.0
        self.exec_start_time = 0.0
        self.interface_time = 0.0
        self.interface_start_time = 0.0
        self.abort_count = 0
        self.completion_count = 0
        self.last_outcome: TaskOutcome | None = None

        self._active = False
        self._finished = False
        self._in_interface = False
        self._partitioned = False
        self._active_subtask = 0

    # -- structure ---------------------------------------------------------

    @property
    def is_partitionable(self) -> bool:
        return self._subtasks is not None

    @property
    def is_atomic(self) -> bool:
        return self._subtasks is None

    @property
    def subtasks(self) -> tuple[ExecutableTask, ExecutableTask] | None:
        return self._subtasks

    @property
    def partitioned(self) -> bool:
        """True while the current instance runs through its subtasks."""
        return self._partitioned

    @property
    def active_subtask(self) -> ExecutableTask | None:
        if self._subtasks is None or not self._partitioned:
            return None
        return self._subtasks[self._active_subtask]

    @property
    def in_interface(self) -> bool:
        return self._in_interface

    # -- orchestrator surface ---------------------------------------------

    def reset(self) -> None:
        """Abandon the current instance without touching the estimates."""
        self._end_instance()
        self._finished = False
        self.exec_time = 0.0
        self.interface_time = 0.0

    def finished(self) -> bool:
        """True once the most recent instance completed."""
        return self._finished

    def execute(self) -> TaskOutcome:
        now = self._clock()
        if not self._active:
            self._start(now)

        self.exec_time = now - self.exec_start_time
        if self._in_interface:
            self.interface_time = now - self.interface_start_time

        if self._subtasks is not None and not self._partitioned:
            first, second = self._subtasks
            p_partition = self.partition_prob.compute(
                self.exec_estimate.last_result(),
                first.exec_estimate.last_result(),
                second.exec_estimate.last_result(),
            )
            if self._rng.random() < p_partition:
                self._commit_partition(p_partition)

        p_abort = self.current_abort_probability()
        if self._rng.random() < p_abort:
            return self._abort(f"abort draw (p={p_abort:.4f})")

        if self._partitioned:
            outcome = self._execute_subtask()
        else:
            outcome = self._execute_mechanism()
        self.last_outcome = outcome
        return outcome

    def current_abort_probability(self) -> float:
        """Abort probability for the current exec time (cached on ``abort_prob``)."""
        if self._partitioned and self._subtasks is not None:
            first, second = self._subtasks
            return self.abort_prob.compute(
                self.exec_time, self.exec_estimate, first.exec_estimate, second.exec_estimate
            )
        return self.abort_prob.compute(self.exec_time, self.exec_estimate)

    def enter_interface(self) -> None:
        """Start timing an interface phase of the current instance."""
        if self._in_interface:
            return
        self._in_interface = True
        self.interface_start_time = self._clock()
        self.interface_time = 0.0

    def exit_interface(self) -> float:
        """Finish the interface phase and fold its duration into the estimate."""
        if not self._in_interface:
            return self.interface_time
        self.interface_time = self._clock() - self.interface_start_time
        self._in_interface = False
        self.interface_estimate.update(self.interface_time)
        return self.interface_time

    def snapshot(self) -> TaskSnapshot:
        active = self.active_subtask
        return TaskSnapshot(
            name=self.name,
            exec_time=self.exec_time,
            interface_time=self.interface_time,
            exec_estimate=self.exec_estimate.last_result(),
            interface_estimate=self.interface_estimate.last_result(),
            abort_probability=self.abort_prob.last_result,
            partition_probability=self.partition_prob.last_result,
            partitioned=self._partitioned,
            active_subtask=active.name if active is not None else None,
            abort_count=self.abort_count,
            completion_count=self.completion_count,
        )

    # -- internals ---------------------------------------------------------

    def _start(self, now: float) -> None:
        self.mechanism.reset()
        if self._subtasks is not None:
            for sub in self._subtasks:
                sub.reset()
        self._active = True
        self._finished = False
        self._partitioned = False
        self._active_subtask = 0
        self.exec_start_time = now
        self.exec_time = 0.0
        self._log.debug("%s: started new instance at %.3f", self.path, now)

    def _end_instance(self) -> None:
        self.mechanism.reset()
        if self._subtasks is not None:
            for sub in self._subtasks:
                sub.reset()
        self._active = False
        self._in_interface = False
        self._partitioned = False
        self._active_subtask = 0

    def _commit_partition(self, probability: float) -> None:
        self._partitioned = True
        self._active_subtask = 0
        self.mechanism.reset()
        # The subtasks time their own interface phases from here on.
        self._in_interface = False
        self._log.debug("%s: partitioned (p=%.4f)", self.path, probability)

    def _execute_mechanism(self) -> TaskOutcome:
        signal = self.mechanism.execute()
        if signal == Signal.FATAL or self.mechanism.halted:
            return self._fatal("execution mechanism signalled FATAL")
        if self.mechanism.finished():
            return self._complete()
        return TaskOutcome.RUNNING

    def _execute_subtask(self) -> TaskOutcome:
        assert self._subtasks is not None
        sub = self._subtasks[self._active_subtask]
        outcome = sub.execute()
        if outcome == TaskOutcome.FATAL:
            return self._fatal(f"subtask {sub.name} signalled FATAL")
        if outcome == TaskOutcome.ABORTED:
            return self._abort(f"subtask {sub.name} aborted")
        if outcome == TaskOutcome.FINISHED:
            if self._active_subtask == 0:
                self._active_subtask = 1
                self._log.debug("%s: switching to subtask %s", self.path, self._subtasks[1].name)
                return TaskOutcome.RUNNING
            return self._complete()
        return TaskOutcome.RUNNING

    def _complete(self) -> TaskOutcome:
        if self._in_interface:
            self.exit_interface()
        self.exec_time = self._clock() - self.exec_start_time
        estimate = self.exec_estimate.update(self.exec_time)
        self.completion_count += 1
        self._active = False
        self._finished = True
        self._partitioned = False
        self.last_outcome = TaskOutcome.FINISHED
        self._log.debug(
            "%s: finished in %.3f (estimate now %.3f)", self.path, self.exec_time, estimate
        )
        return TaskOutcome.FINISHED

    def _abort(self, reason: str) -> TaskOutcome:
        self._end_instance()
        self.abort_count += 1
        self.last_outcome = TaskOutcome.ABORTED
        self._log.info("%s: aborted after %.3f: %s", self.path, self.exec_time, reason)
        return TaskOutcome.ABORTED

    def _fatal(self, reason: str) -> TaskOutcome:
        self._active = False
        self.last_outcome = TaskOutcome.FATAL
        self._log.error("%s: %s", self.path, reason)
        return TaskOutcome.FATAL
