"""Agent boundary: one task tree, one PRNG, one halt switch."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import StrEnum

from taskalloc.reporting import Reporter
from taskalloc.tasks import ExecutableTask, TaskOutcome, TaskSnapshot


class AgentState(StrEnum):
    """Agent execution states."""

    RUNNING = "running"
    HALTED = "halted"


@dataclass
class AgentStats:
    """Per-agent counters, updated every tick."""

    ticks: int = 0
    completions: int = 0
    aborts: int = 0
    fatal_reason: str | None = None
    outcomes: dict[str, int] = field(default_factory=dict)


class Agent:
    """Owns and steps one task tree.

    A ``FATAL`` outcome from the tree is reported and halts this agent only;
    later ``step()`` calls do nothing and return ``FATAL``.
    """

    def __init__(
        self,
        agent_id: str,
        root: ExecutableTask,
        rng: random.Random,
        reporter: Reporter | None = None,
    ) -> None:
        self.agent_id = agent_id
        self.root = root
        self.rng = rng
        self.reporter = reporter or Reporter(prefix=agent_id)
        self.state = AgentState.RUNNING
        self.stats = AgentStats()

    @property
    def halted(self) -> bool:
        return self.state == AgentState.HALTED

    def step(self) -> TaskOutcome:
        """Run one control cycle of the root task."""
        if self.halted:
            return TaskOutcome.FATAL

        self.stats.ticks += 1
        outcome = self.root.execute()
        self.stats.outcomes[outcome.value] = self.stats.outcomes.get(outcome.value, 0) + 1

        if outcome == TaskOutcome.FINISHED:
            self.stats.completions += 1
        elif outcome == TaskOutcome.ABORTED:
            self.stats.aborts += 1
        elif outcome == TaskOutcome.FATAL:
            self.halt(f"task {self.root.path} failed at tick {self.stats.ticks}")
        return outcome

    def run(self, ticks: int) -> AgentStats:
        """Step up to ``ticks`` times, stopping early if the agent halts."""
        for _ in range(ticks):
            if self.step() == TaskOutcome.FATAL:
                break
        return self.stats

    def halt(self, reason: str) -> None:
        if self.halted:
            return
        self.state = AgentState.HALTED
        self.stats.fatal_reason = reason
        self.reporter.report(logging.ERROR, f"halted: {reason}")

    def snapshots(self) -> list[TaskSnapshot]:
        """Snapshots of every executable task in the tree, root first."""
        return [node.snapshot() for node in self.root.walk() if isinstance(node, ExecutableTask)]
