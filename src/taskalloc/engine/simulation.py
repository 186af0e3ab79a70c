"""Run independent agents over simulated control ticks.

Every agent gets its own task tree, clock and PRNG (seeded from the run
seed), so runs are reproducible and agents never share mutable state even
when they are stepped from different worker threads.
"""

from __future__ import annotations

import logging
import random
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from typing import Any

from taskalloc.config import AllocationConfig
from taskalloc.reporting import Reporter
from taskalloc.tasks import ExecutableTask, PolledHfsm, TaskSnapshot

from .agent import Agent
from .work_fsm import WorkFsm, WorkProfile

logger = logging.getLogger(__name__)

# Task layout of the demo tree: the root can be split into two subtasks.
ROOT_TASK = "collect"
SUBTASKS = ("harvest", "deliver")

PROFILES: dict[str, WorkProfile] = {
    "collect": WorkProfile(search=(2, 6), work=(10, 30)),
    "harvest": WorkProfile(search=(1, 4), work=(4, 12)),
    "deliver": WorkProfile(search=(1, 4), work=(4, 12)),
}


class SimClock:
    """Discrete clock advanced once per control tick."""

    def __init__(self, start: float = 0.0, step: float = 1.0) -> None:
        self.value = start
        self.step = step

    def __call__(self) -> float:
        return self.value

    def advance(self) -> float:
        self.value += self.step
        return self.value


def _make_task(
    name: str,
    config: AllocationConfig,
    rng: random.Random,
    clock: SimClock,
    log: logging.Logger,
    subtasks: tuple[ExecutableTask, ExecutableTask] | None = None,
) -> ExecutableTask:
    fsm = WorkFsm(
        rng,
        PROFILES[name],
        name=f"{name}-fsm",
        max_transitions=config.engine.max_transitions,
        logger=log,
    )
    task = ExecutableTask(
        name,
        config.params_for(name),
        mechanism=PolledHfsm(fsm, terminal_states=[WorkFsm.DONE]),
        subtasks=subtasks,
        rng=rng,
        clock=clock,
        logger=log,
    )
    fsm.bind(task)
    return task


def build_task_tree(
    config: AllocationConfig,
    rng: random.Random,
    clock: SimClock,
    log: logging.Logger | None = None,
) -> ExecutableTask:
    """Build the demo tree: ``collect`` partitionable into harvest + deliver."""
    log = log or logger
    first, second = (_make_task(name, config, rng, clock, log) for name in SUBTASKS)
    return _make_task(ROOT_TASK, config, rng, clock, log, subtasks=(first, second))


@dataclass
class AgentReport:
    """Outcome of one simulated agent."""

    agent_id: str
    seed: int
    ticks: int
    completions: int
    aborts: int
    halted: bool
    fatal_reason: str | None = None
    tasks: list[TaskSnapshot] = field(default_factory=list)


@dataclass
class SimulationResult:
    """Aggregated outcome of a simulation run."""

    run_id: str
    agents: int
    ticks: int
    seed: int
    duration_seconds: float
    reports: list[AgentReport] = field(default_factory=list)

    @property
    def completions(self) -> int:
        return sum(r.completions for r in self.reports)

    @property
    def aborts(self) -> int:
        return sum(r.aborts for r in self.reports)

    @property
    def halted(self) -> int:
        return sum(1 for r in self.reports if r.halted)

    def task_summary(self) -> dict[str, dict[str, float]]:
        """Per task name: mean estimates and total counts across agents."""
        grouped: dict[str, list[TaskSnapshot]] = {}
        for report in self.reports:
            for snap in report.tasks:
                grouped.setdefault(snap.name, []).append(snap)

        summary: dict[str, dict[str, float]] = {}
        for name, snaps in grouped.items():
            count = len(snaps)
            summary[name] = {
                "mean_exec_estimate": sum(s.exec_estimate for s in snaps) / count,
                "mean_interface_estimate": sum(s.interface_estimate for s in snaps) / count,
                "mean_abort_probability": sum(s.abort_probability for s in snaps) / count,
                "mean_partition_probability": sum(s.partition_probability for s in snaps) / count,
                "completions": float(sum(s.completion_count for s in snaps)),
                "aborts": float(sum(s.abort_count for s in snaps)),
            }
        return summary

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["completions"] = self.completions
        data["aborts"] = self.aborts
        data["halted"] = self.halted
        data["task_summary"] = self.task_summary()
        return data


def run_agent(
    agent_id: str,
    config: AllocationConfig,
    seed: int,
    ticks: int,
    log: logging.Logger | None = None,
) -> AgentReport:
    """Simulate one agent for ``ticks`` control cycles."""
    log = log or logger
    rng = random.Random(seed)
    clock = SimClock()
    root = build_task_tree(config, rng, clock, log)
    agent = Agent(agent_id, root, rng, Reporter(log, prefix=agent_id))

    for _ in range(ticks):
        agent.step()
        if agent.halted:
            break
        clock.advance()

    return AgentReport(
        agent_id=agent_id,
        seed=seed,
        ticks=agent.stats.ticks,
        completions=agent.stats.completions,
        aborts=agent.stats.aborts,
        halted=agent.halted,
        fatal_reason=agent.stats.fatal_reason,
        tasks=agent.snapshots(),
    )


def run_simulation(
    config: AllocationConfig,
    agents: int = 4,
    ticks: int = 500,
    seed: int = 0,
    max_workers: int = 4,
) -> SimulationResult:
    """Run ``agents`` independent agents in a thread pool.

    An agent that raises is logged and reported as halted; the rest of the
    run is unaffected.
    """
    if agents < 1:
        raise ValueError(f"agents must be >= 1, got {agents}")
    if ticks < 1:
        raise ValueError(f"ticks must be >= 1, got {ticks}")

    run_id = f"run-{uuid.uuid4().hex[:8]}"
    agent_ids = [f"agent-{i}" for i in range(agents)]
    start = time.monotonic()
    reports: dict[str, AgentReport] = {}

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(run_agent, agent_id, config, seed + i, ticks): (agent_id, seed + i)
            for i, agent_id in enumerate(agent_ids)
        }
        for future in as_completed(futures):
            agent_id, agent_seed = futures[future]
            try:
                reports[agent_id] = future.result()
            except Exception as e:
                logger.exception("%s: crashed", agent_id)
                reports[agent_id] = AgentReport(
                    agent_id=agent_id,
                    seed=agent_seed,
                    ticks=0,
                    completions=0,
                    aborts=0,
                    halted=True,
                    fatal_reason=f"{type(e).__name__}: {e}",
                )

    result = SimulationResult(
        run_id=run_id,
        agents=agents,
        ticks=ticks,
        seed=seed,
        duration_seconds=time.monotonic() - start,
        reports=[reports[a] for a in agent_ids],
    )
    logger.info(
        "%s: %d agent(s), %d completion(s), %d abort(s), %d halted",
        run_id,
        agents,
        result.completions,
        result.aborts,
        result.halted,
    )
    return result

