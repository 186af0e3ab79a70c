"""Agent boundary and simulation harness."""

from taskalloc.engine.agent import Agent, AgentState, AgentStats
from taskalloc.engine.simulation import (
    AgentReport,
    SimClock,
    SimulationResult,
    build_task_tree,
    run_agent,
    run_simulation,
)
from taskalloc.engine.work_fsm import WorkFsm, WorkProfile

__all__ = [
    "Agent",
    "AgentReport",
    "AgentState",
    "AgentStats",
    "SimClock",
    "SimulationResult",
    "WorkFsm",
    "WorkProfile",
    "build_task_tree",
    "run_agent",
    "run_simulation",
]
