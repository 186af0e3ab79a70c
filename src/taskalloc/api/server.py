"""FastAPI server for running simulations and inspecting probabilities."""

from __future__ import annotations

import asyncio
import math
import time
from typing import Any

import click
from fastapi import FastAPI

from taskalloc import __version__
from taskalloc.config import load_config
from taskalloc.errors import ConfigError
from taskalloc.estimation import TimeEstimate
from taskalloc.probability import AbortProbability, PartitionProbability
from taskalloc.storage.database import Database

app = FastAPI(
    title="taskalloc API",
    version=__version__,
    description="Stochastic task allocation simulation and inspection API",
)

_start_time = time.monotonic()
_db = Database()

MAX_AGENTS = 64
MAX_TICKS = 100_000


def _float(request: dict[str, Any], key: str, default: float | None = None) -> float:
    value = request.get(key, default)
    if value is None:
        raise ValueError(f"{key} is required")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{key} must be finite")
    return number


def _estimate(value: float) -> TimeEstimate:
    estimate = TimeEstimate(1.0)
    if value > 0.0:
        estimate.update(value)
    return estimate


@app.get("/api/health")
async def health() -> dict[str, Any]:
    """Health check."""
    uptime = time.monotonic() - _start_time
    return {"status": "ok", "version": __version__, "uptime_seconds": round(uptime, 1)}


@app.post("/api/simulate")
async def simulate(request: dict[str, Any]) -> dict[str, Any]:
    """Run a simulation and return its summary."""
    from taskalloc.engine.simulation import run_simulation

    try:
        agents = int(request.get("agents", 4))
        ticks = int(request.get("ticks", 200))
        seed = int(request.get("seed", 0))
    except (TypeError, ValueError) as e:
        return {"error": f"invalid parameter: {e}"}
    if not 1 <= agents <= MAX_AGENTS:
        return {"error": f"agents must be in [1, {MAX_AGENTS}]"}
    if not 1 <= ticks <= MAX_TICKS:
        return {"error": f"ticks must be in [1, {MAX_TICKS}]"}

    try:
        config = load_config()
    except ConfigError as e:
        return {"error": str(e)}

    result = await asyncio.to_thread(run_simulation, config, agents, ticks, seed)
    if request.get("save"):
        try:
            _db.record_run(result)
        except Exception as e:
            return {"error": f"could not save run: {e}", "run_id": result.run_id}

    data = result.to_dict()
    data.pop("reports")
    return data


@app.get("/api/runs")
async def runs(limit: int = 20) -> dict[str, Any]:
    """Recently saved simulation runs."""
    try:
        items = _db.recent_runs(limit)
    except Exception:
        items = []
    return {"runs": items, "count": len(items), "limit": limit}


@app.post("/api/probability/abort")
async def abort_probability(request: dict[str, Any]) -> dict[str, Any]:
    """Abort probability for an execution time and estimate(s)."""
    try:
        model = AbortProbability(
            _float(request, "reactivity", 8.0), _float(request, "offset", 2.0)
        )
        exec_time = _float(request, "exec_time")
        whole = _estimate(_float(request, "estimate"))
        if "subtask1" in request or "subtask2" in request:
            first = _estimate(_float(request, "subtask1"))
            second = _estimate(_float(request, "subtask2"))
            probability = model.compute(exec_time, whole, first, second)
        else:
            probability = model.compute(exec_time, whole)
    except (TypeError, ValueError) as e:
        return {"error": str(e)}
    return {"probability": probability}


@app.post("/api/probability/partition")
async def partition_probability(request: dict[str, Any]) -> dict[str, Any]:
    """Partition probability for a task and its two subtasks."""
    try:
        model = PartitionProbability(_float(request, "reactivity", 8.0))
        probability = model.compute(
            _float(request, "task_estimate"),
            _float(request, "subtask1_estimate"),
            _float(request, "subtask2_estimate"),
        )
    except (TypeError, ValueError) as e:
        return {"error": str(e)}
    return {"probability": probability}


@click.command()
@click.option("--port", default=3849, help="Port to listen on")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
def main(port: int, host: str) -> None:
    """Start the taskalloc API server."""
    import uvicorn

    uvicorn.run(app, host=host, port=port)
