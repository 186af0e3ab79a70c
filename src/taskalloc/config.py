"""Task allocation configuration.

Parameters are supplied per task type and validated once, when they are
built. Everything downstream treats a ``TaskParams`` as already valid.

Example ``config.toml``::

    [engine]
    max_transitions = 16
    log_level = "INFO"

    [tasks.default]
    estimation_alpha = 0.8
    reactivity = 8.0
    offset = 2.0
"""

from __future__ import annotations

import logging
import math
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from taskalloc.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_TASK_TYPE = "default"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def data_dir() -> Path:
    """Home of the database and config file (``$TASKALLOC_HOME`` or ~/.taskalloc)."""
    override = os.environ.get("TASKALLOC_HOME")
    return Path(override) if override else Path.home() / ".taskalloc"


@dataclass(frozen=True)
class TaskParams:
    """Estimation and probability parameters for one task type."""

    estimation_alpha: float = 0.8
    reactivity: float = 8.0
    offset: float = 2.0

    def __post_init__(self) -> None:
        if not math.isfinite(self.estimation_alpha) or not 0.0 < self.estimation_alpha <= 1.0:
            raise ConfigError(f"estimation_alpha must be in (0.0, 1.0], got {self.estimation_alpha}")
        if not math.isfinite(self.reactivity) or self.reactivity <= 0.0:
            raise ConfigError(f"reactivity must be > 0.0, got {self.reactivity}")
        if not math.isfinite(self.offset) or self.offset < 0.0:
            raise ConfigError(f"offset must be >= 0.0, got {self.offset}")


@dataclass(frozen=True)
class EngineSettings:
    """Dispatcher and logging settings shared by every agent."""

    max_transitions: int = 16
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.max_transitions < 0:
            raise ConfigError(f"max_transitions must be >= 0, got {self.max_transitions}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")


@dataclass
class AllocationConfig:
    """Validated configuration for a task allocation run."""

    engine: EngineSettings = field(default_factory=EngineSettings)
    tasks: dict[str, TaskParams] = field(default_factory=dict)

    def params_for(self, task_type: str) -> TaskParams:
        """Parameters for ``task_type``, falling back to the ``default`` entry."""
        if task_type in self.tasks:
            return self.tasks[task_type]
        return self.tasks.get(DEFAULT_TASK_TYPE, TaskParams())

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> AllocationConfig:
        engine_raw = raw.get("engine", {})
        if not isinstance(engine_raw, dict):
            raise ConfigError("[engine] must be a table")
        tasks_raw = raw.get("tasks", {})
        if not isinstance(tasks_raw, dict):
            raise ConfigError("[tasks] must be a table")

        try:
            engine = EngineSettings(**engine_raw)
        except TypeError as e:
            raise ConfigError(f"Unknown [engine] key: {e}") from e

        tasks: dict[str, TaskParams] = {}
        for name, values in tasks_raw.items():
            if not isinstance(values, dict):
                raise ConfigError(f"[tasks.{name}] must be a table")
            try:
                tasks[name] = TaskParams(**values)
            except TypeError as e:
                raise ConfigError(f"Unknown key in [tasks.{name}]: {e}") from e
        return cls(engine=engine, tasks=tasks)


def load_config(path: Path | None = None) -> AllocationConfig:
    """Load configuration from a TOML file.

    A missing file yields the defaults. A malformed file raises ``ConfigError``.
    """
    path = path or data_dir() / "config.toml"
    if not path.exists():
        logger.debug("No config at %s, using defaults", path)
        return AllocationConfig()

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e

    config = AllocationConfig.from_dict(raw)
    logger.info("Loaded %d task type(s) from %s", len(config.tasks), path)
    return config
