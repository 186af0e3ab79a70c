"""SQLite telemetry store with WAL mode."""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from taskalloc.config import data_dir as default_data_dir

if TYPE_CHECKING:
    from taskalloc.engine.simulation import SimulationResult


class Database:
    """SQLite storage layer for simulation runs."""

    def __init__(self, data_dir: Path | None = None) -> None:
        self.data_dir = data_dir or default_data_dir()
        self.db_path = self.data_dir / "data" / "taskalloc.db"

    def _ensure_dirs(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        (self.data_dir / "data").mkdir(exist_ok=True)

    @contextmanager
    def connect(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with WAL mode."""
        self._ensure_dirs()
        conn = sqlite3.connect(str(self.db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_tables(self) -> None:
        """Create all tables if they don't exist."""
        with self.connect() as conn:
            conn.executescript(_SCHEMA)

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        """Execute a query and return results."""
        with self.connect() as conn:
            cursor = conn.execute(sql, params)
            return cursor.fetchall()

    def execute_insert(self, sql: str, params: tuple[Any, ...] = ()) -> int:
        """Execute an insert and return lastrowid."""
        with self.connect() as conn:
            cursor = conn.execute(sql, params)
            return cursor.lastrowid or 0

    def record_run(self, result: SimulationResult) -> None:
        """Persist a simulation run and its per-task summary."""
        self.ensure_tables()
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO runs (
                    run_id, agents, ticks, seed, completions, aborts,
                    halted, duration_seconds, details
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    result.run_id,
                    result.agents,
                    result.ticks,
                    result.seed,
                    result.completions,
                    result.aborts,
                    result.halted,
                    result.duration_seconds,
                    json.dumps(result.to_dict()),
                ),
            )
            for task_name, stats in result.task_summary().items():
                conn.execute(
                    """
                    INSERT INTO task_stats (
                        run_id, task_name, mean_exec_estimate, mean_interface_estimate,
                        mean_abort_probability, mean_partition_probability,
                        completions, aborts
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        result.run_id,
                        task_name,
                        stats["mean_exec_estimate"],
                        stats["mean_interface_estimate"],
                        stats["mean_abort_probability"],
                        stats["mean_partition_probability"],
                        int(stats["completions"]),
                        int(stats["aborts"]),
                    ),
                )

    def recent_runs(self, limit: int = 20) -> list[dict[str, Any]]:
        """Most recent runs first, without the raw details blob."""
        self.ensure_tables()
        rows = self.execute(
            """
            SELECT run_id, agents, ticks, seed, completions, aborts, halted,
                   duration_seconds, created_at
            FROM runs ORDER BY id DESC LIMIT ?
            """,
            (limit,),
        )
        return [dict(row) for row in rows]

    def task_stats(self, run_id: str) -> list[dict[str, Any]]:
        self.ensure_tables()
        rows = self.execute(
            "SELECT * FROM task_stats WHERE run_id = ? ORDER BY task_name", (run_id,)
        )
        return [dict(row) for row in rows]


_SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id TEXT UNIQUE NOT NULL,
    agents INTEGER NOT NULL,
    ticks INTEGER NOT NULL,
    seed INTEGER NOT NULL,
    completions INTEGER NOT NULL DEFAULT 0,
    aborts INTEGER NOT NULL DEFAULT 0,
    halted INTEGER NOT NULL DEFAULT 0,
    duration_seconds REAL NOT NULL DEFAULT 0.0,
    details TEXT DEFAULT '{}',
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS task_stats (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id TEXT NOT NULL REFERENCES runs(run_id),
    task_name TEXT NOT NULL,
    mean_exec_estimate REAL NOT NULL DEFAULT 0.0,
    mean_interface_estimate REAL NOT NULL DEFAULT 0.0,
    mean_abort_probability REAL NOT NULL DEFAULT 0.0,
    mean_partition_probability REAL NOT NULL DEFAULT 0.0,
    completions INTEGER NOT NULL DEFAULT 0,
    aborts INTEGER NOT NULL DEFAULT 0
);

INSERT OR IGNORE INTO schema_version (version) VALUES (1);
"""
