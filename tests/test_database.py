"""Tests for the SQLite telemetry store."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from taskalloc.config import AllocationConfig
from taskalloc.engine import run_simulation
from taskalloc.storage.database import Database


@pytest.fixture
def temp_data_dir() -> Path:
    """Create a temporary data directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestDatabase:
    """Tests for Database."""

    def test_ensure_tables(self, temp_data_dir: Path) -> None:
        db = Database(temp_data_dir)
        db.ensure_tables()
        assert db.db_path.exists()
        rows = db.execute("SELECT version FROM schema_version")
        assert [row["version"] for row in rows] == [1]

    def test_empty_history(self, temp_data_dir: Path) -> None:
        db = Database(temp_data_dir)
        assert db.recent_runs() == []

    def test_record_run(self, temp_data_dir: Path) -> None:
        db = Database(temp_data_dir)
        result = run_simulation(AllocationConfig(), agents=2, ticks=100, seed=5)
        db.record_run(result)

        runs = db.recent_runs()
        assert len(runs) == 1
        assert runs[0]["run_id"] == result.run_id
        assert runs[0]["completions"] == result.completions
        assert runs[0]["seed"] == 5

        stats = db.task_stats(result.run_id)
        assert [s["task_name"] for s in stats] == ["collect", "deliver", "harvest"]

    def test_recent_runs_newest_first(self, temp_data_dir: Path) -> None:
        db = Database(temp_data_dir)
        first = run_simulation(AllocationConfig(), agents=1, ticks=20, seed=1)
        second = run_simulation(AllocationConfig(), agents=1, ticks=20, seed=2)
        db.record_run(first)
        db.record_run(second)

        runs = db.recent_runs(limit=1)
        assert [r["run_id"] for r in runs] == [second.run_id]

    def test_execute_insert(self, temp_data_dir: Path) -> None:
        db = Database(temp_data_dir)
        db.ensure_tables()
        row_id = db.execute_insert(
            "INSERT INTO runs (run_id, agents, ticks, seed) VALUES (?, ?, ?, ?)",
            ("run-manual", 1, 1, 0),
        )
        assert row_id > 0
