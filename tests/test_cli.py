"""Tests for the taskalloc CLI."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from taskalloc.cli import main


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("TASKALLOC_HOME", str(tmp_path))
    return tmp_path


def test_version() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_init(isolated_home: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["init"])
    assert result.exit_code == 0
    assert "initialized" in result.output.lower()
    assert (isolated_home / "data" / "taskalloc.db").exists()


def test_history_empty() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["history"])
    assert result.exit_code == 0
    assert "No runs saved yet" in result.output


def test_simulate_and_history() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["simulate", "--agents", "2", "--ticks", "50", "--save"])
    assert result.exit_code == 0
    assert "Run: run-" in result.output
    assert "Saved run-" in result.output

    result = runner.invoke(main, ["history"])
    assert result.exit_code == 0
    assert "Simulation History" in result.output


def test_simulate_rejects_bad_agents() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["simulate", "--agents", "0"])
    assert result.exit_code != 0


def test_simulate_bad_config(isolated_home: Path) -> None:
    (isolated_home / "config.toml").write_text("[tasks.default]\nreactivity = -1\n")
    runner = CliRunner()
    result = runner.invoke(main, ["simulate", "--ticks", "10"])
    assert result.exit_code != 0
    assert "reactivity" in result.output


def test_probe() -> None:
    runner = CliRunner()
    result = runner.invoke(
        main,
        ["probe", "--reactivity", "1", "--offset", "0", "--exec-time", "10", "--estimate", "10"],
    )
    assert result.exit_code == 0
    assert "0.500000" in result.output


def test_probe_partitioned() -> None:
    runner = CliRunner()
    result = runner.invoke(
        main,
        [
            "probe",
            "--exec-time", "5",
            "--estimate", "10",
            "--subtask1", "4",
            "--subtask2", "6",
        ],
    )
    assert result.exit_code == 0
    assert "Partition:" in result.output
    assert "0.500000" in result.output


def test_probe_needs_both_subtasks() -> None:
    runner = CliRunner()
    result = runner.invoke(
        main, ["probe", "--exec-time", "5", "--estimate", "10", "--subtask1", "4"]
    )
    assert result.exit_code != 0
