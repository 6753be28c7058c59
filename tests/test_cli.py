"""Tests for the command line interface against a YAML store in a temporary directory."""

from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from workflow_manager.cli import app


@pytest.fixture()
def workspace(tmp_path, monkeypatch) -> Iterator[Path]:
    """Run commands from an empty directory with an empty home."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: fake_home))
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    structlog.reset_defaults()


def wm(*args: str) -> int:
    """Invoke the CLI and return its exit code."""
    try:
        app.meta(list(args))
    except SystemExit as e:
        return e.code or 0
    return 0


def test_seed_and_people(workspace, capsys) -> None:
    assert wm("seed", "Aman", "aman@staff") == 0
    assert (workspace / ".workflow-manager" / "state.yaml").exists()
    assert wm("--as", "1", "people", "add", "Bob", "bob@staff", "--role", "Editor") == 0
    capsys.readouterr()

    assert wm("people", "list") == 0
    out = capsys.readouterr().out
    assert "Found 2 user(s)" in out
    assert "Bob <bob@staff> (Editor)" in out


def test_task_flow(workspace, capsys) -> None:
    """Test create, status change and completion through the CLI."""
    wm("seed", "Aman", "aman@staff")
    wm("--as", "1", "people", "add", "Bob", "bob@staff", "--role", "Editor")
    assert (
        wm(
            "--as", "1", "create", "Fix login",
            "--assignees", "2", "--start", "2026-03-10T09:00:00", "--end", "2026-03-10T10:00:00",
        )
        == 0
    )
    assert wm("--as", "2", "status", "1", "In Progress") == 0
    assert wm("--as", "2", "complete", "1", "--comment", "done") == 0
    capsys.readouterr()

    assert wm("show", "1") == 0
    out = capsys.readouterr().out
    assert "Status: Completed" in out
    assert "Bob: Status changed to In Progress" in out
    assert "Bob: done" in out


def test_rejected_command_exits_nonzero(workspace, capsys) -> None:
    wm("seed", "Aman", "aman@staff")
    wm("--as", "1", "create", "Plan", "--start", "2026-03-10T09:00:00", "--end", "2026-03-10T10:00:00")
    capsys.readouterr()

    assert wm("--as", "1", "status", "1", "Completed") == 1
    assert "error[validation]" in capsys.readouterr().err


@pytest.mark.parametrize(
    "args",
    [
        ("request", "resolve-transfer", "1"),
        ("request", "resolve-transfer", "1", "--approve", "--reject"),
        ("request", "resolve-invite", "1"),
        ("request", "resolve-deletion", "1", "--approve", "--decline"),
    ],
)
def test_resolve_needs_one_decision(workspace, capsys, args) -> None:
    """Test that resolve commands reject a missing or double decision."""
    wm("seed", "Aman", "aman@staff")
    capsys.readouterr()
    assert wm("--as", "1", *args) == 1
    assert "error[validation]" in capsys.readouterr().err


def test_missing_actor(workspace, capsys) -> None:
    wm("seed", "Aman", "aman@staff")
    capsys.readouterr()
    assert wm("create", "Plan") == 1
    assert "--as" in capsys.readouterr().err


def test_config_show(workspace, capsys) -> None:
    assert wm("config", "set", "scheduler.interval", "2") == 0
    capsys.readouterr()
    assert wm("config", "show") == 0
    out = capsys.readouterr().out
    assert "2.0" in out
