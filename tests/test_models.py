"""Tests for data models."""

from datetime import datetime, timedelta, timezone

from workflow_manager.models import (
    AccountKind,
    Role,
    Task,
    TaskStatus,
    User,
    parse_role,
    role_name,
    utc,
)

START = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


def test_task_creation() -> None:
    """Test task creation with defaults."""
    task = Task(id=1, title="Test Task", start_time=START, end_time=START + timedelta(hours=1))
    assert task.status == TaskStatus.PENDING
    assert task.assignees == []
    assert task.history == []
    assert task.ratings == {}
    assert task.transfer_request is None
    assert not task.is_brand_requested


def test_record_clamps_timestamps() -> None:
    """Test that history stays ordered when a timestamp arrives late."""
    task = Task(id=1, title="Test Task", start_time=START, end_time=START + timedelta(hours=1))
    task.record(2, "Task Created", START + timedelta(minutes=5))
    entry = task.record(2, "Status changed to Blocked", START)
    assert entry.timestamp == START + timedelta(minutes=5)
    assert len(task.history) == 2


def test_user_kinds() -> None:
    brand = User(id=1, name="Nike", username="nike@brand", kind=AccountKind.BRAND)
    staff = User(id=2, name="Bob", username="bob@staff", role="Editor")
    assert brand.is_brand and not brand.is_staff
    assert staff.is_staff and not staff.is_brand


def test_role_names() -> None:
    assert parse_role("Manager") is Role.MANAGER
    assert parse_role("Editor") == "Editor"
    assert parse_role(None) is None
    assert role_name(Role.FOUNDER) == "Founder"
    assert role_name("Model") == "Model"


def test_utc_normalizes() -> None:
    naive = datetime(2026, 3, 10, 9, 0)
    assert utc(naive) == START
    shifted = datetime(2026, 3, 10, 11, 0, tzinfo=timezone(timedelta(hours=2)))
    assert utc(shifted) == START
    assert utc(shifted).tzinfo == timezone.utc
