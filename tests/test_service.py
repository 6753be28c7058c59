"""Tests for the command facade."""

import pytest
from structlog.testing import capture_logs

from conftest import BOB, FRANK
from workflow_manager.errors import AuthorizationError, NotFoundError
from workflow_manager.models import TaskPatch


def test_unknown_actor_is_logged_as_rejected(service, task) -> None:
    """Test that an unknown acting user goes through the rejection log."""
    with capture_logs() as logs:
        with pytest.raises(NotFoundError):
            service.set_status(999, task.id, "In Progress")

    rejected = [e for e in logs if e["event"] == "Command rejected"]
    assert len(rejected) == 1
    assert rejected[0]["command"] == "set_status"
    assert rejected[0]["actor"] == 999
    assert rejected[0]["tag"] == "not_found"
    assert rejected[0]["log_level"] == "warning"


def test_rejected_command_is_logged(service, task) -> None:
    with capture_logs() as logs:
        with pytest.raises(AuthorizationError):
            service.edit_task(BOB, task.id, TaskPatch(title="Mine now"))

    assert [e["tag"] for e in logs if e["event"] == "Command rejected"] == ["authorization"]


def test_sign_up_runs_without_actor(service) -> None:
    user = service.sign_up("Gina", "gina@staff", role="Editor")
    assert service.actor(user.id).username == "gina@staff"


def test_accepted_command_is_not_logged_as_rejected(service, task) -> None:
    with capture_logs() as logs:
        service.set_status(FRANK, task.id, "Blocked")
    assert not [e for e in logs if e["event"] == "Command rejected"]
