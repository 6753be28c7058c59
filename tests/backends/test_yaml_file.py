"""Tests for the YAML snapshot backend."""

from datetime import timedelta

import pytest
import yaml

from conftest import AMAN, BOB, CHARLIE, FRANK, NIKE, FakeClock, make_users
from workflow_manager.backends import YamlBackend
from workflow_manager.models import Attachment, RequestStatus, Role, TaskStatus, WishKind
from workflow_manager.service import WorkflowService


@pytest.fixture()
def state_file(tmp_path):
    return tmp_path / "data" / "state.yaml"


@pytest.fixture()
def seeded(state_file):
    """A YAML store holding the shared users and roles."""
    backend = YamlBackend(state_file)
    for user in make_users():
        backend.put_user(user)
    for role in ["Editor", "Graphic Designer", "Camera Man", "Model", "Web Developer"]:
        backend.add_role(role)
    return backend


def test_missing_file_starts_empty(state_file) -> None:
    backend = YamlBackend(state_file)
    assert backend.list_users() == []
    assert not state_file.exists()


def test_first_write_creates_file(seeded, state_file) -> None:
    """Test that the snapshot is written on mutation."""
    data = yaml.safe_load(state_file.read_text())
    assert [u["username"] for u in data["users"]][:2] == ["alice@staff", "bob@staff"]
    assert data["users"][5]["role"] == "Manager"
    assert data["counters"]["user"] == 9


def test_state_survives_reload(seeded, state_file) -> None:
    """Test that a new backend over the same file sees every record."""
    clock = FakeClock()
    service = WorkflowService(seeded, clock=clock)
    task = service.create_task(
        FRANK,
        "Shoot lookbook",
        clock.now,
        clock.now + timedelta(hours=2),
        assignees=[BOB],
        brand_id=NIKE,
        attachments=[Attachment("brief.pdf", "s3://bucket/brief.pdf")],
    )
    service.propose_invite(BOB, task.id, CHARLIE, "Need an editor")
    service.add_comment(NIKE, task.id, "Looks great")
    service.confirm_completion(BOB, task.id, "done")
    service.rate_task(NIKE, task.id, 5)
    request = service.submit_task_request(NIKE, "Teaser", clock.now + timedelta(days=1))
    service.decline_task_request(FRANK, request.id)
    service.request_deletion(FRANK, CHARLIE, "Left")
    service.post_birthday_wish(BOB, 1, "voice", "voice-note-1")
    service.publish_announcement(AMAN, "Welcome")

    reloaded = YamlBackend(state_file)
    stored = reloaded.get_task(task.id)
    assert stored.status == TaskStatus.COMPLETED
    assert stored.start_time == clock.now
    assert stored.attachments[0].locator == "s3://bucket/brief.pdf"
    assert stored.invitation_request.to_user_id == CHARLIE
    assert stored.ratings == {NIKE: 5}
    assert [c.text for c in stored.comments] == ["Looks great", "done"]
    assert [h.action for h in stored.history][-1] == "Status changed to Completed"
    assert reloaded.get_user(BOB).total_score == 5
    assert reloaded.get_user(FRANK).role == Role.MANAGER
    assert reloaded.get_user(1).role == "Graphic Designer"
    assert reloaded.get_task_request(request.id).status == RequestStatus.DECLINED
    assert reloaded.list_deletion_requests()[0].target_user_id == CHARLIE
    assert reloaded.list_wishes()[0].kind == WishKind.VOICE
    assert reloaded.list_announcements()[0].text == "Welcome"
    assert reloaded.next_id("task") == task.id + 1


def test_unreadable_snapshot_raises(state_file) -> None:
    state_file.parent.mkdir(parents=True)
    state_file.write_text("users: [unclosed")
    with pytest.raises(ValueError):
        YamlBackend(state_file)
