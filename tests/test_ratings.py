"""Tests for task ratings and the leaderboard."""

import pytest

from conftest import ADIDAS, ALICE, AMAN, BOB, CHARLIE, DIANA, FRANK, NIKE
from workflow_manager.errors import AuthorizationError, ConflictError, ValidationError
from workflow_manager.models import TaskPatch
from workflow_manager.ratings import average_rating


@pytest.fixture()
def completed(service, task):
    """The shared task handed to Bob and Charlie and completed."""
    service.edit_task(FRANK, task.id, TaskPatch(assignees=[BOB, CHARLIE]))
    return service.confirm_completion(BOB, task.id, "shipped")


def scores(service, user_id: int) -> tuple[int, int]:
    user = service.actor(user_id)
    return user.total_score, user.monthly_score


def test_rating_credits_every_assignee(service, completed) -> None:
    """Scenario D: both assignees gain the rating once."""
    service.rate_task(FRANK, completed.id, 4)
    assert scores(service, BOB) == (4, 4)
    assert scores(service, CHARLIE) == (4, 4)

    with pytest.raises(ConflictError):
        service.rate_task(FRANK, completed.id, 5)
    assert scores(service, BOB) == (4, 4)
    assert scores(service, CHARLIE) == (4, 4)
    assert service.get_task(completed.id).ratings == {FRANK: 4}


def test_rating_leaves_others_alone(service, completed) -> None:
    """Test that users not on the task keep their scores."""
    service.rate_task(AMAN, completed.id, 5)
    for user_id in (ALICE, DIANA, FRANK, AMAN):
        assert scores(service, user_id) == (0, 0)


def test_several_raters_accumulate(service, completed) -> None:
    """Test that each eligible rater adds their own rating."""
    service.rate_task(FRANK, completed.id, 4)
    service.rate_task(AMAN, completed.id, 5)
    service.rate_task(NIKE, completed.id, 3)
    assert scores(service, BOB) == (12, 12)
    assert average_rating(service.get_task(completed.id)) == 4


def test_untagged_brand_cannot_rate(service, completed) -> None:
    """Test that only the tagged brand rates among brands."""
    with pytest.raises(AuthorizationError):
        service.rate_task(ADIDAS, completed.id, 5)


def test_staff_cannot_rate(service, completed) -> None:
    """Test that regular staff are not raters, assignees included."""
    with pytest.raises(AuthorizationError):
        service.rate_task(BOB, completed.id, 5)
    with pytest.raises(AuthorizationError):
        service.rate_task(ALICE, completed.id, 5)


def test_only_completed_tasks(service, task) -> None:
    """Test that open tasks cannot be rated."""
    with pytest.raises(ConflictError):
        service.rate_task(FRANK, task.id, 3)
    assert scores(service, BOB) == (0, 0)


@pytest.mark.parametrize("rating", [0, 6, -1, True, 3.5])
def test_rating_range(service, completed, rating) -> None:
    """Test that ratings outside 1..5 are rejected."""
    with pytest.raises(ValidationError):
        service.rate_task(FRANK, completed.id, rating)
    assert service.get_task(completed.id).ratings == {}


def test_deleted_assignee_is_skipped(service, completed) -> None:
    """Test that rating a task whose assignee was deleted credits the rest."""
    service.delete_user(AMAN, CHARLIE)
    service.rate_task(FRANK, completed.id, 2)
    assert scores(service, BOB) == (2, 2)


def test_average_rating_without_ratings(task) -> None:
    """Test the average of an unrated task."""
    assert average_rating(task) is None


def test_leaderboard_orders_by_score(service, completed, clock) -> None:
    """Test all-time and monthly ordering."""
    service.rate_task(FRANK, completed.id, 3)
    board = service.leaderboard()
    assert [u.id for u in board[:2]] == [BOB, CHARLIE]
    assert all(u.is_staff for u in board)
    assert len(service.leaderboard(limit=1)) == 1

    service.reset_monthly_scores(AMAN)
    monthly = service.leaderboard("monthly")
    assert all(u.monthly_score == 0 for u in monthly)
    assert scores(service, BOB) == (3, 0)


def test_leaderboard_rejects_unknown_period(service) -> None:
    """Test the period check."""
    with pytest.raises(ValidationError):
        service.leaderboard("weekly")


def test_reset_monthly_requires_founder(service, completed) -> None:
    """Test that only Founders reset the monthly counters."""
    service.rate_task(FRANK, completed.id, 3)
    with pytest.raises(AuthorizationError):
        service.reset_monthly_scores(FRANK)
    assert service.reset_monthly_scores(AMAN) == 2
