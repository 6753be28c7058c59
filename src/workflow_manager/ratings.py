"""Rating aggregator: one rating per rater per completed task, fanned out to assignee scores."""

from contextlib import ExitStack
from typing import Literal

import structlog

from workflow_manager import policy
from workflow_manager.backend import Backend
from workflow_manager.errors import AuthorizationError, ConflictError, ValidationError
from workflow_manager.models import Task, TaskStatus, User

logger = structlog.get_logger()

MIN_RATING = 1
MAX_RATING = 5

Period = Literal["all-time", "monthly"]


class RatingAggregator:
    """Applies task ratings and keeps the score counters of staff."""

    def __init__(self, backend: Backend) -> None:
        self.backend = backend

    def rate_task(self, task_id: int, rater: User, rating: int) -> Task:
        """Record a rating and credit it to every current assignee.

        The task lock is taken first, then the assignee locks in ID order, and
        every check runs before the first write so either all assignees are
        credited or none are.
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(f"Rating must be an integer from {MIN_RATING} to {MAX_RATING}")

        with self.backend.lock("task", task_id):
            task = self.backend.get_task(task_id)
            if task.status != TaskStatus.COMPLETED:
                raise ConflictError(f"Task {task_id} is not Completed")
            raters = {u.id for u in policy.eligible_raters(task, self.backend.list_users())}
            if rater.id not in raters:
                raise AuthorizationError(f"{rater.name} cannot rate task {task_id}")
            if rater.id in task.ratings:
                raise ConflictError(f"{rater.name} has already rated task {task_id}")

            assignee_ids = sorted(set(task.assignees))
            with ExitStack() as stack:
                for uid in assignee_ids:
                    stack.enter_context(self.backend.lock("user", uid))
                existing = {u.id for u in self.backend.list_users()}
                assignees = [self.backend.get_user(uid) for uid in assignee_ids if uid in existing]

                task.ratings[rater.id] = rating
                self.backend.put_task(task)
                for user in assignees:
                    user.total_score += rating
                    user.monthly_score += rating
                    self.backend.put_user(user)

        logger.info(
            "Task rated",
            task_id=task_id,
            rater=rater.id,
            rating=rating,
            credited=[u.id for u in assignees],
        )
        return task

    def leaderboard(self, period: Period = "all-time", limit: int | None = None) -> list[User]:
        """Staff ordered by score, highest first."""
        if period not in ("all-time", "monthly"):
            raise ValidationError(f"Unknown leaderboard period '{period}'")
        staff = [u for u in self.backend.list_users() if u.is_staff]
        if period == "monthly":
            staff.sort(key=lambda u: (-u.monthly_score, u.name))
        else:
            staff.sort(key=lambda u: (-u.total_score, u.name))
        return staff[:limit] if limit else staff

    def reset_monthly_scores(self, actor: User) -> int:
        """Zero every monthly counter. Founders only.

        Returns:
            Number of users whose counter changed
        """
        if not policy.is_founder(actor):
            raise AuthorizationError("Only Founders can reset monthly scores")
        reset = 0
        for candidate in self.backend.list_users():
            with self.backend.lock("user", candidate.id):
                user = self.backend.get_user(candidate.id)
                if user.monthly_score == 0:
                    continue
                user.monthly_score = 0
                self.backend.put_user(user)
                reset += 1
        logger.info("Monthly scores reset", users=reset, actor=actor.id)
        return reset


def average_rating(task: Task) -> float | None:
    if not task.ratings:
        return None
    return sum(task.ratings.values()) / len(task.ratings)
