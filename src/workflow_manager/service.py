"""Command and query surface consumed by front ends.

Every command takes the ID of an already authenticated actor and resolves
it to a user record before handing off to the engine that owns the change.
"""

from datetime import date, datetime
from typing import Any, Callable

import structlog

from workflow_manager.backend import Backend
from workflow_manager.directory import Directory
from workflow_manager.errors import WorkflowError
from workflow_manager.lifecycle import TaskLifecycle, TaskSummary
from workflow_manager.models import (
    AccountKind,
    Announcement,
    Attachment,
    BirthdayWish,
    DeletionRequest,
    Role,
    Task,
    TaskPatch,
    TaskRequest,
    TaskStatus,
    TimelineItem,
    User,
    WishKind,
    utc_now,
)
from workflow_manager.negotiation import FinalizeDraft, NegotiationRules, Negotiations
from workflow_manager.ratings import Period, RatingAggregator

logger = structlog.get_logger()


class WorkflowService:
    """Facade wiring the engines to one store and one clock."""

    def __init__(
        self,
        backend: Backend,
        clock: Callable[[], datetime] = utc_now,
        rules: NegotiationRules | None = None,
    ) -> None:
        self.backend = backend
        self.clock = clock
        self.lifecycle = TaskLifecycle(backend, clock)
        self.negotiations = Negotiations(backend, self.lifecycle, rules)
        self.ratings = RatingAggregator(backend)
        self.directory = Directory(backend, clock)

    def actor(self, user_id: int) -> User:
        return self.backend.get_user(user_id)

    def _run(self, command: str, actor_id: int | None, fn: Callable[..., Any]) -> Any:
        """Resolve the acting user and run one command, logging rejections."""
        try:
            if actor_id is None:
                return fn()
            return fn(self.actor(actor_id))
        except WorkflowError as e:
            logger.warning("Command rejected", command=command, actor=actor_id, tag=e.tag, reason=e.message)
            raise

    # ---- task lifecycle ----

    def create_task(
        self,
        actor_id: int,
        title: str,
        start_time: datetime,
        end_time: datetime,
        description: str = "",
        assignees: list[int] | None = None,
        brand_id: int | None = None,
        attachments: list[Attachment] | None = None,
    ) -> Task:
        return self._run(
            "create_task",
            actor_id,
            lambda actor: self.lifecycle.create_task(
                actor,
                title,
                start_time,
                end_time,
                description=description,
                assignees=assignees,
                brand_id=brand_id,
                attachments=attachments,
            ),
        )

    def set_status(self, actor_id: int, task_id: int, status: TaskStatus | str) -> Task:
        return self._run("set_status", actor_id, lambda actor: self.lifecycle.set_status(task_id, actor, status))

    def edit_task(self, actor_id: int, task_id: int, patch: TaskPatch) -> Task:
        return self._run("edit_task", actor_id, lambda actor: self.lifecycle.edit_task(task_id, actor, patch))

    def add_comment(self, actor_id: int, task_id: int, text: str = "", attachment: Attachment | None = None) -> Task:
        return self._run(
            "add_comment", actor_id, lambda actor: self.lifecycle.add_comment(task_id, actor, text, attachment)
        )

    def initiate_completion(self, actor_id: int, task_id: int) -> Task:
        return self._run(
            "initiate_completion", actor_id, lambda actor: self.lifecycle.initiate_completion(task_id, actor)
        )

    def confirm_completion(
        self, actor_id: int, task_id: int, comment_text: str = "", attachment: Attachment | None = None
    ) -> Task:
        return self._run(
            "confirm_completion",
            actor_id,
            lambda actor: self.lifecycle.confirm_completion(task_id, actor, comment_text, attachment),
        )

    def overdue_sweep(self, now: datetime | None = None) -> list[int]:
        return self.lifecycle.overdue_sweep(now)

    # ---- negotiations ----

    def propose_transfer(self, actor_id: int, task_id: int, to_user_id: int, reason: str) -> Task:
        return self._run(
            "propose_transfer",
            actor_id,
            lambda actor: self.negotiations.propose_transfer(task_id, actor, to_user_id, reason),
        )

    def resolve_transfer(self, actor_id: int, task_id: int, approve: bool) -> Task:
        return self._run(
            "resolve_transfer", actor_id, lambda actor: self.negotiations.resolve_transfer(task_id, actor, approve)
        )

    def propose_invite(self, actor_id: int, task_id: int, to_user_id: int, reason: str) -> Task:
        return self._run(
            "propose_invite",
            actor_id,
            lambda actor: self.negotiations.propose_invite(task_id, actor, to_user_id, reason),
        )

    def resolve_invite(self, actor_id: int, task_id: int, accept: bool) -> Task:
        return self._run(
            "resolve_invite", actor_id, lambda actor: self.negotiations.resolve_invite(task_id, actor, accept)
        )

    def submit_task_request(
        self,
        actor_id: int,
        title: str,
        requested_end_time: datetime,
        description: str = "",
        requested_manager_id: int | None = None,
    ) -> TaskRequest:
        return self._run(
            "submit_task_request",
            actor_id,
            lambda actor: self.negotiations.submit_task_request(
                actor,
                title,
                requested_end_time,
                description=description,
                requested_manager_id=requested_manager_id,
            ),
        )

    def approve_task_request(self, actor_id: int, request_id: int) -> FinalizeDraft:
        return self._run(
            "approve_task_request", actor_id, lambda actor: self.negotiations.approve_task_request(request_id, actor)
        )

    def finalize_approved_request(
        self, actor_id: int, request_id: int, assignees: list[int], start_time: datetime, end_time: datetime
    ) -> Task:
        return self._run(
            "finalize_approved_request",
            actor_id,
            lambda actor: self.negotiations.finalize_approved_request(
                request_id, actor, assignees, start_time, end_time
            ),
        )

    def decline_task_request(self, actor_id: int, request_id: int) -> TaskRequest:
        return self._run(
            "decline_task_request", actor_id, lambda actor: self.negotiations.decline_task_request(request_id, actor)
        )

    def request_deletion(self, actor_id: int, target_user_id: int, reason: str) -> DeletionRequest:
        return self._run(
            "request_deletion",
            actor_id,
            lambda actor: self.negotiations.request_deletion(actor, target_user_id, reason),
        )

    def resolve_deletion_request(self, actor_id: int, request_id: int, approve: bool) -> None:
        return self._run(
            "resolve_deletion_request",
            actor_id,
            lambda actor: self.negotiations.resolve_deletion_request(request_id, actor, approve),
        )

    # ---- ratings ----

    def rate_task(self, actor_id: int, task_id: int, rating: int) -> Task:
        return self._run("rate_task", actor_id, lambda actor: self.ratings.rate_task(task_id, actor, rating))

    def reset_monthly_scores(self, actor_id: int) -> int:
        return self._run("reset_monthly_scores", actor_id, self.ratings.reset_monthly_scores)

    # ---- directory ----

    def sign_up(
        self,
        name: str,
        username: str,
        kind: AccountKind | str = AccountKind.STAFF,
        role: Role | str | None = None,
        **profile: str | None,
    ) -> User:
        return self._run("sign_up", None, lambda: self.directory.sign_up(name, username, kind, role, **profile))

    def add_user(
        self,
        actor_id: int,
        name: str,
        username: str,
        kind: AccountKind | str = AccountKind.STAFF,
        role: Role | str | None = None,
        **profile: str | None,
    ) -> User:
        return self._run(
            "add_user",
            actor_id,
            lambda actor: self.directory.add_user(actor, name, username, kind, role, **profile),
        )

    def delete_user(self, actor_id: int, user_id: int) -> None:
        return self._run("delete_user", actor_id, lambda actor: self.directory.delete_user(actor, user_id))

    def promote_user(self, actor_id: int, user_id: int) -> User:
        return self._run("promote_user", actor_id, lambda actor: self.directory.promote_user(actor, user_id))

    def add_role(self, actor_id: int, name: str) -> str:
        return self._run("add_role", actor_id, lambda actor: self.directory.add_role(actor, name))

    def update_profile(self, actor_id: int, user_id: int, **fields: str | None) -> User:
        return self._run(
            "update_profile", actor_id, lambda actor: self.directory.update_profile(actor, user_id, **fields)
        )

    def post_birthday_wish(
        self, actor_id: int, birthday_user_id: int, kind: WishKind | str, content: str
    ) -> BirthdayWish:
        return self._run(
            "post_birthday_wish",
            actor_id,
            lambda actor: self.directory.post_birthday_wish(actor, birthday_user_id, kind, content),
        )

    def publish_announcement(self, actor_id: int, text: str) -> Announcement:
        return self._run(
            "publish_announcement", actor_id, lambda actor: self.directory.publish_announcement(actor, text)
        )

    # ---- queries ----

    def get_task(self, task_id: int) -> Task:
        return self.lifecycle.get_task(task_id)

    def timeline(self, task_id: int) -> list[TimelineItem]:
        return self.lifecycle.timeline(task_id)

    def list_tasks(
        self,
        assignee_id: int | None = None,
        brand_id: int | None = None,
        status: TaskStatus | str | None = None,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> list[Task]:
        return self.lifecycle.list_tasks(assignee_id, brand_id, status, window_start, window_end)

    def tasks_for(self, actor_id: int) -> list[Task]:
        return self.lifecycle.tasks_for_user(self.actor(actor_id))

    def status_summary(self, now: datetime | None = None) -> TaskSummary:
        return self.lifecycle.status_summary(now=now)

    def pending_task_requests(self) -> list[TaskRequest]:
        return self.negotiations.pending_task_requests()

    def task_requests_for(self, actor_id: int) -> list[TaskRequest]:
        return self.negotiations.task_requests_for_brand(self.actor(actor_id))

    def pending_deletion_requests(self) -> list[DeletionRequest]:
        return self.negotiations.pending_deletion_requests()

    def list_users(self, kind: AccountKind | str | None = None, role: Role | str | None = None) -> list[User]:
        return self.directory.list_users(kind, role)

    def leaderboard(self, period: Period = "all-time", limit: int | None = None) -> list[User]:
        return self.ratings.leaderboard(period, limit)

    def birthday_users(self, today: date | None = None) -> list[User]:
        return self.directory.birthday_users(today)

    def list_announcements(self) -> list[Announcement]:
        return self.directory.list_announcements()
