"""Task lifecycle engine: creation, status transitions, completion and the overdue sweep."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import structlog

from workflow_manager import policy
from workflow_manager.backend import Backend
from workflow_manager.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from workflow_manager.models import (
    SYSTEM_ACTOR,
    Attachment,
    Comment,
    Task,
    TaskPatch,
    TaskStatus,
    TimelineItem,
    User,
    utc,
    utc_now,
)

logger = structlog.get_logger()

Clock = Callable[[], datetime]

# Statuses a caller may pick directly. Completed needs confirm_completion,
# Pending Transfer is owned by the transfer protocol.
SETTABLE_STATUSES = (
    TaskStatus.PENDING,
    TaskStatus.IN_PROGRESS,
    TaskStatus.BLOCKED,
    TaskStatus.FOR_REVIEW,
)

OVERDUE_ACTION = "Task became overdue and was marked as Pending"
COMPLETED_ACTION = f"Status changed to {TaskStatus.COMPLETED.value}"
DROPPED_TRANSFER_ACTION = "Task became overdue, dropped the pending transfer"


def require_text(value: str | None, field_name: str) -> str:
    """Return the stripped value or reject the command when it is blank."""
    if value is None or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def check_window(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    start, end = utc(start), utc(end)
    if end <= start:
        raise ValidationError("end time must be after start time")
    return start, end


def parse_status(value: TaskStatus | str) -> TaskStatus:
    if isinstance(value, TaskStatus):
        return value
    try:
        return TaskStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in TaskStatus)
        raise ValidationError(f"Unknown status '{value}'. Valid statuses: {valid}") from None


@dataclass
class TaskSummary:
    """Task counts for the dashboard charts."""

    completed: int = 0
    open: int = 0
    month_completed: int = 0
    month_ongoing: int = 0
    month_upcoming: int = 0


class TaskLifecycle:
    """Owns the task state machine."""

    def __init__(self, backend: Backend, clock: Clock = utc_now) -> None:
        self.backend = backend
        self.clock = clock

    def now(self) -> datetime:
        return utc(self.clock())

    def check_assignees(self, actor: User, assignees: list[int], keep: list[int] | None = None) -> list[int]:
        """Validate an assignee list against what the actor may assign.

        Users already on the task (``keep``) may stay even when the actor could
        not assign them today, e.g. a Manager who received a transfer.
        """
        users = {u.id: u for u in self.backend.list_users()}
        allowed = {u.id for u in policy.assignable_users(actor, list(users.values()))}
        keep = keep or []
        result: list[int] = []
        for user_id in assignees:
            if user_id in result:
                continue
            user = users.get(user_id)
            if user is None or not user.is_staff:
                raise ValidationError(f"User {user_id} is not a staff account")
            if user_id not in allowed and user_id not in keep:
                raise AuthorizationError(f"User {user_id} cannot be assigned by {actor.name}")
            result.append(user_id)
        return result

    def _check_brand(self, brand_id: int | None) -> int | None:
        if brand_id is None:
            return None
        brand = self.backend.get_user(brand_id)
        if not brand.is_brand:
            raise ValidationError(f"User {brand_id} is not a brand account")
        return brand_id

    def create_task(
        self,
        actor: User,
        title: str,
        start_time: datetime,
        end_time: datetime,
        description: str = "",
        assignees: list[int] | None = None,
        brand_id: int | None = None,
        attachments: list[Attachment] | None = None,
    ) -> Task:
        """Create a task in Pending status."""
        if not policy.can_edit_task(actor):
            raise AuthorizationError("Only Founders and Managers can create tasks")
        title = require_text(title, "title")
        start_time, end_time = check_window(start_time, end_time)
        assignee_ids = self.check_assignees(actor, assignees or [])
        brand_id = self._check_brand(brand_id)

        task = Task(
            id=self.backend.next_id("task"),
            title=title,
            description=description or "",
            assignees=assignee_ids,
            start_time=start_time,
            end_time=end_time,
            brand_id=brand_id,
            attachments=list(attachments or []),
        )
        task.record(actor.id, "Task Created", self.now())
        self.backend.put_task(task)
        logger.info("Task created", task_id=task.id, title=task.title, assignees=task.assignees, actor=actor.id)
        return task

    def get_task(self, task_id: int) -> Task:
        logger.debug("Reading task", task_id=task_id)
        return self.backend.get_task(task_id)

    def set_status(self, task_id: int, actor: User, status: TaskStatus | str) -> Task:
        """Move a task between the freely settable statuses."""
        status = parse_status(status)
        if status == TaskStatus.COMPLETED:
            raise ValidationError("Completed can only be reached through completion confirmation")
        if status not in SETTABLE_STATUSES:
            raise ValidationError(f"Status '{status.value}' cannot be set directly")

        with self.backend.lock("task", task_id):
            task = self.backend.get_task(task_id)
            if not policy.can_act_on_task(task, actor):
                raise AuthorizationError(f"{actor.name} cannot change the status of task {task_id}")
            if task.status in (TaskStatus.COMPLETED, TaskStatus.PENDING_TRANSFER):
                raise ConflictError(f"Task {task_id} is {task.status.value}; its status cannot be changed")

            task.status = status
            task.record(actor.id, f"Status changed to {status.value}", self.now())
            self.backend.put_task(task)

        logger.info("Task status changed", task_id=task_id, status=status.value, actor=actor.id)
        return task

    def edit_task(self, task_id: int, actor: User, patch: TaskPatch) -> Task:
        """Replace task details. Founders and Managers only."""
        if not policy.can_edit_task(actor):
            raise AuthorizationError("Only Founders and Managers can edit tasks")

        with self.backend.lock("task", task_id):
            task = self.backend.get_task(task_id)

            title = require_text(patch.title, "title") if patch.title is not None else task.title
            start_time, end_time = check_window(
                patch.start_time if patch.start_time is not None else task.start_time,
                patch.end_time if patch.end_time is not None else task.end_time,
            )
            assignees = task.assignees
            if patch.assignees is not None:
                assignees = self.check_assignees(actor, patch.assignees, keep=task.assignees)
            brand_id = task.brand_id
            if patch.clear_brand:
                brand_id = None
            elif patch.brand_id is not None:
                brand_id = self._check_brand(patch.brand_id)

            task.title = title
            if patch.description is not None:
                task.description = patch.description
            task.start_time, task.end_time = start_time, end_time
            task.assignees = assignees
            task.brand_id = brand_id
            task.record(actor.id, "edited the task details", self.now())
            self.backend.put_task(task)

        logger.info("Task edited", task_id=task_id, actor=actor.id)
        return task

    def add_comment(self, task_id: int, actor: User, text: str = "", attachment: Attachment | None = None) -> Task:
        """Append a comment. Text or an attachment is required."""
        if not (text or "").strip() and attachment is None:
            raise ValidationError("A comment needs text or an attachment")

        with self.backend.lock("task", task_id):
            task = self.backend.get_task(task_id)
            if not policy.can_comment(task, actor):
                raise AuthorizationError(f"{actor.name} cannot comment on task {task_id}")
            task.comments.append(Comment(user_id=actor.id, text=text or "", timestamp=self.now(), attachment=attachment))
            if attachment is not None:
                task.attachments.append(attachment)
            self.backend.put_task(task)

        logger.info("Comment added", task_id=task_id, actor=actor.id, has_attachment=attachment is not None)
        return task

    def _check_completable(self, task: Task, actor: User) -> None:
        if not policy.can_act_on_task(task, actor):
            raise AuthorizationError(f"{actor.name} cannot complete task {task.id}")
        if task.status == TaskStatus.COMPLETED:
            raise ConflictError(f"Task {task.id} is already Completed")
        if task.status == TaskStatus.PENDING_TRANSFER:
            raise ConflictError(f"Task {task.id} has a transfer awaiting approval")

    def initiate_completion(self, task_id: int, actor: User) -> Task:
        """Check that a task may be completed. Nothing is written."""
        task = self.backend.get_task(task_id)
        self._check_completable(task, actor)
        logger.debug("Completion initiated", task_id=task_id, actor=actor.id)
        return task

    def confirm_completion(
        self, task_id: int, actor: User, comment_text: str = "", attachment: Attachment | None = None
    ) -> Task:
        """Complete a task with a final comment and/or attachment."""
        if not (comment_text or "").strip() and attachment is None:
            raise ValidationError("Completing a task needs a final comment or an attachment")

        with self.backend.lock("task", task_id):
            task = self.backend.get_task(task_id)
            self._check_completable(task, actor)

            now = self.now()
            task.comments.append(Comment(user_id=actor.id, text=comment_text or "", timestamp=now, attachment=attachment))
            if attachment is not None:
                task.attachments.append(attachment)
            task.record(actor.id, COMPLETED_ACTION, now)
            task.status = TaskStatus.COMPLETED
            self.backend.put_task(task)

        logger.info("Task completed", task_id=task_id, actor=actor.id)
        return task

    def overdue_sweep(self, now: datetime | None = None) -> list[int]:
        """Force overdue tasks back to Pending.

        A task is overdue when ``now`` is past its end time and it is neither
        Completed nor already Pending. Each task is re-read under its lock so a
        completion landing during the sweep is never undone. A transfer still
        waiting on an overdue task is dropped with the status it held.

        Returns:
            IDs of the tasks that changed
        """
        now = utc(now) if now is not None else self.now()
        changed: list[int] = []
        for candidate in self.backend.list_tasks():
            if not self._is_overdue(candidate, now):
                continue
            with self.backend.lock("task", candidate.id):
                task = self.backend.get_task(candidate.id)
                if not self._is_overdue(task, now):
                    continue
                if task.transfer_request is not None:
                    task.record(SYSTEM_ACTOR, self._dropped_transfer_action(task), now)
                    task.transfer_request = None
                task.status = TaskStatus.PENDING
                task.record(SYSTEM_ACTOR, OVERDUE_ACTION, now)
                self.backend.put_task(task)
            changed.append(task.id)
            logger.info("Task marked overdue", task_id=task.id)

        logger.debug("Overdue sweep finished", now=now.isoformat(), changed=len(changed))
        return changed

    def _dropped_transfer_action(self, task: Task) -> str:
        to_user_id = task.transfer_request.to_user_id
        try:
            name = self.backend.get_user(to_user_id).name
        except NotFoundError:
            name = f"user {to_user_id}"
        return f"{DROPPED_TRANSFER_ACTION} to {name}"

    @staticmethod
    def _is_overdue(task: Task, now: datetime) -> bool:
        return now > task.end_time and task.status not in (TaskStatus.COMPLETED, TaskStatus.PENDING)

    def list_tasks(
        self,
        assignee_id: int | None = None,
        brand_id: int | None = None,
        status: TaskStatus | str | None = None,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> list[Task]:
        """List tasks matching every filter given.

        The date window keeps tasks whose start/end span overlaps it.
        """
        wanted = parse_status(status) if status is not None else None
        start = utc(window_start) if window_start is not None else None
        end = utc(window_end) if window_end is not None else None

        tasks = self.backend.list_tasks()
        if assignee_id is not None:
            tasks = [t for t in tasks if assignee_id in t.assignees]
        if brand_id is not None:
            tasks = [t for t in tasks if t.brand_id == brand_id]
        if wanted is not None:
            tasks = [t for t in tasks if t.status == wanted]
        if start is not None:
            tasks = [t for t in tasks if t.end_time >= start]
        if end is not None:
            tasks = [t for t in tasks if t.start_time <= end]
        logger.debug("Listed tasks", count=len(tasks))
        return tasks

    def tasks_for_user(self, actor: User) -> list[Task]:
        """Brands see the tasks tagged with them; staff see every task."""
        if actor.is_brand:
            return self.list_tasks(brand_id=actor.id)
        return self.list_tasks()

    def timeline(self, task_id: int) -> list[TimelineItem]:
        """Comments and history merged into one stream, oldest first."""
        task = self.backend.get_task(task_id)
        items = [
            TimelineItem(
                timestamp=c.timestamp, user_id=c.user_id, kind="comment", text=c.text, attachment=c.attachment
            )
            for c in task.comments
        ]
        items.extend(
            TimelineItem(timestamp=h.timestamp, user_id=h.user_id, kind="history", text=h.action, details=h.details)
            for h in task.history
        )
        return sorted(items, key=lambda item: item.timestamp)

    def status_summary(self, tasks: list[Task] | None = None, now: datetime | None = None) -> TaskSummary:
        """Count tasks all-time and for the calendar month of ``now``."""
        now = utc(now) if now is not None else self.now()
        tasks = self.backend.list_tasks() if tasks is None else tasks
        summary = TaskSummary()
        for task in tasks:
            done = task.status == TaskStatus.COMPLETED
            if done:
                summary.completed += 1
            else:
                summary.open += 1
            if (task.end_time.year, task.end_time.month) != (now.year, now.month):
                continue
            if done:
                summary.month_completed += 1
            elif task.start_time > now:
                summary.month_upcoming += 1
            else:
                summary.month_ongoing += 1
        return summary
