"""CLI for workflow manager."""

import sys
import time
from datetime import datetime, timedelta
from typing import Annotated, Literal

import structlog
from cyclopts import App, Parameter

from workflow_manager.backends import YamlBackend
from workflow_manager.config import get_config, load_settings
from workflow_manager.config_commands import config_app
from workflow_manager.errors import ValidationError, WorkflowError
from workflow_manager.models import Attachment, Task, TaskPatch, role_name, utc, utc_now
from workflow_manager.people_commands import people_app
from workflow_manager.request_commands import request_app
from workflow_manager.scheduler import sweep_once
from workflow_manager.service import WorkflowService

logger = structlog.get_logger()

DEFAULT_ROLES = ["Editor", "Graphic Designer", "Camera Man", "Model", "Web Developer"]

app = App(
    help="Workflow Manager - task coordination for staff and brand clients",
)

app.command(request_app)
app.command(people_app)
app.command(config_app)

_session: dict[str, int | None] = {"actor": None}


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def get_service() -> WorkflowService:
    """Build a service over the configured YAML store."""
    settings = load_settings(get_config())
    backend = YamlBackend(settings.store_path)
    return WorkflowService(backend, rules=settings.rules)


def current_actor() -> int:
    """ID of the user the command runs as, from the global --as option."""
    actor = _session["actor"]
    if actor is None:
        raise ValidationError("This command needs an acting user: pass --as <user-id>")
    return actor


def parse_when(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    try:
        return utc(datetime.fromisoformat(value))
    except ValueError:
        raise ValidationError(f"'{value}' is not an ISO 8601 timestamp") from None


def parse_ids(value: str) -> list[int]:
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise ValidationError(f"'{value}' is not a comma separated list of user IDs") from None


def parse_attachment(value: str | None) -> Attachment | None:
    """Turn ``name`` or ``name=locator`` into an attachment reference."""
    if not value:
        return None
    if "=" in value:
        name, locator = value.split("=", 1)
        return Attachment(file_name=name.strip(), locator=locator.strip())
    return Attachment(file_name=value.strip())


def format_task_line(task: Task) -> str:
    marker = "●" if task.status.value != "Completed" else "○"
    flags = ""
    if task.transfer_request:
        flags += " [transfer pending]"
    if task.invitation_request:
        flags += " [invitation pending]"
    if task.is_brand_requested:
        flags += " [requested]"
    return f"{marker} {task.id}: {task.title} ({task.status.value}){flags}"


@app.command
def seed(name: str, username: str) -> None:
    """Create the primary founder and the default roles in an empty store."""
    service = get_service()
    founder = service.directory.seed_founder(name, username)
    for role in DEFAULT_ROLES:
        if role not in service.backend.list_roles():
            service.backend.add_role(role)
    print(f"Created primary founder {founder.id}: {founder.name}")


@app.command
def create(
    title: str,
    *,
    description: str = "",
    assignees: str = "",
    start: str | None = None,
    end: str | None = None,
    hours: float = 4.0,
    brand: int | None = None,
    attach: str | None = None,
) -> None:
    """Create a new task.

    Args:
        title: Task title
        description: Task description
        assignees: Comma separated user IDs
        start: Start time (ISO 8601), defaults to now
        end: End time (ISO 8601), defaults to start plus --hours
        hours: Duration used when --end is not given
        brand: Brand user ID to tag
        attach: Attachment as name or name=locator
    """
    service = get_service()
    start_time = parse_when(start) if start else utc_now()
    end_time = parse_when(end) if end else start_time + timedelta(hours=hours)
    attachment = parse_attachment(attach)
    task = service.create_task(
        current_actor(),
        title,
        start_time,
        end_time,
        description=description,
        assignees=parse_ids(assignees),
        brand_id=brand,
        attachments=[attachment] if attachment else None,
    )
    print(f"Created task {task.id}: {task.title}")


@app.command
def show(task_id: int) -> None:
    """Show a task with its merged comment and history stream."""
    service = get_service()
    task = service.get_task(task_id)
    names = {u.id: u.name for u in service.list_users()}

    print(f"Task: {task.id}")
    print(f"Title: {task.title}")
    print(f"Description: {task.description or 'No description provided.'}")
    print(f"Status: {task.status.value}")
    print(f"Assignees: {', '.join(names.get(uid, str(uid)) for uid in task.assignees) or 'none'}")
    print(f"Start: {task.start_time.isoformat()}")
    print(f"End: {task.end_time.isoformat()}")
    if task.brand_id is not None:
        print(f"Brand: {names.get(task.brand_id, task.brand_id)}")
    if task.attachments:
        print(f"Attachments: {', '.join(a.file_name for a in task.attachments)}")
    if task.transfer_request:
        tr = task.transfer_request
        print(f"Transfer requested to {names.get(tr.to_user_id, tr.to_user_id)}: \"{tr.reason}\"")
    if task.invitation_request:
        ir = task.invitation_request
        print(f"Invitation sent to {names.get(ir.to_user_id, ir.to_user_id)}: \"{ir.reason}\"")
    if task.ratings:
        print(f"Ratings: {', '.join(f'{names.get(r, r)}={v}' for r, v in task.ratings.items())}")

    print("\nActivity:")
    for item in service.timeline(task_id):
        who = "System" if item.user_id == 0 else names.get(item.user_id, str(item.user_id))
        line = f"  {item.timestamp.isoformat()} {who}: {item.text}"
        if item.details:
            line += f" \"{item.details}\""
        if item.attachment:
            line += f" [{item.attachment.file_name}]"
        print(line)


@app.command(name="list")
def list_tasks(
    *,
    assignee: int | None = None,
    brand: int | None = None,
    status: str | None = None,
    after: str | None = None,
    before: str | None = None,
    mine: bool = False,
) -> None:
    """List tasks with optional filters."""
    service = get_service()
    if mine:
        tasks = service.tasks_for(current_actor())
    else:
        tasks = service.list_tasks(
            assignee_id=assignee,
            brand_id=brand,
            status=status,
            window_start=parse_when(after) if after else None,
            window_end=parse_when(before) if before else None,
        )

    print(f"Found {len(tasks)} task(s):\n")
    for task in tasks:
        print(format_task_line(task))


@app.command
def status(task_id: int, new_status: str) -> None:
    """Change the status of a task (Pending, In Progress, Blocked, For Review)."""
    task = get_service().set_status(current_actor(), task_id, new_status)
    print(f"Task {task.id} is now {task.status.value}")


@app.command
def edit(
    task_id: int,
    *,
    title: str | None = None,
    description: str | None = None,
    assignees: str | None = None,
    start: str | None = None,
    end: str | None = None,
    brand: int | None = None,
    no_brand: bool = False,
) -> None:
    """Edit task details (Founders and Managers)."""
    patch = TaskPatch(
        title=title,
        description=description,
        assignees=parse_ids(assignees) if assignees is not None else None,
        start_time=parse_when(start) if start else None,
        end_time=parse_when(end) if end else None,
        brand_id=brand,
        clear_brand=no_brand,
    )
    task = get_service().edit_task(current_actor(), task_id, patch)
    print(f"Updated task {task.id}: {task.title}")


@app.command
def complete(task_id: int, *, comment: str = "", attach: str | None = None) -> None:
    """Complete a task with a final comment and/or attachment."""
    service = get_service()
    actor = current_actor()
    service.initiate_completion(actor, task_id)
    task = service.confirm_completion(actor, task_id, comment, parse_attachment(attach))
    print(f"Task {task.id} is now {task.status.value}")


@app.command
def comment(task_id: int, text: str = "", *, attach: str | None = None) -> None:
    """Add a comment to a task."""
    get_service().add_comment(current_actor(), task_id, text, parse_attachment(attach))
    print(f"Comment added to task {task_id}")


@app.command
def rate(task_id: int, rating: int) -> None:
    """Rate a completed task from 1 to 5."""
    task = get_service().rate_task(current_actor(), task_id, rating)
    print(f"Rated task {task.id}: {rating}")


@app.command
def sweep() -> None:
    """Run one overdue sweep now."""
    changed = sweep_once(get_service().lifecycle)
    print(f"Marked {len(changed)} overdue task(s) as Pending")


@app.command
def watch(interval: float | None = None) -> None:
    """Run the overdue sweep on a fixed interval until interrupted.

    The store is reloaded on every tick so changes made by other commands are seen.
    """
    settings = load_settings(get_config())
    sleep_s = interval or settings.sweep_interval
    print(f"Sweeping every {sleep_s}s, press Ctrl+C to stop")
    try:
        while True:
            changed = sweep_once(get_service().lifecycle)
            if changed:
                print(f"Marked overdue: {', '.join(str(tid) for tid in changed)}")
            time.sleep(sleep_s)
    except KeyboardInterrupt:
        logger.info("Watch interrupted")


@app.command
def leaderboard(*, monthly: bool = False, limit: int | None = None) -> None:
    """Show staff ordered by rating points."""
    period = "monthly" if monthly else "all-time"
    users = get_service().leaderboard(period, limit)
    for rank, user in enumerate(users, 1):
        score = user.monthly_score if monthly else user.total_score
        print(f"{rank}. {user.name} ({role_name(user.role)}) {score}")


@app.command
def summary() -> None:
    """Show task counts for all time and for this month."""
    counts = get_service().status_summary()
    print(f"All time: {counts.completed} completed, {counts.open} open")
    print(
        f"This month: {counts.month_completed} completed, "
        f"{counts.month_ongoing} pending/ongoing, {counts.month_upcoming} upcoming"
    )


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    actor: Annotated[int | None, Parameter(name="--as")] = None,
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "critical",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    _session["actor"] = actor
    try:
        app(tokens)
    except WorkflowError as e:
        print(f"error[{e.tag}]: {e.message}", file=sys.stderr)
        sys.exit(1)


def run() -> None:
    app.meta()


if __name__ == "__main__":
    run()
