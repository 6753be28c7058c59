"""Negotiation commands for the workflow-manager CLI: transfers, invitations and requests."""

from cyclopts import App

from workflow_manager.errors import ValidationError

request_app = App(name="request", help="Propose and resolve transfers, invitations and requests")


@request_app.command
def transfer(task_id: int, to_user: int, reason: str) -> None:
    """Ask to transfer a task you are assigned to."""
    from workflow_manager.cli import current_actor, get_service

    get_service().propose_transfer(current_actor(), task_id, to_user, reason)
    print(f"Transfer of task {task_id} to user {to_user} is awaiting approval")


@request_app.command(name="resolve-transfer")
def resolve_transfer(task_id: int, *, approve: bool = False, reject: bool = False) -> None:
    """Approve or reject the pending transfer on a task."""
    from workflow_manager.cli import current_actor, get_service

    if approve == reject:
        raise ValidationError("Pass exactly one of --approve or --reject")
    task = get_service().resolve_transfer(current_actor(), task_id, approve)
    print(f"Transfer on task {task.id} {'approved' if approve else 'rejected'}")


@request_app.command
def invite(task_id: int, to_user: int, reason: str) -> None:
    """Invite a collaborator onto a task you are assigned to."""
    from workflow_manager.cli import current_actor, get_service

    get_service().propose_invite(current_actor(), task_id, to_user, reason)
    print(f"Invited user {to_user} to task {task_id}")


@request_app.command(name="resolve-invite")
def resolve_invite(task_id: int, *, accept: bool = False, decline: bool = False) -> None:
    """Accept or decline an invitation addressed to you."""
    from workflow_manager.cli import current_actor, get_service

    if accept == decline:
        raise ValidationError("Pass exactly one of --accept or --decline")
    get_service().resolve_invite(current_actor(), task_id, accept)
    print(f"Invitation on task {task_id} {'accepted' if accept else 'declined'}")


@request_app.command
def submit(title: str, end: str, *, description: str = "", manager: int | None = None) -> None:
    """Submit a task request as a brand."""
    from workflow_manager.cli import current_actor, get_service, parse_when

    request = get_service().submit_task_request(
        current_actor(), title, parse_when(end), description=description, requested_manager_id=manager
    )
    print(f"Submitted task request {request.id}: {request.title}")


@request_app.command
def approve(request_id: int, *, assignees: str, start: str | None = None, end: str | None = None) -> None:
    """Approve a brand task request and create its task."""
    from workflow_manager.cli import current_actor, get_service, parse_ids, parse_when

    service = get_service()
    actor = current_actor()
    draft = service.approve_task_request(actor, request_id)
    task = service.finalize_approved_request(
        actor,
        request_id,
        parse_ids(assignees),
        parse_when(start) if start else draft.start_time,
        parse_when(end) if end else draft.end_time,
    )
    print(f"Approved request {request_id} as task {task.id}: {task.title}")


@request_app.command
def decline(request_id: int) -> None:
    """Decline a brand task request."""
    from workflow_manager.cli import current_actor, get_service

    get_service().decline_task_request(current_actor(), request_id)
    print(f"Declined request {request_id}")


@request_app.command(name="delete-user")
def delete_user(user_id: int, reason: str) -> None:
    """Ask a Founder to delete a user (Managers)."""
    from workflow_manager.cli import current_actor, get_service

    request = get_service().request_deletion(current_actor(), user_id, reason)
    print(f"Deletion request {request.id} sent to the Founders")


@request_app.command(name="resolve-deletion")
def resolve_deletion(request_id: int, *, approve: bool = False, decline: bool = False) -> None:
    """Approve or decline a user deletion request (Founders)."""
    from workflow_manager.cli import current_actor, get_service

    if approve == decline:
        raise ValidationError("Pass exactly one of --approve or --decline")
    get_service().resolve_deletion_request(current_actor(), request_id, approve)
    print(f"Deletion request {request_id} {'approved' if approve else 'declined'}")


@request_app.command
def pending() -> None:
    """List pending brand task requests and deletion requests."""
    from workflow_manager.cli import get_service

    service = get_service()
    task_requests = service.pending_task_requests()
    deletion_requests = service.pending_deletion_requests()

    print(f"Task requests ({len(task_requests)}):")
    for r in task_requests:
        print(f"  #{r.id} brand {r.brand_id}: {r.title} (due {r.requested_end_time.isoformat()})")
    print(f"\nDeletion requests ({len(deletion_requests)}):")
    for d in deletion_requests:
        print(f"  #{d.id} user {d.target_user_id} by {d.requested_by_id}: \"{d.reason}\"")
