"""Negotiation protocols layered on tasks and users.

Each protocol follows the same shape: a proposal leaves one pending record
on its parent entity, exactly one resolution acts on it, and the record is
cleared. Resolving a record that is already gone is rejected so the caller
re-reads the current state instead of acting twice.
"""

from dataclasses import dataclass
from datetime import datetime

import structlog

from workflow_manager import policy
from workflow_manager.backend import Backend
from workflow_manager.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from workflow_manager.lifecycle import TaskLifecycle, check_window, require_text
from workflow_manager.models import (
    DeletionRequest,
    InvitationRequest,
    InvitationStatus,
    RequestStatus,
    Task,
    TaskRequest,
    TaskStatus,
    TransferRequest,
    User,
    utc,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class NegotiationRules:
    """How transfers and invitations on the same task interact.

    Only one transfer and one invitation may be outstanding per task; these
    switches decide whether one kind may be proposed while the other waits.
    """

    invite_during_transfer: bool = True
    transfer_during_invite: bool = True


@dataclass
class FinalizeDraft:
    """What an approver needs to turn a brand request into a task."""

    request: TaskRequest
    assignable: list[User]
    start_time: datetime
    end_time: datetime


class Negotiations:
    """Transfer, invitation, brand request and deletion request protocols."""

    def __init__(self, backend: Backend, lifecycle: TaskLifecycle, rules: NegotiationRules | None = None) -> None:
        self.backend = backend
        self.lifecycle = lifecycle
        self.rules = rules or NegotiationRules()

    def _staff_target(self, user_id: int) -> User:
        target = self.backend.get_user(user_id)
        if not target.is_staff:
            raise ValidationError(f"{target.name} is not a staff account")
        return target

    # ---- transfer ----

    def propose_transfer(self, task_id: int, actor: User, to_user_id: int, reason: str) -> Task:
        """Ask to hand a task over to another staff member."""
        reason = require_text(reason, "reason")

        with self.backend.lock("task", task_id):
            task = self.backend.get_task(task_id)
            if not policy.is_assigned(task, actor):
                raise AuthorizationError(f"{actor.name} is not assigned to task {task_id}")
            if task.transfer_request is not None or task.status == TaskStatus.PENDING_TRANSFER:
                raise ConflictError(f"Task {task_id} already has a pending transfer")
            if task.status == TaskStatus.COMPLETED:
                raise ConflictError(f"Task {task_id} is Completed")
            if task.invitation_request is not None and not self.rules.transfer_during_invite:
                raise ConflictError(f"Task {task_id} has a pending invitation")
            target = self._staff_target(to_user_id)
            if target.id == actor.id:
                raise ValidationError("A task cannot be transferred to its current holder")

            task.transfer_request = TransferRequest(from_user_id=actor.id, to_user_id=target.id, reason=reason)
            task.status = TaskStatus.PENDING_TRANSFER
            task.record(actor.id, f"requested to transfer task to {target.name}", self.lifecycle.now(), details=reason)
            self.backend.put_task(task)

        logger.info("Transfer proposed", task_id=task_id, from_user=actor.id, to_user=to_user_id)
        return task

    def resolve_transfer(self, task_id: int, actor: User, approve: bool) -> Task:
        """Approve or reject the pending transfer. Founders and Managers only."""
        if not policy.can_edit_task(actor):
            raise AuthorizationError("Only Founders and Managers can resolve transfers")

        with self.backend.lock("task", task_id):
            task = self.backend.get_task(task_id)
            request = task.transfer_request
            if request is None or task.status != TaskStatus.PENDING_TRANSFER:
                raise ConflictError(f"Task {task_id} has no pending transfer")
            try:
                target_name = self.backend.get_user(request.to_user_id).name
            except NotFoundError:
                if approve:
                    raise ConflictError(f"Transfer target {request.to_user_id} no longer exists") from None
                target_name = f"user {request.to_user_id}"

            if approve:
                task.assignees = [request.to_user_id]
            task.status = TaskStatus.PENDING
            task.transfer_request = None
            decision = "approved" if approve else "rejected"
            task.record(actor.id, f"{decision} transfer to {target_name}", self.lifecycle.now())
            self.backend.put_task(task)

        logger.info("Transfer resolved", task_id=task_id, approved=approve, actor=actor.id)
        return task

    # ---- invitation ----

    def propose_invite(self, task_id: int, actor: User, to_user_id: int, reason: str) -> Task:
        """Invite another staff member to join the task."""
        reason = require_text(reason, "reason")

        with self.backend.lock("task", task_id):
            task = self.backend.get_task(task_id)
            if not policy.is_assigned(task, actor):
                raise AuthorizationError(f"{actor.name} is not assigned to task {task_id}")
            if task.status == TaskStatus.COMPLETED:
                raise ConflictError(f"Task {task_id} is Completed")
            if task.invitation_request is not None:
                raise ConflictError(f"Task {task_id} already has a pending invitation")
            if task.transfer_request is not None and not self.rules.invite_during_transfer:
                raise ConflictError(f"Task {task_id} has a pending transfer")
            target = self._staff_target(to_user_id)
            if target.id in task.assignees:
                raise ValidationError(f"{target.name} is already assigned to task {task_id}")

            task.invitation_request = InvitationRequest(from_user_id=actor.id, to_user_id=target.id, reason=reason)
            task.record(actor.id, f"invited {target.name} to collaborate", self.lifecycle.now(), details=reason)
            self.backend.put_task(task)

        logger.info("Invitation proposed", task_id=task_id, from_user=actor.id, to_user=to_user_id)
        return task

    def resolve_invite(self, task_id: int, actor: User, accept: bool) -> Task:
        """Accept or decline an invitation. Only the invited user may answer."""
        with self.backend.lock("task", task_id):
            task = self.backend.get_task(task_id)
            invitation = task.invitation_request
            if invitation is None or invitation.status != InvitationStatus.PENDING:
                raise ConflictError(f"Task {task_id} has no pending invitation")
            if task.status == TaskStatus.COMPLETED:
                raise ConflictError(f"Task {task_id} is Completed; its invitation can no longer be answered")
            if invitation.to_user_id != actor.id:
                raise AuthorizationError(f"Only the invited user can answer the invitation on task {task_id}")
            try:
                inviter_name = self.backend.get_user(invitation.from_user_id).name
            except NotFoundError:
                inviter_name = f"user {invitation.from_user_id}"

            if accept and actor.id not in task.assignees:
                task.assignees.append(actor.id)
            task.invitation_request = None
            decision = "accepted" if accept else "declined"
            task.record(actor.id, f"{decision} invitation from {inviter_name}", self.lifecycle.now())
            self.backend.put_task(task)

        logger.info("Invitation resolved", task_id=task_id, accepted=accept, actor=actor.id)
        return task

    # ---- brand task requests ----

    def submit_task_request(
        self,
        brand: User,
        title: str,
        requested_end_time: datetime,
        description: str = "",
        requested_manager_id: int | None = None,
    ) -> TaskRequest:
        """File a task request on behalf of a brand."""
        if not brand.is_brand:
            raise AuthorizationError("Only brand accounts can submit task requests")
        title = require_text(title, "title")
        if requested_manager_id is not None:
            manager = self.backend.get_user(requested_manager_id)
            if not policy.is_elevated(manager):
                raise ValidationError(f"{manager.name} is not a Manager or Founder")

        request = TaskRequest(
            id=self.backend.next_id("task_request"),
            brand_id=brand.id,
            title=title,
            description=description or "",
            requested_manager_id=requested_manager_id,
            requested_end_time=utc(requested_end_time),
        )
        self.backend.put_task_request(request)
        logger.info("Task request submitted", request_id=request.id, brand=brand.id)
        return request

    def _pending_request(self, request_id: int, actor: User) -> TaskRequest:
        if not policy.is_elevated(actor):
            raise AuthorizationError("Only Founders and Managers can decide task requests")
        request = self.backend.get_task_request(request_id)
        if request.status != RequestStatus.PENDING:
            raise ConflictError(f"Task request {request_id} is already {request.status.value}")
        return request

    def approve_task_request(self, request_id: int, actor: User) -> FinalizeDraft:
        """Open the finalize step for a pending request. Nothing is written yet."""
        request = self._pending_request(request_id, actor)
        start = self.lifecycle.now()
        end = request.requested_end_time
        draft = FinalizeDraft(
            request=request,
            assignable=policy.assignable_users(actor, self.backend.list_users()),
            start_time=start,
            end_time=end,
        )
        logger.debug("Task request approval started", request_id=request_id, actor=actor.id)
        return draft

    def finalize_approved_request(
        self, request_id: int, actor: User, assignees: list[int], start_time: datetime, end_time: datetime
    ) -> Task:
        """Create the task for an approved request and mark the request approved."""
        with self.backend.lock("task_request", request_id):
            request = self._pending_request(request_id, actor)
            start_time, end_time = check_window(start_time, end_time)
            assignee_ids = self.lifecycle.check_assignees(actor, assignees)
            if not assignee_ids:
                raise ValidationError("At least one assignee is required")

            task = Task(
                id=self.backend.next_id("task"),
                title=request.title,
                description=request.description,
                assignees=assignee_ids,
                start_time=start_time,
                end_time=end_time,
                brand_id=request.brand_id,
                is_brand_requested=True,
            )
            task.record(actor.id, f"Task created from approved brand request #{request.id}", self.lifecycle.now())
            self.backend.put_task(task)
            request.status = RequestStatus.APPROVED
            self.backend.put_task_request(request)

        logger.info("Task request approved", request_id=request_id, task_id=task.id, actor=actor.id)
        return task

    def decline_task_request(self, request_id: int, actor: User) -> TaskRequest:
        with self.backend.lock("task_request", request_id):
            request = self._pending_request(request_id, actor)
            request.status = RequestStatus.DECLINED
            self.backend.put_task_request(request)

        logger.info("Task request declined", request_id=request_id, actor=actor.id)
        return request

    def pending_task_requests(self) -> list[TaskRequest]:
        return [r for r in self.backend.list_task_requests() if r.status == RequestStatus.PENDING]

    def task_requests_for_brand(self, brand: User) -> list[TaskRequest]:
        return [r for r in self.backend.list_task_requests() if r.brand_id == brand.id]

    # ---- user deletion requests ----

    def request_deletion(self, actor: User, target_user_id: int, reason: str) -> DeletionRequest:
        """Ask a Founder to delete a user. For Managers, who cannot delete directly."""
        if not policy.is_manager(actor):
            raise AuthorizationError("Only Managers file deletion requests; Founders delete directly")
        reason = require_text(reason, "reason")
        target = self.backend.get_user(target_user_id)
        if target.is_primary:
            raise ConflictError("The primary founder cannot be deleted")
        if target.id == actor.id:
            raise ValidationError("A user cannot request their own deletion")

        with self.backend.lock("user", target.id):
            if any(r.target_user_id == target.id for r in self.backend.list_deletion_requests()):
                raise ConflictError(f"A deletion request for {target.name} is already pending")
            request = DeletionRequest(
                id=self.backend.next_id("deletion_request"),
                requested_by_id=actor.id,
                target_user_id=target.id,
                reason=reason,
            )
            self.backend.put_deletion_request(request)

        logger.info("Deletion requested", request_id=request.id, target=target.id, actor=actor.id)
        return request

    def resolve_deletion_request(self, request_id: int, actor: User, approve: bool) -> None:
        """Approve or decline a deletion request. The request is discarded either way."""
        if not policy.is_founder(actor):
            raise AuthorizationError("Only Founders can resolve deletion requests")

        request = self.backend.get_deletion_request(request_id)
        with self.backend.lock("user", request.target_user_id):
            # Re-read under the lock; a concurrent resolution may have discarded it.
            request = self.backend.get_deletion_request(request_id)
            if approve:
                try:
                    target = self.backend.get_user(request.target_user_id)
                except NotFoundError:
                    target = None
                if target is not None and target.is_primary:
                    logger.warning("Refusing to delete the primary founder", user_id=target.id, request_id=request_id)
                elif target is not None:
                    self.backend.delete_user(target.id)
                    logger.info("User deleted", user_id=target.id, actor=actor.id)
            self.backend.delete_deletion_request(request_id)

        logger.info("Deletion request resolved", request_id=request_id, approved=approve, actor=actor.id)

    def pending_deletion_requests(self) -> list[DeletionRequest]:
        return self.backend.list_deletion_requests()
