"""YAML snapshot backend implementation."""

from dataclasses import asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import structlog
import yaml

from workflow_manager.backends.memory import MemoryBackend
from workflow_manager.models import (
    AccountKind,
    Announcement,
    Attachment,
    BirthdayWish,
    Comment,
    DeletionRequest,
    HistoryEntry,
    InvitationRequest,
    InvitationStatus,
    RequestStatus,
    Task,
    TaskRequest,
    TaskStatus,
    TransferRequest,
    User,
    WishKind,
    parse_role,
    utc,
)

logger = structlog.get_logger()


def _plain(value: Any) -> Any:
    """Convert dataclass output into YAML-safe values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _when(raw: str | datetime) -> datetime:
    if isinstance(raw, datetime):
        return utc(raw)
    return utc(datetime.fromisoformat(raw))


def _attachment(raw: dict[str, Any] | None) -> Attachment | None:
    if not raw:
        return None
    return Attachment(file_name=raw["file_name"], locator=raw.get("locator", "#"))


def user_from_dict(raw: dict[str, Any]) -> User:
    """Build a User from its snapshot form."""
    data = dict(raw)
    data["kind"] = AccountKind(data.get("kind", "staff"))
    data["role"] = parse_role(data.get("role"))
    return User(**data)


def task_from_dict(raw: dict[str, Any]) -> Task:
    """Build a Task from its snapshot form."""
    transfer = raw.get("transfer_request")
    invitation = raw.get("invitation_request")
    return Task(
        id=int(raw["id"]),
        title=raw["title"],
        description=raw.get("description", ""),
        start_time=_when(raw["start_time"]),
        end_time=_when(raw["end_time"]),
        assignees=[int(uid) for uid in raw.get("assignees", [])],
        status=TaskStatus(raw.get("status", TaskStatus.PENDING.value)),
        brand_id=raw.get("brand_id"),
        comments=[
            Comment(
                user_id=c["user_id"],
                text=c.get("text", ""),
                timestamp=_when(c["timestamp"]),
                attachment=_attachment(c.get("attachment")),
            )
            for c in raw.get("comments", [])
        ],
        attachments=[a for a in (_attachment(x) for x in raw.get("attachments", [])) if a is not None],
        history=[
            HistoryEntry(
                user_id=h["user_id"],
                action=h["action"],
                timestamp=_when(h["timestamp"]),
                details=h.get("details"),
            )
            for h in raw.get("history", [])
        ],
        ratings={int(k): int(v) for k, v in (raw.get("ratings") or {}).items()},
        transfer_request=TransferRequest(**transfer) if transfer else None,
        invitation_request=(
            InvitationRequest(
                from_user_id=invitation["from_user_id"],
                to_user_id=invitation["to_user_id"],
                reason=invitation["reason"],
                status=InvitationStatus(invitation.get("status", "pending")),
            )
            if invitation
            else None
        ),
        is_brand_requested=bool(raw.get("is_brand_requested", False)),
    )


def task_request_from_dict(raw: dict[str, Any]) -> TaskRequest:
    """Build a TaskRequest from its snapshot form."""
    data = dict(raw)
    data["requested_end_time"] = _when(data["requested_end_time"])
    data["status"] = RequestStatus(data.get("status", "pending"))
    return TaskRequest(**data)


class YamlBackend(MemoryBackend):
    """Memory backend that mirrors its state into a YAML file after every change."""

    def __init__(self, path: str | Path) -> None:
        """Initialize the backend from a snapshot file.

        Args:
            path: Snapshot file, created on first write if missing
        """
        self.path = Path(path)
        self._loading = True
        super().__init__()
        self._load()
        self._loading = False
        logger.debug("YAML backend initialized", path=str(self.path), users=len(self.users), tasks=len(self.tasks))

    def _load(self) -> None:
        if not self.path.exists():
            logger.debug("Snapshot file does not exist, starting empty", path=str(self.path))
            return

        try:
            with open(self.path, "r") as f:
                data = yaml.safe_load(f) or {}
        except Exception as e:
            logger.error("Failed to load snapshot", error=str(e))
            raise ValueError(f"Failed to load state from {self.path}: {e}") from e

        for raw in data.get("users", []):
            self.users[raw["id"]] = user_from_dict(raw)
        for raw in data.get("tasks", []):
            task = task_from_dict(raw)
            self.tasks[task.id] = task
        for raw in data.get("task_requests", []):
            request = task_request_from_dict(raw)
            self.task_requests[request.id] = request
        for raw in data.get("deletion_requests", []):
            self.deletion_requests[raw["id"]] = DeletionRequest(**raw)
        self.wishes = [
            BirthdayWish(
                user_id=raw["user_id"],
                birthday_user_id=raw["birthday_user_id"],
                kind=WishKind(raw["kind"]),
                content=raw["content"],
                timestamp=_when(raw["timestamp"]),
            )
            for raw in data.get("wishes", [])
        ]
        self.announcements = [
            Announcement(
                id=raw["id"],
                author_id=raw["author_id"],
                text=raw["text"],
                timestamp=_when(raw["timestamp"]),
            )
            for raw in data.get("announcements", [])
        ]
        self.roles = list(data.get("roles", []))
        self._counters = dict(data.get("counters", {}))
        logger.debug("Snapshot loaded", keys=list(data.keys()))

    def _persist(self) -> None:
        if self._loading:
            return

        data = {
            "counters": dict(self._counters),
            "roles": list(self.roles),
            "users": [_plain(asdict(self.users[k])) for k in sorted(self.users)],
            "tasks": [_plain(asdict(self.tasks[k])) for k in sorted(self.tasks)],
            "task_requests": [_plain(asdict(self.task_requests[k])) for k in sorted(self.task_requests)],
            "deletion_requests": [_plain(asdict(self.deletion_requests[k])) for k in sorted(self.deletion_requests)],
            "wishes": [_plain(asdict(w)) for w in self.wishes],
            "announcements": [_plain(asdict(a)) for a in self.announcements],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(self.path, "w") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            logger.debug("Snapshot saved", path=str(self.path))
        except Exception as e:
            logger.error("Failed to save snapshot", error=str(e))
            raise ValueError(f"Failed to save state to {self.path}: {e}") from e
