"""Data models for workflow manager."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

SYSTEM_ACTOR = 0


class Role(str, Enum):
    """Roles with built-in authority. Other staff roles are registered names."""

    FOUNDER = "Founder"
    MANAGER = "Manager"


class AccountKind(str, Enum):
    STAFF = "staff"
    BRAND = "brand"


class TaskStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    BLOCKED = "Blocked"
    FOR_REVIEW = "For Review"
    COMPLETED = "Completed"
    PENDING_TRANSFER = "Pending Transfer"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class WishKind(str, Enum):
    TEXT = "text"
    EMOJI = "emoji"
    VOICE = "voice"


def utc(value: datetime) -> datetime:
    """Normalize a datetime to an aware UTC instant. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def role_name(role: "Role | str | None") -> str | None:
    """Return the plain role name for display and storage."""
    if isinstance(role, Role):
        return role.value
    return role


def parse_role(raw: str | None) -> "Role | str | None":
    """Map a stored role name back onto the closed enumeration when it is one."""
    if raw is None:
        return None
    try:
        return Role(raw)
    except ValueError:
        return raw


@dataclass
class User:
    """Represents a staff or brand account."""

    id: int
    name: str
    username: str
    kind: AccountKind = AccountKind.STAFF
    role: Role | str | None = None
    is_primary: bool = False
    total_score: int = 0
    monthly_score: int = 0
    contact_number: str | None = None
    birth_date: str | None = None
    bio: str | None = None
    instagram_id: str | None = None
    picture: str | None = None

    @property
    def is_brand(self) -> bool:
        return self.kind == AccountKind.BRAND

    @property
    def is_staff(self) -> bool:
        return self.kind == AccountKind.STAFF


@dataclass
class Attachment:
    """An opaque file reference: a name plus wherever the bytes live."""

    file_name: str
    locator: str = "#"


@dataclass
class Comment:
    user_id: int
    text: str
    timestamp: datetime
    attachment: Attachment | None = None


@dataclass
class HistoryEntry:
    user_id: int
    action: str
    timestamp: datetime
    details: str | None = None


@dataclass
class TransferRequest:
    from_user_id: int
    to_user_id: int
    reason: str


@dataclass
class InvitationRequest:
    from_user_id: int
    to_user_id: int
    reason: str
    status: InvitationStatus = InvitationStatus.PENDING


@dataclass
class Task:
    """Represents a unit of work assigned to staff."""

    id: int
    title: str
    start_time: datetime
    end_time: datetime
    description: str = ""
    assignees: list[int] = field(default_factory=list)
    status: TaskStatus = TaskStatus.PENDING
    brand_id: int | None = None
    comments: list[Comment] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    ratings: dict[int, int] = field(default_factory=dict)
    transfer_request: TransferRequest | None = None
    invitation_request: InvitationRequest | None = None
    is_brand_requested: bool = False

    def record(self, user_id: int, action: str, timestamp: datetime, details: str | None = None) -> HistoryEntry:
        """Append a history entry, never earlier than the last one."""
        timestamp = utc(timestamp)
        if self.history and timestamp < self.history[-1].timestamp:
            timestamp = self.history[-1].timestamp
        entry = HistoryEntry(user_id=user_id, action=action, timestamp=timestamp, details=details)
        self.history.append(entry)
        return entry


@dataclass
class TaskPatch:
    """Fields an editor may replace on a task. None leaves the field untouched."""

    title: str | None = None
    description: str | None = None
    assignees: list[int] | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    brand_id: int | None = None
    clear_brand: bool = False


@dataclass
class TaskRequest:
    """A task proposed by a brand, waiting for staff approval."""

    id: int
    brand_id: int
    title: str
    requested_end_time: datetime
    description: str = ""
    requested_manager_id: int | None = None
    status: RequestStatus = RequestStatus.PENDING


@dataclass
class DeletionRequest:
    id: int
    requested_by_id: int
    target_user_id: int
    reason: str
    status: str = "pending"


@dataclass
class BirthdayWish:
    user_id: int
    birthday_user_id: int
    kind: WishKind
    content: str
    timestamp: datetime


@dataclass
class Announcement:
    id: int
    author_id: int
    text: str
    timestamp: datetime


@dataclass
class TimelineItem:
    """One row of the merged comment/history stream shown for a task."""

    timestamp: datetime
    user_id: int
    kind: str
    text: str
    details: str | None = None
    attachment: Attachment | None = None
