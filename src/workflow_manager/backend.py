"""Backend interface for the workflow entity store."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager

from workflow_manager.models import (
    Announcement,
    BirthdayWish,
    DeletionRequest,
    Task,
    TaskRequest,
    User,
)


class Backend(ABC):
    """Abstract base class for entity store backends.

    Reads return copies of the stored records; a change becomes visible only
    once it is written back with the matching ``put_*`` call. Callers that
    read, check and then write hold ``lock(kind, entity_id)`` for the whole
    sequence so that commands on one entity are serialised.
    """

    @abstractmethod
    def lock(self, kind: str, entity_id: int) -> AbstractContextManager:
        """Return a re-entrant lock guarding one entity."""
        pass

    @abstractmethod
    def next_id(self, kind: str) -> int:
        """Allocate the next identifier for a kind of record."""
        pass

    @abstractmethod
    def get_user(self, user_id: int) -> User:
        """Read a user by ID."""
        pass

    @abstractmethod
    def put_user(self, user: User) -> None:
        """Create or replace a user."""
        pass

    @abstractmethod
    def delete_user(self, user_id: int) -> None:
        """Delete a user."""
        pass

    @abstractmethod
    def list_users(self) -> list[User]:
        """List all users ordered by ID."""
        pass

    @abstractmethod
    def get_task(self, task_id: int) -> Task:
        """Read a task by ID."""
        pass

    @abstractmethod
    def put_task(self, task: Task) -> None:
        """Create or replace a task."""
        pass

    @abstractmethod
    def list_tasks(self) -> list[Task]:
        """List all tasks ordered by ID."""
        pass

    @abstractmethod
    def get_task_request(self, request_id: int) -> TaskRequest:
        """Read a brand task request by ID."""
        pass

    @abstractmethod
    def put_task_request(self, request: TaskRequest) -> None:
        """Create or replace a brand task request."""
        pass

    @abstractmethod
    def list_task_requests(self) -> list[TaskRequest]:
        """List all brand task requests ordered by ID."""
        pass

    @abstractmethod
    def get_deletion_request(self, request_id: int) -> DeletionRequest:
        """Read a user deletion request by ID."""
        pass

    @abstractmethod
    def put_deletion_request(self, request: DeletionRequest) -> None:
        """Create or replace a user deletion request."""
        pass

    @abstractmethod
    def delete_deletion_request(self, request_id: int) -> None:
        """Discard a user deletion request."""
        pass

    @abstractmethod
    def list_deletion_requests(self) -> list[DeletionRequest]:
        """List all user deletion requests ordered by ID."""
        pass

    @abstractmethod
    def add_wish(self, wish: BirthdayWish) -> None:
        """Append a birthday wish."""
        pass

    @abstractmethod
    def list_wishes(self) -> list[BirthdayWish]:
        """List birthday wishes in the order they were posted."""
        pass

    @abstractmethod
    def add_announcement(self, announcement: Announcement) -> None:
        """Append an announcement."""
        pass

    @abstractmethod
    def list_announcements(self) -> list[Announcement]:
        """List announcements in the order they were published."""
        pass

    @abstractmethod
    def add_role(self, role: str) -> None:
        """Register a custom staff role name."""
        pass

    @abstractmethod
    def list_roles(self) -> list[str]:
        """List registered custom staff role names."""
        pass
