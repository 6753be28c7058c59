"""In-memory backend implementation."""

import copy
import threading
from contextlib import AbstractContextManager
from typing import Iterable

import structlog

from workflow_manager.backend import Backend
from workflow_manager.errors import NotFoundError
from workflow_manager.models import (
    Announcement,
    BirthdayWish,
    DeletionRequest,
    Task,
    TaskRequest,
    User,
)

logger = structlog.get_logger()


class MemoryBackend(Backend):
    """Dictionary-backed store with one re-entrant lock per entity."""

    def __init__(
        self,
        users: Iterable[User] = (),
        tasks: Iterable[Task] = (),
        task_requests: Iterable[TaskRequest] = (),
        roles: Iterable[str] = (),
    ) -> None:
        """Initialize the store, optionally seeded with records.

        Args:
            users: Users to load
            tasks: Tasks to load
            task_requests: Brand task requests to load
            roles: Custom staff role names to register
        """
        self.users: dict[int, User] = {}
        self.tasks: dict[int, Task] = {}
        self.task_requests: dict[int, TaskRequest] = {}
        self.deletion_requests: dict[int, DeletionRequest] = {}
        self.wishes: list[BirthdayWish] = []
        self.announcements: list[Announcement] = []
        self.roles: list[str] = []
        self._counters: dict[str, int] = {}
        self._locks: dict[tuple[str, int], threading.RLock] = {}
        self._registry_lock = threading.Lock()
        # Guards the collections themselves; entity locks guard read-check-write sequences.
        self._data_lock = threading.RLock()

        for user in users:
            self.users[user.id] = copy.deepcopy(user)
            self._bump("user", user.id)
        for task in tasks:
            self.tasks[task.id] = copy.deepcopy(task)
            self._bump("task", task.id)
        for request in task_requests:
            self.task_requests[request.id] = copy.deepcopy(request)
            self._bump("task_request", request.id)
        for role in roles:
            if role not in self.roles:
                self.roles.append(role)
        logger.debug("Memory backend initialized", users=len(self.users), tasks=len(self.tasks))

    def _bump(self, kind: str, used_id: int) -> None:
        if used_id > self._counters.get(kind, 0):
            self._counters[kind] = used_id

    def _persist(self) -> None:
        """Hook called after every mutation. Nothing to do for a purely in-memory store."""
        return

    def lock(self, kind: str, entity_id: int) -> AbstractContextManager:
        """Return the lock for one entity, creating it on first use."""
        key = (kind, int(entity_id))
        with self._registry_lock:
            entity_lock = self._locks.get(key)
            if entity_lock is None:
                entity_lock = threading.RLock()
                self._locks[key] = entity_lock
        return entity_lock

    def next_id(self, kind: str) -> int:
        """Allocate the next identifier for a kind of record."""
        with self._data_lock:
            value = self._counters.get(kind, 0) + 1
            self._counters[kind] = value
            return value

    def get_user(self, user_id: int) -> User:
        """Read a user by ID."""
        with self._data_lock:
            user = self.users.get(user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            return copy.deepcopy(user)

    def put_user(self, user: User) -> None:
        """Create or replace a user."""
        with self._data_lock:
            self.users[user.id] = copy.deepcopy(user)
            self._bump("user", user.id)
            self._persist()

    def delete_user(self, user_id: int) -> None:
        """Delete a user."""
        with self._data_lock:
            if user_id not in self.users:
                raise NotFoundError(f"User {user_id} not found")
            del self.users[user_id]
            self._persist()

    def list_users(self) -> list[User]:
        """List all users ordered by ID."""
        with self._data_lock:
            return [copy.deepcopy(self.users[uid]) for uid in sorted(self.users)]

    def get_task(self, task_id: int) -> Task:
        """Read a task by ID."""
        with self._data_lock:
            task = self.tasks.get(task_id)
            if task is None:
                raise NotFoundError(f"Task {task_id} not found")
            return copy.deepcopy(task)

    def put_task(self, task: Task) -> None:
        """Create or replace a task."""
        with self._data_lock:
            self.tasks[task.id] = copy.deepcopy(task)
            self._bump("task", task.id)
            self._persist()

    def list_tasks(self) -> list[Task]:
        """List all tasks ordered by ID."""
        with self._data_lock:
            return [copy.deepcopy(self.tasks[tid]) for tid in sorted(self.tasks)]

    def get_task_request(self, request_id: int) -> TaskRequest:
        """Read a brand task request by ID."""
        with self._data_lock:
            request = self.task_requests.get(request_id)
            if request is None:
                raise NotFoundError(f"Task request {request_id} not found")
            return copy.deepcopy(request)

    def put_task_request(self, request: TaskRequest) -> None:
        """Create or replace a brand task request."""
        with self._data_lock:
            self.task_requests[request.id] = copy.deepcopy(request)
            self._bump("task_request", request.id)
            self._persist()

    def list_task_requests(self) -> list[TaskRequest]:
        """List all brand task requests ordered by ID."""
        with self._data_lock:
            return [copy.deepcopy(self.task_requests[rid]) for rid in sorted(self.task_requests)]

    def get_deletion_request(self, request_id: int) -> DeletionRequest:
        """Read a user deletion request by ID."""
        with self._data_lock:
            request = self.deletion_requests.get(request_id)
            if request is None:
                raise NotFoundError(f"Deletion request {request_id} not found")
            return copy.deepcopy(request)

    def put_deletion_request(self, request: DeletionRequest) -> None:
        """Create or replace a user deletion request."""
        with self._data_lock:
            self.deletion_requests[request.id] = copy.deepcopy(request)
            self._bump("deletion_request", request.id)
            self._persist()

    def delete_deletion_request(self, request_id: int) -> None:
        """Discard a user deletion request."""
        with self._data_lock:
            if request_id not in self.deletion_requests:
                raise NotFoundError(f"Deletion request {request_id} not found")
            del self.deletion_requests[request_id]
            self._persist()

    def list_deletion_requests(self) -> list[DeletionRequest]:
        """List all user deletion requests ordered by ID."""
        with self._data_lock:
            return [copy.deepcopy(self.deletion_requests[rid]) for rid in sorted(self.deletion_requests)]

    def add_wish(self, wish: BirthdayWish) -> None:
        """Append a birthday wish."""
        with self._data_lock:
            self.wishes.append(copy.deepcopy(wish))
            self._persist()

    def list_wishes(self) -> list[BirthdayWish]:
        """List birthday wishes in the order they were posted."""
        with self._data_lock:
            return copy.deepcopy(self.wishes)

    def add_announcement(self, announcement: Announcement) -> None:
        """Append an announcement."""
        with self._data_lock:
            self.announcements.append(copy.deepcopy(announcement))
            self._bump("announcement", announcement.id)
            self._persist()

    def list_announcements(self) -> list[Announcement]:
        """List announcements in the order they were published."""
        with self._data_lock:
            return copy.deepcopy(self.announcements)

    def add_role(self, role: str) -> None:
        """Register a custom staff role name."""
        with self._data_lock:
            if role not in self.roles:
                self.roles.append(role)
                self._persist()

    def list_roles(self) -> list[str]:
        """List registered custom staff role names."""
        with self._data_lock:
            return list(self.roles)
