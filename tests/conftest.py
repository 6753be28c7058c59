"""Shared fixtures: a seeded in-memory store and a clock the tests can move."""

from datetime import datetime, timedelta, timezone

import pytest

from workflow_manager.backends import MemoryBackend
from workflow_manager.models import AccountKind, Role, User
from workflow_manager.service import WorkflowService

START = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)

ALICE, BOB, CHARLIE, DIANA, EVE, FRANK, AMAN, NIKE, ADIDAS = range(1, 10)


class FakeClock:
    """Deterministic clock; call it to read, advance it to move time."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_users() -> list[User]:
    return [
        User(id=ALICE, name="Alice", username="alice@staff", role="Graphic Designer", birth_date="1995-03-10"),
        User(id=BOB, name="Bob", username="bob@staff", role="Web Developer"),
        User(id=CHARLIE, name="Charlie", username="charlie@staff", role="Editor"),
        User(id=DIANA, name="Diana", username="diana@staff", role="Camera Man"),
        User(id=EVE, name="Eve", username="eve@staff", role="Model"),
        User(id=FRANK, name="Frank", username="frank@staff", role=Role.MANAGER),
        User(id=AMAN, name="Aman", username="aman@staff", role=Role.FOUNDER, is_primary=True),
        User(id=NIKE, name="Nike", username="nike@brand", kind=AccountKind.BRAND),
        User(id=ADIDAS, name="Adidas", username="adidas@brand", kind=AccountKind.BRAND),
    ]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def backend() -> MemoryBackend:
    return MemoryBackend(
        users=make_users(),
        roles=["Editor", "Graphic Designer", "Camera Man", "Model", "Web Developer"],
    )


@pytest.fixture()
def service(backend: MemoryBackend, clock: FakeClock) -> WorkflowService:
    return WorkflowService(backend, clock=clock)


@pytest.fixture()
def task(service: WorkflowService, clock: FakeClock):
    """A task for Bob running one hour from the fixed start time, tagged with Nike."""
    return service.create_task(
        FRANK,
        "Fix login bug",
        clock.now,
        clock.now + timedelta(hours=1),
        description="Forgot Password link is broken",
        assignees=[BOB],
        brand_id=NIKE,
    )
