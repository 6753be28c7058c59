"""Tests for accounts, roles, birthday wishes and announcements."""

from datetime import date

import pytest

from conftest import ALICE, AMAN, BOB, DIANA, FRANK, NIKE
from workflow_manager.backends import MemoryBackend
from workflow_manager.directory import Directory
from workflow_manager.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from workflow_manager.models import AccountKind, Role, WishKind


def test_sign_up_staff(service) -> None:
    """Test self-service staff sign up with a registered role."""
    user = service.sign_up("Gina", "gina@staff", role="Editor", birth_date="1999-12-01")
    assert user.id == 10
    assert user.role == "Editor"
    assert user.kind == AccountKind.STAFF
    assert service.directory.find_by_username("gina@staff").id == user.id


def test_sign_up_brand_has_no_role(service) -> None:
    """Test that brand accounts carry no staff role."""
    user = service.sign_up("Puma", "puma@brand", kind="brand", role="Editor")
    assert user.role is None
    assert user.is_brand


def test_sign_up_rejections(service) -> None:
    """Test role, founder and username checks."""
    with pytest.raises(ValidationError):
        service.sign_up("Gina", "gina@staff")
    with pytest.raises(ValidationError):
        service.sign_up("Gina", "gina@staff", role="Astronaut")
    with pytest.raises(AuthorizationError):
        service.sign_up("Gina", "gina@staff", role="Founder")
    with pytest.raises(ConflictError):
        service.sign_up("Bobby", "bob@staff", role="Editor")
    with pytest.raises(ValidationError):
        service.sign_up("Gina", "gina@staff", role="Editor", birth_date="12/01/1999")


def test_sign_up_as_manager(service) -> None:
    """Test that Manager is a built-in role for sign up."""
    user = service.sign_up("Hank", "hank@staff", role="Manager")
    assert user.role == Role.MANAGER


def test_add_user_requires_founder(service) -> None:
    with pytest.raises(AuthorizationError):
        service.add_user(FRANK, "Gina", "gina@staff", role="Editor")
    user = service.add_user(AMAN, "Gina", "gina@staff", role="Editor")
    assert service.actor(user.id).name == "Gina"


def test_seed_founder_once() -> None:
    """Test seeding the primary founder of an empty directory."""
    directory = Directory(MemoryBackend())
    founder = directory.seed_founder("Aman", "aman@staff")
    assert founder.is_primary
    assert founder.role == Role.FOUNDER
    with pytest.raises(ConflictError):
        directory.seed_founder("Other", "other@staff")


def test_delete_user(service) -> None:
    """Test direct deletion by a Founder."""
    service.delete_user(AMAN, DIANA)
    with pytest.raises(NotFoundError):
        service.actor(DIANA)
    with pytest.raises(ConflictError):
        service.delete_user(AMAN, AMAN)
    with pytest.raises(AuthorizationError):
        service.delete_user(FRANK, BOB)


def test_promote_user(service) -> None:
    """Test promotion to Manager."""
    promoted = service.promote_user(AMAN, BOB)
    assert promoted.role == Role.MANAGER
    with pytest.raises(ConflictError):
        service.promote_user(AMAN, BOB)
    with pytest.raises(ValidationError):
        service.promote_user(AMAN, NIKE)
    with pytest.raises(AuthorizationError):
        service.promote_user(FRANK, ALICE)


def test_add_role(service) -> None:
    """Test registering a custom role."""
    service.add_role(FRANK, "Copywriter")
    assert "Copywriter" in service.directory.roles()
    assert service.sign_up("Ivy", "ivy@staff", role="Copywriter").role == "Copywriter"
    with pytest.raises(ConflictError):
        service.add_role(AMAN, "Copywriter")
    with pytest.raises(ConflictError):
        service.add_role(AMAN, "Manager")
    with pytest.raises(AuthorizationError):
        service.add_role(BOB, "Intern")


def test_list_users_filters(service) -> None:
    assert [u.id for u in service.list_users(kind="brand")] == [8, 9]
    assert [u.id for u in service.list_users(role="Manager")] == [FRANK]
    assert [u.id for u in service.list_users(role="Editor")] == [3]


def test_update_profile(service) -> None:
    """Test self edits and Founder edits."""
    updated = service.update_profile(BOB, BOB, bio="Backend dev", contact_number="555-0100")
    assert updated.bio == "Backend dev"
    service.update_profile(AMAN, BOB, name="Robert")
    assert service.actor(BOB).name == "Robert"
    with pytest.raises(AuthorizationError):
        service.update_profile(FRANK, BOB, bio="nope")
    with pytest.raises(ValidationError):
        service.update_profile(BOB, BOB, role="Founder")


def test_birthday_users(service) -> None:
    """Test today's birthdays from the fixed clock."""
    assert [u.id for u in service.birthday_users()] == [ALICE]
    assert service.birthday_users(date(2026, 3, 11)) == []


def test_post_birthday_wish(service) -> None:
    """Test wishes on and off the birthday."""
    wish = service.post_birthday_wish(BOB, ALICE, "emoji", "🎉")
    assert wish.kind == WishKind.EMOJI
    assert service.directory.wishes_for(ALICE) == [wish]
    with pytest.raises(ConflictError):
        service.post_birthday_wish(ALICE, BOB, "text", "Happy birthday")
    with pytest.raises(ValidationError):
        service.post_birthday_wish(BOB, ALICE, "gif", "x")


def test_announcements_newest_first(service, clock) -> None:
    service.publish_announcement(AMAN, "Office closed Friday")
    clock.advance(hours=1)
    service.publish_announcement(FRANK, "New brand onboarded")
    assert [a.text for a in service.list_announcements()] == ["New brand onboarded", "Office closed Friday"]
    with pytest.raises(AuthorizationError):
        service.publish_announcement(BOB, "Pizza")
