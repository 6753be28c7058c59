"""Directory: accounts, roles, birthday wishes and announcements."""

from datetime import date, datetime
from typing import Callable

import structlog

from workflow_manager import policy
from workflow_manager.backend import Backend
from workflow_manager.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from workflow_manager.lifecycle import require_text
from workflow_manager.models import (
    AccountKind,
    Announcement,
    BirthdayWish,
    Role,
    User,
    WishKind,
    parse_role,
    utc,
    utc_now,
)

logger = structlog.get_logger()

PROFILE_FIELDS = ("name", "contact_number", "birth_date", "bio", "instagram_id", "picture")


def _check_birth_date(value: str | None) -> str | None:
    if not value:
        return None
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Birth date '{value}' is not in YYYY-MM-DD form") from None
    return value


class Directory:
    """User administration and the social parts of the dashboard."""

    def __init__(self, backend: Backend, clock: Callable[[], datetime] = utc_now) -> None:
        self.backend = backend
        self.clock = clock

    def get_user(self, user_id: int) -> User:
        return self.backend.get_user(user_id)

    def find_by_username(self, username: str) -> User:
        for user in self.backend.list_users():
            if user.username == username:
                return user
        raise NotFoundError(f"No user with username '{username}'")

    def list_users(self, kind: AccountKind | str | None = None, role: Role | str | None = None) -> list[User]:
        """List users, optionally narrowed by account kind and role."""
        users = self.backend.list_users()
        if kind is not None:
            users = [u for u in users if u.kind == AccountKind(kind)]
        if role is not None:
            wanted = parse_role(role) if isinstance(role, str) else role
            users = [u for u in users if u.role == wanted]
        return users

    def roles(self) -> list[str]:
        """Every role a staff account may hold, built-in roles first."""
        return [Role.FOUNDER.value, Role.MANAGER.value] + self.backend.list_roles()

    def _new_user(
        self,
        name: str,
        username: str,
        kind: AccountKind | str,
        role: Role | str | None,
        allow_founder: bool,
        **profile: str | None,
    ) -> User:
        name = require_text(name, "name")
        username = require_text(username, "username")
        kind = AccountKind(kind)
        unknown = set(profile) - set(PROFILE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}")

        if kind == AccountKind.BRAND:
            role = None
        else:
            role = parse_role(role) if isinstance(role, str) else role
            if role is None:
                raise ValidationError("Staff accounts need a role")
            if role == Role.FOUNDER and not allow_founder:
                raise AuthorizationError("Founder accounts cannot be created here")
            if not isinstance(role, Role) and role not in self.backend.list_roles():
                raise ValidationError(f"Unknown role '{role}'")

        if any(u.username == username for u in self.backend.list_users()):
            raise ConflictError(f"Username '{username}' is already taken")

        user = User(
            id=self.backend.next_id("user"),
            name=name,
            username=username,
            kind=kind,
            role=role,
            birth_date=_check_birth_date(profile.pop("birth_date", None)),
            **profile,
        )
        self.backend.put_user(user)
        logger.info("User created", user_id=user.id, username=username, kind=kind.value)
        return user

    def sign_up(
        self,
        name: str,
        username: str,
        kind: AccountKind | str = AccountKind.STAFF,
        role: Role | str | None = None,
        **profile: str | None,
    ) -> User:
        """Self-service account creation."""
        return self._new_user(name, username, kind, role, allow_founder=False, **profile)

    def add_user(
        self,
        actor: User,
        name: str,
        username: str,
        kind: AccountKind | str = AccountKind.STAFF,
        role: Role | str | None = None,
        **profile: str | None,
    ) -> User:
        """Administrative account creation. Founders only."""
        if not policy.is_founder(actor):
            raise AuthorizationError("Only Founders can add users")
        return self._new_user(name, username, kind, role, allow_founder=False, **profile)

    def seed_founder(self, name: str, username: str, **profile: str | None) -> User:
        """Create the primary founder of an empty directory."""
        if any(u.is_primary for u in self.backend.list_users()):
            raise ConflictError("A primary founder already exists")
        user = self._new_user(name, username, AccountKind.STAFF, Role.FOUNDER, allow_founder=True, **profile)
        user.is_primary = True
        self.backend.put_user(user)
        return user

    def delete_user(self, actor: User, user_id: int) -> None:
        """Delete an account outright. Founders only; the primary founder is protected."""
        if not policy.is_founder(actor):
            raise AuthorizationError("Only Founders can delete users; Managers file a deletion request")
        with self.backend.lock("user", user_id):
            target = self.backend.get_user(user_id)
            if target.is_primary:
                raise ConflictError("The primary founder cannot be deleted")
            self.backend.delete_user(user_id)
        logger.info("User deleted", user_id=user_id, actor=actor.id)

    def promote_user(self, actor: User, user_id: int) -> User:
        """Make a staff member a Manager. Founders only."""
        if not policy.is_founder(actor):
            raise AuthorizationError("Only Founders can promote users")
        with self.backend.lock("user", user_id):
            user = self.backend.get_user(user_id)
            if not user.is_staff:
                raise ValidationError(f"{user.name} is not a staff account")
            if policy.is_elevated(user):
                raise ConflictError(f"{user.name} is already a {user.role.value}")
            user.role = Role.MANAGER
            self.backend.put_user(user)
        logger.info("User promoted", user_id=user_id, actor=actor.id)
        return user

    def add_role(self, actor: User, name: str) -> str:
        """Register a custom staff role."""
        if not policy.is_elevated(actor):
            raise AuthorizationError("Only Founders and Managers can add roles")
        name = require_text(name, "role")
        if name in (Role.FOUNDER.value, Role.MANAGER.value) or name in self.backend.list_roles():
            raise ConflictError(f"Role '{name}' already exists")
        self.backend.add_role(name)
        logger.info("Role added", role=name, actor=actor.id)
        return name

    def update_profile(self, actor: User, user_id: int, **fields: str | None) -> User:
        """Edit profile fields. Users edit their own profile; Founders edit anyone's."""
        if actor.id != user_id and not policy.is_founder(actor):
            raise AuthorizationError(f"{actor.name} cannot edit this profile")
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        if "name" in fields:
            fields["name"] = require_text(fields["name"], "name")
        if "birth_date" in fields:
            fields["birth_date"] = _check_birth_date(fields["birth_date"])

        with self.backend.lock("user", user_id):
            user = self.backend.get_user(user_id)
            for key, value in fields.items():
                setattr(user, key, value)
            self.backend.put_user(user)
        logger.info("Profile updated", user_id=user_id, fields=sorted(fields), actor=actor.id)
        return user

    def birthday_users(self, today: date | None = None) -> list[User]:
        today = today or utc(self.clock()).date()
        return policy.birthday_users(self.backend.list_users(), today)

    def post_birthday_wish(
        self,
        actor: User,
        birthday_user_id: int,
        kind: WishKind | str,
        content: str,
        today: date | None = None,
    ) -> BirthdayWish:
        """Leave a wish for someone whose birthday is today."""
        try:
            kind = WishKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown wish kind '{kind}'") from None
        content = require_text(content, "content")
        subject = self.backend.get_user(birthday_user_id)
        now = utc(self.clock())
        if not policy.has_birthday(subject, today or now.date()):
            raise ConflictError(f"Today is not {subject.name}'s birthday")

        wish = BirthdayWish(
            user_id=actor.id,
            birthday_user_id=subject.id,
            kind=kind,
            content=content,
            timestamp=now,
        )
        self.backend.add_wish(wish)
        logger.info("Birthday wish posted", subject=subject.id, kind=kind.value, actor=actor.id)
        return wish

    def wishes_for(self, user_id: int) -> list[BirthdayWish]:
        return [w for w in self.backend.list_wishes() if w.birthday_user_id == user_id]

    def publish_announcement(self, actor: User, text: str) -> Announcement:
        if not policy.is_elevated(actor):
            raise AuthorizationError("Only Founders and Managers can publish announcements")
        announcement = Announcement(
            id=self.backend.next_id("announcement"),
            author_id=actor.id,
            text=require_text(text, "announcement"),
            timestamp=utc(self.clock()),
        )
        self.backend.add_announcement(announcement)
        logger.info("Announcement published", announcement_id=announcement.id, actor=actor.id)
        return announcement

    def list_announcements(self) -> list[Announcement]:
        """Announcements, newest first."""
        return list(reversed(self.backend.list_announcements()))
