"""People management commands for the workflow-manager CLI."""

from cyclopts import App

from workflow_manager.models import role_name

people_app = App(name="people", help="Manage users, roles, wishes and announcements")


@people_app.command
def add(name: str, username: str, *, role: str | None = None, brand: bool = False, birth_date: str | None = None) -> None:
    """Add a staff or brand account (Founders)."""
    from workflow_manager.cli import current_actor, get_service

    user = get_service().add_user(
        current_actor(),
        name,
        username,
        kind="brand" if brand else "staff",
        role=role,
        birth_date=birth_date,
    )
    print(f"Added user {user.id}: {user.name}")


@people_app.command
def signup(name: str, username: str, *, role: str | None = None, brand: bool = False) -> None:
    """Create your own account."""
    from workflow_manager.cli import get_service

    user = get_service().sign_up(name, username, kind="brand" if brand else "staff", role=role)
    print(f"Signed up as user {user.id}: {user.name}")


@people_app.command
def delete(user_id: int) -> None:
    """Delete a user (Founders)."""
    from workflow_manager.cli import current_actor, get_service

    get_service().delete_user(current_actor(), user_id)
    print(f"Deleted user {user_id}")


@people_app.command
def promote(user_id: int) -> None:
    """Promote a staff member to Manager (Founders)."""
    from workflow_manager.cli import current_actor, get_service

    user = get_service().promote_user(current_actor(), user_id)
    print(f"{user.name} is now a {role_name(user.role)}")


@people_app.command
def role(name: str) -> None:
    """Register a custom staff role."""
    from workflow_manager.cli import current_actor, get_service

    get_service().add_role(current_actor(), name)
    print(f"Added role {name}")


@people_app.command(name="list")
def list_people(*, kind: str | None = None, role: str | None = None) -> None:
    """List users, optionally by kind (staff, brand) and role."""
    from workflow_manager.cli import get_service

    users = get_service().list_users(kind, role)
    print(f"Found {len(users)} user(s):\n")
    for user in users:
        label = role_name(user.role) or user.kind.value
        primary = " [primary]" if user.is_primary else ""
        print(f"{user.id}: {user.name} <{user.username}> ({label}) {user.total_score}/{user.monthly_score}{primary}")


@people_app.command
def profile(user_id: int, *, name: str | None = None, contact: str | None = None, birth_date: str | None = None, bio: str | None = None) -> None:
    """Edit a profile (your own, or anyone's as a Founder)."""
    from workflow_manager.cli import current_actor, get_service

    fields = {"name": name, "contact_number": contact, "birth_date": birth_date, "bio": bio}
    user = get_service().update_profile(current_actor(), user_id, **{k: v for k, v in fields.items() if v is not None})
    print(f"Updated profile of {user.name}")


@people_app.command
def birthdays() -> None:
    """List users whose birthday is today, with their wishes."""
    from workflow_manager.cli import get_service

    service = get_service()
    users = service.birthday_users()
    if not users:
        print("No birthdays today")
        return
    for user in users:
        print(f"Happy Birthday, {user.name}!")
        for wish in service.directory.wishes_for(user.id):
            print(f"  [{wish.kind.value}] {wish.content} (from {wish.user_id})")


@people_app.command
def wish(user_id: int, content: str, *, kind: str = "text") -> None:
    """Post a birthday wish (text, emoji or voice)."""
    from workflow_manager.cli import current_actor, get_service

    get_service().post_birthday_wish(current_actor(), user_id, kind, content)
    print(f"Wish posted for user {user_id}")


@people_app.command
def announce(text: str) -> None:
    """Publish an announcement."""
    from workflow_manager.cli import current_actor, get_service

    get_service().publish_announcement(current_actor(), text)
    print("Announcement published")


@people_app.command
def announcements() -> None:
    """List announcements, newest first."""
    from workflow_manager.cli import get_service

    for note in get_service().list_announcements():
        print(f"- {note.text}")


@people_app.command(name="reset-monthly")
def reset_monthly() -> None:
    """Zero every monthly score at the start of a new month (Founders)."""
    from workflow_manager.cli import current_actor, get_service

    count = get_service().reset_monthly_scores(current_actor())
    print(f"Reset monthly scores for {count} user(s)")
