"""Access policy: who may assign, comment, rate or approve.

Every function here is a pure predicate over the records it is handed.
Roles and assignments change between commands, so callers evaluate these
on each call instead of keeping the results.
"""

from datetime import date

from workflow_manager.models import Role, Task, User


def is_founder(user: User) -> bool:
    return user.is_staff and user.role == Role.FOUNDER


def is_manager(user: User) -> bool:
    return user.is_staff and user.role == Role.MANAGER


def is_elevated(user: User) -> bool:
    """Founders and Managers hold edit and approval rights."""
    return is_founder(user) or is_manager(user)


def can_edit_task(user: User) -> bool:
    return is_elevated(user)


def is_assigned(task: Task, user: User) -> bool:
    return user.id in task.assignees


def can_comment(task: Task, user: User) -> bool:
    """Assignees, the tagged brand and elevated staff may comment."""
    return is_assigned(task, user) or (task.brand_id is not None and user.id == task.brand_id) or is_elevated(user)


def can_act_on_task(task: Task, user: User) -> bool:
    """Assignees and elevated staff may move a task through its statuses."""
    return is_assigned(task, user) or is_elevated(user)


def can_view_profiles(user: User) -> bool:
    return user.is_staff


def assignable_users(actor: User, users: list[User]) -> list[User]:
    """Staff the actor may put on a task.

    Founders may assign any staff except Founders, Managers any staff except
    Founders and Managers, everyone else nobody.
    """
    if is_founder(actor):
        return [u for u in users if u.is_staff and u.role != Role.FOUNDER]
    if is_manager(actor):
        return [u for u in users if u.is_staff and u.role not in (Role.FOUNDER, Role.MANAGER)]
    return []


def eligible_raters(task: Task, users: list[User]) -> list[User]:
    """Founders, Managers and the brand tagged on the task."""
    raters = [u for u in users if is_elevated(u)]
    if task.brand_id is not None:
        raters.extend(u for u in users if u.id == task.brand_id and u.is_brand)
    return raters


def has_birthday(user: User, today: date) -> bool:
    """Match the stored YYYY-MM-DD birth date on calendar month and day only."""
    if not user.birth_date:
        return False
    try:
        _, month, day = (int(part) for part in user.birth_date.split("-"))
    except ValueError:
        return False
    return month == today.month and day == today.day


def birthday_users(users: list[User], today: date) -> list[User]:
    return [u for u in users if has_birthday(u, today)]
