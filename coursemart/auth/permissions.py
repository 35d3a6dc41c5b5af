"""Role-based access control for CourseMart.

Hierarchical roles:
- ADMIN (level 2): Full system access, may delete any course
- INSTRUCTOR (level 1): Authors and manages own courses
- STUDENT (level 0): Purchases courses and records progress
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles. Higher level means more permissions."""

    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.STUDENT: 0,
    UserRole.INSTRUCTOR: 1,
    UserRole.ADMIN: 2,
}


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role (unknown roles get -1)."""
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return -1
    return ROLE_HIERARCHY.get(role, -1)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.INSTRUCTOR)
        True
        >>> has_permission("student", "instructor")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_admin(role: UserRole | str) -> bool:
    return get_role_level(role) == ROLE_HIERARCHY[UserRole.ADMIN]


def can_manage_course(
    role: UserRole | str, user_id: object, instructor_id: object
) -> bool:
    """Owners and admins may modify or delete a course."""
    return is_admin(role) or str(user_id) == str(instructor_id)
