"""
Role definitions and the role -> permission matrix.

Roles in hierarchy (lowest to highest):
- trainee: Practice questions, own notes/progress, enroll in study plans
- instructor: Author questions/content/tests, view all progress and analytics
- admin: Full catalog, including users, permissions and system settings
"""
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Set

from app.core.permissions import ALL_PERMISSIONS, Permission


class Role(str, Enum):
    """User roles with hierarchy."""
    TRAINEE = "trainee"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


# Role hierarchy (numeric levels for comparison)
ROLE_HIERARCHY: Dict[str, int] = {
    Role.TRAINEE.value: 1,
    Role.INSTRUCTOR.value: 2,
    Role.ADMIN.value: 3,
}

ROLE_LABELS: Dict[str, str] = {
    Role.TRAINEE.value: "מתאמן",
    Role.INSTRUCTOR.value: "מדריך",
    Role.ADMIN.value: "מנהל",
}

VALID_ROLES: Set[str] = {r.value for r in Role}


_TRAINEE_PERMISSIONS = frozenset(p.value for p in (
    Permission.QUESTION_READ,
    Permission.CONTENT_READ,
    Permission.ACTIVITY_READ_OWN,
    Permission.ACTIVITY_CREATE,
    Permission.PROGRESS_READ_OWN,
    Permission.NOTE_CREATE,
    Permission.NOTE_READ_OWN,
    Permission.NOTE_UPDATE_OWN,
    Permission.NOTE_DELETE_OWN,
    Permission.PLAN_READ,
    Permission.PLAN_ENROLL,
    Permission.USER_UPDATE_OWN,
    Permission.USER_VIEW_PROFILE,
    Permission.TEST_VIEW,
))

_INSTRUCTOR_PERMISSIONS = _TRAINEE_PERMISSIONS | frozenset(p.value for p in (
    Permission.QUESTION_CREATE,
    Permission.QUESTION_UPDATE,
    Permission.QUESTION_EXPORT,
    Permission.QUESTION_REVIEW,
    Permission.CONTENT_CREATE,
    Permission.CONTENT_UPDATE,
    Permission.ACTIVITY_READ_ALL,
    Permission.ACTIVITY_EXPORT,
    Permission.PROGRESS_READ_ALL,
    Permission.PROGRESS_EXPORT,
    Permission.NOTE_READ_ALL,
    Permission.PLAN_CREATE,
    Permission.PLAN_UPDATE,
    Permission.PLAN_ASSIGN,
    Permission.PLAN_PUBLISH,
    Permission.ANALYTICS_VIEW,
    Permission.ANALYTICS_EXPORT,
    Permission.TEST_CREATE,
    Permission.TEST_EDIT,
    Permission.TEST_PUBLISH,
    Permission.TEST_ASSIGN,
    Permission.TEST_GRADE,
    Permission.REPORT_VIEW,
    Permission.REPORT_EXPORT,
))

# Permission matrix: which permissions each role holds implicitly
ROLE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    Role.TRAINEE.value: _TRAINEE_PERMISSIONS,
    Role.INSTRUCTOR.value: _INSTRUCTOR_PERMISSIONS,
    Role.ADMIN.value: ALL_PERMISSIONS,
}


def parse_role(role: Any) -> Optional[Role]:
    """
    Parse a role value from request input. Access checks use get_role.

    Args:
        role: Role string or Role member (case and surrounding whitespace ignored)

    Returns:
        Matching Role, or None for missing/unknown roles
    """
    if isinstance(role, Role):
        return role
    if not isinstance(role, str):
        return None
    role_lower = role.lower().strip()
    if role_lower in VALID_ROLES:
        return Role(role_lower)
    return None


def get_role(role: Any) -> Optional[Role]:
    """
    Exact role lookup used when evaluating access.

    Unlike parse_role, no case folding or trimming is applied: " Admin " is
    not a role.
    """
    if isinstance(role, Role):
        return role
    if isinstance(role, str) and role in VALID_ROLES:
        return Role(role)
    return None


def role_permissions_for(role: Any) -> FrozenSet[str]:
    """
    Get the static permission set of a role.

    Unknown or missing roles get an empty set.
    """
    parsed = get_role(role)
    if parsed is None:
        return frozenset()
    return ROLE_PERMISSIONS[parsed.value]


def get_role_label(role: Any) -> Optional[str]:
    """Hebrew label of a role, or None for unknown roles."""
    parsed = get_role(role)
    return ROLE_LABELS[parsed.value] if parsed else None


def check_role_hierarchy() -> bool:
    """Verify that each role's permission set contains every lower role's set."""
    ordered = sorted(ROLE_HIERARCHY, key=ROLE_HIERARCHY.get)
    for lower, higher in zip(ordered, ordered[1:]):
        if not ROLE_PERMISSIONS[lower] <= ROLE_PERMISSIONS[higher]:
            return False
    return True
