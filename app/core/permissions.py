"""
Permission catalog.

Every capability in the platform is a token of the form
``resource:action[:scope]`` (e.g. ``question:create``, ``activity:read:own``).
This module is the single source of truth for which tokens are valid.
"""
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional


class InvalidPermissionError(ValueError):
    """Raised when a permission token is not part of the catalog."""

    def __init__(self, invalid: Iterable[Any], message: Optional[str] = None):
        self.invalid = [str(p) for p in invalid]
        if message is None:
            label = "Invalid permission" if len(self.invalid) == 1 else "Invalid permissions"
            message = f"{label}: {', '.join(self.invalid)}"
        super().__init__(message)


class Permission(str, Enum):
    """Catalog of granular permissions."""
    # Questions
    QUESTION_READ = "question:read"
    QUESTION_CREATE = "question:create"
    QUESTION_UPDATE = "question:update"
    QUESTION_DELETE = "question:delete"
    QUESTION_EXPORT = "question:export"
    QUESTION_SUSPEND = "question:suspend"
    QUESTION_REACTIVATE = "question:reactivate"
    QUESTION_APPROVE = "question:approve"
    QUESTION_REVIEW = "question:review"

    # Content
    CONTENT_READ = "content:read"
    CONTENT_CREATE = "content:create"
    CONTENT_UPDATE = "content:update"
    CONTENT_DELETE = "content:delete"
    CONTENT_PUBLISH = "content:publish"

    # Activity
    ACTIVITY_READ_OWN = "activity:read:own"
    ACTIVITY_READ_ALL = "activity:read:all"
    ACTIVITY_CREATE = "activity:create"
    ACTIVITY_UPDATE = "activity:update"
    ACTIVITY_DELETE = "activity:delete"
    ACTIVITY_EXPORT = "activity:export"

    # Progress
    PROGRESS_READ_OWN = "progress:read:own"
    PROGRESS_READ_ALL = "progress:read:all"
    PROGRESS_EXPORT = "progress:export"

    # Notes
    NOTE_CREATE = "note:create"
    NOTE_READ_OWN = "note:read:own"
    NOTE_READ_ALL = "note:read:all"
    NOTE_UPDATE_OWN = "note:update:own"
    NOTE_UPDATE_ALL = "note:update:all"
    NOTE_DELETE_OWN = "note:delete:own"
    NOTE_DELETE_ALL = "note:delete:all"

    # Study plans
    PLAN_READ = "plan:read"
    PLAN_CREATE = "plan:create"
    PLAN_UPDATE = "plan:update"
    PLAN_DELETE = "plan:delete"
    PLAN_ENROLL = "plan:enroll"
    PLAN_ASSIGN = "plan:assign"
    PLAN_PUBLISH = "plan:publish"

    # Users
    USER_READ = "user:read"
    USER_CREATE = "user:create"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"
    USER_UPDATE_OWN = "user:update:own"
    USER_VIEW_PROFILE = "user:view:profile"
    USER_CHANGE_ROLE = "user:change:role"
    USER_MANAGE_PERMISSIONS = "user:manage:permissions"

    # Analytics
    ANALYTICS_VIEW = "analytics:view"
    ANALYTICS_EXPORT = "analytics:export"
    ANALYTICS_ADVANCED = "analytics:advanced"

    # System
    SYSTEM_SETTINGS = "system:settings"
    AUDIT_LOG_VIEW = "audit:view"
    AUDIT_LOG_EXPORT = "audit:export"
    SYSTEM_BACKUP = "system:backup"
    SYSTEM_RESTORE = "system:restore"

    # Tests
    TEST_CREATE = "test:create"
    TEST_VIEW = "test:view"
    TEST_EDIT = "test:edit"
    TEST_DELETE = "test:delete"
    TEST_PUBLISH = "test:publish"
    TEST_ASSIGN = "test:assign"
    TEST_GRADE = "test:grade"

    # Notifications
    NOTIFICATION_SEND = "notification:send"
    NOTIFICATION_MANAGE = "notification:manage"

    # Reports
    REPORT_VIEW = "report:view"
    REPORT_CREATE = "report:create"
    REPORT_EXPORT = "report:export"


ALL_PERMISSIONS: FrozenSet[str] = frozenset(p.value for p in Permission)

# Hebrew descriptions shown in the permission management screen
PERMISSION_DESCRIPTIONS: Dict[str, str] = {
    Permission.QUESTION_READ.value: "צפייה בשאלות",
    Permission.QUESTION_CREATE.value: "יצירת שאלות",
    Permission.QUESTION_UPDATE.value: "עדכון שאלות",
    Permission.QUESTION_DELETE.value: "מחיקת שאלות",
    Permission.QUESTION_EXPORT.value: "ייצוא שאלות",
    Permission.QUESTION_SUSPEND.value: "השעיית שאלות",
    Permission.QUESTION_REACTIVATE.value: "הפעלת שאלות מחדש",
    Permission.QUESTION_APPROVE.value: "אישור שאלות",
    Permission.QUESTION_REVIEW.value: "סקירת שאלות",
    Permission.CONTENT_READ.value: "צפייה בתוכן",
    Permission.CONTENT_CREATE.value: "יצירת תוכן",
    Permission.CONTENT_UPDATE.value: "עדכון תוכן",
    Permission.CONTENT_DELETE.value: "מחיקת תוכן",
    Permission.CONTENT_PUBLISH.value: "פרסום תוכן",
    Permission.ACTIVITY_READ_OWN.value: "צפייה בפעילות עצמית",
    Permission.ACTIVITY_READ_ALL.value: "צפייה בכל הפעילויות",
    Permission.ACTIVITY_CREATE.value: "יצירת פעילות",
    Permission.ACTIVITY_UPDATE.value: "עדכון פעילות",
    Permission.ACTIVITY_DELETE.value: "מחיקת פעילות",
    Permission.ACTIVITY_EXPORT.value: "ייצוא פעילות",
    Permission.PROGRESS_READ_OWN.value: "צפייה בהתקדמות עצמית",
    Permission.PROGRESS_READ_ALL.value: "צפייה בכל ההתקדמות",
    Permission.PROGRESS_EXPORT.value: "ייצוא התקדמות",
    Permission.NOTE_CREATE.value: "יצירת הערות",
    Permission.NOTE_READ_OWN.value: "צפייה בהערות עצמיות",
    Permission.NOTE_READ_ALL.value: "צפייה בכל ההערות",
    Permission.NOTE_UPDATE_OWN.value: "עדכון הערות עצמיות",
    Permission.NOTE_UPDATE_ALL.value: "עדכון כל ההערות",
    Permission.NOTE_DELETE_OWN.value: "מחיקת הערות עצמיות",
    Permission.NOTE_DELETE_ALL.value: "מחיקת כל ההערות",
    Permission.PLAN_READ.value: "צפייה בתוכניות לימוד",
    Permission.PLAN_CREATE.value: "יצירת תוכניות לימוד",
    Permission.PLAN_UPDATE.value: "עדכון תוכניות לימוד",
    Permission.PLAN_DELETE.value: "מחיקת תוכניות לימוד",
    Permission.PLAN_ENROLL.value: "הרשמה לתוכניות לימוד",
    Permission.PLAN_ASSIGN.value: "הקצאת תוכניות לימוד",
    Permission.PLAN_PUBLISH.value: "פרסום תוכניות לימוד",
    Permission.USER_READ.value: "צפייה במשתמשים",
    Permission.USER_CREATE.value: "יצירת משתמשים",
    Permission.USER_UPDATE.value: "עדכון משתמשים",
    Permission.USER_DELETE.value: "מחיקת משתמשים",
    Permission.USER_UPDATE_OWN.value: "עדכון פרופיל עצמי",
    Permission.USER_VIEW_PROFILE.value: "צפייה בפרופילים",
    Permission.USER_CHANGE_ROLE.value: "שינוי תפקידים",
    Permission.USER_MANAGE_PERMISSIONS.value: "ניהול הרשאות",
    Permission.ANALYTICS_VIEW.value: "צפייה באנליטיקה",
    Permission.ANALYTICS_EXPORT.value: "ייצוא אנליטיקה",
    Permission.ANALYTICS_ADVANCED.value: "אנליטיקה מתקדמת",
    Permission.SYSTEM_SETTINGS.value: "הגדרות מערכת",
    Permission.AUDIT_LOG_VIEW.value: "צפייה ביומן ביקורת",
    Permission.AUDIT_LOG_EXPORT.value: "ייצוא יומן ביקורת",
    Permission.SYSTEM_BACKUP.value: "גיבוי מערכת",
    Permission.SYSTEM_RESTORE.value: "שחזור מערכת",
    Permission.TEST_CREATE.value: "יצירת מבחנים",
    Permission.TEST_VIEW.value: "צפייה במבחנים",
    Permission.TEST_EDIT.value: "עריכת מבחנים",
    Permission.TEST_DELETE.value: "מחיקת מבחנים",
    Permission.TEST_PUBLISH.value: "פרסום מבחנים",
    Permission.TEST_ASSIGN.value: "הקצאת מבחנים",
    Permission.TEST_GRADE.value: "ציון מבחנים",
    Permission.NOTIFICATION_SEND.value: "שליחת התראות",
    Permission.NOTIFICATION_MANAGE.value: "ניהול התראות",
    Permission.REPORT_VIEW.value: "צפייה בדוחות",
    Permission.REPORT_CREATE.value: "יצירת דוחות",
    Permission.REPORT_EXPORT.value: "ייצוא דוחות",
}

# Display groups, in screen order. "audit:*" tokens live under "system".
PERMISSION_GROUPS: Dict[str, str] = {
    "question": "שאלות",
    "content": "תוכן",
    "activity": "פעילות",
    "progress": "התקדמות",
    "note": "הערות",
    "plan": "תוכניות לימוד",
    "user": "משתמשים",
    "analytics": "אנליטיקה",
    "system": "מערכת",
    "test": "מבחנים",
    "notification": "התראות",
    "report": "דוחות",
}

_GROUP_ALIASES: Dict[str, str] = {"audit": "system"}


def _token(value: Any) -> Any:
    """Unwrap Permission members to their string value."""
    if isinstance(value, Permission):
        return value.value
    return value


def is_valid_permission(permission: Any) -> bool:
    """Return True if the token is part of the catalog."""
    token = _token(permission)
    return isinstance(token, str) and token in ALL_PERMISSIONS


def parse_permission(permission: Any) -> Permission:
    """
    Validate a raw token and return the catalog member.

    Raises:
        InvalidPermissionError: If the token is not in the catalog
    """
    if not is_valid_permission(permission):
        raise InvalidPermissionError([permission])
    return Permission(_token(permission))


def get_permission_description(permission: Any) -> Any:
    """
    Get the Hebrew description of a permission.

    Falls back to the token itself when no description is registered.
    """
    token = _token(permission)
    if not isinstance(token, str):
        return permission
    return PERMISSION_DESCRIPTIONS.get(token, token)


def permission_group(permission: Any) -> Optional[str]:
    """Return the display group of a catalog token, or None if unknown."""
    if not is_valid_permission(permission):
        return None
    resource = _token(permission).split(":", 1)[0]
    return _GROUP_ALIASES.get(resource, resource)


def permissions_by_group() -> Dict[str, List[str]]:
    """Catalog tokens bucketed by display group, in catalog order."""
    grouped: Dict[str, List[str]] = {group: [] for group in PERMISSION_GROUPS}
    for perm in Permission:
        grouped[permission_group(perm.value)].append(perm.value)
    return grouped
