"""
Static route table of the training platform.

Routes are what the client navigates to. A route's ``roles`` limit who may
open it. ``ROUTE_PERMISSIONS`` lists the routes also gated by a specific
permission; every other non-public route is governed by the evaluator's
default route policy.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.core.permissions import Permission
from app.core.roles import get_role

LOGIN_PATH = "/login"
UNAUTHORIZED_PATH = "/unauthorized"


class Route(BaseModel):
    """A client route."""
    path: str
    name: Optional[str] = None
    component: Optional[str] = None
    public: bool = False
    roles: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}


ROUTES: Dict[str, Route] = {
    r.name: r for r in [
        Route(name="home", path="/", component="HomePage", public=True),
        Route(name="login", path=LOGIN_PATH, component="LoginPage", public=True),
        Route(name="practice", path="/practice", component="TraineeDashboard",
              roles=["trainee", "instructor", "admin"]),
        Route(name="progress", path="/progress", component="UserProgressDashboard",
              roles=["trainee", "instructor", "admin"]),
        Route(name="study_plans", path="/study-plans", component="StudyPlanViewer", roles=["trainee"]),
        Route(name="bookmarks", path="/bookmarks", component="BookmarksList",
              roles=["trainee", "instructor", "admin"]),
        Route(name="mock_exam", path="/mock-exam", component="MockExam", roles=["trainee"]),
        Route(name="instructor", path="/instructor", component="InstructorDashboard",
              roles=["instructor", "admin"]),
        Route(name="instructor_questions", path="/instructor/questions", component="QuestionManagement",
              roles=["instructor", "admin"]),
        Route(name="instructor_study_plans", path="/instructor/study-plans", component="StudyPlanManager",
              roles=["instructor", "admin"]),
        Route(name="instructor_analytics", path="/instructor/analytics", component="InstructorAnalytics",
              roles=["instructor", "admin"]),
        Route(name="media_bank", path="/instructor/media-bank", component="MediaBankManager",
              roles=["instructor", "admin"]),
        Route(name="manager", path="/manager", component="ManagerDashboard", roles=["admin"]),
        Route(name="admin_statistics", path="/admin/statistics", component="AdminStatistics", roles=["admin"]),
        Route(name="admin_users", path="/admin/users", component="UserManagement", roles=["admin"]),
        Route(name="admin_permissions", path="/admin/permissions", component="PermissionManagement",
              roles=["admin"]),
        Route(name="admin_audit", path="/admin/audit", component="AuditLog", roles=["admin"]),
        Route(name="data_import_export", path="/admin/data-import-export", component="DataImportExport",
              roles=["admin"]),
        Route(name="settings", path="/settings", component="SettingsPage",
              roles=["trainee", "instructor", "admin"]),
        Route(name="profile", path="/profile", component="ProfilePage",
              roles=["trainee", "instructor", "admin"]),
        Route(name="help", path="/help", component="HelpPage", public=True),
        Route(name="not_found", path="/404", component="NotFoundPage", public=True),
        Route(name="unauthorized", path=UNAUTHORIZED_PATH, component="UnauthorizedPage", public=True),
    ]
}

# Route-specific permission requirements
ROUTE_PERMISSIONS: Dict[str, str] = {
    "/instructor": Permission.ANALYTICS_VIEW.value,
    "/instructor/questions": Permission.QUESTION_CREATE.value,
    "/instructor/analytics": Permission.ANALYTICS_VIEW.value,
    "/manager": Permission.SYSTEM_SETTINGS.value,
    "/admin": Permission.SYSTEM_SETTINGS.value,
    "/admin/statistics": Permission.ANALYTICS_ADVANCED.value,
    "/admin/users": Permission.USER_READ.value,
    "/admin/permissions": Permission.USER_MANAGE_PERMISSIONS.value,
    "/admin/audit": Permission.AUDIT_LOG_VIEW.value,
}

_ROUTES_BY_PATH: Dict[str, Route] = {r.path: r for r in ROUTES.values()}


def get_route_by_path(path: str) -> Route:
    """
    Look up a route by path.

    Unknown paths yield an ad-hoc, non-public route so that guards still
    apply to them.
    """
    if len(path) > 1:
        path = path.rstrip("/")
    return _ROUTES_BY_PATH.get(path) or Route(path=path)


NAVIGATION_ITEMS: Dict[str, List[Dict[str, str]]] = {
    "trainee": [
        {"path": "/practice", "label": "תרגול", "icon": "📚"},
        {"path": "/progress", "label": "התקדמות", "icon": "📊"},
        {"path": "/study-plans", "label": "תוכניות לימוד", "icon": "📋"},
        {"path": "/bookmarks", "label": "סימניות", "icon": "🔖"},
        {"path": "/mock-exam", "label": "בחינה מדומה", "icon": "📝"},
        {"path": "/settings", "label": "הגדרות", "icon": "⚙️"},
    ],
    "instructor": [
        {"path": "/instructor", "label": "מחולל מבחנים", "icon": "📝"},
        {"path": "/instructor/questions", "label": "ניהול שאלות", "icon": "❓"},
        {"path": "/instructor/media-bank", "label": "מאגר מדיה", "icon": "🗃️"},
        {"path": "/instructor/study-plans", "label": "תוכניות לימוד", "icon": "📋"},
        {"path": "/instructor/analytics", "label": "אנליטיקה", "icon": "📊"},
        {"path": "/settings", "label": "הגדרות", "icon": "⚙️"},
    ],
    "admin": [
        {"path": "/manager", "label": "לוח בקרה", "icon": "🎛️"},
        {"path": "/instructor", "label": "מחולל מבחנים", "icon": "📝"},
        {"path": "/instructor/questions", "label": "ניהול שאלות", "icon": "❓"},
        {"path": "/instructor/media-bank", "label": "מאגר מדיה", "icon": "🗃️"},
        {"path": "/admin/data-import-export", "label": "ייבוא/ייצוא נתונים", "icon": "📥"},
        {"path": "/instructor/analytics", "label": "אנליטיקה", "icon": "📊"},
        {"path": "/settings", "label": "הגדרות מערכת", "icon": "⚙️"},
    ],
}


def get_navigation_items(role) -> List[Dict[str, str]]:
    """Navigation entries for a role (empty for unknown roles)."""
    parsed = get_role(role)
    if parsed is None:
        return []
    return [dict(item) for item in NAVIGATION_ITEMS[parsed.value]]
