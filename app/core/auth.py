"""
Authentication and route guards.

Resolves the calling user from the user id header and gates endpoints and
client routes through the AuthorizationEvaluator. Unauthenticated callers
get 401 (client redirects to /login); authenticated callers lacking the
permission get 403 (client redirects to /unauthorized).
"""
import logging
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.authorization import AuthorizationEvaluator
from app.core.config import settings
from app.core.database import get_db
from app.core.permission_store import PermissionStore
from app.core.roles import get_role
from app.core.routes import LOGIN_PATH, UNAUTHORIZED_PATH, get_route_by_path
from app.services.user_service import get_user

logger = logging.getLogger(__name__)


class CurrentUser:
    """Authenticated principal of a request."""
    def __init__(self, user_id: str, role: str, full_name: Optional[str] = None):
        self.user_id = user_id
        self.role = role
        self.full_name = full_name


def get_permission_store(request: Request) -> PermissionStore:
    """Dependency returning the application's custom permission store."""
    return request.app.state.permission_store


def get_evaluator(store: PermissionStore = Depends(get_permission_store)) -> AuthorizationEvaluator:
    """Dependency returning an evaluator over the application's store."""
    return AuthorizationEvaluator(store, default_route_policy=settings.ROUTE_DEFAULT_POLICY)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> Optional[CurrentUser]:
    """
    Resolve the caller from the user id header.

    Returns:
        CurrentUser, or None when the header is missing or names no active user
    """
    user_id = request.headers.get(settings.USER_ID_HEADER)
    if not user_id:
        return None

    user = get_user(db, user_id.strip())
    if user is None:
        logger.warning(f"Unknown or inactive user id in request: {user_id[:32]}")
        return None

    return CurrentUser(user_id=user.user_id, role=user.role, full_name=user.full_name)


def require_user(user: Optional[CurrentUser] = Depends(get_current_user)) -> CurrentUser:
    """Dependency: the request must be authenticated."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": settings.USER_ID_HEADER},
        )
    return user


def require_permission(permission: Any):
    """
    Dependency factory: the caller must hold a permission.

    Args:
        permission: Catalog token or Permission member

    Returns:
        Dependency function returning the CurrentUser when allowed
    """
    token = getattr(permission, "value", permission)

    def check_permission(
        user: CurrentUser = Depends(require_user),
        evaluator: AuthorizationEvaluator = Depends(get_evaluator),
    ) -> CurrentUser:
        if not evaluator.has_permission(user.role, token, user.user_id):
            logger.warning(
                f"Access denied: user {user.user_id} (role '{user.role}') lacks permission '{token}'"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required permission: {token}",
            )
        return user

    return check_permission


def require_action(action: str, resource: str):
    """Dependency factory: the caller may perform ``action`` on any ``resource``."""
    def check_action(
        user: CurrentUser = Depends(require_user),
        evaluator: AuthorizationEvaluator = Depends(get_evaluator),
    ) -> CurrentUser:
        if not evaluator.can_perform_action(user.role, action, resource, user_id=user.user_id):
            logger.warning(
                f"Access denied: user {user.user_id} (role '{user.role}') may not {action} {resource}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions for {action} on {resource}",
            )
        return user

    return check_action


class GuardDecision:
    """Outcome of a navigation attempt."""
    ALLOW = "allow"
    LOGIN = "login"
    UNAUTHORIZED = "unauthorized"

    def __init__(self, outcome: str, path: str, redirect_to: Optional[str] = None):
        self.outcome = outcome
        self.path = path
        self.redirect_to = redirect_to

    @property
    def allowed(self) -> bool:
        return self.outcome == self.ALLOW


def _role_allowed(role: Any, allowed_roles) -> bool:
    parsed = get_role(role)
    return parsed is not None and parsed.value in allowed_roles


class RouteGuard:
    """
    Decides whether a navigation renders or redirects.

    A non-public route first requires a signed-in user, then one of the
    route's roles (when it lists any), then the evaluator's route check.
    """

    def __init__(self, evaluator: AuthorizationEvaluator):
        self.evaluator = evaluator

    def check(self, user: Optional[CurrentUser], path: str) -> GuardDecision:
        route = get_route_by_path(path)

        if route.public:
            return GuardDecision(GuardDecision.ALLOW, route.path)

        if user is None:
            return GuardDecision(GuardDecision.LOGIN, route.path, LOGIN_PATH)

        if route.roles and not _role_allowed(user.role, route.roles):
            logger.info(f"Route {route.path} denied for user {user.user_id}: role '{user.role}' not in {route.roles}")
            return GuardDecision(GuardDecision.UNAUTHORIZED, route.path, UNAUTHORIZED_PATH)

        if self.evaluator.can_access_route(user.role, route, user.user_id):
            return GuardDecision(GuardDecision.ALLOW, route.path)

        logger.info(f"Route {route.path} denied for user {user.user_id} (role '{user.role}')")
        return GuardDecision(GuardDecision.UNAUTHORIZED, route.path, UNAUTHORIZED_PATH)


def get_route_guard(evaluator: AuthorizationEvaluator = Depends(get_evaluator)) -> RouteGuard:
    return RouteGuard(evaluator)
