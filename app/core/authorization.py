"""
Authorization evaluator.

The single decision point for "may this principal do this?". Combines the
static role matrix with the per-user custom overlay held by the
PermissionStore. Evaluation is deterministic and deny-by-default: a missing
role or permission is a denial, never an error.

Usage:
    evaluator = AuthorizationEvaluator(store)

    if evaluator.has_permission("instructor", "question:create"):
        ...

    evaluator.can_perform_action("trainee", "update", "note", is_owner=True)
"""
import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from app.core.permission_store import PermissionStore
from app.core.permissions import Permission
from app.core.roles import get_role, role_permissions_for
from app.core.routes import ROUTE_PERMISSIONS, Route

logger = logging.getLogger(__name__)

ROUTE_POLICY_ALLOW = "allow"
ROUTE_POLICY_DENY = "deny"
ROUTE_POLICIES = {ROUTE_POLICY_ALLOW, ROUTE_POLICY_DENY}


def _token(permission: Any) -> Any:
    return permission.value if isinstance(permission, Permission) else permission


def _role_value(role: Any) -> Optional[str]:
    parsed = get_role(role)
    return parsed.value if parsed else None


class AuthorizationEvaluator:
    """Answers permission and route-access questions for a principal."""

    def __init__(
        self,
        store: PermissionStore,
        route_permissions: Optional[Mapping[str, str]] = None,
        default_route_policy: str = ROUTE_POLICY_ALLOW,
    ):
        if default_route_policy not in ROUTE_POLICIES:
            raise ValueError(f"Unknown route policy '{default_route_policy}'")
        self.store = store
        self.route_permissions = dict(ROUTE_PERMISSIONS if route_permissions is None else route_permissions)
        self.default_route_policy = default_route_policy

    def get_role_permissions(self, role: Any) -> FrozenSet[str]:
        return role_permissions_for(role)

    def has_permission(self, role: Any, permission: Any, user_id: Optional[str] = None) -> bool:
        """
        Check if a principal holds a permission.

        Custom grants are additive and win before the role is consulted.

        Args:
            role: Principal's role
            permission: Catalog token (or Permission member)
            user_id: Optional user id whose custom overlay is considered

        Returns:
            True if the custom overlay or the role grants the permission
        """
        token = _token(permission)
        if not role or not token:
            return False

        if user_id and self.store.has_custom_permission(user_id, token):
            return True

        return token in role_permissions_for(role)

    def has_any_permission(self, role: Any, permissions: Iterable[Any], user_id: Optional[str] = None) -> bool:
        return any(self.has_permission(role, p, user_id) for p in permissions)

    def has_all_permissions(self, role: Any, permissions: Iterable[Any], user_id: Optional[str] = None) -> bool:
        permissions = list(permissions)
        if not permissions:
            return False
        return all(self.has_permission(role, p, user_id) for p in permissions)

    def evaluate(self, role: Any, permission: Any, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Like has_permission, but reports which rule decided."""
        token = _token(permission)
        if not role or not token:
            decision = "deny_by_default"
        elif user_id and self.store.has_custom_permission(user_id, token):
            decision = "allow_custom_grant"
        elif token in role_permissions_for(role):
            decision = "allow_role_grant"
        else:
            decision = "deny_by_default"
        return {
            "allowed": decision != "deny_by_default",
            "decision": decision,
            "role": _role_value(role),
            "permission": token,
            "user_id": user_id,
        }

    def can_perform_action(
        self,
        role: Any,
        action: str,
        resource: str,
        is_owner: bool = False,
        user_id: Optional[str] = None,
    ) -> bool:
        """
        Check an action on a resource type.

        Owners are first checked against ``resource:action:own``; anybody
        then passes with ``resource:action`` or ``resource:action:all``.
        """
        if not action or not resource:
            return False

        if is_owner and self.has_permission(role, f"{resource}:{action}:own", user_id):
            return True

        return (
            self.has_permission(role, f"{resource}:{action}", user_id)
            or self.has_permission(role, f"{resource}:{action}:all", user_id)
        )

    def get_user_permissions(self, role: Any, user_id: Optional[str] = None) -> FrozenSet[str]:
        """Role permissions plus the user's custom overlay."""
        return role_permissions_for(role) | self.store.get_custom_permissions(user_id)

    def required_permission_for(self, path: str) -> Optional[str]:
        return self.route_permissions.get(path)

    def can_access_route(self, role: Any, route: Any, user_id: Optional[str] = None) -> bool:
        """
        Check if a principal may open a route.

        Public routes are always open. Without a role nothing else is.
        Routes with a registered permission delegate to has_permission;
        unregistered routes follow ``default_route_policy``.

        Args:
            role: Principal's role (None when unauthenticated)
            route: Route object or mapping with ``path`` and ``public``
            user_id: Optional user id for custom grants
        """
        if isinstance(route, Route):
            path, public = route.path, route.public
        elif isinstance(route, Mapping):
            path, public = route.get("path"), bool(route.get("public", False))
        else:
            return False

        if public:
            return True
        if not role:
            return False

        required = self.route_permissions.get(path)
        if required:
            return self.has_permission(role, required, user_id)

        return self.default_route_policy == ROUTE_POLICY_ALLOW

    def can_access_resource(
        self,
        role: Any,
        resource_type: str,
        resource_id: Any = None,
        user_id: Optional[str] = None,
    ) -> bool:
        """Resource-level read check; currently the ``resource_type:read`` permission."""
        return self.has_permission(role, f"{resource_type}:read", user_id)

    def filter_by_permissions(
        self,
        items: Iterable[Mapping[str, Any]],
        role: Any,
        permission_key: str,
        user_id: Optional[str] = None,
    ) -> List[Mapping[str, Any]]:
        """
        Keep items the principal may see.

        Each item may carry ``permissions: {key: token}``; items without a
        requirement for ``permission_key`` are always kept.
        """
        result = []
        for item in items:
            requirements = item.get("permissions") or {}
            required = requirements.get(permission_key)
            if not required or self.has_permission(role, required, user_id):
                result.append(item)
        return result
