"""
Permission service: keeps the custom permission store and the persisted
user records in step.

The user record is the durable copy: the store is hydrated from it at
startup, and every successful store write is mirrored back by
UserPermissionSync. A failed mirror is logged by the store and does not
change the in-memory decision state.
"""
import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session, sessionmaker

from app.core.authorization import AuthorizationEvaluator
from app.core.permission_store import PermissionStore
from app.core.permissions import (
    Permission,
    get_permission_description,
    parse_permission,
    permission_group,
)
from app.models.user import User

logger = logging.getLogger(__name__)


class PermissionConflictError(Exception):
    """Raised when a custom grant duplicates a permission the role already holds."""

    def __init__(self, user_id: str, permission: str):
        super().__init__(f"Permission '{permission}' is already included in the role of user {user_id}")
        self.user_id = user_id
        self.permission = permission


class UserPermissionSync:
    """Store listener that writes a user's overlay to ``User.custom_permissions``."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def __call__(self, user_id: str, permissions: List[str]) -> None:
        db = self.session_factory()
        try:
            user = db.query(User).filter(User.user_id == user_id).first()
            if user is None:
                raise LookupError(f"User '{user_id}' has no stored record")
            user.custom_permissions = list(permissions)
            db.commit()
            logger.debug(f"Mirrored {len(permissions)} custom permissions to user {user_id}")
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def hydrate_permission_store(db: Session, store: PermissionStore) -> int:
    """Load every active user's stored overlay into the store."""
    rows = (
        db.query(User.user_id, User.custom_permissions)
        .filter(User.is_active == True)  # noqa: E712
        .all()
    )
    return store.load((user_id, perms or []) for user_id, perms in rows)


def grant_permission(
    store: PermissionStore,
    evaluator: AuthorizationEvaluator,
    user: User,
    permission: Any,
) -> frozenset:
    """
    Grant a custom permission to a user.

    Raises:
        InvalidPermissionError: Token not in the catalog
        PermissionConflictError: The user's role already holds it
    """
    token = parse_permission(permission).value
    if token in evaluator.get_role_permissions(user.role):
        raise PermissionConflictError(user.user_id, token)
    return store.add_custom_permission(user.user_id, token)


def revoke_permission(store: PermissionStore, user: User, permission: Any) -> frozenset:
    """Revoke a custom permission (no-op when the user does not hold it)."""
    return store.remove_custom_permission(user.user_id, permission)


def replace_permissions(store: PermissionStore, user: User, permissions: List[Any]) -> frozenset:
    """Replace the user's whole overlay. Validation is all-or-nothing."""
    return store.set_custom_permissions(user.user_id, permissions)


def describe_user_permissions(evaluator: AuthorizationEvaluator, user: User) -> Dict[str, Any]:
    """
    Build the permission management view of one user.

    Every catalog token is listed with whether it comes from the role,
    from a custom grant, and whether it is effective.
    """
    role_perms = evaluator.get_role_permissions(user.role)
    custom_perms = evaluator.store.get_custom_permissions(user.user_id)
    effective = evaluator.get_user_permissions(user.role, user.user_id)

    items = []
    for perm in Permission:
        token = perm.value
        items.append({
            "key": token,
            "group": permission_group(token),
            "description": get_permission_description(token),
            "from_role": token in role_perms,
            "custom": token in custom_perms and token not in role_perms,
            "active": token in effective,
        })

    return {
        "user_id": user.user_id,
        "role": user.role,
        "role_permissions": sorted(role_perms),
        "custom_permissions": sorted(custom_perms),
        "effective_permissions": sorted(effective),
        "permissions": items,
    }
