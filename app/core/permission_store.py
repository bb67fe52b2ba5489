"""
Custom permission store.

Per-user overlay of permissions granted on top of the user's role.
One store lives on the application (``app.state.permission_store``); it is
hydrated from the persisted user records at startup and mirrors every
successful write back to them through its ``on_change`` listener.
"""
import logging
from collections import abc
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from app.core.permissions import ALL_PERMISSIONS, InvalidPermissionError, Permission

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, List[str]], None]


def _normalize(permission) -> object:
    return permission.value if isinstance(permission, Permission) else permission


class PermissionStore:
    """In-memory overlay of custom permissions, keyed by user id."""

    def __init__(self, on_change: Optional[ChangeListener] = None):
        self._overlay: Dict[str, FrozenSet[str]] = {}
        self.on_change = on_change

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._overlay

    def __len__(self) -> int:
        return len(self._overlay)

    def users(self) -> List[str]:
        """User ids that currently hold an overlay entry."""
        return sorted(self._overlay)

    def get_custom_permissions(self, user_id: Optional[str]) -> FrozenSet[str]:
        """Custom permissions of a user (empty when the user has none)."""
        if not user_id:
            return frozenset()
        return self._overlay.get(user_id, frozenset())

    def has_custom_permission(self, user_id: Optional[str], permission) -> bool:
        return _normalize(permission) in self.get_custom_permissions(user_id)

    def set_custom_permissions(self, user_id: str, permissions: Iterable) -> FrozenSet[str]:
        """
        Replace a user's overlay.

        The whole list is validated before anything is written; a single
        unknown token rejects the call and leaves the store unchanged.

        Raises:
            InvalidPermissionError: If the list is not a list of catalog tokens
        """
        if isinstance(permissions, (str, bytes)) or not isinstance(permissions, abc.Iterable):
            raise InvalidPermissionError([], "Permission list must be a list")
        tokens = [_normalize(p) for p in permissions]
        invalid = [t for t in tokens if not isinstance(t, str) or t not in ALL_PERMISSIONS]
        if invalid:
            raise InvalidPermissionError(invalid)

        current = self.get_custom_permissions(user_id)
        new = frozenset(tokens)
        if new == current:
            return current
        return self._write(user_id, new)

    def add_custom_permission(self, user_id: str, permission) -> FrozenSet[str]:
        """
        Grant one permission to a user. Granting twice is a no-op.

        Raises:
            InvalidPermissionError: If the token is not in the catalog
        """
        token = _normalize(permission)
        if not isinstance(token, str) or token not in ALL_PERMISSIONS:
            raise InvalidPermissionError([token])

        current = self.get_custom_permissions(user_id)
        if token in current:
            return current
        return self._write(user_id, current | {token})

    def remove_custom_permission(self, user_id: str, permission) -> FrozenSet[str]:
        """Revoke one custom permission. Revoking an absent permission is a no-op."""
        token = _normalize(permission)
        current = self.get_custom_permissions(user_id)
        if token not in current:
            return current
        return self._write(user_id, current - {token})

    def forget(self, user_id: str) -> None:
        """Drop a user's overlay without notifying the listener (user deleted)."""
        if self._overlay.pop(user_id, None) is not None:
            logger.info(f"Dropped custom permissions of deleted user {user_id}")

    def load(self, records: Iterable[Tuple[str, Iterable[str]]]) -> int:
        """
        Hydrate the store from persisted ``(user_id, permissions)`` records.

        Tokens that are no longer in the catalog are skipped with a warning.
        The listener is not called. Returns the number of users loaded.
        """
        self._overlay.clear()
        for user_id, permissions in records:
            valid = set()
            for token in permissions or []:
                if token in ALL_PERMISSIONS:
                    valid.add(token)
                else:
                    logger.warning(f"Ignoring unknown stored permission '{token}' for user {user_id}")
            if valid:
                self._overlay[user_id] = frozenset(valid)
        logger.info(f"Loaded custom permissions for {len(self._overlay)} users")
        return len(self._overlay)

    def _write(self, user_id: str, permissions: FrozenSet[str]) -> FrozenSet[str]:
        if permissions:
            self._overlay[user_id] = permissions
        else:
            self._overlay.pop(user_id, None)
        logger.info(f"Custom permissions for user {user_id} set to {sorted(permissions)}")
        self._notify(user_id, permissions)
        return permissions

    def _notify(self, user_id: str, permissions: FrozenSet[str]) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change(user_id, sorted(permissions))
        except Exception as e:
            # In-memory state stays authoritative for this process
            logger.warning(
                f"Failed to persist custom permissions for user {user_id}: {e}",
                exc_info=True,
            )
