"""
User service: lookup, creation, role changes and deletion of platform users.
"""
import logging
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.roles import Role, parse_role
from app.models.user import User

logger = logging.getLogger(__name__)


class UserServiceError(Exception):
    """User operation error."""
    def __init__(self, message, status_code=400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def get_user(db: Session, user_id: str, include_inactive: bool = False) -> Optional[User]:
    """Get a user by its external user id."""
    if not user_id:
        return None
    query = db.query(User).filter(User.user_id == user_id)
    if not include_inactive:
        query = query.filter(User.is_active == True)  # noqa: E712
    return query.first()


def require_user(db: Session, user_id: str) -> User:
    """Get an active user or raise a 404 UserServiceError."""
    user = get_user(db, user_id)
    if user is None:
        raise UserServiceError(f"User '{user_id}' not found", 404)
    return user


def list_users(db: Session, search: Optional[str] = None, role: Optional[str] = None) -> List[User]:
    """
    List active users.

    Args:
        db: Database session
        search: Case-insensitive substring of full name, email or user id
        role: Only users with this role
    """
    query = db.query(User).filter(User.is_active == True)  # noqa: E712
    if role:
        parsed = parse_role(role)
        if parsed is None:
            return []
        query = query.filter(User.role == parsed.value)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(User.full_name).like(pattern),
            func.lower(User.email).like(pattern),
            func.lower(User.user_id).like(pattern),
        ))
    return query.order_by(User.full_name).all()


def create_user(
    db: Session,
    user_id: str,
    full_name: str,
    email: Optional[str] = None,
    role: Optional[str] = None,
    auth_provider: str = "local",
    google_id: Optional[str] = None,
) -> User:
    """
    Create a user.

    Addresses listed in ADMIN_EMAILS always get the admin role; otherwise
    the requested role is used, defaulting to trainee.
    """
    if get_user(db, user_id, include_inactive=True) is not None:
        raise UserServiceError(f"User '{user_id}' already exists", 409)

    if settings.is_admin_email(email):
        resolved = Role.ADMIN
    elif role is None:
        resolved = Role.TRAINEE
    else:
        resolved = parse_role(role)
        if resolved is None:
            raise UserServiceError(f"Unknown role '{role}'")

    user = User(
        user_id=user_id,
        full_name=full_name,
        email=email,
        role=resolved.value,
        auth_provider=auth_provider,
        google_id=google_id,
        custom_permissions=[],
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created user {user_id} with role {resolved.value}")
    return user


def change_role(db: Session, user: User, role: str) -> User:
    """Change a user's role."""
    parsed = parse_role(role)
    if parsed is None:
        raise UserServiceError(f"Unknown role '{role}'")
    previous = user.role
    user.role = parsed.value
    db.commit()
    db.refresh(user)
    logger.info(f"Changed role of user {user.user_id}: {previous} -> {parsed.value}")
    return user


def deactivate_user(db: Session, user: User) -> User:
    """Soft-delete a user. The caller drops the user's permission overlay."""
    user.is_active = False
    user.custom_permissions = []
    db.commit()
    logger.info(f"Deactivated user {user.user_id}")
    return user
