"""
Activity logging service for audit trail.
"""
import logging
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
from fastapi import Request

from app.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    actor,
    action: str,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> ActivityLog:
    """
    Log an activity to the audit trail.

    Args:
        db: Database session
        actor: Acting principal (CurrentUser) or None for system actions
        action: Action name (e.g., "permission_grant", "role_change")
        resource_type: Type of resource affected (e.g., "user")
        resource_id: Id of the affected resource
        details: Additional JSON details about the action
        request: FastAPI request object (for IP/user agent extraction)

    Returns:
        Created ActivityLog record
    """
    ip_address = None
    user_agent = None
    if request:
        if request.client:
            ip_address = request.client.host
        # Proxies put the original client first
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            ip_address = forwarded_for.split(",")[0].strip()
        user_agent = request.headers.get("User-Agent")

    activity = ActivityLog(
        actor_user_id=getattr(actor, "user_id", None),
        actor_role=getattr(actor, "role", None),
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    db.add(activity)
    db.commit()
    db.refresh(activity)

    logger.debug(f"Logged activity: {action} by {activity.actor_user_id or 'system'}")

    return activity


class ActivityAction:
    """Constants for activity actions."""
    USER_CREATE = "user_create"
    USER_DEACTIVATE = "user_deactivate"
    ROLE_CHANGE = "role_change"
    PERMISSION_GRANT = "permission_grant"
    PERMISSION_REVOKE = "permission_revoke"
    PERMISSIONS_REPLACE = "permissions_replace"


class ResourceType:
    """Constants for resource types."""
    USER = "user"
    PERMISSION = "permission"
