"""
Activity log model for audit trail.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func

from app.core.database import Base


class ActivityLog(Base):
    """Activity log model for tracking permission, role and user changes."""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    # Actor information
    actor_user_id = Column(String(128), nullable=True, index=True)  # None for system actions
    actor_role = Column(String(50), nullable=True)  # Role at time of action

    # Action details
    action = Column(String(100), nullable=False, index=True)  # e.g., "permission_grant", "role_change"
    resource_type = Column(String(50), nullable=True, index=True)  # e.g., "user", "permission"
    resource_id = Column(String(128), nullable=True, index=True)  # Id of the affected resource

    details = Column(JSON, nullable=True)

    # Request metadata
    ip_address = Column(String(45), nullable=True)  # IPv4 or IPv6
    user_agent = Column(String(255), nullable=True)
