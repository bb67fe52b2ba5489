"""Database models."""
from app.models.user import User
from app.models.activity_log import ActivityLog

__all__ = [
    "User",
    "ActivityLog",
]
