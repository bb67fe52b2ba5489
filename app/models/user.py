"""User database model."""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from sqlalchemy.sql import func

from app.core.database import Base


class User(Base):
    """Platform user (trainee, instructor or admin)."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), unique=True, nullable=False, index=True)  # External/opaque id
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    role = Column(String(50), nullable=False, default="trainee", index=True)

    auth_provider = Column(String(50), nullable=False, default="local")  # "local" or "google"
    google_id = Column(String(255), nullable=True, index=True)
    profile_picture = Column(String(1024), nullable=True)
    email_verified = Column(Boolean, default=False, nullable=False)

    points = Column(Integer, default=0, nullable=False)
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)

    # Persistent copy of the user's permission overlay (list of catalog tokens)
    custom_permissions = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
