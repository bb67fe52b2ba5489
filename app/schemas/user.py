"""Schemas for users and their custom permissions."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from app.core.roles import VALID_ROLES, parse_role


def _validate_role(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    parsed = parse_role(v)
    if parsed is None:
        raise ValueError(f"Role must be one of: {', '.join(sorted(VALID_ROLES))}")
    return parsed.value


class UserCreateRequest(BaseModel):
    """Request schema for creating a user."""
    user_id: str = Field(..., min_length=1, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = None
    role: Optional[str] = Field(None, description="trainee, instructor or admin (default trainee)")
    auth_provider: str = Field("local", pattern="^(local|google)$")
    google_id: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: Optional[str]) -> Optional[str]:
        return _validate_role(v)


class RoleUpdateRequest(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        return _validate_role(v)


class UserResponse(BaseModel):
    """Response schema for a user."""
    user_id: str
    full_name: str
    email: Optional[str] = None
    role: str
    auth_provider: str
    email_verified: bool
    points: int
    current_streak: int
    longest_streak: int
    custom_permissions: List[str] = []
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    items: List[UserResponse]
    total: int


class CurrentUserResponse(BaseModel):
    user_id: str
    full_name: Optional[str] = None
    role: str
    role_label: Optional[str] = None
    is_admin: bool
    permissions: List[str]


class CustomPermissionsRequest(BaseModel):
    """Full replacement of a user's custom permissions."""
    permissions: List[str]


class CustomPermissionAddRequest(BaseModel):
    permission: str


class CustomPermissionsResponse(BaseModel):
    user_id: str
    custom_permissions: List[str]


class UserPermissionItem(BaseModel):
    key: str
    group: Optional[str] = None
    description: str
    from_role: bool
    custom: bool
    active: bool


class UserPermissionsResponse(BaseModel):
    """Permission management view of one user."""
    user_id: str
    role: str
    role_permissions: List[str]
    custom_permissions: List[str]
    effective_permissions: List[str]
    permissions: List[UserPermissionItem]
