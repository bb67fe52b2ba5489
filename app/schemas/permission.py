"""Schemas for permission catalog and checks."""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class PermissionInfo(BaseModel):
    """One catalog entry."""
    key: str
    description: str


class PermissionGroup(BaseModel):
    """Catalog entries of one resource group."""
    group: str
    label: str
    permissions: List[PermissionInfo]


class PermissionCatalogResponse(BaseModel):
    groups: List[PermissionGroup]
    total: int


class RolePermissionsResponse(BaseModel):
    role: str
    label: Optional[str] = None
    permissions: List[str]


class PermissionCheckRequest(BaseModel):
    """Request schema for a single permission check."""
    role: Optional[str] = None
    permission: str = Field(..., description="Permission token, e.g. question:create")
    user_id: Optional[str] = None


class PermissionCheckResponse(BaseModel):
    allowed: bool
    decision: str  # allow_custom_grant | allow_role_grant | deny_by_default
    role: Optional[str] = None
    permission: Optional[str] = None
    user_id: Optional[str] = None


class ActionCheckRequest(BaseModel):
    """Request schema for an action-on-resource check."""
    role: Optional[str] = None
    action: str = Field(..., min_length=1, description="Action, e.g. update")
    resource: str = Field(..., min_length=1, description="Resource type, e.g. note")
    is_owner: bool = False
    user_id: Optional[str] = None


class ActionCheckResponse(BaseModel):
    allowed: bool


class RouteAccessResponse(BaseModel):
    """Guard decision for a client route."""
    path: str
    allowed: bool
    outcome: str  # allow | login | unauthorized
    redirect_to: Optional[str] = None
    required_permission: Optional[str] = None


class NavigationItem(BaseModel):
    path: str
    label: str
    icon: str


class NavigationResponse(BaseModel):
    role: str
    items: List[NavigationItem]
