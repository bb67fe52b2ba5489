"""Schemas for activity log."""
from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import BaseModel


class ActivityLogResponse(BaseModel):
    """Response schema for activity log entry."""
    id: int
    timestamp: datetime
    actor_user_id: Optional[str] = None
    actor_role: Optional[str] = None
    action: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    model_config = {"from_attributes": True}


class ActivityLogListResponse(BaseModel):
    """Response schema for activity log list."""
    items: List[ActivityLogResponse]
    total: int
    limit: int
    offset: int
