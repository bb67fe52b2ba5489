"""
Activity log endpoints for the audit trail of permission and user changes.
"""
import logging
from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from app.core.auth import CurrentUser, require_permission
from app.core.database import get_db
from app.core.permissions import Permission
from app.models.activity_log import ActivityLog
from app.schemas.activity import ActivityLogResponse, ActivityLogListResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=ActivityLogListResponse)
async def list_activity_logs(
    limit: int = Query(50, ge=1, le=500, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    start_date: Optional[datetime] = Query(None, description="Filter logs from this date"),
    end_date: Optional[datetime] = Query(None, description="Filter logs until this date"),
    actor_user_id: Optional[str] = Query(None, description="Filter by acting user"),
    action: Optional[str] = Query(None, description="Filter by action type"),
    resource_id: Optional[str] = Query(None, description="Filter by affected resource id"),
    _user: CurrentUser = Depends(require_permission(Permission.AUDIT_LOG_VIEW)),
    db: Session = Depends(get_db),
):
    """
    List activity logs with optional filters, newest first.
    """
    query = db.query(ActivityLog)

    if start_date:
        query = query.filter(ActivityLog.timestamp >= start_date)
    if end_date:
        query = query.filter(ActivityLog.timestamp <= end_date)
    if actor_user_id:
        query = query.filter(ActivityLog.actor_user_id == actor_user_id)
    if action:
        query = query.filter(ActivityLog.action == action)
    if resource_id:
        query = query.filter(ActivityLog.resource_id == resource_id)

    total = query.count()
    logs = query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).offset(offset).limit(limit).all()

    return ActivityLogListResponse(
        items=[ActivityLogResponse.model_validate(log) for log in logs],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{log_id}", response_model=ActivityLogResponse)
async def get_activity_log(
    log_id: int,
    _user: CurrentUser = Depends(require_permission(Permission.AUDIT_LOG_VIEW)),
    db: Session = Depends(get_db),
):
    """
    Get a specific activity log entry by ID.
    """
    log = db.query(ActivityLog).filter(ActivityLog.id == log_id).first()
    if not log:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Activity log with id {log_id} not found"
        )
    return ActivityLogResponse.model_validate(log)
