"""
User management and custom permission endpoints.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from app.core.auth import CurrentUser, get_evaluator, get_permission_store, require_permission, require_user
from app.core.authorization import AuthorizationEvaluator
from app.core.database import get_db
from app.core.permission_store import PermissionStore
from app.core.permissions import InvalidPermissionError, Permission
from app.core.roles import Role, get_role_label
from app.schemas.user import (
    CurrentUserResponse,
    CustomPermissionAddRequest,
    CustomPermissionsRequest,
    CustomPermissionsResponse,
    RoleUpdateRequest,
    UserCreateRequest,
    UserListResponse,
    UserPermissionsResponse,
    UserResponse,
)
from app.services import permission_service, user_service
from app.services.activity_service import ActivityAction, ResourceType, log_activity
from app.services.permission_service import PermissionConflictError
from app.services.user_service import UserServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


def _invalid_permission(e: InvalidPermissionError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"message": str(e), "invalid": e.invalid},
    )


def _user_response(user, store: PermissionStore) -> UserResponse:
    # custom_permissions reflects the store, not the stored record
    return UserResponse.model_validate(user).model_copy(
        update={"custom_permissions": sorted(store.get_custom_permissions(user.user_id))}
    )


def _load_user(db: Session, user_id: str):
    try:
        return user_service.require_user(db, user_id)
    except UserServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/", response_model=UserListResponse)
async def list_users(
    search: Optional[str] = Query(None, description="Substring of name, email or user id"),
    role: Optional[str] = Query(None, description="Filter by role"),
    _user: CurrentUser = Depends(require_permission(Permission.USER_READ)),
    store: PermissionStore = Depends(get_permission_store),
    db: Session = Depends(get_db),
):
    """List active users."""
    users = user_service.list_users(db, search=search, role=role)
    return UserListResponse(
        items=[_user_response(u, store) for u in users],
        total=len(users),
    )


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: UserCreateRequest,
    http_request: Request,
    actor: CurrentUser = Depends(require_permission(Permission.USER_CREATE)),
    store: PermissionStore = Depends(get_permission_store),
    db: Session = Depends(get_db),
):
    """Create a user. Configured admin emails always become admins."""
    try:
        user = user_service.create_user(
            db,
            user_id=request.user_id,
            full_name=request.full_name,
            email=request.email,
            role=request.role,
            auth_provider=request.auth_provider,
            google_id=request.google_id,
        )
    except UserServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    log_activity(
        db=db,
        actor=actor,
        action=ActivityAction.USER_CREATE,
        resource_type=ResourceType.USER,
        resource_id=user.user_id,
        details={"role": user.role},
        request=http_request,
    )
    return _user_response(user, store)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    _user: CurrentUser = Depends(require_permission(Permission.USER_READ)),
    store: PermissionStore = Depends(get_permission_store),
    db: Session = Depends(get_db),
):
    """Get one user."""
    return _user_response(_load_user(db, user_id), store)


@router.delete("/{user_id}", status_code=status.HTTP_200_OK)
async def delete_user(
    user_id: str,
    http_request: Request,
    actor: CurrentUser = Depends(require_permission(Permission.USER_DELETE)),
    store: PermissionStore = Depends(get_permission_store),
    db: Session = Depends(get_db),
):
    """
    Soft-delete a user and drop its custom permission overlay.
    """
    user = _load_user(db, user_id)
    if user.user_id == actor.user_id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Users cannot delete themselves")

    user_service.deactivate_user(db, user)
    store.forget(user_id)

    log_activity(
        db=db,
        actor=actor,
        action=ActivityAction.USER_DEACTIVATE,
        resource_type=ResourceType.USER,
        resource_id=user_id,
        details={},
        request=http_request,
    )
    return {"message": "User deleted successfully", "user_id": user_id, "is_active": False}


@router.patch("/{user_id}/role", response_model=UserResponse)
async def change_user_role(
    user_id: str,
    request: RoleUpdateRequest,
    http_request: Request,
    actor: CurrentUser = Depends(require_permission(Permission.USER_CHANGE_ROLE)),
    store: PermissionStore = Depends(get_permission_store),
    db: Session = Depends(get_db),
):
    """Change a user's role."""
    user = _load_user(db, user_id)
    previous = user.role
    try:
        user = user_service.change_role(db, user, request.role)
    except UserServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    log_activity(
        db=db,
        actor=actor,
        action=ActivityAction.ROLE_CHANGE,
        resource_type=ResourceType.USER,
        resource_id=user_id,
        details={"from": previous, "to": user.role},
        request=http_request,
    )
    return _user_response(user, store)


@router.get("/{user_id}/permissions", response_model=UserPermissionsResponse)
async def get_user_permissions(
    user_id: str,
    _user: CurrentUser = Depends(require_permission(Permission.USER_MANAGE_PERMISSIONS)),
    evaluator: AuthorizationEvaluator = Depends(get_evaluator),
    db: Session = Depends(get_db),
):
    """
    Role, custom and effective permissions of a user, with a per-token breakdown.
    """
    user = _load_user(db, user_id)
    return UserPermissionsResponse(**permission_service.describe_user_permissions(evaluator, user))


@router.put("/{user_id}/permissions/custom", response_model=CustomPermissionsResponse)
async def set_custom_permissions(
    user_id: str,
    request: CustomPermissionsRequest,
    http_request: Request,
    actor: CurrentUser = Depends(require_permission(Permission.USER_MANAGE_PERMISSIONS)),
    store: PermissionStore = Depends(get_permission_store),
    db: Session = Depends(get_db),
):
    """
    Replace a user's custom permissions. One invalid token rejects the whole list.
    """
    user = _load_user(db, user_id)
    try:
        perms = permission_service.replace_permissions(store, user, request.permissions)
    except InvalidPermissionError as e:
        logger.warning(f"Rejected custom permissions for user {user_id}: {e}")
        raise _invalid_permission(e)

    log_activity(
        db=db,
        actor=actor,
        action=ActivityAction.PERMISSIONS_REPLACE,
        resource_type=ResourceType.USER,
        resource_id=user_id,
        details={"permissions": sorted(perms)},
        request=http_request,
    )
    return CustomPermissionsResponse(user_id=user_id, custom_permissions=sorted(perms))


@router.post("/{user_id}/permissions/custom", response_model=CustomPermissionsResponse)
async def add_custom_permission(
    user_id: str,
    request: CustomPermissionAddRequest,
    http_request: Request,
    actor: CurrentUser = Depends(require_permission(Permission.USER_MANAGE_PERMISSIONS)),
    store: PermissionStore = Depends(get_permission_store),
    evaluator: AuthorizationEvaluator = Depends(get_evaluator),
    db: Session = Depends(get_db),
):
    """
    Grant one custom permission. Permissions the role already holds are refused.
    """
    user = _load_user(db, user_id)
    try:
        perms = permission_service.grant_permission(store, evaluator, user, request.permission)
    except InvalidPermissionError as e:
        raise _invalid_permission(e)
    except PermissionConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    log_activity(
        db=db,
        actor=actor,
        action=ActivityAction.PERMISSION_GRANT,
        resource_type=ResourceType.USER,
        resource_id=user_id,
        details={"permission": request.permission},
        request=http_request,
    )
    return CustomPermissionsResponse(user_id=user_id, custom_permissions=sorted(perms))


@router.delete("/{user_id}/permissions/custom/{permission}", response_model=CustomPermissionsResponse)
async def remove_custom_permission(
    user_id: str,
    permission: str,
    http_request: Request,
    actor: CurrentUser = Depends(require_permission(Permission.USER_MANAGE_PERMISSIONS)),
    store: PermissionStore = Depends(get_permission_store),
    db: Session = Depends(get_db),
):
    """
    Revoke one custom permission. Revoking a permission the user lacks is a no-op.
    """
    user = _load_user(db, user_id)
    perms = permission_service.revoke_permission(store, user, permission)

    log_activity(
        db=db,
        actor=actor,
        action=ActivityAction.PERMISSION_REVOKE,
        resource_type=ResourceType.USER,
        resource_id=user_id,
        details={"permission": permission},
        request=http_request,
    )
    return CustomPermissionsResponse(user_id=user_id, custom_permissions=sorted(perms))


# Separate router for the caller's own identity
auth_router = APIRouter()


@auth_router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_info(
    user: CurrentUser = Depends(require_user),
    evaluator: AuthorizationEvaluator = Depends(get_evaluator),
):
    """
    Current user, role and effective permissions.

    Lets the client decide which controls to render.
    """
    return CurrentUserResponse(
        user_id=user.user_id,
        full_name=user.full_name,
        role=user.role,
        role_label=get_role_label(user.role),
        is_admin=user.role == Role.ADMIN.value,
        permissions=sorted(evaluator.get_user_permissions(user.role, user.user_id)),
    )
