"""
Permission catalog and evaluation endpoints.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status

from app.core.auth import get_evaluator, require_user, CurrentUser
from app.core.authorization import AuthorizationEvaluator
from app.core.permissions import (
    PERMISSION_GROUPS,
    Permission,
    get_permission_description,
    permissions_by_group,
)
from app.core.roles import get_role_label, parse_role
from app.schemas.permission import (
    ActionCheckRequest,
    ActionCheckResponse,
    PermissionCatalogResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionGroup,
    PermissionInfo,
    RolePermissionsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_subject(user: CurrentUser, evaluator: AuthorizationEvaluator, user_id: Optional[str]) -> None:
    """
    Only the caller's own custom grants may be consulted, unless the caller
    manages permissions.
    """
    if not user_id or user_id == user.user_id:
        return
    if not evaluator.has_permission(user.role, Permission.USER_MANAGE_PERMISSIONS, user.user_id):
        logger.warning(f"User {user.user_id} tried to evaluate custom grants of user {user_id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions. Required permission: {Permission.USER_MANAGE_PERMISSIONS.value}",
        )


@router.get("/", response_model=PermissionCatalogResponse)
async def list_permissions(_user: CurrentUser = Depends(require_user)):
    """
    List the permission catalog, grouped by resource, with Hebrew descriptions.
    """
    groups = []
    total = 0
    for group, tokens in permissions_by_group().items():
        groups.append(PermissionGroup(
            group=group,
            label=PERMISSION_GROUPS[group],
            permissions=[
                PermissionInfo(key=t, description=get_permission_description(t)) for t in tokens
            ],
        ))
        total += len(tokens)
    return PermissionCatalogResponse(groups=groups, total=total)


@router.get("/roles/{role}", response_model=RolePermissionsResponse)
async def get_role_permissions(
    role: str,
    _user: CurrentUser = Depends(require_user),
    evaluator: AuthorizationEvaluator = Depends(get_evaluator),
):
    """
    Static permission set of a role. Unknown roles have no permissions.
    """
    parsed = parse_role(role)
    if parsed is None:
        return RolePermissionsResponse(role=role, label=None, permissions=[])
    return RolePermissionsResponse(
        role=parsed.value,
        label=get_role_label(parsed),
        permissions=sorted(evaluator.get_role_permissions(parsed)),
    )


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    request: PermissionCheckRequest,
    user: CurrentUser = Depends(require_user),
    evaluator: AuthorizationEvaluator = Depends(get_evaluator),
):
    """
    Evaluate a permission for a role (and optional user's custom grants).
    """
    _check_subject(user, evaluator, request.user_id)
    result = evaluator.evaluate(request.role, request.permission, request.user_id)
    logger.debug(f"Permission check {request.permission} for role {request.role}: {result['decision']}")
    return PermissionCheckResponse(**result)


@router.post("/check-action", response_model=ActionCheckResponse)
async def check_action(
    request: ActionCheckRequest,
    user: CurrentUser = Depends(require_user),
    evaluator: AuthorizationEvaluator = Depends(get_evaluator),
):
    """
    Evaluate an action on a resource type, honouring ``:own`` scoped permissions.
    """
    _check_subject(user, evaluator, request.user_id)
    allowed = evaluator.can_perform_action(
        request.role,
        request.action,
        request.resource,
        is_owner=request.is_owner,
        user_id=request.user_id,
    )
    return ActionCheckResponse(allowed=allowed)
