"""
Client route guard endpoints.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query

from app.core.auth import CurrentUser, RouteGuard, get_current_user, get_route_guard, require_user
from app.core.routes import get_navigation_items
from app.schemas.permission import NavigationItem, NavigationResponse, RouteAccessResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/access", response_model=RouteAccessResponse)
async def check_route_access(
    path: str = Query(..., min_length=1, description="Client route path, e.g. /admin/users"),
    user: Optional[CurrentUser] = Depends(get_current_user),
    guard: RouteGuard = Depends(get_route_guard),
):
    """
    Decide whether the caller may open a client route.

    Unauthenticated callers are sent to /login, callers without the
    required permission to /unauthorized.
    """
    decision = guard.check(user, path)
    return RouteAccessResponse(
        path=decision.path,
        allowed=decision.allowed,
        outcome=decision.outcome,
        redirect_to=decision.redirect_to,
        required_permission=guard.evaluator.required_permission_for(decision.path),
    )


@router.get("/navigation", response_model=NavigationResponse)
async def get_navigation(
    user: CurrentUser = Depends(require_user),
    guard: RouteGuard = Depends(get_route_guard),
):
    """
    Navigation entries of the caller's role, limited to routes the caller can open.
    """
    items = [
        NavigationItem(**item)
        for item in get_navigation_items(user.role)
        if guard.check(user, item["path"]).allowed
    ]
    return NavigationResponse(role=user.role, items=items)
