"""
API v1 router.
"""
from fastapi import APIRouter

from app.api.v1.endpoints import activity, health, permissions, routes, users
from app.api.v1.endpoints.users import auth_router

api_router = APIRouter()

# Health check endpoint (no prefix, so it's /api/v1/health)
api_router.include_router(health.router, tags=["health"])

api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(permissions.router, prefix="/permissions", tags=["permissions"])
api_router.include_router(routes.router, prefix="/routes", tags=["routes"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(activity.router, prefix="/activity", tags=["activity"])
