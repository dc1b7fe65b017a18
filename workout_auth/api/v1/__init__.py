"""
API v1 package.

Contains versioned API routes for the workout authentication API.
"""

from fastapi import APIRouter

from workout_auth.api.v1.auth import router as auth_router
from workout_auth.api.v1.users import router as users_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(users_router)

__all__ = ["router"]
