"""Main API routes for Viberank."""

from fastapi import APIRouter

from .admin import router as admin_router
from .claims import router as claims_router
from .leaderboard import router as leaderboard_router
from .submit import router as submit_router

# Main API router
router = APIRouter()

router.include_router(submit_router, tags=["submissions"])
router.include_router(leaderboard_router, tags=["leaderboard"])
router.include_router(claims_router, tags=["claims"])
router.include_router(admin_router, prefix="/admin", tags=["admin"])
