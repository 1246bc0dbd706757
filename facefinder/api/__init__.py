"""API v1 router initialization."""
from fastapi import APIRouter

from .events import router as events_router
from .matches import router as matches_router
from .photos import router as photos_router
from .stats import router as stats_router

# Create v1 router
router = APIRouter()

router.include_router(events_router, prefix="/events", tags=["events"])
router.include_router(photos_router, tags=["photos"])
router.include_router(matches_router, tags=["matches"])
router.include_router(stats_router, tags=["stats"])
