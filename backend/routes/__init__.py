"""FastAPI API endpoints under /api.

Endpoint groups: health, and playback (session snapshot, event drain, menu
actions, player input, save). The app holds exactly one PlayerSession;
nothing plays until POST /api/new-game or POST /api/continue.
"""

from fastapi import APIRouter

from .health import router as health_router
from .playback import router as playback_router

router = APIRouter()
router.include_router(health_router)
router.include_router(playback_router)
