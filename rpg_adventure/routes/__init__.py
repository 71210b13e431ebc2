"""FastAPI API endpoints under /api.

Endpoint groups: settings (health, config, connection check) and sessions
(start, list, fetch turn, submit action). Submitting an action streams the
turn back as NDJSON, one TurnEvent per line.
"""

from fastapi import APIRouter

from .sessions import router as sessions_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(sessions_router)
