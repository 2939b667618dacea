"""FastAPI API endpoints under /api.

One game session lives on the app; all endpoints operate on it.
"""

from fastapi import APIRouter

from .game import router as game_router

router = APIRouter()
router.include_router(game_router)
