"""API layer - FastAPI endpoints."""

from .google import router as google_router
from .sync import router as sync_router

__all__ = [
    "google_router",
    "sync_router",
]
