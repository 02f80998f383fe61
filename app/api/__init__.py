"""API routers for the VidTube accounts service."""

from app.api.routes_channels import router as channels_router
from app.api.routes_health import router as health_router
from app.api.routes_history import router as history_router
from app.api.routes_me import router as me_router

__all__ = [
    "health_router",
    "me_router",
    "channels_router",
    "history_router",
]
