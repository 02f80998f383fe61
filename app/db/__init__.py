"""Database module for the VidTube accounts service."""

from app.db.models import Base, Subscription, User, Video, WatchHistoryEntry
from app.db.session import get_engine, get_session, get_sessionmaker

__all__ = [
    "Base",
    "User",
    "Subscription",
    "Video",
    "WatchHistoryEntry",
    "get_session",
    "get_engine",
    "get_sessionmaker",
]
