"""Channel profile and watch history read models."""

from app.profiles.aggregator import get_channel_profile, get_watch_history

__all__ = ["get_channel_profile", "get_watch_history"]
