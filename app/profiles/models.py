"""Read models produced by the profile aggregator."""

from datetime import datetime

from app.schemas import CamelModel


class ChannelProfile(CamelModel):
    """Public channel page; field order is the wire order."""

    full_name: str
    username: str
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool
    avatar: str
    cover_image: str
    email: str


class VideoOwner(CamelModel):
    full_name: str
    username: str
    avatar: str


class WatchedVideo(CamelModel):
    """A video from the watch history with its owner denormalized in."""

    id: str
    video_file: str
    thumbnail: str
    title: str
    description: str
    duration: float
    views: int
    is_published: bool
    created_at: datetime | None = None
    owner: VideoOwner | None = None
