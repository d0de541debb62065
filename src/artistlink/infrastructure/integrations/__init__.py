"""External platform clients (YouTube, Instagram)."""

from .instagram_client import InstagramClient
from .youtube_client import YouTubeClient

__all__ = ["InstagramClient", "YouTubeClient"]
