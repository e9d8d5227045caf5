"""Build-time adapter from cached playlists to named content collections.

A static-site build calls :func:`load_collections` once and gets one list
of videos per collection: ``channelVideos`` for the channel feed and
``playlist_<last 4 chars of id>`` for every configured playlist. Each
playlist video is annotated with the playlist it came from.

Builds pass ``cache_only=True`` (the default) so that no API request is
ever made; run ``vidcache warmup`` beforehand to populate the cache.
"""

from __future__ import annotations

from typing import Optional

from vidcache.cache.manager import YouTubeCache
from vidcache.models import ProjectConfig, Video
from vidcache.output import info, warning

CHANNEL_COLLECTION = "channelVideos"


def collection_name(playlist_id: str) -> str:
    """Collection name for a playlist, e.g. ``playlist_wlNP``."""
    return f"playlist_{playlist_id[-4:]}"


async def load_collections(
    cache: YouTubeCache,
    project: ProjectConfig,
    api_key: Optional[str] = None,
    cache_only: bool = True,
) -> dict[str, list[Video]]:
    """Load the channel feed and every configured playlist.

    Args:
        cache: The cache to read from (and, unless *cache_only*, fill).
        project: Supplies the channel and playlist definitions.
        api_key: Only used when *cache_only* is ``False``.
        cache_only: Forbid network access.

    Returns:
        Videos keyed by collection name, in configuration order.
    """
    if cache_only and not cache.is_ready():
        warning("Cache is not ready. Run 'vidcache warmup' before building!")

    settings = cache.settings
    collections: dict[str, list[Video]] = {}

    if project.channel is not None:
        collections[CHANNEL_COLLECTION] = await cache.load_channel(
            api_key,
            project.channel.id,
            max_results=settings.channel_max_results,
            cache_only=cache_only,
        )

    for playlist in project.playlists:
        videos = await cache.load_playlist(
            api_key,
            playlist.id,
            playlist.name,
            max_results=settings.playlist_max_results,
            is_complete=playlist.is_complete,
            cache_only=cache_only,
        )
        context = {
            "playlist_id": playlist.id,
            "playlist_name": playlist.name,
            "category": playlist.category,
        }
        collections[collection_name(playlist.id)] = [
            video.model_copy(update=context) for video in videos
        ]

    total = sum(len(videos) for videos in collections.values())
    info(f"Loaded {total} videos into {len(collections)} collections")
    return collections
