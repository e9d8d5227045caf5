"""YouTube Data API access for vidcache.

Classes:
    :class:`AsyncClient` -- httpx-based client with key injection, retry
    with exponential backoff, ``Retry-After`` support and error mapping.
    :class:`VideoFetcher` -- paginates listing endpoints and batches
    detail lookups into :class:`~vidcache.models.Video` records.

Example::

    from vidcache.client import AsyncClient, VideoFetcher

    async with AsyncClient(api_key) as client:
        fetcher = VideoFetcher(client)
        ids = await fetcher.list_playlist_video_ids("PL...", cap=100)
        videos = await fetcher.fetch_video_details(ids)
"""

from vidcache.client.async_client import AsyncClient
from vidcache.client.fetcher import VideoFetcher

__all__ = ["AsyncClient", "VideoFetcher"]
