"""Paginating fetcher that turns playlist and channel ids into videos.

:class:`VideoFetcher` drives three YouTube Data API endpoints through an
:class:`~vidcache.client.async_client.AsyncClient`:

* ``playlistItems.list`` -- video ids of a playlist, 50 per page;
* ``search.list`` -- recent video ids of a channel, newest first;
* ``videos.list`` -- full details, up to 50 ids per request.

Listing always completes before any detail request is issued, detail
batches go out one at a time in id order, and a fixed pause separates
consecutive requests to stay under the API's rate limits. Errors are not
caught here; an empty result always means the API reported no videos.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from pydantic import ValidationError

from vidcache.client.async_client import AsyncClient
from vidcache.models import CacheSettings, Thumbnails, Video
from vidcache.output import debug, info

PAGE_SIZE = 50
"""Maximum ``maxResults`` accepted by the list endpoints."""

DETAIL_BATCH_SIZE = 50
"""Maximum number of ids accepted by one ``videos.list`` call."""

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


class VideoFetcher:
    """Fetch playlist and channel videos from the YouTube Data API.

    Args:
        client: An entered :class:`AsyncClient`.
        settings: Supplies ``fetch_delay_seconds``.
    """

    def __init__(self, client: AsyncClient, settings: Optional[CacheSettings] = None) -> None:
        self._client = client
        self._settings = settings or CacheSettings()

    async def list_playlist_video_ids(self, playlist_id: str, cap: int) -> list[str]:
        """Collect up to *cap* video ids from a playlist, following page tokens."""
        params = {"part": "contentDetails", "playlistId": playlist_id, "maxResults": PAGE_SIZE}
        debug(f"Listing playlist items for {playlist_id}")
        return await self._collect_ids(
            "/playlistItems", params, cap, lambda item: (item.get("contentDetails") or {}).get("videoId")
        )

    async def list_channel_video_ids(self, channel_id: str, cap: int) -> list[str]:
        """Collect up to *cap* of a channel's most recent video ids."""
        params = {
            "part": "id",
            "channelId": channel_id,
            "type": "video",
            "order": "date",
            "maxResults": max(1, min(cap, PAGE_SIZE)),
        }
        debug(f"Searching recent videos of channel {channel_id}")
        return await self._collect_ids(
            "/search", params, cap, lambda item: (item.get("id") or {}).get("videoId")
        )

    async def list_channel_videos(self, channel_id: str, cap: int) -> list[Video]:
        """Resolve a channel's recent video ids, then fetch their details."""
        video_ids = await self.list_channel_video_ids(channel_id, cap)
        if not video_ids:
            return []
        await self._pause()
        return await self.fetch_video_details(video_ids)

    async def fetch_video_details(self, video_ids: list[str]) -> list[Video]:
        """Fetch details for *video_ids* in batches, preserving their order.

        Ids the API does not return (private or deleted videos) are
        dropped. Missing optional fields default to empty values.
        """
        videos: list[Video] = []
        total = len(video_ids)

        for start in range(0, total, DETAIL_BATCH_SIZE):
            batch = video_ids[start:start + DETAIL_BATCH_SIZE]
            data = await self._client.get_json(
                "/videos",
                {"part": "snippet,contentDetails,statistics", "id": ",".join(batch)},
            )
            by_id: dict[str, Video] = {}
            for item in data.get("items") or []:
                video = parse_video(item)
                if video is not None:
                    by_id[video.id] = video
            videos.extend(by_id[video_id] for video_id in batch if video_id in by_id)

            done = min(start + DETAIL_BATCH_SIZE, total)
            if total > DETAIL_BATCH_SIZE:
                info(f"  Fetched details for {done}/{total} videos...")
            if done < total:
                await self._pause()

        return videos

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _collect_ids(self, path: str, params: dict[str, Any], cap: int, extract) -> list[str]:
        ids: list[str] = []
        page_token: Optional[str] = None
        page_count = 0

        while True:
            query = dict(params)
            if page_token:
                query["pageToken"] = page_token
            data = await self._client.get_json(path, query)
            page_count += 1

            for item in data.get("items") or []:
                video_id = extract(item) if isinstance(item, dict) else None
                if video_id:
                    ids.append(video_id)

            page_token = data.get("nextPageToken")
            if len(ids) >= cap:
                debug(f"  Reached the limit of {cap} videos")
                break
            if not page_token:
                break
            info(f"  Page {page_count}: {len(ids)} videos so far...")
            await self._pause()

        debug(f"  Total: {len(ids)} videos found in {page_count} page(s)")
        return ids[:cap]

    async def _pause(self) -> None:
        if self._settings.fetch_delay_seconds > 0:
            await asyncio.sleep(self._settings.fetch_delay_seconds)


def parse_video(item: dict[str, Any]) -> Optional[Video]:
    """Build a :class:`Video` from one ``videos.list`` item.

    Returns ``None`` for items without an id. Malformed thumbnail data is
    replaced by an empty :class:`Thumbnails`, and any other malformed field
    falls back to its default, rather than failing the batch.
    """
    video_id = item.get("id")
    if not isinstance(video_id, str) or not video_id:
        return None
    snippet = item.get("snippet") or {}
    content = item.get("contentDetails") or {}
    stats = item.get("statistics") or {}

    try:
        thumbnails = Thumbnails.model_validate(snippet.get("thumbnails") or {})
    except ValidationError:
        thumbnails = Thumbnails()

    fields = dict(
        id=video_id,
        title=snippet.get("title") or "",
        description=snippet.get("description") or "",
        url=WATCH_URL.format(video_id=video_id),
        published_at=snippet.get("publishedAt") or "",
        duration=content.get("duration"),
        channel_id=snippet.get("channelId") or "",
        channel_title=snippet.get("channelTitle") or "",
        thumbnails=thumbnails,
        tags=snippet.get("tags"),
        category_id=snippet.get("categoryId"),
        view_count=stats.get("viewCount"),
        like_count=stats.get("likeCount"),
        comment_count=stats.get("commentCount"),
    )
    try:
        return Video(**fields)
    except ValidationError as exc:
        bad = {_field_name(err["loc"][0]) for err in exc.errors() if err["loc"]}
        debug(f"  Dropping malformed fields of video {video_id}: {', '.join(sorted(map(str, bad)))}")
    try:
        return Video(**{k: v for k, v in fields.items() if k not in bad})
    except ValidationError:
        debug(f"  Skipping malformed video item {video_id}")
        return None


def _field_name(loc: Any) -> Any:
    """Map an error location (field name or camelCase alias) to the field name."""
    for name, field in Video.model_fields.items():
        if loc == field.alias:
            return name
    return loc
