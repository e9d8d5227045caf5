"""Shared test fixtures for vidcache.

Provides an in-memory fake of the YouTube Data API served through
:class:`httpx.MockTransport`, zero-delay cache settings, and output state
management. These fixtures are automatically discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
import pytest

from vidcache.cache import YouTubeCache
from vidcache.models import CacheSettings
from vidcache.output import OutputManager, reset_output, set_output


API_KEY = "AIzaSyTest-0123456789abcdefghijklmnop"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Install a quiet, colourless OutputManager and reset it afterwards.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file"). Resetting forces a fresh manager
    to be created on next use.
    """
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Fake YouTube Data API
# ---------------------------------------------------------------------------


def make_item(video_id: str, title: Optional[str] = None) -> dict[str, Any]:
    """Build a ``videos.list`` item the way the API returns it."""
    return {
        "id": video_id,
        "snippet": {
            "title": title or f"Video {video_id}",
            "description": f"Description of {video_id}",
            "publishedAt": "2024-03-01T10:00:00Z",
            "channelId": "UCchannel",
            "channelTitle": "Test Channel",
            "thumbnails": {
                "default": {"url": f"https://i.ytimg.com/vi/{video_id}/default.jpg", "width": 120, "height": 90},
                "high": {"url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"},
            },
            "tags": ["lesson"],
            "categoryId": "27",
        },
        "contentDetails": {"duration": "PT12M3S"},
        "statistics": {"viewCount": "1500", "likeCount": "42", "commentCount": "7"},
    }


class FakeYouTube:
    """In-memory YouTube Data API.

    Playlists and the channel are lists of video ids; every id resolves to
    a :func:`make_item` unless listed in ``hidden`` (private/deleted).
    Every request is recorded in ``requests``; ``fail_with`` forces every
    request to answer with the given status.
    """

    def __init__(self, page_size: int = 50) -> None:
        self.page_size = page_size
        self.playlists: dict[str, list[str]] = {}
        self.channel: list[str] = []
        self.hidden: set[str] = set()
        self.requests: list[httpx.Request] = []
        self.fail_with: Optional[int] = None

    def paths(self) -> list[str]:
        return [request.url.path.rsplit("/", 1)[-1] for request in self.requests]

    def count(self, endpoint: str) -> int:
        return self.paths().count(endpoint)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"error": {"message": "forced failure"}})

        endpoint = request.url.path.rsplit("/", 1)[-1]
        params = request.url.params
        if endpoint == "playlistItems":
            ids = self.playlists.get(params["playlistId"])
            if ids is None:
                return httpx.Response(404, json={"error": {"message": "playlistNotFound"}})
            return self._page(ids, params, lambda vid: {"contentDetails": {"videoId": vid}})
        if endpoint == "search":
            return self._page(self.channel, params, lambda vid: {"id": {"kind": "youtube#video", "videoId": vid}})
        if endpoint == "videos":
            ids = params["id"].split(",")
            items = [make_item(vid) for vid in ids if vid not in self.hidden]
            return httpx.Response(200, json={"items": items})
        return httpx.Response(404, json={"error": {"message": "unknown endpoint"}})

    def _page(self, ids: list[str], params: Any, wrap) -> httpx.Response:
        start = int(params.get("pageToken", "0"))
        size = min(self.page_size, int(params.get("maxResults", self.page_size)))
        body: dict[str, Any] = {"items": [wrap(vid) for vid in ids[start:start + size]]}
        if start + size < len(ids):
            body["nextPageToken"] = str(start + size)
        return httpx.Response(200, json=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def api() -> FakeYouTube:
    """A fresh fake API per test."""
    return FakeYouTube()


@pytest.fixture
def fast_settings() -> CacheSettings:
    """Cache settings with every delay set to zero."""
    return CacheSettings(
        fetch_delay_seconds=0,
        backoff_seconds=0,
        warmup_delay_seconds=0,
        ledger_read_ttl_seconds=0,
        lock_timeout_seconds=1,
    )


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / ".youtube-cache"


@pytest.fixture
def cache(cache_dir, fast_settings, api) -> YouTubeCache:
    """A YouTubeCache wired to the fake API."""
    return YouTubeCache(cache_dir, fast_settings, transport=api.transport())


@pytest.fixture
def api_key() -> str:
    return API_KEY


@pytest.fixture
def video_item():
    """Factory for ``videos.list`` items (see :func:`make_item`)."""
    return make_item
