"""Canonical Pydantic models shared across all vidcache modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Cache records** -- serialised as JSON files in the cache directory:
    :class:`Thumbnail`, :class:`Thumbnails`, :class:`Video`,
    :class:`CachedPlaylist`, :class:`PlaylistEntry`, :class:`ChannelEntry`
    and :class:`CacheMetadata`.

**Inspection results** -- returned by the maintenance API:
    :class:`CacheStats` and :class:`ValidationReport`.

**Configuration models** -- loaded from the project's ``vidcache.json``:
    :class:`CacheSettings`, :class:`PlaylistConfig`, :class:`ChannelConfig`
    and :class:`ProjectConfig`.

Every model uses camelCase aliases on disk (``lastFetched``, ``videoCount``)
and accepts either spelling on input. Unknown keys are ignored so that files
written by a newer version still load. Use :func:`dump_json` to produce the
on-disk representation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = 1
"""Version stamped on every ledger and playlist snapshot written to disk."""


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def dump_json(model: BaseModel) -> dict[str, Any]:
    """Serialise *model* to its on-disk JSON form (camelCase, no ``null`` fields)."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Cache Records ---


class Thumbnail(_CamelModel):
    """A single thumbnail rendition."""

    model_config = ConfigDict(frozen=True)

    url: str
    width: Optional[int] = None
    height: Optional[int] = None


class Thumbnails(_CamelModel):
    """The thumbnail variants YouTube publishes for a video."""

    model_config = ConfigDict(frozen=True)

    default: Optional[Thumbnail] = None
    medium: Optional[Thumbnail] = None
    high: Optional[Thumbnail] = None
    standard: Optional[Thumbnail] = None
    maxres: Optional[Thumbnail] = None


class Video(_CamelModel):
    """Metadata for one YouTube video, identified by :attr:`id`.

    Instances are built by :class:`~vidcache.client.fetcher.VideoFetcher`
    from ``videos.list`` responses and never mutated afterwards; the model
    is frozen. Popularity counters stay strings because that is how the
    API reports them.

    The ``playlist_id``, ``playlist_name`` and ``category`` fields are only
    set by :func:`~vidcache.loader.load_collections` when it annotates a
    video with the playlist it was loaded from.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    description: str = ""
    url: str = ""
    published_at: str = ""
    duration: Optional[str] = None
    channel_id: str = ""
    channel_title: str = ""
    thumbnails: Thumbnails = Field(default_factory=Thumbnails)
    tags: Optional[list[str]] = None
    category_id: Optional[str] = None
    view_count: Optional[str] = None
    like_count: Optional[str] = None
    comment_count: Optional[str] = None
    playlist_id: Optional[str] = None
    playlist_name: Optional[str] = None
    category: Optional[str] = None


class CachedPlaylist(_CamelModel):
    """A playlist snapshot stored as ``playlist_<id>.json``.

    Replaced wholesale on every successful fetch; the ``videos`` order is
    the order the API listed them in and is preserved on round-trip.
    """

    schema_version: int = SCHEMA_VERSION
    id: str
    name: str
    last_fetched: datetime
    is_complete: bool = False
    video_count: int = 0
    videos: list[Video] = Field(default_factory=list)


class PlaylistEntry(_CamelModel):
    """Ledger summary of one playlist snapshot."""

    last_fetched: datetime
    is_complete: bool = False
    video_count: int = 0


class ChannelEntry(_CamelModel):
    """Ledger summary of the channel snapshot."""

    last_fetched: datetime
    video_count: int = 0


class CacheMetadata(_CamelModel):
    """The metadata ledger stored as ``metadata.json``.

    Lets callers check freshness and compute statistics without opening
    any snapshot file. Written only by
    :meth:`~vidcache.cache.ledger.MetadataLedger.update` while the lock is
    held.
    """

    schema_version: int = SCHEMA_VERSION
    last_updated: datetime = Field(default_factory=utcnow)
    playlists: dict[str, PlaylistEntry] = Field(default_factory=dict)
    channel: Optional[ChannelEntry] = None


# --- Inspection Results ---


class CacheStats(_CamelModel):
    """Totals derived from the ledger by :meth:`YouTubeCache.stats`."""

    total_playlists: int = 0
    complete_playlists: int = 0
    total_videos: int = 0
    last_updated: datetime
    playlists: dict[str, PlaylistEntry] = Field(default_factory=dict)


class ValidationReport(_CamelModel):
    """Result of :meth:`YouTubeCache.validate`.

    Only file existence is checked; a present but corrupt snapshot is
    reported as valid and is replaced by the next successful fetch.
    """

    is_valid: bool
    missing_playlists: list[str] = Field(default_factory=list)
    channel_missing: bool = False
    errors: list[str] = Field(default_factory=list)


# --- Configuration Models ---


class CacheSettings(_CamelModel):
    """Tunables for fetching, staleness and locking.

    Stored under the ``cache`` key of ``vidcache.json``. Tests set the
    delay fields to zero.
    """

    ttl_hours: float = Field(default=24, description="Hours before a non-complete snapshot is stale")
    fetch_delay_seconds: float = Field(
        default=0.5, description="Pause between pages, batches and listing/detail phases"
    )
    max_attempts: int = Field(default=3, description="Attempts per API request, shared by 429 and other failures")
    backoff_seconds: float = Field(default=1.0, description="Base of the exponential retry backoff")
    request_timeout: float = Field(default=30, description="HTTP timeout in seconds")
    playlist_max_results: int = Field(default=1000, description="Default cap on videos per playlist")
    channel_max_results: int = Field(default=100, description="Default cap on recent channel videos")
    warmup_delay_seconds: float = Field(default=2.0, description="Pause between playlists during warmup")
    lock_timeout_seconds: float = Field(default=10, description="How long to wait for the metadata lock")
    lock_stale_seconds: float = Field(default=30, description="Age after which a lock marker is reclaimed")
    ledger_read_ttl_seconds: float = Field(default=5, description="In-process reuse window for metadata reads")


class PlaylistConfig(_CamelModel):
    """A playlist the project publishes."""

    id: str
    name: str
    category: Optional[str] = None
    description: Optional[str] = None
    is_complete: bool = Field(default=False, description="No new videos expected; fetch once")


class ChannelConfig(_CamelModel):
    """The channel whose recent uploads feed the ``channelVideos`` collection."""

    id: str
    name: str = ""
    description: Optional[str] = None


class ProjectConfig(_CamelModel):
    """Project-local configuration loaded from ``./vidcache.json``.

    Loaded by :func:`~vidcache.config.load_project_config`. The cache
    directory set here can be overridden by ``VIDCACHE_CACHE_DIR`` or the
    ``--cache-dir`` flag; see :func:`~vidcache.config.resolve_cache_dir`.

    Example::

        {
          "apiKeySource": "env:YOUTUBE_API_KEY",
          "channel": {"id": "UCHUZYEvS7utmviL1C3EYrwA", "name": "Main channel"},
          "playlists": [
            {"id": "PLEkQk5xrP-tly7ti7Qb_lS7xjUg_fwlNP", "name": "Lessons", "category": "fiqh"}
          ],
          "cache": {"ttlHours": 12}
        }
    """

    cache_dir: Optional[str] = None
    api_key_source: str = Field(
        default="env:YOUTUBE_API_KEY", description="Credential descriptor (env:VAR or file:PATH)"
    )
    channel: Optional[ChannelConfig] = None
    playlists: list[PlaylistConfig] = Field(default_factory=list)
    cache: CacheSettings = Field(default_factory=CacheSettings)
