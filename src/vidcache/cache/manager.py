"""Fetch-through cache orchestrator for playlists and the channel feed.

:class:`YouTubeCache` is the public entry point. For each request it reads
the ledger entry and the snapshot, decides whether the snapshot is fresh
enough to serve, and otherwise fetches from the API, persists a new
snapshot and updates the ledger.

Decision order for a playlist request:

1. Snapshot present and no ``force_refresh``: serve it when it is fresh
   (complete snapshots are always fresh) or when ``cache_only`` is set.
2. ``cache_only``: serve the snapshot if any, otherwise ``[]``. No request
   is ever made in this mode.
3. Fetch ids (capped), then details. Zero ids, or zero available
   videos, leaves the existing snapshot untouched and serves it.
4. Persist the snapshot, then merge its summary into the ledger. A ledger
   that cannot be written is reported; the fetched videos are still served.
5. Any failure along the way is printed and the previous snapshot (or
   ``[]``) is served instead. Nothing is raised to the caller.

The maintenance API (:meth:`~YouTubeCache.clear`, :meth:`~YouTubeCache.stats`,
:meth:`~YouTubeCache.is_ready`, :meth:`~YouTubeCache.validate`,
:meth:`~YouTubeCache.mark_complete`) works without an API key.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Literal, Optional

import httpx

from vidcache.cache.ledger import MetadataLedger
from vidcache.cache.lock import MetadataLock
from vidcache.cache.store import CHANNEL_KEY, METADATA_KEY, CacheStore, playlist_key
from vidcache.client import AsyncClient, VideoFetcher
from vidcache.models import (
    CachedPlaylist,
    CacheSettings,
    CacheStats,
    ChannelEntry,
    PlaylistEntry,
    ValidationReport,
    Video,
    utcnow,
)
from vidcache.output import debug, error, info, success, warning

LoadSource = Literal["cache", "fetched", "fallback", "empty"]


@dataclass(frozen=True)
class LoadOutcome:
    """What a load call returned and where it came from.

    Attributes:
        videos: The videos served to the caller.
        source: ``"cache"`` (served from disk without fetching),
            ``"fetched"`` (fresh from the API), ``"fallback"`` (fetch
            failed, previous snapshot served) or ``"empty"`` (nothing
            cached and nothing fetched).
        error: Message of the failure that was absorbed, if any.
    """

    videos: list[Video]
    source: LoadSource
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class YouTubeCache:
    """Disk-backed cache of YouTube playlist and channel videos.

    Args:
        cache_dir: Cache root; created lazily on the first write.
        settings: TTL, delays, retry and lock tunables.
        transport: Optional httpx transport handed to every
            :class:`~vidcache.client.AsyncClient` (tests use
            :class:`httpx.MockTransport`).

    Example::

        cache = YouTubeCache(".youtube-cache")
        videos = await cache.load_playlist(api_key, "PL...", "Lessons")
        print(cache.stats().total_videos)
    """

    def __init__(
        self,
        cache_dir: str | Path,
        settings: Optional[CacheSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings or CacheSettings()
        self._transport = transport
        self._store = CacheStore(cache_dir)
        lock = MetadataLock(cache_dir, stale_after=self._settings.lock_stale_seconds)
        self._ledger = MetadataLedger(
            self._store,
            lock,
            read_ttl=self._settings.ledger_read_ttl_seconds,
            lock_timeout=self._settings.lock_timeout_seconds,
        )

    @property
    def cache_dir(self) -> Path:
        return self._store.cache_dir

    @property
    def settings(self) -> CacheSettings:
        return self._settings

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def ledger(self) -> MetadataLedger:
        return self._ledger

    # ------------------------------------------------------------------ #
    # Playlists
    # ------------------------------------------------------------------ #

    async def load_playlist(
        self,
        api_key: Optional[str],
        playlist_id: str,
        name: str,
        *,
        max_results: Optional[int] = None,
        force_refresh: bool = False,
        is_complete: bool = False,
        cache_only: bool = False,
    ) -> list[Video]:
        """Return a playlist's videos, fetching only when the cache is stale.

        See :meth:`load_playlist_outcome` for the arguments. Never raises
        on fetch failures.
        """
        outcome = await self.load_playlist_outcome(
            api_key,
            playlist_id,
            name,
            max_results=max_results,
            force_refresh=force_refresh,
            is_complete=is_complete,
            cache_only=cache_only,
        )
        return outcome.videos

    async def load_playlist_outcome(
        self,
        api_key: Optional[str],
        playlist_id: str,
        name: str,
        *,
        max_results: Optional[int] = None,
        force_refresh: bool = False,
        is_complete: bool = False,
        cache_only: bool = False,
    ) -> LoadOutcome:
        """Load a playlist and report where the videos came from.

        Args:
            api_key: YouTube API key; only needed when a fetch happens.
            playlist_id: YouTube playlist id.
            name: Display name stored in the snapshot.
            max_results: Cap on listed video ids (default
                ``settings.playlist_max_results``).
            force_refresh: Ignore freshness and the completion flag.
            is_complete: Completion flag recorded with a new snapshot.
            cache_only: Never touch the network.
        """
        cap = max_results if max_results is not None else self._settings.playlist_max_results
        entry = self._ledger.get().playlists.get(playlist_id)
        cached = self._store.read_playlist(playlist_id)

        if cached is not None and not force_refresh:
            if cache_only or not self._playlist_is_stale(entry, cached):
                info(f"Using cached data for playlist: {name} ({len(cached.videos)} videos)")
                return LoadOutcome(cached.videos, "cache")

        if cache_only:
            if cached is not None:
                info(f"Using cached data for playlist: {name} (cache-only mode)")
                return LoadOutcome(cached.videos, "cache")
            info(f"No cache found for playlist: {name} (cache-only mode)")
            return LoadOutcome([], "empty")

        info(f"Fetching playlist: {name}...")
        try:
            async with self._make_client(api_key) as client:
                fetcher = VideoFetcher(client, self._settings)
                video_ids = await fetcher.list_playlist_video_ids(playlist_id, cap)
                if not video_ids:
                    info(f"No videos found in playlist: {name}")
                    return _previous(cached.videos if cached else None)
                await self._pause()
                videos = await fetcher.fetch_video_details(video_ids)
                if not videos and cached is not None:
                    info(f"No available videos in playlist: {name}")
                    return _previous(cached.videos)
        except Exception as exc:
            error(f"Error fetching playlist {name}: {exc}")
            if cached is not None:
                warning(f"Using stale cache for playlist: {name}")
                return LoadOutcome(cached.videos, "fallback", str(exc))
            return LoadOutcome([], "empty", str(exc))

        fetched_at = utcnow()
        snapshot = CachedPlaylist(
            id=playlist_id,
            name=name,
            last_fetched=fetched_at,
            is_complete=is_complete,
            video_count=len(videos),
            videos=videos,
        )
        try:
            self._store.write_playlist(snapshot)
        except OSError as exc:
            error(f"Could not write cache for playlist {name}: {exc}")
            return LoadOutcome(videos, "fetched", str(exc))

        try:
            await self._ledger.update(
                playlists={
                    playlist_id: PlaylistEntry(
                        last_fetched=fetched_at, is_complete=is_complete, video_count=len(videos)
                    )
                }
            )
        except OSError as exc:
            warning(f"Could not update cache metadata for playlist {name}: {exc}")
            return LoadOutcome(videos, "fetched", str(exc))
        success(f"Loaded {len(videos)} videos from playlist: {name}")
        return LoadOutcome(videos, "fetched")

    # ------------------------------------------------------------------ #
    # Channel
    # ------------------------------------------------------------------ #

    async def load_channel(
        self,
        api_key: Optional[str],
        channel_id: str,
        *,
        max_results: Optional[int] = None,
        force_refresh: bool = False,
        cache_only: bool = False,
    ) -> list[Video]:
        """Return the channel's recent videos. Never raises on fetch failures."""
        outcome = await self.load_channel_outcome(
            api_key,
            channel_id,
            max_results=max_results,
            force_refresh=force_refresh,
            cache_only=cache_only,
        )
        return outcome.videos

    async def load_channel_outcome(
        self,
        api_key: Optional[str],
        channel_id: str,
        *,
        max_results: Optional[int] = None,
        force_refresh: bool = False,
        cache_only: bool = False,
    ) -> LoadOutcome:
        """Load the channel feed; same decision order as playlists.

        The channel snapshot carries no header of its own, so without a
        ledger entry it is always considered stale.
        """
        cap = max_results if max_results is not None else self._settings.channel_max_results
        entry = self._ledger.get().channel
        cached = self._store.read_channel()

        if cached is not None and not force_refresh:
            fresh = entry is not None and not self._is_stale(entry.last_fetched, False)
            if fresh or cache_only:
                info(f"Using cached channel data ({len(cached)} videos)")
                return LoadOutcome(cached, "cache")

        if cache_only:
            if cached is not None:
                info("Using cached channel data (cache-only mode)")
                return LoadOutcome(cached, "cache")
            info("No cache found for channel (cache-only mode)")
            return LoadOutcome([], "empty")

        info("Fetching channel videos...")
        try:
            async with self._make_client(api_key) as client:
                fetcher = VideoFetcher(client, self._settings)
                videos = await fetcher.list_channel_videos(channel_id, cap)
        except Exception as exc:
            error(f"Error fetching channel: {exc}")
            if cached is not None:
                warning("Using stale cache for channel")
                return LoadOutcome(cached, "fallback", str(exc))
            return LoadOutcome([], "empty", str(exc))

        if not videos:
            info("No videos found for channel")
            return _previous(cached)

        fetched_at = utcnow()
        try:
            self._store.write_channel(videos)
        except OSError as exc:
            error(f"Could not write channel cache: {exc}")
            return LoadOutcome(videos, "fetched", str(exc))

        try:
            await self._ledger.update(
                channel=ChannelEntry(last_fetched=fetched_at, video_count=len(videos))
            )
        except OSError as exc:
            warning(f"Could not update cache metadata for channel: {exc}")
            return LoadOutcome(videos, "fetched", str(exc))
        success(f"Loaded {len(videos)} channel videos")
        return LoadOutcome(videos, "fetched")

    # ------------------------------------------------------------------ #
    # Maintenance / inspection
    # ------------------------------------------------------------------ #

    async def mark_complete(self, playlist_id: str, is_complete: bool = True) -> bool:
        """Set the completion flag of an already cached playlist.

        Returns:
            ``True`` if the ledger was updated; ``False`` when the playlist
            has never been fetched (nothing to mark), the lock timed out or
            the ledger could not be written.
        """
        entry = self._ledger.get(refresh=True).playlists.get(playlist_id)
        if entry is None:
            debug(f"Playlist {playlist_id} is not cached; nothing to mark")
            return False

        updated = entry.model_copy(update={"is_complete": is_complete})
        try:
            if not await self._ledger.update(playlists={playlist_id: updated}):
                return False
        except OSError as exc:
            warning(f"Could not update cache metadata for playlist {playlist_id}: {exc}")
            return False
        state = "complete" if is_complete else "active"
        info(f"Marked playlist {playlist_id} as {state}")
        return True

    def clear(self) -> None:
        """Delete the cache directory and forget the in-process ledger copy."""
        removed = self._store.remove_all()
        self._ledger.invalidate()
        if removed:
            info(f"Cache cleared: {self.cache_dir}")

    def stats(self) -> CacheStats:
        """Summarise the ledger without reading any snapshot."""
        metadata = self._ledger.get(refresh=True)
        entries = list(metadata.playlists.values())
        channel_count = metadata.channel.video_count if metadata.channel else 0
        return CacheStats(
            total_playlists=len(entries),
            complete_playlists=sum(1 for e in entries if e.is_complete),
            total_videos=sum(e.video_count for e in entries) + channel_count,
            last_updated=metadata.last_updated,
            playlists=metadata.playlists,
        )

    def is_ready(self) -> bool:
        """True if ``metadata.json`` exists and tracks a playlist or the channel."""
        if not self._store.exists(METADATA_KEY):
            return False
        metadata = self._ledger.get(refresh=True)
        return bool(metadata.playlists) or metadata.channel is not None

    def validate(self) -> ValidationReport:
        """Check that every snapshot named by the ledger exists on disk.

        Only existence is checked; a corrupt file reads as a cache miss and
        is replaced by the next successful fetch.
        """
        metadata = self._ledger.get(refresh=True)
        missing: list[str] = []
        errors: list[str] = []

        channel_missing = metadata.channel is not None and not self._store.exists(CHANNEL_KEY)
        if channel_missing:
            errors.append("Channel cache file missing")

        for playlist_id in metadata.playlists:
            if not self._store.exists(playlist_key(playlist_id)):
                missing.append(playlist_id)
                errors.append(f"Playlist cache file missing: {playlist_id}")

        return ValidationReport(
            is_valid=not errors,
            missing_playlists=missing,
            channel_missing=channel_missing,
            errors=errors,
        )

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _make_client(self, api_key: Optional[str]) -> AsyncClient:
        return AsyncClient(api_key, self._settings, transport=self._transport)

    def _playlist_is_stale(
        self, entry: Optional[PlaylistEntry], cached: CachedPlaylist
    ) -> bool:
        # The ledger may lag behind the snapshot (skipped update); the
        # snapshot header carries the same fields.
        if entry is not None:
            return self._is_stale(entry.last_fetched, entry.is_complete)
        return self._is_stale(cached.last_fetched, cached.is_complete)

    def _is_stale(self, last_fetched: datetime, is_complete: bool) -> bool:
        if is_complete:
            return False
        if last_fetched.tzinfo is None:
            last_fetched = last_fetched.replace(tzinfo=timezone.utc)
        return utcnow() - last_fetched > timedelta(hours=self._settings.ttl_hours)

    async def _pause(self) -> None:
        if self._settings.fetch_delay_seconds > 0:
            await asyncio.sleep(self._settings.fetch_delay_seconds)


def _previous(videos: Optional[list[Video]]) -> LoadOutcome:
    """Serve the existing snapshot after the API reported no videos."""
    if videos is None:
        return LoadOutcome([], "empty")
    return LoadOutcome(videos, "cache")
