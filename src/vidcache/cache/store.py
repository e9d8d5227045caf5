"""JSON file store for the cache directory.

Every cache record lives in its own file under the cache root::

    <cache-root>/
      metadata.json            the ledger (CacheMetadata)
      channel.json             channel snapshot (bare list of videos)
      playlist_<id>.json       one CachedPlaylist per playlist
      metadata.lock            transient lock marker (see cache.lock)

Reads never raise: a missing, unreadable or malformed file is reported as
``None`` and treated by callers as a cache miss, which the next successful
fetch overwrites. Writes go through :func:`vidcache.config._atomic_write`,
so readers observe either the old or the new content, never a mix.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

from pydantic import TypeAdapter, ValidationError

from vidcache.config import _atomic_write
from vidcache.models import CachedPlaylist, Video, dump_json

METADATA_KEY = "metadata"
CHANNEL_KEY = "channel"
PLAYLIST_PREFIX = "playlist_"

_VIDEO_LIST = TypeAdapter(list[Video])


def sanitize_id(raw_id: str) -> str:
    """Map an external id to a token that is safe as part of a file name.

    Letters, digits and ``-_.~`` are kept, so YouTube ids map to
    themselves; every other character is percent-encoded. Distinct ids
    always get distinct tokens.
    """
    return quote(raw_id, safe="")


def playlist_key(playlist_id: str) -> str:
    """Return the store key of a playlist snapshot."""
    return f"{PLAYLIST_PREFIX}{sanitize_id(playlist_id)}"


class CacheStore:
    """Read/write JSON records in a cache directory.

    Args:
        cache_dir: Root directory. Created on the first write, not here,
            so inspecting a missing cache leaves the filesystem untouched.

    Example::

        store = CacheStore(".youtube-cache")
        store.write_item("metadata", {"playlists": {}})
        store.read_item("metadata")
    """

    def __init__(self, cache_dir: str | Path) -> None:
        self._cache_dir = Path(cache_dir)

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def path_for(self, key: str) -> Path:
        return self._cache_dir / f"{key}.json"

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    # ------------------------------------------------------------------ #
    # Raw JSON access
    # ------------------------------------------------------------------ #

    def read_item(self, key: str) -> Optional[Any]:
        """Load the JSON document stored under *key*.

        Returns:
            The parsed value, or ``None`` when the file is absent or cannot
            be decoded.
        """
        path = self.path_for(key)
        try:
            text = path.read_text(encoding="utf-8")
            return json.loads(text)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            return None

    def write_item(self, key: str, value: Any) -> None:
        """Serialise *value* and atomically replace the file for *key*."""
        text = json.dumps(value, indent=2, ensure_ascii=False) + "\n"
        _atomic_write(self.path_for(key), text)

    def remove_all(self) -> bool:
        """Delete the whole cache directory tree.

        Returns:
            ``True`` if a directory was removed, ``False`` if none existed.
        """
        if not self._cache_dir.exists():
            return False
        shutil.rmtree(self._cache_dir)
        return True

    # ------------------------------------------------------------------ #
    # Typed snapshots
    # ------------------------------------------------------------------ #

    def read_playlist(self, playlist_id: str) -> Optional[CachedPlaylist]:
        data = self.read_item(playlist_key(playlist_id))
        if data is None:
            return None
        try:
            return CachedPlaylist.model_validate(data)
        except ValidationError:
            return None

    def write_playlist(self, snapshot: CachedPlaylist) -> None:
        self.write_item(playlist_key(snapshot.id), dump_json(snapshot))

    def read_channel(self) -> Optional[list[Video]]:
        data = self.read_item(CHANNEL_KEY)
        if data is None:
            return None
        try:
            return _VIDEO_LIST.validate_python(data)
        except ValidationError:
            return None

    def write_channel(self, videos: list[Video]) -> None:
        """Persist the channel snapshot as a bare JSON array of videos."""
        self.write_item(CHANNEL_KEY, [dump_json(video) for video in videos])
