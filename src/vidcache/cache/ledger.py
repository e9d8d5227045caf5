"""The metadata ledger: per-playlist fetch summaries in ``metadata.json``.

The ledger lets the orchestrator decide whether a playlist is fresh
without opening its snapshot, and lets ``stats``/``validate`` work from a
single small file.

Reads are served from a short-lived in-process copy so that a burst of
``load_playlist`` calls does not reread the file every time. Writes are
read-merge-write under :class:`~vidcache.cache.lock.MetadataLock`: the
file is reread from disk (ignoring the in-process copy), the caller's
entries are merged over it, and the result is written back. Entries the
caller did not name are never dropped, even when several processes
update the ledger concurrently.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from vidcache.cache.lock import MetadataLock
from vidcache.cache.store import METADATA_KEY, CacheStore
from vidcache.models import CacheMetadata, ChannelEntry, PlaylistEntry, dump_json, utcnow
from vidcache.output import debug, warning


@dataclass
class _LedgerSnapshot:
    """In-process copy of the ledger and the monotonic time it was read."""

    value: CacheMetadata
    fetched_at: float


class MetadataLedger:
    """Read and merge-update the cache ledger.

    Args:
        store: Store owning the cache directory.
        lock: Lock serialising writers across processes.
        read_ttl: Seconds an in-process copy may be reused by :meth:`get`.
        lock_timeout: Seconds :meth:`update` waits for the lock.
    """

    def __init__(
        self,
        store: CacheStore,
        lock: MetadataLock,
        read_ttl: float = 5.0,
        lock_timeout: float = 10.0,
    ) -> None:
        self._store = store
        self._lock = lock
        self._read_ttl = read_ttl
        self._lock_timeout = lock_timeout
        self._snapshot: Optional[_LedgerSnapshot] = None

    def get(self, refresh: bool = False) -> CacheMetadata:
        """Return the current ledger.

        An absent or corrupt ``metadata.json`` yields an empty ledger
        stamped with the current time. The empty ledger is not written.

        Args:
            refresh: Bypass the in-process copy and reread the file.
        """
        if self._snapshot is not None and not refresh:
            if time.monotonic() - self._snapshot.fetched_at < self._read_ttl:
                return self._snapshot.value
        return self._refresh()

    def invalidate(self) -> None:
        """Forget the in-process copy so the next :meth:`get` rereads the file."""
        self._snapshot = None

    async def update(
        self,
        playlists: Optional[dict[str, PlaylistEntry]] = None,
        channel: Optional[ChannelEntry] = None,
    ) -> bool:
        """Merge entries into the ledger under the lock.

        Args:
            playlists: Entries to add or replace, keyed by playlist id.
                Playlists not named here keep their current entry.
            channel: Replacement channel entry; the existing one is kept
                when ``None``.

        Returns:
            ``True`` if the ledger was written, ``False`` if the lock could
            not be acquired in time (a warning is printed and nothing is
            written).
        """
        async with self._lock.held(self._lock_timeout) as granted:
            if not granted:
                warning(
                    f"Could not acquire cache lock within {self._lock_timeout:g}s; "
                    "skipping metadata update"
                )
                return False

            current = self._read_from_disk()
            merged = CacheMetadata(
                last_updated=utcnow(),
                playlists={**current.playlists, **(playlists or {})},
                channel=channel if channel is not None else current.channel,
            )
            self._store.write_item(METADATA_KEY, dump_json(merged))
            self._snapshot = _LedgerSnapshot(merged, time.monotonic())
            debug(f"Metadata updated ({len(merged.playlists)} playlists tracked)")
            return True

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _refresh(self) -> CacheMetadata:
        value = self._read_from_disk()
        self._snapshot = _LedgerSnapshot(value, time.monotonic())
        return value

    def _read_from_disk(self) -> CacheMetadata:
        data = self._store.read_item(METADATA_KEY)
        if data is not None:
            try:
                return CacheMetadata.model_validate(data)
            except ValidationError:
                debug("metadata.json is corrupt; starting from an empty ledger")
        return CacheMetadata()
