"""Disk-backed cache of YouTube playlist and channel data.

The package is layered leaf-first:

* :class:`CacheStore` -- one JSON file per record, atomic replace,
  corrupt files read as misses.
* :class:`MetadataLock` -- ``O_EXCL`` marker file with stale-lock
  reclamation, serialising ledger writers across processes.
* :class:`MetadataLedger` -- per-playlist fetch summaries with
  read-merge-write updates.
* :class:`YouTubeCache` -- the orchestrator and maintenance API consumed
  by the CLI and the build loader.
"""

from vidcache.cache.ledger import MetadataLedger
from vidcache.cache.lock import MetadataLock
from vidcache.cache.manager import LoadOutcome, YouTubeCache
from vidcache.cache.store import CacheStore

__all__ = ["CacheStore", "LoadOutcome", "MetadataLedger", "MetadataLock", "YouTubeCache"]
