"""Cooperative cross-process lock guarding the metadata ledger.

The lock is a marker file created with ``O_CREAT | O_EXCL``: whoever
creates it holds the lock. The marker records its creation time so that a
marker left behind by a crashed process can be recognised and reclaimed
once it is older than ``stale_after`` seconds.

Failing to acquire is not an error. :meth:`MetadataLock.acquire` returns
``False`` after its timeout and the caller skips the guarded update.
"""

from __future__ import annotations

import asyncio
import json
import os
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from vidcache.output import debug

LOCK_FILENAME = "metadata.lock"


class MetadataLock:
    """File-presence mutex for one cache directory.

    Args:
        cache_dir: Directory holding the marker file.
        stale_after: Age in seconds after which an existing marker is
            considered abandoned and removed.
        poll_interval: Sleep between acquisition attempts.

    Example::

        lock = MetadataLock(".youtube-cache")
        async with lock.held(timeout=10) as granted:
            if granted:
                ...
    """

    def __init__(
        self,
        cache_dir: str | Path,
        stale_after: float = 30.0,
        poll_interval: float = 0.05,
    ) -> None:
        self._cache_dir = Path(cache_dir)
        self._stale_after = stale_after
        self._poll_interval = poll_interval

    @property
    def path(self) -> Path:
        return self._cache_dir / LOCK_FILENAME

    async def acquire(self, timeout: float = 10.0) -> bool:
        """Try to take the lock, polling until *timeout* seconds elapse.

        Returns:
            ``True`` when the marker was created by this call, ``False`` if
            another holder kept it for the whole timeout.
        """
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + timeout

        while True:
            if self._try_create():
                return True

            age = self._marker_age()
            if age is not None and age > self._stale_after:
                debug(f"Reclaiming stale lock {self.path} ({age:.1f}s old)")
                self._remove_marker()
                continue

            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(self._poll_interval)

    def release(self) -> None:
        """Remove the marker. A marker that is already gone is fine."""
        self._remove_marker()

    @asynccontextmanager
    async def held(self, timeout: float = 10.0) -> AsyncIterator[bool]:
        """Hold the lock for the duration of the block.

        Yields whether the lock was granted; it is only released when it
        was.
        """
        granted = await self.acquire(timeout)
        try:
            yield granted
        finally:
            if granted:
                self.release()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _try_create(self) -> bool:
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump({"createdAt": time.time(), "pid": os.getpid()}, f)
        return True

    def _marker_age(self) -> Optional[float]:
        """Seconds since the current marker was created, ``None`` if it vanished."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError:
            text = ""

        created_at: Optional[float] = None
        try:
            created_at = float(json.loads(text)["createdAt"])
        except (ValueError, KeyError, TypeError):
            # Half-written or foreign marker: fall back to the file's mtime.
            try:
                created_at = self.path.stat().st_mtime
            except FileNotFoundError:
                return None
        return time.time() - created_at

    def _remove_marker(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
