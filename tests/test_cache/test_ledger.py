"""Tests for the metadata ledger."""

from __future__ import annotations

import asyncio
import json
import time
from datetime import timedelta

import pytest

from vidcache.cache.ledger import MetadataLedger
from vidcache.cache.lock import MetadataLock
from vidcache.cache.store import METADATA_KEY, CacheStore
from vidcache.models import ChannelEntry, PlaylistEntry, utcnow


def _ledger(path, read_ttl: float = 0.0, lock_timeout: float = 1.0) -> MetadataLedger:
    store = CacheStore(path)
    lock = MetadataLock(path, poll_interval=0.01)
    return MetadataLedger(store, lock, read_ttl=read_ttl, lock_timeout=lock_timeout)


def _entry(count: int = 1, complete: bool = False) -> PlaylistEntry:
    return PlaylistEntry(last_fetched=utcnow(), is_complete=complete, video_count=count)


class TestGet:
    def test_absent_file_gives_empty_ledger(self, tmp_path) -> None:
        ledger = _ledger(tmp_path)
        metadata = ledger.get()
        assert metadata.playlists == {}
        assert metadata.channel is None
        assert not (tmp_path / "metadata.json").exists()

    def test_corrupt_file_gives_empty_ledger(self, tmp_path) -> None:
        (tmp_path / "metadata.json").write_text('{"playlists": 5}', encoding="utf-8")
        assert _ledger(tmp_path).get().playlists == {}

    @pytest.mark.asyncio
    async def test_in_process_copy_reused_within_ttl(self, tmp_path) -> None:
        ledger = _ledger(tmp_path, read_ttl=60)
        await ledger.update(playlists={"PL1": _entry()})
        CacheStore(tmp_path).write_item(METADATA_KEY, {"playlists": {}})
        assert "PL1" in ledger.get().playlists
        assert ledger.get(refresh=True).playlists == {}

    @pytest.mark.asyncio
    async def test_invalidate_forces_reread(self, tmp_path) -> None:
        ledger = _ledger(tmp_path, read_ttl=60)
        await ledger.update(playlists={"PL1": _entry()})
        (tmp_path / "metadata.json").unlink()
        ledger.invalidate()
        assert ledger.get().playlists == {}


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_writes_camel_case_file(self, tmp_path) -> None:
        ledger = _ledger(tmp_path)
        assert await ledger.update(playlists={"PL1": _entry(3, complete=True)}) is True
        data = json.loads((tmp_path / "metadata.json").read_text(encoding="utf-8"))
        assert data["schemaVersion"] == 1
        assert "lastUpdated" in data
        assert data["playlists"]["PL1"]["videoCount"] == 3
        assert data["playlists"]["PL1"]["isComplete"] is True
        assert not (tmp_path / "metadata.lock").exists()

    @pytest.mark.asyncio
    async def test_update_keeps_other_entries(self, tmp_path) -> None:
        ledger = _ledger(tmp_path)
        await ledger.update(playlists={"PL1": _entry(1)})
        await ledger.update(channel=ChannelEntry(last_fetched=utcnow(), video_count=9))
        await ledger.update(playlists={"PL2": _entry(2)})
        metadata = ledger.get(refresh=True)
        assert set(metadata.playlists) == {"PL1", "PL2"}
        assert metadata.channel.video_count == 9

    @pytest.mark.asyncio
    async def test_update_replaces_named_entry(self, tmp_path) -> None:
        ledger = _ledger(tmp_path)
        await ledger.update(playlists={"PL1": _entry(1)})
        await ledger.update(playlists={"PL1": _entry(5)})
        assert ledger.get(refresh=True).playlists["PL1"].video_count == 5

    @pytest.mark.asyncio
    async def test_update_rereads_disk_not_stale_copy(self, tmp_path) -> None:
        first = _ledger(tmp_path, read_ttl=60)
        second = _ledger(tmp_path, read_ttl=60)
        first.get()
        await second.update(playlists={"PL2": _entry()})
        await first.update(playlists={"PL1": _entry()})
        assert set(first.get(refresh=True).playlists) == {"PL1", "PL2"}

    @pytest.mark.asyncio
    async def test_concurrent_updates_lose_nothing(self, tmp_path) -> None:
        ledgers = [_ledger(tmp_path) for _ in range(5)]
        results = await asyncio.gather(
            *(ledger.update(playlists={f"PL{i}": _entry(i)}) for i, ledger in enumerate(ledgers))
        )
        assert all(results)
        assert set(_ledger(tmp_path).get().playlists) == {f"PL{i}" for i in range(5)}

    @pytest.mark.asyncio
    async def test_last_updated_advances(self, tmp_path) -> None:
        ledger = _ledger(tmp_path)
        before = utcnow() - timedelta(seconds=1)
        await ledger.update(playlists={"PL1": _entry()})
        assert ledger.get(refresh=True).last_updated >= before

    @pytest.mark.asyncio
    async def test_lock_timeout_skips_write(self, tmp_path) -> None:
        ledger = _ledger(tmp_path, lock_timeout=0.05)
        (tmp_path / "metadata.lock").write_text(
            json.dumps({"createdAt": time.time(), "pid": 1}), encoding="utf-8"
        )
        assert await ledger.update(playlists={"PL1": _entry()}) is False
        assert not (tmp_path / "metadata.json").exists()
