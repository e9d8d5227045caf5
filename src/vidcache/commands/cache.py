"""Cache commands -- inspect, warm up, and maintain the YouTube cache.

Registered directly on the root app:

* ``status`` -- readiness, totals and configured playlists still missing.
* ``clear`` -- delete the cache directory.
* ``warmup`` / ``refresh`` -- fetch the channel and every configured
  playlist sequentially (``refresh`` ignores freshness).
* ``complete`` -- mark playlists complete so they are never refetched.
* ``validate`` -- check that every snapshot named by the ledger exists.

A playlist that fails during warmup is reported and counted but never
aborts the run; the command still exits 0. A missing API key exits with
:data:`~vidcache.exit_codes.EXIT_AUTH_FAILURE` before anything is fetched.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Optional

import typer

from vidcache.output import (
    OutputFormat,
    error,
    format_response,
    get_output,
    info,
    print_table,
    rule,
    success,
    suggest,
    warning,
)

_MISSING_PREVIEW = 10


def _open_cache(ctx: typer.Context):
    """Build the project config and cache from the root options."""
    from vidcache.cache import YouTubeCache
    from vidcache.config import load_project_config, resolve_cache_dir
    from vidcache.exceptions import ConfigError

    obj = ctx.obj or {}
    try:
        project = load_project_config(obj.get("config"))
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    cache_dir = resolve_cache_dir(obj.get("cache_dir"), project)
    return project, YouTubeCache(cache_dir, project.cache)


def status_command(ctx: typer.Context) -> None:
    """Show cache statistics.

    Example::

        vidcache status
        vidcache --json status
    """
    project, cache = _open_cache(ctx)
    stats = cache.stats()
    ready = cache.is_ready()

    cached_ids = set(stats.playlists)
    missing = [p for p in project.playlists if p.id not in cached_ids]

    if get_output().format == OutputFormat.JSON:
        data = stats.model_dump(mode="json", by_alias=True)
        data["ready"] = ready
        data["cacheDir"] = str(cache.cache_dir)
        data["missingPlaylists"] = [p.id for p in missing]
        format_response(data)
        return

    configured = len(project.playlists)
    rows = [
        ["Status", "Ready" if ready else "Not ready"],
        ["Cache directory", str(cache.cache_dir)],
        ["Playlists cached", f"{stats.total_playlists} / {configured}"],
        ["Complete playlists", str(stats.complete_playlists)],
        ["Total videos", str(stats.total_videos)],
        ["Last updated", stats.last_updated.astimezone().strftime("%Y-%m-%d %H:%M:%S")],
    ]
    print_table(["Field", "Value"], rows, title="YouTube Cache")

    if missing:
        warning(f"Missing playlists ({len(missing)}):")
        for playlist in missing[:_MISSING_PREVIEW]:
            warning(f"  - {playlist.name}")
        if len(missing) > _MISSING_PREVIEW:
            warning(f"  ... and {len(missing) - _MISSING_PREVIEW} more")
        suggest("Run 'vidcache warmup' to fetch missing playlists.")


def clear_command(ctx: typer.Context) -> None:
    """Clear all cached data.

    Asks for confirmation unless ``--force`` is active.

    Example::

        vidcache clear
        vidcache --force clear
    """
    _, cache = _open_cache(ctx)
    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm(f"Delete the cache at {cache.cache_dir}?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    cache.clear()
    success("Cache cleared successfully!")


@dataclass
class WarmupSummary:
    """Counters reported at the end of a warmup run."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    videos: int = 0
    channel_failed: bool = False


async def run_warmup(cache, project, api_key: str, force_refresh: bool = False) -> WarmupSummary:
    """Fetch the channel then every configured playlist, one at a time.

    Failures are counted, never raised.
    """
    settings = cache.settings
    summary = WarmupSummary(total=len(project.playlists))

    if project.channel is not None:
        info("Fetching channel videos...")
        outcome = await cache.load_channel_outcome(
            api_key,
            project.channel.id,
            max_results=settings.channel_max_results,
            force_refresh=force_refresh,
        )
        summary.videos += len(outcome.videos)
        if outcome.failed:
            summary.channel_failed = True
            summary.failed += 1
            error(f"  ✗ Channel failed: {outcome.error}")
        else:
            success(f"  ✓ Channel: {len(outcome.videos)} videos")
        if project.playlists and settings.warmup_delay_seconds > 0:
            await asyncio.sleep(settings.warmup_delay_seconds / 2)

    for index, playlist in enumerate(project.playlists, start=1):
        info(f"\n[{index}/{summary.total}] {playlist.name}")
        info(f"  Category: {playlist.category or '-'} | ID: {playlist.id}")

        outcome = await cache.load_playlist_outcome(
            api_key,
            playlist.id,
            playlist.name,
            max_results=settings.playlist_max_results,
            force_refresh=force_refresh,
            is_complete=playlist.is_complete,
        )
        summary.videos += len(outcome.videos)
        if outcome.failed:
            summary.failed += 1
            error(f"  ✗ Error: {outcome.error}")
        else:
            summary.succeeded += 1
            success(f"  ✓ Loaded {len(outcome.videos)} videos")

        if index < summary.total and settings.warmup_delay_seconds > 0:
            await asyncio.sleep(settings.warmup_delay_seconds)

    return summary


def _warmup(ctx: typer.Context, force_refresh: bool) -> None:
    from vidcache.config import resolve_credential
    from vidcache.exceptions import VidcacheError

    project, cache = _open_cache(ctx)
    try:
        api_key = resolve_credential(project.api_key_source)
    except VidcacheError as exc:
        error(str(exc))
        suggest("export YOUTUBE_API_KEY='your_api_key_here'")
        raise typer.Exit(code=exc.exit_code) from None

    if len(api_key) < 30:
        warning("The API key seems too short. Make sure it's valid.")

    action = "Refreshing" if force_refresh else "Warming up"
    info(f"{action} YouTube cache ({len(project.playlists)} playlists)...")

    started = time.monotonic()
    summary = asyncio.run(run_warmup(cache, project, api_key, force_refresh))
    duration = int(time.monotonic() - started)

    rule("Cache Warmup Complete")
    success(f"✓ Successful: {summary.succeeded}/{summary.total} playlists")
    if summary.failed:
        error(f"✗ Failed: {summary.failed}")
    info(f"Total videos: {summary.videos}")
    info(f"Duration: {duration // 60}m {duration % 60}s")
    rule()

    if summary.failed:
        warning("Some items failed. You may want to run 'vidcache warmup' again.")
    else:
        success("Cache is ready! You can now build the site.")


def warmup_command(ctx: typer.Context) -> None:
    """Fetch the channel and all configured playlists (recommended before a build).

    Fresh and complete playlists are served from the cache without any
    request.

    Example::

        YOUTUBE_API_KEY=... vidcache warmup
    """
    _warmup(ctx, force_refresh=False)


def refresh_command(ctx: typer.Context) -> None:
    """Force refresh the channel and all configured playlists, ignoring the cache.

    Example::

        vidcache refresh
    """
    _warmup(ctx, force_refresh=True)


def complete_command(
    ctx: typer.Context,
    playlist_id: Optional[str] = typer.Argument(
        None, help="Playlist to mark (default: every configured playlist)."
    ),
    active: bool = typer.Option(
        False, "--active", help="Clear the completion flag instead of setting it."
    ),
) -> None:
    """Mark playlists as complete so they are never refetched.

    Only playlists that are already cached can be marked.

    Example::

        vidcache complete
        vidcache complete PLEkQk5xrP-tly7ti7Qb_lS7xjUg_fwlNP --active
    """
    project, cache = _open_cache(ctx)
    ids = [playlist_id] if playlist_id else [p.id for p in project.playlists]
    if not ids:
        warning("No playlists configured.")
        return

    cached_ids = set(cache.stats().playlists)

    async def _mark() -> int:
        marked = 0
        for pid in ids:
            if pid not in cached_ids:
                warning(f"Playlist {pid} is not cached; skipped")
            elif await cache.mark_complete(pid, not active):
                marked += 1
            else:
                warning(f"Could not update playlist {pid}; skipped")
        return marked

    marked = asyncio.run(_mark())
    state = "active" if active else "complete"
    success(f"Marked {marked}/{len(ids)} playlists as {state}.")


def validate_command(ctx: typer.Context) -> None:
    """Check that every cached playlist has its snapshot file.

    Exits with code 1 when any file is missing.

    Example::

        vidcache validate
    """
    from vidcache.exit_codes import EXIT_GENERIC_FAILURE

    _, cache = _open_cache(ctx)
    info("Validating cache...")
    report = cache.validate()

    if get_output().format == OutputFormat.JSON:
        format_response(report.model_dump(mode="json", by_alias=True))
    elif report.is_valid:
        success("Cache is valid!")
        info(f"  Total videos: {cache.stats().total_videos}")
    else:
        error("Cache validation failed:")
        for message in report.errors:
            error(f"  - {message}")
        suggest("Run 'vidcache warmup' to fix missing data.")

    if not report.is_valid:
        raise typer.Exit(code=EXIT_GENERIC_FAILURE)
