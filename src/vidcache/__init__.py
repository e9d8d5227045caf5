"""vidcache -- Local disk-backed cache for YouTube playlist and channel data.

This package keeps a JSON copy of YouTube Data API listings on disk so
that static-site builds can read video metadata without touching the
network. Playlists are fetched page by page, persisted atomically, and
summarised in a metadata ledger that records when each one was last
fetched and whether it is *complete* (never refetched again).

Typical workflow::

    vidcache warmup      # fetch every configured playlist once
    vidcache status      # inspect what is cached
    vidcache validate    # check snapshot files before a build

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for videos, snapshots, ledger and config.
    config: Project config loading, credential resolution, atomic writes.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    cache: Store, lock, ledger and the :class:`YouTubeCache` orchestrator.
    client: Async YouTube Data API client and paginating fetcher.
    loader: Adapter that turns cached playlists into build collections.
"""

__version__ = "0.3.0"
