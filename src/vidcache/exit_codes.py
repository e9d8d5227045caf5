"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~vidcache.exceptions.VidcacheError` subclass.
CI scripts that run ``vidcache warmup`` before a site build can inspect
the exit code to tell a missing API key apart from a network outage.

Example::

    $ vidcache warmup
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- YOUTUBE_API_KEY is not set
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (also used when cache validation fails)."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""The API key is missing, or the YouTube API rejected it."""

EXIT_NOT_FOUND = 4
"""The requested playlist or channel was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The YouTube API returned an HTTP 5xx or an unexpected client error."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_RATE_LIMITED = 8
"""The YouTube API kept answering HTTP 429 after all retry attempts."""
