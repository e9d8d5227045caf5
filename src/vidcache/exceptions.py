"""Exception hierarchy for vidcache.

All exceptions inherit from :class:`VidcacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`vidcache.exit_codes`.
The top-level error handler in :func:`vidcache.app.main` catches
``VidcacheError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Inside the library these exceptions travel from the HTTP client up to
:class:`~vidcache.cache.manager.YouTubeCache`, which absorbs them and
serves whatever is cached instead.

Subclass hierarchy::

    VidcacheError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- AuthError               (exit 3)
    +-- NotFoundError           (exit 4)
    +-- ServerError             (exit 5)
    |   +-- RateLimitError      (exit 8)
    +-- SourceError             (exit 5)
    +-- ConnectionError_        (exit 6)
    +-- ConfigError             (exit 1)
        +-- MissingCredentialError (exit 3)
"""

from vidcache.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_RATE_LIMITED,
    EXIT_SERVER_ERROR,
)


class VidcacheError(Exception):
    """Base exception for all vidcache errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`vidcache.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(VidcacheError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(VidcacheError):
    """Raised when the API rejects the key (HTTP 401 / 403, including exhausted quota)."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(VidcacheError):
    """Raised when the API returns HTTP 404 (unknown playlist or channel)."""

    exit_code = EXIT_NOT_FOUND


class ServerError(VidcacheError):
    """Raised when the API returns an HTTP 5xx error after all retries."""

    exit_code = EXIT_SERVER_ERROR


class RateLimitError(ServerError):
    """Raised when HTTP 429 responses persist past the retry budget.

    Attributes:
        retry_after: Seconds the API last asked us to wait, if advertised.
    """

    exit_code = EXIT_RATE_LIMITED

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class SourceError(VidcacheError):
    """Raised for any other non-retryable HTTP 4xx answer from the API."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(VidcacheError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ConfigError(VidcacheError):
    """Raised for configuration problems (invalid ``vidcache.json``, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class MissingCredentialError(ConfigError):
    """Raised when a fetch is attempted without a resolvable API key."""

    exit_code = EXIT_AUTH_FAILURE
