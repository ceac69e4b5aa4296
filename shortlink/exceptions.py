"""Exceptions raised by the storage backends and the shortener service.

Classes:
    ShortenerError:
        Generic base class for Shortlink exceptions.

    InvalidURLError:
        The origin is not an absolute URL (scheme and host required).
        Also a ValueError, so callers validating input can catch either.

    ConflictError:
        The origin is already stored; `existing_code` holds its code.
        Recovered by the service, never surfaced from `shorten()`.

    CodeCollisionError:
        The generated code is already taken by a *different* origin.

    NotFoundError:
        The code was never created.

    GoneError:
        The code exists but has been soft-deleted.

    BackendUnavailableError:
        The relational backend cannot be reached.

Example:
    >>> from shortlink.exceptions import ConflictError
    >>> raise ConflictError("abc123")
    Traceback (most recent call last):
        ...
    shortlink.exceptions.ConflictError: origin already shortened as 'abc123'
"""


class ShortenerError(Exception):
    """Generic base class for Shortlink exceptions."""

    pass


class InvalidURLError(ShortenerError, ValueError):
    """Exception raised when an origin is not a valid absolute URL."""

    def __init__(self, url: str) -> None:
        super().__init__(f"invalid URL: {url!r}")
        self.url = url


class ConflictError(ShortenerError):
    """Exception raised when the origin already maps to a stored code."""

    def __init__(self, existing_code: str) -> None:
        super().__init__(f"origin already shortened as {existing_code!r}")
        self.existing_code = existing_code


class CodeCollisionError(ShortenerError):
    """Exception raised when a code is already taken by another origin."""

    def __init__(self, code: str) -> None:
        super().__init__(f"code {code!r} already maps to a different origin")
        self.code = code


class NotFoundError(ShortenerError):
    """Exception raised when a code is unknown."""

    pass


class GoneError(ShortenerError):
    """Exception raised when a code is known but soft-deleted."""

    pass


class BackendUnavailableError(ShortenerError):
    """Exception raised when the storage backend cannot be reached.

    e.g. connection refused, timeouts, server shutdown.
    """

    pass
