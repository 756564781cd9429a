"""Error types raised by the resolution layer."""

MANUAL_BROWSE_HINT = "Try browsing the file index manually"
EXTERNAL_SEARCH_HINT = "Try an external search for this title"


class ResolverError(Exception):
    """Base class for resolution failures.

    ``hint`` names the fallback action a caller should offer instead of a
    bare error message.
    """

    hint = MANUAL_BROWSE_HINT

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.message = message
        if hint is not None:
            self.hint = hint


class FetchError(ResolverError):
    """Relay, network, timeout or non-2xx failure. Retry is a caller concern."""

    def __init__(self, message: str, url: str | None = None,
                 status: int | None = None, hint: str | None = None):
        super().__init__(message, hint)
        self.url = url
        self.status = status


class ParseError(ResolverError):
    """A structural assumption about fetched HTML or JSON was not met."""

    def __init__(self, message: str, cause: Exception | None = None,
                 hint: str | None = None):
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message, hint)
        self.cause = cause


class NotFoundError(ResolverError):
    """Terminal "no result" condition."""

    hint = EXTERNAL_SEARCH_HINT

    def __init__(self, reason: str | None = None, hint: str | None = None):
        super().__init__(f"Couldn't find a stream: {reason or 'not found'}", hint)
        self.reason = reason
