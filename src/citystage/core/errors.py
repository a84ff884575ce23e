"""Error taxonomy for content resolution.

Absent content and unreachable content are different outcomes: fetchers
return ``None`` for the former and raise ``UpstreamUnavailable`` for the
latter. Malformed stored fields never raise; the normalizer coerces them.
"""


class CitystageError(Exception):
    """Base class for citystage errors."""


class NotFound(CitystageError):
    """No resolvable, visible entity exists for a path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"No content for path: {path}")
        self.path = path


class UpstreamUnavailable(CitystageError):
    """The external store could not be reached or rejected the query."""

    def __init__(self, source: str, detail: str = "") -> None:
        message = f"{source} unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.source = source
        self.detail = detail


class UpstreamTimeout(UpstreamUnavailable):
    """A store read exceeded its timeout."""


class RegistryUnavailable(UpstreamUnavailable):
    """The page registry lookup failed at the transport level."""
