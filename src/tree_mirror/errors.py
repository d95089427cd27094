"""
Error taxonomy for Tree Mirror.

Structural errors (MalformedSource, MissingCursor, SourceUnavailable)
abort a sync cycle. WriteFailure is raised per page and handled by the
engine without aborting the cycle.
"""

from __future__ import annotations


class MirrorError(Exception):
    """Base exception for all mirror errors."""

    def __init__(self, message: str, locator: str | None = None) -> None:
        super().__init__(message)
        self.locator = locator


class ConfigurationError(MirrorError):
    """Raised when prefixes or other settings cannot work together."""

    pass


class NotBootstrapped(MirrorError):
    """Raised when the mirror root does not exist yet."""

    pass


class SourceUnavailable(MirrorError):
    """Raised when the source root cannot be fetched."""

    pass


class MalformedSource(MirrorError):
    """Raised for missing relations, bad shapes or missing member timestamps."""

    pass


class AmbiguousOpenPage(MalformedSource):
    """Raised when several relations share the greatest boundary value."""

    def __init__(self, value: object, nodes: list[str]) -> None:
        super().__init__(
            f"Relations {', '.join(sorted(nodes))} share boundary value {value}"
        )
        self.value = value
        self.nodes = nodes


class MissingCursor(MirrorError):
    """Raised when the mirror root holds zero or several cursor records."""

    def __init__(self, locator: str, found: int) -> None:
        super().__init__(
            f"Expected exactly one cursor at {locator}, found {found}",
            locator,
        )
        self.found = found


class NotFound(MirrorError):
    """Raised by stores when a resource is absent."""

    pass


class WriteFailure(MirrorError):
    """Raised by stores when a put, patch or create is rejected."""

    def __init__(
        self,
        message: str,
        locator: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message, locator)
        self.status = status
