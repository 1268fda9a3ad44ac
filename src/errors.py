"""Exception hierarchy for the scrape/enrich/persist pipeline.

SourceLoadFailure, ExtractionTimeout and PersistenceFailure are the ones
meant to reach the job entry point. The others are raised at the
smallest scope that can fail and are caught and logged by their
immediate caller.
"""

from __future__ import annotations


class Top10Error(Exception):
    """Base class for all pipeline errors."""


class ExtractionTimeout(Top10Error):
    """The Top 10 table rows never appeared on the page."""

    def __init__(self, selector: str, timeout_ms: int) -> None:
        super().__init__(
            f"Timed out after {timeout_ms}ms waiting for '{selector}'"
        )
        self.selector = selector
        self.timeout_ms = timeout_ms


class SourceLoadFailure(Top10Error):
    """The page could not be opened: browser launch, navigation or sample file."""

    def __init__(self, source: str, cause: Exception) -> None:
        super().__init__(f"Failed to load {source}: {cause}")
        self.source = source
        self.cause = cause


class FilterApplicationFailure(Top10Error):
    """A country or category filter could not be applied."""


class RemoteError(Top10Error):
    """The metadata API answered with a non-success HTTP status."""

    def __init__(self, path: str, status: int, text: str = "") -> None:
        super().__init__(f"GET {path} failed: {status} {text}".rstrip())
        self.path = path
        self.status = status
        self.text = text


class InvalidIdentifier(Top10Error, ValueError):
    """A title id does not look like an IMDb id (tt1234567)."""


class PersistenceFailure(Top10Error):
    """Writing a snapshot to MongoDB failed."""

    def __init__(self, identity: str, cause: Exception) -> None:
        super().__init__(f"Failed to persist snapshot {identity}: {cause}")
        self.identity = identity
        self.cause = cause
