"""Immutable data models for scraped Netflix Top 10 snapshots.

All dataclasses are frozen (immutable) to prevent accidental mutation.
Models that end up in MongoDB have a to_document() method that converts
them to a plain dict suitable for insertion. Enrichment records from the
metadata API are kept as open mappings so upstream schema drift never
touches the typed row fields.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union


@dataclass(frozen=True)
class RawRow:
    """The raw cell text of one table row, before normalization.

    Missing cells are empty strings, never None.
    """

    rank: str = ""
    title: str = ""
    weeks: str = ""
    views: str = ""
    runtime: str = ""
    hours: str = ""


@dataclass(frozen=True)
class RankingEntry:
    """A single show/film in a Top 10 list.

    Attributes:
        rank: Position in the list (0 when the rank cell was unreadable).
        title: Show or film title (may be empty if the cell was missing).
        weeks_in_top_10: Cumulative weeks this title has appeared in the Top 10.
        views: Views for the window, None when not shown.
        runtime_minutes: Runtime in minutes, None when not shown.
        hours_viewed: Hours viewed for the window, None when not shown.
    """

    rank: int
    title: str
    weeks_in_top_10: Optional[int] = None
    views: Optional[int] = None
    runtime_minutes: Optional[int] = None
    hours_viewed: Optional[int] = None

    def to_document(self) -> dict:
        """Convert to a MongoDB-ready dict."""
        return {
            "rank": self.rank,
            "title": self.title,
            "weeks_in_top_10": self.weeks_in_top_10,
            "views": self.views,
            "runtime_minutes": self.runtime_minutes,
            "hours_viewed": self.hours_viewed,
        }


@dataclass(frozen=True)
class EnrichedEntry:
    """A RankingEntry with the best-matching external title record attached."""

    entry: RankingEntry
    enrichment: Optional[Mapping[str, Any]] = None

    @property
    def title(self) -> str:
        return self.entry.title

    def to_document(self) -> dict:
        doc = self.entry.to_document()
        doc["enrichment"] = (
            dict(self.enrichment) if self.enrichment is not None else None
        )
        return doc


Row = Union[RankingEntry, EnrichedEntry]


@dataclass(frozen=True)
class TimeWindow:
    """The period a Top 10 list covers, parsed from the page caption.

    kind is "weekly" (both dates set), "all-time" (no dates) or None
    (only year may be set).
    """

    kind: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    year: Optional[int] = None

    def to_document(self) -> dict:
        return {
            "kind": self.kind,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "year": self.year,
        }


@dataclass(frozen=True)
class SnapshotMeta:
    """Where and when a Top 10 list was scraped.

    Attributes:
        title: The page title, used as the top-level search field.
        source_url: URL the list was scraped from.
        country: Country name the list was filtered to, None for Global.
        category: One of config.CATEGORIES.
        time_window: Parsed caption of the table.
        row_count: Number of rows in the snapshot.
        scraped_at: UTC timestamp when this data was collected.
    """

    title: str
    source_url: str
    country: Optional[str]
    category: str
    time_window: TimeWindow
    row_count: int
    scraped_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_global(self) -> bool:
        return self.country is None

    def to_document(self) -> dict:
        return {
            "title": self.title,
            "source_url": self.source_url,
            "is_global": self.is_global,
            "country": self.country,
            "category": self.category,
            "time_window": self.time_window.to_document(),
            "row_count": self.row_count,
            "scraped_at": self.scraped_at,
        }


@dataclass(frozen=True)
class ScrapeResult:
    """One scraped Top 10 list, optionally enriched.

    Use ScrapeResult.build() so row_count always matches the rows.
    """

    meta: SnapshotMeta
    rows: tuple[Row, ...]

    @classmethod
    def build(
        cls,
        *,
        title: str,
        source_url: str,
        country: Optional[str],
        category: str,
        time_window: TimeWindow,
        rows: tuple[Row, ...],
        scraped_at: Optional[datetime] = None,
    ) -> "ScrapeResult":
        meta = SnapshotMeta(
            title=title,
            source_url=source_url,
            country=country,
            category=category,
            time_window=time_window,
            row_count=len(rows),
            scraped_at=scraped_at or datetime.now(timezone.utc),
        )
        return cls(meta=meta, rows=tuple(rows))

    def with_rows(self, rows: tuple[Row, ...]) -> "ScrapeResult":
        """Return a copy carrying new rows, with row_count kept in sync."""
        meta = SnapshotMeta(
            title=self.meta.title,
            source_url=self.meta.source_url,
            country=self.meta.country,
            category=self.meta.category,
            time_window=self.meta.time_window,
            row_count=len(rows),
            scraped_at=self.meta.scraped_at,
        )
        return ScrapeResult(meta=meta, rows=tuple(rows))

    def to_document(self) -> dict:
        """The {meta, rows} output shape of a pipeline run."""
        rows = []
        for row in self.rows:
            doc = row.to_document()
            doc.setdefault("enrichment", None)
            rows.append(doc)
        return {"meta": self.meta.to_document(), "rows": rows}


@dataclass(frozen=True)
class SnapshotPage:
    """One page of snapshots; next_cursor is None on the last page."""

    items: tuple[dict, ...]
    next_cursor: Optional[str] = None


@dataclass(frozen=True)
class SaveOutcome:
    snapshot_id: str
    meta: SnapshotMeta


@dataclass(frozen=True)
class ScrapeRun:
    """Audit record for one job invocation.

    Stored in the scrape_runs collection so every execution is traceable.

    Attributes:
        run_id: UUID identifying this run.
        started_at: UTC timestamp when the run began.
        completed_at: UTC timestamp when the run finished.
        status: One of "success", "partial_failure", or "failure".
        snapshot_id: Identity of the snapshot written, None on failure.
        row_count: Number of rows persisted.
        errors: Any errors encountered during the run.
    """

    run_id: str
    started_at: datetime
    completed_at: datetime
    status: str
    snapshot_id: Optional[str]
    row_count: int
    errors: tuple[str, ...] = ()

    def to_document(self) -> dict:
        """Convert to a MongoDB-ready dict for the scrape_runs collection."""
        return {
            "run_id": self.run_id,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "status": self.status,
            "snapshot_id": self.snapshot_id,
            "row_count": self.row_count,
            "errors": list(self.errors),
        }
