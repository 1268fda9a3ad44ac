"""MongoDB repositories for Top 10 snapshots, saved titles and run audits.

Snapshots are content addressed: the document _id is a SHA-1 of
"<source tag>|<source URL>", so scraping the same page again replaces the
stored snapshot instead of adding a new one. No unique index is needed
on top of that; replace-by-_id with upsert is idempotent by construction.
Two overlapping writers for the same URL are not coordinated; the last
one to finish wins.

Listing uses cursor pagination on _id (descending, exclusive cursor).
Search prefers the weighted text index and falls back to a
case-insensitive regex when text search cannot run.
"""

from __future__ import annotations

import hashlib
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, TEXT, IndexModel
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from src.config import MongoConfig
from src.errors import PersistenceFailure
from src.models import ScrapeResult, ScrapeRun, SnapshotPage

logger = logging.getLogger(__name__)

SOURCE_TAG = "netflix"
DEFAULT_TAKE = 20
MAX_TAKE = 100


def compute_snapshot_id(source_tag: str, source_url: str) -> str:
    """Deterministic identity of a snapshot.

    Examples:
        compute_snapshot_id("netflix", "https://www.netflix.com/tudum/top10")
        always returns the same 40 character hex digest.
    """
    return hashlib.sha1(f"{source_tag}|{source_url}".encode("utf-8")).hexdigest()


def clamp_take(take: Optional[int]) -> int:
    if take is None:
        return DEFAULT_TAKE
    return min(MAX_TAKE, max(1, int(take)))


def _page(items: list[dict], take: int) -> SnapshotPage:
    next_cursor = str(items[-1]["_id"]) if len(items) == take else None
    return SnapshotPage(items=tuple(items), next_cursor=next_cursor)


class SnapshotRepository:
    """Repository for reading and writing Top 10 snapshots.

    Wraps two MongoDB collections:
    - netflix_top10: the snapshots (replaced in full on every save)
    - scrape_runs: audit trail of job invocations (appended)
    """

    def __init__(self, db: Database, config: MongoConfig) -> None:
        """Initialize with database handle and collection names from config."""
        self._snapshots: Collection = db[config.snapshots_collection]
        self._runs: Collection = db[config.runs_collection]

    def ensure_indexes(self) -> None:
        """Create the search and filter indexes if they don't already exist.

        - Text index over the page title (weight 5) and row titles (weight 1).
        - (country, category, _id desc) for filtered, paginated listing.
        """
        text_index = IndexModel(
            [("title", TEXT), ("rows.title", TEXT)],
            weights={"title": 5, "rows.title": 1},
            name="snapshot_text_idx",
        )
        filter_index = IndexModel(
            [
                ("country", ASCENDING),
                ("category", ASCENDING),
                ("_id", DESCENDING),
            ],
            name="snapshot_country_category_idx",
        )
        self._snapshots.create_indexes([text_index, filter_index])
        logger.info("Ensured indexes on snapshots collection")

    def save_snapshot(
        self,
        result: ScrapeResult,
        source_tag: str = SOURCE_TAG,
    ) -> str:
        """Upsert a scrape result under its content-addressed id.

        The stored document is replaced in full, so fields from a previous
        scrape (or written by another process) do not survive.

        Returns:
            The snapshot id.

        Raises:
            PersistenceFailure: If MongoDB rejected the write.
        """
        snapshot_id = compute_snapshot_id(source_tag, result.meta.source_url)
        output = result.to_document()
        document = {
            "_id": snapshot_id,
            "src": source_tag,
            "fmt": "html",
            **output["meta"],
            "rows": output["rows"],
            "updated_at": datetime.now(timezone.utc),
        }
        try:
            write = self._snapshots.replace_one(
                {"_id": snapshot_id}, document, upsert=True
            )
        except PyMongoError as exc:
            raise PersistenceFailure(snapshot_id, exc) from exc

        logger.info(
            "Snapshot %s %s (%d rows, country=%s, category=%s)",
            snapshot_id,
            "inserted" if write.upserted_id is not None else "replaced",
            result.meta.row_count,
            result.meta.country,
            result.meta.category,
        )
        return snapshot_id

    @staticmethod
    def _base_filter(
        country: Optional[str],
        category: Optional[str],
        cursor: Optional[str],
    ) -> dict[str, Any]:
        query: dict[str, Any] = {}
        if country:
            query["country"] = country
        if category:
            query["category"] = category
        if cursor:
            query["_id"] = {"$lt": cursor}
        return query

    def list_snapshots(
        self,
        country: Optional[str] = None,
        category: Optional[str] = None,
        cursor: Optional[str] = None,
        take: Optional[int] = DEFAULT_TAKE,
    ) -> SnapshotPage:
        """Page through snapshots, newest id first.

        Args:
            country: Only snapshots filtered to this country.
            category: Only snapshots of this category.
            cursor: Exclusive lower bound; the last id of the previous page.
            take: Page size, clamped to [1, 100].

        Returns:
            SnapshotPage whose next_cursor is set only when the page is full.
        """
        take = clamp_take(take)
        query = self._base_filter(country, category, cursor)
        items = list(
            self._snapshots.find(query).sort("_id", DESCENDING).limit(take)
        )
        logger.debug("list_snapshots %s take=%d got=%d", query, take, len(items))
        return _page(items, take)

    def _text_search(self, query: dict[str, Any], take: int) -> list[dict]:
        return list(
            self._snapshots.find(query, {"score": {"$meta": "textScore"}})
            .sort([("score", {"$meta": "textScore"}), ("_id", DESCENDING)])
            .limit(take)
        )

    def search_snapshots(
        self,
        text: Optional[str],
        country: Optional[str] = None,
        category: Optional[str] = None,
        cursor: Optional[str] = None,
        take: Optional[int] = DEFAULT_TAKE,
    ) -> SnapshotPage:
        """Search snapshots by page title or row title.

        A blank query is a plain list_snapshots call. Otherwise the text
        index is used; if MongoDB cannot run the text search (no index,
        unsupported deployment), a case-insensitive literal substring
        match over the same two fields is used instead.

        The cursor is always the last _id of the page. Text results are
        ordered by score, not _id, so following next_cursor can skip
        lower-scoring matches with a higher _id. Paging is exact only on
        the regex fallback and on list_snapshots.
        """
        term = (text or "").strip()
        if not term:
            return self.list_snapshots(country, category, cursor, take)

        take = clamp_take(take)
        base = self._base_filter(country, category, cursor)
        try:
            items = self._text_search({**base, "$text": {"$search": term}}, take)
            return _page(items, take)
        except PyMongoError as exc:
            logger.info("Text search unavailable, falling back to regex: %s", exc)

        pattern = re.compile(re.escape(term), re.IGNORECASE)
        fallback = {
            **base,
            "$or": [{"title": pattern}, {"rows.title": pattern}],
        }
        items = list(
            self._snapshots.find(fallback).sort("_id", DESCENDING).limit(take)
        )
        return _page(items, take)

    def save_scrape_run(self, run: ScrapeRun) -> None:
        """Insert an audit record for this job invocation.

        Args:
            run: ScrapeRun with status, timing, and error details.
        """
        self._runs.insert_one(run.to_document())
        logger.info("Saved scrape run %s", run.run_id)


class TitleRepository:
    """Saved IMDb title records, one document per title id."""

    def __init__(self, db: Database, config: MongoConfig) -> None:
        self._titles: Collection = db[config.titles_collection]

    def ensure_indexes(self) -> None:
        self._titles.create_indexes(
            [IndexModel([("title_id", ASCENDING)], unique=True, name="title_id_unique")]
        )

    def save_title(self, record: dict) -> str:
        """Upsert a title record keyed by its IMDb id.

        Returns:
            The title id.

        Raises:
            ValueError: If the record has no id.
            PersistenceFailure: If MongoDB rejected the write.
        """
        title_id = record.get("id")
        if not title_id:
            raise ValueError("title record has no id")
        try:
            self._titles.update_one(
                {"title_id": title_id},
                {
                    "$set": {
                        "data": record,
                        "updated_at": datetime.now(timezone.utc),
                    },
                    "$setOnInsert": {"title_id": title_id},
                },
                upsert=True,
            )
        except PyMongoError as exc:
            raise PersistenceFailure(title_id, exc) from exc
        logger.info("Saved title %s", title_id)
        return title_id

    def list_titles(
        self,
        cursor: Optional[str] = None,
        take: Optional[int] = DEFAULT_TAKE,
    ) -> SnapshotPage:
        """Page through saved titles, most recently inserted first."""
        take = clamp_take(take)
        query: dict[str, Any] = {}
        if cursor:
            try:
                query["_id"] = {"$lt": ObjectId(cursor)}
            except InvalidId:
                raise ValueError(f"invalid cursor '{cursor}'") from None
        items = list(self._titles.find(query).sort("_id", DESCENDING).limit(take))
        return _page(items, take)
