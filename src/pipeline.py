"""Scrape -> normalize -> enrich -> persist.

Top10Pipeline is the composition root of the job. Every collaborator
(page engine factory, enrichment orchestrator, snapshot repository) is
passed in by the caller, so the pipeline holds no hidden global state and
tests can swap any of them.

Only one page engine is alive at a time and it is closed before
enrichment starts: the browser is a stateful resource that must never be
driven by two steps at once.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from src.config import (
    CATEGORIES,
    CATEGORY_LABEL,
    GLOBAL_CATEGORY_PATH,
    TUDUM_BASE_URL,
    NetflixConfig,
)
from src.enrichment.imdb_client import ImdbClient
from src.enrichment.orchestrator import EnrichmentOrchestrator
from src.fetchers.engine import PageEngine, PlaywrightEngine, SoupEngine
from src.fetchers.page_extractor import PageExtractor
from src.models import RankingEntry, SaveOutcome, ScrapeResult
from src.storage.repository import SOURCE_TAG, SnapshotRepository, TitleRepository

logger = logging.getLogger(__name__)

EngineFactory = Callable[[bool], PageEngine]


@dataclass(frozen=True)
class ScrapeOptions:
    country: str = "Global"
    category: str = "movies_en"
    use_sample: bool = False
    sample_path: Optional[str] = None
    timeout_ms: Optional[int] = None


def country_slug(name: str) -> str:
    """Convert a country name to a Tudum URL slug.

    Examples:
        "United States" -> "united-states"
        "Côte d'Ivoire" -> "cte-divoire"
    """
    slug = re.sub(r"\s+", "-", name.strip().lower())
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")


def is_global(country: Optional[str]) -> bool:
    return not country or country.strip().lower() == "global"


def resolve_source_url(
    country: Optional[str],
    category: str,
    base_url: str = TUDUM_BASE_URL,
) -> str:
    """Pick the Tudum URL for a country/category combination.

    Global lists have one URL per category. Country pages only split
    films from TV; the English/non-English split is applied with the
    category dropdown.
    """
    base_url = base_url.rstrip("/")
    if is_global(country):
        return base_url + GLOBAL_CATEGORY_PATH.get(category, "")
    suffix = "/tv" if category.startswith("shows") else ""
    return f"{base_url}/{country_slug(country)}{suffix}"


def default_engine_factory(config: NetflixConfig) -> EngineFactory:
    """Static samples are parsed with BeautifulSoup, live pages need Chromium."""

    def factory(use_sample: bool) -> PageEngine:
        if use_sample:
            return SoupEngine()
        return PlaywrightEngine(config)

    return factory


class Top10Pipeline:
    def __init__(
        self,
        config: NetflixConfig,
        engine_factory: EngineFactory,
        orchestrator: EnrichmentOrchestrator,
        repository: SnapshotRepository,
        extractor_factory: Callable[..., PageExtractor] = PageExtractor,
    ) -> None:
        self._config = config
        self._engine_factory = engine_factory
        self._orchestrator = orchestrator
        self._repository = repository
        self._extractor_factory = extractor_factory

    def scrape(self, options: ScrapeOptions) -> ScrapeResult:
        """Extract and normalize one Top 10 list.

        Raises:
            ValueError: For an unknown category.
            SourceLoadFailure: If the browser, page or sample file could
                not be opened.
            ExtractionTimeout: If the table never rendered.
        """
        if options.category not in CATEGORIES:
            raise ValueError(f"Unknown category '{options.category}'")
        country = None if is_global(options.country) else options.country.strip()
        source_url = resolve_source_url(
            country, options.category, self._config.base_url
        )
        use_sample = options.use_sample or self._config.use_sample
        fixture_path = (
            (options.sample_path or self._config.sample_path) if use_sample else None
        )
        logger.debug(
            "scrape start country=%s category=%s sample=%s",
            country,
            options.category,
            use_sample,
        )

        engine = self._engine_factory(use_sample)
        try:
            extractor = self._extractor_factory(engine, self._config)
            return extractor.scrape(
                source_url,
                options.category,
                country=country,
                category_label=CATEGORY_LABEL.get(options.category),
                fixture_path=fixture_path,
                timeout_ms=options.timeout_ms,
            )
        finally:
            engine.close()

    def scrape_with_enrichment(self, options: ScrapeOptions) -> ScrapeResult:
        """Scrape, then attach the best IMDb match to every row."""
        result = self.scrape(options)
        entries = tuple(
            row for row in result.rows if isinstance(row, RankingEntry)
        )
        enriched = self._orchestrator.enrich(entries)
        return result.with_rows(enriched)

    def scrape_and_save(
        self,
        options: ScrapeOptions,
        source_tag: str = SOURCE_TAG,
    ) -> tuple[ScrapeResult, SaveOutcome]:
        """Run the full pipeline and upsert the snapshot.

        Raises:
            SourceLoadFailure: If the page could not be opened.
            ExtractionTimeout: If the table never rendered.
            PersistenceFailure: If the snapshot could not be written.
        """
        result = self.scrape_with_enrichment(options)
        snapshot_id = self._repository.save_snapshot(result, source_tag)
        return result, SaveOutcome(snapshot_id=snapshot_id, meta=result.meta)


def save_title_by_id(
    client: ImdbClient,
    titles: TitleRepository,
    title_id: str,
) -> str:
    """Fetch one IMDb title and store it in the saved titles collection.

    Raises:
        InvalidIdentifier: If title_id is malformed.
        RemoteError: If the API lookup failed.
        PersistenceFailure: If the record could not be written.
    """
    record = client.fetch_by_id(title_id)
    return titles.save_title(record)
