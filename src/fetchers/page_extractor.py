"""Tudum Top 10 page extraction.

Drives one PageEngine through a single scrape:

    IDLE -> SOURCE_LOADED -> FILTERS_APPLIED (optional) -> ROWS_WAITED
         -> EXTRACTED -> DONE

with FAILED reachable from any step. The page is the most fragile part of
the pipeline (Netflix renames data-uia attributes without notice), so
each step fails as narrowly as it can:

- Filter selection is best effort. A missing dropdown or option is logged
  and the scrape continues with whatever filter state the page shows.
- Missing cells inside a row become empty strings.
- A missing caption becomes an unknown time window.
- Only a source that cannot be opened (SourceLoadFailure) or a table
  that never renders at all (ExtractionTimeout) aborts the scrape.
"""

from __future__ import annotations

import enum
import logging
import time
from pathlib import Path
from typing import Callable, Optional

from src.config import NetflixConfig
from src.errors import (
    ExtractionTimeout,
    FilterApplicationFailure,
    SourceLoadFailure,
)
from src.fetchers.engine import PageEngine
from src.models import RawRow, ScrapeResult
from src.normalization import normalize_row, parse_time_window

logger = logging.getLogger(__name__)

DEFAULT_PAGE_TITLE = "Netflix Top 10"

SELECTOR = {
    "table_rows": '[data-uia="top10-table"] table tbody tr',
    "eyebrow": '[data-uia="section-eyebrow-heading"]',
    "country_selected": '[data-uia="top10-country-select"] .selected',
    "country_option": '[data-uia="top10-country-select-option"]',
    "category_selected": '[data-uia="top10-category-select"] .selected',
    "category_option": '[data-uia="top10-category-select-option"]',
}

ROW_SELECTOR = {
    "title_cell": 'td.title[data-uia="top10-table-row-title"]',
    "rank": ".rank",
    "title_button": "button",
    "weeks": '[data-uia="top10-table-row-weeks"]',
    "views": '[data-uia="top10-table-row-views"]',
    "runtime": '[data-uia="top10-table-row-runtime"]',
    "hours": '[data-uia="top10-table-row-hours"]',
}


class ExtractionState(enum.Enum):
    IDLE = "idle"
    SOURCE_LOADED = "source_loaded"
    FILTERS_APPLIED = "filters_applied"
    ROWS_WAITED = "rows_waited"
    EXTRACTED = "extracted"
    DONE = "done"
    FAILED = "failed"


_ALLOWED = {
    ExtractionState.IDLE: {ExtractionState.SOURCE_LOADED},
    ExtractionState.SOURCE_LOADED: {
        ExtractionState.FILTERS_APPLIED,
        ExtractionState.ROWS_WAITED,
    },
    ExtractionState.FILTERS_APPLIED: {ExtractionState.ROWS_WAITED},
    ExtractionState.ROWS_WAITED: {ExtractionState.EXTRACTED},
    ExtractionState.EXTRACTED: {ExtractionState.DONE},
    ExtractionState.DONE: set(),
    ExtractionState.FAILED: set(),
}


class PageExtractor:
    """Extracts one Top 10 table from one page engine.

    An extractor is single use: once it reaches DONE or FAILED, create a
    new one for the next scrape.
    """

    def __init__(
        self,
        engine: PageEngine,
        config: NetflixConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._engine = engine
        self._config = config
        self._sleep = sleep
        self.state = ExtractionState.IDLE
        self.fixture_mode = False

    def _advance(self, target: ExtractionState) -> None:
        if target not in _ALLOWED[self.state]:
            raise RuntimeError(
                f"Cannot move extractor from {self.state.value} to {target.value}"
            )
        self.state = target

    def load_source(
        self,
        url: Optional[str] = None,
        fixture_path: Optional[str] = None,
    ) -> None:
        """Navigate to a live URL, or render a static fixture file.

        Fixtures are pre-filtered pages, so loading one turns off filter
        application for the rest of the scrape.

        Raises:
            SourceLoadFailure: If the file could not be read or the engine
                could not open the page.
        """
        if url is None and fixture_path is None:
            raise ValueError("Either url or fixture_path is required")
        try:
            if fixture_path is not None:
                logger.info("Rendering sample HTML from %s", fixture_path)
                html = Path(fixture_path).read_text(encoding="utf-8")
                self._engine.load_static(html)
                self.fixture_mode = True
            else:
                logger.info("Visiting %s", url)
                self._engine.load_page(url, self._config.row_timeout_ms)
        except Exception as exc:
            self.state = ExtractionState.FAILED
            raise SourceLoadFailure(fixture_path or url, exc) from exc
        self._advance(ExtractionState.SOURCE_LOADED)

    def _select_option(
        self,
        selected: str,
        option: str,
        wanted: str,
        case_insensitive: bool,
    ) -> None:
        timeout = self._config.filter_timeout_ms
        if not self._engine.wait_for(selected, timeout):
            raise FilterApplicationFailure(f"selector '{selected}' not found")
        self._engine.click(selected)
        if not self._engine.wait_for(option, timeout):
            raise FilterApplicationFailure(f"options '{option}' not found")

        target = wanted.strip()
        if case_insensitive:
            target = target.lower()
        for handle in self._engine.query_all(option):
            text = self._engine.text_of(handle).strip()
            if case_insensitive:
                text = text.lower()
            if text == target:
                self._engine.click(handle)
                return
        raise FilterApplicationFailure(f"no option matching '{wanted}'")

    def apply_filters(
        self,
        country: str,
        category_label: Optional[str] = None,
    ) -> None:
        """Select the country and category dropdown entries, best effort.

        The country is matched case-insensitively, the category label
        exactly. Either half failing is logged and ignored. A fixed settle
        delay follows so the table can re-render.
        """
        if self.fixture_mode:
            logger.debug("Fixture source loaded, skipping filters")
            return
        try:
            self._select_option(
                SELECTOR["country_selected"],
                SELECTOR["country_option"],
                country,
                case_insensitive=True,
            )
        except Exception as exc:
            logger.warning("Country filter '%s' not applied: %s", country, exc)

        if category_label:
            try:
                self._select_option(
                    SELECTOR["category_selected"],
                    SELECTOR["category_option"],
                    category_label,
                    case_insensitive=False,
                )
            except Exception as exc:
                logger.warning(
                    "Category filter '%s' not applied: %s", category_label, exc
                )

        self._sleep(self._config.filter_settle_delay)
        self._advance(ExtractionState.FILTERS_APPLIED)

    def wait_for_rows(self, timeout_ms: Optional[int] = None) -> None:
        """Block until the table rows render.

        Raises:
            ExtractionTimeout: If no row matched before the deadline.
        """
        timeout_ms = timeout_ms or self._config.row_timeout_ms
        if not self._engine.wait_for(SELECTOR["table_rows"], timeout_ms):
            self.state = ExtractionState.FAILED
            raise ExtractionTimeout(SELECTOR["table_rows"], timeout_ms)
        self._advance(ExtractionState.ROWS_WAITED)

    def _cell_text(self, selector: str, scope) -> str:
        if scope is None:
            return ""
        handle = self._engine.query(selector, scope)
        if handle is None:
            return ""
        return self._engine.text_of(handle)

    def extract_rows(self) -> tuple[RawRow, ...]:
        """Read the six raw cells of every table row."""
        rows = []
        for tr in self._engine.query_all(SELECTOR["table_rows"]):
            title_cell = self._engine.query(ROW_SELECTOR["title_cell"], tr)
            rows.append(
                RawRow(
                    rank=self._cell_text(ROW_SELECTOR["rank"], title_cell),
                    title=self._cell_text(ROW_SELECTOR["title_button"], title_cell),
                    weeks=self._cell_text(ROW_SELECTOR["weeks"], tr),
                    views=self._cell_text(ROW_SELECTOR["views"], tr),
                    runtime=self._cell_text(ROW_SELECTOR["runtime"], tr),
                    hours=self._cell_text(ROW_SELECTOR["hours"], tr),
                )
            )
        if not rows:
            logger.warning(
                "No rows found after filtering - selectors may have changed"
            )
        self._advance(ExtractionState.EXTRACTED)
        return tuple(rows)

    def extract_caption(self) -> Optional[str]:
        """Return the time-window caption text, or None if unreadable."""
        try:
            handle = self._engine.query(SELECTOR["eyebrow"])
            if handle is None:
                return None
            return self._engine.text_of(handle) or None
        except Exception as exc:
            logger.debug("Caption not readable: %s", exc)
            return None

    def page_title(self) -> str:
        try:
            return self._engine.title() or DEFAULT_PAGE_TITLE
        except Exception as exc:
            logger.debug("Page title not readable: %s", exc)
            return DEFAULT_PAGE_TITLE

    def scrape(
        self,
        source_url: str,
        category: str,
        country: Optional[str] = None,
        category_label: Optional[str] = None,
        fixture_path: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> ScrapeResult:
        """Run a whole scrape and return the normalized result.

        Args:
            source_url: Page URL. Recorded in the result even when a
                fixture is rendered instead.
            category: Category key recorded in the result.
            country: Country to filter to, None for Global.
            category_label: Dropdown label for the category, if it has one.
            fixture_path: Render this HTML file instead of navigating.
            timeout_ms: Row wait deadline, defaults to the config value.

        Raises:
            ExtractionTimeout: If the table never rendered.
        """
        if fixture_path is not None:
            self.load_source(fixture_path=fixture_path)
        else:
            self.load_source(url=source_url)
        title = self.page_title()
        if not self.fixture_mode:
            self.apply_filters(country or "Global", category_label)

        self.wait_for_rows(timeout_ms)
        time_window = parse_time_window(self.extract_caption())
        try:
            raw_rows = self.extract_rows()
        except Exception:
            self.state = ExtractionState.FAILED
            raise
        rows = tuple(normalize_row(raw) for raw in raw_rows)
        self._advance(ExtractionState.DONE)

        logger.info(
            "Extracted %d rows from %s (window=%s)",
            len(rows),
            source_url,
            time_window.kind,
        )
        return ScrapeResult.build(
            title=title,
            source_url=source_url,
            country=country,
            category=category,
            time_window=time_window,
            rows=rows,
        )
