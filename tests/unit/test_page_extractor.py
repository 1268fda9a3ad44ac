import os
from unittest.mock import MagicMock

import pytest

from src.config import NetflixConfig
from src.errors import ExtractionTimeout, SourceLoadFailure
from src.fetchers.engine import SoupEngine
from src.fetchers.page_extractor import (
    SELECTOR,
    ExtractionState,
    PageExtractor,
)

FIXTURES_DIR = os.path.join(
    os.path.dirname(__file__), "..", "fixtures"
)
SAMPLE_PATH = os.path.join(FIXTURES_DIR, "sample_top10.html")

URL = "https://www.netflix.com/tudum/top10"


def _soup_extractor(html: str) -> PageExtractor:
    engine = SoupEngine()
    engine.load_static(html)
    extractor = PageExtractor(engine, NetflixConfig(), sleep=lambda _: None)
    extractor.state = ExtractionState.SOURCE_LOADED
    return extractor


class FakeOption:
    def __init__(self, text: str) -> None:
        self.text = text


class FakeEngine:
    """Records clicks; options and selector presence are configured per test."""

    def __init__(self, present=None, options=None) -> None:
        self.present = set(present or ())
        self.options = options or {}
        self.clicked = []

    def load_page(self, url, timeout_ms):
        self.loaded = url

    def load_static(self, html):
        self.loaded = html

    def wait_for(self, selector, timeout_ms):
        return selector in self.present

    def click(self, target):
        self.clicked.append(target)

    def query_all(self, selector, scope=None):
        return [FakeOption(t) for t in self.options.get(selector, [])]

    def query(self, selector, scope=None):
        return None

    def text_of(self, handle):
        return handle.text

    def title(self):
        return ""

    def close(self):
        pass


def _filter_extractor(engine: FakeEngine) -> tuple[PageExtractor, list]:
    sleeps = []
    extractor = PageExtractor(engine, NetflixConfig(), sleep=sleeps.append)
    extractor.load_source(url=URL)
    return extractor, sleeps


class TestScrapeFixture:
    def test_extracts_10_rows(self):
        with SoupEngine() as engine:
            result = PageExtractor(engine, NetflixConfig()).scrape(
                URL, "movies_en", fixture_path=SAMPLE_PATH
            )
        assert result.meta.row_count == 10
        assert [r.rank for r in result.rows] == list(range(1, 11))

    def test_first_row_normalized(self):
        with SoupEngine() as engine:
            result = PageExtractor(engine, NetflixConfig()).scrape(
                URL, "movies_en", fixture_path=SAMPLE_PATH
            )
        first = result.rows[0]
        assert first.title == "KPop Demon Hunters"
        assert first.weeks_in_top_10 == 15
        assert first.views == 25400000
        assert first.runtime_minutes == 100
        assert first.hours_viewed == 42300000

    def test_meta(self):
        with SoupEngine() as engine:
            extractor = PageExtractor(engine, NetflixConfig())
            result = extractor.scrape(URL, "movies_en", fixture_path=SAMPLE_PATH)
        assert extractor.state is ExtractionState.DONE
        assert result.meta.source_url == URL
        assert result.meta.is_global is True
        assert result.meta.country is None
        assert "Top 10" in result.meta.title
        assert result.meta.time_window.kind == "weekly"
        assert result.meta.time_window.start_date == "2025-09-29"
        assert result.meta.time_window.end_date == "2025-10-05"

    def test_fixture_skips_filters(self):
        engine = MagicMock(wraps=SoupEngine())
        extractor = PageExtractor(engine, NetflixConfig())
        extractor.scrape(
            URL,
            "movies_en",
            country="Japan",
            category_label="Movies | English",
            fixture_path=SAMPLE_PATH,
        )
        engine.click.assert_not_called()

    def test_missing_table_times_out(self, tmp_path):
        page = tmp_path / "empty.html"
        page.write_text("<html><body><p>Nothing</p></body></html>")
        with SoupEngine() as engine:
            extractor = PageExtractor(engine, NetflixConfig())
            with pytest.raises(ExtractionTimeout):
                extractor.scrape(URL, "movies_en", fixture_path=str(page))
        assert extractor.state is ExtractionState.FAILED

    def test_missing_fixture_file(self, tmp_path):
        extractor = PageExtractor(SoupEngine(), NetflixConfig())
        with pytest.raises(SourceLoadFailure) as exc_info:
            extractor.load_source(fixture_path=str(tmp_path / "missing.html"))
        assert isinstance(exc_info.value.cause, FileNotFoundError)
        assert extractor.state is ExtractionState.FAILED

    def test_navigation_error(self):
        engine = MagicMock()
        engine.load_page.side_effect = RuntimeError("net::ERR_NAME_NOT_RESOLVED")
        extractor = PageExtractor(engine, NetflixConfig())
        with pytest.raises(SourceLoadFailure) as exc_info:
            extractor.scrape(URL, "movies_en")
        assert exc_info.value.source == URL
        assert extractor.state is ExtractionState.FAILED
        engine.wait_for.assert_not_called()

    def test_requires_a_source(self):
        extractor = PageExtractor(SoupEngine(), NetflixConfig())
        with pytest.raises(ValueError):
            extractor.load_source()


class TestExtractRows:
    def test_missing_cells_become_empty_strings(self):
        html = """
        <div data-uia="top10-table"><table><tbody>
          <tr><td data-uia="top10-table-row-weeks">3</td></tr>
        </tbody></table></div>
        """
        extractor = _soup_extractor(html)
        extractor.wait_for_rows()
        rows = extractor.extract_rows()
        assert len(rows) == 1
        assert rows[0].rank == ""
        assert rows[0].title == ""
        assert rows[0].weeks == "3"
        assert rows[0].views == ""

    def test_zero_rows_logs_warning(self, caplog):
        html = '<div data-uia="top10-table"><table><tbody></tbody></table></div>'
        extractor = _soup_extractor(html)
        extractor.state = ExtractionState.ROWS_WAITED
        rows = extractor.extract_rows()
        assert rows == ()
        assert "selectors may have changed" in caplog.text


class TestExtractCaption:
    def test_missing_caption_is_none(self):
        extractor = _soup_extractor("<html><body></body></html>")
        assert extractor.extract_caption() is None

    def test_engine_error_is_none(self):
        engine = MagicMock()
        engine.query.side_effect = RuntimeError("detached")
        extractor = PageExtractor(engine, NetflixConfig())
        assert extractor.extract_caption() is None


class TestApplyFilters:
    def test_selects_country_case_insensitively_and_category_exactly(self):
        engine = FakeEngine(
            present={
                SELECTOR["country_selected"],
                SELECTOR["country_option"],
                SELECTOR["category_selected"],
                SELECTOR["category_option"],
            },
            options={
                SELECTOR["country_option"]: ["Global", "HONG KONG ", "Japan"],
                SELECTOR["category_option"]: [
                    "Movies | English",
                    "Shows | English",
                ],
            },
        )
        extractor, sleeps = _filter_extractor(engine)
        extractor.apply_filters("hong kong", "Shows | English")

        assert engine.clicked[0] == SELECTOR["country_selected"]
        assert engine.clicked[1].text == "HONG KONG "
        assert engine.clicked[2] == SELECTOR["category_selected"]
        assert engine.clicked[3].text == "Shows | English"
        assert sleeps == [1.5]
        assert extractor.state is ExtractionState.FILTERS_APPLIED

    def test_missing_country_selector_is_not_fatal(self, caplog):
        engine = FakeEngine(
            present={SELECTOR["category_selected"], SELECTOR["category_option"]},
            options={SELECTOR["category_option"]: ["Movies | English"]},
        )
        extractor, sleeps = _filter_extractor(engine)
        extractor.apply_filters("Japan", "Movies | English")

        assert "Country filter 'Japan' not applied" in caplog.text
        assert engine.clicked[-1].text == "Movies | English"
        assert sleeps == [1.5]

    def test_unknown_option_is_not_fatal(self, caplog):
        engine = FakeEngine(
            present={SELECTOR["country_selected"], SELECTOR["country_option"]},
            options={SELECTOR["country_option"]: ["Global"]},
        )
        extractor, _ = _filter_extractor(engine)
        extractor.apply_filters("Atlantis")

        assert engine.clicked == [SELECTOR["country_selected"]]
        assert "no option matching 'Atlantis'" in caplog.text

    def test_category_label_match_is_case_sensitive(self, caplog):
        engine = FakeEngine(
            present={
                SELECTOR["category_selected"],
                SELECTOR["category_option"],
            },
            options={SELECTOR["category_option"]: ["Movies | English"]},
        )
        extractor, _ = _filter_extractor(engine)
        extractor.apply_filters("Global", "movies | english")

        assert "Category filter" in caplog.text

    def test_no_category_label_skips_category(self):
        engine = FakeEngine()
        extractor, _ = _filter_extractor(engine)
        extractor.apply_filters("Global")
        assert engine.clicked == []
