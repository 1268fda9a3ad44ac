from dataclasses import replace

from src.models import EnrichedEntry, RankingEntry, ScrapeResult, TimeWindow
from src.validation.validators import validate_result


def _make_result(rows=None, time_window=None):
    if rows is None:
        rows = tuple(
            RankingEntry(rank=i, title=f"Title {i}", weeks_in_top_10=1)
            for i in range(1, 11)
        )
    return ScrapeResult.build(
        title="Netflix Top 10",
        source_url="https://www.netflix.com/tudum/top10",
        country=None,
        category="movies_en",
        time_window=time_window or TimeWindow(kind="all-time"),
        rows=rows,
    )


class TestValidateResult:
    def test_valid_result(self):
        result = validate_result(_make_result())
        assert result.valid is True
        assert result.errors == ()
        assert result.warnings == ()

    def test_enriched_rows(self):
        base = _make_result()
        enriched = base.with_rows(tuple(EnrichedEntry(entry=r) for r in base.rows))
        assert validate_result(enriched).valid is True

    def test_negative_rank(self):
        rows = (RankingEntry(rank=-1, title="Bad Rank"),)
        result = validate_result(_make_result(rows=rows))
        assert result.valid is False
        assert any("negative rank" in e for e in result.errors)

    def test_row_count_mismatch(self):
        base = _make_result()
        broken = replace(base, meta=replace(base.meta, row_count=3))
        result = validate_result(broken)
        assert result.valid is False
        assert any("row_count" in e for e in result.errors)

    def test_empty_title_is_only_a_warning(self):
        rows = (RankingEntry(rank=1, title=""),)
        result = validate_result(_make_result(rows=rows))
        assert result.valid is True
        assert any("empty title" in w for w in result.warnings)

    def test_duplicate_ranks_warning(self):
        rows = (
            RankingEntry(rank=1, title="A"),
            RankingEntry(rank=1, title="B"),
        )
        result = validate_result(_make_result(rows=rows))
        assert result.valid is True
        assert any("duplicate rank" in w for w in result.warnings)

    def test_unknown_time_window_warning(self):
        result = validate_result(_make_result(time_window=TimeWindow()))
        assert any("time window" in w for w in result.warnings)

    def test_wrong_entry_count_warning(self):
        rows = tuple(RankingEntry(rank=i, title=f"T{i}") for i in range(1, 6))
        result = validate_result(_make_result(rows=rows))
        assert result.valid is True
        assert any("expected 10" in w for w in result.warnings)

    def test_empty_rows(self):
        result = validate_result(_make_result(rows=()))
        assert result.valid is True
        assert any("got 0" in w for w in result.warnings)
