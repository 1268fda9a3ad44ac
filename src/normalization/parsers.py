"""Parsers turning Tudum display text into typed values.

The Top 10 table renders numbers for the viewer's locale ("1,234,567",
"1.234.567", "1 234 567"), runtimes as "H:MM", and the table caption as
free text such as "Global | 09/29/25 - 10/05/25" or
"September 29 - October 5, 2025". Everything here is pure and never
raises on malformed input: unparseable text becomes None.
"""

from __future__ import annotations

import re
from datetime import date, timedelta
from typing import Optional

from src.models import RankingEntry, RawRow, TimeWindow

_NON_DIGITS = re.compile(r"[^0-9]")
_RUNTIME = re.compile(r"^(\d{1,2}):(\d{2})$")
_NUMERIC_RANGE = re.compile(
    r"(\d{1,2})/(\d{1,2})/(\d{2,4})\s*-\s*(\d{1,2})/(\d{1,2})/(\d{2,4})"
)
_TEXT_RANGE = re.compile(
    r"([A-Za-z]+)\s+(\d{1,2})\s*-\s*([A-Za-z]+)\s+(\d{1,2}),\s*(\d{4})"
)
_ALL_TIME = re.compile(r"all\s*-?\s*time", re.IGNORECASE)
_BARE_YEAR = re.compile(r"(19\d{2}|20\d{2})")

MONTHS = (
    "jan", "feb", "mar", "apr", "may", "jun",
    "jul", "aug", "sep", "oct", "nov", "dec",
)


def parse_count(raw: Optional[str]) -> Optional[int]:
    """Parse a display count, ignoring any separator characters.

    Examples:
        "1,234,567" -> 1234567
        "1.234.567" -> 1234567
        ""          -> None
    """
    if not raw:
        return None
    digits = _NON_DIGITS.sub("", raw)
    if not digits:
        return None
    return int(digits)


def parse_runtime_minutes(raw: Optional[str]) -> Optional[int]:
    """Convert an "H:MM" / "HH:MM" runtime into total minutes."""
    if not raw:
        return None
    match = _RUNTIME.match(raw.strip())
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def _full_year(raw: str) -> int:
    if len(raw) == 4:
        return int(raw)
    yy = int(raw)
    return 1900 + yy if yy >= 70 else 2000 + yy


def _iso_date(year: int, month: int, day: int) -> str:
    """Build an ISO date the way UTC calendar arithmetic does.

    Out-of-range months and days roll over into neighbouring months and
    years, so "02/30/25" becomes 2025-03-02.

    Raises:
        ValueError, OverflowError: If the result falls outside years
            1 to 9999.
    """
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return (date(year, month, 1) + timedelta(days=day - 1)).isoformat()


def _month_number(name: str) -> int:
    lowered = name.lower()
    for index, prefix in enumerate(MONTHS, start=1):
        if lowered.startswith(prefix):
            return index
    return 0


def parse_time_window(raw: Optional[str]) -> TimeWindow:
    """Parse the table caption into a TimeWindow.

    Only the text after the last "|" is considered, so a leading
    "Global |" or country prefix is ignored. Tries, in order, a numeric
    date range, a textual date range, "All Time", and finally a bare year.
    """
    if not raw:
        return TimeWindow()
    text = raw.split("|")[-1].strip()

    numeric = _NUMERIC_RANGE.search(text)
    if numeric:
        m1, d1, y1, m2, d2, y2 = numeric.groups()
        start_year = _full_year(y1)
        end_year = _full_year(y2)
        try:
            return TimeWindow(
                kind="weekly",
                start_date=_iso_date(start_year, int(m1), int(d1)),
                end_date=_iso_date(end_year, int(m2), int(d2)),
                year=end_year,
            )
        except (ValueError, OverflowError):
            # year outside 1..9999
            pass

    textual = _TEXT_RANGE.search(text)
    if textual:
        start_month = _month_number(textual.group(1))
        end_month = _month_number(textual.group(3))
        year = int(textual.group(5))
        if start_month and end_month:
            try:
                return TimeWindow(
                    kind="weekly",
                    start_date=_iso_date(year, start_month, int(textual.group(2))),
                    end_date=_iso_date(year, end_month, int(textual.group(4))),
                    year=year,
                )
            except (ValueError, OverflowError):
                pass

    if _ALL_TIME.search(text):
        return TimeWindow(kind="all-time")

    year_only = _BARE_YEAR.search(text)
    return TimeWindow(year=int(year_only.group(1)) if year_only else None)


def normalize_row(raw: RawRow) -> RankingEntry:
    """Turn one row of raw cell text into a RankingEntry.

    Zero views, runtime or hours are treated as "not shown" and stored as
    None; a zero weeks count is kept.
    """
    return RankingEntry(
        rank=parse_count(raw.rank) or 0,
        title=raw.title,
        weeks_in_top_10=parse_count(raw.weeks),
        views=parse_count(raw.views) or None,
        runtime_minutes=parse_runtime_minutes(raw.runtime) or None,
        hours_viewed=parse_count(raw.hours) or None,
    )
