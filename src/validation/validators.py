"""Data validation for scraped Top 10 snapshots.

Validates the integrity of a scrape result after extraction, before it
is stored. Catches issues like:
- Negative ranks (indicates parsing error)
- row_count disagreeing with the rows (indicates a model bug)
- Empty titles (indicates a selector broke)
- Duplicate ranks (indicates data corruption)
- Wrong number of entries (indicates partial page load)

Nothing here blocks storage: the page may legitimately render a short
list, and an empty title is tolerated. Errors mark the run as a partial
failure; warnings are only logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from src.models import ScrapeResult

logger = logging.getLogger(__name__)

EXPECTED_ROWS = 10


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a single ScrapeResult.

    Attributes:
        valid: True if no errors (warnings are OK).
        errors: Issues that mark the run as a partial failure.
        warnings: Unusual data that's still acceptable.
    """

    valid: bool
    errors: tuple[str, ...]
    warnings: tuple[str, ...]


def validate_result(result: ScrapeResult) -> ValidationResult:
    """Validate one scraped list.

    Checks:
    - row_count equals the number of rows
    - Each rank is >= 0
    - Each title is non-empty (warns)
    - No duplicate ranks (warns)
    - Time window was recognised (warns)
    - Exactly 10 entries (warns if different)

    Args:
        result: A ScrapeResult, enriched or not.

    Returns:
        ValidationResult with valid=True if no errors found.
    """
    errors: list[str] = []
    warnings: list[str] = []
    meta = result.meta
    context = f"{meta.country or 'Global'}/{meta.category}"

    if meta.row_count != len(result.rows):
        errors.append(
            f"{context}: row_count {meta.row_count} != {len(result.rows)} rows"
        )

    if meta.time_window.kind is None:
        warnings.append(f"{context}: time window not recognised")

    seen_ranks: set[int] = set()
    for index, row in enumerate(result.rows):
        entry = getattr(row, "entry", row)
        entry_ctx = f"{context}/row={index}"

        if entry.rank < 0:
            errors.append(f"{entry_ctx}: negative rank {entry.rank}")

        if not entry.title or not entry.title.strip():
            warnings.append(f"{entry_ctx}: empty title")

        if entry.rank in seen_ranks:
            warnings.append(f"{entry_ctx}: duplicate rank {entry.rank}")
        seen_ranks.add(entry.rank)

    if len(result.rows) != EXPECTED_ROWS:
        warnings.append(
            f"{context}: expected {EXPECTED_ROWS} entries, got "
            f"{len(result.rows)}"
        )

    if errors:
        logger.warning("Validation found %d errors", len(errors))
    if warnings:
        logger.info("Validation found %d warnings", len(warnings))

    return ValidationResult(
        valid=len(errors) == 0,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )
