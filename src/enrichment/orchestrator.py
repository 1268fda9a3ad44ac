"""Concurrent, staggered IMDb enrichment of Top 10 rows.

Every row gets its own coroutine. Row i first sleeps i * stagger seconds,
then searches the title (limit 1) and, when a candidate comes back,
fetches its full record. Starting all lookups together would burst ten
requests at the API in the same instant; the stagger spreads them out
while still letting slow responses overlap.

The orchestrator never raises for a row: any failure in either lookup
attaches enrichment=None to that row only. The output always has the
same length and order as the input.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from src.enrichment.imdb_client import ImdbClient
from src.models import EnrichedEntry, RankingEntry

logger = logging.getLogger(__name__)

DEFAULT_STAGGER_SECONDS = 0.5
SEARCH_LIMIT = 1


class EnrichmentOrchestrator:
    """Fans out one lookup per row and joins the results in order."""

    def __init__(
        self,
        client: ImdbClient,
        stagger_seconds: float = DEFAULT_STAGGER_SECONDS,
    ) -> None:
        self._client = client
        self._stagger = stagger_seconds

    async def _lookup(self, title: str) -> Optional[Mapping[str, Any]]:
        candidates = await asyncio.to_thread(
            self._client.search, title, SEARCH_LIMIT
        )
        title_id = candidates[0].get("id") if candidates else None
        logger.debug("Search '%s' -> %s", title, title_id)
        if not title_id:
            return None
        return await asyncio.to_thread(self._client.fetch_by_id, title_id)

    async def _enrich_one(self, index: int, entry: RankingEntry) -> EnrichedEntry:
        await asyncio.sleep(index * self._stagger)
        try:
            record = await self._lookup(entry.title)
        except Exception as exc:
            logger.warning(
                "Enrichment failed for rank %d '%s': %s",
                entry.rank,
                entry.title,
                exc,
            )
            record = None
        return EnrichedEntry(entry=entry, enrichment=record)

    async def run(self, rows: Sequence[RankingEntry]) -> tuple[EnrichedEntry, ...]:
        """Enrich all rows concurrently.

        Args:
            rows: Rows in display order.

        Returns:
            One EnrichedEntry per input row, in the same order.
        """
        if not rows:
            return ()
        results = await asyncio.gather(
            *(self._enrich_one(i, row) for i, row in enumerate(rows))
        )
        matched = sum(1 for r in results if r.enrichment is not None)
        logger.info("Enriched %d/%d rows", matched, len(results))
        return tuple(results)

    def enrich(self, rows: Sequence[RankingEntry]) -> tuple[EnrichedEntry, ...]:
        """Blocking wrapper around run() for synchronous callers."""
        return asyncio.run(self.run(rows))
