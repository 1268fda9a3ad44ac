from src.enrichment.imdb_client import ImdbClient
from src.enrichment.orchestrator import EnrichmentOrchestrator

__all__ = ["EnrichmentOrchestrator", "ImdbClient"]
