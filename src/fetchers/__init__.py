from src.fetchers.engine import PageEngine, PlaywrightEngine, SoupEngine
from src.fetchers.page_extractor import PageExtractor

__all__ = ["PageEngine", "PageExtractor", "PlaywrightEngine", "SoupEngine"]
