"""Configuration for the Netflix Top 10 scrape/enrich/persist job.

Centralizes all configuration: page scraping settings, the IMDb metadata
API, and MongoDB connection parameters. All config is loaded from
environment variables at runtime (no hardcoded secrets).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urlparse

TUDUM_BASE_URL = "https://www.netflix.com/tudum/top10"

CATEGORIES: tuple[str, ...] = (
    "movies_en",
    "movies_non_en",
    "shows_en",
    "shows_non_en",
    "shows",
    "movies",
)

CATEGORY_LABEL: dict[str, str] = {
    "movies_en": "Movies | English",
    "movies_non_en": "Movies | Non-English",
    "shows_en": "Shows | English",
    "shows_non_en": "Shows | Non-English",
}

# Global list path per category, relative to NetflixConfig.base_url.
GLOBAL_CATEGORY_PATH: dict[str, str] = {
    "movies_en": "",
    "movies_non_en": "/films-non-english",
    "shows_en": "/tv",
    "shows_non_en": "/tv-non-english",
}

_TRUTHY = ("1", "true", "yes")


@dataclass(frozen=True)
class NetflixConfig:
    base_url: str = TUDUM_BASE_URL
    user_agent: str = "NetflixTop10Collector/1.0"
    request_timeout: int = 30
    retry_count: int = 3
    filter_settle_delay: float = 1.5
    filter_timeout_ms: int = 10_000
    row_timeout_ms: int = 60_000
    sample_path: str = "tests/fixtures/sample_top10.html"
    use_sample: bool = False
    headless: bool = True


@dataclass(frozen=True)
class ImdbConfig:
    base_url: str = "https://api.imdbapi.dev"
    api_key: str = ""
    auth_style: str = ""
    stagger_seconds: float = 0.5


@dataclass(frozen=True)
class MongoConfig:
    uri: str = ""
    database: str = "scraped"
    snapshots_collection: str = "netflix_top10"
    titles_collection: str = "imdb_titles"
    runs_collection: str = "scrape_runs"
    max_pool_size: int = 10


@dataclass(frozen=True)
class AppConfig:
    netflix: NetflixConfig
    imdb: ImdbConfig
    mongo: MongoConfig


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


def load_config() -> AppConfig:
    """Load and validate configuration from environment variables.

    Reads MONGODB_URI from the environment and validates it has a valid
    MongoDB scheme (mongodb:// or mongodb+srv://). The IMDb API settings
    and scraper switches are optional and fall back to the defaults of
    their config classes.

    Returns:
        AppConfig bundling the Netflix, IMDb and MongoDB settings.

    Raises:
        ValueError: If MONGODB_URI is missing or has an invalid scheme,
            IMDBAPI_AUTH_STYLE is not recognised, or
            ENRICHMENT_STAGGER_MS is not a non-negative integer.
    """
    mongo_uri = os.environ.get("MONGODB_URI", "")
    if not mongo_uri:
        raise ValueError("MONGODB_URI environment variable is required")

    parsed = urlparse(mongo_uri)
    if parsed.scheme not in ("mongodb", "mongodb+srv"):
        raise ValueError(
            f"Invalid MongoDB URI scheme: '{parsed.scheme}'. "
            "Expected 'mongodb' or 'mongodb+srv'."
        )

    auth_style = os.environ.get("IMDBAPI_AUTH_STYLE", "").strip().lower()
    if auth_style not in ("", "header", "query"):
        raise ValueError(
            f"Invalid IMDBAPI_AUTH_STYLE: '{auth_style}'. "
            "Expected 'header' or 'query'."
        )

    stagger_raw = os.environ.get("ENRICHMENT_STAGGER_MS", "500")
    try:
        stagger_ms = int(stagger_raw)
    except ValueError:
        raise ValueError(
            f"Invalid ENRICHMENT_STAGGER_MS: '{stagger_raw}'"
        ) from None
    if stagger_ms < 0:
        raise ValueError("ENRICHMENT_STAGGER_MS must be >= 0")

    defaults = NetflixConfig()
    netflix = NetflixConfig(
        base_url=os.environ.get("NETFLIX_BASE_URL", defaults.base_url).rstrip("/"),
        sample_path=os.environ.get("NETFLIX_SAMPLE_PATH", defaults.sample_path),
        use_sample=_env_flag("USE_NETFLIX_SAMPLE"),
    )
    imdb = ImdbConfig(
        base_url=os.environ.get("IMDBAPI_BASE_URL", ImdbConfig.base_url),
        api_key=os.environ.get("IMDBAPI_API_KEY", ""),
        auth_style=auth_style,
        stagger_seconds=stagger_ms / 1000,
    )
    mongo = MongoConfig(
        uri=mongo_uri,
        database=os.environ.get("MONGODB_DB", MongoConfig.database),
    )
    return AppConfig(netflix=netflix, imdb=imdb, mongo=mongo)
