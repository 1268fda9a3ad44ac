"""MongoDB connection management.

The job creates one MongoClient when it starts and passes database
handles down to the repositories explicitly; nothing is cached at module
level, so tests and long-running callers each own their connection.
"""

from __future__ import annotations

import logging

from pymongo import MongoClient
from pymongo.database import Database

from src.config import MongoConfig

logger = logging.getLogger(__name__)


def create_client(config: MongoConfig) -> MongoClient:
    """Create a MongoClient with the configured URI and pool settings.

    The connection itself is established lazily by pymongo on first use;
    server selection gives up after 5 seconds.
    """
    logger.info("Creating MongoDB client for database %s", config.database)
    return MongoClient(
        config.uri,
        maxPoolSize=config.max_pool_size,
        serverSelectionTimeoutMS=5000,
    )


def get_database(client: MongoClient, config: MongoConfig) -> Database:
    """Return the configured database from an existing client."""
    return client[config.database]
