"""
MongoDB Connection Utility

MongoDB stores the raw internship postings received by the bulk ingest
endpoint, keyed by the internship row each one produced. The relational
row is the normalized record; the document keeps the source text so a
normalization can be audited or replayed later.

An empty MONGODB_URI disables the store entirely.
"""

import logging
from typing import Optional

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from opportunity_hub.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Global client (connection pooling handled internally by pymongo)
_client: Optional[MongoClient] = None
_db: Optional[Database] = None

# Collection name constants (avoid typos)
COLLECTIONS = {
    "raw_internships": "raw_internship_postings",
}


def mongo_enabled() -> bool:
    return bool(settings.mongodb_uri)


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(
            settings.mongodb_uri,
            serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
        )
    return _client


def get_mongo_db() -> Database:
    global _db
    if _db is None:
        _db = get_mongo_client()[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    return get_mongo_db()[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns False when the store is disabled or the ping fails.
    """
    if not mongo_enabled():
        return False
    try:
        get_mongo_client().admin.command("ping")
        return True
    except Exception as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


def init_mongo_indexes() -> None:
    """
    Create indexes for the raw posting archive.
    Call this once during app startup.
    """
    if not mongo_enabled():
        logger.info("MongoDB disabled, skipping index creation")
        return

    raw = get_collection(COLLECTIONS["raw_internships"])
    raw.create_index("internship_id", unique=True)
    raw.create_index([("link", ASCENDING), ("ingested_at", ASCENDING)])
    logger.info("MongoDB indexes created")
