"""
Database module - relational and document-store connections.
"""
from opportunity_hub.db.postgres import get_db_session, execute_raw_sql
from opportunity_hub.db.mongodb import get_collection, mongo_enabled

__all__ = [
    "get_db_session",
    "execute_raw_sql",
    "get_collection",
    "mongo_enabled",
]
