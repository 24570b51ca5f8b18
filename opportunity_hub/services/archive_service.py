"""
Raw Posting Archive - MongoDB provenance for ingested internships.

Every ingest record is stored as received, next to the id of the
internship row it produced and the values the normalizers derived.
Archiving is best effort: a document-store outage never fails an ingest.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from opportunity_hub.db.mongodb import COLLECTIONS, get_collection, mongo_enabled

logger = logging.getLogger(__name__)


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


class RawPostingService:
    """
    Stores and fetches raw internship postings.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["raw_internships"])

    def insert_many(self, entries: List[dict]) -> int:
        """
        entries: [{"internship_id", "source", "normalized"}, ...]
        Returns the number of documents written.
        """
        if not entries:
            return 0
        ingested_at = datetime.now(timezone.utc)
        docs = [
            {
                "internship_id": entry["internship_id"],
                "link": entry["source"].get("link"),
                "source": entry["source"],
                "normalized": entry["normalized"],
                "ingested_at": ingested_at,
            }
            for entry in entries
        ]
        result = self.collection.insert_many(docs, ordered=False)
        return len(result.inserted_ids)

    def get_by_internship(self, internship_id: str) -> Optional[dict]:
        return serialize_doc(self.collection.find_one({"internship_id": internship_id}))


def archive_raw_postings(entries: List[dict]) -> int:
    """Best-effort archive. Returns documents written (0 when skipped or failed)."""
    if not mongo_enabled():
        return 0
    try:
        return RawPostingService().insert_many(entries)
    except PyMongoError as e:
        logger.warning("Raw posting archive unavailable, skipped %d records: %s", len(entries), e)
        return 0
