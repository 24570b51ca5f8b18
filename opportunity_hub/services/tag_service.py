"""
Tag Service - shared tag catalog used for autocomplete.

Rows keep their tag names inline (JSON list column); the catalog only
records every name ever used so clients can suggest them.
"""

import uuid
from typing import List

from sqlalchemy import text

from opportunity_hub.db.postgres import execute_raw_sql
from opportunity_hub.utils.rows import contains_pattern

DEFAULT_LIMIT = 8
MAX_LIMIT = 50


def normalize_tag_names(names: List[str]) -> List[str]:
    """Trim, drop empties and duplicates, keep first-seen order."""
    result = []
    for name in names or []:
        name = name.strip()
        if name and name not in result:
            result.append(name)
    return result


def upsert_tags(db, names: List[str]) -> List[str]:
    """Add unknown names to the catalog inside the caller's session."""
    normalized = normalize_tag_names(names)
    for name in normalized:
        db.execute(
            text("INSERT INTO tags (id, name) VALUES (:id, :name) ON CONFLICT (name) DO NOTHING"),
            {"id": str(uuid.uuid4()), "name": name}
        )
    return normalized


def clamp_limit(limit: int) -> int:
    return min(max(limit or DEFAULT_LIMIT, 1), MAX_LIMIT)


def search_tags(q: str = "", limit: int = DEFAULT_LIMIT) -> List[str]:
    q = (q or "").strip()
    params = {"limit": clamp_limit(limit)}
    sql = "SELECT name FROM tags"
    if q:
        sql += " WHERE LOWER(name) LIKE :q ESCAPE '\\'"
        params["q"] = contains_pattern(q)
    sql += " ORDER BY name LIMIT :limit"
    return [row["name"] for row in execute_raw_sql(sql, params)]
