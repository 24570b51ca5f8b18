"""
Tracker Service - personal application tracker storage.

Items are keyed by (user, opp_id): the id of the internship or opportunity
being tracked, or a client-generated id for manual entries. Browsers keep a
local cache of the tracker and push it with the sync actions; sync never
overwrites what the server already has.
"""

import logging
import uuid
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import text

from opportunity_hub.db.postgres import get_db_session
from opportunity_hub.schemas.schemas import TrackerEventIn, TrackerItemIn, TrackerStatus
from opportunity_hub.utils.dates import coerce_datetime, utc_now
from opportunity_hub.utils.rows import dump_json, load_json

logger = logging.getLogger(__name__)

ITEM_COLUMNS = """
    id, opp_id, kind, status, notes, added_at, applied_at, result,
    is_manual, manual_data, updated_at
"""


def item_from_row(row) -> dict:
    item = dict(row)
    item["manual_data"] = load_json(item.get("manual_data"))
    item["is_manual"] = bool(item.get("is_manual"))
    return item


def plan_item_merge(existing: dict, incoming: TrackerItemIn) -> Optional[dict]:
    """
    Decide how an add_item for an already tracked opportunity changes it.
    Returns the columns to update, or None to leave the item as it is.

    - a Draft moving to any other status is promoted and stamped applied now
    - a Draft re-saved with new draft_data refreshes the stored draft
    """
    existing_status = existing["status"]
    incoming_status = incoming.status.value
    draft = TrackerStatus.draft.value

    if existing_status == draft and incoming_status != draft:
        return {"status": incoming_status, "applied_at": utc_now()}

    if existing_status == draft and incoming_status == draft:
        manual_data = incoming.manual_data
        if isinstance(manual_data, dict) and manual_data.get("draft_data") is not None:
            return {"manual_data": dump_json(manual_data)}

    return None


def _insert_values(user_id: str, item: TrackerItemIn) -> dict:
    applied_at = coerce_datetime(item.applied_at)
    if applied_at is None and item.status == TrackerStatus.applied:
        applied_at = utc_now()
    return {
        "id": str(uuid.uuid4()),
        "user_id": user_id,
        "opp_id": item.opp_id,
        "kind": item.kind.value,
        "status": item.status.value,
        "notes": item.notes,
        "added_at": coerce_datetime(item.added_at) or utc_now(),
        "applied_at": applied_at,
        "result": item.result,
        "is_manual": item.is_manual,
        "manual_data": dump_json(item.manual_data),
        "now": utc_now(),
    }


INSERT_ITEM_SQL = """
    INSERT INTO tracker_items (id, user_id, opp_id, kind, status, notes, added_at,
        applied_at, result, is_manual, manual_data, created_at, updated_at)
    VALUES (:id, :user_id, :opp_id, :kind, :status, :notes, :added_at,
        :applied_at, :result, :is_manual, :manual_data, :now, :now)
"""


def _fetch_item(db, user_id: str, opp_id: str) -> Optional[dict]:
    row = db.execute(
        text(f"SELECT {ITEM_COLUMNS} FROM tracker_items WHERE user_id = :uid AND opp_id = :oid"),
        {"uid": user_id, "oid": opp_id}
    ).mappings().fetchone()
    return item_from_row(row) if row else None


def list_tracker(user_id: str) -> Tuple[List[dict], List[dict]]:
    with get_db_session() as db:
        items = db.execute(
            text(f"SELECT {ITEM_COLUMNS} FROM tracker_items WHERE user_id = :uid ORDER BY added_at DESC"),
            {"uid": user_id}
        ).mappings().fetchall()
        events = db.execute(
            text("""
                SELECT id, title, date, type, description, created_at FROM tracker_events
                WHERE user_id = :uid ORDER BY date DESC
            """),
            {"uid": user_id}
        ).mappings().fetchall()
    return [item_from_row(r) for r in items], [dict(r) for r in events]


def add_item(user_id: str, item: TrackerItemIn) -> Tuple[dict, bool]:
    """Insert or merge one item. Returns (item, created)."""
    with get_db_session() as db:
        existing = _fetch_item(db, user_id, item.opp_id)
        if existing is None:
            db.execute(text(INSERT_ITEM_SQL), _insert_values(user_id, item))
            return _fetch_item(db, user_id, item.opp_id), True

        updates = plan_item_merge(existing, item)
        if updates:
            assignments = ", ".join(f"{column} = :{column}" for column in updates)
            db.execute(
                text(f"""
                    UPDATE tracker_items SET {assignments}, updated_at = :now
                    WHERE user_id = :uid AND opp_id = :oid
                """),
                {**updates, "now": utc_now(), "uid": user_id, "oid": item.opp_id}
            )
            existing = _fetch_item(db, user_id, item.opp_id)
        return existing, False


def add_event(user_id: str, event: TrackerEventIn) -> dict:
    event_id = str(uuid.uuid4())
    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO tracker_events (id, user_id, title, date, type, description, created_at)
                VALUES (:id, :uid, :title, :date, :type, :description, :now)
            """),
            {
                "id": event_id, "uid": user_id, "title": event.title, "date": coerce_datetime(event.date),
                "type": event.type, "description": event.description, "now": utc_now()
            }
        )
        row = db.execute(
            text("SELECT id, title, date, type, description, created_at FROM tracker_events WHERE id = :id"),
            {"id": event_id}
        ).mappings().fetchone()
    return dict(row)


def sync_items(user_id: str, raw_items: List[Any]) -> Tuple[int, int]:
    """Insert cached items the server does not know yet. Returns (synced, skipped)."""
    synced = skipped = 0
    with get_db_session() as db:
        for raw in raw_items:
            try:
                item = TrackerItemIn.model_validate(raw)
            except ValidationError as e:
                logger.warning("Skipping invalid tracker item during sync: %s", e.errors(include_url=False))
                skipped += 1
                continue

            if _fetch_item(db, user_id, item.opp_id) is not None:
                skipped += 1
                continue
            db.execute(text(INSERT_ITEM_SQL), _insert_values(user_id, item))
            synced += 1
    return synced, skipped


def _event_key(title: str, when, kind: str) -> tuple:
    return (title, coerce_datetime(when), kind)


def sync_events(user_id: str, raw_events: List[Any]) -> Tuple[int, int]:
    """Insert cached events, skipping ones identical in title, date and type."""
    synced = skipped = 0
    with get_db_session() as db:
        rows = db.execute(
            text("SELECT title, date, type FROM tracker_events WHERE user_id = :uid"),
            {"uid": user_id}
        ).mappings().fetchall()
        known = {_event_key(r["title"], r["date"], r["type"]) for r in rows}

        for raw in raw_events:
            try:
                event = TrackerEventIn.model_validate(raw)
            except ValidationError as e:
                logger.warning("Skipping invalid tracker event during sync: %s", e.errors(include_url=False))
                skipped += 1
                continue

            key = _event_key(event.title, event.date, event.type)
            if key in known:
                skipped += 1
                continue
            db.execute(
                text("""
                    INSERT INTO tracker_events (id, user_id, title, date, type, description, created_at)
                    VALUES (:id, :uid, :title, :date, :type, :description, :now)
                """),
                {
                    "id": str(uuid.uuid4()), "uid": user_id, "title": event.title, "date": coerce_datetime(event.date),
                    "type": event.type, "description": event.description, "now": utc_now()
                }
            )
            known.add(key)
            synced += 1
    return synced, skipped


def update_status(user_id: str, opp_id: str, status: TrackerStatus,
                  notes: Optional[str] = None, result: Optional[str] = None) -> Optional[dict]:
    """Set a new status (and optional notes/result). None when the item is missing."""
    updates = {"status": status.value}
    if status == TrackerStatus.applied:
        updates["applied_at"] = utc_now()
    if notes is not None:
        updates["notes"] = notes
    if result is not None:
        updates["result"] = result

    with get_db_session() as db:
        if _fetch_item(db, user_id, opp_id) is None:
            return None
        assignments = ", ".join(f"{column} = :{column}" for column in updates)
        db.execute(
            text(f"""
                UPDATE tracker_items SET {assignments}, updated_at = :now
                WHERE user_id = :uid AND opp_id = :oid
            """),
            {**updates, "now": utc_now(), "uid": user_id, "oid": opp_id}
        )
        return _fetch_item(db, user_id, opp_id)


def delete_entry(user_id: str, kind: str, entry_id: str) -> int:
    """Delete an item (by opp_id) or an event (by id). Returns rows removed."""
    if kind == "item":
        sql = "DELETE FROM tracker_items WHERE user_id = :uid AND opp_id = :id"
    elif kind == "event":
        sql = "DELETE FROM tracker_events WHERE user_id = :uid AND id = :id"
    else:
        raise ValueError(f"Unknown tracker entry type: {kind}")

    with get_db_session() as db:
        result = db.execute(text(sql), {"uid": user_id, "id": entry_id})
        return result.rowcount
