"""
Bookmark Routes

POST /bookmarks - Bookmark an opportunity (idempotent)
GET /bookmarks - Own bookmarks grouped by deadline, or ?month=YYYY-MM deadline dates
GET /bookmarks/status - Whether an opportunity is bookmarked
DELETE /bookmarks/{opportunity_id} - Remove a bookmark
"""

import re
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import text

from opportunity_hub.core.auth import get_current_user
from opportunity_hub.db.postgres import execute_raw_sql, get_db_session
from opportunity_hub.schemas.schemas import BookmarkCreate, BookmarkedOpportunity, MessageResponse
from opportunity_hub.api.routes.opportunity_routes import OPPORTUNITY_SELECT, opportunity_from_row
from opportunity_hub.utils.dates import coerce_date, days_until, utc_now

router = APIRouter(prefix="/bookmarks", tags=["Bookmarks"])

MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


@router.post("", status_code=201)
async def add_bookmark(data: BookmarkCreate, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        opportunity = db.execute(
            text("SELECT id FROM opportunities WHERE id = :id AND deleted_at IS NULL"),
            {"id": data.opportunity_id}
        ).fetchone()
        if not opportunity:
            raise HTTPException(status_code=404, detail="Opportunity not found")

        existing = db.execute(
            text("SELECT id FROM bookmarks WHERE user_id = :uid AND opportunity_id = :oid"),
            {"uid": user["id"], "oid": data.opportunity_id}
        ).fetchone()
        if existing:
            return {"success": True, "message": "Already bookmarked", "bookmark_id": existing[0]}

        bookmark_id = str(uuid.uuid4())
        db.execute(
            text("""
                INSERT INTO bookmarks (id, user_id, opportunity_id, created_at)
                VALUES (:id, :uid, :oid, :now)
            """),
            {"id": bookmark_id, "uid": user["id"], "oid": data.opportunity_id, "now": utc_now()}
        )

    return {"success": True, "message": "Bookmarked", "bookmark_id": bookmark_id}


@router.get("")
async def list_bookmarks(
    month: Optional[str] = Query(None, description="YYYY-MM, returns deadline dates in that month"),
    user: dict = Depends(get_current_user)
):
    """
    Without month: bookmarks split into upcoming (deadline today or later),
    closed (deadline passed) and uncategorized (no deadline).
    """
    month_match = None
    if month is not None:
        month_match = MONTH_RE.match(month)
        if not month_match:
            raise HTTPException(status_code=400, detail="month must be in YYYY-MM format")

    rows = execute_raw_sql(
        f"""
            SELECT b.id AS bookmark_id, b.created_at AS bookmarked_at, q.*
            FROM bookmarks b
            JOIN ({OPPORTUNITY_SELECT}) q ON q.id = b.opportunity_id
            WHERE b.user_id = :uid AND q.deleted_at IS NULL
            ORDER BY b.created_at DESC
        """,
        {"uid": user["id"]}
    )

    if month_match:
        year, month_number = int(month_match.group(1)), int(month_match.group(2))
        dates = sorted({
            end.isoformat()
            for end in (coerce_date(r["end_date"]) for r in rows)
            if end and end.year == year and end.month == month_number
        })
        return {"success": True, "month": month, "dates": dates}

    upcoming, closed, uncategorized = [], [], []
    for row in rows:
        end_date = coerce_date(row["end_date"])
        days_left = days_until(end_date) if end_date else None
        entry = BookmarkedOpportunity(
            bookmark_id=row["bookmark_id"],
            bookmarked_at=row["bookmarked_at"],
            opportunity=opportunity_from_row(row),
            days_left=days_left,
        )
        if days_left is None:
            uncategorized.append(entry)
        elif days_left >= 0:
            upcoming.append(entry)
        else:
            closed.append(entry)

    upcoming.sort(key=lambda e: e.days_left)
    return {"success": True, "upcoming": upcoming, "closed": closed, "uncategorized": uncategorized}


@router.get("/status")
async def bookmark_status(
    opportunity_id: str = Query(..., min_length=1),
    user: dict = Depends(get_current_user)
):
    rows = execute_raw_sql(
        "SELECT id FROM bookmarks WHERE user_id = :uid AND opportunity_id = :oid",
        {"uid": user["id"], "oid": opportunity_id}
    )
    return {"bookmarked": bool(rows)}


@router.delete("/{opportunity_id}", response_model=MessageResponse)
async def remove_bookmark(opportunity_id: str, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        result = db.execute(
            text("DELETE FROM bookmarks WHERE user_id = :uid AND opportunity_id = :oid"),
            {"uid": user["id"], "oid": opportunity_id}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Bookmark not found")

    return MessageResponse(message="Bookmark removed")
