"""
Opportunity Routes (community posts: hackathons, grants, competitions, ideathons)

POST /opportunities - Create opportunity
GET /opportunities - List opportunities with filters and pagination
GET /opportunities/{opportunity_id} - Get opportunity
PUT /opportunities/{opportunity_id} - Update own opportunity
DELETE /opportunities/{opportunity_id} - Soft delete (owner or admin)
GET /opportunities/{opportunity_id}/upvote - Upvote count and own state
POST /opportunities/{opportunity_id}/upvote - Toggle own upvote
GET /opportunities/{opportunity_id}/comments - List comments
POST /opportunities/{opportunity_id}/comments - Add comment
DELETE /opportunities/{opportunity_id}/comments/{comment_id} - Delete comment
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import text

from opportunity_hub.core.auth import (
    can_post_directly, get_current_user, get_optional_user, is_admin
)
from opportunity_hub.db.postgres import execute_raw_sql, get_db_session
from opportunity_hub.schemas.schemas import (
    CommentCreate, CommentResponse, MessageResponse, OpportunityCreate,
    OpportunityResponse, OpportunityType, OpportunityUpdate, Pagination, UpvoteResponse,
    UserSummary
)
from opportunity_hub.services.tag_service import upsert_tags
from opportunity_hub.utils.dates import parse_datetime, to_iso_date, utc_now
from opportunity_hub.utils.rows import contains_pattern, dump_list, load_list, tag_pattern
from opportunity_hub.utils.text import clean_optional, sanitize_html, split_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/opportunities", tags=["Opportunities"])

OPPORTUNITY_SELECT = """
    SELECT o.id, o.type, o.title, o.description, o.location, o.organiser_info,
           o.start_date, o.end_date, o.publish_at, o.images, o.tags, o.upvoter_ids,
           o.upvote_count, o.is_flagged, o.is_verified, o.is_active, o.user_id,
           o.created_at, o.updated_at, o.deleted_at,
           u.name AS user_name, u.image AS user_image
    FROM opportunities o
    JOIN users u ON u.id = o.user_id
"""


def opportunity_from_row(row) -> OpportunityResponse:
    data = dict(row)
    data["images"] = load_list(data["images"])
    data["tags"] = load_list(data["tags"])
    data["user"] = UserSummary(id=data["user_id"], name=data["user_name"], image=data["user_image"])
    return OpportunityResponse(**data)


def fetch_opportunity(db, opportunity_id: str) -> Optional[dict]:
    row = db.execute(
        text(f"{OPPORTUNITY_SELECT} WHERE o.id = :id"),
        {"id": opportunity_id}
    ).mappings().fetchone()
    return dict(row) if row else None


def _visible(row: Optional[dict], user: Optional[dict]) -> bool:
    if not row or row["deleted_at"] is not None:
        return False
    if is_admin(user) or (user and row["user_id"] == user["id"]):
        return True
    return bool(row["is_active"])


def _get_visible_or_404(db, opportunity_id: str, user: Optional[dict]) -> dict:
    row = fetch_opportunity(db, opportunity_id)
    if not _visible(row, user):
        raise HTTPException(status_code=404, detail="Opportunity not found")
    return row


@router.post("", status_code=201)
async def create_opportunity(data: OpportunityCreate, user: dict = Depends(get_current_user)):
    """Admin and member posts go live immediately, others wait for approval."""
    opportunity_id = str(uuid.uuid4())
    with get_db_session() as db:
        tags = upsert_tags(db, data.tags)
        db.execute(
            text("""
                INSERT INTO opportunities (id, type, title, description, location, organiser_info,
                    start_date, end_date, publish_at, images, tags, is_active, user_id,
                    created_at, updated_at)
                VALUES (:id, :type, :title, :description, :location, :organiser_info,
                    :start_date, :end_date, :publish_at, :images, :tags, :is_active, :user_id,
                    :now, :now)
            """),
            {
                "id": opportunity_id,
                "type": data.type.value,
                "title": data.title.strip(),
                "description": data.description,
                "location": clean_optional(data.location),
                "organiser_info": clean_optional(data.organiser_info),
                "start_date": to_iso_date(data.start_date),
                "end_date": to_iso_date(data.end_date),
                "publish_at": parse_datetime(data.publish_at),
                "images": dump_list(data.images),
                "tags": dump_list(tags),
                "is_active": can_post_directly(user),
                "user_id": user["id"],
                "now": utc_now(),
            }
        )
        created = fetch_opportunity(db, opportunity_id)

    return {"success": True, "data": opportunity_from_row(created), "user_role": user["role"]}


@router.get("")
async def list_opportunities(
    limit: int = Query(10),
    offset: int = Query(0),
    search: Optional[str] = Query(None),
    types: Optional[str] = Query(None, description="Comma separated opportunity types"),
    tags: Optional[str] = Query(None, description="Comma separated, matches any"),
    ids: Optional[str] = Query(None, description="Comma separated opportunity ids"),
    user: dict = Depends(get_current_user)
):
    """
    Newest first. Non-admins see live posts whose publish time has passed.
    limit is clamped to 1..50.
    """
    limit = min(max(limit, 1), 50)
    offset = max(offset, 0)

    where = ["o.deleted_at IS NULL"]
    params = {}
    if not is_admin(user):
        where.append("o.is_active = TRUE")
        where.append("(o.publish_at IS NULL OR o.publish_at <= :now)")
        params["now"] = utc_now()

    if search and search.strip():
        where.append(
            "(LOWER(o.title) LIKE :search ESCAPE '\\'"
            " OR LOWER(o.description) LIKE :search ESCAPE '\\')"
        )
        params["search"] = contains_pattern(search)

    valid_types = [t.lower() for t in split_csv(types) if t.lower() in OpportunityType._value2member_map_]
    if valid_types:
        names = []
        for i, value in enumerate(valid_types):
            params[f"type{i}"] = value
            names.append(f":type{i}")
        where.append(f"o.type IN ({', '.join(names)})")

    tag_list = split_csv(tags)
    if tag_list:
        clauses = []
        for i, tag in enumerate(tag_list):
            params[f"tag{i}"] = tag_pattern(tag)
            clauses.append(f"LOWER(o.tags) LIKE :tag{i} ESCAPE '\\'")
        where.append(f"({' OR '.join(clauses)})")

    id_list = split_csv(ids)
    if id_list:
        names = []
        for i, value in enumerate(id_list):
            params[f"id{i}"] = value
            names.append(f":id{i}")
        where.append(f"o.id IN ({', '.join(names)})")

    where_sql = " AND ".join(where)
    total = execute_raw_sql(
        f"SELECT COUNT(*) AS total FROM opportunities o WHERE {where_sql}", params
    )[0]["total"]
    rows = execute_raw_sql(
        f"{OPPORTUNITY_SELECT} WHERE {where_sql} ORDER BY o.created_at DESC, o.id LIMIT :limit OFFSET :offset",
        {**params, "limit": limit, "offset": offset}
    )

    return {
        "success": True,
        "opportunities": [opportunity_from_row(r) for r in rows],
        "pagination": Pagination(limit=limit, offset=offset, total=total, has_more=offset + len(rows) < total),
    }


@router.get("/{opportunity_id}", response_model=OpportunityResponse)
async def get_opportunity(opportunity_id: str, user: Optional[dict] = Depends(get_optional_user)):
    with get_db_session() as db:
        row = _get_visible_or_404(db, opportunity_id, user)
    return opportunity_from_row(row)


@router.put("/{opportunity_id}", response_model=OpportunityResponse)
async def update_opportunity(
    opportunity_id: str,
    data: OpportunityUpdate,
    user: dict = Depends(get_current_user)
):
    """Partial update by the owner. An empty date or publish time clears it."""
    changes = data.model_dump(exclude_unset=True)

    with get_db_session() as db:
        row = fetch_opportunity(db, opportunity_id)
        if not row or row["deleted_at"] is not None:
            raise HTTPException(status_code=404, detail="Opportunity not found")
        if row["user_id"] != user["id"]:
            raise HTTPException(status_code=403, detail="You can only edit your own opportunities")

        updates = {}
        for field in ("title", "description"):
            if changes.get(field) is not None:
                updates[field] = changes[field]
        if changes.get("type") is not None:
            updates["type"] = changes["type"].value
        for field in ("location", "organiser_info"):
            if field in changes:
                updates[field] = clean_optional(changes[field])
        for field in ("start_date", "end_date"):
            if field in changes:
                updates[field] = to_iso_date(changes[field])
        if "publish_at" in changes:
            updates["publish_at"] = parse_datetime(changes["publish_at"])
        if changes.get("images") is not None:
            updates["images"] = dump_list(changes["images"])
        if changes.get("tags") is not None:
            updates["tags"] = dump_list(upsert_tags(db, changes["tags"]))

        if updates:
            assignments = ", ".join(f"{column} = :{column}" for column in updates)
            db.execute(
                text(f"UPDATE opportunities SET {assignments}, updated_at = :now WHERE id = :id"),
                {**updates, "now": utc_now(), "id": opportunity_id}
            )
        row = fetch_opportunity(db, opportunity_id)

    return opportunity_from_row(row)


@router.delete("/{opportunity_id}", response_model=MessageResponse)
async def delete_opportunity(opportunity_id: str, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = fetch_opportunity(db, opportunity_id)
        if not row or row["deleted_at"] is not None:
            raise HTTPException(status_code=404, detail="Opportunity not found")
        if row["user_id"] != user["id"] and not is_admin(user):
            raise HTTPException(status_code=403, detail="You can only delete your own opportunities")

        now = utc_now()
        db.execute(
            text("UPDATE opportunities SET deleted_at = :now, updated_at = :now WHERE id = :id"),
            {"now": now, "id": opportunity_id}
        )

    return MessageResponse(message="Opportunity deleted successfully")


# ============================================================
# UPVOTES
# ============================================================

@router.get("/{opportunity_id}/upvote", response_model=UpvoteResponse)
async def get_upvotes(opportunity_id: str, user: Optional[dict] = Depends(get_optional_user)):
    with get_db_session() as db:
        row = _get_visible_or_404(db, opportunity_id, user)
    upvoters = load_list(row["upvoter_ids"])
    return UpvoteResponse(
        count=len(upvoters),
        user_has_upvoted=bool(user) and user["id"] in upvoters,
    )


@router.post("/{opportunity_id}/upvote", response_model=UpvoteResponse)
async def toggle_upvote(opportunity_id: str, user: dict = Depends(get_current_user)):
    """Add the caller's upvote, or remove it if already there."""
    with get_db_session() as db:
        row = _get_visible_or_404(db, opportunity_id, user)
        upvoters = load_list(row["upvoter_ids"])
        if user["id"] in upvoters:
            upvoters.remove(user["id"])
            upvoted = False
        else:
            upvoters.append(user["id"])
            upvoted = True

        db.execute(
            text("""
                UPDATE opportunities SET upvoter_ids = :upvoters, upvote_count = :count
                WHERE id = :id
            """),
            {"upvoters": dump_list(upvoters), "count": len(upvoters), "id": opportunity_id}
        )

    return UpvoteResponse(count=len(upvoters), user_has_upvoted=upvoted)


# ============================================================
# COMMENTS
# ============================================================

COMMENT_SELECT = """
    SELECT c.id, c.content, c.opportunity_id, c.user_id, c.created_at,
           u.name AS user_name, u.image AS user_image
    FROM comments c
    JOIN users u ON u.id = c.user_id
"""


def comment_from_row(row) -> CommentResponse:
    return CommentResponse(
        id=row["id"], content=row["content"], opportunity_id=row["opportunity_id"],
        created_at=row["created_at"],
        user=UserSummary(id=row["user_id"], name=row["user_name"], image=row["user_image"]),
    )


@router.get("/{opportunity_id}/comments")
async def list_comments(opportunity_id: str, user: Optional[dict] = Depends(get_optional_user)):
    with get_db_session() as db:
        _get_visible_or_404(db, opportunity_id, user)
        rows = db.execute(
            text(f"{COMMENT_SELECT} WHERE c.opportunity_id = :oid ORDER BY c.created_at DESC"),
            {"oid": opportunity_id}
        ).mappings().fetchall()
    return {"success": True, "comments": [comment_from_row(r) for r in rows]}


@router.post("/{opportunity_id}/comments", status_code=201)
async def add_comment(opportunity_id: str, data: CommentCreate, user: dict = Depends(get_current_user)):
    content = sanitize_html(data.content)
    if not content:
        raise HTTPException(status_code=400, detail="Comment cannot be empty")

    comment_id = str(uuid.uuid4())
    with get_db_session() as db:
        _get_visible_or_404(db, opportunity_id, user)
        now = utc_now()
        db.execute(
            text("""
                INSERT INTO comments (id, content, user_id, opportunity_id, created_at, updated_at)
                VALUES (:id, :content, :uid, :oid, :now, :now)
            """),
            {"id": comment_id, "content": content, "uid": user["id"], "oid": opportunity_id, "now": now}
        )
        row = db.execute(
            text(f"{COMMENT_SELECT} WHERE c.id = :id"),
            {"id": comment_id}
        ).mappings().fetchone()

    return {"success": True, "comment": comment_from_row(row)}


@router.delete("/{opportunity_id}/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(opportunity_id: str, comment_id: str, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = db.execute(
            text("SELECT user_id FROM comments WHERE id = :id AND opportunity_id = :oid"),
            {"id": comment_id, "oid": opportunity_id}
        ).fetchone()
        if not row:
            raise HTTPException(status_code=404, detail="Comment not found")
        if row[0] != user["id"] and not is_admin(user):
            raise HTTPException(status_code=403, detail="You can only delete your own comments")

        db.execute(text("DELETE FROM comments WHERE id = :id"), {"id": comment_id})

    return MessageResponse(message="Comment deleted successfully")
