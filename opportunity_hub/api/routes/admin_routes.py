"""
Admin Routes (admin role only)

GET /admin/internships - Internships awaiting moderation
PATCH /admin/internships/{internship_id} - Approve or reject
GET /admin/opportunities - Opportunities awaiting moderation
PATCH /admin/opportunities/{opportunity_id} - Approve or reject
GET /admin/users - Users with search and pagination
PATCH /admin/users/{user_id} - Change a user's role
GET|POST /admin/toolkits, PUT|DELETE /admin/toolkits/{toolkit_id} - Toolkits
GET|POST /admin/toolkits/{toolkit_id}/content - Toolkit lessons
PUT|DELETE /admin/toolkit-content-items/{item_id} - One lesson
GET|POST /admin/coupons, PUT|DELETE /admin/coupons/{coupon_id} - Coupons
GET|POST /admin/ungatekeep, PUT|DELETE /admin/ungatekeep/{post_id} - Announcements
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import text

from opportunity_hub.core.auth import require_admin
from opportunity_hub.db.postgres import execute_raw_sql, get_db_session
from opportunity_hub.schemas.schemas import (
    ContentItemCreate, ContentItemResponse, ContentItemUpdate, CouponCreate, CouponResponse,
    CouponUpdate, MessageResponse, ModerationAction, ModerationRequest, Pagination, RoleUpdate,
    ToolkitCreate, ToolkitUpdate, UngatekeepPostCreate, UngatekeepPostUpdate
)
from opportunity_hub.api.routes.internship_routes import INTERNSHIP_COLUMNS, internship_from_row
from opportunity_hub.api.routes.opportunity_routes import OPPORTUNITY_SELECT, opportunity_from_row
from opportunity_hub.api.routes.toolkit_routes import (
    CONTENT_ITEM_COLUMNS, TOOLKIT_SELECT, fetch_toolkit, toolkit_from_row
)
from opportunity_hub.api.routes.ungatekeep_routes import POST_COLUMNS, post_from_row
from opportunity_hub.services.coupon_service import normalize_code
from opportunity_hub.utils.dates import coerce_datetime, utc_now
from opportunity_hub.utils.rows import contains_pattern, dump_list

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


def _update(db, table: str, record_id: str, updates: dict, touch: bool = True) -> None:
    if not updates:
        return
    assignments = ", ".join(f"{column} = :{column}" for column in updates)
    if touch:
        assignments += ", updated_at = :now"
    db.execute(
        text(f"UPDATE {table} SET {assignments} WHERE id = :id"),
        {**updates, "now": utc_now(), "id": record_id}
    )


def _moderation_updates(action: ModerationAction) -> dict:
    if action == ModerationAction.approve:
        return {"is_active": True, "is_verified": True}
    return {"is_active": False}


# ============================================================
# MODERATION
# ============================================================

@router.get("/internships")
async def pending_internships(
    limit: int = Query(20, ge=1, le=50),
    offset: int = Query(0, ge=0)
):
    where = "is_active = FALSE AND deleted_at IS NULL"
    total = execute_raw_sql(f"SELECT COUNT(*) AS total FROM internships WHERE {where}")[0]["total"]
    rows = execute_raw_sql(
        f"""
            SELECT {INTERNSHIP_COLUMNS} FROM internships WHERE {where}
            ORDER BY created_at DESC LIMIT :limit OFFSET :offset
        """,
        {"limit": limit, "offset": offset}
    )
    return {
        "success": True,
        "internships": [internship_from_row(r) for r in rows],
        "pagination": Pagination(limit=limit, offset=offset, total=total, has_more=offset + len(rows) < total),
    }


@router.patch("/internships/{internship_id}")
async def moderate_internship(internship_id: str, data: ModerationRequest, admin: dict = Depends(require_admin)):
    with get_db_session() as db:
        exists = db.execute(
            text("SELECT id FROM internships WHERE id = :id AND deleted_at IS NULL"),
            {"id": internship_id}
        ).fetchone()
        if not exists:
            raise HTTPException(status_code=404, detail="Internship not found")

        _update(db, "internships", internship_id, _moderation_updates(data.action))
        row = db.execute(
            text(f"SELECT {INTERNSHIP_COLUMNS} FROM internships WHERE id = :id"),
            {"id": internship_id}
        ).mappings().fetchone()

    logger.info("Internship %s %sd by %s", internship_id, data.action.value, admin["id"])
    return {
        "success": True,
        "message": f"Internship {data.action.value}d successfully",
        "data": internship_from_row(row),
    }


@router.get("/opportunities")
async def pending_opportunities(limit: int = Query(20), offset: int = Query(0)):
    limit = min(max(limit, 1), 50)
    offset = max(offset, 0)
    where = "o.is_active = FALSE AND o.deleted_at IS NULL"
    total = execute_raw_sql(f"SELECT COUNT(*) AS total FROM opportunities o WHERE {where}")[0]["total"]
    rows = execute_raw_sql(
        f"{OPPORTUNITY_SELECT} WHERE {where} ORDER BY o.created_at DESC LIMIT :limit OFFSET :offset",
        {"limit": limit, "offset": offset}
    )
    return {
        "success": True,
        "opportunities": [opportunity_from_row(r) for r in rows],
        "pagination": Pagination(limit=limit, offset=offset, total=total, has_more=offset + len(rows) < total),
    }


@router.patch("/opportunities/{opportunity_id}")
async def moderate_opportunity(opportunity_id: str, data: ModerationRequest, admin: dict = Depends(require_admin)):
    with get_db_session() as db:
        exists = db.execute(
            text("SELECT id FROM opportunities WHERE id = :id AND deleted_at IS NULL"),
            {"id": opportunity_id}
        ).fetchone()
        if not exists:
            raise HTTPException(status_code=404, detail="Opportunity not found")

        _update(db, "opportunities", opportunity_id, _moderation_updates(data.action))
        row = db.execute(
            text(f"{OPPORTUNITY_SELECT} WHERE o.id = :id"),
            {"id": opportunity_id}
        ).mappings().fetchone()

    logger.info("Opportunity %s %sd by %s", opportunity_id, data.action.value, admin["id"])
    return {
        "success": True,
        "message": f"Opportunity {data.action.value}d successfully",
        "data": opportunity_from_row(row),
    }


# ============================================================
# USERS
# ============================================================

@router.get("/users")
async def list_users(
    search: Optional[str] = Query(None, description="Name or email substring"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0)
):
    where = "deleted_at IS NULL"
    params = {}
    if search and search.strip():
        where += " AND (LOWER(name) LIKE :search ESCAPE '\\' OR LOWER(email) LIKE :search ESCAPE '\\')"
        params["search"] = contains_pattern(search)

    total = execute_raw_sql(f"SELECT COUNT(*) AS total FROM users WHERE {where}", params)[0]["total"]
    rows = execute_raw_sql(
        f"""
            SELECT id, name, email, role, image, is_active, created_at FROM users
            WHERE {where} ORDER BY created_at DESC LIMIT :limit OFFSET :offset
        """,
        {**params, "limit": limit, "offset": offset}
    )
    for row in rows:
        row["is_active"] = bool(row["is_active"])
    return {
        "users": rows,
        "pagination": Pagination(limit=limit, offset=offset, total=total, has_more=offset + len(rows) < total),
    }


@router.patch("/users/{user_id}")
async def change_user_role(user_id: str, data: RoleUpdate, admin: dict = Depends(require_admin)):
    if user_id == admin["id"]:
        raise HTTPException(status_code=400, detail="Cannot change your own role")

    with get_db_session() as db:
        exists = db.execute(text("SELECT id FROM users WHERE id = :id"), {"id": user_id}).fetchone()
        if not exists:
            raise HTTPException(status_code=404, detail="User not found")
        _update(db, "users", user_id, {"role": data.role.value})
        row = db.execute(
            text("SELECT id, name, email, role FROM users WHERE id = :id"),
            {"id": user_id}
        ).mappings().fetchone()

    logger.info("User %s role set to %s by %s", user_id, data.role.value, admin["id"])
    return {"success": True, "user": dict(row)}


# ============================================================
# TOOLKITS & CONTENT ITEMS
# ============================================================

@router.get("/toolkits")
async def admin_list_toolkits():
    """All toolkits, including inactive, with live lesson counts."""
    rows = execute_raw_sql(f"{TOOLKIT_SELECT} ORDER BY t.created_at DESC")
    return {"success": True, "toolkits": [toolkit_from_row(r) for r in rows]}


@router.post("/toolkits", status_code=201)
async def create_toolkit(data: ToolkitCreate, admin: dict = Depends(require_admin)):
    toolkit_id = str(uuid.uuid4())
    now = utc_now()
    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO toolkits (id, title, description, price, original_price, cover_image_url,
                    video_url, content_url, category, highlights, total_duration, show_sale_badge,
                    is_active, user_id, created_at, updated_at)
                VALUES (:id, :title, :description, :price, :original_price, :cover_image_url,
                    :video_url, :content_url, :category, :highlights, :total_duration, :show_sale_badge,
                    :is_active, :user_id, :now, :now)
            """),
            {
                **data.model_dump(),
                "highlights": dump_list(data.highlights),
                "id": toolkit_id,
                "user_id": admin["id"],
                "now": now,
            }
        )
        row = fetch_toolkit(db, toolkit_id)
    return {"success": True, "toolkit": toolkit_from_row(row)}


@router.put("/toolkits/{toolkit_id}")
async def update_toolkit(toolkit_id: str, data: ToolkitUpdate):
    updates = data.model_dump(exclude_unset=True)
    if "highlights" in updates:
        updates["highlights"] = dump_list(updates["highlights"])
    with get_db_session() as db:
        if not fetch_toolkit(db, toolkit_id):
            raise HTTPException(status_code=404, detail="Toolkit not found")
        _update(db, "toolkits", toolkit_id, updates)
        row = fetch_toolkit(db, toolkit_id)
    return {"success": True, "toolkit": toolkit_from_row(row)}


@router.delete("/toolkits/{toolkit_id}", response_model=MessageResponse)
async def delete_toolkit(toolkit_id: str):
    with get_db_session() as db:
        if not fetch_toolkit(db, toolkit_id):
            raise HTTPException(status_code=404, detail="Toolkit not found")
        # Children first: SQLite only cascades with foreign_keys enabled
        for table in ("user_toolkit_progress", "user_toolkits", "toolkit_content_items"):
            db.execute(text(f"DELETE FROM {table} WHERE toolkit_id = :id"), {"id": toolkit_id})
        db.execute(text("DELETE FROM toolkits WHERE id = :id"), {"id": toolkit_id})
    return MessageResponse(message="Toolkit deleted successfully")


@router.get("/toolkits/{toolkit_id}/content")
async def list_content_items(toolkit_id: str):
    with get_db_session() as db:
        if not fetch_toolkit(db, toolkit_id):
            raise HTTPException(status_code=404, detail="Toolkit not found")
        rows = db.execute(
            text(f"""
                SELECT {CONTENT_ITEM_COLUMNS} FROM toolkit_content_items
                WHERE toolkit_id = :tid ORDER BY order_index, created_at
            """),
            {"tid": toolkit_id}
        ).mappings().fetchall()
    return {"success": True, "content_items": [ContentItemResponse(**r) for r in rows]}


@router.post("/toolkits/{toolkit_id}/content", status_code=201)
async def create_content_item(toolkit_id: str, data: ContentItemCreate):
    item_id = str(uuid.uuid4())
    with get_db_session() as db:
        if not fetch_toolkit(db, toolkit_id):
            raise HTTPException(status_code=404, detail="Toolkit not found")
        db.execute(
            text("""
                INSERT INTO toolkit_content_items (id, toolkit_id, title, type, content, video_url,
                    order_index, created_at, updated_at)
                VALUES (:id, :tid, :title, :type, :content, :video_url, :order_index, :now, :now)
            """),
            {**data.model_dump(), "type": data.type.value, "id": item_id, "tid": toolkit_id, "now": utc_now()}
        )
        row = db.execute(
            text(f"SELECT {CONTENT_ITEM_COLUMNS} FROM toolkit_content_items WHERE id = :id"),
            {"id": item_id}
        ).mappings().fetchone()
    return {"success": True, "content_item": ContentItemResponse(**row)}


@router.put("/toolkit-content-items/{item_id}")
async def update_content_item(item_id: str, data: ContentItemUpdate):
    updates = data.model_dump(exclude_unset=True)
    if updates.get("type") is not None:
        updates["type"] = updates["type"].value
    with get_db_session() as db:
        exists = db.execute(text("SELECT id FROM toolkit_content_items WHERE id = :id"), {"id": item_id}).fetchone()
        if not exists:
            raise HTTPException(status_code=404, detail="Content item not found")
        _update(db, "toolkit_content_items", item_id, updates)
        row = db.execute(
            text(f"SELECT {CONTENT_ITEM_COLUMNS} FROM toolkit_content_items WHERE id = :id"),
            {"id": item_id}
        ).mappings().fetchone()
    return {"success": True, "content_item": ContentItemResponse(**row)}


@router.delete("/toolkit-content-items/{item_id}", response_model=MessageResponse)
async def delete_content_item(item_id: str):
    with get_db_session() as db:
        db.execute(text("DELETE FROM user_toolkit_progress WHERE content_item_id = :id"), {"id": item_id})
        result = db.execute(text("DELETE FROM toolkit_content_items WHERE id = :id"), {"id": item_id})
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Content item not found")
    return MessageResponse(message="Content item deleted successfully")


# ============================================================
# COUPONS
# ============================================================

COUPON_COLUMNS = """
    id, code, discount_amount, max_uses, max_uses_per_user, current_uses,
    is_active, expires_at, created_at
"""


def _fetch_coupon(db, coupon_id: str):
    return db.execute(
        text(f"SELECT {COUPON_COLUMNS} FROM coupons WHERE id = :id"),
        {"id": coupon_id}
    ).mappings().fetchone()


def _code_taken(db, code: str, exclude_id: Optional[str] = None) -> bool:
    row = db.execute(
        text("SELECT id FROM coupons WHERE code = :code"),
        {"code": code}
    ).fetchone()
    return row is not None and row[0] != exclude_id


@router.get("/coupons")
async def list_coupons():
    rows = execute_raw_sql(f"SELECT {COUPON_COLUMNS} FROM coupons ORDER BY created_at DESC")
    return {"success": True, "coupons": [CouponResponse(**r) for r in rows]}


@router.post("/coupons", status_code=201)
async def create_coupon(data: CouponCreate):
    code = normalize_code(data.code)
    coupon_id = str(uuid.uuid4())
    with get_db_session() as db:
        if _code_taken(db, code):
            raise HTTPException(status_code=400, detail="Coupon code already exists")
        now = utc_now()
        db.execute(
            text("""
                INSERT INTO coupons (id, code, discount_amount, max_uses, max_uses_per_user,
                    is_active, expires_at, created_at, updated_at)
                VALUES (:id, :code, :discount_amount, :max_uses, :max_uses_per_user,
                    :is_active, :expires_at, :now, :now)
            """),
            {
                **data.model_dump(),
                "id": coupon_id,
                "code": code,
                "expires_at": coerce_datetime(data.expires_at),
                "now": now,
            }
        )
        row = _fetch_coupon(db, coupon_id)
    return {"success": True, "coupon": CouponResponse(**row)}


@router.put("/coupons/{coupon_id}")
async def update_coupon(coupon_id: str, data: CouponUpdate):
    updates = data.model_dump(exclude_unset=True)
    with get_db_session() as db:
        if not _fetch_coupon(db, coupon_id):
            raise HTTPException(status_code=404, detail="Coupon not found")
        if updates.get("code") is not None:
            updates["code"] = normalize_code(updates["code"])
            if _code_taken(db, updates["code"], exclude_id=coupon_id):
                raise HTTPException(status_code=400, detail="Coupon code already exists")
        if "expires_at" in updates:
            updates["expires_at"] = coerce_datetime(updates["expires_at"])
        _update(db, "coupons", coupon_id, updates)
        row = _fetch_coupon(db, coupon_id)
    return {"success": True, "coupon": CouponResponse(**row)}


@router.delete("/coupons/{coupon_id}", response_model=MessageResponse)
async def delete_coupon(coupon_id: str):
    with get_db_session() as db:
        db.execute(text("UPDATE user_toolkits SET coupon_id = NULL WHERE coupon_id = :id"), {"id": coupon_id})
        result = db.execute(text("DELETE FROM coupons WHERE id = :id"), {"id": coupon_id})
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Coupon not found")
    return MessageResponse(message="Coupon deleted successfully")


# ============================================================
# UNGATEKEEP POSTS
# ============================================================

def _fetch_post(db, post_id: str):
    return db.execute(
        text(f"SELECT {POST_COLUMNS} FROM ungatekeep_posts WHERE id = :id"),
        {"id": post_id}
    ).mappings().fetchone()


@router.get("/ungatekeep")
async def admin_list_posts():
    """Drafts included."""
    rows = execute_raw_sql(f"SELECT {POST_COLUMNS} FROM ungatekeep_posts ORDER BY created_at DESC")
    return {"success": True, "posts": [post_from_row(r) for r in rows]}


@router.post("/ungatekeep", status_code=201)
async def create_post(data: UngatekeepPostCreate, admin: dict = Depends(require_admin)):
    post_id = str(uuid.uuid4())
    now = utc_now()
    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO ungatekeep_posts (id, title, content, images, link_url, link_title,
                    link_image, tag, is_pinned, is_published, published_at, user_id, created_at, updated_at)
                VALUES (:id, :title, :content, :images, :link_url, :link_title, :link_image, :tag,
                    :is_pinned, :is_published, :published_at, :user_id, :now, :now)
            """),
            {
                **data.model_dump(),
                "images": dump_list(data.images),
                "tag": data.tag.value if data.tag else None,
                "published_at": now if data.is_published else None,
                "id": post_id,
                "user_id": admin["id"],
                "now": now,
            }
        )
        row = _fetch_post(db, post_id)
    return {"success": True, "post": post_from_row(row)}


@router.put("/ungatekeep/{post_id}")
async def update_post(post_id: str, data: UngatekeepPostUpdate):
    """Publishing a draft stamps published_at; unpublishing clears it."""
    updates = data.model_dump(exclude_unset=True)
    with get_db_session() as db:
        existing = _fetch_post(db, post_id)
        if not existing:
            raise HTTPException(status_code=404, detail="Post not found")

        if "images" in updates:
            updates["images"] = dump_list(updates["images"])
        if "tag" in updates:
            updates["tag"] = updates["tag"].value if updates["tag"] else None
        if updates.get("link_url") == "":
            updates["link_url"] = None
        if "is_published" in updates:
            if updates["is_published"] and not existing["is_published"]:
                updates["published_at"] = utc_now()
            elif not updates["is_published"]:
                updates["published_at"] = None

        _update(db, "ungatekeep_posts", post_id, updates)
        row = _fetch_post(db, post_id)
    return {"success": True, "post": post_from_row(row)}


@router.delete("/ungatekeep/{post_id}", response_model=MessageResponse)
async def delete_post(post_id: str):
    with get_db_session() as db:
        result = db.execute(text("DELETE FROM ungatekeep_posts WHERE id = :id"), {"id": post_id})
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Post not found")
    return MessageResponse(message="Post deleted successfully")
