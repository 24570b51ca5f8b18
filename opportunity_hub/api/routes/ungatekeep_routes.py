"""
Ungatekeep Routes (public announcements and shared resources)

GET /ungatekeep - Published posts, pinned first
GET /ungatekeep/{post_id} - One published post
"""

from fastapi import APIRouter, HTTPException, Query
from sqlalchemy import text

from opportunity_hub.db.postgres import execute_raw_sql, get_db_session
from opportunity_hub.schemas.schemas import UngatekeepPostResponse
from opportunity_hub.utils.rows import load_list

router = APIRouter(prefix="/ungatekeep", tags=["Ungatekeep"])

POST_COLUMNS = """
    id, title, content, images, link_url, link_title, link_image, tag, is_pinned,
    is_published, published_at, created_at, updated_at
"""


def post_from_row(row) -> UngatekeepPostResponse:
    data = dict(row)
    data["images"] = load_list(data["images"])
    return UngatekeepPostResponse(**data)


@router.get("")
async def list_posts(limit: int = Query(20, ge=1, le=100), offset: int = Query(0, ge=0)):
    rows = execute_raw_sql(
        f"""
            SELECT {POST_COLUMNS} FROM ungatekeep_posts
            WHERE is_published = TRUE
            ORDER BY is_pinned DESC, published_at DESC, created_at DESC
            LIMIT :limit OFFSET :offset
        """,
        {"limit": limit, "offset": offset}
    )
    return {"success": True, "posts": [post_from_row(r) for r in rows]}


@router.get("/{post_id}", response_model=UngatekeepPostResponse)
async def get_post(post_id: str):
    with get_db_session() as db:
        row = db.execute(
            text(f"SELECT {POST_COLUMNS} FROM ungatekeep_posts WHERE id = :id AND is_published = TRUE"),
            {"id": post_id}
        ).mappings().fetchone()
    if not row:
        raise HTTPException(status_code=404, detail="Post not found")
    return post_from_row(row)
