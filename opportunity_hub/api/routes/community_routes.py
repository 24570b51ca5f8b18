"""
Community Routes

GET /tags - Tag autocomplete
POST /feedback - Mood feedback from any page (anonymous allowed)
POST /waitlist - Join the waitlist
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import text

from opportunity_hub.core.auth import get_optional_user
from opportunity_hub.db.postgres import get_db_session
from opportunity_hub.schemas.schemas import FeedbackCreate, WaitlistCreate
from opportunity_hub.services.tag_service import DEFAULT_LIMIT, search_tags
from opportunity_hub.utils.dates import utc_now
from opportunity_hub.utils.text import clean_optional, sanitize_html

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Community"])


@router.get("/tags")
async def get_tags(q: str = Query("", description="Substring to match"), limit: int = Query(DEFAULT_LIMIT)):
    return {"tags": search_tags(q, limit)}


@router.post("/feedback")
async def submit_feedback(
    data: FeedbackCreate,
    request: Request,
    user: Optional[dict] = Depends(get_optional_user)
):
    user_agent = clean_optional(data.user_agent) or request.headers.get("user-agent")
    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO feedback (id, mood, meaning, message, path, user_agent, user_id, created_at)
                VALUES (:id, :mood, :meaning, :message, :path, :user_agent, :uid, :now)
            """),
            {
                "id": str(uuid.uuid4()),
                "mood": data.mood,
                "meaning": data.meaning.strip(),
                "message": clean_optional(sanitize_html(data.message)),
                "path": clean_optional(data.path),
                "user_agent": user_agent,
                "uid": user["id"] if user else None,
                "now": utc_now(),
            }
        )
    return {"ok": True}


@router.post("/waitlist", status_code=201)
async def join_waitlist(data: WaitlistCreate):
    email = data.email.strip().lower()
    with get_db_session() as db:
        existing = db.execute(text("SELECT id FROM waitlist WHERE email = :email"), {"email": email}).fetchone()
        if existing:
            raise HTTPException(status_code=409, detail="Email already on the waitlist")

        db.execute(
            text("INSERT INTO waitlist (id, email, feedback, created_at) VALUES (:id, :email, :feedback, :now)"),
            {"id": str(uuid.uuid4()), "email": email, "feedback": clean_optional(data.feedback), "now": utc_now()}
        )

    logger.info("Waitlist signup: %s", email)
    return {"success": True, "message": "Added to waitlist"}
