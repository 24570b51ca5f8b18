"""
Internship Routes

POST /internships - Create internship (role decides whether it goes live)
GET /internships - List internships with filters and pagination
POST /internships/ingest - Bulk ingest scraped postings (shared-secret auth)
GET /internships/{internship_id} - Get internship details
GET /internships/{internship_id}/fit - Fit score against own skills
"""

import json
import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy import text

from opportunity_hub.core.auth import (
    can_post_directly, get_current_user, get_ingest_token, get_optional_user, is_admin
)
from opportunity_hub.core.config import get_settings
from opportunity_hub.db.postgres import execute_raw_sql, get_db_session
from opportunity_hub.schemas.schemas import (
    FitScoreResponse, InternshipCreate, InternshipIngestBatch, InternshipListResponse,
    InternshipResponse, InternshipType, Pagination
)
from opportunity_hub.services.archive_service import archive_raw_postings
from opportunity_hub.services.fit_service import calculate_fit_score
from opportunity_hub.services.ingest_service import (
    IngestConfigError, build_internship_insert_values, get_ingest_user_id,
    normalize_timing, normalize_type
)
from opportunity_hub.services.tag_service import upsert_tags
from opportunity_hub.utils.dates import to_iso_date, utc_now
from opportunity_hub.utils.rows import contains_pattern, dump_list, load_list, tag_pattern
from opportunity_hub.utils.text import clean_optional, split_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internships", tags=["Internships"])

INTERNSHIP_COLUMNS = """
    id, type, timing, title, description, link, poster, tags, location, deadline,
    stipend, duration, experience, hiring_organization, hiring_manager, is_flagged,
    is_verified, is_active, view_count, application_count, user_id, created_at, updated_at
"""

INSERT_INTERNSHIP_SQL = """
    INSERT INTO internships (id, type, timing, title, description, link, poster, tags,
        location, deadline, stipend, duration, experience, hiring_organization,
        hiring_manager, is_verified, is_active, user_id, created_at, updated_at)
    VALUES (:id, :type, :timing, :title, :description, :link, :poster, :tags,
        :location, :deadline, :stipend, :duration, :experience, :hiring_organization,
        :hiring_manager, :is_verified, :is_active, :user_id, :now, :now)
"""


def internship_from_row(row) -> InternshipResponse:
    data = dict(row)
    data["tags"] = load_list(data["tags"])
    return InternshipResponse(**data)


def _in_clause(column: str, values: List[str], prefix: str, params: dict) -> str:
    names = []
    for i, value in enumerate(values):
        params[f"{prefix}{i}"] = value
        names.append(f":{prefix}{i}")
    return f"{column} IN ({', '.join(names)})"


def fetch_internship(db, internship_id: str) -> Optional[dict]:
    row = db.execute(
        text(f"SELECT {INTERNSHIP_COLUMNS}, deleted_at FROM internships WHERE id = :id"),
        {"id": internship_id}
    ).mappings().fetchone()
    return dict(row) if row else None


@router.post("", status_code=201)
async def create_internship(data: InternshipCreate, user: dict = Depends(get_current_user)):
    """
    Create an internship. Admin and member posts go live immediately,
    everyone else's wait in the moderation queue.
    """
    internship_type = normalize_type(data.type) if data.type else None
    if data.type and internship_type is None:
        raise HTTPException(status_code=400, detail=f"Invalid internship type: {data.type}")

    timing = normalize_timing(data.timing) if data.timing else None
    if data.timing and timing is None:
        raise HTTPException(status_code=400, detail=f"Invalid internship timing: {data.timing}")

    internship_id = str(uuid.uuid4())
    with get_db_session() as db:
        tags = upsert_tags(db, data.tags)
        db.execute(
            text(INSERT_INTERNSHIP_SQL),
            {
                "id": internship_id,
                "type": internship_type,
                "timing": timing,
                "title": data.title.strip(),
                "description": data.description.strip(),
                "link": clean_optional(data.link),
                "poster": clean_optional(data.poster),
                "tags": dump_list(tags),
                "location": clean_optional(data.location),
                "deadline": to_iso_date(data.deadline),
                "stipend": data.stipend,
                "duration": clean_optional(data.duration),
                "experience": clean_optional(data.experience),
                "hiring_organization": data.hiring_organization.strip(),
                "hiring_manager": clean_optional(data.hiring_manager),
                "is_verified": False,
                "is_active": can_post_directly(user),
                "user_id": user["id"],
                "now": utc_now(),
            }
        )
        created = fetch_internship(db, internship_id)

    return {"success": True, "data": internship_from_row(created), "user_role": user["role"]}


@router.get("", response_model=InternshipListResponse)
async def list_internships(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None, description="Search title, description and organization"),
    types: Optional[str] = Query(None, description="Comma separated: remote,hybrid,onsite"),
    tags: Optional[str] = Query(None, description="Comma separated, matches any"),
    location: Optional[str] = Query(None),
    min_stipend: Optional[int] = Query(None, ge=0),
    max_stipend: Optional[int] = Query(None, ge=0),
    ids: Optional[str] = Query(None, description="Comma separated internship ids"),
    user: Optional[dict] = Depends(get_optional_user)
):
    """List internships, newest first. Non-admins only see live postings."""
    where = ["deleted_at IS NULL"]
    params = {}

    if not is_admin(user):
        where.append("is_active = TRUE")
    if search and search.strip():
        where.append(
            "(LOWER(title) LIKE :search ESCAPE '\\' OR LOWER(description) LIKE :search ESCAPE '\\'"
            " OR LOWER(hiring_organization) LIKE :search ESCAPE '\\')"
        )
        params["search"] = contains_pattern(search)

    valid_types = [t.lower() for t in split_csv(types) if t.lower() in InternshipType._value2member_map_]
    if valid_types:
        where.append(_in_clause("type", valid_types, "type", params))

    tag_list = split_csv(tags)
    if tag_list:
        clauses = []
        for i, tag in enumerate(tag_list):
            params[f"tag{i}"] = tag_pattern(tag)
            clauses.append(f"LOWER(tags) LIKE :tag{i} ESCAPE '\\'")
        where.append(f"({' OR '.join(clauses)})")

    if location and location.strip():
        where.append("LOWER(location) LIKE :location ESCAPE '\\'")
        params["location"] = contains_pattern(location)
    if min_stipend is not None:
        where.append("stipend >= :min_stipend")
        params["min_stipend"] = min_stipend
    if max_stipend is not None:
        where.append("stipend <= :max_stipend")
        params["max_stipend"] = max_stipend

    id_list = split_csv(ids)
    if id_list:
        where.append(_in_clause("id", id_list, "id", params))

    where_sql = " AND ".join(where)
    total = execute_raw_sql(f"SELECT COUNT(*) AS total FROM internships WHERE {where_sql}", params)[0]["total"]
    rows = execute_raw_sql(
        f"""
            SELECT {INTERNSHIP_COLUMNS} FROM internships WHERE {where_sql}
            ORDER BY created_at DESC, id LIMIT :limit OFFSET :offset
        """,
        {**params, "limit": limit, "offset": offset}
    )

    return InternshipListResponse(
        internships=[internship_from_row(r) for r in rows],
        pagination=Pagination(limit=limit, offset=offset, total=total, has_more=offset + len(rows) < total),
    )


@router.post("/ingest", status_code=201)
async def ingest_internships(request: Request):
    """
    Bulk insert scraped internships.

    Auth is a shared secret (INTERNSHIP_INGEST_API_KEY) sent as a Bearer
    token, X-Ingest-Token or X-API-Key. Rows are owned by
    INTERNSHIP_INGEST_USER_ID and inserted in a single transaction.
    """
    settings = get_settings()
    expected_token = settings.internship_ingest_api_key
    if not expected_token:
        raise HTTPException(status_code=500, detail="INTERNSHIP_INGEST_API_KEY is not configured")

    incoming_token = get_ingest_token(request)
    if not incoming_token or incoming_token != expected_token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Request body must be a JSON array")

    try:
        records = InternshipIngestBatch.model_validate(body).root
    except ValidationError as e:
        return JSONResponse(
            status_code=400,
            content={"detail": jsonable_encoder(e.errors(include_url=False, include_context=False))},
        )

    try:
        ingest_user_id = get_ingest_user_id()
    except IngestConfigError as e:
        logger.error("Internship ingest misconfigured: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    values = build_internship_insert_values(records, ingest_user_id)
    now = utc_now()
    with get_db_session() as db:
        for row in values:
            db.execute(
                text(INSERT_INTERNSHIP_SQL),
                {**row, "tags": dump_list(row["tags"]), "poster": None, "now": now}
            )
        inserted = [fetch_internship(db, row["id"]) for row in values]

    archived = archive_raw_postings([
        {
            "internship_id": row["id"],
            "source": record.model_dump(mode="json"),
            "normalized": {key: row[key] for key in ("type", "timing", "stipend", "deadline", "tags")},
        }
        for record, row in zip(records, values)
    ])
    logger.info("Ingested %d internships (%d raw postings archived)", len(values), archived)

    return {"success": True, "count": len(inserted), "data": [internship_from_row(r) for r in inserted]}


@router.get("/{internship_id}", response_model=InternshipResponse)
async def get_internship(internship_id: str, user: Optional[dict] = Depends(get_optional_user)):
    """Get one internship and count the view."""
    with get_db_session() as db:
        row = fetch_internship(db, internship_id)
        if not row or row["deleted_at"] is not None or (not row["is_active"] and not is_admin(user)):
            raise HTTPException(status_code=404, detail="Internship not found")

        db.execute(
            text("UPDATE internships SET view_count = view_count + 1 WHERE id = :id"),
            {"id": internship_id}
        )
        row["view_count"] += 1

    return internship_from_row(row)


@router.get("/{internship_id}/fit", response_model=FitScoreResponse)
async def get_internship_fit(internship_id: str, user: dict = Depends(get_current_user)):
    """Compare the internship's tags with the skills on the caller's profile."""
    with get_db_session() as db:
        row = fetch_internship(db, internship_id)
        if not row or row["deleted_at"] is not None or (not row["is_active"] and not is_admin(user)):
            raise HTTPException(status_code=404, detail="Internship not found")

        skills_row = db.execute(
            text("SELECT skills FROM users WHERE id = :id"),
            {"id": user["id"]}
        ).fetchone()

    # NULL means the profile never set skills; a saved empty list still scores
    user_skills = load_list(skills_row[0]) if skills_row and skills_row[0] is not None else None
    return FitScoreResponse(**calculate_fit_score([], load_list(row["tags"]), user_skills))
