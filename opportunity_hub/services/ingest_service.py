"""
Internship Ingest Service - turns scraped postings into internship rows.

Scrapers send loosely structured records: employment type and timing may be
missing or phrased many ways, stipends arrive as "Rs. 15,000 /month" and
deadlines hide inside the posting text. Each normalizer looks at the explicit
field first and falls back to "{title} {description} {raw_text}".
"""

import logging
import math
import re
import uuid
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy import text

from opportunity_hub.core.config import get_settings
from opportunity_hub.db.postgres import get_db_session
from opportunity_hub.schemas.schemas import InternshipIngestRecord
from opportunity_hub.utils.dates import parse_date
from opportunity_hub.utils.text import clean_optional

logger = logging.getLogger(__name__)

CANONICAL_TYPES = ("remote", "hybrid", "onsite")
CANONICAL_TIMINGS = ("full_time", "part_time")

TYPE_ALIASES = {
    "work-from-home": "remote",
    "work_from_home": "remote",
    "wfh": "remote",
    "remote": "remote",
    "in-office": "onsite",
    "in_office": "onsite",
    "onsite": "onsite",
    "on-site": "onsite",
}

TIMING_ALIASES = {
    "full-time": "full_time",
    "full_time": "full_time",
    "full time": "full_time",
    "part-time": "part_time",
    "part_time": "part_time",
    "part time": "part_time",
    "shift-based": "part_time",
    "shift_based": "part_time",
}

REMOTE_RE = re.compile(r"\b(remote|wfh|work\s*from\s*home)\b")
ONSITE_RE = re.compile(r"\b(on\s*-?\s*site|in\s*-?\s*office|office)\b")
HYBRID_RE = re.compile(r"\bhybrid\b")

FULL_TIME_RE = re.compile(r"\bfull\s*-?\s*time\b")
PART_TIME_RE = re.compile(r"\bpart\s*-?\s*time\b")
SHIFT_BASED_RE = re.compile(r"\bshift\s*-?\s*based\b")

STIPEND_RE = re.compile(
    r"(?:₹|rs\.?|inr)?\s*([0-9][0-9,]*)\s*(?:/?\s*month|pm|per\s*month)?",
    re.IGNORECASE,
)
DEADLINE_PHRASE_RE = re.compile(
    r"\b(?:deadline|apply\s*by|last\s*date)[:\s-]*([A-Za-z]{3,9}\s+\d{1,2},?\s+\d{4})\b",
    re.IGNORECASE,
)
NUMERIC_DATE_RE = re.compile(r"\b(\d{1,2}[/-]\d{1,2}[/-]\d{4})\b")


class IngestConfigError(Exception):
    """Ingest is not configured correctly (missing or unknown owner)."""


def normalize_type(value: Optional[str], fallback_text: Optional[str] = None) -> Optional[str]:
    normalized = (value or "").strip().lower()
    if normalized in TYPE_ALIASES:
        return TYPE_ALIASES[normalized]
    if normalized in CANONICAL_TYPES:
        return normalized

    haystack = (fallback_text or "").lower()
    if REMOTE_RE.search(haystack):
        return "remote"
    if ONSITE_RE.search(haystack):
        return "onsite"
    if HYBRID_RE.search(haystack):
        return "hybrid"
    return None


def normalize_timing(value: Optional[str], fallback_text: Optional[str] = None) -> Optional[str]:
    normalized = (value or "").strip().lower()
    if normalized in TIMING_ALIASES:
        return TIMING_ALIASES[normalized]
    if normalized in CANONICAL_TIMINGS:
        return normalized

    haystack = (fallback_text or "").lower()
    if FULL_TIME_RE.search(haystack):
        return "full_time"
    if PART_TIME_RE.search(haystack) or SHIFT_BASED_RE.search(haystack):
        return "part_time"
    return None


def normalize_tags(tags: Union[List[str], str, None]) -> List[str]:
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    return [tag.strip().lower() for tag in tags if tag.strip()]


def parse_stipend(stipend: Union[int, float, str, None], fallback_text: Optional[str] = None) -> Optional[int]:
    """
    A finite number is taken as is. Otherwise the first number in
    "{stipend} {fallback_text}" wins, with thousands separators removed.
    """
    if isinstance(stipend, (int, float)) and not isinstance(stipend, bool) and math.isfinite(stipend):
        return int(stipend)

    from_value = stipend if isinstance(stipend, str) else ""
    match = STIPEND_RE.search(f"{from_value} {fallback_text or ''}")
    if not match:
        return None
    return int(match.group(1).replace(",", ""))


def _strict_date(text_value: str, month_first: bool) -> Optional[str]:
    first, second, year = (int(part) for part in text_value.split("/"))
    month, day = (first, second) if month_first else (second, first)
    try:
        return datetime(year, month, day).date().isoformat()
    except ValueError:
        return None


def parse_deadline(deadline: Optional[str], fallback_text: Optional[str] = None) -> Optional[str]:
    """
    ISO date for an explicit deadline, else one found in the text:
    "Apply by March 5, 2025" style phrases first, then the first
    dd/dd/yyyy read as MM/DD/YYYY, then as DD/MM/YYYY.
    """
    explicit = parse_date(deadline)
    if explicit:
        return explicit.isoformat()

    haystack = fallback_text or ""
    phrase = DEADLINE_PHRASE_RE.search(haystack)
    if phrase:
        parsed = parse_date(phrase.group(1))
        if parsed:
            return parsed.isoformat()

    numeric = NUMERIC_DATE_RE.search(haystack)
    if numeric:
        normalized = numeric.group(1).replace("-", "/")
        return _strict_date(normalized, month_first=True) or _strict_date(normalized, month_first=False)

    return None


def get_ingest_user_id() -> str:
    """Id of the user that owns ingested rows. Raises IngestConfigError."""
    ingest_user_id = get_settings().internship_ingest_user_id
    if not ingest_user_id:
        raise IngestConfigError("INTERNSHIP_INGEST_USER_ID is not configured")

    with get_db_session() as db:
        owner = db.execute(
            text("SELECT id FROM users WHERE id = :id"),
            {"id": ingest_user_id}
        ).fetchone()

    if not owner:
        raise IngestConfigError("INTERNSHIP_INGEST_USER_ID does not match any user")
    return ingest_user_id


def build_internship_values(record: InternshipIngestRecord, ingest_user_id: str) -> dict:
    """One ingest record -> column values for an internships row."""
    fallback_text = f"{record.title or ''} {record.description or ''} {record.raw_text or ''}"

    return {
        "id": str(uuid.uuid4()),
        "title": record.title.strip(),
        "description": clean_optional(record.description),
        "type": normalize_type(record.type, fallback_text),
        "timing": normalize_timing(record.timing, fallback_text),
        "link": record.link.strip(),
        "stipend": parse_stipend(record.stipend, fallback_text),
        "duration": clean_optional(record.duration),
        "experience": clean_optional(record.experience),
        "location": clean_optional(record.location),
        "deadline": parse_deadline(record.deadline, fallback_text),
        "tags": normalize_tags(record.tags),
        "hiring_organization": record.hiring_organization.strip(),
        "hiring_manager": clean_optional(record.hiring_manager),
        "is_verified": record.is_verified if record.is_verified is not None else False,
        "is_active": record.is_active if record.is_active is not None else True,
        "user_id": ingest_user_id,
    }


def build_internship_insert_values(records: List[InternshipIngestRecord], ingest_user_id: str) -> List[dict]:
    return [build_internship_values(record, ingest_user_id) for record in records]
