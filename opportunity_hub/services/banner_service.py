"""
Banner Service - default promo banners for a fresh database.
"""

import logging
import uuid

from sqlalchemy import text

from opportunity_hub.db.postgres import get_db_session
from opportunity_hub.utils.dates import utc_now

logger = logging.getLogger(__name__)

DEFAULT_BANNERS = [
    {
        "title": "Boost your hireability by 80% with our expert-led toolkits",
        "subtitle": "Learn exactly what recruiters are looking for.",
        "background": "linear-gradient(135deg, #0b4f8c 0%, #2f8ee6 100%)",
        "priority": 1,
    },
    {
        "title": "Tired of getting ghosted after applying?",
        "subtitle": "See how our ATS-friendly resume templates can help.",
        "background": "linear-gradient(135deg, #d35400 0%, #e67e22 100%)",
        "priority": 2,
    },
    {
        "title": "Ace your next technical interview",
        "subtitle": "Practice with our comprehensive mock interview guide.",
        "background": "linear-gradient(135deg, #16a085 0%, #1abc9c 100%)",
        "priority": 3,
    },
]


def seed_banners(banners=None) -> int:
    """Insert banners whose title is not present yet. Returns how many were added."""
    added = 0
    now = utc_now()
    with get_db_session() as db:
        for banner in banners if banners is not None else DEFAULT_BANNERS:
            exists = db.execute(
                text("SELECT id FROM banners WHERE title = :title"),
                {"title": banner["title"]}
            ).fetchone()
            if exists:
                continue
            db.execute(
                text("""
                    INSERT INTO banners (id, title, subtitle, background, image_url, link, priority,
                        is_active, created_at, updated_at)
                    VALUES (:id, :title, :subtitle, :background, :image_url, :link, :priority,
                        :is_active, :now, :now)
                """),
                {
                    "id": str(uuid.uuid4()),
                    "title": banner["title"],
                    "subtitle": banner.get("subtitle"),
                    "background": banner.get("background"),
                    "image_url": banner.get("image_url"),
                    "link": banner.get("link"),
                    "priority": banner.get("priority", 0),
                    "is_active": banner.get("is_active", True),
                    "now": now,
                }
            )
            added += 1
    logger.info("Seeded %d banner(s)", added)
    return added
