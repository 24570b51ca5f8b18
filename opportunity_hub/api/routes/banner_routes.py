"""
Banner Routes (promo carousel)

GET /banners - Active banners, lowest priority number first
"""

from typing import List

from fastapi import APIRouter

from opportunity_hub.db.postgres import execute_raw_sql
from opportunity_hub.schemas.schemas import BannerResponse

router = APIRouter(prefix="/banners", tags=["Banners"])

BANNER_COLUMNS = """
    id, title, subtitle, background, image_url, link, priority, is_active, created_at, updated_at
"""


@router.get("", response_model=List[BannerResponse])
async def list_banners():
    rows = execute_raw_sql(
        f"SELECT {BANNER_COLUMNS} FROM banners WHERE is_active = TRUE ORDER BY priority ASC, created_at ASC"
    )
    return [BannerResponse(**r) for r in rows]
