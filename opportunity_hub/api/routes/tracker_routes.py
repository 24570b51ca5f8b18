"""
Tracker Routes

GET /tracker - Own tracked items and events
POST /tracker - {action, data}: add_item | add_event | sync_items | sync_events
PATCH /tracker - {action: update_status, id, data}: change an item's status
DELETE /tracker?type=item|event&id= - Remove an item (by opp_id) or an event
GET /tracker/reminders - Calendar reminder settings
PATCH /tracker/reminders - Update calendar reminder settings
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError
from sqlalchemy import text

from opportunity_hub.core.auth import get_current_user
from opportunity_hub.db.postgres import get_db_session
from opportunity_hub.schemas.schemas import (
    MessageResponse, ReminderSettings, ReminderSettingsUpdate, TrackerEventIn,
    TrackerEventResponse, TrackerItemIn, TrackerItemResponse, TrackerPatchRequest,
    TrackerPostRequest
)
from opportunity_hub.services import tracker_service
from opportunity_hub.utils.dates import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tracker", tags=["Tracker"])


def _validate(model, data):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors(include_url=False, include_context=False))


@router.get("")
async def get_tracker(user: dict = Depends(get_current_user)):
    items, events = tracker_service.list_tracker(user["id"])
    return {
        "items": [TrackerItemResponse(**i) for i in items],
        "events": [TrackerEventResponse(**e) for e in events],
    }


@router.post("")
async def tracker_action(request: TrackerPostRequest, user: dict = Depends(get_current_user)):
    """
    add_item merges with an existing entry for the same opportunity;
    the sync actions upload a browser's cached tracker and never
    overwrite server data.
    """
    if request.action == "add_item":
        item = _validate(TrackerItemIn, request.data)
        saved, created = tracker_service.add_item(user["id"], item)
        return {"success": True, "item": TrackerItemResponse(**saved), "created": created}

    if request.action == "add_event":
        event = _validate(TrackerEventIn, request.data)
        saved = tracker_service.add_event(user["id"], event)
        return {"success": True, "event": TrackerEventResponse(**saved)}

    if request.action in ("sync_items", "sync_events"):
        if not isinstance(request.data, list):
            raise HTTPException(status_code=400, detail="Invalid data")
        if request.action == "sync_items":
            synced, skipped = tracker_service.sync_items(user["id"], request.data)
        else:
            synced, skipped = tracker_service.sync_events(user["id"], request.data)
        logger.info("Tracker %s for %s: %d synced, %d skipped", request.action, user["id"], synced, skipped)
        return {"success": True, "synced": synced, "skipped": skipped}

    raise HTTPException(status_code=400, detail="Invalid action")


@router.patch("")
async def update_tracker(request: TrackerPatchRequest, user: dict = Depends(get_current_user)):
    if request.action != "update_status":
        raise HTTPException(status_code=400, detail="Invalid action")

    extra = request.data.extra_data
    item = tracker_service.update_status(
        user["id"],
        str(request.id),
        request.data.status,
        notes=extra.notes if extra else None,
        result=extra.result if extra else None,
    )
    if item is None:
        raise HTTPException(status_code=404, detail="Tracker item not found")
    return {"success": True, "item": TrackerItemResponse(**item)}


@router.delete("", response_model=MessageResponse)
async def delete_tracker_entry(
    type: Optional[str] = Query(None, description="item or event"),
    id: Optional[str] = Query(None),
    user: dict = Depends(get_current_user)
):
    if not type or not id:
        raise HTTPException(status_code=400, detail="Missing parameters")
    if type not in ("item", "event"):
        raise HTTPException(status_code=400, detail="type must be item or event")

    tracker_service.delete_entry(user["id"], type, id)
    return MessageResponse(message=f"Tracker {type} deleted")


# ============================================================
# CALENDAR REMINDERS
# ============================================================

REMINDER_COLUMNS = {
    "week_before": "calendar_reminder_week",
    "day_before": "calendar_reminder_day",
    "hour_before": "calendar_reminder_hour",
}


def _load_reminders(db, user_id: str) -> ReminderSettings:
    row = db.execute(
        text("""
            SELECT calendar_reminder_week, calendar_reminder_day, calendar_reminder_hour
            FROM users WHERE id = :id
        """),
        {"id": user_id}
    ).mappings().fetchone()
    return ReminderSettings(**{key: bool(row[column]) for key, column in REMINDER_COLUMNS.items()})


@router.get("/reminders", response_model=ReminderSettings)
async def get_reminders(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        return _load_reminders(db, user["id"])


@router.patch("/reminders", response_model=ReminderSettings)
async def update_reminders(data: ReminderSettingsUpdate, user: dict = Depends(get_current_user)):
    updates = {
        REMINDER_COLUMNS[key]: value
        for key, value in data.model_dump(exclude_none=True).items()
    }
    with get_db_session() as db:
        if updates:
            assignments = ", ".join(f"{column} = :{column}" for column in updates)
            db.execute(
                text(f"UPDATE users SET {assignments}, updated_at = :now WHERE id = :id"),
                {**updates, "now": utc_now(), "id": user["id"]}
            )
        return _load_reminders(db, user["id"])
