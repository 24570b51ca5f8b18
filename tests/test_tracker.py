import pytest

from opportunity_hub.schemas.schemas import TrackerItemIn
from opportunity_hub.services.tracker_service import plan_item_merge


def _post(client, user, action, data):
    return client.post("/api/tracker", json={"action": action, "data": data}, headers=user["headers"])


# ============================================================
# MERGE RULES
# ============================================================

def test_draft_promoted_to_applied():
    updates = plan_item_merge({"status": "Draft"}, TrackerItemIn(opp_id="1", status="Applied"))
    assert updates["status"] == "Applied"
    assert updates["applied_at"] is not None


def test_draft_refreshed_with_new_draft_data():
    incoming = TrackerItemIn(opp_id="1", status="Draft", manual_data={"draft_data": {"answer": "v2"}})
    updates = plan_item_merge({"status": "Draft"}, incoming)
    assert updates == {"manual_data": '{"draft_data": {"answer": "v2"}}'}


@pytest.mark.parametrize("existing,incoming", [
    ("Draft", {"status": "Draft"}),
    ("Applied", {"status": "Selected"}),
    ("Applied", {"status": "Draft", "manual_data": {"draft_data": {}}}),
])
def test_other_combinations_leave_item_alone(existing, incoming):
    assert plan_item_merge({"status": existing}, TrackerItemIn(opp_id="1", **incoming)) is None


def test_numeric_opp_id_becomes_string():
    assert TrackerItemIn.model_validate({"oppId": 42, "status": "Draft"}).opp_id == "42"


# ============================================================
# ENDPOINTS
# ============================================================

def test_add_item_then_merge(client, student):
    created = _post(client, student, "add_item", {"oppId": "int-1", "status": "Draft", "kind": "internship"})
    assert created.status_code == 200
    assert created.json()["created"] is True
    assert created.json()["item"]["applied_at"] is None

    promoted = _post(client, student, "add_item", {"oppId": "int-1", "status": "Applied"}).json()
    assert promoted["created"] is False
    assert promoted["item"]["status"] == "Applied"
    assert promoted["item"]["applied_at"] is not None

    unchanged = _post(client, student, "add_item", {"oppId": "int-1", "status": "Rejected"}).json()
    assert unchanged["item"]["status"] == "Applied"


def test_add_item_applied_stamps_applied_at(client, student):
    item = _post(client, student, "add_item", {"oppId": "opp-9", "status": "Applied", "kind": "opportunity"}).json()
    assert item["item"]["applied_at"] is not None
    assert item["item"]["kind"] == "opportunity"


def test_add_item_rejects_unknown_status(client, student):
    response = _post(client, student, "add_item", {"oppId": "x", "status": "Ghosted"})
    assert response.status_code == 400


def test_unknown_action(client, student):
    assert _post(client, student, "rename", {}).status_code == 400


def test_sync_items_never_overwrites(client, student):
    _post(client, student, "add_item", {"oppId": "keep", "status": "Selected", "notes": "server"})

    response = _post(client, student, "sync_items", [
        {"oppId": "keep", "status": "Rejected", "notes": "stale cache"},
        {"oppId": "new-1", "status": "Not Applied", "isManual": True, "manualData": {"company": "Acme"}},
        {"status": "Applied"},
    ])
    assert response.json() == {"success": True, "synced": 1, "skipped": 2}

    items = {i["opp_id"]: i for i in client.get("/api/tracker", headers=student["headers"]).json()["items"]}
    assert items["keep"]["status"] == "Selected"
    assert items["keep"]["notes"] == "server"
    assert items["new-1"]["is_manual"] is True
    assert items["new-1"]["manual_data"] == {"company": "Acme"}


def test_sync_requires_list(client, student):
    assert _post(client, student, "sync_items", {"oppId": "1"}).status_code == 400


def test_events_add_and_sync_dedupe(client, student):
    event = {"title": "OA round", "date": "2030-03-01T10:00:00Z", "type": "deadline"}
    added = _post(client, student, "add_event", event)
    assert added.json()["event"]["title"] == "OA round"

    synced = _post(client, student, "sync_events", [
        {"title": "OA round", "date": "2030-03-01T15:30:00+05:30", "type": "deadline"},
        {"title": "OA round", "date": "2030-03-01T10:00:00Z", "type": "interview"},
        {"title": "", "date": "2030-03-02T10:00:00Z", "type": "deadline"},
    ]).json()
    assert synced == {"success": True, "synced": 1, "skipped": 2}

    events = client.get("/api/tracker", headers=student["headers"]).json()["events"]
    assert len(events) == 2


def test_update_status(client, student):
    _post(client, student, "add_item", {"oppId": "int-2", "status": "Not Applied"})

    response = client.patch(
        "/api/tracker",
        json={
            "action": "update_status",
            "id": "int-2",
            "data": {"status": "Applied", "extraData": {"notes": "sent resume", "result": None}},
        },
        headers=student["headers"],
    )
    item = response.json()["item"]
    assert item["status"] == "Applied"
    assert item["notes"] == "sent resume"
    assert item["applied_at"] is not None

    missing = client.patch(
        "/api/tracker",
        json={"action": "update_status", "id": "nope", "data": {"status": "Selected"}},
        headers=student["headers"],
    )
    assert missing.status_code == 404


def test_delete_entries(client, student):
    _post(client, student, "add_item", {"oppId": "gone", "status": "Draft"})
    event_id = _post(
        client, student, "add_event", {"title": "Call", "date": "2030-01-01T09:00:00Z", "type": "interview"}
    ).json()["event"]["id"]

    assert client.delete("/api/tracker", params={"type": "item", "id": "gone"}, headers=student["headers"]).status_code == 200
    assert client.delete("/api/tracker", params={"type": "event", "id": event_id}, headers=student["headers"]).status_code == 200

    tracker = client.get("/api/tracker", headers=student["headers"]).json()
    assert tracker == {"items": [], "events": []}

    assert client.delete("/api/tracker", params={"type": "item"}, headers=student["headers"]).status_code == 400
    assert client.delete("/api/tracker", params={"type": "task", "id": "1"}, headers=student["headers"]).status_code == 400


def test_tracker_is_per_user(client, student, make_user):
    _post(client, student, "add_item", {"oppId": "mine", "status": "Draft"})
    other = make_user()
    assert client.get("/api/tracker", headers=other["headers"]).json()["items"] == []


def test_reminder_settings(client, student):
    assert client.get("/api/tracker/reminders", headers=student["headers"]).json() == {
        "week_before": True, "day_before": True, "hour_before": True
    }

    updated = client.patch("/api/tracker/reminders", json={"day_before": False}, headers=student["headers"]).json()
    assert updated == {"week_before": True, "day_before": False, "hour_before": True}
