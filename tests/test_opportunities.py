from datetime import timedelta

from opportunity_hub.utils.dates import utc_now


def _opportunity(client, user, **overrides):
    body = {"title": "Build Weekend", "description": "48 hour hackathon", "tags": ["AI", "Web"]}
    body.update(overrides)
    response = client.post("/api/opportunities", json=body, headers=user["headers"])
    assert response.status_code == 201, response.text
    return response.json()["data"]


# ============================================================
# CRUD & LISTING
# ============================================================

def test_member_post_is_visible(client, member, student):
    created = _opportunity(client, member, type="grant")
    assert created["is_active"] is True
    assert created["user"]["name"] == "Member"

    listing = client.get("/api/opportunities", headers=student["headers"]).json()
    assert [o["id"] for o in listing["opportunities"]] == [created["id"]]


def test_pending_post_visible_to_owner_only(client, student, make_user):
    created = _opportunity(client, student)
    stranger = make_user()

    assert client.get(f"/api/opportunities/{created['id']}", headers=student["headers"]).status_code == 200
    assert client.get(f"/api/opportunities/{created['id']}", headers=stranger["headers"]).status_code == 404
    assert client.get("/api/opportunities", headers=stranger["headers"]).json()["opportunities"] == []


def test_future_publish_time_hides_post(client, member, student, admin):
    later = (utc_now() + timedelta(days=2)).isoformat()
    scheduled = _opportunity(client, member, title="Scheduled", publishAt=later)
    _opportunity(client, member, title="Live now")

    student_view = client.get("/api/opportunities", headers=student["headers"]).json()
    assert [o["title"] for o in student_view["opportunities"]] == ["Live now"]

    admin_view = client.get("/api/opportunities", headers=admin["headers"]).json()
    assert scheduled["id"] in [o["id"] for o in admin_view["opportunities"]]


def test_invalid_publish_at_is_400(client, member):
    response = client.post(
        "/api/opportunities",
        json={"title": "x", "description": "y", "publishAt": "next tuesday"},
        headers=member["headers"],
    )
    assert response.status_code == 400


def test_list_filters_and_limit_clamp(client, member):
    _opportunity(client, member, title="Grant One", type="grant", tags=["Climate"])
    _opportunity(client, member, title="Hack One", type="hackathon", tags=["AI"])

    grants = client.get("/api/opportunities", params={"types": "grant"}, headers=member["headers"]).json()
    assert [o["title"] for o in grants["opportunities"]] == ["Grant One"]

    tagged = client.get("/api/opportunities", params={"tags": "ai"}, headers=member["headers"]).json()
    assert [o["title"] for o in tagged["opportunities"]] == ["Hack One"]

    clamped = client.get("/api/opportunities", params={"limit": 500}, headers=member["headers"]).json()
    assert clamped["pagination"]["limit"] == 50

    assert client.get("/api/opportunities").status_code == 401


def test_owner_updates_and_clears_dates(client, member, make_user):
    created = _opportunity(client, member, endDate="2030-05-01")

    response = client.put(
        f"/api/opportunities/{created['id']}",
        json={"title": "Renamed", "endDate": ""},
        headers=member["headers"],
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Renamed"
    assert response.json()["end_date"] is None

    other = make_user(role="member")
    forbidden = client.put(f"/api/opportunities/{created['id']}", json={"title": "Mine"}, headers=other["headers"])
    assert forbidden.status_code == 403


def test_delete_by_owner_or_admin(client, member, admin, make_user):
    first = _opportunity(client, member)
    second = _opportunity(client, member)
    other = make_user()

    assert client.delete(f"/api/opportunities/{first['id']}", headers=other["headers"]).status_code == 403

    response = client.delete(f"/api/opportunities/{first['id']}", headers=member["headers"])
    assert response.json() == {"success": True, "message": "Opportunity deleted successfully"}
    assert client.get(f"/api/opportunities/{first['id']}", headers=member["headers"]).status_code == 404

    assert client.delete(f"/api/opportunities/{second['id']}", headers=admin["headers"]).status_code == 200


# ============================================================
# UPVOTES & COMMENTS
# ============================================================

def test_upvote_toggles(client, member, student):
    created = _opportunity(client, member)
    url = f"/api/opportunities/{created['id']}/upvote"

    assert client.post(url, headers=student["headers"]).json() == {"count": 1, "user_has_upvoted": True}
    assert client.post(url, headers=member["headers"]).json()["count"] == 2
    assert client.post(url, headers=student["headers"]).json() == {"count": 1, "user_has_upvoted": False}

    assert client.get(url, headers=member["headers"]).json() == {"count": 1, "user_has_upvoted": True}
    assert client.get(url).json() == {"count": 1, "user_has_upvoted": False}


def test_comments_are_sanitized(client, member, student):
    created = _opportunity(client, member)
    url = f"/api/opportunities/{created['id']}/comments"

    response = client.post(
        url, json={"content": "  <b>Great</b> event<script>alert(1)</script>"}, headers=student["headers"]
    )
    assert response.status_code == 201
    assert response.json()["comment"]["content"] == "Great event"

    empty = client.post(url, json={"content": "<script>x</script>"}, headers=student["headers"])
    assert empty.status_code == 400

    too_long = client.post(url, json={"content": "x" * 1001}, headers=student["headers"])
    assert too_long.status_code == 400

    comments = client.get(url).json()["comments"]
    assert len(comments) == 1
    assert comments[0]["user"]["name"] == "Student"


def test_comment_delete_rules(client, member, student, admin):
    created = _opportunity(client, member)
    url = f"/api/opportunities/{created['id']}/comments"
    first = client.post(url, json={"content": "one"}, headers=student["headers"]).json()["comment"]
    second = client.post(url, json={"content": "two"}, headers=student["headers"]).json()["comment"]

    assert client.delete(f"{url}/{first['id']}", headers=member["headers"]).status_code == 403
    assert client.delete(f"{url}/{first['id']}", headers=student["headers"]).status_code == 200
    assert client.delete(f"{url}/{second['id']}", headers=admin["headers"]).status_code == 200
    assert client.delete(f"{url}/{second['id']}", headers=admin["headers"]).status_code == 404


# ============================================================
# MODERATION
# ============================================================

def test_admin_moderation_messages(client, admin, student):
    first = _opportunity(client, student)
    second = _opportunity(client, student)

    pending = client.get("/api/admin/opportunities", params={"limit": 0}, headers=admin["headers"]).json()
    assert pending["pagination"]["limit"] == 1
    assert pending["pagination"]["total"] == 2

    approved = client.patch(
        f"/api/admin/opportunities/{first['id']}", json={"action": "approve"}, headers=admin["headers"]
    ).json()
    assert approved["message"] == "Opportunity approved successfully"
    assert approved["data"]["is_active"] is True

    rejected = client.patch(
        f"/api/admin/opportunities/{second['id']}", json={"action": "reject"}, headers=admin["headers"]
    ).json()
    assert rejected["message"] == "Opportunity rejected successfully"

    bad_action = client.patch(
        f"/api/admin/opportunities/{second['id']}", json={"action": "maybe"}, headers=admin["headers"]
    )
    assert bad_action.status_code == 400


# ============================================================
# BOOKMARKS
# ============================================================

def test_bookmarks_grouped_by_deadline(client, member, student):
    today = utc_now().date()
    soon = _opportunity(client, member, title="Soon", endDate=(today + timedelta(days=3)).isoformat())
    past = _opportunity(client, member, title="Past", endDate=(today - timedelta(days=3)).isoformat())
    open_ended = _opportunity(client, member, title="Open")

    for opportunity in (soon, past, open_ended):
        response = client.post("/api/bookmarks", json={"opportunityId": opportunity["id"]}, headers=student["headers"])
        assert response.status_code == 201

    again = client.post("/api/bookmarks", json={"opportunity_id": soon["id"]}, headers=student["headers"])
    assert again.json()["message"] == "Already bookmarked"

    grouped = client.get("/api/bookmarks", headers=student["headers"]).json()
    assert [b["opportunity"]["title"] for b in grouped["upcoming"]] == ["Soon"]
    assert grouped["upcoming"][0]["days_left"] == 3
    assert [b["opportunity"]["title"] for b in grouped["closed"]] == ["Past"]
    assert [b["opportunity"]["title"] for b in grouped["uncategorized"]] == ["Open"]


def test_bookmark_month_dates(client, member, student):
    for end in ("2030-05-20", "2030-05-02", "2030-05-20", "2030-06-01"):
        created = _opportunity(client, member, endDate=end)
        client.post("/api/bookmarks", json={"opportunityId": created["id"]}, headers=student["headers"])

    response = client.get("/api/bookmarks", params={"month": "2030-05"}, headers=student["headers"])
    assert response.json()["dates"] == ["2030-05-02", "2030-05-20"]

    assert client.get("/api/bookmarks", params={"month": "2030-13"}, headers=student["headers"]).status_code == 400


def test_bookmark_status_and_remove(client, member, student):
    created = _opportunity(client, member)
    status_url = "/api/bookmarks/status"

    assert client.get(status_url, params={"opportunity_id": created["id"]}, headers=student["headers"]).json() == {
        "bookmarked": False
    }
    client.post("/api/bookmarks", json={"opportunityId": created["id"]}, headers=student["headers"])
    assert client.get(status_url, params={"opportunity_id": created["id"]}, headers=student["headers"]).json() == {
        "bookmarked": True
    }

    assert client.delete(f"/api/bookmarks/{created['id']}", headers=student["headers"]).status_code == 200
    assert client.delete(f"/api/bookmarks/{created['id']}", headers=student["headers"]).status_code == 404


def test_bookmark_unknown_opportunity(client, student):
    response = client.post("/api/bookmarks", json={"opportunityId": "missing"}, headers=student["headers"])
    assert response.status_code == 404
