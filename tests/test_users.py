import pytest

from opportunity_hub.schemas.schemas import OnboardingRequest
from opportunity_hub.services.onboarding_service import build_onboarding_payload
from tests.conftest import set_user_columns


# ============================================================
# AUTH
# ============================================================

def test_register_login_me(client):
    response = client.post(
        "/api/auth/register", json={"name": "Asha", "email": "Asha@Hub.dev", "password": "longpassword"}
    )
    assert response.status_code == 201
    assert response.json() == {"success": True, "message": "Registered successfully. Please login."}

    login = client.post("/api/auth/login", json={"email": "asha@hub.dev", "password": "longpassword"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).json()
    assert me["email"] == "asha@hub.dev"
    assert me["role"] == "user"


def test_register_duplicate_and_invalid(client, student):
    duplicate = client.post(
        "/api/auth/register", json={"name": "Again", "email": student["email"], "password": "password123"}
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Email already registered"

    short = client.post("/api/auth/register", json={"name": "A", "email": "a@hub.dev", "password": "short"})
    assert short.status_code == 400


def test_login_wrong_password(client, student):
    response = client.post("/api/auth/login", json={"email": student["email"], "password": "wrong-password"})
    assert response.status_code == 401


def test_protected_routes(client, student):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

    set_user_columns(student["id"], is_active=False)
    assert client.get("/api/auth/me", headers=student["headers"]).status_code == 403


def test_is_admin(client, admin, student):
    assert client.get("/api/auth/is-admin").json() == {"is_admin": False, "role": None}
    assert client.get("/api/auth/is-admin", headers=student["headers"]).json() == {"is_admin": False, "role": "user"}
    assert client.get("/api/auth/is-admin", headers=admin["headers"]).json() == {"is_admin": True, "role": "admin"}


# ============================================================
# PROFILE
# ============================================================

def test_profile_round_trip(client, student):
    response = client.put(
        "/api/profile",
        json={
            "name": "  Renamed ",
            "collegeInstitute": "IIT",
            "currentRole": "Student",
            "fieldInterests": ["AI"],
            "skills": ["Python", "  ", "SQL "],
        },
        headers=student["headers"],
    )
    assert response.status_code == 200

    profile = client.get("/api/profile", headers=student["headers"]).json()
    assert profile["name"] == "Renamed"
    assert profile["college_institute"] == "IIT"
    assert profile["current_role"] == "Student"
    assert profile["field_interests"] == ["AI"]
    assert profile["skills"] == ["Python", "SQL"]


def test_profile_name_required(client, student):
    assert client.put("/api/profile", json={"skills": []}, headers=student["headers"]).status_code == 400


# ============================================================
# ONBOARDING
# ============================================================

def test_onboarding_rules_for_students():
    payload = build_onboarding_payload(OnboardingRequest.model_validate({
        "persona": "student",
        "locationType": "city",
        "locationValue": " B ",
        "educationLevel": "Undergraduate",
        "fieldOfStudy": "Engineering",
        "fieldOther": "ignored",
        "opportunityInterests": ["internships", 3],
        "domainPreferences": ["ai"],
        "struggles": "not a list",
    }))

    assert payload["location_type"] == "city"
    assert payload["location_value"] is None
    assert payload["field_other"] is None
    assert payload["opportunity_interests"] == []
    assert payload["domain_preferences"] == ["ai"]
    assert payload["struggles"] == []


def test_onboarding_rules_for_societies():
    payload = build_onboarding_payload(OnboardingRequest(
        persona="society", location_type="country", location_value="Delhi",
        education_level="PG", domain_preferences=["ai"],
    ))
    assert payload["location_type"] is None
    assert payload["location_value"] is None
    assert payload["education_level"] is None
    assert payload["domain_preferences"] == []


def test_onboarding_rejects_unknown_persona():
    with pytest.raises(ValueError, match="Invalid persona"):
        build_onboarding_payload(OnboardingRequest(persona="mentor"))


def test_onboarding_upsert(client, student):
    assert client.get("/api/onboarding", headers=student["headers"]).json() == {"profile": None}

    first = client.post(
        "/api/onboarding",
        json={"persona": "student", "fieldOfStudy": "Other", "fieldOther": "Design", "struggles": ["time"]},
        headers=student["headers"],
    ).json()["profile"]
    assert first["field_other"] == "Design"

    second = client.post(
        "/api/onboarding", json={"persona": "society", "locationType": "state"}, headers=student["headers"]
    ).json()["profile"]
    assert second["id"] == first["id"]
    assert second["persona"] == "society"
    assert second["struggles"] == []

    bad = client.post("/api/onboarding", json={"persona": "alien"}, headers=student["headers"])
    assert bad.status_code == 400


def test_onboarding_survey(client, student):
    assert client.get("/api/onboarding-survey", headers=student["headers"]).json() == {
        "submitted": False, "response": None
    }

    first = client.post(
        "/api/onboarding-survey", json={"source": "reddit", "sourceOther": "ignored"}, headers=student["headers"]
    ).json()
    assert first == {"ok": True, "response": {"source": "reddit", "source_other": None}}

    client.post(
        "/api/onboarding-survey", json={"source": "other", "sourceOther": "  A podcast "}, headers=student["headers"]
    )
    status = client.get("/api/onboarding-survey", headers=student["headers"]).json()
    assert status == {"submitted": True, "response": {"source": "other", "source_other": "A podcast"}}


@pytest.mark.parametrize("body", [
    {"source": "other"},
    {"source": "other", "sourceOther": " x "},
    {"source": "billboard"},
    {"source": "other", "sourceOther": "y" * 121},
])
def test_onboarding_survey_rejects_bad_answers(client, student, body):
    assert client.post("/api/onboarding-survey", json=body, headers=student["headers"]).status_code == 400


def test_onboarding_survey_requires_auth(client):
    assert client.get("/api/onboarding-survey").status_code == 401


# ============================================================
# ADMIN USERS
# ============================================================

def test_admin_lists_and_searches_users(client, admin, make_user):
    make_user(name="Zoya Khan")
    make_user(name="Ravi")

    everyone = client.get("/api/admin/users", headers=admin["headers"]).json()
    assert everyone["pagination"]["total"] == 3

    found = client.get("/api/admin/users", params={"search": "zoya"}, headers=admin["headers"]).json()
    assert [u["name"] for u in found["users"]] == ["Zoya Khan"]


def test_admin_changes_roles(client, admin, student):
    response = client.patch(f"/api/admin/users/{student['id']}", json={"role": "member"}, headers=admin["headers"])
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "member"

    own = client.patch(f"/api/admin/users/{admin['id']}", json={"role": "user"}, headers=admin["headers"])
    assert own.status_code == 400
    assert own.json()["detail"] == "Cannot change your own role"

    invalid = client.patch(f"/api/admin/users/{student['id']}", json={"role": "owner"}, headers=admin["headers"])
    assert invalid.status_code == 400

    missing = client.patch("/api/admin/users/nobody", json={"role": "member"}, headers=admin["headers"])
    assert missing.status_code == 404

    assert client.get("/api/admin/users", headers=student["headers"]).status_code == 403
