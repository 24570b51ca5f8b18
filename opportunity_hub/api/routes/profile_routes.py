"""
Profile & Onboarding Routes

GET /profile - Get own profile
PUT /profile - Update own profile
GET /onboarding - Get onboarding answers (null until submitted)
POST /onboarding - Submit or resubmit onboarding answers
GET /onboarding-survey - Whether the "how did you hear about us" survey was answered
POST /onboarding-survey - Submit or resubmit the survey answer
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text

from opportunity_hub.core.auth import get_current_user
from opportunity_hub.db.postgres import get_db_session
from opportunity_hub.schemas.schemas import (
    OnboardingProfileResponse, OnboardingRequest, OnboardingSurveyRequest, OnboardingSurveyResponse,
    ProfileResponse, ProfileUpdate, SurveySource
)
from opportunity_hub.services.onboarding_service import build_onboarding_payload
from opportunity_hub.utils.dates import utc_now
from opportunity_hub.utils.rows import dump_list, load_list

router = APIRouter(tags=["Profile"])

PROFILE_COLUMNS = """
    id, name, email, image, college_institute, contact_number,
    current_position, field_interests, opportunity_interests, skills
"""

ONBOARDING_COLUMNS = """
    id, persona, location_type, location_value, education_level, field_of_study,
    field_other, opportunity_interests, domain_preferences, struggles, created_at, updated_at
"""


def _profile_from_row(row) -> ProfileResponse:
    return ProfileResponse(
        id=row["id"], name=row["name"], email=row["email"], image=row["image"],
        college_institute=row["college_institute"], contact_number=row["contact_number"],
        current_role=row["current_position"],
        field_interests=load_list(row["field_interests"]),
        opportunity_interests=load_list(row["opportunity_interests"]),
        skills=load_list(row["skills"]),
    )


def _onboarding_from_row(row) -> OnboardingProfileResponse:
    data = dict(row)
    for column in ("opportunity_interests", "domain_preferences", "struggles"):
        data[column] = load_list(data[column])
    return OnboardingProfileResponse(**data)


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = db.execute(
            text(f"SELECT {PROFILE_COLUMNS} FROM users WHERE id = :id"),
            {"id": user["id"]}
        ).mappings().fetchone()

    if not row:
        raise HTTPException(status_code=404, detail="User not found")
    return _profile_from_row(row)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(data: ProfileUpdate, user: dict = Depends(get_current_user)):
    """Replace the editable profile fields. Skills feed the fit score."""
    with get_db_session() as db:
        db.execute(
            text("""
                UPDATE users SET name = :name, image = :image, college_institute = :college,
                    contact_number = :contact, current_position = :current_role,
                    field_interests = :field_interests, opportunity_interests = :opportunity_interests,
                    skills = :skills, updated_at = :now
                WHERE id = :id
            """),
            {
                "id": user["id"],
                "name": data.name.strip(),
                "image": data.image,
                "college": data.college_institute,
                "contact": data.contact_number,
                "current_role": data.current_role,
                "field_interests": dump_list(data.field_interests),
                "opportunity_interests": dump_list(data.opportunity_interests),
                "skills": dump_list(s.strip() for s in data.skills if s.strip()),
                "now": utc_now(),
            }
        )
        row = db.execute(
            text(f"SELECT {PROFILE_COLUMNS} FROM users WHERE id = :id"),
            {"id": user["id"]}
        ).mappings().fetchone()

    return _profile_from_row(row)


@router.get("/onboarding")
async def get_onboarding(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = db.execute(
            text(f"SELECT {ONBOARDING_COLUMNS} FROM user_onboarding_profiles WHERE user_id = :uid"),
            {"uid": user["id"]}
        ).mappings().fetchone()

    return {"profile": _onboarding_from_row(row) if row else None}


@router.post("/onboarding")
async def save_onboarding(answers: OnboardingRequest, user: dict = Depends(get_current_user)):
    """Upsert: one onboarding profile per user."""
    try:
        payload = build_onboarding_payload(answers)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    now = utc_now()
    params = {
        **payload,
        "opportunity_interests": dump_list(payload["opportunity_interests"]),
        "domain_preferences": dump_list(payload["domain_preferences"]),
        "struggles": dump_list(payload["struggles"]),
        "id": str(uuid.uuid4()),
        "uid": user["id"],
        "now": now,
    }

    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO user_onboarding_profiles (id, user_id, persona, location_type, location_value,
                    education_level, field_of_study, field_other, opportunity_interests,
                    domain_preferences, struggles, created_at, updated_at)
                VALUES (:id, :uid, :persona, :location_type, :location_value, :education_level,
                    :field_of_study, :field_other, :opportunity_interests, :domain_preferences,
                    :struggles, :now, :now)
                ON CONFLICT (user_id) DO UPDATE SET
                    persona = EXCLUDED.persona,
                    location_type = EXCLUDED.location_type,
                    location_value = EXCLUDED.location_value,
                    education_level = EXCLUDED.education_level,
                    field_of_study = EXCLUDED.field_of_study,
                    field_other = EXCLUDED.field_other,
                    opportunity_interests = EXCLUDED.opportunity_interests,
                    domain_preferences = EXCLUDED.domain_preferences,
                    struggles = EXCLUDED.struggles,
                    updated_at = EXCLUDED.updated_at
            """),
            params
        )
        row = db.execute(
            text(f"SELECT {ONBOARDING_COLUMNS} FROM user_onboarding_profiles WHERE user_id = :uid"),
            {"uid": user["id"]}
        ).mappings().fetchone()

    return {"profile": _onboarding_from_row(row)}


def _fetch_survey(db, user_id: str):
    return db.execute(
        text("SELECT source, source_other FROM onboarding_survey_responses WHERE user_id = :uid"),
        {"uid": user_id}
    ).mappings().fetchone()


@router.get("/onboarding-survey")
async def get_onboarding_survey(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = _fetch_survey(db, user["id"])

    return {
        "submitted": row is not None,
        "response": OnboardingSurveyResponse(**row) if row else None,
    }


@router.post("/onboarding-survey")
async def save_onboarding_survey(data: OnboardingSurveyRequest, user: dict = Depends(get_current_user)):
    """Upsert. The free-text answer is only kept for source "other"."""
    source_other = None
    if data.source == SurveySource.other and data.source_other:
        source_other = data.source_other.strip()[:120]

    now = utc_now()
    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO onboarding_survey_responses (id, user_id, source, source_other, created_at, updated_at)
                VALUES (:id, :uid, :source, :source_other, :now, :now)
                ON CONFLICT (user_id) DO UPDATE SET
                    source = EXCLUDED.source,
                    source_other = EXCLUDED.source_other,
                    updated_at = EXCLUDED.updated_at
            """),
            {
                "id": str(uuid.uuid4()), "uid": user["id"], "source": data.source.value,
                "source_other": source_other, "now": now
            }
        )
        row = _fetch_survey(db, user["id"])

    return {"ok": True, "response": OnboardingSurveyResponse(**row)}
