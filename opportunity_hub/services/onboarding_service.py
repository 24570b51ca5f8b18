"""
Onboarding Service - cleans wizard answers before they are stored.

Only students answer the full wizard; society (club/community) accounts
keep just their persona and location type. Malformed answers are dropped
rather than rejected, except for the persona itself.
"""

from typing import Any, List

from opportunity_hub.schemas.schemas import OnboardingRequest

PERSONAS = ("student", "society")
LOCATION_TYPES = ("city", "state")


def _string_list(value: Any) -> List[str]:
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return value
    return []


def build_onboarding_payload(answers: OnboardingRequest) -> dict:
    """Raises ValueError("Invalid persona") for anything but student/society."""
    if answers.persona not in PERSONAS:
        raise ValueError("Invalid persona")

    is_student = answers.persona == "student"
    location_value = (answers.location_value or "").strip()

    return {
        "persona": answers.persona,
        "location_type": answers.location_type if answers.location_type in LOCATION_TYPES else None,
        "location_value": location_value if is_student and len(location_value) > 1 else None,
        "education_level": answers.education_level if is_student else None,
        "field_of_study": answers.field_of_study if is_student else None,
        "field_other": (
            answers.field_other if is_student and answers.field_of_study == "Other" else None
        ),
        "opportunity_interests": _string_list(answers.opportunity_interests) if is_student else [],
        "domain_preferences": _string_list(answers.domain_preferences) if is_student else [],
        "struggles": _string_list(answers.struggles) if is_student else [],
    }
