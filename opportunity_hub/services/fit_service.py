"""
Fit Score Service

Keyword overlap between what an opportunity asks for (its skills and tags)
and the skills on a user's profile. Case-insensitive exact term matching.
"""

import math
from typing import Dict, Iterable, List, Optional

HIGH_MATCH_THRESHOLD = 80
MEDIUM_MATCH_THRESHOLD = 50


def _unique_lower(values: Iterable[str]) -> List[str]:
    seen = []
    for value in values:
        term = value.lower()
        if term not in seen:
            seen.append(term)
    return seen


def calculate_fit_score(
    opportunity_skills: Optional[List[str]],
    opportunity_tags: Optional[List[str]],
    user_skills: Optional[List[str]]
) -> Dict:
    """
    Returns {"score", "label", "missing_skills"}.

    score is the rounded percentage of key terms the user has; missing
    skills keep the order the opportunity lists them in.
    """
    if user_skills is None:
        return {"score": 0, "label": "No Profile", "missing_skills": []}

    key_terms = _unique_lower(list(opportunity_skills or []) + list(opportunity_tags or []))
    if not key_terms:
        return {"score": 100, "label": "Open", "missing_skills": []}

    owned = {skill.lower() for skill in user_skills}
    missing = [term for term in key_terms if term not in owned]
    matched = len(key_terms) - len(missing)

    # Half rounds up
    score = int(math.floor(matched * 100 / len(key_terms) + 0.5))

    if score >= HIGH_MATCH_THRESHOLD:
        label = "High Match"
    elif score >= MEDIUM_MATCH_THRESHOLD:
        label = "Medium Match"
    else:
        label = "Low Match"

    return {"score": score, "label": label, "missing_skills": missing}
