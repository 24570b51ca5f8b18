import pytest

from opportunity_hub.schemas.schemas import InternshipIngestRecord
from opportunity_hub.services.ingest_service import (
    build_internship_values, normalize_tags, normalize_timing, normalize_type,
    parse_deadline, parse_stipend
)


@pytest.mark.parametrize("value,fallback,expected", [
    ("Work-From-Home", "", "remote"),
    ("wfh", "", "remote"),
    ("in_office", "", "onsite"),
    ("On-Site", "", "onsite"),
    ("HYBRID", "", "hybrid"),
    (None, "Great office culture in Pune", "onsite"),
    (None, "Fully remote team", "remote"),
    (None, "Hybrid setup, 2 days a week", "hybrid"),
    ("contract", "nothing useful here", None),
])
def test_normalize_type(value, fallback, expected):
    assert normalize_type(value, fallback) == expected


def test_normalize_type_prefers_remote_over_office_in_text():
    assert normalize_type(None, "Remote or office, your choice") == "remote"


@pytest.mark.parametrize("value,fallback,expected", [
    ("Full Time", "", "full_time"),
    ("part_time", "", "part_time"),
    ("shift-based", "", "part_time"),
    (None, "This is a part-time gig", "part_time"),
    (None, "Looking for a fulltime intern", "full_time"),
    (None, "Shift based support role", "part_time"),
    ("flexible", "no hints", None),
])
def test_normalize_timing(value, fallback, expected):
    assert normalize_timing(value, fallback) == expected


def test_parse_stipend_numbers_pass_through():
    assert parse_stipend(15000) == 15000
    assert parse_stipend(12.7) == 12


def test_parse_stipend_from_text():
    assert parse_stipend("Rs. 15,000 /month") == 15000
    assert parse_stipend(None, "Stipend: ₹ 8,000 per month") == 8000
    assert parse_stipend("INR 20000 pm") == 20000


def test_parse_stipend_without_numbers():
    assert parse_stipend("unpaid", "no amount mentioned") is None
    assert parse_stipend(float("nan"), "none") is None


def test_parse_deadline_explicit():
    assert parse_deadline("2025-03-05") == "2025-03-05"
    assert parse_deadline("March 5, 2025") == "2025-03-05"
    assert parse_deadline("Sept 30, 2025") == "2025-09-30"
    assert parse_deadline("March 5, 2025 11:59 PM") == "2025-03-05"


def test_parse_deadline_phrase_in_text():
    assert parse_deadline(None, "Apply by March 5, 2025 to be considered") == "2025-03-05"
    assert parse_deadline("soon", "Deadline: Jan 10, 2026") == "2026-01-10"
    assert parse_deadline(None, "Apply by Sept 30, 2025") == "2025-09-30"


def test_parse_deadline_numeric_month_first_then_day_first():
    assert parse_deadline(None, "closes 04/05/2025") == "2025-04-05"
    assert parse_deadline(None, "Last date 13/04/2025") == "2025-04-13"
    assert parse_deadline(None, "ends 31-12-2025") == "2025-12-31"


def test_parse_deadline_missing():
    assert parse_deadline("not a date", "nothing to see") is None
    assert parse_deadline(None, "99/99/2025") is None


def test_normalize_tags():
    assert normalize_tags("Python, , SQL ") == ["python", "sql"]
    assert normalize_tags(["  React ", "", "Node"]) == ["react", "node"]
    assert normalize_tags(None) == []


def test_build_internship_values_uses_fallback_text():
    record = InternshipIngestRecord.model_validate({
        "title": "  Backend Intern ",
        "hiringOrganization": "Acme",
        "link": "https://acme.dev/jobs/1",
        "description": "   ",
        "rawText": "Work from home, part-time. Stipend Rs 10,000/month. Apply by April 1, 2026",
        "tags": "Python, FastAPI",
    })

    values = build_internship_values(record, "owner-1")

    assert values["title"] == "Backend Intern"
    assert values["description"] is None
    assert values["type"] == "remote"
    assert values["timing"] == "part_time"
    assert values["stipend"] == 10000
    assert values["deadline"] == "2026-04-01"
    assert values["tags"] == ["python", "fastapi"]
    assert values["is_verified"] is False
    assert values["is_active"] is True
    assert values["user_id"] == "owner-1"


def test_build_internship_values_explicit_fields_win():
    record = InternshipIngestRecord(
        title="Design Intern",
        hiring_organization="Studio",
        link="https://studio.dev",
        type="in-office",
        timing="full-time",
        stipend=5000,
        is_verified=True,
        is_active=False,
        raw_text="remote part-time 9000",
    )

    values = build_internship_values(record, "owner-1")

    assert values["type"] == "onsite"
    assert values["timing"] == "full_time"
    assert values["stipend"] == 5000
    assert values["is_verified"] is True
    assert values["is_active"] is False
