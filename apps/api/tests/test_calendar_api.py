"""
Integration tests for Calendar API endpoints

Programs train every day and are anchored to the most recent Sunday, so
today is always GPP week 1 day (weekday + 1) whatever day the suite runs.
"""
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from main import app
from services.schedule_engine import Phase, SkillLevel
from services.schedule_engine.slot_algebra import weekday_index

from fixtures.program_fixtures import EVERY_DAY, anchor_program_to_sunday, find_template, record_session

client = TestClient(app)


def utc_today():
    return datetime.now(timezone.utc).date()


@pytest.fixture
def program(db_session, test_athlete, auth_headers, template_library):
    response = client.post(
        "/v1/programs/intake",
        json={
            "category_id": 1,
            "years_of_experience": 0,
            "preferred_training_days_per_week": 7,
            "selected_training_days": EVERY_DAY,
        },
        headers=auth_headers,
    )
    assert response.status_code == 201
    return anchor_program_to_sunday(db_session, test_athlete.id, today=utc_today())


def today_day():
    return weekday_index(utc_today()) + 1


# =============================================================================
# READS
# =============================================================================

class TestCalendarReads:
    """Test GET /v1/calendar endpoints"""

    def test_requires_auth(self, db_session):
        response = client.get("/v1/calendar/meta")
        assert response.status_code == 401

    def test_no_program(self, db_session, auth_headers):
        response = client.get("/v1/calendar/meta", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_range(self, program, auth_headers):
        start = program.start_date
        response = client.get(
            "/v1/calendar",
            params={"start_date": start.isoformat(), "end_date": (start + timedelta(days=6)).isoformat()},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert len(data["days"]) == 7
        assert [d["workouts"][0]["day"] for d in data["days"]] == [1, 2, 3, 4, 5, 6, 7]
        assert data["program_start_date"] == start.isoformat()
        assert data["unlocked_phases"] == ["GPP"]

        today = next(d for d in data["days"] if d["date"] == utc_today().isoformat())
        assert today["workouts"][0]["is_today"] == (today_day() == 1)

    def test_default_range_is_current_month(self, program, auth_headers):
        response = client.get("/v1/calendar", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert date.fromisoformat(data["start_date"]) == utc_today().replace(day=1)
        assert date.fromisoformat(data["end_date"]).month == utc_today().month

    def test_end_before_start(self, program, auth_headers):
        response = client.get(
            "/v1/calendar",
            params={"start_date": "2024-02-01", "end_date": "2024-01-01"},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_END_DATE"

    def test_full_calendar(self, program, auth_headers):
        response = client.get("/v1/calendar/full", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert date.fromisoformat(data["start_date"]) == program.start_date - timedelta(days=14)
        assert sum(len(d["workouts"]) for d in data["days"]) == 84

    def test_meta(self, program, auth_headers):
        response = client.get("/v1/calendar/meta", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total_workouts"] == 84
        assert data["workouts_per_week"] == 7
        assert data["weeks_per_phase"] == 4
        assert data["skill_level"] == "Novice"
        assert data["is_paused"] is False
        assert data["program_end_date"] == (program.start_date + timedelta(days=83)).isoformat()

    def test_today(self, program, auth_headers):
        response = client.get("/v1/calendar/today", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "scheduled"
        assert data["slot"] == {"phase": "GPP", "week": 1, "day": 1}

    def test_week(self, program, auth_headers):
        response = client.get("/v1/calendar/week", params={"phase": "SPP", "week": 2}, headers=auth_headers)
        assert response.status_code == 200
        workouts = response.json()
        assert len(workouts) == 7
        assert all(w["is_locked"] for w in workouts)
        assert workouts[0]["scheduled_date"] == (program.start_date + timedelta(days=35)).isoformat()

    def test_week_out_of_range(self, program, auth_headers):
        response = client.get("/v1/calendar/week", params={"phase": "GPP", "week": 9}, headers=auth_headers)
        assert response.status_code == 422

    def test_phase_overview(self, program, auth_headers):
        response = client.get("/v1/calendar/phases/SPP", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["is_locked"] is True
        assert [w["label"] for w in data["weeks"]] == ["Introduction", "Build", "Peak", "Deload"]

    def test_unknown_phase(self, program, auth_headers):
        response = client.get("/v1/calendar/phases/XYZ", headers=auth_headers)
        assert response.status_code == 422


# =============================================================================
# CASCADE
# =============================================================================

class TestCascade:
    """Test POST /v1/calendar/cascade"""

    def test_pulls_workout_to_today(self, db_session, program, auth_headers):
        selected = find_template(db_session, Phase.GPP, 2, 1)
        response = client.post("/v1/calendar/cascade", json={"template_id": str(selected.id)}, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["applied"] is True
        assert data["reason"] == "cascade_completed"
        assert data["affected_slot_count"] == 9 - today_day()

        today = utc_today().isoformat()
        calendar = client.get(
            "/v1/calendar", params={"start_date": today, "end_date": today}, headers=auth_headers
        ).json()
        workout = calendar["days"][0]["workouts"][0]
        assert workout["template_id"] == str(selected.id)
        assert workout["is_slot_override"] is True

    def test_already_today(self, db_session, program, auth_headers):
        current = find_template(db_session, Phase.GPP, 1, today_day())
        response = client.post("/v1/calendar/cascade", json={"template_id": str(current.id)}, headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["applied"] is False
        assert data["reason"] == "already_today"
        assert data["affected_slot_count"] == 0

    def test_locked_phase(self, db_session, program, auth_headers):
        selected = find_template(db_session, Phase.SPP, 1, 1)
        response = client.post("/v1/calendar/cascade", json={"template_id": str(selected.id)}, headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["error_code"] == "PHASE_LOCKED"

    def test_completed_workout_blocks_cascade(self, db_session, program, auth_headers):
        record_session(db_session, program, find_template(db_session, Phase.GPP, 1, 7))
        selected = find_template(db_session, Phase.GPP, 2, 1)
        response = client.post("/v1/calendar/cascade", json={"template_id": str(selected.id)}, headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["error_code"] == "COMPLETED_IN_RANGE"

    def test_template_from_other_skill_level(self, db_session, program, auth_headers):
        other = find_template(db_session, Phase.GPP, 2, 1, skill_level=SkillLevel.ADVANCED)
        response = client.post("/v1/calendar/cascade", json={"template_id": str(other.id)}, headers=auth_headers)
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_TEMPLATE_ID"


# =============================================================================
# SWAP / MOVE / RESET
# =============================================================================

def slot(phase, week, day):
    return {"phase": phase, "week": week, "day": day}


class TestSwapAndMove:
    """Test POST /v1/calendar/swap, /move and /phases/{phase}/reset"""

    def test_swap(self, db_session, program, auth_headers):
        response = client.post(
            "/v1/calendar/swap",
            json={"source": slot("GPP", 2, 1), "target": slot("GPP", 2, 3), "reason": "Short on time"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["success"] is True

        week = client.get("/v1/calendar/week", params={"phase": "GPP", "week": 2}, headers=auth_headers).json()
        assert week[0]["template_id"] == str(find_template(db_session, Phase.GPP, 2, 3).id)
        assert week[0]["is_slot_override"] is True

    def test_swap_across_weeks(self, program, auth_headers):
        response = client.post(
            "/v1/calendar/swap",
            json={"source": slot("GPP", 1, 1), "target": slot("GPP", 2, 1)},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_WEEK"

    def test_swap_locked_phase(self, program, auth_headers):
        response = client.post(
            "/v1/calendar/swap",
            json={"source": slot("SPP", 1, 1), "target": slot("SPP", 1, 2)},
            headers=auth_headers,
        )
        assert response.status_code == 409

    def test_swap_rejects_bad_slot(self, program, auth_headers):
        response = client.post(
            "/v1/calendar/swap",
            json={"source": slot("GPP", 1, 0), "target": slot("GPP", 1, 2)},
            headers=auth_headers,
        )
        assert response.status_code == 422

    def test_move_onto_occupied_date(self, program, auth_headers):
        week_two = program.start_date + timedelta(days=7)
        response = client.post(
            "/v1/calendar/move",
            json={"source": slot("GPP", 2, 1), "target_date": (week_two + timedelta(days=1)).isoformat()},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["applied"] is True
        assert data["displaced_slot"] == slot("GPP", 2, 2)
        assert data["displaced_to"] == week_two.isoformat()

    def test_move_before_start(self, program, auth_headers):
        response = client.post(
            "/v1/calendar/move",
            json={"source": slot("GPP", 2, 1), "target_date": (program.start_date - timedelta(days=1)).isoformat()},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_TARGET_DATE"

    def test_reset_phase(self, program, auth_headers):
        client.post(
            "/v1/calendar/swap",
            json={"source": slot("GPP", 3, 1), "target": slot("GPP", 3, 2)},
            headers=auth_headers,
        )
        response = client.post("/v1/calendar/phases/GPP/reset", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["removed_overrides"] == 2

        overview = client.get("/v1/calendar/phases/GPP", headers=auth_headers).json()
        assert overview["override_count"] == 0


# =============================================================================
# TODAY FOCUS
# =============================================================================

class TestTodayFocus:
    """Test POST/DELETE /v1/calendar/today-focus"""

    def test_set_and_clear(self, db_session, program, auth_headers):
        focus = find_template(db_session, Phase.GPP, 3, 2)
        response = client.post("/v1/calendar/today-focus", json={"template_id": str(focus.id)}, headers=auth_headers)
        assert response.status_code == 200

        today = client.get("/v1/calendar/today", headers=auth_headers).json()
        assert today["source"] == "focus"
        assert today["template_id"] == str(focus.id)
        assert today["is_focus_override"] is True

        response = client.delete("/v1/calendar/today-focus", headers=auth_headers)
        assert response.json()["cleared"] is True
        assert client.get("/v1/calendar/today", headers=auth_headers).json()["source"] == "scheduled"

    def test_unknown_template(self, program, auth_headers):
        response = client.post("/v1/calendar/today-focus", json={"template_id": str(uuid4())}, headers=auth_headers)
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_TEMPLATE_ID"
