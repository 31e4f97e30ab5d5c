"""
API tests for the class series endpoints.
"""

import pytest
from datetime import date, time
from fastapi.testclient import TestClient
from unittest.mock import patch

from main import app
from core.database import get_db
from models import ClassSession
from shared_types import SeriesStatus
from tests.conftest import (
    BOOTH_ID, STUDENT_ID, TEACHER_ID, create_series, create_session, create_vacation, weekly_availability
)

TODAY = date(2025, 1, 6)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture(autouse=True)
def override_get_db(db_session):
    app.dependency_overrides[get_db] = lambda: db_session
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture(autouse=True)
def fixed_today():
    with patch("services.class_series_service.school_today", return_value=TODAY):
        yield


@pytest.fixture
def available_series(db_session):
    weekly_availability(db_session, TEACHER_ID, [0, 2], time(14, 0), time(17, 0))
    weekly_availability(db_session, STUDENT_ID, [0, 2], time(14, 0), time(17, 0))
    return create_series(db_session)


class TestExtendEndpoint:
    """POST /api/class-series/{series_id}/extend"""

    def test_extend_response_shape(self, client, db_session, available_series):
        create_session(db_session, date(2025, 1, 8), time(15, 0), time(16, 0), booth_id=BOOTH_ID)

        response = client.post(f"/api/class-series/{available_series.id}/extend", json={"months": 1})

        assert response.status_code == 200
        data = response.json()
        assert data["created_count"] == 10
        assert data["skipped_count"] == 0
        assert data["conflict_count"] == 1
        assert len(data["created_ids"]) == 10
        assert data["conflict_details"] == [
            {"date": "2025-01-08", "reasons": ["BOOTH_CONFLICT"], "cancelled": False}
        ]
        assert data["soft_warnings"] == []
        assert data["cancelled_dates"] == []
        assert data["from_date"] == "2025-01-06"
        assert data["to_date"] == "2025-02-06"
        assert data["message"] is None

    def test_extend_defaults_to_one_month(self, client, available_series):
        response = client.post(f"/api/class-series/{available_series.id}/extend", json={})

        assert response.status_code == 200
        assert response.json()["created_count"] == 10

    def test_extend_with_session_actions(self, client, db_session, available_series):
        create_vacation(db_session, date(2025, 1, 13), date(2025, 1, 13))

        response = client.post(
            f"/api/class-series/{available_series.id}/extend",
            json={
                "months": 1,
                "session_actions": [
                    {"date": "2025-01-08", "action": "SKIP"},
                    {"date": "2025/01/15", "action": "USE_ALTERNATIVE",
                     "alternative_start_time": "17:00", "alternative_end_time": "18:00"},
                    {"date": "2025-01-20", "action": "FORCE_CREATE"},
                ],
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["created_count"] == 8
        assert data["skipped_details"] == [
            {"date": "2025-01-13", "reason": "VACATION"},
            {"date": "2025-01-08", "reason": "USER_SKIP"},
        ]
        moved = db_session.query(ClassSession).filter(
            ClassSession.series_id == available_series.id,
            ClassSession.date == date(2025, 1, 15)
        ).one()
        assert (moved.start_time, moved.end_time) == (time(17, 0), time(18, 0))

    def test_extend_unknown_series(self, client):
        response = client.post("/api/class-series/9999/extend", json={"months": 1})

        assert response.status_code == 404
        assert response.json()["detail"] == "Series not found"

    def test_extend_paused_series(self, client, db_session):
        series = create_series(db_session, status=SeriesStatus.PAUSED.value)

        response = client.post(f"/api/class-series/{series.id}/extend", json={"months": 1})

        assert response.status_code == 400
        assert "PAUSED" in response.json()["detail"]

    def test_extend_past_end_date(self, client, db_session):
        series = create_series(db_session, start_date=date(2024, 12, 2), end_date=date(2025, 1, 3))

        response = client.post(f"/api/class-series/{series.id}/extend", json={"months": 1})

        assert response.status_code == 400
        assert response.json()["detail"] == "Series end_date is in the past; nothing to generate"
        db_session.refresh(series)
        assert series.status == SeriesStatus.ENDED.value

    @pytest.mark.parametrize("months", [0, 13])
    def test_extend_months_out_of_range(self, client, available_series, months):
        response = client.post(f"/api/class-series/{available_series.id}/extend", json={"months": months})

        assert response.status_code == 422

    @pytest.mark.parametrize("action", [
        {"date": "2025-01-08", "action": "USE_ALTERNATIVE"},
        {"date": "2025-01-08", "action": "USE_ALTERNATIVE",
         "alternative_start_time": "18:00", "alternative_end_time": "17:00"},
        {"date": "not-a-date", "action": "SKIP"},
        {"date": "2025-01-08", "action": "MOVE"},
    ])
    def test_extend_invalid_session_action(self, client, db_session, available_series, action):
        response = client.post(
            f"/api/class-series/{available_series.id}/extend",
            json={"months": 1, "session_actions": [action]},
        )

        assert response.status_code == 422
        assert db_session.query(ClassSession).count() == 0

    def test_extend_unexpected_error(self, client, available_series):
        with patch(
            "api.class_series.ClassSeriesService.extend_series",
            side_effect=RuntimeError("connection reset")
        ):
            response = client.post(f"/api/class-series/{available_series.id}/extend", json={"months": 1})

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to extend series"


class TestPreviewEndpoint:
    """GET /api/class-series/{series_id}/extend/preview"""

    def test_preview_response_shape(self, client, db_session):
        weekly_availability(db_session, TEACHER_ID, [0], time(14, 0), time(17, 0))
        weekly_availability(db_session, STUDENT_ID, [0, 2], time(14, 0), time(17, 0))
        create_vacation(db_session, date(2025, 1, 20), date(2025, 1, 20))
        series = create_series(db_session)

        response = client.get(f"/api/class-series/{series.id}/extend/preview", params={"months": 1})

        assert response.status_code == 200
        data = response.json()
        assert data["vacation_dates"] == ["2025-01-20"]
        assert data["summary"] == {"total_sessions": 9, "sessions_with_conflicts": 5, "valid_sessions": 4}
        assert data["requires_confirmation"] is True
        assert data["message"] == "Found conflicts on 5 of 9 dates"
        assert data["dates"][0] == {
            "date": "2025-01-08",
            "would_cancel": False,
            "findings": [{
                "reason": "TEACHER_UNAVAILABLE",
                "is_hard": False,
                "teacher_slots": [],
                "student_slots": [{"start_time": "14:00", "end_time": "17:00"}],
            }],
        }
        assert db_session.query(ClassSession).count() == 0

    def test_preview_without_conflicts(self, client, available_series):
        response = client.get(f"/api/class-series/{available_series.id}/extend/preview")

        assert response.status_code == 200
        data = response.json()
        assert data["dates"] == []
        assert data["requires_confirmation"] is False
        assert data["message"] == "No conflicts found"

    def test_preview_months_limit(self, client, available_series):
        response = client.get(f"/api/class-series/{available_series.id}/extend/preview", params={"months": 7})

        assert response.status_code == 422

    def test_preview_unknown_series(self, client):
        response = client.get("/api/class-series/9999/extend/preview")

        assert response.status_code == 404


class TestAdvanceEndpoint:
    """POST /api/class-series/advance"""

    def test_advance_all_active(self, client, db_session, available_series):
        other = create_series(db_session, branch_id=2, teacher_id=TEACHER_ID + 1,
                              student_id=STUDENT_ID + 1, booth_id=BOOTH_ID + 1)

        response = client.post("/api/class-series/advance", params={"lead_days": 14})

        assert response.status_code == 200
        data = response.json()
        assert data["lead_days"] == 14
        assert data["processed"] == 2
        assert data["up_to_date"] == 0
        assert data["failed"] == 0
        assert data["created_confirmed"] == 10
        assert data["created_conflicted"] == 0
        assert data["count"] == 2
        assert {d["series_id"] for d in data["details"]} == {available_series.id, other.id}
        detail = next(d for d in data["details"] if d["series_id"] == available_series.id)
        assert detail == {
            "series_id": available_series.id,
            "from_date": "2025-01-06",
            "to_date": "2025-01-20",
            "attempted": 5,
            "created_confirmed": 5,
            "created_conflicted": 0,
            "skipped": 0,
        }

    def test_advance_branch_filter(self, client, db_session, available_series):
        create_series(db_session, branch_id=2, teacher_id=TEACHER_ID + 1)

        response = client.post("/api/class-series/advance", params={"lead_days": 14, "branch_id": 1})

        assert response.status_code == 200
        assert [d["series_id"] for d in response.json()["details"]] == [available_series.id]

    def test_advance_rejects_non_positive_lead_days(self, client):
        response = client.post("/api/class-series/advance", params={"lead_days": 0})

        assert response.status_code == 422
