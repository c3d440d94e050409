from datetime import datetime

import pytest

from availability_engine.core.enums import LessonStatus
from tests._utils.seed import STUDENT_ID, TUTOR_ID, add_lesson, utc

NEW_START = "2030-01-08T14:00:00Z"


def parse(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def url(lesson_id, action=""):
    return f"/api/v1/lessons/{lesson_id}/reschedule" + (f"/{action}" if action else "")


@pytest.fixture
def lesson(db):
    return add_lesson(db, utc(2030, 1, 7, 10), 50)


@pytest.fixture
def pending(client, lesson):
    response = client.post(url(lesson.id), json={"actor_id": STUDENT_ID, "proposed_start_time": NEW_START})
    assert response.status_code == 200
    return response.json()


def test_propose(pending, lesson):
    assert pending["id"] == lesson.id
    assert pending["status"] == "pending_reschedule"
    assert parse(pending["start_time"]) == utc(2030, 1, 7, 10)
    proposal = pending["reschedule_proposal"]
    assert proposal["status"] == "pending"
    assert proposal["proposed_by"] == STUDENT_ID
    assert parse(proposal["proposed_start_time"]) == utc(2030, 1, 8, 14)
    assert parse(proposal["proposed_end_time"]) == utc(2030, 1, 8, 14, 50)


def test_accept(client, lesson, pending):
    response = client.post(url(lesson.id, "accept"), json={"actor_id": TUTOR_ID})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "scheduled"
    assert parse(body["start_time"]) == utc(2030, 1, 8, 14)
    assert body["reschedule_proposal"]["status"] == "accepted"


def test_reject(client, lesson, pending):
    response = client.post(url(lesson.id, "reject"), json={"actor_id": TUTOR_ID})

    assert response.status_code == 200
    assert response.json()["status"] == "scheduled"
    assert response.json()["reschedule_proposal"] is None


def test_counter(client, lesson, pending):
    response = client.post(
        url(lesson.id, "counter"),
        json={
            "actor_id": TUTOR_ID,
            "proposed_start_time": "2030-01-09T09:00:00Z",
            "proposed_end_time": "2030-01-09T09:25:00Z",
        },
    )

    assert response.status_code == 200
    proposal = response.json()["reschedule_proposal"]
    assert proposal["proposed_by"] == TUTOR_ID
    assert parse(proposal["proposed_end_time"]) == utc(2030, 1, 9, 9, 25)


class TestErrors:
    def test_own_proposal_is_forbidden(self, client, lesson, pending):
        response = client.post(url(lesson.id, "accept"), json={"actor_id": STUDENT_ID})

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "OWN_PROPOSAL"

    def test_non_participant_is_forbidden(self, client, lesson):
        response = client.post(url(lesson.id), json={"actor_id": "stranger", "proposed_start_time": NEW_START})
        assert response.status_code == 403

    def test_wrong_state_is_conflict(self, client, lesson):
        response = client.post(url(lesson.id, "accept"), json={"actor_id": TUTOR_ID})

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["code"] == "INVALID_STATE"
        assert detail["details"]["current_status"] == "scheduled"

    def test_double_accept(self, client, lesson, pending):
        assert client.post(url(lesson.id, "accept"), json={"actor_id": TUTOR_ID}).status_code == 200
        assert client.post(url(lesson.id, "accept"), json={"actor_id": TUTOR_ID}).status_code == 409

    def test_booking_conflict(self, client, lesson, db):
        add_lesson(db, utc(2030, 1, 8, 14), 50, student_id="student-2")

        response = client.post(url(lesson.id), json={"actor_id": STUDENT_ID, "proposed_start_time": NEW_START})

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "BOOKING_CONFLICT"

    def test_past_start(self, client, lesson):
        response = client.post(
            url(lesson.id), json={"actor_id": STUDENT_ID, "proposed_start_time": "2030-01-04T10:00:00Z"}
        )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "RESCHEDULE_IN_PAST"

    def test_unknown_lesson(self, client):
        response = client.post(
            url("01HZZZZZZZZZZZZZZZZZZZZZZZ"), json={"actor_id": STUDENT_ID, "proposed_start_time": NEW_START}
        )
        assert response.status_code == 404

    def test_malformed_lesson_id(self, client):
        response = client.post(url("lesson-1"), json={"actor_id": STUDENT_ID, "proposed_start_time": NEW_START})
        assert response.status_code == 422

    @pytest.mark.parametrize(
        "payload",
        [
            {"actor_id": STUDENT_ID},
            {"actor_id": "", "proposed_start_time": NEW_START},
            {"actor_id": STUDENT_ID, "proposed_start_time": NEW_START, "proposed_end_time": NEW_START},
            {"actor_id": STUDENT_ID, "proposed_start_time": NEW_START, "note": "please"},
        ],
    )
    def test_invalid_payload(self, client, lesson, db, payload):
        assert client.post(url(lesson.id), json=payload).status_code == 422
        db.expire_all()
        assert lesson.status == LessonStatus.SCHEDULED.value
