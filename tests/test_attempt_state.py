"""
Tests for answer saving and the resume snapshots (state, progress, status).
"""
from career_profiling.models import Answer
from tests.conftest import fetch_questions, submit_section


class TestSaveAnswer:
    """Tests for POST /test/save-answer"""

    def test_save_answer_upserts(self, client, db_session, student_headers, started_attempt, sections):
        question_id = fetch_questions(client, student_headers, started_attempt, sections[0].id)[0]["question_id"]
        payload = {"attempt_id": started_attempt, "question_id": question_id, "selected_option": "B"}

        first = client.post("/test/save-answer", json=payload, headers=student_headers)
        second = client.post(
            "/test/save-answer", json={**payload, "selected_option": "D"}, headers=student_headers
        )

        assert first.status_code == 200
        assert first.json()["success"] is True
        assert second.json()["answer_id"] == first.json()["answer_id"]
        db_session.expire_all()
        answers = db_session.query(Answer).filter(Answer.attempt_id == started_attempt).all()
        assert [a.answer_text for a in answers] == ["D"]

    def test_missing_fields(self, client, student_headers, started_attempt):
        response = client.post(
            "/test/save-answer", json={"attempt_id": started_attempt}, headers=student_headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "attempt_id, question_id, and selected_option are required"

    def test_unknown_question(self, client, student_headers, started_attempt):
        response = client.post(
            "/test/save-answer",
            json={"attempt_id": started_attempt, "question_id": 99999, "selected_option": "A"},
            headers=student_headers,
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "QUESTION_NOT_FOUND"

    def test_completed_attempt_rejects_answers(self, client, student_headers, completed_attempt, question_pool):
        response = client.post(
            "/test/save-answer",
            json={"attempt_id": completed_attempt, "question_id": question_pool[1][0].id, "selected_option": "A"},
            headers=student_headers,
        )

        assert response.status_code == 404


class TestUpdateState:
    """Tests for POST /test/{id}/update-state"""

    def test_negative_values_are_clamped(self, client, student_headers, started_attempt):
        response = client.post(
            f"/test/{started_attempt}/update-state",
            json={"current_question_index": -3, "remaining_time_seconds": -10},
            headers=student_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "current_question_index": 0,
            "remaining_time_seconds": 0,
        }

    def test_partial_update(self, client, student_headers, started_attempt):
        response = client.post(
            f"/test/{started_attempt}/update-state",
            json={"current_question_index": 4},
            headers=student_headers,
        )

        assert response.json()["current_question_index"] == 4
        assert response.json()["remaining_time_seconds"] == 420


class TestStateSnapshots:
    """Tests for GET /test/{id}/state, /progress and /status"""

    def test_state_points_at_first_incomplete_section(self, client, student_headers, started_attempt, sections):
        data = client.get(f"/test/{started_attempt}/state", headers=student_headers).json()

        assert data["status"] == "IN_PROGRESS"
        assert data["current_section"] == {
            "id": sections[0].id,
            "order_index": 1,
            "name": sections[0].name,
        }
        assert data["current_question_index"] == 0
        assert data["remaining_time_seconds"] == 420
        assert data["is_paused"] is False

    def test_state_after_submit_moves_on(self, client, student_headers, started_attempt, sections):
        submit_section(client, student_headers, started_attempt, sections[0].id)

        data = client.get(f"/test/{started_attempt}/state", headers=student_headers).json()

        assert data["current_section_id"] == sections[1].id

    def test_state_of_completed_attempt(self, client, student_headers, completed_attempt):
        data = client.get(f"/test/{completed_attempt}/state", headers=student_headers).json()

        assert data["status"] == "COMPLETED"
        assert data["completed_at"] is not None
        assert data["current_section"] is None

    def test_progress_reports_first_unanswered(self, client, student_headers, started_attempt, sections):
        questions = fetch_questions(client, student_headers, started_attempt, sections[0].id)
        client.post(
            f"/test/sections/{sections[0].id}/start", json={"attempt_id": started_attempt}, headers=student_headers
        )
        client.post(
            "/test/save-answer",
            json={
                "attempt_id": started_attempt,
                "question_id": questions[0]["question_id"],
                "selected_option": "B",
            },
            headers=student_headers,
        )

        data = client.get(f"/test/{started_attempt}/progress", headers=student_headers).json()

        assert data["current_section"]["order_index"] == 1
        assert data["current_question_index"] == 1
        assert data["answers"] == {str(questions[0]["question_id"]): "B"}
        assert data["is_paused"] is False
        assert data["section_start_time"] is not None

    def test_status_counts(self, client, student_headers, started_attempt, sections):
        submit_section(client, student_headers, started_attempt, sections[0].id)
        fetch_questions(client, student_headers, started_attempt, sections[1].id)

        data = client.get(f"/test/{started_attempt}/status", headers=student_headers).json()

        assert data["total_questions"] == 14
        assert data["answered_questions"] == 7
        assert data["completed_sections"] == [1]
        assert data["current_section"] == 2
        assert data["total_sections"] == 5

    def test_snapshots_hide_foreign_attempts(self, client, other_student_headers, started_attempt):
        for path in ("state", "progress", "status"):
            response = client.get(f"/test/{started_attempt}/{path}", headers=other_student_headers)
            assert response.status_code == 404
