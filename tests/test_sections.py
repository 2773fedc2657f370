"""
Tests for section gating, question assignment and section submission.
"""
from unittest.mock import patch

from career_profiling.models import (
    Answer,
    AttemptQuestionAssignment,
    SectionProgress,
    SectionStatus,
    TestAttempt,
    TestStatus,
)
from career_profiling.services.assignment_service import assignment_service
from career_profiling.services.attempt_service import attempt_service
from career_profiling.utils.datetime_utils import utc_now
from tests.conftest import fetch_questions, submit_section


class TestSectionsOverview:
    """Tests for GET /test/sections"""

    def test_fresh_student_sees_first_section_available(self, client, student_headers, question_pool):
        data = client.get("/test/sections", headers=student_headers).json()

        statuses = [s["status"] for s in data["sections"]]
        assert statuses == ["available", "locked", "locked", "locked", "locked"]
        assert data["current_section"] == 1
        assert data["can_attempt_test"] is True
        assert data["test_attempt_id"] is None
        assert all(s["time_limit"] == 420 for s in data["sections"])

    def test_completed_section_unlocks_next(self, client, student_headers, started_attempt, sections):
        submit_section(client, student_headers, started_attempt, sections[0].id)

        data = client.get(
            "/test/sections", params={"attempt_id": started_attempt}, headers=student_headers
        ).json()

        statuses = [s["status"] for s in data["sections"]]
        assert statuses[:3] == ["completed", "available", "locked"]
        assert data["current_section"] == 2
        assert data["test_attempt_id"] == started_attempt

    def test_question_count_reflects_pool(self, client, student_headers, sections, make_questions):
        make_questions(sections[0], count=10)

        data = client.get("/test/sections", headers=student_headers).json()

        counts = [s["question_count"] for s in data["sections"]]
        # Sections with no questions fall back to the per-section quota
        assert counts == [10, 7, 7, 7, 7]

    def test_completed_test_disables_new_attempt(self, client, student_headers, completed_attempt):
        data = client.get("/test/sections", headers=student_headers).json()

        assert data["can_attempt_test"] is False
        assert data["completed_test_attempt_id"] == completed_attempt


class TestSectionQuestions:
    """Tests for GET /test/sections/{id}/questions"""

    def test_first_access_assigns_seven_questions(self, client, student_headers, started_attempt, sections):
        questions = fetch_questions(client, student_headers, started_attempt, sections[0].id)

        assert len(questions) == 7
        assert [o["key"] for o in questions[0]["options"]] == ["A", "B", "C", "D", "E"]
        assert "correct_answer" not in questions[0]

    def test_assignment_is_stable(self, client, db_session, student_headers, started_attempt, sections, make_questions):
        make_questions(sections[0], count=8)

        first = fetch_questions(client, student_headers, started_attempt, sections[0].id)
        second = fetch_questions(client, student_headers, started_attempt, sections[0].id)

        assert [q["question_id"] for q in first] == [q["question_id"] for q in second]
        db_session.expire_all()
        assert db_session.query(AttemptQuestionAssignment).filter(
            AttemptQuestionAssignment.attempt_id == started_attempt
        ).count() == 7

    def test_locked_section_is_forbidden(self, client, student_headers, started_attempt, sections):
        response = client.get(
            f"/test/sections/{sections[1].id}/questions",
            params={"attempt_id": started_attempt},
            headers=student_headers,
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "SECTION_LOCKED"
        assert response.json()["message"] == f"Please complete {sections[0].name} first."

    def test_locked_section_is_forbidden_via_post(self, client, student_headers, started_attempt, sections):
        response = client.post(
            f"/test/sections/{sections[1].id}/questions",
            params={"attempt_id": started_attempt},
            headers=student_headers,
        )

        assert response.status_code == 403

    def test_small_pool_cannot_be_assigned(self, client, student_headers, sections, make_questions):
        make_questions(sections[0], count=5)
        make_questions(sections[1], count=7)
        attempt_id = client.post("/test/start", headers=student_headers).json()["test_attempt_id"]

        response = client.get(
            f"/test/sections/{sections[0].id}/questions",
            params={"attempt_id": attempt_id},
            headers=student_headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INSUFFICIENT_QUESTIONS"
        assert response.json()["message"] == (
            f"Cannot start section. Minimum 7 questions required in {sections[0].name}."
        )

    def test_unknown_section_is_not_found(self, client, student_headers, started_attempt):
        response = client.get(
            "/test/sections/999/questions",
            params={"attempt_id": started_attempt},
            headers=student_headers,
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "SECTION_NOT_FOUND"


class TestSubmitSection:
    """Tests for POST /test/sections/{id}/submit"""

    def test_submit_advances_to_next_section(self, client, db_session, student_headers, started_attempt, sections):
        response = submit_section(client, student_headers, started_attempt, sections[0].id)

        assert response.status_code == 200
        assert response.json() == {
            "status": "COMPLETED",
            "completed_section": sections[0].id,
            "current_section": 2,
        }
        db_session.expire_all()
        progress = db_session.query(SectionProgress).filter(
            SectionProgress.attempt_id == started_attempt,
            SectionProgress.section_id == sections[0].id,
        ).first()
        assert progress.status == SectionStatus.COMPLETED

    def test_resubmit_keeps_original_answers(self, client, db_session, student_headers, started_attempt, sections):
        submit_section(client, student_headers, started_attempt, sections[0].id, letter="B")

        response = submit_section(client, student_headers, started_attempt, sections[0].id, letter="E")

        assert response.status_code == 200
        assert response.json()["current_section"] == 2
        db_session.expire_all()
        answers = db_session.query(Answer).filter(Answer.attempt_id == started_attempt).all()
        assert len(answers) == 7
        assert {a.answer_text for a in answers} == {"B"}

    def test_last_section_has_no_next(self, client, student_headers, started_attempt, sections):
        for section in sections[:4]:
            submit_section(client, student_headers, started_attempt, section.id)

        response = submit_section(client, student_headers, started_attempt, sections[4].id)

        assert response.status_code == 200
        assert response.json()["current_section"] is None

    def test_answer_count_must_match(self, client, student_headers, started_attempt, sections):
        questions = fetch_questions(client, student_headers, started_attempt, sections[0].id)

        response = client.post(
            f"/test/sections/{sections[0].id}/submit",
            json={
                "attempt_id": started_attempt,
                "section_id": sections[0].id,
                "answers": [
                    {"question_id": q["question_id"], "selected_option": "C"} for q in questions[:6]
                ],
            },
            headers=student_headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "ANSWER_COUNT_MISMATCH"
        assert response.json()["message"] == "Must answer all questions in section. Expected 7, got 6"

    def test_foreign_question_is_rejected(self, client, student_headers, started_attempt, sections, question_pool):
        questions = fetch_questions(client, student_headers, started_attempt, sections[0].id)
        answers = [{"question_id": q["question_id"], "selected_option": "C"} for q in questions]
        answers[-1]["question_id"] = question_pool[2][0].id

        response = client.post(
            f"/test/sections/{sections[0].id}/submit",
            json={"attempt_id": started_attempt, "section_id": sections[0].id, "answers": answers},
            headers=student_headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "FOREIGN_QUESTION"

    def test_duplicate_question_is_rejected(self, client, student_headers, started_attempt, sections):
        questions = fetch_questions(client, student_headers, started_attempt, sections[0].id)
        answers = [{"question_id": questions[0]["question_id"], "selected_option": "C"}] * 7

        response = client.post(
            f"/test/sections/{sections[0].id}/submit",
            json={"attempt_id": started_attempt, "section_id": sections[0].id, "answers": answers},
            headers=student_headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "DUPLICATE_QUESTION"

    def test_section_id_must_match_path(self, client, student_headers, started_attempt, sections):
        response = client.post(
            f"/test/sections/{sections[0].id}/submit",
            json={"attempt_id": started_attempt, "section_id": sections[1].id, "answers": []},
            headers=student_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Section ID mismatch"

    def test_submit_before_assignment(self, client, student_headers, started_attempt, sections):
        response = client.post(
            f"/test/sections/{sections[0].id}/submit",
            json={
                "attempt_id": started_attempt,
                "section_id": sections[0].id,
                "answers": [{"question_id": 1, "selected_option": "C"}],
            },
            headers=student_headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "NO_QUESTIONS_ASSIGNED"

    def test_answer_stored_by_concurrent_request_is_kept(
        self, client, db_session, student_headers, started_attempt, sections
    ):
        questions = fetch_questions(client, student_headers, started_attempt, sections[0].id)
        first_id = questions[0]["question_id"]
        db_session.add(Answer(attempt_id=started_attempt, question_id=first_id, answer_text="A"))
        db_session.commit()

        # The other request's row lands after this one read the stored answers
        with patch.object(attempt_service, "_stored_answer_ids", return_value=set()):
            response = client.post(
                f"/test/sections/{sections[0].id}/submit",
                json={
                    "attempt_id": started_attempt,
                    "section_id": sections[0].id,
                    "answers": [
                        {"question_id": q["question_id"], "selected_option": "C"} for q in questions
                    ],
                },
                headers=student_headers,
            )

        assert response.status_code == 200
        db_session.expire_all()
        stored = {
            a.question_id: a.answer_text
            for a in db_session.query(Answer).filter(Answer.attempt_id == started_attempt).all()
        }
        assert len(stored) == 7
        assert stored[first_id] == "A"
        assert all(stored[q["question_id"]] == "C" for q in questions[1:])


class TestAssignmentPool:
    """Questions seen in the student's previous completed attempt"""

    def _attempts_with_history(self, db_session, student_user, seen_questions):
        student_id = student_user.student_profile.id
        previous = TestAttempt(student_id=student_id, status=TestStatus.COMPLETED, completed_at=utc_now())
        db_session.add(previous)
        db_session.commit()
        db_session.add_all([
            AttemptQuestionAssignment(attempt_id=previous.id, question_id=q.id) for q in seen_questions
        ])
        current = TestAttempt(student_id=student_id, status=TestStatus.IN_PROGRESS)
        db_session.add(current)
        db_session.commit()
        return current

    def test_previous_questions_are_avoided(self, db_session, student_user, sections, make_questions):
        pool = make_questions(sections[0], count=14)
        current = self._attempts_with_history(db_session, student_user, pool[:7])

        questions = assignment_service.get_or_assign(db_session, current, sections[0])

        assert {q.id for q in questions} == {q.id for q in pool[7:]}

    def test_small_fresh_pool_falls_back_to_everything(self, db_session, student_user, sections, make_questions):
        pool = make_questions(sections[0], count=10)
        seen = {q.id for q in pool[:7]}
        current = self._attempts_with_history(db_session, student_user, pool[:7])

        questions = assignment_service.get_or_assign(db_session, current, sections[0])

        chosen = {q.id for q in questions}
        assert len(chosen) == 7
        assert chosen <= {q.id for q in pool}
        # Only three unseen questions exist, so at least four repeats
        assert len(chosen & seen) >= 4
