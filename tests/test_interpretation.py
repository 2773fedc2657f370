"""
Tests for readiness classification, career direction and the
interpretation report endpoint.
"""
from unittest.mock import patch

import pytest

from career_profiling.exceptions import DependencyFailure
from career_profiling.models import InterpretedResult, Score
from career_profiling.services.interpretation_service import (
    MULTI_DOMAIN,
    NOT_READY,
    PARTIALLY_READY,
    READY,
    action_plan,
    action_roadmap,
    career_confidence,
    career_direction,
    correct_answers_for,
    interpretation_service,
    readiness_status,
    risk_level,
)
from career_profiling.services.gemini_service import gemini_service
from tests.conftest import submit_section


class TestReadinessRules:

    @pytest.mark.parametrize("percentage,expected", [
        (0, NOT_READY),
        (39.99, NOT_READY),
        (40, PARTIALLY_READY),
        (59.9, PARTIALLY_READY),
        (60, READY),
        (100, READY),
    ])
    def test_readiness_thresholds(self, percentage, expected):
        assert readiness_status(percentage)[0] == expected

    def test_risk_follows_readiness(self):
        assert risk_level(NOT_READY)[0] == "HIGH"
        assert risk_level(PARTIALLY_READY)[0] == "MEDIUM"
        assert risk_level(READY)[0] == "LOW"

    def test_confidence_follows_readiness(self):
        assert career_confidence(NOT_READY)[0] == "LOW"
        assert career_confidence(PARTIALLY_READY)[0] == "MODERATE"
        assert career_confidence(READY)[0] == "HIGH"

    def test_correct_answers_is_floored(self):
        assert correct_answers_for(50.0, 35) == 17
        assert correct_answers_for(100.0, 35) == 35


class TestCareerDirection:

    def test_no_section_scores(self):
        assert career_direction({}, 80)[0] == MULTI_DOMAIN

    def test_low_overall_reports_primary_and_secondary(self):
        direction, _ = career_direction({"section_1": 4.0, "section_3": 3.5, "section_5": 2.0}, 45)

        assert direction == "Technology/Engineering (Primary) + Management/Commerce (Secondary)"

    def test_low_overall_same_domain(self):
        direction, _ = career_direction({"section_1": 4.0, "section_2": 3.9, "section_4": 1.0}, 30)

        assert direction == f"Technology/Engineering (Primary) + {MULTI_DOMAIN} (Secondary)"

    @pytest.mark.parametrize("scores,expected", [
        ({"section_1": 5.0, "section_2": 4.5, "section_3": 2.0}, "Technology / Engineering"),
        ({"section_3": 5.0, "section_2": 4.5, "section_1": 2.0}, "Management / Commerce"),
        ({"section_5": 5.0, "section_4": 4.5, "section_1": 2.0}, "Creative / Design"),
        ({"section_1": 5.0, "section_5": 4.5, "section_2": 2.0}, MULTI_DOMAIN),
    ])
    def test_high_overall_single_domain_when_top_two_agree(self, scores, expected):
        assert career_direction(scores, 75)[0] == expected

    def test_ties_rank_lower_section_first(self):
        direction, reason = career_direction({"section_2": 4.0, "section_1": 4.0, "section_5": 1.0}, 75)

        assert direction == "Technology / Engineering"
        assert reason.startswith("Your strongest area is Logical Reasoning, followed by Numerical Ability")


class TestRoadmap:

    def test_three_phases(self):
        roadmap = action_roadmap(READY, 80)

        assert list(roadmap) == ["phase1", "phase2", "phase3"]
        assert roadmap["phase1"]["duration"] == "0-3 Months"
        assert roadmap["phase3"]["title"] == "Decision"

    def test_action_plan_summarises_phases(self):
        plan = action_plan(action_roadmap(NOT_READY, 20))

        assert len(plan) == 3
        assert plan[0].startswith("Foundation: ")


class TestInterpretationReport:
    """Tests for GET /test/interpretation/{id}"""

    def test_fallback_report(self, client, student_headers, completed_attempt):
        response = client.get(f"/test/interpretation/{completed_attempt}", headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["is_ai_generated"] is False
        assert data["overall_percentage"] == 50.0
        assert data["readiness_status"] == PARTIALLY_READY
        assert data["risk_level"] == "MEDIUM"
        assert data["total_questions"] == 35
        assert data["correct_answers"] == 17
        assert len(data["section_scores"]) == 5
        assert data["section_scores"][0]["section_number"] == 1
        assert set(data["roadmap"]) == {"phase1", "phase2", "phase3"}
        assert data["strengths"]

    def test_ai_narrative_is_used_when_available(self, client, db_session, student_headers, started_attempt, sections):
        narrative = {
            "summary": "A thoughtful student.",
            "strengths": ["Curious"],
            "weaknesses": ["Needs focus"],
            "career_clusters": ["Science"],
            "risk_level": "MEDIUM",
            "readiness_status": "PARTIALLY READY",
            "action_plan": ["Read widely"],
        }
        with patch.object(gemini_service, "generate_interpretation", return_value=narrative):
            for section in sections:
                submit_section(client, student_headers, started_attempt, section.id)
            response = client.get(f"/test/interpretation/{started_attempt}", headers=student_headers)

        data = response.json()
        assert data["is_ai_generated"] is True
        assert data["summary"] == "A thoughtful student."
        assert data["career_clusters"] == ["Science"]

    def test_failed_generation_is_retried_on_read(self, client, db_session, student_headers, started_attempt, sections):
        with patch.object(
            interpretation_service, "generate_and_save", side_effect=DependencyFailure("generator down")
        ):
            for section in sections:
                submit_section(client, student_headers, started_attempt, section.id)
            placeholder = client.get(f"/test/interpretation/{started_attempt}", headers=student_headers)

        assert placeholder.status_code == 200
        assert placeholder.json()["summary"] == "AI interpretation is being generated. Please refresh in a moment."

        report = client.get(f"/test/interpretation/{started_attempt}", headers=student_headers)
        assert report.json()["is_ai_generated"] is False
        db_session.expire_all()
        assert db_session.query(InterpretedResult).count() == 1

    def test_missing_scores_are_recomputed(self, client, db_session, student_headers, completed_attempt):
        db_session.query(Score).delete()
        db_session.commit()

        response = client.get(f"/test/interpretation/{completed_attempt}", headers=student_headers)

        assert response.json()["overall_percentage"] == 50.0

    def test_counsellor_may_read_any_report(self, client, counsellor_headers, completed_attempt):
        response = client.get(f"/test/interpretation/{completed_attempt}", headers=counsellor_headers)

        assert response.status_code == 200

    def test_student_cannot_read_foreign_report(self, client, other_student_headers, completed_attempt):
        response = client.get(f"/test/interpretation/{completed_attempt}", headers=other_student_headers)

        assert response.status_code == 403
        assert response.json()["message"] == "Access denied"

    def test_admin_is_not_allowed(self, client, admin_headers, completed_attempt):
        response = client.get(f"/test/interpretation/{completed_attempt}", headers=admin_headers)

        assert response.status_code == 403

    def test_in_progress_attempt_has_no_report(self, client, student_headers, started_attempt):
        response = client.get(f"/test/interpretation/{started_attempt}", headers=student_headers)

        assert response.status_code == 400
        assert response.json()["error_code"] == "ATTEMPT_NOT_COMPLETED"

    def test_unknown_attempt(self, client, student_headers, question_pool):
        response = client.get("/test/interpretation/4242", headers=student_headers)

        assert response.status_code == 404
