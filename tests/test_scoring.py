"""
Tests for the scoring engine.
"""
import math

import pytest

from career_profiling.models import Answer, Question, QuestionType, Score
from career_profiling.services.scoring_service import scoring_service


def _answer(letter, question_type=QuestionType.LIKERT_SCALE, category=None, question_id=1):
    question = Question(id=question_id, question_type=question_type, category=category)
    answer = Answer(answer_text=letter)
    answer.question = question
    return answer


def _overall(results):
    return next(r["score_value"] for r in results if r["dimension"] == "overall")


class TestAnswerValues:

    @pytest.mark.parametrize("letter,expected", [("A", 1.0), ("b", 2.0), (" C ", 3.0), ("D", 4.0), ("E", 5.0)])
    def test_letters_map_to_ordinals(self, letter, expected):
        question = Question(id=1, question_type=QuestionType.LIKERT_SCALE)

        assert scoring_service.answer_value(question, letter) == expected

    def test_invalid_likert_answer_counts_as_neutral(self):
        question = Question(id=1, question_type=QuestionType.LIKERT_SCALE)

        assert scoring_service.answer_value(question, "Z") == 3.0

    def test_multiple_choice_uses_letter_table(self):
        question = Question(id=1, question_type=QuestionType.MULTIPLE_CHOICE, correct_answer="A")

        # No correctness check: E scores 5 even when A is the key
        assert scoring_service.answer_value(question, "E") == 5.0

    def test_numeric_multiple_choice_answer(self):
        question = Question(id=1, question_type=QuestionType.MULTIPLE_CHOICE)

        assert scoring_service.answer_value(question, "4.5") == 4.5
        assert scoring_service.answer_value(question, "nope") == 0.0

    @pytest.mark.parametrize("text", ["nan", "inf", "-Infinity"])
    def test_non_finite_multiple_choice_answer_scores_zero(self, text):
        question = Question(id=1, question_type=QuestionType.MULTIPLE_CHOICE)

        assert scoring_service.answer_value(question, text) == 0.0

    def test_non_finite_answer_keeps_overall_finite(self):
        answers = [
            _answer("inf", QuestionType.MULTIPLE_CHOICE, question_id=1),
            _answer("C", question_id=2),
        ]

        results = scoring_service.compute(answers)

        assert all(math.isfinite(r["score_value"]) for r in results)


class TestCompute:

    def test_all_neutral_is_fifty_percent(self):
        results = scoring_service.compute([_answer("C", question_id=i) for i in range(7)])

        assert _overall(results) == 50.0

    def test_extremes(self):
        assert _overall(scoring_service.compute([_answer("A")])) == 0.0
        assert _overall(scoring_service.compute([_answer("E")])) == 100.0

    def test_overall_is_clamped(self):
        answer = _answer("0", question_type=QuestionType.MULTIPLE_CHOICE)

        assert _overall(scoring_service.compute([answer])) == 0.0

    def test_dimensions_fall_back_to_category(self):
        results = scoring_service.compute([
            _answer("A", category="grit", question_id=1),
            _answer("E", category="grit", question_id=2),
            _answer("B", question_id=3),
        ])

        dims = [r["dimension"] for r in results]
        assert dims == ["general", "grit", "overall"]
        assert results[1]["score_value"] == 3.0

    def test_overall_averages_every_answer(self):
        # grit: [5, 5, 5], general: [1] -> mean 4 over four answers
        results = scoring_service.compute([
            _answer("E", category="grit", question_id=1),
            _answer("E", category="grit", question_id=2),
            _answer("E", category="grit", question_id=3),
            _answer("A", question_id=4),
        ])

        assert _overall(results) == 75.0

    def test_no_answers_no_scores(self):
        assert scoring_service.compute([]) == []


class TestStoreScores:

    def test_store_scores_rewrites_rows(self, db_session, completed_attempt):
        scoring_service.store_scores(db_session, completed_attempt)
        scoring_service.store_scores(db_session, completed_attempt)
        db_session.commit()

        rows = db_session.query(Score).filter(Score.attempt_id == completed_attempt).all()

        assert len(rows) == 6
        assert scoring_service.get_scores(db_session, completed_attempt)["overall"] == 50.0
