"""
Tests for the option codec and strict boolean column types.
"""
import pytest

from career_profiling.models import Question
from career_profiling.models.types import (
    Option,
    deserialize_options,
    serialize_options,
    to_bool,
)


class TestOptionCodec:

    def test_json_form(self):
        raw = '[{"key": "a", "text": "Strongly Disagree"}, {"key": "B", "text": "Disagree"}]'

        assert deserialize_options(raw) == [
            Option(key="A", text="Strongly Disagree"),
            Option(key="B", text="Disagree"),
        ]

    def test_legacy_comma_separated_form(self):
        raw = "A) Strongly Disagree, B) Disagree, C) Neutral, D) Agree, E) Strongly Agree"

        options = deserialize_options(raw)

        assert [o.key for o in options] == ["A", "B", "C", "D", "E"]
        assert options[4].text == "Strongly Agree"

    def test_legacy_text_with_commas(self):
        options = deserialize_options("A) Yes, always, B) No")

        assert options == [Option(key="A", text="Yes, always"), Option(key="B", text="No")]

    def test_list_of_prefixed_strings(self):
        assert deserialize_options('["A. Cat", "B. Dog"]') == [
            Option(key="A", text="Cat"),
            Option(key="B", text="Dog"),
        ]

    @pytest.mark.parametrize("raw", [None, "", "{}", "not options at all"])
    def test_unusable_values_decode_to_empty(self, raw):
        assert deserialize_options(raw) == []

    def test_serialize_accepts_dicts(self):
        assert serialize_options([{"key": "c", "text": "Neutral"}]) == '[{"key": "C", "text": "Neutral"}]'

    def test_serialize_rejects_other_values(self):
        with pytest.raises(TypeError):
            serialize_options(["A) text"])

    def test_round_trip_through_the_column(self, db_session, sections):
        from career_profiling.models import QuestionType

        question = Question(
            question_text="I enjoy puzzles",
            question_type=QuestionType.LIKERT_SCALE,
            options=[Option(key="A", text="No"), Option(key="B", text="Yes")],
            section_id=sections[0].id,
        )
        db_session.add(question)
        db_session.commit()
        db_session.expire_all()

        stored = db_session.query(Question).one()

        assert stored.options == [Option(key="A", text="No"), Option(key="B", text="Yes")]


class TestToBool:

    @pytest.mark.parametrize("value", [True, 1, "1", "true", "TRUE", " yes ", "t", "on"])
    def test_truthy(self, value):
        assert to_bool(value) is True

    @pytest.mark.parametrize("value", [False, 0, 0.0, "0", "false", "no", "off", ""])
    def test_falsy(self, value):
        assert to_bool(value) is False

    @pytest.mark.parametrize("value", ["maybe", None, [1]])
    def test_rejects_unknown(self, value):
        with pytest.raises(ValueError):
            to_bool(value)
