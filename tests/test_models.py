"""Tests for data models."""
from __future__ import annotations

from jlpt_reader.models import (
    ComparativePassages,
    GeneratedProblem,
    LengthClass,
    PassageFormat,
    PracticalPassages,
    Question,
    Selection,
    SinglePassage,
    Topic,
    Genre,
)
from jlpt_reader.validator import validate_structure


def _question(answer=1):
    return {
        "question": "筆者の主張は何か。",
        "options": ["一", "二", "三", "四"],
        "correctAnswer": answer,
        "explanation": "해설",
    }


class TestQuestion:
    def test_to_dict_uses_wire_keys(self):
        q = Question("問い", ["a", "b", "c", "d"], 3, "해설")
        assert q.to_dict() == {
            "question": "問い",
            "options": ["a", "b", "c", "d"],
            "correctAnswer": 3,
            "explanation": "해설",
        }


class TestGeneratedProblemFromDict:
    def test_single_passage(self):
        p = GeneratedProblem.from_dict({"passage": "本文です。", "questions": [_question(2)]})
        assert isinstance(p.passages, SinglePassage)
        assert p.passage_format == PassageFormat.SINGLE
        assert p.questions[0].correct_answer == 2

    def test_comparative_passages(self):
        p = GeneratedProblem.from_dict({
            "passages": {"A": "文章A", "B": "文章B"},
            "questions": [_question()],
        })
        assert isinstance(p.passages, ComparativePassages)
        assert p.passages.a == "文章A"
        assert p.passages.b == "文章B"

    def test_practical_list(self):
        p = GeneratedProblem.from_dict({"passages": ["案内", "通知", "申請書"], "questions": [_question()]})
        assert isinstance(p.passages, PracticalPassages)
        assert p.passages.texts() == ["案内", "通知", "申請書"]

    def test_keyed_documents_without_a_b_are_practical(self):
        p = GeneratedProblem.from_dict({"passages": {"x": "案内", "y": "通知"}, "questions": [_question()]})
        assert p.passage_format == PassageFormat.PRACTICAL
        assert p.passages.texts() == ["案内", "通知"]

    def test_blank_passage_defers_to_passages(self):
        data = {"passage": "   ", "passages": {"A": "本文A", "B": "本文B"}, "questions": [_question()]}
        validate_structure(data)
        p = GeneratedProblem.from_dict(data)
        assert p.passage_format == PassageFormat.COMPARATIVE
        assert p.passages.texts() == ["本文A", "本文B"]

    def test_numeric_string_answer_coerced(self):
        p = GeneratedProblem.from_dict({"passage": "本文", "questions": [_question("4")]})
        assert p.questions[0].correct_answer == 4


class TestGeneratedProblemShape:
    def test_length_sums_all_passages(self):
        p = GeneratedProblem(ComparativePassages("あいう", "えお"), [])
        assert p.passage_length() == 5
        assert p.passage_text() == "あいうえお"

    def test_to_dict_single(self):
        p = GeneratedProblem(SinglePassage("本文"), [Question("q", ["1", "2", "3", "4"], 1, "e")])
        d = p.to_dict()
        assert d["passage"] == "本文"
        assert "passages" not in d
        assert d["questions"][0]["correctAnswer"] == 1

    def test_to_dict_comparative(self):
        d = GeneratedProblem(ComparativePassages("A文", "B文"), []).to_dict()
        assert d["passages"] == {"A": "A文", "B": "B文"}

    def test_to_dict_practical(self):
        d = GeneratedProblem(PracticalPassages(["一", "二"]), []).to_dict()
        assert d["passages"] == ["一", "二"]


class TestSelection:
    def test_passage_format_follows_length_class(self):
        selection = Selection(
            level="N1",
            topic=Topic("人工知能"),
            genre=Genre("論説文"),
            length_class=LengthClass("comparative", "統合理解", "300-400",
                                     passage_format=PassageFormat.COMPARATIVE),
            question_count=2,
            char_range="300-400",
        )
        assert selection.passage_format == PassageFormat.COMPARATIVE
