from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class Topic:
    name: str
    description: str = ""
    keywords: list[str] = field(default_factory=list)
    cultural_context: str | None = None
    controversy_level: str | None = None
    applicable_levels: set[str] = field(default_factory=set)
    category_key: str = ""


@dataclass
class TextStructure:
    basic_flow: str = ""
    variation_patterns: list[str] = field(default_factory=list)


@dataclass
class LengthAdaptation:
    focus: str = ""
    structure: str = ""
    question_emphasis: str = ""


@dataclass
class Genre:
    label: str
    type: str = ""
    characteristics: list[str] = field(default_factory=list)
    question_types: dict[str, str] = field(default_factory=dict)
    vocabulary_focus: str | None = None
    grammar_style: str | None = None
    text_structure: TextStructure | None = None
    length_adaptations: dict[str, LengthAdaptation] = field(default_factory=dict)
    instructions: str | None = None


@dataclass
class Subtype:
    key: str
    label: str
    description: str = ""
    question_focus: str = ""
    vocabulary_level: str = ""
    question_count: int | None = None
    char_range: str = ""
    genre_hint: str = ""
    characteristics: list[str] = field(default_factory=list)
    example_topics: list[str] = field(default_factory=list)
    applicable_levels: set[str] = field(default_factory=set)


@dataclass
class Speaker:
    id: str
    label: str
    age_range: str = ""
    writing_style: str = ""
    vocabulary_level: str = ""
    tone_characteristics: str = ""
    sentence_patterns: list[str] = field(default_factory=list)
    applicable_levels: set[str] = field(default_factory=set)
    category: str = ""
    sub_category: str | None = None


class PassageFormat(str, Enum):
    SINGLE = "single"
    COMPARATIVE = "comparative"
    PRACTICAL = "practical"


@dataclass
class QuestionCountPolicy:
    possible_counts: list[int]
    weights: list[float] = field(default_factory=list)


@dataclass
class LengthClass:
    key: str
    label: str
    character_range: str
    question_count: int | None = None
    count_policy: QuestionCountPolicy | None = None
    passage_format: PassageFormat = PassageFormat.SINGLE


@dataclass
class Selection:
    level: str
    topic: Topic
    genre: Genre
    length_class: LengthClass
    question_count: int
    char_range: str
    subtype: Subtype | None = None
    speaker: Speaker | None = None
    trap_element: str | None = None

    @property
    def passage_format(self) -> PassageFormat:
        return self.length_class.passage_format


# ── Generated problem (tagged union over passage shapes) ─────────────────

@dataclass
class SinglePassage:
    text: str
    format = PassageFormat.SINGLE

    def texts(self) -> list[str]:
        return [self.text]

    def to_wire(self) -> dict:
        return {"passage": self.text}


@dataclass
class ComparativePassages:
    a: str
    b: str
    format = PassageFormat.COMPARATIVE

    def texts(self) -> list[str]:
        return [self.a, self.b]

    def to_wire(self) -> dict:
        return {"passages": {"A": self.a, "B": self.b}}


@dataclass
class PracticalPassages:
    documents: list[str]
    format = PassageFormat.PRACTICAL

    def texts(self) -> list[str]:
        return list(self.documents)

    def to_wire(self) -> dict:
        return {"passages": list(self.documents)}


Passages = SinglePassage | ComparativePassages | PracticalPassages


@dataclass
class Question:
    question: str
    options: list[str]
    correct_answer: int  # 1-based: one of 1, 2, 3, 4
    explanation: str

    def to_dict(self) -> dict:
        return {
            "question": self.question,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
        }


@dataclass
class GeneratedProblem:
    passages: Passages
    questions: list[Question]

    @property
    def passage_format(self) -> PassageFormat:
        return self.passages.format

    def passage_text(self) -> str:
        return "".join(self.passages.texts())

    def passage_length(self) -> int:
        return sum(len(t) for t in self.passages.texts())

    def to_dict(self) -> dict:
        data = self.passages.to_wire()
        data["questions"] = [q.to_dict() for q in self.questions]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> GeneratedProblem:
        """Build from a structurally valid wire dict (see validator.validate_structure)."""
        if isinstance(data.get("passage"), str) and data["passage"].strip():
            passages: Passages = SinglePassage(data["passage"])
        else:
            raw = data.get("passages")
            if isinstance(raw, dict):
                if "A" in raw and "B" in raw:
                    passages = ComparativePassages(str(raw["A"]), str(raw["B"]))
                else:
                    # Keyed documents other than A/B are read as a practical set
                    passages = PracticalPassages([str(v) for v in raw.values()])
            elif isinstance(raw, list):
                passages = PracticalPassages([str(v) for v in raw])
            else:
                passages = SinglePassage(str(raw or ""))

        questions = [
            Question(
                question=q["question"],
                options=list(q["options"]),
                correct_answer=int(q["correctAnswer"]),
                explanation=q["explanation"],
            )
            for q in data.get("questions", [])
        ]
        return cls(passages=passages, questions=questions)
