"""Shared test fixtures."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from jlpt_reader.catalog import load_catalog
from jlpt_reader.config import Settings

PROJECT_DATA = Path(__file__).resolve().parent.parent / "data"

N1_SENTENCE = "現代社会における技術革新の影響について多角的に検討する必要があることは言うまでもない。"


@pytest.fixture
def catalog_docs():
    """Small but complete catalog documents, one per file."""
    return {
        "topics.json": {
            "topics": {
                "society": {
                    "label": "社会",
                    "items": [
                        {
                            "topic": "少子化",
                            "description": "人口減少が地域に与える影響",
                            "keywords": ["人口", "地方"],
                            "culturalContext": "地方の祭りの担い手不足",
                            "controversyLevel": "中",
                            "levels": ["N1", "N2"],
                        },
                        {"name": "町内会", "level": "N3"},
                    ],
                },
                "science": {
                    "label": "科学",
                    "items": [{"topic": "人工知能", "levels": ["N1"]}],
                },
            }
        },
        "genre.json": [
            {
                "type": "editorial",
                "label": "論説文",
                "characteristics": ["主張が明確"],
                "question_types": {"主旨理解": "筆者の主張を問う"},
                "vocabulary_focus": "抽象語",
                "grammar_style": "硬い文章語",
                "text_structure": {
                    "basic_flow": "問題提起 → 主張",
                    "variation_patterns": ["頭括型"],
                },
                "length_adaptations": {
                    "medium": {"focus": "主張と反論", "structure": "四段落", "question_emphasis": "筆者の立場"},
                },
                "instructions": "主張を一度は明示すること",
            },
            {
                "type": "essay",
                "label": "随筆",
                "length_adaptations": {
                    "long": {"focus": "体験", "structure": "回想", "question_emphasis": "心情"},
                },
            },
            {"type": "n1_trap_elements", "opening_traps": ["埋め込み罠"]},
        ],
        "length-definitions.json": {
            "length_categories": {
                "short": {
                    "base_info": {"label": "短文", "character_range": "200-300", "question_count": 1},
                },
                "medium": {
                    "base_info": {
                        "label": "中文",
                        "character_range": "450-700",
                        "question_count": {"possible_counts": [2, 3], "weights": [0, 1]},
                    },
                    "subtypes": {
                        "a": {
                            "label": "評論",
                            "description": "社会問題を論じる",
                            "question_focus": "論理展開",
                            "vocabulary_level": "高度な漢語",
                            "genre_hint": "論説文",
                            "characteristics": ["譲歩を含む"],
                            "example_topics": ["働き方"],
                            "levels": ["N1"],
                        },
                        "b": {"label": "エッセイ", "genre_hint": "unknown", "question_count": 2},
                    },
                },
                "comparative": {
                    "base_info": {"label": "統合理解", "character_range": "300-400", "question_count": 2},
                    "subtypes": {
                        "pro_con": {"label": "賛否比較", "genre_hint": "comparison"},
                    },
                },
            },
            "jlpt_level_mapping": {"subtypes": {"b": ["N2"], "pro_con": ["N1"]}},
            "random_selection_weights": {"medium": {"a": 1, "b": 0}},
        },
        "speakers.json": {
            "speaker_categories": {
                "pro": {
                    "speakers": {
                        "s1": {"label": "社会学者", "age_range": "50代", "levels": ["N1"]},
                    }
                },
                "gen": {
                    "young": {
                        "speakers": {
                            "s2": {"label": "大学院生", "適用レベル": ["N1", "N2"]},
                        }
                    }
                },
            }
        },
        "trap.json": {
            "opening_traps": ["冒頭の罠"],
            "middle_complexity": [],
            "conclusion_subtlety": [],
            "linguistic_devices": [],
        },
    }


def write_docs(directory: Path, docs: dict) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    for filename, content in docs.items():
        (directory / filename).write_text(json.dumps(content, ensure_ascii=False), encoding="utf-8")
    return directory


@pytest.fixture
def data_dir(tmp_path, catalog_docs):
    return write_docs(tmp_path / "data", catalog_docs)


@pytest.fixture
def catalog(data_dir):
    return load_catalog(data_dir)


@pytest.fixture
def settings(data_dir):
    return Settings(data_dir=str(data_dir))


@pytest.fixture
def valid_problem_dict():
    """A structurally valid single-passage problem with three questions."""
    return {
        "passage": N1_SENTENCE * 12,
        "questions": [
            {
                "question": f"問{i}: 筆者の主張として最も適切なものはどれか。",
                "options": ["選択肢一", "選択肢二", "選択肢三", "選択肢四"],
                "correctAnswer": i,
                "explanation": "본문의 주장과 일치하는 것은 이 선택지입니다.",
            }
            for i in (1, 2, 3)
        ],
    }


def _list_of_topics(docs):
    docs["topics.json"]["topics"] = ["not", "a", "mapping"]
    return "topics.json"


def _text_weight(docs):
    docs["length-definitions.json"]["random_selection_weights"]["medium"]["a"] = "heavy"
    return "length-definitions.json"


def _string_speaker(docs):
    docs["speakers.json"]["speaker_categories"]["pro"]["speakers"]["s1"] = "社会学者"
    return "speakers.json"


# Nested shapes that pass the top-level type check but cannot be parsed
MALFORMED = {
    "topics-list": _list_of_topics,
    "weight-text": _text_weight,
    "speaker-string": _string_speaker,
}
