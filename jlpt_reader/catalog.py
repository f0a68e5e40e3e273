"""Load the static JSON content catalog into typed, read-only entities.

Five documents live in the data directory:
  topics.json              categories of topics, each topic tagged with levels
  genre.json               list of genre definitions (may embed a trap entry)
  length-definitions.json  length classes, their subtypes, level mapping, weights
  speakers.json            speaker personas, flat or nested by category
  trap.json                four pools of trap-element descriptions

The documents are hand-edited, so the loader accepts the few shape variants
that occur in practice (``topic`` vs ``name``, ``levels`` vs ``level``,
nested speaker sub-categories, ...).
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from jlpt_reader.errors import ConfigLoadError
from jlpt_reader.models import (
    Genre,
    LengthAdaptation,
    LengthClass,
    PassageFormat,
    QuestionCountPolicy,
    Speaker,
    Subtype,
    TextStructure,
    Topic,
)

log = logging.getLogger("jlpt_reader.catalog")

CATALOG_FILES = {
    "topics": "topics.json",
    "genre": "genre.json",
    "length-definitions": "length-definitions.json",
    "speakers": "speakers.json",
    "trap": "trap.json",
}

TRAP_POOLS = ("opening_traps", "middle_complexity", "conclusion_subtlety", "linguistic_devices")
TRAP_GENRE_TYPE = "n1_trap_elements"

DEFAULT_LENGTH_CLASS = LengthClass(
    key="medium",
    label="中文",
    character_range="450-700",
    question_count=3,
)


@dataclass
class ContentCatalog:
    topics: dict[str, list[Topic]] = field(default_factory=dict)
    category_labels: dict[str, str] = field(default_factory=dict)
    genres: list[Genre] = field(default_factory=list)
    length_classes: dict[str, LengthClass] = field(default_factory=dict)
    subtypes: dict[str, dict[str, Subtype]] = field(default_factory=dict)
    subtype_weights: dict[str, dict[str, float]] = field(default_factory=dict)
    speakers: list[Speaker] = field(default_factory=list)
    traps: dict[str, list[str]] = field(default_factory=dict)
    documents: dict[str, object] = field(default_factory=dict)

    def categories(self) -> list[str]:
        return list(self.topics)

    def topics_in(self, category: str) -> list[Topic]:
        return list(self.topics.get(category, []))

    def length_class(self, key: str) -> LengthClass | None:
        return self.length_classes.get(key)

    def resolve_length_class(self, key: str | None) -> LengthClass:
        """Unknown keys fall back to ``medium``, then to the first defined class."""
        if key and key in self.length_classes:
            return self.length_classes[key]
        if "medium" in self.length_classes:
            return self.length_classes["medium"]
        if self.length_classes:
            return next(iter(self.length_classes.values()))
        return DEFAULT_LENGTH_CLASS

    def subtypes_for(self, length_key: str) -> list[Subtype]:
        return list(self.subtypes.get(length_key, {}).values())

    def subtype_weight(self, length_key: str, subtype_key: str) -> float:
        return self.subtype_weights.get(length_key, {}).get(subtype_key, 1)

    def trap_pool(self) -> list[str]:
        pool: list[str] = []
        for name in TRAP_POOLS:
            pool.extend(self.traps.get(name, []))
        return pool

    def find_genre(self, hint: str) -> Genre | None:
        if not hint:
            return None
        return next((g for g in self.genres if hint in (g.label, g.type)), None)

    def genres_for_length(self, length_key: str) -> list[Genre]:
        return [g for g in self.genres if length_key in g.length_adaptations]

    def topic_index(self) -> dict[str, list[str]]:
        """Map each level tag to the unique topic names that apply to it."""
        index: dict[str, list[str]] = {}
        for items in self.topics.values():
            for topic in items:
                for level in sorted(topic.applicable_levels):
                    names = index.setdefault(level, [])
                    if topic.name not in names:
                        names.append(topic.name)
        return dict(sorted(index.items()))

    def stats(self) -> dict:
        return {
            "categories": len(self.topics),
            "topics": sum(len(v) for v in self.topics.values()),
            "genres": len(self.genres),
            "length_classes": len(self.length_classes),
            "subtypes": sum(len(v) for v in self.subtypes.values()),
            "speakers": len(self.speakers),
            "traps": len(self.trap_pool()),
        }

    def raw(self, name: str) -> object | None:
        return self.documents.get(name)


# ── Loading ──────────────────────────────────────────────────────────────

def _read_json(data_dir: Path, filename: str) -> object:
    path = data_dir / filename
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        log.error("%s load failed: %s", filename, e)
        raise ConfigLoadError(f"cannot read {filename}: {e}") from e
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        log.error("%s is not valid JSON: %s", filename, e)
        raise ConfigLoadError(f"{filename} is not valid JSON: {e}") from e
    log.info("%s loaded (%.2fKB)", filename, len(content.encode("utf-8")) / 1024)
    return data


def _expect(data: object, kind: type, filename: str):
    if not isinstance(data, kind):
        raise ConfigLoadError(
            f"{filename}: expected a JSON {'object' if kind is dict else 'array'}, "
            f"got {type(data).__name__}"
        )
    return data


def _levels(raw: dict) -> set[str]:
    for key in ("levels", "適用レベル"):
        value = raw.get(key)
        if isinstance(value, list):
            return {str(v) for v in value}
        if isinstance(value, str):
            return {value}
    if isinstance(raw.get("level"), str):
        return {raw["level"]}
    return set()


def _str_list(value) -> list[str]:
    if isinstance(value, list):
        return [str(v) for v in value]
    if isinstance(value, str) and value:
        return [value]
    return []


def _optional_str(value) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, list):
        return "、".join(str(v) for v in value)
    return str(value)


def parse_topics(data: dict) -> tuple[dict[str, list[Topic]], dict[str, str]]:
    topics: dict[str, list[Topic]] = {}
    labels: dict[str, str] = {}
    for cat_key, cat in (data.get("topics") or {}).items():
        if not isinstance(cat, dict):
            log.warning("topic category %s has no items", cat_key)
            continue
        labels[cat_key] = str(cat.get("label", cat_key))
        items: list[Topic] = []
        for item in cat.get("items") or []:
            if isinstance(item, str):
                item = {"topic": item}
            name = item.get("topic") or item.get("name") or item.get("title")
            if not name:
                continue
            items.append(Topic(
                name=str(name),
                description=str(item.get("description", "")),
                keywords=_str_list(item.get("keywords")),
                cultural_context=_optional_str(item.get("culturalContext")),
                controversy_level=_optional_str(item.get("controversyLevel")),
                applicable_levels=_levels(item),
                category_key=cat_key,
            ))
        topics[cat_key] = items
    return topics, labels


def _parse_genre(raw: dict) -> Genre:
    structure = raw.get("text_structure")
    text_structure = None
    if isinstance(structure, dict):
        text_structure = TextStructure(
            basic_flow=str(structure.get("basic_flow", "")),
            variation_patterns=_str_list(structure.get("variation_patterns")),
        )
    adaptations = {
        key: LengthAdaptation(
            focus=str(a.get("focus", "")),
            structure=str(a.get("structure", "")),
            question_emphasis=str(a.get("question_emphasis", "")),
        )
        for key, a in (raw.get("length_adaptations") or {}).items()
        if isinstance(a, dict)
    }
    question_types = raw.get("question_types") or {}
    if isinstance(question_types, list):
        question_types = {str(q): "" for q in question_types}
    return Genre(
        label=str(raw.get("label") or raw.get("name") or raw.get("type", "")),
        type=str(raw.get("type", "")),
        characteristics=_str_list(raw.get("characteristics")),
        question_types={str(k): str(v) for k, v in question_types.items()},
        vocabulary_focus=_optional_str(raw.get("vocabulary_focus")),
        grammar_style=_optional_str(raw.get("grammar_style")),
        text_structure=text_structure,
        length_adaptations=adaptations,
        instructions=_optional_str(raw.get("instructions")),
    )


def parse_genres(data: list) -> tuple[list[Genre], dict[str, list[str]]]:
    """Return genres plus any trap pools embedded as an ``n1_trap_elements`` entry."""
    genres: list[Genre] = []
    embedded_traps: dict[str, list[str]] = {}
    for raw in data:
        if not isinstance(raw, dict):
            continue
        if raw.get("type") == TRAP_GENRE_TYPE:
            embedded_traps = {name: _str_list(raw.get(name)) for name in TRAP_POOLS}
            continue
        genres.append(_parse_genre(raw))
    return genres, embedded_traps


def _count_policy(value) -> tuple[int | None, QuestionCountPolicy | None]:
    if isinstance(value, bool):
        return None, None
    if isinstance(value, int):
        return value, None
    if isinstance(value, dict) and value.get("possible_counts"):
        counts = [int(c) for c in value["possible_counts"]]
        weights = [float(w) for w in value.get("weights") or []]
        return None, QuestionCountPolicy(possible_counts=counts, weights=weights)
    return None, None


def _passage_format(key: str, declared) -> PassageFormat:
    if declared:
        try:
            return PassageFormat(declared)
        except ValueError:
            log.warning("unknown passage_format %r for %s", declared, key)
    if key == "comparative":
        return PassageFormat.COMPARATIVE
    if key == "practical":
        return PassageFormat.PRACTICAL
    return PassageFormat.SINGLE


def parse_lengths(data: dict):
    classes: dict[str, LengthClass] = {}
    subtypes: dict[str, dict[str, Subtype]] = {}
    level_mapping = (data.get("jlpt_level_mapping") or {}).get("subtypes") or {}
    weights = {
        key: {k: float(v) for k, v in w.items()}
        for key, w in (data.get("random_selection_weights") or {}).items()
        if isinstance(w, dict)
    }

    for key, cat in (data.get("length_categories") or {}).items():
        if not isinstance(cat, dict):
            continue
        base = cat.get("base_info") or {}
        count, policy = _count_policy(base.get("question_count"))
        classes[key] = LengthClass(
            key=key,
            label=str(base.get("label", key)),
            character_range=str(base.get("character_range", "")),
            question_count=count,
            count_policy=policy,
            passage_format=_passage_format(key, base.get("passage_format")),
        )
        subtypes[key] = {}
        for st_key, st in (cat.get("subtypes") or {}).items():
            if not isinstance(st, dict):
                continue
            st_count, _ = _count_policy(st.get("question_count"))
            levels = _levels(st) | {str(lv) for lv in level_mapping.get(st_key, [])}
            subtypes[key][st_key] = Subtype(
                key=st_key,
                label=str(st.get("label", st_key)),
                description=str(st.get("description", "")),
                question_focus=str(st.get("question_focus", "")),
                vocabulary_level=str(st.get("vocabulary_level", "")),
                question_count=st_count,
                char_range=str(st.get("char_range") or st.get("character_range") or ""),
                genre_hint=str(st.get("genre_hint", "")),
                characteristics=_str_list(st.get("characteristics")),
                example_topics=_str_list(st.get("example_topics")),
                applicable_levels=levels,
            )
    return classes, subtypes, weights


def _speaker(speaker_id: str, raw: dict, category: str, sub_category: str | None) -> Speaker:
    return Speaker(
        id=str(raw.get("id", speaker_id)),
        label=str(raw.get("label", speaker_id)),
        age_range=str(raw.get("age_range") or raw.get("ageRange") or raw.get("age") or ""),
        writing_style=str(raw.get("writing_style") or raw.get("style") or ""),
        vocabulary_level=str(raw.get("vocabulary_level") or raw.get("vocabulary") or ""),
        tone_characteristics=str(raw.get("tone_characteristics") or raw.get("tone") or ""),
        sentence_patterns=_str_list(raw.get("sentence_patterns")),
        applicable_levels=_levels(raw),
        category=str(raw.get("category", category)),
        sub_category=sub_category,
    )


def parse_speakers(data: dict) -> list[Speaker]:
    speakers: list[Speaker] = []
    flat = data.get("speakers")
    if isinstance(flat, list):
        for i, raw in enumerate(flat):
            if isinstance(raw, dict):
                speakers.append(_speaker(f"speaker_{i}", raw, str(raw.get("category", "")), None))

    for cat_key, cat in (data.get("speaker_categories") or {}).items():
        if not isinstance(cat, dict):
            continue
        if isinstance(cat.get("speakers"), dict):
            for sid, raw in cat["speakers"].items():
                speakers.append(_speaker(sid, raw, cat_key, None))
            continue
        # One extra nesting level (e.g. generational perspectives)
        for sub_key, sub in cat.items():
            if isinstance(sub, dict) and isinstance(sub.get("speakers"), dict):
                for sid, raw in sub["speakers"].items():
                    speakers.append(_speaker(sid, raw, cat_key, sub_key))
    return speakers


def load_catalog(data_dir: Path) -> ContentCatalog:
    """Read all five catalog documents; any failure raises ConfigLoadError."""
    data_dir = Path(data_dir)
    docs = {name: _read_json(data_dir, filename) for name, filename in CATALOG_FILES.items()}

    current = "topics"
    try:
        topics, labels = parse_topics(_expect(docs["topics"], dict, CATALOG_FILES["topics"]))
        current = "genre"
        genres, embedded_traps = parse_genres(_expect(docs["genre"], list, CATALOG_FILES["genre"]))
        current = "length-definitions"
        classes, subtypes, weights = parse_lengths(
            _expect(docs["length-definitions"], dict, CATALOG_FILES["length-definitions"])
        )
        current = "speakers"
        speakers = parse_speakers(_expect(docs["speakers"], dict, CATALOG_FILES["speakers"]))
        current = "trap"
        trap_doc = _expect(docs["trap"], dict, CATALOG_FILES["trap"])
        traps = {name: _str_list(trap_doc.get(name)) for name in TRAP_POOLS}
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ConfigLoadError(f"{CATALOG_FILES[current]}: malformed content ({e})") from e
    for name, pool in embedded_traps.items():
        traps[name] = traps[name] + [t for t in pool if t not in traps[name]]

    catalog = ContentCatalog(
        topics=topics,
        category_labels=labels,
        genres=genres,
        length_classes=classes,
        subtypes=subtypes,
        subtype_weights=weights,
        speakers=speakers,
        traps=traps,
        documents=docs,
    )
    log.info("Catalog ready: %s", catalog.stats())
    return catalog
