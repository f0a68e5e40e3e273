"""Draw one concrete (topic, genre, subtype, speaker, trap) combination per request.

Same inputs give the same *distribution*, not the same output: variety
between generated problems is the point. Every "empty pool" condition
degrades to ``None`` or a default instead of raising.
"""
from __future__ import annotations

import logging
import random
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass, fields, replace
from typing import TypeVar

from jlpt_reader.catalog import ContentCatalog
from jlpt_reader.models import Genre, LengthClass, Selection, Speaker, Subtype, Topic

log = logging.getLogger("jlpt_reader.select")

T = TypeVar("T")

DEFAULT_TOPIC = Topic(
    name="環境と持続可能性",
    description="環境保護と経済発展の両立をめぐる現代的な課題",
    keywords=["持続可能性", "環境保護", "経済発展"],
    applicable_levels={"N1", "N2"},
)

DEFAULT_GENRE = Genre(
    label="論説文",
    type="editorial",
    characteristics=["筆者の主張が明確に示される", "根拠と反論を踏まえた論理展開"],
    question_types={"主旨理解": "筆者の最も言いたいことを問う"},
)


@dataclass(frozen=True)
class SelectionProbabilities:
    """Inclusion probabilities for every optional element of a Selection."""

    speaker: float = 0.6
    trap: float = 0.7
    cultural_context: float = 0.5
    characteristics: float = 0.8
    example_topics: float = 0.6
    vocabulary_focus: float = 0.7
    grammar_style: float = 0.7
    text_structure: float = 0.6
    variations: float = 0.5
    length_adaptation: float = 0.6
    instructions: float = 0.9

    def with_overrides(self, overrides: dict | None) -> SelectionProbabilities:
        if not overrides:
            return self
        known = {f.name for f in fields(self)}
        changes = {}
        for key, value in overrides.items():
            if key not in known:
                log.warning("Ignoring unknown selection probability %r", key)
                continue
            changes[key] = min(1.0, max(0.0, float(value)))
        return replace(self, **changes)


class RecentCache:
    """Bounded, expiring record of recently used keys.

    Shared by all requests of one process and not synchronized: concurrent
    requests may occasionally pick the same entry, which is acceptable.
    """

    def __init__(
        self,
        max_size: int = 50,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[Hashable, float] = OrderedDict()

    def _expire(self) -> None:
        now = self._clock()
        while self._entries:
            key, stamp = next(iter(self._entries.items()))
            if now - stamp < self.ttl_seconds:
                break
            del self._entries[key]

    def add(self, key: Hashable) -> None:
        self._entries.pop(key, None)
        self._entries[key] = self._clock()
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    def __contains__(self, key: Hashable) -> bool:
        self._expire()
        return key in self._entries

    def __len__(self) -> int:
        self._expire()
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


def weighted_choice(
    items: Sequence[T],
    weights: Sequence[float],
    rng: random.Random | None = None,
) -> T | None:
    """Cumulative-weight sampling over *items* in their given order.

    Draws ``r`` uniformly in [0, total) and returns the first item whose
    running weight exceeds ``r``, so zero-weight items are never returned.
    Missing weights count as 1, negative ones as 0.
    """
    if not items:
        return None
    rng = rng or random
    clean = [max(0.0, float(weights[i])) if i < len(weights) else 1.0 for i in range(len(items))]
    total = sum(clean)
    if total <= 0:
        return None
    r = rng.random() * total
    cumulative = 0.0
    for item, w in zip(items, clean):
        cumulative += w
        if cumulative > r:
            return item
    # Float rounding at the upper edge: last item that carries weight
    return next(item for item, w in zip(reversed(items), reversed(clean)) if w > 0)


class SelectionEngine:
    def __init__(
        self,
        catalog: ContentCatalog,
        probabilities: SelectionProbabilities | None = None,
        recent: RecentCache | None = None,
        rng: random.Random | None = None,
        top_level: str = "N1",
    ):
        self.catalog = catalog
        self.probabilities = probabilities or SelectionProbabilities()
        self.recent = recent
        self.rng = rng or random.Random()
        self.top_level = top_level

    def _include(self, probability: float) -> bool:
        return self.rng.random() < probability

    def _prefer_fresh(self, pool: list[T], key: Callable[[T], Hashable]) -> list[T]:
        if self.recent is None:
            return pool
        fresh = [item for item in pool if key(item) not in self.recent]
        return fresh or pool

    # ── Core choices ─────────────────────────────────────────────────────

    def select_topic(self, levels: Sequence[str], preferred_category: str | None = None) -> Topic | None:
        wanted = set(levels)
        categories = self.catalog.categories()
        if preferred_category and preferred_category in categories:
            categories = [preferred_category]
        self.rng.shuffle(categories)

        for category in categories:
            matching = [
                t for t in self.catalog.topics_in(category)
                if t.applicable_levels & wanted
            ]
            if matching:
                pool = self._prefer_fresh(matching, lambda t: ("topic", t.name))
                topic = self.rng.choice(pool)
                if self.recent is not None:
                    self.recent.add(("topic", topic.name))
                return topic

        log.warning("No topic matches levels %s", sorted(wanted))
        return None

    def select_subtype(self, length_key: str, level: str) -> Subtype | None:
        subtypes = self.catalog.subtypes_for(length_key)
        if not subtypes:
            return None
        filtered = [s for s in subtypes if level in s.applicable_levels]
        pool = filtered or subtypes
        weights = [self.catalog.subtype_weight(length_key, s.key) for s in pool]
        chosen = weighted_choice(pool, weights, self.rng)
        return chosen if chosen is not None else pool[0]

    def select_speaker(self, level: str) -> Speaker | None:
        if not self._include(self.probabilities.speaker):
            log.info("Speaker skipped (probabilistic)")
            return None
        pool = [s for s in self.catalog.speakers if level in s.applicable_levels]
        if not pool:
            return None
        pool = self._prefer_fresh(pool, lambda s: ("speaker", s.id))
        speaker = self.rng.choice(pool)
        if self.recent is not None:
            self.recent.add(("speaker", speaker.id))
        return speaker

    def select_trap_element(self, level: str) -> str | None:
        if level != self.top_level:
            return None
        if not self._include(self.probabilities.trap):
            log.info("Trap element skipped (probabilistic)")
            return None
        pool = self.catalog.trap_pool()
        return self.rng.choice(pool) if pool else None

    def select_genre(self, genre_hint: str, length_key: str) -> Genre | None:
        matched = self.catalog.find_genre(genre_hint)
        if matched is not None:
            return matched
        pool = self.catalog.genres_for_length(length_key) or self.catalog.genres
        return self.rng.choice(pool) if pool else None

    def get_question_count(
        self,
        subtype: Subtype | None,
        length_class: LengthClass,
        default_count: int,
    ) -> int:
        if subtype is not None and subtype.question_count is not None:
            return subtype.question_count
        policy = length_class.count_policy
        if policy and policy.possible_counts:
            drawn = weighted_choice(policy.possible_counts, policy.weights, self.rng)
            if drawn is not None:
                return drawn
        if length_class.question_count is not None:
            return length_class.question_count
        return default_count

    # ── Optional-field trimming ──────────────────────────────────────────

    def trim_topic(self, topic: Topic) -> Topic:
        p = self.probabilities
        return replace(
            topic,
            cultural_context=topic.cultural_context if self._include(p.cultural_context) else None,
        )

    def trim_subtype(self, subtype: Subtype) -> Subtype:
        p = self.probabilities
        return replace(
            subtype,
            characteristics=subtype.characteristics if self._include(p.characteristics) else [],
            example_topics=subtype.example_topics if self._include(p.example_topics) else [],
        )

    def trim_genre(self, genre: Genre, length_key: str) -> Genre:
        p = self.probabilities
        text_structure = genre.text_structure
        if text_structure is not None:
            keep_flow = self._include(p.text_structure)
            keep_variations = self._include(p.variations)
            text_structure = replace(
                text_structure,
                basic_flow=text_structure.basic_flow if keep_flow else "",
                variation_patterns=text_structure.variation_patterns if keep_variations else [],
            )
            if not text_structure.basic_flow and not text_structure.variation_patterns:
                text_structure = None
        adaptation = genre.length_adaptations.get(length_key)
        return replace(
            genre,
            characteristics=genre.characteristics if self._include(p.characteristics) else [],
            vocabulary_focus=genre.vocabulary_focus if self._include(p.vocabulary_focus) else None,
            grammar_style=genre.grammar_style if self._include(p.grammar_style) else None,
            text_structure=text_structure,
            length_adaptations=(
                {length_key: adaptation}
                if adaptation is not None and self._include(p.length_adaptation)
                else {}
            ),
            instructions=genre.instructions if self._include(p.instructions) else None,
        )

    # ── Composition ──────────────────────────────────────────────────────

    def select(
        self,
        length_key: str | None,
        levels: Sequence[str],
        preferred_category: str | None = None,
        default_count: int = 3,
    ) -> Selection:
        levels = list(levels) or [self.top_level]
        level = levels[0]
        length_class = self.catalog.resolve_length_class(length_key)
        lk = length_class.key

        subtype = self.select_subtype(lk, level)
        topic = self.select_topic(levels, preferred_category) or DEFAULT_TOPIC
        genre = self.select_genre(subtype.genre_hint if subtype else "", lk) or DEFAULT_GENRE
        speaker = self.select_speaker(level)
        trap = self.select_trap_element(level)
        question_count = self.get_question_count(subtype, length_class, default_count) or default_count
        char_range = (subtype.char_range if subtype else "") or length_class.character_range

        log.info(
            "Selected: topic=%s genre=%s subtype=%s speaker=%s trap=%s count=%d",
            topic.name, genre.label, subtype.key if subtype else None,
            speaker.id if speaker else None, bool(trap), question_count,
        )
        return Selection(
            level=level,
            topic=self.trim_topic(topic),
            genre=self.trim_genre(genre, lk),
            length_class=length_class,
            question_count=question_count,
            char_range=char_range,
            subtype=self.trim_subtype(subtype) if subtype else None,
            speaker=speaker,
            trap_element=trap,
        )
