"""Parse and check the model's reply before it reaches a learner."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field

from jlpt_reader.errors import MalformedResponse, SchemaViolation
from jlpt_reader.models import GeneratedProblem, PassageFormat

log = logging.getLogger("jlpt_reader.validator")

VALID_ANSWERS = (1, 2, 3, 4)
OPTION_COUNT = 4

KANJI_RE = re.compile(r"[一-龯]")
SENTENCE_SPLIT_RE = re.compile(r"[。！？]")
RANGE_RE = re.compile(r"(\d+)\s*[-~～〜]\s*(\d+)")

MIN_KANJI_RATIO = 0.15
MIN_MEAN_SENTENCE_LENGTH = 30
MIN_COMPLEX_PATTERNS = 2
PENALTY = 10
COMPLEX_PATTERNS = (
    "における",
    "に関して",
    "について",
    "によって",
    "に対して",
    "というより",
    "わけではない",
    "ざるを得ない",
)


@dataclass
class LengthCheck:
    within_range: bool
    actual_length: int
    expected: str
    warning: str | None = None

    def to_dict(self) -> dict:
        data = {"valid": self.within_range, "actual": self.actual_length, "expected": self.expected}
        if self.warning:
            data["warning"] = self.warning
        return data


@dataclass
class SuitabilityReport:
    score: int
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"score": self.score, "warnings": list(self.warnings)}


@dataclass
class ValidatedResponse:
    problem: GeneratedProblem
    length_check: LengthCheck | None = None
    suitability: SuitabilityReport | None = None
    warnings: list[str] = field(default_factory=list)
    question_count_mismatch: bool = False
    format_mismatch: bool = False


def parse_response(text: str) -> dict:
    """Extract the JSON object from a raw completion.

    Drops ``<think>`` blocks and markdown fences, then keeps the span from
    the first ``{`` to the last ``}`` so stray prose around the object is
    tolerated.
    """
    cleaned = re.sub(r"<think>.*?</think>", "", text or "", flags=re.DOTALL).strip()
    cleaned = re.sub(r"^```[\w-]*\s*", "", cleaned)
    cleaned = re.sub(r"\s*```$", "", cleaned).strip()

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        log.debug("No JSON object in response: %.200s", text)
        raise MalformedResponse("response contains no JSON object")
    try:
        data = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as e:
        log.debug("Unparsable response: %.200s", text)
        raise MalformedResponse(f"response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponse(f"expected a JSON object, got {type(data).__name__}")
    return data


def _nonempty_str(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _check_passages(data: dict) -> str | None:
    if _nonempty_str(data.get("passage")):
        return None
    passages = data.get("passages")
    if isinstance(passages, dict):
        values = list(passages.values())
    elif isinstance(passages, list):
        values = passages
    else:
        return "passage or passages is missing"
    if not values:
        return "passages is empty"
    if not all(_nonempty_str(v) for v in values):
        return "every passage must be non-empty text"
    return None


def _check_question(q, index: int) -> list[str]:
    prefix = f"question {index + 1}:"
    if not isinstance(q, dict):
        return [f"{prefix} expected object, got {type(q).__name__}"]

    problems = []
    if not _nonempty_str(q.get("question")):
        problems.append(f"{prefix} question text missing")

    options = q.get("options")
    if not isinstance(options, list) or len(options) != OPTION_COUNT:
        n = len(options) if isinstance(options, list) else type(options).__name__
        problems.append(f"{prefix} options must be list of {OPTION_COUNT} (got {n})")
    elif not all(_nonempty_str(o) for o in options):
        problems.append(f"{prefix} every option must be non-empty text")

    # Coerce correctAnswer from string to int (common LLM mistake)
    answer = q.get("correctAnswer")
    if isinstance(answer, str) and answer.strip().isdigit():
        q["correctAnswer"] = answer = int(answer.strip())
    if isinstance(answer, bool) or not isinstance(answer, int):
        problems.append(f"{prefix} correctAnswer not an int (got {type(answer).__name__}: {answer!r})")
    elif answer not in VALID_ANSWERS:
        problems.append(f"{prefix} correctAnswer out of range: {answer}")

    if not _nonempty_str(q.get("explanation")):
        problems.append(f"{prefix} explanation missing")
    return problems


def validate_structure(data: dict) -> None:
    """Raise SchemaViolation listing every structural problem found."""
    violations = []
    passage_problem = _check_passages(data)
    if passage_problem:
        violations.append(passage_problem)

    questions = data.get("questions")
    if not isinstance(questions, list) or not questions:
        violations.append("questions must be a non-empty list")
    else:
        for i, q in enumerate(questions):
            violations.extend(_check_question(q, i))

    if violations:
        raise SchemaViolation(violations)


def parse_range(expected_range: str) -> tuple[int, int] | None:
    m = RANGE_RE.search(expected_range or "")
    if not m:
        return None
    low, high = int(m.group(1)), int(m.group(2))
    return (low, high) if low <= high else (high, low)


def validate_length(problem: GeneratedProblem, expected_range: str) -> LengthCheck:
    actual = problem.passage_length()
    bounds = parse_range(expected_range)
    if bounds is None:
        return LengthCheck(
            within_range=True,
            actual_length=actual,
            expected=expected_range,
            warning=f"unparseable character range {expected_range!r}, length not checked",
        )
    low, high = bounds
    if low <= actual <= high:
        return LengthCheck(within_range=True, actual_length=actual, expected=expected_range)
    return LengthCheck(
        within_range=False,
        actual_length=actual,
        expected=expected_range,
        warning=f"passage length out of range: expected {expected_range}, got {actual}",
    )


def check_suitability(problem: GeneratedProblem) -> SuitabilityReport:
    """Heuristic difficulty score: 100 minus 10 per failed check."""
    text = problem.passage_text()
    score = 100
    warnings = []

    ratio = len(KANJI_RE.findall(text)) / len(text) if text else 0.0
    if ratio < MIN_KANJI_RATIO:
        warnings.append(f"low kanji ratio ({ratio * 100:.1f}%)")
        score -= PENALTY

    sentences = [s for s in SENTENCE_SPLIT_RE.split(text) if s.strip()]
    mean = sum(len(s) for s in sentences) / len(sentences) if sentences else 0.0
    if mean < MIN_MEAN_SENTENCE_LENGTH:
        warnings.append(f"short mean sentence length ({mean:.0f} chars)")
        score -= PENALTY

    found = sum(1 for p in COMPLEX_PATTERNS if p in text)
    if found < MIN_COMPLEX_PATTERNS:
        warnings.append(f"few advanced grammar patterns ({found})")
        score -= PENALTY

    return SuitabilityReport(score=score, warnings=warnings)


def validate_full_response(
    text: str,
    expected_range: str,
    level: str,
    top_level: str = "N1",
    expected_count: int | None = None,
    expected_format: PassageFormat | None = None,
) -> ValidatedResponse:
    """Parse, check structure, then attach the soft quality checks.

    Only parsing and structure can fail; length, suitability, question
    count and passage format only produce warnings.
    """
    data = parse_response(text)
    validate_structure(data)
    problem = GeneratedProblem.from_dict(data)

    result = ValidatedResponse(problem=problem)
    result.length_check = validate_length(problem, expected_range)
    if result.length_check.warning:
        result.warnings.append(result.length_check.warning)

    if level == top_level:
        result.suitability = check_suitability(problem)
        result.warnings.extend(result.suitability.warnings)

    if expected_count is not None and len(problem.questions) != expected_count:
        result.question_count_mismatch = True
        result.warnings.append(
            f"question count mismatch: expected {expected_count}, got {len(problem.questions)}"
        )

    if expected_format is not None and problem.passage_format != expected_format:
        result.format_mismatch = True
        result.warnings.append(
            f"passage format mismatch: expected {expected_format.value}, "
            f"got {problem.passage_format.value}"
        )

    for warning in result.warnings:
        log.info("  Validation warning: %s", warning)
    return result
