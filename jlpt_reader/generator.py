"""Orchestrate one reading problem: selection, prompt, completion, validation.

Every failure inside the pipeline ends in a canned fallback problem, so
callers always receive something a learner can work on.
"""
from __future__ import annotations

import logging
import random
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from jlpt_reader.catalog import ContentCatalog
from jlpt_reader.errors import PipelineError
from jlpt_reader.fallback import fallback_problem
from jlpt_reader.models import GeneratedProblem, PassageFormat, Selection
from jlpt_reader.prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    SYSTEM_PROMPT,
    build_analysis_prompt,
    build_prompt,
)
from jlpt_reader.providers.base import CompletionOptions
from jlpt_reader.selection import RecentCache, SelectionEngine, SelectionProbabilities
from jlpt_reader.validator import (
    ValidatedResponse,
    parse_response,
    validate_full_response,
    validate_structure,
)

if TYPE_CHECKING:
    from jlpt_reader.config import Settings
    from jlpt_reader.providers.base import CompletionClient

log = logging.getLogger("jlpt_reader.pipeline")

KANA_RE = re.compile(r"[぀-ゟ゠-ヿ]")


@dataclass
class GenerationRequest:
    length_key: str | None = None
    levels: list[str] = field(default_factory=list)
    preferred_category: str | None = None
    custom_prompt: str | None = None


@dataclass
class GenerationResult:
    success: bool
    problem: GeneratedProblem
    metadata: dict
    message: str | None = None

    def to_dict(self) -> dict:
        data = {
            "success": self.success,
            "problem": self.problem.to_dict(),
            "metadata": self.metadata,
        }
        if self.message:
            data["message"] = self.message
        return data


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _log_text(settings: Settings, label: str, text: str) -> None:
    level = logging.INFO if settings.log_full_prompt else logging.DEBUG
    log.log(level, "── %s ──\n%s", label, text)


def _format_for_key(length_key: str | None) -> PassageFormat:
    try:
        return PassageFormat(length_key)
    except ValueError:
        return PassageFormat.SINGLE


def _fallback(
    error: PipelineError,
    length_key: str | None,
    shape: PassageFormat,
    provider: str,
) -> GenerationResult:
    log.warning("Generation failed (%s): %s; serving fallback", error.kind, error)
    return GenerationResult(
        success=False,
        problem=fallback_problem(shape),
        metadata={
            "fallback": True,
            "errorType": error.kind,
            "lengthKey": length_key,
            "provider": provider,
            "generatedAt": _now(),
        },
        message=f"Generation failed ({error.kind}); a fallback problem was returned",
    )


def _success_metadata(
    selection: Selection,
    catalog: ContentCatalog,
    validated: ValidatedResponse,
    levels: list[str],
    provider: str,
) -> dict:
    topic = selection.topic
    return {
        "level": selection.level,
        "levels": list(levels),
        "lengthKey": selection.length_class.key,
        "lengthLabel": selection.length_class.label,
        "category": catalog.category_labels.get(topic.category_key, topic.category_key),
        "topic": topic.name,
        "genre": selection.genre.label,
        "subtype": selection.subtype.label if selection.subtype else None,
        "speaker": selection.speaker.label if selection.speaker else None,
        "trapElement": selection.trap_element,
        "questionCount": selection.question_count,
        "charRange": selection.char_range,
        "passageFormat": selection.passage_format.value,
        "lengthCheck": validated.length_check.to_dict() if validated.length_check else None,
        "suitability": validated.suitability.to_dict() if validated.suitability else None,
        "warnings": list(validated.warnings),
        "questionCountMismatch": validated.question_count_mismatch,
        "passageFormatMismatch": validated.format_mismatch,
        "provider": provider,
        "generatedAt": _now(),
    }


async def _generate_custom(
    llm: CompletionClient,
    prompt: str,
    settings: Settings,
) -> GenerationResult:
    """Send a caller-written prompt unchanged; only the structure is checked."""
    _log_text(settings, "CUSTOM PROMPT", prompt)
    options = CompletionOptions(
        max_output_tokens=settings.max_output_tokens,
        temperature=settings.temperature,
        system_instruction=SYSTEM_PROMPT,
    )
    try:
        text = await llm.complete(prompt, options)
        _log_text(settings, "RESPONSE", text)
        data = parse_response(text)
        validate_structure(data)
    except PipelineError as e:
        return _fallback(e, None, PassageFormat.SINGLE, llm.name())

    problem = GeneratedProblem.from_dict(data)
    log.info("Custom problem generated (%d questions)", len(problem.questions))
    return GenerationResult(
        success=True,
        problem=problem,
        metadata={
            "custom": True,
            "passageFormat": problem.passage_format.value,
            "questionCount": len(problem.questions),
            "provider": llm.name(),
            "generatedAt": _now(),
        },
    )


async def generate_reading(
    llm: CompletionClient,
    request: GenerationRequest,
    catalog_loader: Callable[[], ContentCatalog],
    settings: Settings,
    recent: RecentCache | None = None,
    rng: random.Random | None = None,
) -> GenerationResult:
    """Run the whole pipeline once. Never raises a PipelineError."""
    if request.custom_prompt is not None:
        return await _generate_custom(llm, request.custom_prompt, settings)

    length_key = request.length_key or settings.default_length_key
    levels = list(request.levels) or list(settings.default_levels)

    try:
        catalog = catalog_loader()
    except PipelineError as e:
        return _fallback(e, length_key, _format_for_key(length_key), llm.name())

    engine = SelectionEngine(
        catalog,
        probabilities=SelectionProbabilities().with_overrides(settings.selection_probabilities),
        recent=recent,
        rng=rng,
        top_level=settings.top_level,
    )
    selection = engine.select(
        length_key,
        levels,
        preferred_category=request.preferred_category,
        default_count=settings.default_question_count,
    )
    prompt = build_prompt(selection, settings.explanation_language)
    _log_text(settings, f"PROMPT ({llm.name()})", prompt)

    options = CompletionOptions(
        max_output_tokens=settings.max_output_tokens,
        temperature=settings.temperature,
        system_instruction=SYSTEM_PROMPT,
    )
    try:
        text = await llm.complete(prompt, options)
        _log_text(settings, "RESPONSE", text)
        validated = validate_full_response(
            text,
            selection.char_range,
            selection.level,
            top_level=settings.top_level,
            expected_count=selection.question_count,
            expected_format=selection.passage_format,
        )
    except PipelineError as e:
        return _fallback(e, selection.length_class.key, selection.passage_format, llm.name())

    log.info(
        "Problem generated: %s / %s (%d questions, %d chars)",
        selection.topic.name, selection.genre.label,
        len(validated.problem.questions), validated.problem.passage_length(),
    )
    return GenerationResult(
        success=True,
        problem=validated.problem,
        metadata=_success_metadata(selection, catalog, validated, levels, llm.name()),
    )


async def analyze_problem(
    llm: CompletionClient,
    problem: GeneratedProblem,
    metadata: dict | None,
    settings: Settings,
) -> dict:
    """Ask the model for a study guide of an existing problem.

    Returns the parsed analysis object. Completion and parse failures
    propagate as PipelineError for the caller to report.
    """
    language = settings.explanation_language
    prompt = build_analysis_prompt(problem, metadata, language)
    _log_text(settings, "ANALYSIS PROMPT", prompt)
    options = CompletionOptions(
        max_output_tokens=settings.max_output_tokens,
        temperature=settings.analysis_temperature,
        system_instruction=ANALYSIS_SYSTEM_PROMPT.format(language=language),
    )
    text = await llm.complete(prompt, options)
    _log_text(settings, "ANALYSIS RESPONSE", text)
    analysis = parse_response(text)

    explanations = analysis.get("questionExplanations")
    if not isinstance(explanations, list):
        explanations = []
    for i, entry in enumerate(explanations, 1):
        explanation = entry.get("explanation") if isinstance(entry, dict) else None
        if isinstance(explanation, str) and KANA_RE.search(explanation):
            log.warning("Explanation %d contains Japanese kana: %.80s", i, explanation)
    return analysis
