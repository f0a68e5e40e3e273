"""CLI entry point for jlpt-reader.

Usage:
  python -m jlpt_reader serve [--port PORT] [--host HOST]
  python -m jlpt_reader prompt [--length KEY] [--level N1] [--category KEY] [--seed N]
  python -m jlpt_reader generate [--length KEY] [--level N1] [--category KEY] [--output FILE]
  python -m jlpt_reader index [--output FILE]
  python -m jlpt_reader stats
"""
from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "prompt":
        _prompt(args[1:])
    elif command == "generate":
        _generate(args[1:])
    elif command == "index":
        _index(args[1:])
    elif command == "stats":
        _stats()
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, prompt, generate, index, stats")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str | None) -> str | None:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _serve(args: list[str]):
    import uvicorn

    port = int(_parse_flag(args, "--port", "8765"))
    host = _parse_flag(args, "--host", "127.0.0.1")
    print(f"Starting JLPT Reader on http://{host}:{port}")
    uvicorn.run("jlpt_reader.app:app", host=host, port=port)


def _load():
    from jlpt_reader.catalog import load_catalog
    from jlpt_reader.config import load_settings
    from jlpt_reader.errors import ConfigLoadError

    settings = load_settings()
    try:
        catalog = load_catalog(settings.data_full_path)
    except ConfigLoadError as e:
        print(f"Cannot load catalog from {settings.data_full_path}: {e}")
        sys.exit(1)
    return settings, catalog


def _make_llm(settings):
    from jlpt_reader.providers.base import make_client

    try:
        return make_client(settings)
    except ValueError as e:
        print(e)
        sys.exit(1)


def _prompt(args: list[str]):
    """Print one rendered prompt without calling a model."""
    import random

    from jlpt_reader.prompts import build_prompt
    from jlpt_reader.selection import SelectionEngine, SelectionProbabilities

    settings, catalog = _load()
    seed = _parse_flag(args, "--seed", None)
    level = _parse_flag(args, "--level", None)
    engine = SelectionEngine(
        catalog,
        probabilities=SelectionProbabilities().with_overrides(settings.selection_probabilities),
        rng=random.Random(int(seed)) if seed is not None else None,
        top_level=settings.top_level,
    )
    selection = engine.select(
        _parse_flag(args, "--length", settings.default_length_key),
        [level] if level else settings.default_levels,
        preferred_category=_parse_flag(args, "--category", None),
        default_count=settings.default_question_count,
    )
    print(build_prompt(selection, settings.explanation_language))


def _generate(args: list[str]):
    from jlpt_reader.generator import GenerationRequest, generate_reading

    settings, catalog = _load()
    llm = _make_llm(settings)
    level = _parse_flag(args, "--level", None)
    request = GenerationRequest(
        length_key=_parse_flag(args, "--length", None),
        levels=[level] if level else [],
        preferred_category=_parse_flag(args, "--category", None),
    )

    print(f"Generating with {llm.name()}...", file=sys.stderr)
    result = asyncio.run(generate_reading(llm, request, lambda: catalog, settings))
    text = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)

    output = _parse_flag(args, "--output", None)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        print(f"Wrote {output}", file=sys.stderr)
    else:
        print(text)
    if not result.success:
        print(f"Fallback served: {result.message}", file=sys.stderr)
        sys.exit(2)


def _index(args: list[str]):
    """Write (or print) the level -> topic names index."""
    settings, catalog = _load()
    index = catalog.topic_index()
    text = json.dumps(index, indent=2, ensure_ascii=False)

    output = _parse_flag(args, "--output", None)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        counts = ", ".join(f"{level}: {len(names)}" for level, names in index.items())
        print(f"Wrote {output} ({counts})")
    else:
        print(text)


def _stats():
    settings, catalog = _load()
    stats = catalog.stats()

    print("JLPT Reader Catalog")
    print("=" * 40)
    print(f"Data directory:     {settings.data_full_path}")
    print(f"Topic categories:   {stats['categories']}")
    print(f"Topics:             {stats['topics']}")
    print(f"Genres:             {stats['genres']}")
    print(f"Length classes:     {stats['length_classes']}")
    print(f"Subtypes:           {stats['subtypes']}")
    print(f"Speakers:           {stats['speakers']}")
    print(f"Trap elements:      {stats['traps']}")
    print(f"LLM provider:       {settings.llm_provider}/{settings.llm_model}")


if __name__ == "__main__":
    main()
