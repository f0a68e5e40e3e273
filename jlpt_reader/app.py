"""FastAPI application with all routes."""
from __future__ import annotations

import json
import logging

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jlpt_reader.catalog import CATALOG_FILES, ContentCatalog, load_catalog
from jlpt_reader.config import Settings, load_settings
from jlpt_reader.errors import PipelineError, SchemaViolation
from jlpt_reader.generator import GenerationRequest, analyze_problem, generate_reading
from jlpt_reader.models import GeneratedProblem
from jlpt_reader.providers.base import make_client
from jlpt_reader.selection import RecentCache
from jlpt_reader.validator import validate_structure

log = logging.getLogger("jlpt_reader.app")

VALID_LEVELS = ("N1", "N2", "N3", "N4", "N5")
REJECTED_METHODS = ["GET", "PUT", "PATCH", "DELETE"]

app = FastAPI(title="JLPT Reader")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Global state (initialized at startup)
_settings: Settings | None = None
_catalog: ContentCatalog | None = None
_recent: RecentCache | None = None


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def get_recent() -> RecentCache:
    assert _recent is not None
    return _recent


def get_catalog() -> ContentCatalog:
    """Load the catalog on first use; a failed load is retried next call."""
    global _catalog
    if _catalog is None:
        _catalog = load_catalog(get_settings().data_full_path)
    return _catalog


def _get_llm():
    return make_client(get_settings())


@app.on_event("startup")
async def startup():
    global _settings, _recent
    if _settings is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _recent = RecentCache(
        max_size=_settings.recent_cache_size,
        ttl_seconds=_settings.recent_cache_ttl_seconds,
    )
    try:
        get_catalog()
    except PipelineError as e:
        log.warning("Catalog not loaded at startup: %s", e)


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=400)


def _method_not_allowed() -> JSONResponse:
    return JSONResponse({"success": False, "error": "Method not allowed"}, status_code=405)


async def _read_object(request: Request) -> dict | JSONResponse:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        return _bad_request("Request body is not valid JSON")
    if not isinstance(body, dict):
        return _bad_request("Request body must be a JSON object")
    return body


def _parse_generation_request(body: dict) -> GenerationRequest | str:
    """Return a GenerationRequest, or an error message for a 400."""
    length_key = body.get("lengthKey")
    if length_key is not None and not isinstance(length_key, str):
        return "lengthKey must be a string"

    levels = body.get("levels")
    if levels is None:
        levels = []
    if not isinstance(levels, list) or not all(isinstance(lv, str) for lv in levels):
        return "levels must be a list of strings"
    unknown = [lv for lv in levels if lv not in VALID_LEVELS]
    if unknown:
        return f"Unknown level(s): {', '.join(unknown)}"

    category = body.get("preferredCategory")
    if category is not None and not isinstance(category, str):
        return "preferredCategory must be a string"

    kind = body.get("type")
    custom_prompt = None
    if kind is not None:
        if kind != "custom":
            return f"Unknown request type: {kind!r}"
        custom_prompt = body.get("prompt")
        if not isinstance(custom_prompt, str) or not custom_prompt.strip():
            return "type 'custom' requires a non-empty prompt"

    return GenerationRequest(
        length_key=length_key or None,
        levels=levels,
        preferred_category=category or None,
        custom_prompt=custom_prompt,
    )


# ── API: Reading generation ──────────────────────────────────────────────

@app.post("/api/generate-reading")
async def api_generate_reading(request: Request):
    body = await _read_object(request)
    if isinstance(body, JSONResponse):
        return body
    parsed = _parse_generation_request(body)
    if isinstance(parsed, str):
        return _bad_request(parsed)

    result = await generate_reading(
        _get_llm(),
        parsed,
        get_catalog,
        get_settings(),
        recent=get_recent(),
    )
    return result.to_dict()


@app.api_route("/api/generate-reading", methods=REJECTED_METHODS)
async def api_generate_reading_other():
    return _method_not_allowed()


# ── API: Analysis ────────────────────────────────────────────────────────

@app.post("/api/analyze")
async def api_analyze(request: Request):
    body = await _read_object(request)
    if isinstance(body, JSONResponse):
        return body
    problem_data = body.get("problem")
    if not isinstance(problem_data, dict):
        return _bad_request("Problem data is required")
    metadata = body.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        return _bad_request("metadata must be an object")
    try:
        validate_structure(problem_data)
    except SchemaViolation as e:
        return _bad_request(f"Invalid problem: {e}")

    problem = GeneratedProblem.from_dict(problem_data)
    try:
        analysis = await analyze_problem(_get_llm(), problem, metadata, get_settings())
    except PipelineError as e:
        log.warning("Analysis failed (%s): %s", e.kind, e)
        return {"success": False, "error": str(e)}
    return {"success": True, "analysis": analysis}


@app.api_route("/api/analyze", methods=REJECTED_METHODS)
async def api_analyze_other():
    return _method_not_allowed()


# ── API: Catalog documents ───────────────────────────────────────────────

@app.get("/api/config")
async def api_config(type: str = ""):
    if type not in CATALOG_FILES:
        return _bad_request(f"Unknown config type {type!r}; expected one of {', '.join(CATALOG_FILES)}")
    try:
        catalog = get_catalog()
    except PipelineError as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "data": catalog.raw(type)}


@app.get("/api/health")
async def api_health():
    s = get_settings()
    try:
        catalog_status = {"loaded": True, **get_catalog().stats()}
    except PipelineError as e:
        catalog_status = {"loaded": False, "error": str(e)}
    return {
        "status": "ok",
        "provider": f"{s.llm_provider}/{s.llm_model}",
        "catalog": catalog_status,
    }
