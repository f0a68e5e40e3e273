"""Failure classes of the generation pipeline.

Every one of these is recoverable at the request boundary: the route turns
it into a canned fallback problem instead of an HTTP error.
"""
from __future__ import annotations


class PipelineError(Exception):
    """Base class for anything that sends a request down the fallback path."""

    kind = "pipeline_error"


class ConfigLoadError(PipelineError):
    kind = "config_load_error"


class CompletionError(PipelineError):
    kind = "completion_error"


class AuthError(CompletionError):
    kind = "auth_error"


class RateLimited(CompletionError):
    kind = "rate_limited"


class UpstreamError(CompletionError):
    kind = "upstream_error"


class MalformedResponse(PipelineError):
    kind = "malformed_response"


class SchemaViolation(PipelineError):
    kind = "schema_violation"

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        super().__init__("; ".join(self.violations) or "schema violation")
