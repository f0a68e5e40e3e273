from __future__ import annotations

import logging
import time

import httpx

from jlpt_reader.errors import AuthError, RateLimited, UpstreamError
from jlpt_reader.providers.base import CompletionClient, CompletionOptions

log = logging.getLogger("jlpt_reader.llm")


class OllamaProvider(CompletionClient):
    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "qwen3:8b",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._transport = transport

    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        body: dict = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "think": False,
            "options": {
                "temperature": options.temperature,
                "num_predict": options.max_output_tokens,
            },
        }
        if options.system_instruction:
            body["system"] = options.system_instruction

        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(f"{self.base_url}/api/generate", json=body)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (401, 403):
                raise AuthError(f"ollama refused request ({status})") from e
            if status == 429:
                raise RateLimited("ollama rate limit (429)") from e
            raise UpstreamError(f"ollama returned {status}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"ollama unreachable: {e}") from e
        except ValueError as e:
            raise UpstreamError(f"ollama sent invalid JSON: {e}") from e

        response = data.get("response") if isinstance(data, dict) else None
        if not response:
            raise UpstreamError("ollama returned an empty response")
        log.info("ollama/%s answered in %.1fs (%s tokens)",
                 self.model, time.monotonic() - t0, data.get("eval_count", "?"))
        return response

    def name(self) -> str:
        return f"ollama/{self.model}"
