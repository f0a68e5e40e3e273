from __future__ import annotations

import logging
import os
import time

from jlpt_reader.errors import AuthError, RateLimited, UpstreamError
from jlpt_reader.providers.base import CompletionClient, CompletionOptions

log = logging.getLogger("jlpt_reader.llm")


class AnthropicProvider(CompletionClient):
    def __init__(self, model: str = "claude-sonnet-4-20250514"):
        import anthropic
        self._anthropic = anthropic
        self.client = anthropic.AsyncAnthropic(
            api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
        )
        self.model = model

    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        anthropic = self._anthropic
        kwargs = {
            "model": self.model,
            "max_tokens": options.max_output_tokens,
            "temperature": options.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if options.system_instruction:
            kwargs["system"] = options.system_instruction

        t0 = time.monotonic()
        try:
            message = await self.client.messages.create(**kwargs)
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise AuthError(f"anthropic rejected credentials: {e}") from e
        except anthropic.RateLimitError as e:
            raise RateLimited(f"anthropic rate limit: {e}") from e
        except anthropic.APIError as e:
            raise UpstreamError(f"anthropic request failed: {e}") from e

        text = "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        )
        if not text:
            raise UpstreamError("anthropic returned no text content")
        log.info("anthropic/%s answered in %.1fs (stop=%s)",
                 self.model, time.monotonic() - t0, message.stop_reason)
        return text

    def name(self) -> str:
        return f"anthropic/{self.model}"
