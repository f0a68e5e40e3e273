from __future__ import annotations

import logging
import os
import time

from jlpt_reader.errors import AuthError, RateLimited, UpstreamError
from jlpt_reader.providers.base import CompletionClient, CompletionOptions

log = logging.getLogger("jlpt_reader.llm")


class OpenAIProvider(CompletionClient):
    def __init__(self, model: str = "gpt-4o-mini"):
        import openai
        self._openai = openai
        self.client = openai.AsyncOpenAI(
            api_key=os.environ.get("OPENAI_API_KEY", ""),
        )
        self.model = model

    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        openai = self._openai
        messages = []
        if options.system_instruction:
            messages.append({"role": "system", "content": options.system_instruction})
        messages.append({"role": "user", "content": prompt})

        t0 = time.monotonic()
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                temperature=options.temperature,
                max_tokens=options.max_output_tokens,
                messages=messages,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise AuthError(f"openai rejected credentials: {e}") from e
        except openai.RateLimitError as e:
            raise RateLimited(f"openai rate limit: {e}") from e
        except openai.OpenAIError as e:
            raise UpstreamError(f"openai request failed: {e}") from e

        content = resp.choices[0].message.content if resp.choices else None
        if not content:
            raise UpstreamError("openai returned no content")
        log.info("openai/%s answered in %.1fs", self.model, time.monotonic() - t0)
        return content

    def name(self) -> str:
        return f"openai/{self.model}"
