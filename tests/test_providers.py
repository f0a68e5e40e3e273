"""Tests for completion providers and their error mapping."""
from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import pytest

from jlpt_reader.config import Settings
from jlpt_reader.errors import AuthError, RateLimited, UpstreamError
from jlpt_reader.providers.base import CompletionOptions, make_client
from jlpt_reader.providers.llm_ollama import OllamaProvider

OPTIONS = CompletionOptions(max_output_tokens=1234, temperature=0.5, system_instruction="システム")


def _ollama(handler) -> OllamaProvider:
    return OllamaProvider(base_url="http://ollama.test/", model="qwen3:8b",
                          transport=httpx.MockTransport(handler))


def _status_error(cls, status: int):
    request = httpx.Request("POST", "https://api.test/v1")
    return cls("error", response=httpx.Response(status, request=request), body=None)


class TestOllamaProvider:
    @pytest.mark.asyncio
    async def test_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": '{"passage": "本文"}', "eval_count": 10})

        text = await _ollama(handler).complete("プロンプト", OPTIONS)
        assert text == '{"passage": "本文"}'
        assert seen["url"] == "http://ollama.test/api/generate"
        assert seen["body"]["prompt"] == "プロンプト"
        assert seen["body"]["system"] == "システム"
        assert seen["body"]["stream"] is False
        assert seen["body"]["options"] == {"temperature": 0.5, "num_predict": 1234}

    @pytest.mark.asyncio
    async def test_no_system_instruction(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": "ok"})

        await _ollama(handler).complete("p", CompletionOptions())
        assert "system" not in seen["body"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, error", [
        (401, AuthError),
        (403, AuthError),
        (429, RateLimited),
        (500, UpstreamError),
        (404, UpstreamError),
    ])
    async def test_status_mapping(self, status, error):
        provider = _ollama(lambda request: httpx.Response(status, json={"error": "x"}))
        with pytest.raises(error):
            await provider.complete("p", OPTIONS)

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamError, match="unreachable"):
            await _ollama(handler).complete("p", OPTIONS)

    @pytest.mark.asyncio
    async def test_empty_response(self):
        provider = _ollama(lambda request: httpx.Response(200, json={"response": ""}))
        with pytest.raises(UpstreamError):
            await provider.complete("p", OPTIONS)

    @pytest.mark.asyncio
    async def test_invalid_json_body(self):
        provider = _ollama(lambda request: httpx.Response(200, content=b"not json"))
        with pytest.raises(UpstreamError):
            await provider.complete("p", OPTIONS)

    def test_name(self):
        assert OllamaProvider(model="qwen3:8b").name() == "ollama/qwen3:8b"


class FakeAnthropicMessages:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.result


class TestAnthropicProvider:
    def _provider(self, messages):
        from jlpt_reader.providers.llm_anthropic import AnthropicProvider

        provider = AnthropicProvider(model="claude-test")
        provider.client = SimpleNamespace(messages=messages)
        return provider

    @pytest.mark.asyncio
    async def test_success(self):
        message = SimpleNamespace(
            content=[SimpleNamespace(type="text", text='{"passage": "本文"}')],
            stop_reason="end_turn",
        )
        messages = FakeAnthropicMessages(result=message)
        text = await self._provider(messages).complete("プロンプト", OPTIONS)

        assert text == '{"passage": "本文"}'
        assert messages.kwargs["system"] == "システム"
        assert messages.kwargs["max_tokens"] == 1234
        assert messages.kwargs["temperature"] == 0.5
        assert messages.kwargs["model"] == "claude-test"

    @pytest.mark.asyncio
    async def test_error_mapping(self):
        import anthropic

        cases = [
            (_status_error(anthropic.AuthenticationError, 401), AuthError),
            (_status_error(anthropic.RateLimitError, 429), RateLimited),
            (_status_error(anthropic.InternalServerError, 500), UpstreamError),
            (anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.test")), UpstreamError),
        ]
        for sdk_error, expected in cases:
            provider = self._provider(FakeAnthropicMessages(error=sdk_error))
            with pytest.raises(expected):
                await provider.complete("p", OPTIONS)

    @pytest.mark.asyncio
    async def test_no_text_blocks(self):
        message = SimpleNamespace(content=[], stop_reason="max_tokens")
        with pytest.raises(UpstreamError):
            await self._provider(FakeAnthropicMessages(result=message)).complete("p", OPTIONS)

    def test_name(self):
        from jlpt_reader.providers.llm_anthropic import AnthropicProvider

        assert AnthropicProvider(model="claude-test").name() == "anthropic/claude-test"


class FakeOpenAICompletions:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.result


class TestOpenAIProvider:
    def _provider(self, completions):
        from jlpt_reader.providers.llm_openai import OpenAIProvider

        provider = OpenAIProvider(model="gpt-test")
        provider.client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        return provider

    @pytest.mark.asyncio
    async def test_success(self):
        resp = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="答え"))])
        completions = FakeOpenAICompletions(result=resp)
        assert await self._provider(completions).complete("プロンプト", OPTIONS) == "答え"
        assert completions.kwargs["messages"][0] == {"role": "system", "content": "システム"}
        assert completions.kwargs["messages"][1] == {"role": "user", "content": "プロンプト"}
        assert completions.kwargs["max_tokens"] == 1234

    @pytest.mark.asyncio
    async def test_error_mapping(self):
        import openai

        cases = [
            (_status_error(openai.AuthenticationError, 401), AuthError),
            (_status_error(openai.PermissionDeniedError, 403), AuthError),
            (_status_error(openai.RateLimitError, 429), RateLimited),
            (_status_error(openai.InternalServerError, 500), UpstreamError),
        ]
        for sdk_error, expected in cases:
            provider = self._provider(FakeOpenAICompletions(error=sdk_error))
            with pytest.raises(expected):
                await provider.complete("p", OPTIONS)

    @pytest.mark.asyncio
    async def test_empty_choices(self):
        with pytest.raises(UpstreamError):
            await self._provider(FakeOpenAICompletions(result=SimpleNamespace(choices=[]))).complete("p", OPTIONS)


class TestMakeClient:
    def test_ollama(self):
        settings = Settings(llm_provider="ollama", llm_model="qwen3:8b", ollama_url="http://gpu:11434")
        client = make_client(settings)
        assert isinstance(client, OllamaProvider)
        assert client.base_url == "http://gpu:11434"
        assert client.name() == "ollama/qwen3:8b"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="gemini"):
            make_client(Settings(llm_provider="gemini"))
