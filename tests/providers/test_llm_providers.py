"""
Tests for the OpenAI and Anthropic LLM providers and provider selection.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import anthropic
import httpx
import pytest

from intent_wallet.config import Settings
from intent_wallet.providers.llm import (
    AnthropicProvider,
    LLMMessage,
    LLMProviderAPIError,
    LLMProviderAuthError,
    LLMProviderError,
    LLMProviderRateLimitError,
    OpenAIProvider,
    canonical_provider_name,
    get_llm_provider,
)

MESSAGES = [
    LLMMessage(role="system", content="You are a Solana wallet assistant."),
    LLMMessage(role="user", content="swap 1 sol to usdc"),
]


def _openai(handler):
    return OpenAIProvider(api_key="sk-test", model="gpt-test", transport=httpx.MockTransport(handler))


# =============================================================================
# OpenAI
# =============================================================================

class TestOpenAIProvider:

    @pytest.mark.asyncio
    async def test_generate_response_json_mode(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.read())
            return httpx.Response(200, json={
                "choices": [{"message": {"content": '{"message": "ok"}'}, "finish_reason": "stop"}],
                "usage": {"total_tokens": 42},
            })

        provider = _openai(handler)
        response = await provider.generate_response(MESSAGES, max_tokens=100, temperature=0.2, json_mode=True)

        assert response.content == '{"message": "ok"}'
        assert response.tokens_used == 42
        assert response.model == "gpt-test"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["path"] == "/v1/chat/completions"
        assert seen["body"]["response_format"] == {"type": "json_object"}
        assert seen["body"]["messages"][0]["role"] == "system"
        await provider.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error", [
        (401, LLMProviderAuthError),
        (429, LLMProviderRateLimitError),
        (500, LLMProviderAPIError),
    ])
    async def test_status_errors_are_mapped(self, status, error):
        provider = _openai(lambda request: httpx.Response(status, text="nope"))

        with pytest.raises(error):
            await provider.generate_response(MESSAGES)

    @pytest.mark.asyncio
    async def test_missing_choices(self):
        provider = _openai(lambda request: httpx.Response(200, json={"choices": []}))

        with pytest.raises(LLMProviderError, match="missing choices"):
            await provider.generate_response(MESSAGES)

    @pytest.mark.asyncio
    async def test_health_check_reports_errors(self):
        provider = _openai(lambda request: httpx.Response(401, text="bad key"))

        health = await provider.health_check()

        assert health["status"] == "error"
        assert health["error"] == "Authentication failed"


# =============================================================================
# Anthropic
# =============================================================================

class TestAnthropicProvider:

    @pytest.fixture
    def provider(self):
        provider = AnthropicProvider(api_key="sk-ant-test", model="claude-test")
        provider.client = SimpleNamespace(messages=SimpleNamespace(create=AsyncMock()))
        return provider

    @pytest.mark.asyncio
    async def test_system_prompt_is_lifted_and_text_joined(self, provider):
        provider.client.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(type="text", text='{"message": '), SimpleNamespace(type="text", text='"hi"}')],
            usage=SimpleNamespace(output_tokens=7),
            stop_reason="end_turn",
        )

        response = await provider.generate_response(MESSAGES, json_mode=True)

        kwargs = provider.client.messages.create.await_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["max_tokens"] == 800
        assert kwargs["messages"] == [{"role": "user", "content": "swap 1 sol to usdc"}]
        assert kwargs["system"].startswith("You are a Solana wallet assistant.")
        assert kwargs["system"].endswith("Respond with a single JSON object and nothing else.")
        assert response.content == '{"message": "hi"}'
        assert response.tokens_used == 7
        assert response.finish_reason == "end_turn"

    @pytest.mark.asyncio
    async def test_empty_reply_is_an_error(self, provider):
        provider.client.messages.create.return_value = SimpleNamespace(content=[], usage=None, stop_reason=None)

        with pytest.raises(LLMProviderError, match="no text"):
            await provider.generate_response(MESSAGES)

    @pytest.mark.asyncio
    async def test_api_errors_are_wrapped(self, provider):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        provider.client.messages.create.side_effect = anthropic.APIConnectionError(request=request)

        with pytest.raises(LLMProviderAPIError):
            await provider.generate_response(MESSAGES)

    def test_model_is_required(self):
        with pytest.raises(ValueError):
            AnthropicProvider(api_key="sk-ant-test", model="")


# =============================================================================
# Selection
# =============================================================================

class TestProviderSelection:

    def test_aliases(self):
        assert canonical_provider_name("Claude") == "anthropic"
        assert canonical_provider_name("gpt") == "openai"
        assert canonical_provider_name("openai") == "openai"

    def test_configured_provider(self):
        settings = Settings(_env_file=None, llm_provider="claude", anthropic_api_key="sk-ant", anthropic_model="claude-test")

        provider = get_llm_provider(settings)

        assert isinstance(provider, AnthropicProvider)
        assert provider.model == "claude-test"

    def test_missing_key_means_no_provider(self):
        settings = Settings(_env_file=None, llm_provider="openai", openai_api_key="")
        assert get_llm_provider(settings) is None

    def test_unknown_provider(self):
        settings = Settings(_env_file=None, llm_provider="mistral")

        with pytest.raises(ValueError, match="Unsupported provider"):
            get_llm_provider(settings)
