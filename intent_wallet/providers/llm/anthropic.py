import time
from typing import Any, Dict, List, Optional

import anthropic
from anthropic import AsyncAnthropic

from .base import (
    LLMMessage,
    LLMProvider,
    LLMProviderAPIError,
    LLMProviderAuthError,
    LLMProviderError,
    LLMProviderRateLimitError,
    LLMResponse,
)

JSON_INSTRUCTION = "Respond with a single JSON object and nothing else."


class AnthropicProvider(LLMProvider):
    """Anthropic Claude LLM Provider implementation"""

    name = "anthropic"

    def __init__(self, api_key: str, model: Optional[str] = None, **kwargs):
        if not model:
            raise ValueError("AnthropicProvider requires a model to be specified")
        super().__init__(api_key, model, **kwargs)

    def _setup_client(self, **kwargs) -> None:
        """Initialize the Anthropic client"""
        self.client = AsyncAnthropic(api_key=self.api_key, timeout=kwargs.get("timeout", 60.0))

    def _build_request(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int],
        temperature: Optional[float],
        json_mode: bool,
    ) -> Dict[str, Any]:
        system_parts = [m.content for m in messages if m.role == "system"]
        if json_mode:
            system_parts.append(JSON_INSTRUCTION)

        request_params: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages if m.role != "system"],
            "max_tokens": max_tokens or 800,
        }
        if system_parts:
            request_params["system"] = "\n\n".join(system_parts)
        if temperature is not None:
            request_params["temperature"] = temperature
        return request_params

    async def generate_response(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False,
        **kwargs
    ) -> LLMResponse:
        """Generate a response from Claude"""
        start_time = time.time()
        request_params = self._build_request(messages, max_tokens, temperature, json_mode)
        request_params.update(kwargs)

        try:
            response = await self.client.messages.create(**request_params)
        except anthropic.AuthenticationError as e:
            self.logger.error("Anthropic authentication failed: %s", e)
            raise LLMProviderAuthError(f"Authentication failed: {e}") from e
        except anthropic.RateLimitError as e:
            raise LLMProviderRateLimitError(f"Rate limit exceeded: {e}") from e
        except anthropic.APIError as e:
            self.logger.error("Anthropic API error: %s", e)
            raise LLMProviderAPIError(f"API error: {e}") from e

        content = "".join(block.text for block in response.content or [] if getattr(block, "type", None) == "text")
        if not content:
            raise LLMProviderError("Anthropic response contained no text")

        usage = getattr(response, "usage", None)
        return self._create_response(
            content=content,
            tokens_used=usage.output_tokens if usage is not None else None,
            finish_reason=getattr(response, "stop_reason", None),
            response_time_ms=self._measure_time(start_time),
        )

    async def aclose(self) -> None:
        await self.client.close()
