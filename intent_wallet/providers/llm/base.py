from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from pydantic import BaseModel
import time
import logging


class LLMMessage(BaseModel):
    """Standardized message format for LLM communication"""
    role: str  # "system", "user", "assistant"
    content: str


class LLMResponse(BaseModel):
    """Standardized response from LLM providers"""
    content: Optional[str] = None
    tokens_used: Optional[int] = None
    model: Optional[str] = None
    finish_reason: Optional[str] = None
    response_time_ms: Optional[float] = None


class LLMProvider(ABC):
    """Abstract base class for LLM providers"""

    name: str = "llm"

    def __init__(self, api_key: str, model: str, **kwargs):
        self.api_key = api_key
        self.model = model
        self.logger = logging.getLogger(f"{self.__class__.__name__}")
        self._setup_client(**kwargs)

    @abstractmethod
    def _setup_client(self, **kwargs) -> None:
        """Initialize the provider-specific client"""
        pass

    @abstractmethod
    async def generate_response(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False,
        **kwargs
    ) -> LLMResponse:
        """Generate a response from the LLM

        Args:
            messages: Conversation, system prompt first
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature
            json_mode: Ask the model for a single JSON object

        Returns:
            LLMResponse with the text content
        """
        pass

    async def health_check(self) -> Dict[str, Any]:
        """Check if the provider is healthy and responding"""
        try:
            start_time = time.time()
            response = await self.generate_response(
                messages=[LLMMessage(role="user", content="ping")],
                max_tokens=4,
                temperature=0,
            )
            return {
                "status": "healthy",
                "provider": self.name,
                "model": self.model,
                "response_time_ms": self._measure_time(start_time),
                "test_response_length": len(response.content or ""),
            }
        except LLMProviderAuthError:
            return {"status": "error", "provider": self.name, "model": self.model, "error": "Authentication failed"}
        except LLMProviderError as e:
            return {"status": "error", "provider": self.name, "model": self.model, "error": str(e)}

    async def aclose(self) -> None:
        """Release any pooled connections"""
        pass

    def _create_response(self, content: str, **metadata: Any) -> LLMResponse:
        """Helper method to create standardized responses"""
        return LLMResponse(
            content=content,
            model=self.model,
            **metadata
        )

    def _measure_time(self, start_time: float) -> float:
        """Helper to measure response time in milliseconds"""
        return (time.time() - start_time) * 1000


class LLMProviderError(Exception):
    """Base exception for LLM provider errors"""
    pass


class LLMProviderRateLimitError(LLMProviderError):
    """Raised when hitting rate limits"""
    pass


class LLMProviderAuthError(LLMProviderError):
    """Raised when authentication fails"""
    pass


class LLMProviderAPIError(LLMProviderError):
    """Raised when API request fails"""
    pass
