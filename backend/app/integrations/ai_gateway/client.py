"""
AI Gateway Client

Thin wrapper around an OpenAI-compatible chat-completion gateway. The gateway
fronts hosted models (Gemini by default) behind the OpenAI wire format, so the
official ``openai`` SDK is used with a custom base URL.
"""
import logging
from typing import Optional, List, Dict, Any

import openai
from openai import AsyncOpenAI

from app.config import settings
from app.utils.rate_limiter import GatewayRateLimiter


logger = logging.getLogger(__name__)


class AIGatewayError(Exception):
    """Raised when the gateway rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AIGatewayClient:
    """
    Chat-completion client for the AI gateway.

    A client without an API key is "unconfigured": callers check
    ``is_configured`` and decide whether that is fatal (chat) or whether a
    fallback applies (report analysis).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        client: Any = None,
        rate_limiter: Optional[GatewayRateLimiter] = None,
    ):
        self.api_key = settings.AI_GATEWAY_API_KEY if api_key is None else api_key
        self.base_url = base_url or settings.AI_GATEWAY_BASE_URL
        self.model = model or settings.AI_MODEL
        self.rate_limiter = rate_limiter or GatewayRateLimiter.for_chat()

        self._client = client
        if self._client is None and self.api_key:
            # Retries are handled by the rate limiter
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                max_retries=0,
                timeout=60.0,
            )

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Optional[str]:
        """
        Run a chat completion and return the first choice's text.

        Returns None when the gateway answers without any content.

        Raises:
            AIGatewayError: not configured, HTTP error status, or transport failure
        """
        if not self.is_configured:
            raise AIGatewayError("AI gateway not configured")

        params: Dict[str, Any] = {"model": self.model, "messages": messages}
        if temperature is not None:
            params["temperature"] = temperature
        if max_tokens is not None:
            params["max_tokens"] = max_tokens

        try:
            response = await self.rate_limiter.execute_with_retry(
                self._client.chat.completions.create,
                **params
            )
        except openai.APIStatusError as e:
            logger.error(f"AI API error: {e.status_code} {e.message}")
            raise AIGatewayError(f"AI API error: {e.status_code}", status_code=e.status_code) from e
        except openai.APIError as e:
            logger.error(f"AI gateway request failed: {e}")
            raise AIGatewayError(f"AI gateway request failed: {e}") from e

        if not response.choices:
            return None
        return response.choices[0].message.content or None


def get_ai_client() -> AIGatewayClient:
    """FastAPI dependency providing a gateway client built from settings."""
    return AIGatewayClient()
