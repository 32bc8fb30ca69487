"""
Rate limiter for AI gateway calls.

Provides:
- Semaphore-based concurrency control
- Sliding one-minute request window
- Exponential backoff when the gateway answers 429
"""

import asyncio
import logging
import time
from typing import Callable, Any, Optional
from dataclasses import dataclass


logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""
    max_concurrent: int = 3  # Max concurrent gateway calls
    requests_per_minute: int = 50
    min_delay_between_calls: float = 0.1  # Seconds
    max_retries: int = 3  # Retries on 429 only
    base_retry_delay: float = 1.0  # Base delay for exponential backoff


def _is_rate_limited(error: Exception) -> bool:
    status_code = getattr(error, "status_code", None)
    if status_code is not None:
        return status_code == 429
    error_str = str(error).lower()
    return "429" in error_str or "rate limit" in error_str


class GatewayRateLimiter:
    """
    Rate limiter shared by every chat-completion call.

    Example:
        limiter = GatewayRateLimiter.for_chat()
        text = await limiter.execute_with_retry(client.complete, messages)
    """

    _chat_instance: Optional["GatewayRateLimiter"] = None

    def __init__(self, config: RateLimitConfig = None):
        self.config = config or RateLimitConfig()
        self._semaphore = asyncio.Semaphore(self.config.max_concurrent)
        self._last_request_time = 0.0
        self._request_times: list[float] = []
        self._lock = asyncio.Lock()

    @classmethod
    def for_chat(cls) -> "GatewayRateLimiter":
        """Get the process-wide limiter for chat completions."""
        if cls._chat_instance is None:
            cls._chat_instance = cls(RateLimitConfig(
                max_concurrent=3,
                requests_per_minute=50,
                min_delay_between_calls=0.2
            ))
        return cls._chat_instance

    @classmethod
    def reset_instances(cls):
        """Drop the shared limiter (tests create a fresh one per event loop)."""
        cls._chat_instance = None

    async def _wait_for_slot(self):
        """Wait until the per-minute window and minimum spacing allow a call."""
        async with self._lock:
            now = time.monotonic()

            self._request_times = [
                t for t in self._request_times
                if now - t < 60
            ]

            if len(self._request_times) >= self.config.requests_per_minute:
                oldest = self._request_times[0]
                wait_time = 60 - (now - oldest) + 0.1
                if wait_time > 0:
                    logger.info(f"Gateway rate limit reached, waiting {wait_time:.1f}s")
                    await asyncio.sleep(wait_time)

            time_since_last = now - self._last_request_time
            if time_since_last < self.config.min_delay_between_calls:
                await asyncio.sleep(
                    self.config.min_delay_between_calls - time_since_last
                )

            self._last_request_time = time.monotonic()
            self._request_times.append(self._last_request_time)

    async def execute_with_retry(
        self,
        func: Callable[..., Any],
        *args,
        **kwargs
    ) -> Any:
        """
        Execute an async callable under the limiter.

        Only rate-limit errors are retried; anything else propagates at once.
        """
        last_exception = None

        for attempt in range(self.config.max_retries + 1):
            try:
                async with self._semaphore:
                    await self._wait_for_slot()
                    return await func(*args, **kwargs)
            except Exception as e:
                last_exception = e

                if _is_rate_limited(e) and attempt < self.config.max_retries:
                    delay = self.config.base_retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Gateway rate limited (attempt {attempt + 1}), retrying in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                    continue

                raise

        raise last_exception
