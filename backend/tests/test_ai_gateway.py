from types import SimpleNamespace

import httpx
import openai
import pytest

from app.integrations.ai_gateway import AIGatewayClient, AIGatewayError
from app.utils.rate_limiter import GatewayRateLimiter, RateLimitConfig

MESSAGES = [{"role": "user", "content": "Hi"}]


def completion(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def status_error(cls, status_code):
    request = httpx.Request("POST", "https://gateway.test/v1/chat/completions")
    response = httpx.Response(status_code, request=request)
    return cls(f"Error code: {status_code}", response=response, body=None)


class FakeCompletions:
    def __init__(self, results):
        self.results = list(results)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def make_client(*results):
    completions = FakeCompletions(results)
    fake_openai = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    limiter = GatewayRateLimiter(RateLimitConfig(
        min_delay_between_calls=0,
        base_retry_delay=0,
        max_retries=2,
    ))
    client = AIGatewayClient(api_key="test-key", model="test-model", client=fake_openai, rate_limiter=limiter)
    return client, completions


async def test_complete_returns_first_choice_text():
    client, completions = make_client(completion("Rest and hydrate."))

    text = await client.complete(MESSAGES, temperature=0.7, max_tokens=500)

    assert text == "Rest and hydrate."
    assert completions.calls == [{
        "model": "test-model",
        "messages": MESSAGES,
        "temperature": 0.7,
        "max_tokens": 500,
    }]


async def test_optional_parameters_are_omitted():
    client, completions = make_client(completion("ok"))
    await client.complete(MESSAGES)
    assert set(completions.calls[0]) == {"model", "messages"}


async def test_empty_response_returns_none():
    client, _ = make_client(completion(""), SimpleNamespace(choices=[]))
    assert await client.complete(MESSAGES) is None
    assert await client.complete(MESSAGES) is None


async def test_http_error_maps_to_gateway_error():
    client, _ = make_client(status_error(openai.InternalServerError, 500))

    with pytest.raises(AIGatewayError) as exc_info:
        await client.complete(MESSAGES)

    assert exc_info.value.status_code == 500
    assert str(exc_info.value) == "AI API error: 500"


async def test_rate_limited_calls_are_retried():
    client, completions = make_client(
        status_error(openai.RateLimitError, 429),
        completion("after retry"),
    )

    assert await client.complete(MESSAGES) == "after retry"
    assert len(completions.calls) == 2


async def test_rate_limit_retries_are_bounded():
    client, completions = make_client(*[status_error(openai.RateLimitError, 429)] * 3)

    with pytest.raises(AIGatewayError) as exc_info:
        await client.complete(MESSAGES)

    assert exc_info.value.status_code == 429
    assert len(completions.calls) == 3



async def test_server_error_mentioning_429_is_not_retried():
    request = httpx.Request("POST", "https://gateway.test/v1/chat/completions")
    error = openai.InternalServerError(
        "upstream said: 429 rate limit exceeded",
        response=httpx.Response(500, request=request),
        body=None,
    )
    client, completions = make_client(error, completion("never reached"))

    with pytest.raises(AIGatewayError) as exc_info:
        await client.complete(MESSAGES)

    assert exc_info.value.status_code == 500
    assert len(completions.calls) == 1


async def test_limiter_falls_back_to_message_without_status_code():
    limiter = GatewayRateLimiter(RateLimitConfig(min_delay_between_calls=0, base_retry_delay=0))
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("Rate limit exceeded")
        return "ok"

    assert await limiter.execute_with_retry(flaky) == "ok"
    assert len(attempts) == 2

async def test_unconfigured_client():
    client = AIGatewayClient(api_key="")

    assert not client.is_configured
    with pytest.raises(AIGatewayError):
        await client.complete(MESSAGES)


def test_configured_client_builds_openai_sdk_client():
    client = AIGatewayClient(api_key="test-key", base_url="https://gateway.test/v1")

    assert client.is_configured
    assert isinstance(client._client, openai.AsyncOpenAI)


def test_shared_chat_limiter():
    assert GatewayRateLimiter.for_chat() is GatewayRateLimiter.for_chat()
