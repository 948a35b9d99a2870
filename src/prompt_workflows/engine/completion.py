"""
Completion service: the external text-generation backend.

Prompt and Loop nodes call ``CompletionService.complete``. The engine treats
every failure as fatal for the current run and never retries; retry with
exponential backoff lives entirely inside the service implementations here,
driven by each provider's ``max_retries`` / ``retry_delay``.

Implementations:
- OpenAICompletionService: official AsyncOpenAI client (also works with
  OpenAI-compatible servers via ``api_url``)
- AnthropicCompletionService: Messages API over httpx
- RoutingCompletionService: picks a provider by model-name prefix

Provider exceptions are translated into the ExternalServiceError family so
callers see one error vocabulary regardless of backend.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from .exceptions import (
    ExternalServiceError,
    ProviderServiceError,
    RateLimitServiceError,
    TimeoutServiceError,
)
from .llm_config import EngineConfig, ModelPricing, ProviderConfig

logger = logging.getLogger(__name__)


class CompletionResult(BaseModel):
    """Text produced by the completion service plus usage accounting."""

    content: str
    tokens_used: int = Field(default=0, ge=0)
    cost: float = Field(default=0.0, ge=0.0)
    model: str | None = None
    provider: str | None = None
    finish_reason: str | None = None


class CompletionService(ABC):
    """Interface consumed by generation-bearing node executors."""

    @abstractmethod
    async def complete(
        self,
        text: str,
        model: str,
        temperature: float,
        max_tokens: int,
        user: str | None = None,
    ) -> CompletionResult:
        """
        Generate a completion for ``text``.

        Raises:
            ExternalServiceError: Timeout, rate limit or provider fault after
                the service's own retries are exhausted
        """


async def call_with_retries(
    call: Callable[[], Awaitable[CompletionResult]],
    provider: ProviderConfig,
    provider_name: str,
) -> CompletionResult:
    """
    Run ``call`` with exponential backoff on retryable ExternalServiceErrors.

    Non-retryable errors and the final attempt's error propagate unchanged.
    """
    for attempt in range(provider.max_retries):
        try:
            return await call()
        except ExternalServiceError as e:
            if not e.retryable or attempt == provider.max_retries - 1:
                raise
            delay = provider.retry_delay * (2**attempt)
            logger.warning(
                f"{provider_name} request failed ({e}); "
                f"retry {attempt + 1}/{provider.max_retries - 1} in {delay:.1f}s"
            )
            await asyncio.sleep(delay)

    # max_retries >= 1, so the loop always returns or raises
    raise ProviderServiceError("Completion failed without an attempt", provider=provider_name)


def _cost(pricing: ModelPricing | None, prompt_tokens: int, completion_tokens: int) -> float:
    if pricing is None:
        return 0.0
    return pricing.cost(prompt_tokens, completion_tokens)


# ===========================================================================
# OpenAI
# ===========================================================================


class OpenAICompletionService(CompletionService):
    """Chat completions through the official AsyncOpenAI client."""

    provider_name = "openai"

    def __init__(
        self,
        provider: ProviderConfig,
        pricing: Callable[[str], ModelPricing | None] | None = None,
    ):
        self.provider = provider
        self._pricing = pricing or (lambda model: None)

    async def complete(
        self,
        text: str,
        model: str,
        temperature: float,
        max_tokens: int,
        user: str | None = None,
    ) -> CompletionResult:
        return await call_with_retries(
            lambda: self._complete_once(text, model, temperature, max_tokens, user),
            self.provider,
            self.provider_name,
        )

    async def _complete_once(
        self,
        text: str,
        model: str,
        temperature: float,
        max_tokens: int,
        user: str | None,
    ) -> CompletionResult:
        client_kwargs: dict[str, Any] = {
            "api_key": self.provider.resolve_api_key() or "sk-no-key-required",
            "timeout": self.provider.timeout,
            "max_retries": 0,  # retries handled by call_with_retries
        }
        if self.provider.api_url:
            base_url = self.provider.api_url
            if base_url.endswith("/chat/completions"):
                base_url = base_url.rsplit("/chat/completions", 1)[0]
            client_kwargs["base_url"] = base_url

        completion_kwargs: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": text}],
            "max_completion_tokens": max_tokens,
        }
        # reasoning models reject sampling parameters
        if not any(p in model.lower() for p in ("o1-", "o3-", "o4-", "gpt-5")):
            completion_kwargs["temperature"] = temperature
        if user:
            completion_kwargs["user"] = user

        try:
            async with AsyncOpenAI(**client_kwargs) as client:
                try:
                    response = await client.chat.completions.create(**completion_kwargs)
                except openai.BadRequestError as e:
                    # older models only understand max_tokens
                    if "max_completion_tokens" not in str(e):
                        raise
                    completion_kwargs["max_tokens"] = completion_kwargs.pop(
                        "max_completion_tokens"
                    )
                    response = await client.chat.completions.create(**completion_kwargs)
        except openai.APITimeoutError as e:
            raise TimeoutServiceError(f"OpenAI request timed out: {e}", provider="openai")
        except openai.RateLimitError as e:
            raise RateLimitServiceError(f"OpenAI rate limit: {e}", provider="openai")
        except openai.APIConnectionError as e:
            raise ProviderServiceError(
                f"OpenAI connection error: {e}", provider="openai", retryable=True
            )
        except openai.APIStatusError as e:
            raise ProviderServiceError(
                f"OpenAI API error {e.status_code}: {e.message}",
                provider="openai",
                retryable=e.status_code >= 500,
            )

        message = response.choices[0].message
        if message.content is None:
            if getattr(message, "refusal", None):
                raise ProviderServiceError(
                    f"OpenAI refused request: {message.refusal}", provider="openai"
                )
            raise ProviderServiceError("OpenAI returned null content", provider="openai")

        prompt_tokens = response.usage.prompt_tokens if response.usage else 0
        completion_tokens = response.usage.completion_tokens if response.usage else 0
        return CompletionResult(
            content=message.content,
            tokens_used=prompt_tokens + completion_tokens,
            cost=_cost(self._pricing(model), prompt_tokens, completion_tokens),
            model=response.model,
            provider=self.provider_name,
            finish_reason=response.choices[0].finish_reason,
        )


# ===========================================================================
# Anthropic
# ===========================================================================


class AnthropicCompletionService(CompletionService):
    """Anthropic Messages API over httpx."""

    provider_name = "anthropic"
    default_url = "https://api.anthropic.com/v1/messages"

    def __init__(
        self,
        provider: ProviderConfig,
        pricing: Callable[[str], ModelPricing | None] | None = None,
    ):
        self.provider = provider
        self._pricing = pricing or (lambda model: None)

    async def complete(
        self,
        text: str,
        model: str,
        temperature: float,
        max_tokens: int,
        user: str | None = None,
    ) -> CompletionResult:
        return await call_with_retries(
            lambda: self._complete_once(text, model, temperature, max_tokens, user),
            self.provider,
            self.provider_name,
        )

    async def _complete_once(
        self,
        text: str,
        model: str,
        temperature: float,
        max_tokens: int,
        user: str | None,
    ) -> CompletionResult:
        body: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": text}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if user:
            body["metadata"] = {"user_id": user}

        headers = {
            "Content-Type": "application/json",
            "anthropic-version": "2023-06-01",
        }
        api_key = self.provider.resolve_api_key()
        if api_key:
            headers["x-api-key"] = api_key

        try:
            async with httpx.AsyncClient(timeout=self.provider.timeout) as client:
                response = await client.post(
                    self.provider.api_url or self.default_url, json=body, headers=headers
                )
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise TimeoutServiceError(f"Anthropic request timed out: {e}", provider="anthropic")
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 429:
                raise RateLimitServiceError(f"Anthropic rate limit: {e}", provider="anthropic")
            raise ProviderServiceError(
                f"Anthropic API error {status}: {e.response.text}",
                provider="anthropic",
                retryable=status >= 500,
            )
        except httpx.NetworkError as e:
            raise ProviderServiceError(
                f"Anthropic network error: {e}", provider="anthropic", retryable=True
            )

        data = response.json()
        blocks = data.get("content") or []
        parts = [block.get("text") for block in blocks if block.get("text") is not None]
        if not parts:
            raise ProviderServiceError("Anthropic returned no text content", provider="anthropic")

        usage = data.get("usage") or {}
        prompt_tokens = int(usage.get("input_tokens", 0))
        completion_tokens = int(usage.get("output_tokens", 0))
        return CompletionResult(
            content="".join(parts),
            tokens_used=prompt_tokens + completion_tokens,
            cost=_cost(self._pricing(model), prompt_tokens, completion_tokens),
            model=data.get("model", model),
            provider=self.provider_name,
            finish_reason=data.get("stop_reason"),
        )


# ===========================================================================
# Routing
# ===========================================================================

PROVIDER_TYPES: Mapping[str, type[OpenAICompletionService] | type[AnthropicCompletionService]] = {
    "openai": OpenAICompletionService,
    "anthropic": AnthropicCompletionService,
}


class RoutingCompletionService(CompletionService):
    """
    Dispatches to a provider service chosen by model-name prefix.

    ``gpt-4o`` goes to the provider routed for ``gpt-``, ``claude-3-5-sonnet``
    to the one routed for ``claude-``; unmatched models use
    ``config.default_provider``.
    """

    def __init__(
        self,
        config: EngineConfig,
        services: Mapping[str, CompletionService] | None = None,
    ):
        self.config = config
        if services is None:
            services = {
                name: PROVIDER_TYPES[provider.type](provider, config.pricing_for_model)
                for name, provider in config.providers.items()
                if provider.type in PROVIDER_TYPES
            }
        self.services = dict(services)

    async def complete(
        self,
        text: str,
        model: str,
        temperature: float,
        max_tokens: int,
        user: str | None = None,
    ) -> CompletionResult:
        provider_name = self.config.provider_for_model(model)
        service = self.services.get(provider_name)
        if service is None:
            raise ProviderServiceError(
                f"Provider not found for model: {model}", provider=provider_name
            )

        try:
            return await service.complete(text, model, temperature, max_tokens, user=user)
        except ExternalServiceError as e:
            logger.error(f"Completion failed ({provider_name}, {model}): {e}")
            raise


__all__ = [
    "CompletionResult",
    "CompletionService",
    "call_with_retries",
    "OpenAICompletionService",
    "AnthropicCompletionService",
    "RoutingCompletionService",
]
