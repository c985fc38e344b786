#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - LLM Provider Factory
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Factory for creating chat-completion providers from configuration.

Every supported provider is reached through its OpenAI-compatible
chat/completions endpoint; the provider id only selects the default base URL.
An explicit base URL in the configuration always wins.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..config import AppConfig, Settings, get_settings
from .base import CompletionProvider, SamplingParams
from .chat import ChatCompletionProvider

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"

PROVIDER_BASE_URLS = {
    "openai": DEFAULT_BASE_URL,
    "deepseek": "https://api.deepseek.com/v1",
    "gemini": "https://generativelanguage.googleapis.com/v1beta/openai",
    "anthropic": "https://api.anthropic.com/v1",
}

TEMPERATURE = 0.7


@dataclass
class AIRequest:
    """Everything needed for one completion call."""

    provider: str
    api_key: str
    model: str
    prompt: str
    base_url: Optional[str] = None

    @classmethod
    def from_config(cls, config: AppConfig, prompt: str) -> "AIRequest":
        return cls(
            provider=config.provider,
            api_key=config.api_key,
            model=config.model,
            prompt=prompt,
            base_url=config.base_url,
        )


def resolve_base_url(provider: str, base_url: Optional[str] = None) -> str:
    """Explicit base URL, else the provider's default, else OpenAI's."""
    if base_url:
        return base_url
    url = PROVIDER_BASE_URLS.get((provider or "").lower())
    if url is None:
        logger.debug(f"No default endpoint for provider {provider!r}; using {DEFAULT_BASE_URL}")
        return DEFAULT_BASE_URL
    return url


def create_provider(
    provider: str,
    api_key: str,
    model: str,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> CompletionProvider:
    """
    Create a chat-completion provider instance.

    Args:
        provider: Provider id (openai, deepseek, gemini, anthropic, ...)
        api_key: Bearer token
        model: Model identifier
        base_url: Optional API root overriding the provider default
        timeout: Request timeout in seconds

    Returns:
        Configured CompletionProvider instance
    """
    if timeout is None:
        timeout = get_settings().http_timeout
    return ChatCompletionProvider(
        base_url=resolve_base_url(provider, base_url),
        api_key=api_key,
        model=model,
        provider=(provider or "openai").lower(),
        timeout=timeout,
    )


def call_ai(request: AIRequest, settings: Optional[Settings] = None) -> str:
    """
    Send the prompt and return the assistant's reply text.

    Transport failures and 429/5xx replies are retried with exponential
    backoff up to Settings.max_retries; an `error` payload is not retried.

    Raises:
        ProviderError: When the call ultimately fails
    """
    settings = settings or get_settings()
    provider = create_provider(
        provider=request.provider,
        api_key=request.api_key,
        model=request.model,
        base_url=request.base_url,
        timeout=settings.http_timeout,
    )

    with provider:
        completion = provider.complete_with_retry(
            request.prompt,
            SamplingParams(temperature=TEMPERATURE),
            max_retries=settings.max_retries,
            backoff=settings.retry_delay,
        )

    logger.info(
        f"AI reply from {completion.provider}/{completion.model}: "
        f"{len(completion.text)} chars, {completion.total_tokens} tokens in {completion.elapsed:.2f}s"
    )
    if completion.hit_token_limit:
        logger.warning("AI reply stopped at the token limit")
    return completion.text
