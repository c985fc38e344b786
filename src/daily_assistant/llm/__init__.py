#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - LLM Gateway
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
LLM gateway.

Sends the composed prompt to an OpenAI-compatible chat/completions endpoint.
Use call_ai() for the one-shot request/reply path.
"""

from .base import Completion, CompletionProvider, ProviderError, ResponseError, SamplingParams, TransportError
from .chat import ChatCompletionProvider
from .factory import (
    DEFAULT_BASE_URL,
    PROVIDER_BASE_URLS,
    AIRequest,
    call_ai,
    create_provider,
    resolve_base_url,
)

__all__ = [
    "CompletionProvider",
    "Completion",
    "SamplingParams",
    "ProviderError",
    "ResponseError",
    "TransportError",
    "ChatCompletionProvider",
    "AIRequest",
    "call_ai",
    "create_provider",
    "resolve_base_url",
    "DEFAULT_BASE_URL",
    "PROVIDER_BASE_URLS",
]
