#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - Completion Gateway Interface
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Contract shared by completion gateways.

A gateway takes one prompt and returns one Completion. Failures are raised as
ProviderError; the `retryable` flag tells complete_with_retry() whether
another attempt can help.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """A completion request failed."""

    def __init__(self, message: str, provider: str, retryable: bool = False, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.retryable = retryable
        self.status_code = status_code


class TransportError(ProviderError):
    """The endpoint could not be reached (DNS, refused, timeout)."""


class ResponseError(ProviderError):
    """The endpoint answered, but not with a usable reply."""


@dataclass
class SamplingParams:
    """Sampling knobs copied into the request body."""

    temperature: float = 0.7

    def as_payload(self) -> dict:
        return {"temperature": self.temperature}


@dataclass
class Completion:
    """
    One assistant reply.

    Attributes:
        text: Reply content (or the raw body when the schema was unexpected)
        model: Model that produced it
        provider: Provider id
        finish_reason: 'stop', 'length', ...
        total_tokens: Usage reported by the endpoint, 0 if absent
        elapsed: Seconds spent waiting for the reply
    """

    text: str
    model: str = ""
    provider: str = ""
    finish_reason: str = "stop"
    total_tokens: int = 0
    elapsed: float = 0.0

    @property
    def hit_token_limit(self) -> bool:
        return self.finish_reason == "length"


class CompletionProvider(ABC):
    """Base for gateways; subclasses own their HTTP session."""

    provider: str = "base"

    @abstractmethod
    def open(self) -> None:
        """Acquire the session."""

    @abstractmethod
    def close(self) -> None:
        """Release the session."""

    @abstractmethod
    def complete(self, prompt: str, params: Optional[SamplingParams] = None) -> Completion:
        """
        Send one prompt and return the reply.

        Raises:
            TransportError: Endpoint unreachable
            ResponseError: Unusable reply
            ProviderError: Endpoint reported an error
        """

    def complete_with_retry(
        self,
        prompt: str,
        params: Optional[SamplingParams] = None,
        max_retries: int = 2,
        backoff: float = 2.0,
    ) -> Completion:
        """
        Call complete(), retrying retryable failures with exponential backoff.

        The first retry waits `backoff` seconds, each later one twice as long.
        Non-retryable errors and the last failure propagate unchanged.
        """
        attempt = 0
        while True:
            try:
                return self.complete(prompt, params)
            except ProviderError as e:
                if not e.retryable or attempt >= max_retries:
                    raise
                wait = backoff * (2**attempt)
                attempt += 1
                logger.warning(f"{self.provider} completion failed ({e}); retry {attempt}/{max_retries} in {wait:.1f}s")
                time.sleep(wait)

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
