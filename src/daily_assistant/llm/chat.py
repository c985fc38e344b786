#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - Chat Completion Provider
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
OpenAI-compatible chat-completion provider.

POSTs a single user message to {base_url}/chat/completions with bearer
authentication and reads choices[0].message.content. When the reply has an
unexpected shape the raw body is returned instead of failing.
"""

import json
import logging
import time
from typing import Any, Optional

import requests

from .base import Completion, CompletionProvider, ProviderError, ResponseError, SamplingParams, TransportError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class ChatCompletionProvider(CompletionProvider):
    """
    Client for any endpoint speaking the chat/completions protocol.

    Attributes:
        base_url: API root, e.g. https://api.openai.com/v1
        api_key: Bearer token
        model: Model identifier sent in the request body
        provider: Provider id, used for logging and error attribution
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        provider: str = "openai",
        timeout: Optional[float] = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.provider = provider
        self.timeout = timeout
        self._session: Optional[requests.Session] = None

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def open(self) -> None:
        if self._session is not None:
            return
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }
        )
        logger.debug(f"Chat provider ready: {self.endpoint} model={self.model}")

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def build_payload(self, prompt: str, params: SamplingParams) -> dict:
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        payload.update(params.as_payload())
        return payload

    def complete(self, prompt: str, params: Optional[SamplingParams] = None) -> Completion:
        """
        Send one chat-completion request.

        Raises:
            TransportError: Transport failure (retryable)
            ResponseError: 429/5xx (retryable) or a body that is not JSON
            ProviderError: The endpoint returned an `error` object
        """
        self.open()
        params = params or SamplingParams()

        start = time.time()
        try:
            response = self._session.post(self.endpoint, json=self.build_payload(prompt, params), timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Request to {self.endpoint} failed: {e}", provider=self.provider, retryable=True)
        elapsed = time.time() - start

        text = response.text
        status = response.status_code

        if status in RETRYABLE_STATUS:
            raise ResponseError(
                f"HTTP {status} from {self.endpoint}: {text[:500]}",
                provider=self.provider,
                retryable=True,
                status_code=status,
            )

        try:
            body = json.loads(text)
        except ValueError as e:
            raise ResponseError(
                f"Invalid JSON from {self.endpoint} (HTTP {status}): {e}", provider=self.provider, status_code=status
            )

        if isinstance(body, dict) and body.get("error") is not None:
            raise ProviderError(json.dumps(body["error"], ensure_ascii=False), provider=self.provider, status_code=status)

        choice = _first_choice(body)
        content = _message_content(choice)
        if content is None:
            logger.warning("Unexpected chat-completion schema; returning raw body")
            content = text

        return Completion(
            text=content,
            model=self.model,
            provider=self.provider,
            finish_reason=(choice or {}).get("finish_reason") or "stop",
            total_tokens=_total_tokens(body),
            elapsed=elapsed,
        )


def _first_choice(body: Any) -> Optional[dict]:
    choices = body.get("choices") if isinstance(body, dict) else None
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return None


def _message_content(choice: Optional[dict]) -> Optional[str]:
    """choices[0].message.content if present and a string."""
    message = (choice or {}).get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


def _total_tokens(body: Any) -> int:
    usage = body.get("usage") if isinstance(body, dict) else None
    if not isinstance(usage, dict):
        return 0
    return usage.get("total_tokens") or 0
