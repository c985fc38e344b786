#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - Feishu Notifier
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Delivers the report as a Feishu (Lark) bot message.

Three dependent steps: obtain a tenant access token, resolve the recipient's
email to an open id, send a text message. Any failing step aborts the send;
there is no partial success. Transport errors and 429/5xx replies are retried
a bounded number of times with exponential backoff.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

import requests

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

TOKEN_PATH = "/auth/v3/tenant_access_token/internal"
BATCH_GET_ID_PATH = "/contact/v3/users/batch_get_id?user_id_type=open_id"
SEND_MESSAGE_PATH = "/im/v1/messages?receive_id_type=open_id"

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class NotifierError(Exception):
    """Base exception for delivery failures."""

    def __init__(self, message: str, step: str, retryable: bool = False):
        super().__init__(message)
        self.step = step
        self.retryable = retryable


class AuthError(NotifierError):
    """Tenant access token could not be obtained."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message, step="auth", retryable=retryable)


class RecipientNotFoundError(NotifierError):
    """No platform user matches the recipient email."""

    def __init__(self, email: str):
        super().__init__(f"User not found for email: {email}", step="resolve", retryable=False)
        self.email = email


class DeliveryError(NotifierError):
    """The message endpoint rejected the send."""

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = False):
        super().__init__(message, step="send", retryable=retryable)
        self.status_code = status_code


class FeishuClient:
    """
    Minimal Feishu open-platform client for bot messages.

    Attributes:
        app_id: Bot application id
        app_secret: Bot application secret
        base_url: Open API root (open.feishu.cn or open.larksuite.com)
    """

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
    ):
        settings = settings or get_settings()
        self.app_id = app_id
        self.app_secret = app_secret
        self.base_url = settings.feishu_base_url.rstrip("/")
        self.timeout = settings.http_timeout
        self.max_retries = settings.max_retries
        self.retry_delay = settings.retry_delay
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return self.base_url + path

    def _post(
        self,
        step: str,
        path: str,
        body: Dict[str, Any],
        token: Optional[str] = None,
    ) -> requests.Response:
        """
        POST with bounded retry on transport errors and 429/5xx.

        Returns the final response (which may still be a non-2xx status for
        the caller to interpret).
        """
        headers = {"Content-Type": "application/json; charset=utf-8"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = self._url(path)
        delay = self.retry_delay

        for attempt in range(self.max_retries + 1):
            last_attempt = attempt >= self.max_retries
            try:
                response = self.session.post(url, json=body, headers=headers, timeout=self.timeout)
            except requests.RequestException as e:
                if last_attempt:
                    raise NotifierError(f"{step} request failed: {e}", step=step, retryable=True)
                logger.warning(f"Feishu {step} attempt {attempt + 1} failed: {e}; retrying in {delay:.1f}s")
            else:
                if response.status_code not in RETRYABLE_STATUS or last_attempt:
                    return response
                logger.warning(
                    f"Feishu {step} returned HTTP {response.status_code} on attempt {attempt + 1}; "
                    f"retrying in {delay:.1f}s"
                )

            time.sleep(delay)
            delay *= 2

        raise NotifierError(f"{step} failed after retries", step=step)

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def get_token(self) -> str:
        """
        Exchange app id + secret for a tenant access token.

        Raises:
            AuthError: If the reply carries no token
        """
        response = self._post("auth", TOKEN_PATH, {"app_id": self.app_id, "app_secret": self.app_secret})
        data = self._json(response)
        token = data.get("tenant_access_token")
        if not isinstance(token, str) or not token:
            raise AuthError(f"Auth Failed: HTTP {response.status_code} {data or response.text[:200]}")
        return token

    def get_user_id(self, token: str, email: str) -> str:
        """
        Resolve an email address to the recipient's open id.

        Raises:
            RecipientNotFoundError: If no user matches the email
        """
        response = self._post("resolve", BATCH_GET_ID_PATH, {"emails": [email]}, token=token)
        data = self._json(response)

        payload = data.get("data")
        user_list = payload.get("user_list") if isinstance(payload, dict) else None
        if isinstance(user_list, list) and user_list and isinstance(user_list[0], dict):
            user_id = user_list[0].get("user_id")
            if isinstance(user_id, str) and user_id:
                return user_id

        raise RecipientNotFoundError(email)

    def send_message(self, token: str, receive_id: str, text: str) -> None:
        """
        Send a plain-text message to an open id.

        Raises:
            DeliveryError: On any non-2xx status
        """
        body = {
            "receive_id": receive_id,
            "msg_type": "text",
            "content": json.dumps({"text": text}, ensure_ascii=False),
        }
        response = self._post("send", SEND_MESSAGE_PATH, body, token=token)

        if not 200 <= response.status_code < 300:
            raise DeliveryError(
                f"Send failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
                retryable=response.status_code in RETRYABLE_STATUS,
            )

    def send_report(self, email: str, text: str) -> None:
        """Authenticate, resolve the recipient and deliver; all or nothing."""
        token = self.get_token()
        user_id = self.get_user_id(token, email)
        self.send_message(token, user_id, text)
        logger.info(f"Report delivered to {email}")

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
