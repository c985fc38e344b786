#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - Shared Test Fixtures
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""Shared fixtures: every test gets its own config dir and fresh settings."""

from pathlib import Path

import pytest

from daily_assistant.config import AppConfig, Settings, reset_settings
from daily_assistant.log_store import LogStore


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch):
    """Point the app directory at a temp dir and drop any env overrides."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for key in (
        "DAILY_ASSISTANT_CONFIG",
        "DAILY_ASSISTANT_DB",
        "DAILY_ASSISTANT_LOG_FILE",
        "DAILY_ASSISTANT_POLL_INTERVAL",
        "DAILY_ASSISTANT_HTTP_TIMEOUT",
        "DAILY_ASSISTANT_MAX_RETRIES",
        "DAILY_ASSISTANT_RETRY_DELAY",
        "DAILY_ASSISTANT_GIT",
        "DAILY_ASSISTANT_GIT_TIMEOUT",
        "FEISHU_BASE_URL",
    ):
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with fast retries and temp paths."""
    return Settings(
        config_path=tmp_path / "config.json",
        database_path=tmp_path / "logs.db",
        log_file=tmp_path / "app.log",
        poll_interval=0.01,
        http_timeout=5.0,
        max_retries=2,
        retry_delay=0.0,
        git_binary="git",
        git_timeout=10.0,
        feishu_base_url="https://feishu.test/open-apis",
    )


@pytest.fixture
def store(tmp_path: Path) -> LogStore:
    return LogStore(tmp_path / "logs.db")


@pytest.fixture
def feishu_config() -> AppConfig:
    """Configuration with complete Feishu delivery settings."""
    return AppConfig(
        api_key="sk-test",
        feishu_app_id="cli_app",
        feishu_app_secret="secret",
        feishu_target_email="dev@example.com",
        schedule_time="18:30",
        feishu_enabled=True,
    )
