#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - Configuration Module
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Configuration management for Daily Assistant.

Two layers:
- Settings: runtime knobs loaded from environment variables (and .env)
- AppConfig: the user's JSON document (API key, repositories, Feishu, schedule)

AppConfig is an immutable snapshot. JsonConfigProvider re-reads the file on
every load() so edits made by the CLI are picked up by the scheduler within
one tick.
"""

import json
import logging
import os
import re
import tempfile
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

APP_IDENTIFIER = "daily-assistant"

SCHEDULE_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class ConfigError(ValueError):
    """Raised for invalid configuration values."""


def _get_app_dir() -> Path:
    """Per-user application directory (~/.config/daily-assistant)."""
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base).expanduser() / APP_IDENTIFIER


def _load_dotenv() -> None:
    """Load .env from the working directory, then from the app directory."""
    load_dotenv(Path.cwd() / ".env")
    env_path = _get_app_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)


# Load environment on module import
_load_dotenv()


def _env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    """Get float environment variable."""
    try:
        return float(os.environ.get(key, str(default)))
    except ValueError:
        return default


def _env_path(key: str, default: Path) -> Path:
    """Get path environment variable."""
    val = os.environ.get(key, "")
    if val:
        return Path(val).expanduser()
    return default


# ══════════════════════════════════════════════════════════════════════════════
# RUNTIME SETTINGS
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class Settings:
    """Runtime settings sourced from the environment."""

    config_path: Path = field(
        default_factory=lambda: _env_path("DAILY_ASSISTANT_CONFIG", _get_app_dir() / "config.json")
    )
    database_path: Path = field(
        default_factory=lambda: _env_path("DAILY_ASSISTANT_DB", _get_app_dir() / "daily_assistant.db")
    )
    log_file: Path = field(
        default_factory=lambda: _env_path("DAILY_ASSISTANT_LOG_FILE", _get_app_dir() / "daily_assistant.log")
    )

    # Scheduler tick
    poll_interval: float = field(default_factory=lambda: _env_float("DAILY_ASSISTANT_POLL_INTERVAL", 60.0))

    # Outbound HTTP (LLM + Feishu)
    http_timeout: float = field(default_factory=lambda: _env_float("DAILY_ASSISTANT_HTTP_TIMEOUT", 60.0))
    max_retries: int = field(default_factory=lambda: _env_int("DAILY_ASSISTANT_MAX_RETRIES", 2))
    retry_delay: float = field(default_factory=lambda: _env_float("DAILY_ASSISTANT_RETRY_DELAY", 2.0))

    # Version control CLI
    git_binary: str = field(default_factory=lambda: _env("DAILY_ASSISTANT_GIT", "git"))
    git_timeout: float = field(default_factory=lambda: _env_float("DAILY_ASSISTANT_GIT_TIMEOUT", 30.0))

    # Feishu / Lark open platform
    feishu_base_url: str = field(
        default_factory=lambda: _env("FEISHU_BASE_URL", "https://open.feishu.cn/open-apis")
    )


# ══════════════════════════════════════════════════════════════════════════════
# USER CONFIGURATION DOCUMENT
# ══════════════════════════════════════════════════════════════════════════════

DEFAULT_CUSTOM_RULES = """# Role: Efficient Reporting Assistant

# Profile
- Description: Turns fragmented daily work notes into a clear, concise daily report.
- Tone: professional, rational, results-oriented, brief.

# Workflow
1. Input analysis: read the raw work log (may be colloquial or fragmented) and
   identify completed tasks, blockers and the solutions applied.
2. Transformation:
    - Filter: drop filler words and trivia, keep core actions and results.
    - Restructure: turn the running log into "completed items" (verb + object)
      and pair each problem with its resolution or follow-up.
    - Elevate: phrase items professionally ("fixed a bug" becomes "resolved a
      system fault, improving stability").
    - Condense: keep the whole report short enough to skim on a phone.
3. Output: follow the configured report template.

# Constraints
- Stay objective, no emotional venting.
- For unresolved problems give an expected resolution date or the support needed.
- At most 5 list items per section, most important first."""

DEFAULT_REPORT_TEMPLATE = """**[Daily Report - MM/DD]**

**Done today**
* [Item 1]: [result / progress]
* [Item 2]: [result / progress]

**Problems & actions**
* **Problem**: [short description]
    **Action**: [measure taken or next step]"""


def validate_schedule_time(value: str) -> str:
    """
    Validate a 24-hour HH:MM clock string.

    Returns:
        The value unchanged

    Raises:
        ConfigError: If the value is not a valid HH:MM string
    """
    if not isinstance(value, str) or not SCHEDULE_TIME_RE.match(value):
        raise ConfigError(f"Invalid schedule time {value!r}: expected 24-hour HH:MM")
    return value


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable snapshot of the user's configuration document.

    Field names match the keys of the JSON file on disk.
    """

    api_key: str = ""
    provider: str = "openai"
    model: str = "gpt-4o"
    base_url: Optional[str] = None
    git_paths: Tuple[str, ...] = ()
    deep_analysis: bool = False
    custom_rules: str = DEFAULT_CUSTOM_RULES
    report_template: str = DEFAULT_REPORT_TEMPLATE

    # Feishu delivery
    feishu_app_id: Optional[str] = None
    feishu_app_secret: Optional[str] = None
    feishu_target_email: Optional[str] = None
    schedule_time: Optional[str] = None  # "HH:MM"
    feishu_enabled: bool = False

    @property
    def feishu_configured(self) -> bool:
        """Check if credentials and recipient are all present."""
        return bool(self.feishu_app_id and self.feishu_app_secret and self.feishu_target_email)

    @property
    def schedule_active(self) -> bool:
        """Delivery is enabled and a fire time is set."""
        return bool(self.feishu_enabled and self.schedule_time)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        """Build a snapshot from a parsed JSON document, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if "git_paths" in values:
            values["git_paths"] = tuple(values["git_paths"] or ())
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["git_paths"] = list(self.git_paths)
        return data

    def add_repo(self, path: str) -> "AppConfig":
        """Return a copy with path appended, unless it is already present."""
        if path in self.git_paths:
            return self
        return replace(self, git_paths=self.git_paths + (path,))

    def with_schedule(self, schedule_time: str) -> "AppConfig":
        """Return a copy with a schedule time set; this also enables delivery."""
        return replace(self, schedule_time=validate_schedule_time(schedule_time), feishu_enabled=True)

    def validate(self) -> list[str]:
        """
        Validate configuration and return list of issues.

        Returns:
            List of validation error messages (empty if valid)
        """
        issues = []

        if not self.api_key:
            issues.append("API key not set (daily-assistant config --api-key ...)")

        if self.schedule_time:
            try:
                validate_schedule_time(self.schedule_time)
            except ConfigError as e:
                issues.append(str(e))

        for path in self.git_paths:
            if not Path(path).expanduser().is_dir():
                issues.append(f"Repository path not found: {path}")

        if self.feishu_enabled and not self.feishu_configured:
            issues.append("Scheduled delivery enabled but Feishu app id, secret or target email is missing")

        return issues

    def summary(self) -> str:
        """Generate human-readable configuration summary with secrets masked."""
        lines = [
            "═" * 60,
            "  DAILY ASSISTANT CONFIGURATION",
            "═" * 60,
            "",
            "LLM:",
            f"  Provider: {self.provider}",
            f"  Model: {self.model}",
            f"  Base URL: {self.base_url or '(provider default)'}",
            f"  API Key: {_mask(self.api_key)}",
            "",
            "Repositories:",
        ]
        lines.extend(f"  - {p}" for p in self.git_paths)
        if not self.git_paths:
            lines.append("  (none)")
        lines.extend(
            [
                f"  Deep Analysis: {self.deep_analysis}",
                "",
                "Feishu:",
                f"  App ID: {self.feishu_app_id or '(unset)'}",
                f"  App Secret: {_mask(self.feishu_app_secret)}",
                f"  Target: {self.feishu_target_email or '(unset)'}",
                f"  Schedule: {self.schedule_time or '(unset)'}",
                f"  Enabled: {self.feishu_enabled}",
                "",
                "═" * 60,
            ]
        )
        return "\n".join(lines)


def _mask(secret: Optional[str]) -> str:
    if not secret:
        return "(unset)"
    if len(secret) <= 8:
        return "*" * len(secret)
    return f"{secret[:4]}…{secret[-4:]}"


class JsonConfigProvider:
    """
    Reads and writes AppConfig as a JSON document.

    Nothing is cached: every load() reads the file again.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else Settings().config_path

    def load(self) -> AppConfig:
        """Load a fresh snapshot; missing or malformed files yield defaults."""
        if not self.path.exists():
            return AppConfig()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            if not isinstance(data, dict):
                raise ValueError("top-level JSON value is not an object")
            return AppConfig.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Could not read config {self.path}: {e}; using defaults")
            return AppConfig()

    def save(self, config: AppConfig) -> None:
        """Write the snapshot atomically (temp file + rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(config.to_dict(), indent=2, ensure_ascii=False)

        fd, tmp_name = tempfile.mkstemp(prefix=".config-", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def update(self, **changes: Any) -> AppConfig:
        """Load, apply field changes, save and return the new snapshot."""
        if "git_paths" in changes:
            changes["git_paths"] = tuple(changes["git_paths"])
        if changes.get("schedule_time"):
            validate_schedule_time(changes["schedule_time"])
        config = replace(self.load(), **changes)
        self.save(config)
        return config


# Singleton settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global runtime settings."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the global settings (for testing)."""
    global _settings
    _settings = None
