#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - Daily Review Helper
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Daily Assistant: turns today's notes and git commits into an AI-written report.

Collects manual notes and the day's commits across configured repositories,
asks an OpenAI-compatible model for a review or template report, and can
deliver it to a Feishu user every day at a fixed time.

Usage:
    daily-assistant add "Fixed login bug"
    daily-assistant review
    daily-assistant review --export
    daily-assistant config --schedule 18:30
    daily-assistant daemon
"""

__version__ = "1.0.0"
__author__ = "SIRIUS Alpha"

from .config import AppConfig, ConfigError, JsonConfigProvider, Settings, get_settings
from .git_scanner import GitScanner, ScanError
from .job import ReportJob
from .log_store import LogStore
from .models import CommitRecord, JobResult, JobStatus, LogEntry, ReportMode, ScanResult
from .notifier import FeishuClient, NotifierError
from .prompt import compose_prompt
from .scheduler import Scheduler

__all__ = [
    # Version
    "__version__",
    "__author__",
    # Config
    "AppConfig",
    "ConfigError",
    "JsonConfigProvider",
    "Settings",
    "get_settings",
    # Models
    "CommitRecord",
    "JobResult",
    "JobStatus",
    "LogEntry",
    "ReportMode",
    "ScanResult",
    # Pipeline
    "GitScanner",
    "ScanError",
    "compose_prompt",
    "FeishuClient",
    "NotifierError",
    "LogStore",
    "ReportJob",
    "Scheduler",
]
