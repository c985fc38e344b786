#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - Prompt Composer
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Builds the single LLM prompt from today's notes and commits.

compose_prompt() is pure: identical inputs always give the identical string,
and empty inputs simply render empty sections.
"""

from typing import Iterable, Union

from .config import AppConfig
from .models import CommitRecord, LogEntry, ReportMode

# ══════════════════════════════════════════════════════════════════════════════
# PROMPT TEMPLATES
# ══════════════════════════════════════════════════════════════════════════════

PROMPT_TEMPLATE = """Context:
Manual Logs:
{logs_text}

Git Commits:
{git_text}

System Instruction:
{instruction}

Additional User Rules:
{custom_rules}
"""

ANALYSIS_INSTRUCTION = (
    "Provide a comprehensive summary, 3 improvements, and 1 key knowledge point. "
    "If code diffs are provided, use them to explain technical details."
)

EXPORT_INSTRUCTION_TEMPLATE = """Strictly follow the format below:

Format Template:
{report_template}"""


def render_notes(notes: Iterable[LogEntry]) -> str:
    return "\n".join(f"- {note.content}" for note in notes)


def render_commit(commit: CommitRecord) -> str:
    text = f"- [{commit.repo_name or '?'}] {commit.message}"
    if commit.diff is not None:
        text += f"\n  Code Diff Summary:\n```\n{commit.diff}\n```"
    return text


def render_commits(commits: Iterable[CommitRecord]) -> str:
    return "\n".join(render_commit(c) for c in commits)


def build_instruction(config: AppConfig, mode: Union[ReportMode, str]) -> str:
    """Mode-specific instruction block; anything but export means analysis."""
    if mode == ReportMode.EXPORT:
        return EXPORT_INSTRUCTION_TEMPLATE.format(report_template=config.report_template)
    return ANALYSIS_INSTRUCTION


def compose_prompt(
    notes: Iterable[LogEntry],
    commits: Iterable[CommitRecord],
    config: AppConfig,
    mode: Union[ReportMode, str] = ReportMode.ANALYSIS,
) -> str:
    """
    Compose the prompt sent to the chat-completion endpoint.

    Args:
        notes: Today's log entries
        commits: Today's commits (diffs rendered as fenced blocks)
        config: Configuration snapshot (template and custom rules)
        mode: analysis (review) or export (template report)

    Returns:
        Prompt string
    """
    return PROMPT_TEMPLATE.format(
        logs_text=render_notes(notes),
        git_text=render_commits(commits),
        instruction=build_instruction(config, mode),
        custom_rules=config.custom_rules,
    )
