#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - Data Models
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""Data models shared across the report pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

LOG_CATEGORIES = ("task", "note", "problem")


@dataclass(frozen=True)
class LogEntry:
    """A manual note captured by the user."""

    id: int
    content: str
    category: str  # 'task', 'note' or 'problem'
    timestamp: str  # local time, "YYYY-MM-DD HH:MM:SS"

    @property
    def time_of_day(self) -> str:
        """HH:MM portion of the timestamp."""
        parts = self.timestamp.split()
        clock = parts[1] if len(parts) > 1 else self.timestamp
        return clock[:5]


@dataclass
class CommitRecord:
    """
    One commit found by the repository scanner.

    Attributes:
        hash: Full commit hash
        message: Commit subject line
        author: Author name
        time: Commit time as unix seconds
        repo_name: Final path segment of the repository
        diff: Patch text (deep analysis only), capped in length
    """

    hash: str
    message: str
    author: str
    time: int
    repo_name: str
    diff: Optional[str] = None


class RepoStatus(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"


@dataclass
class RepoScan:
    """Outcome of scanning a single repository path."""

    path: str
    repo_name: str
    status: RepoStatus
    commit_count: int = 0
    malformed_lines: int = 0
    error: Optional[str] = None


@dataclass
class ScanResult:
    """Commits from all repositories plus a per-repository outcome."""

    commits: List[CommitRecord] = field(default_factory=list)
    repos: List[RepoScan] = field(default_factory=list)

    @property
    def scanned(self) -> int:
        return sum(1 for r in self.repos if r.status is RepoStatus.OK)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.repos if r.status is RepoStatus.SKIPPED)

    @property
    def skipped_repos(self) -> List[RepoScan]:
        return [r for r in self.repos if r.status is RepoStatus.SKIPPED]


class ReportMode(str, Enum):
    """Prompt flavour: free-form review or template-driven export."""

    ANALYSIS = "analysis"
    EXPORT = "export"


class JobStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class JobResult:
    """
    Transient outcome of one report job.

    Attributes:
        status: succeeded, skipped (nothing to report) or failed
        delivered: Whether the report reached the chat-bot recipient
        note_count: Notes gathered for today
        commit_count: Commits gathered for today
        prompt: Composed prompt (empty if skipped before composing)
        report: LLM reply text
        error: Error message if failed
    """

    status: JobStatus
    delivered: bool = False
    note_count: int = 0
    commit_count: int = 0
    prompt: str = ""
    report: str = ""
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is JobStatus.SUCCEEDED
