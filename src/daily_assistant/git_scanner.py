#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - Repository Scanner
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Collects today's commits from local git repositories.

Scanning is best-effort per repository: a bad path, a directory that is not a
repository or a missing git binary skips that repository and the scan moves on.
Only a failure to spawn processes at all aborts the scan.
"""

import logging
import subprocess
from pathlib import PurePath
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import get_settings
from .models import CommitRecord, RepoScan, RepoStatus, ScanResult

logger = logging.getLogger(__name__)

LOG_FORMAT = "%H|%s|%an|%at"
FIELD_DELIMITER = "|"
EXPECTED_FIELDS = 4

MAX_DIFF_CHARS = 3000
TRUNCATION_SUFFIX = "... (truncated)"


class ScanError(RuntimeError):
    """Raised when the scanner cannot spawn processes at all."""


class RepoCommandError(Exception):
    """A git invocation for one repository failed."""


def truncate_diff(diff: str, max_chars: int = MAX_DIFF_CHARS) -> str:
    """
    Cap patch text at max_chars characters.

    Text at or below the cap is returned verbatim; longer text keeps the
    first max_chars characters followed by TRUNCATION_SUFFIX.
    """
    if len(diff) <= max_chars:
        return diff
    return diff[:max_chars] + TRUNCATION_SUFFIX


def repo_display_name(path: str) -> str:
    """Final path segment of a repository path."""
    name = PurePath(path.rstrip("/\\")).name
    return name or "Unknown"


def parse_log_line(line: str, repo_name: str) -> Optional[CommitRecord]:
    """
    Parse one `hash|subject|author|epoch` line.

    Returns None when the line has too few fields. A subject that itself
    contains the delimiter is rejoined from the middle fields.
    """
    parts = line.split(FIELD_DELIMITER)
    if len(parts) < EXPECTED_FIELDS:
        return None

    commit_hash = parts[0].strip()
    author = parts[-2]
    message = FIELD_DELIMITER.join(parts[1:-2])

    try:
        commit_time = int(parts[-1].strip())
    except ValueError:
        commit_time = 0

    return CommitRecord(
        hash=commit_hash,
        message=message,
        author=author,
        time=commit_time,
        repo_name=repo_name,
    )


class GitScanner:
    """
    Runs `git log` (and optionally `git show`) for each configured path.

    Attributes:
        git_binary: Executable to invoke
        timeout: Per-invocation timeout in seconds
    """

    def __init__(self, git_binary: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self.git_binary = git_binary or settings.git_binary
        self.timeout = timeout if timeout is not None else settings.git_timeout

    def _run(self, args: Sequence[str]) -> str:
        """
        Run git and return decoded stdout.

        Raises:
            RepoCommandError: Non-zero exit, timeout or missing executable
            ScanError: Process creation itself failed
        """
        cmd = [self.git_binary, *args]
        try:
            proc = subprocess.run(cmd, capture_output=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise RepoCommandError(f"{self.git_binary} not found: {e}")
        except subprocess.TimeoutExpired:
            raise RepoCommandError(f"timed out after {self.timeout}s")
        except OSError as e:
            raise ScanError(f"Cannot run {self.git_binary}: {e}") from e

        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise RepoCommandError(stderr or f"exit status {proc.returncode}")

        return proc.stdout.decode("utf-8", errors="replace")

    def list_commits(self, path: str) -> Tuple[List[CommitRecord], int]:
        """
        List commits made since local midnight.

        Returns:
            Tuple of (commits, number of malformed lines discarded)
        """
        repo_name = repo_display_name(path)
        output = self._run(["-C", path, "log", "--since=midnight", f"--pretty=format:{LOG_FORMAT}"])

        commits = []
        malformed = 0
        for line in output.splitlines():
            if not line.strip():
                continue
            commit = parse_log_line(line, repo_name)
            if commit is None:
                malformed += 1
                logger.debug(f"Discarding malformed log line in {repo_name}: {line!r}")
                continue
            commits.append(commit)

        return commits, malformed

    def fetch_diff(self, path: str, commit_hash: str) -> Optional[str]:
        """Patch text for one commit, truncated; None if git fails."""
        try:
            raw = self._run(["-C", path, "show", commit_hash, "--pretty=", "--patch", "--max-count=1"])
        except RepoCommandError as e:
            logger.warning(f"Could not fetch diff for {commit_hash[:8]} in {path}: {e}")
            return None
        return truncate_diff(raw)

    def scan(self, paths: Iterable[str], deep_analysis: bool = False) -> ScanResult:
        """
        Scan every path and aggregate the commits.

        Args:
            paths: Repository paths, scanned in order
            deep_analysis: Also fetch each commit's patch text

        Returns:
            ScanResult with commits and per-repository outcomes

        Raises:
            ScanError: If git processes cannot be spawned at all
        """
        result = ScanResult()

        for path in paths:
            repo_name = repo_display_name(path)
            try:
                commits, malformed = self.list_commits(path)
            except RepoCommandError as e:
                logger.warning(f"Skipping repository {path}: {e}")
                result.repos.append(RepoScan(path=path, repo_name=repo_name, status=RepoStatus.SKIPPED, error=str(e)))
                continue

            if deep_analysis:
                for commit in commits:
                    commit.diff = self.fetch_diff(path, commit.hash)

            result.commits.extend(commits)
            result.repos.append(
                RepoScan(
                    path=path,
                    repo_name=repo_name,
                    status=RepoStatus.OK,
                    commit_count=len(commits),
                    malformed_lines=malformed,
                )
            )
            logger.info(f"Scanned {repo_name}: {len(commits)} commit(s) today")

        return result
