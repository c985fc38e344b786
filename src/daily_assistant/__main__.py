#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - CLI Entry Point
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Command-line interface for the Daily Assistant.

Features:
- Note capture (add / list / del)
- Configuration editing
- Git sync preview and AI review/export
- Foreground daemon running the daily scheduler
- Structured logging (console + rotating file)
"""

import logging
import signal
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import click

from .config import ConfigError, JsonConfigProvider, get_settings
from .git_scanner import GitScanner, ScanError
from .job import ReportJob
from .log_store import LogStore
from .models import LOG_CATEGORIES, JobStatus, ReportMode
from .scheduler import Scheduler

# ══════════════════════════════════════════════════════════════════════════════
# LOGGING SETUP
# ══════════════════════════════════════════════════════════════════════════════

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
CONSOLE_FORMAT = "%(asctime)s [%(levelname)-.1s] %(name)s: %(message)s"
NOISY_LOGGERS = ("urllib3", "schedule")


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None, quiet: bool = False) -> None:
    """
    Route log records to stderr and, when given, a rotating log file.

    The console shows INFO and up (DEBUG when verbose); the file always keeps
    DEBUG so a scheduled run can be reconstructed afterwards. Rotation is
    5 MB with three backups.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.DEBUG if verbose or log_file else logging.INFO)

    if not quiet:
        stream = logging.StreamHandler(sys.stderr)
        stream.setLevel(logging.DEBUG if verbose else logging.INFO)
        stream.setFormatter(logging.Formatter(CONSOLE_FORMAT, "%H:%M:%S"))
        root.addHandler(stream)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8")
        rotating.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(rotating)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════════
# CONSOLE OUTPUT HELPERS
# ══════════════════════════════════════════════════════════════════════════════


class Console:
    """Status lines for interactive commands; click strips the color when not on a tty."""

    RULE = "=" * 60

    @staticmethod
    def _mark(tag: str, text: str, **style) -> None:
        click.echo(f"  {click.style(tag, **style)} {text}")

    @classmethod
    def header(cls, text: str) -> None:
        click.secho(cls.RULE, fg="cyan")
        click.secho(f"  {text}", fg="cyan", bold=True)
        click.secho(cls.RULE, fg="cyan")

    @classmethod
    def step(cls, text: str) -> None:
        cls._mark("->", text, fg="blue")

    @classmethod
    def success(cls, text: str) -> None:
        cls._mark("[OK]", text, fg="green")

    @classmethod
    def warning(cls, text: str) -> None:
        cls._mark("[!]", text, fg="yellow")

    @classmethod
    def error(cls, text: str) -> None:
        cls._mark("[X]", text, fg="red")

    @classmethod
    def info(cls, text: str) -> None:
        cls._mark("*", text, dim=True)

    @classmethod
    def divider(cls) -> None:
        click.secho("  " + "-" * 56, dim=True)


def _provider() -> JsonConfigProvider:
    return JsonConfigProvider(get_settings().config_path)


def _store() -> LogStore:
    return LogStore(get_settings().database_path)


# ══════════════════════════════════════════════════════════════════════════════
# CLI COMMANDS
# ══════════════════════════════════════════════════════════════════════════════


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose (debug) output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress console log output")
@click.option("--log-file", type=click.Path(path_type=Path), help="Path to log file")
@click.version_option(package_name="daily-assistant")
def main(verbose: bool, quiet: bool, log_file: Optional[Path]) -> None:
    """
    Daily Assistant

    Aggregates today's notes and git commits into an AI-written daily
    review, optionally delivered to Feishu on a schedule.
    """
    if log_file is None:
        log_file = get_settings().log_file

    setup_logging(verbose, log_file, quiet)


@main.command()
@click.argument("content")
@click.option(
    "--type",
    "-t",
    "category",
    type=click.Choice(LOG_CATEGORIES),
    default="note",
    show_default=True,
    help="Entry category",
)
def add(content: str, category: str) -> None:
    """Add a new log entry."""
    entry = _store().create(content, category)
    Console.success(f"{category.capitalize()} added (#{entry.id}): {content}")


@main.command(name="list")
def list_logs() -> None:
    """List today's logs."""
    entries = list(reversed(_store().list_today()))

    Console.header(f"Today's Notes - {datetime.now():%Y-%m-%d}")
    if not entries:
        Console.info("No notes yet today")
        return

    for entry in entries:
        click.echo(f"[{entry.id}] {entry.time_of_day}  ({entry.category}) {entry.content}")


@main.command(name="del")
@click.argument("entry_id", type=int)
def delete(entry_id: int) -> None:
    """Delete a log by ID."""
    if _store().delete(entry_id):
        Console.success(f"Deleted note ID: {entry_id}")
    else:
        Console.error(f"Note ID {entry_id} not found.")
        sys.exit(1)


@main.command()
@click.option("--api-key", help="Set your OpenAI (or compatible) API key")
@click.option("--provider", help="Provider id (openai, deepseek, gemini, anthropic)")
@click.option("--model", help="Model name")
@click.option("--base-url", help="Custom API base URL (empty string to clear)")
@click.option("--add-repo", help="Add a git repository path")
@click.option("--remove-repo", help="Remove a git repository path")
@click.option("--deep-analysis", type=click.BOOL, help="Enable or disable code-diff analysis")
@click.option("--feishu-app-id", help="Set Feishu app id")
@click.option("--feishu-app-secret", help="Set Feishu app secret")
@click.option("--feishu-target", help="Set Feishu target email")
@click.option("--schedule", "schedule_time", help="Set schedule time (HH:MM, 24h); enables delivery")
@click.option("--disable-schedule", is_flag=True, help="Disable scheduled delivery")
def config(
    api_key: Optional[str],
    provider: Optional[str],
    model: Optional[str],
    base_url: Optional[str],
    add_repo: Optional[str],
    remove_repo: Optional[str],
    deep_analysis: Optional[bool],
    feishu_app_id: Optional[str],
    feishu_app_secret: Optional[str],
    feishu_target: Optional[str],
    schedule_time: Optional[str],
    disable_schedule: bool,
) -> None:
    """Show or update configuration."""
    store = _provider()
    current = store.load()
    changes = {}

    if api_key is not None:
        changes["api_key"] = api_key
    if provider is not None:
        changes["provider"] = provider
    if model is not None:
        changes["model"] = model
    if base_url is not None:
        changes["base_url"] = base_url or None
    if add_repo is not None:
        repo_path = str(Path(add_repo).expanduser().resolve())
        changes["git_paths"] = current.add_repo(repo_path).git_paths
    if remove_repo is not None:
        paths = changes.get("git_paths", current.git_paths)
        targets = {remove_repo, str(Path(remove_repo).expanduser().resolve())}
        kept = tuple(p for p in paths if p not in targets)
        if len(kept) == len(paths):
            Console.error(f"Repository not configured: {remove_repo}")
            sys.exit(1)
        changes["git_paths"] = kept
    if deep_analysis is not None:
        changes["deep_analysis"] = deep_analysis
    if feishu_app_id is not None:
        changes["feishu_app_id"] = feishu_app_id
    if feishu_app_secret is not None:
        changes["feishu_app_secret"] = feishu_app_secret
    if feishu_target is not None:
        changes["feishu_target_email"] = feishu_target
    if schedule_time is not None:
        changes["schedule_time"] = schedule_time
        changes["feishu_enabled"] = True
    if disable_schedule:
        changes["feishu_enabled"] = False

    if changes:
        try:
            current = store.update(**changes)
        except ConfigError as e:
            Console.error(str(e))
            sys.exit(1)
        Console.success(f"Updated: {', '.join(sorted(changes))}")

    click.echo(current.summary())


@main.command()
@click.option("--deep", is_flag=True, help="Fetch code diffs regardless of config")
def sync(deep: bool) -> None:
    """Scan configured git repositories for today's commits."""
    cfg = _provider().load()
    use_deep = deep or cfg.deep_analysis
    settings = get_settings()

    Console.step(f"Syncing Git repos (deep analysis: {use_deep})...")

    try:
        result = GitScanner(settings.git_binary, settings.git_timeout).scan(cfg.git_paths, deep_analysis=use_deep)
    except ScanError as e:
        Console.error(f"Sync failed: {e}")
        sys.exit(1)

    for commit in result.commits:
        click.echo(f"[{commit.repo_name}] {commit.message} ({commit.author})")
        if commit.diff is not None:
            click.echo(f"   Diff: {len(commit.diff)} chars")

    for repo in result.skipped_repos:
        Console.warning(f"Skipped {repo.path}: {repo.error}")

    Console.info(f"{len(result.commits)} commit(s) from {result.scanned} repo(s), {result.skipped} skipped")


@main.command()
@click.option("--export", "export_mode", is_flag=True, help="Follow the report template instead of free analysis")
@click.option("--send", is_flag=True, help="Also deliver the result via Feishu")
def review(export_mode: bool, send: bool) -> None:
    """Generate an AI review (default) or a template report (--export)."""
    cfg = _provider().load()
    mode = ReportMode.EXPORT if export_mode else ReportMode.ANALYSIS

    Console.step(f"Generating AI {'report' if export_mode else 'review'}...")
    result = ReportJob(_store()).run(cfg, mode, deliver=send)

    if result.status is JobStatus.SKIPPED:
        Console.warning(result.error)
        return

    if result.report:
        click.echo()
        click.echo(result.report)

    if result.status is JobStatus.FAILED:
        Console.error(f"AI Error: {result.error}")
        sys.exit(1)

    if result.delivered:
        Console.success("Feishu message sent")


@main.command()
def run() -> None:
    """Run the scheduled job once now (analysis + delivery)."""
    cfg = _provider().load()
    result = ReportJob(_store()).run(cfg, ReportMode.ANALYSIS, deliver=True)

    if result.status is JobStatus.SUCCEEDED:
        Console.success("Report generated" + (" and delivered" if result.delivered else " (delivery skipped)"))
    elif result.status is JobStatus.SKIPPED:
        Console.warning(result.error)
    else:
        Console.error(f"Job failed: {result.error}")
        sys.exit(1)


@main.command()
@click.option("--interval", type=float, help="Seconds between schedule checks (default 60)")
def daemon(interval: Optional[float]) -> None:
    """Run the daily report scheduler in the foreground."""
    cfg_provider = _provider()
    scheduler = Scheduler(cfg_provider, ReportJob(_store()), poll_interval=interval)

    def _signal_handler(signum, frame):
        logging.getLogger(__name__).info("Signal received, stopping scheduler")
        scheduler.stop()

    signal.signal(signal.SIGTERM, _signal_handler)

    cfg = cfg_provider.load()
    Console.header("Daily Assistant - Scheduler")
    if cfg.schedule_active:
        Console.info(f"Daily report at {cfg.schedule_time}")
    else:
        Console.warning("Scheduled delivery disabled (set one with: config --schedule HH:MM)")
    Console.info("Press Ctrl+C to stop")

    try:
        scheduler.run_forever()
    except KeyboardInterrupt:
        scheduler.stop()
        Console.warning("Shutdown requested")


@main.command()
def check() -> None:
    """Check configuration and environment."""
    cfg = _provider().load()
    settings = get_settings()

    Console.header("Configuration Check")
    Console.info(f"Config file: {settings.config_path}")
    Console.info(f"Database: {settings.database_path}")
    Console.divider()

    issues = cfg.validate()
    if not issues:
        Console.success("Configuration looks good")
        return

    for issue in issues:
        Console.warning(issue)
    sys.exit(1)


# ══════════════════════════════════════════════════════════════════════════════
# ENTRY POINT
# ══════════════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    main()
