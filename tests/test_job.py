#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - Report Job Tests
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""Tests for the end-to-end report job with fake collaborators."""

import pytest

from daily_assistant.config import AppConfig
from daily_assistant.git_scanner import ScanError
from daily_assistant.job import NOTHING_TO_REPORT, ReportJob
from daily_assistant.llm import ProviderError
from daily_assistant.models import CommitRecord, JobStatus, ReportMode, ScanResult
from daily_assistant.notifier import RecipientNotFoundError


class FakeScanner:
    def __init__(self, commits=None, error=None):
        self.commits = commits or []
        self.error = error
        self.calls = []

    def scan(self, paths, deep_analysis=False):
        self.calls.append((tuple(paths), deep_analysis))
        if self.error:
            raise self.error
        return ScanResult(commits=list(self.commits))


class FakeNotifier:
    def __init__(self, error=None):
        self.error = error
        self.sent = []
        self.closed = False

    def send_report(self, email, text):
        if self.error:
            raise self.error
        self.sent.append((email, text))

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False


class FakeAI:
    def __init__(self, reply="Report text", error=None):
        self.reply = reply
        self.error = error
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.reply


COMMIT = CommitRecord(hash="abc", message="fix: null check", author="Ana", time=0, repo_name="api")


@pytest.fixture
def notifier():
    return FakeNotifier()


def make_job(store, settings, scanner=None, ai=None, notifier=None):
    notifier = notifier or FakeNotifier()
    return ReportJob(
        store,
        scanner=scanner or FakeScanner(),
        settings=settings,
        complete=ai or FakeAI(),
        notifier_factory=lambda app_id, secret: notifier,
    )


class TestReportJob:
    def test_nothing_to_report_skips_ai(self, store, settings, feishu_config, notifier):
        ai = FakeAI()
        result = make_job(store, settings, ai=ai, notifier=notifier).run(feishu_config)

        assert result.status is JobStatus.SKIPPED
        assert result.error == NOTHING_TO_REPORT
        assert ai.requests == []
        assert notifier.sent == []

    def test_generates_and_delivers(self, store, settings, feishu_config, notifier):
        store.create("Fixed login bug", "task")
        ai = FakeAI("Great day")

        result = make_job(store, settings, scanner=FakeScanner([COMMIT]), ai=ai, notifier=notifier).run(feishu_config)

        assert result.status is JobStatus.SUCCEEDED
        assert result.delivered
        assert result.note_count == 1
        assert result.commit_count == 1
        assert result.report == "Great day"
        assert notifier.sent == [("dev@example.com", "Great day")]
        assert notifier.closed

        request = ai.requests[0]
        assert request.api_key == "sk-test"
        assert "- Fixed login bug" in request.prompt
        assert "- [api] fix: null check" in request.prompt

    def test_commits_alone_are_enough(self, store, settings, feishu_config):
        result = make_job(store, settings, scanner=FakeScanner([COMMIT])).run(feishu_config, deliver=False)
        assert result.status is JobStatus.SUCCEEDED
        assert not result.delivered

    def test_delivery_skipped_when_unconfigured(self, store, settings, notifier):
        store.create("note")
        config = AppConfig(api_key="sk", feishu_app_id="cli_app")

        result = make_job(store, settings, notifier=notifier).run(config)

        assert result.status is JobStatus.SUCCEEDED
        assert not result.delivered
        assert notifier.sent == []

    def test_export_mode_uses_template(self, store, settings, feishu_config):
        store.create("note")
        ai = FakeAI()
        make_job(store, settings, ai=ai).run(feishu_config, ReportMode.EXPORT, deliver=False)
        assert "Strictly follow the format below" in ai.requests[0].prompt

    def test_deep_analysis_follows_config(self, store, settings, feishu_config):
        scanner = FakeScanner()
        config = feishu_config.add_repo("/work/api")
        make_job(store, settings, scanner=scanner).run(config)
        make_job(store, settings, scanner=scanner).generate(config, deep_analysis=True)
        assert scanner.calls == [(("/work/api",), False), (("/work/api",), True)]

    def test_ai_failure(self, store, settings, feishu_config, notifier):
        store.create("note")
        ai = FakeAI(error=ProviderError('{"message": "Incorrect API key"}', provider="openai", retryable=False))

        result = make_job(store, settings, ai=ai, notifier=notifier).run(feishu_config)

        assert result.status is JobStatus.FAILED
        assert "Incorrect API key" in result.error
        assert notifier.sent == []

    def test_scan_failure(self, store, settings, feishu_config):
        result = make_job(store, settings, scanner=FakeScanner(error=ScanError("cannot spawn"))).run(feishu_config)
        assert result.status is JobStatus.FAILED
        assert "cannot spawn" in result.error

    def test_delivery_failure_keeps_report(self, store, settings, feishu_config):
        store.create("note")
        notifier = FakeNotifier(error=RecipientNotFoundError("dev@example.com"))

        result = make_job(store, settings, notifier=notifier).run(feishu_config)

        assert result.status is JobStatus.FAILED
        assert result.report == "Report text"
        assert not result.delivered
        assert "User not found" in result.error
